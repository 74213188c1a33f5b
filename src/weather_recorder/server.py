"""
HTTP API serving averaged temperatures per recording hour.
"""
import logging
import re

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import Config
from .database import DatabaseError, MeasurementDatabase
from .models import average_temperature, hourly_averages


logger = logging.getLogger(__name__)

ERROR_BODY = {"error": True}

HOUR_PATTERN = re.compile(r"[0-9]+")

router = APIRouter()


@router.get("/average")
def get_averages(request: Request) -> JSONResponse:
    """Mean temperature for every recording hour; null where nothing is stored."""
    config: Config = request.app.state.config
    database: MeasurementDatabase = request.app.state.database

    averages = hourly_averages(database.get_measurements_for_hours(config.recording_hours))

    try:
        return JSONResponse(content=averages)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize averages: {e}")
        return JSONResponse(status_code=500, content=ERROR_BODY)


@router.get("/average/{hour}")
def get_hour_average(hour: str, request: Request) -> JSONResponse:
    """Mean temperature and stored samples for a single hour."""
    if not HOUR_PATTERN.fullmatch(hour):
        logger.debug(f"Rejected non-numeric hour: {hour!r}")
        return JSONResponse(status_code=400, content=ERROR_BODY)

    hour_of_day = int(hour)
    if not 0 <= hour_of_day <= 23:
        logger.debug(f"Rejected out-of-range hour: {hour!r}")
        return JSONResponse(status_code=400, content=ERROR_BODY)

    database: MeasurementDatabase = request.app.state.database
    measurements = database.get_measurements(hour_of_day)

    if not measurements:
        logger.debug(f"No measurements stored for hour {hour}")
        return JSONResponse(status_code=400, content=ERROR_BODY)

    payload = {
        "hour": hour_of_day,
        "average": average_temperature(measurements),
        "count": len(measurements),
        "measurements": [m.to_dict() for m in measurements],
    }

    try:
        return JSONResponse(content=payload)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize measurements for hour {hour}: {e}")
        return JSONResponse(status_code=500, content=ERROR_BODY)


async def _database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error(f"Database error while handling {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=ERROR_BODY)


def create_app(config: Config, database: MeasurementDatabase) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Configuration instance (provides the recording hours)
        database: Store the handlers read from

    Returns:
        FastAPI application
    """
    app = FastAPI(title="Weather Recorder", version=__version__)
    app.state.config = config
    app.state.database = database

    app.include_router(router)
    app.add_exception_handler(DatabaseError, _database_error_handler)

    return app
