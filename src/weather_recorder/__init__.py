"""
Weather Recorder - hourly Open-Meteo sampling with an averaging HTTP API.

Records the current weather at a fixed set of hours each day, stores the
readings in SQLite and serves the mean temperature per hour over HTTP.
"""

__version__ = "0.1.0"

from .alerting import WebhookAlerter
from .api_client import OpenMeteoClient, ResponseDecodeError, WeatherAPIError
from .config import Config, ConfigError
from .database import DatabaseError, MeasurementDatabase
from .models import Measurement
from .poller import HourlyPoller, PollerError

__all__ = [
    "WebhookAlerter",
    "OpenMeteoClient",
    "ResponseDecodeError",
    "WeatherAPIError",
    "Config",
    "ConfigError",
    "MeasurementDatabase",
    "DatabaseError",
    "Measurement",
    "HourlyPoller",
    "PollerError",
]
