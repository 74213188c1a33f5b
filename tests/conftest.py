"""
Shared fixtures for Weather Recorder tests.
"""
import pytest

from weather_recorder.config import Config
from weather_recorder.database import MeasurementDatabase


@pytest.fixture
def config(tmp_path):
    """Configuration with the recording hours used throughout the tests."""
    return Config({
        "poller": {
            "recording_hours": [10, 15, 21],
            "sleep_interval": 600,
            "idle_interval": 30,
        },
        "database": {"path": str(tmp_path / "weather.db")},
        "logging": {"file": str(tmp_path / "weather_recorder.log")},
    })


@pytest.fixture
def db(config):
    """Create a test database."""
    database = MeasurementDatabase(config.get("database.path"))
    database.initialize_schema()
    return database
