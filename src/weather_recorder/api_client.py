"""
Open-Meteo API client.
"""
import logging
from datetime import datetime
from typing import Dict

import requests

from .config import Config
from .models import Measurement


logger = logging.getLogger(__name__)


class WeatherAPIError(Exception):
    """Base exception for weather provider errors."""
    pass


class ResponseDecodeError(WeatherAPIError):
    """Raised when the provider response cannot be decoded into a reading."""
    pass


class OpenMeteoClient:
    """
    Client for the Open-Meteo forecast API.

    Fetches the current weather for a fixed latitude/longitude.
    API Documentation: https://open-meteo.com/en/docs
    """

    BASE_URL = "https://api.open-meteo.com/v1/forecast"

    def __init__(
        self,
        latitude: float,
        longitude: float,
        base_url: str = BASE_URL,
        timeout: float = 10,
    ):
        """
        Initialize Open-Meteo API client.

        Args:
            latitude: Latitude of the tracked location
            longitude: Longitude of the tracked location
            base_url: Forecast endpoint URL
            timeout: Request timeout in seconds
        """
        self.latitude = latitude
        self.longitude = longitude
        self.base_url = base_url
        self.timeout = timeout
        self.session = requests.Session()

        logger.info(f"Initialized Open-Meteo client for ({latitude}, {longitude})")

    @classmethod
    def from_config(cls, config: Config) -> "OpenMeteoClient":
        """Build a client from the ``weather`` configuration section."""
        return cls(
            latitude=config.get("weather.latitude"),
            longitude=config.get("weather.longitude"),
            base_url=config.get("weather.api_url"),
            timeout=config.get("weather.timeout"),
        )

    def get_current_weather(self) -> Dict:
        """
        Fetch the current weather for the configured location.

        Returns:
            Decoded JSON response

        Raises:
            WeatherAPIError: If the request fails or returns a non-200 status
            ResponseDecodeError: If the body is not valid JSON
        """
        params = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "current_weather": "true",
            "timezone": "auto",
        }

        logger.debug(f"Requesting current weather from {self.base_url}")

        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.Timeout as e:
            logger.error(f"Request timed out after {self.timeout}s")
            raise WeatherAPIError(f"Request timed out after {self.timeout}s") from e
        except requests.ConnectionError as e:
            logger.error(f"Connection error while accessing {self.base_url}: {e}")
            raise WeatherAPIError(f"Connection error: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise WeatherAPIError(f"Request failed: {e}") from e

        if response.status_code != 200:
            raise WeatherAPIError(
                f"API request failed with status {response.status_code}: {response.text}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise ResponseDecodeError(f"Invalid JSON in response: {e}") from e

    def get_latest_measurement(
        self, when: datetime, date_format: str = "%Y-%m-%d"
    ) -> Measurement:
        """
        Fetch the current weather and turn it into a Measurement.

        Args:
            when: Local time the sample is taken, used for hour and date
            date_format: strftime format for the date field

        Returns:
            Measurement instance (not yet stored)

        Raises:
            WeatherAPIError: If the request fails
            ResponseDecodeError: If the response lacks current_weather data
        """
        data = self.get_current_weather()

        try:
            measurement = Measurement.from_api_response(data, when, date_format)
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Malformed current_weather data: {e!r}") from e

        logger.info(
            f"Fetched reading for {measurement.date} {measurement.hour:02d}h: "
            f"temp={measurement.temperature}, wind={measurement.wind_speed}"
        )
        return measurement

    def __repr__(self) -> str:
        return f"OpenMeteoClient(latitude={self.latitude}, longitude={self.longitude})"
