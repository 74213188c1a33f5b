"""
Data models for Weather Recorder.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional


@dataclass
class Measurement:
    """
    A single weather sample taken at one of the recording hours.

    At most one Measurement exists per (hour, date) pair.
    """

    # Hour of day (0-23) at which the sample was taken
    hour: int

    # Calendar date, formatted with the configured date format
    date: str

    # Current temperature reported by the provider (Celsius)
    temperature: float

    # Current wind speed reported by the provider (km/h)
    wind_speed: float

    # Row id, assigned by the database on insert
    id: Optional[int] = None

    @classmethod
    def from_api_response(
        cls, data: Dict, when: datetime, date_format: str = "%Y-%m-%d"
    ) -> "Measurement":
        """
        Create a Measurement from an Open-Meteo forecast response.

        Args:
            data: Decoded JSON body containing a ``current_weather`` object
            when: Local time the sample was taken
            date_format: strftime format for the date field

        Returns:
            Measurement instance

        Raises:
            KeyError: If ``current_weather`` or one of its fields is missing
            TypeError, ValueError: If a field is not numeric
        """
        current = data["current_weather"]

        return cls(
            hour=when.hour,
            date=when.strftime(date_format),
            temperature=float(current["temperature"]),
            wind_speed=float(current["windspeed"]),
        )

    def to_dict(self) -> Dict:
        """
        Convert Measurement to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "id": self.id,
            "hour": self.hour,
            "date": self.date,
            "temperature": self.temperature,
            "windspeed": self.wind_speed,
        }


def average_temperature(measurements: Iterable[Measurement]) -> Optional[float]:
    """
    Arithmetic mean of the temperatures, or None if there are no measurements.
    """
    temperatures = [m.temperature for m in measurements]

    if not temperatures:
        return None

    return sum(temperatures) / len(temperatures)


def hourly_averages(
    measurements_by_hour: Mapping[int, List[Measurement]]
) -> Dict[str, Optional[float]]:
    """
    Mean temperature for each hour, keyed by the hour as a string.

    Hours without measurements map to None so they serialize as JSON null.
    """
    return {
        str(hour): average_temperature(measurements)
        for hour, measurements in measurements_by_hour.items()
    }
