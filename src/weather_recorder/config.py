"""
Configuration management for Weather Recorder.
Supports loading from YAML files and environment variables.
"""
import copy
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


DEFAULTS: Dict[str, Any] = {
    "weather": {
        "latitude": 48.135125,
        "longitude": 11.581981,
        "api_url": "https://api.open-meteo.com/v1/forecast",
        "timeout": 10,
    },
    "poller": {
        "recording_hours": [10, 15, 21],
        "sleep_interval": 600,
        "idle_interval": 30,
        "date_format": "%Y-%m-%d",
        "failure_policy": "exit",
        "max_attempts": 3,
        "retry_base_delay": 1.0,
        "retry_max_delay": 60.0,
    },
    "alerting": {
        "webhook_url": "",
        "timeout": 10,
    },
    "server": {
        "host": "0.0.0.0",
        "port": 80,
    },
    "database": {
        "path": "data/weather.db",
    },
    "logging": {
        "level": "INFO",
        "file": "logs/weather_recorder.log",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    },
}

FAILURE_POLICIES = ("exit", "retry")


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` on top of a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration manager for Weather Recorder."""

    def __init__(self, config_dict: Dict[str, Any]):
        """
        Initialize Config with a dictionary.

        Missing sections and keys fall back to the built-in defaults.

        Args:
            config_dict: Configuration dictionary
        """
        if not isinstance(config_dict, dict):
            raise ConfigError("Configuration must be a mapping")

        for section, value in config_dict.items():
            if section in DEFAULTS and not isinstance(value, dict):
                raise ConfigError(f"Section '{section}' must be a mapping, got {value!r}")

        self._config = _merge(DEFAULTS, config_dict)
        self.validate()

    @classmethod
    def load_from_file(cls, path: str = "config.yaml") -> "Config":
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        config_path = Path(path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            with open(config_path, 'r') as f:
                config_dict = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML configuration: {e}") from e
        except IOError as e:
            raise ConfigError(f"Failed to read configuration file: {e}") from e

        if config_dict is None:
            raise ConfigError(f"Configuration file is empty: {path}")

        return cls(config_dict)

    @classmethod
    def load_from_env(cls) -> "Config":
        """
        Load configuration from environment variables.

        Environment variables should be prefixed with WEATHER_RECORDER_
        and use underscores for nested keys.

        Example:
            WEATHER_RECORDER_POLLER_RECORDING_HOURS=10,15,21
            WEATHER_RECORDER_ALERTING_WEBHOOK_URL=https://discord.com/api/webhooks/...

        Returns:
            Config instance
        """
        config_dict: Dict[str, Any] = {
            "weather": {},
            "poller": {},
            "alerting": {},
            "server": {},
            "database": {},
            "logging": {},
        }

        try:
            # Weather provider settings
            if latitude := os.getenv("WEATHER_RECORDER_WEATHER_LATITUDE"):
                config_dict["weather"]["latitude"] = float(latitude)
            if longitude := os.getenv("WEATHER_RECORDER_WEATHER_LONGITUDE"):
                config_dict["weather"]["longitude"] = float(longitude)
            if api_url := os.getenv("WEATHER_RECORDER_WEATHER_API_URL"):
                config_dict["weather"]["api_url"] = api_url

            # Poller settings
            if hours := os.getenv("WEATHER_RECORDER_POLLER_RECORDING_HOURS"):
                config_dict["poller"]["recording_hours"] = [
                    int(h) for h in hours.split(",") if h.strip()
                ]
            if interval := os.getenv("WEATHER_RECORDER_POLLER_SLEEP_INTERVAL"):
                config_dict["poller"]["sleep_interval"] = float(interval)
            if idle := os.getenv("WEATHER_RECORDER_POLLER_IDLE_INTERVAL"):
                config_dict["poller"]["idle_interval"] = float(idle)
            if date_format := os.getenv("WEATHER_RECORDER_POLLER_DATE_FORMAT"):
                config_dict["poller"]["date_format"] = date_format
            if policy := os.getenv("WEATHER_RECORDER_POLLER_FAILURE_POLICY"):
                config_dict["poller"]["failure_policy"] = policy
            if attempts := os.getenv("WEATHER_RECORDER_POLLER_MAX_ATTEMPTS"):
                config_dict["poller"]["max_attempts"] = int(attempts)

            # Alerting settings
            if webhook := os.getenv("WEATHER_RECORDER_ALERTING_WEBHOOK_URL"):
                config_dict["alerting"]["webhook_url"] = webhook

            # Server settings
            if host := os.getenv("WEATHER_RECORDER_SERVER_HOST"):
                config_dict["server"]["host"] = host
            if port := os.getenv("WEATHER_RECORDER_SERVER_PORT"):
                config_dict["server"]["port"] = int(port)
        except ValueError as e:
            raise ConfigError(f"Invalid value in environment: {e}") from e

        # Database settings
        if db_path := os.getenv("WEATHER_RECORDER_DATABASE_PATH"):
            config_dict["database"]["path"] = db_path

        # Logging settings
        if log_level := os.getenv("WEATHER_RECORDER_LOGGING_LEVEL"):
            config_dict["logging"]["level"] = log_level
        if log_file := os.getenv("WEATHER_RECORDER_LOGGING_FILE"):
            config_dict["logging"]["file"] = log_file
        if log_format := os.getenv("WEATHER_RECORDER_LOGGING_FORMAT"):
            config_dict["logging"]["format"] = log_format

        return cls(config_dict)

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigError: If any required field is missing or invalid
        """
        # Validate weather section
        weather = self._config["weather"]

        latitude = weather.get("latitude")
        if not self._is_number(latitude) or not -90 <= latitude <= 90:
            raise ConfigError(f"Invalid latitude: {latitude}")

        longitude = weather.get("longitude")
        if not self._is_number(longitude) or not -180 <= longitude <= 180:
            raise ConfigError(f"Invalid longitude: {longitude}")

        if not weather.get("api_url"):
            raise ConfigError("Missing required field: weather.api_url")

        # Validate poller section
        poller = self._config["poller"]

        hours = poller.get("recording_hours")
        if not self._is_valid_hour_list(hours):
            raise ConfigError(
                f"recording_hours must be a non-empty list of distinct hours 0-23, got {hours}"
            )

        sleep_interval = poller.get("sleep_interval")
        if not self._is_number(sleep_interval) or sleep_interval <= 0:
            raise ConfigError("sleep_interval must be a number > 0 seconds")

        idle_interval = poller.get("idle_interval")
        if not self._is_number(idle_interval) or idle_interval < 0:
            raise ConfigError("idle_interval must be a number >= 0 seconds")

        if not poller.get("date_format"):
            raise ConfigError("Missing required field: poller.date_format")

        policy = poller.get("failure_policy")
        if policy not in FAILURE_POLICIES:
            raise ConfigError(
                f"Invalid failure_policy: {policy}. Must be one of {list(FAILURE_POLICIES)}"
            )

        max_attempts = poller.get("max_attempts")
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
            raise ConfigError("max_attempts must be an integer >= 1")

        for key in ("retry_base_delay", "retry_max_delay"):
            if not self._is_number(poller.get(key)) or poller[key] < 0:
                raise ConfigError(f"{key} must be a number >= 0 seconds")

        # Validate server section
        port = self._config["server"].get("port")
        if not isinstance(port, int) or isinstance(port, bool) or not 1 <= port <= 65535:
            raise ConfigError(f"Invalid server port: {port}")

        # Validate database section
        if not self._config["database"].get("path"):
            raise ConfigError("Missing required field: database.path")

        # Validate logging section
        log_level = self._config["logging"].get("level", "INFO")
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(log_level).upper() not in valid_levels:
            raise ConfigError(f"Invalid log level: {log_level}. Must be one of {valid_levels}")

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    @staticmethod
    def _is_valid_hour_list(hours: Any) -> bool:
        """
        Validate a list of recording hours.

        Args:
            hours: Candidate value from configuration

        Returns:
            True if hours is a non-empty list of distinct integers in 0-23
        """
        if not isinstance(hours, list) or not hours:
            return False

        for hour in hours:
            if not isinstance(hour, int) or isinstance(hour, bool) or not 0 <= hour <= 23:
                return False

        return len(set(hours)) == len(hours)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation.

        Args:
            key: Configuration key (e.g., 'poller.recording_hours')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    @property
    def recording_hours(self) -> List[int]:
        """Configured recording hours, in configured order."""
        return list(self._config["poller"]["recording_hours"])

    def get_poller_config(self) -> Dict[str, Any]:
        """Get poller configuration section."""
        return self._config["poller"]

    def get_server_config(self) -> Dict[str, Any]:
        """Get server configuration section."""
        return self._config["server"]

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration section."""
        return self._config["logging"]

    def to_dict(self, sanitize: bool = True) -> Dict[str, Any]:
        """
        Export configuration as dictionary.

        Args:
            sanitize: If True, redact sensitive values (webhook URL)

        Returns:
            Configuration dictionary
        """
        exported = copy.deepcopy(self._config)

        if sanitize and exported["alerting"].get("webhook_url"):
            exported["alerting"]["webhook_url"] = "***REDACTED***"

        return exported
