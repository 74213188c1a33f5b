"""
Utility functions for Weather Recorder.
"""
import logging
import time
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Type


def setup_logging(log_file: str, log_level: str = "INFO", log_format: Optional[str] = None) -> None:
    """
    Setup logging configuration with file and console handlers.

    Args:
        log_file: Path to log file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log message format string
    """
    if log_format is None:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    level = getattr(logging, log_level.upper(), logging.INFO)

    # Create logs directory if it doesn't exist
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Configure root logger
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    # File handler
    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)


def backoff_delay(attempt: int, base_delay: float, max_delay: float, exponential: bool = True) -> float:
    """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
    if not exponential:
        return min(base_delay, max_delay)
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    sleep: Callable[[float], object] = time.sleep,
    should_continue: Optional[Callable[[], bool]] = None,
) -> Callable:
    """
    Decorator to retry a function on failure with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential: If True, use exponential backoff; otherwise use constant delay
        exceptions: Tuple of exception types to catch and retry
        sleep: Function used to wait between attempts
        should_continue: Checked before and after each wait; once it returns
            False the last error is re-raised without further attempts

    Returns:
        Decorated function

    Example:
        @retry(max_attempts=3, base_delay=1, exceptions=(WeatherAPIError,))
        def fetch():
            return client.get_current_weather()
    """
    def keep_going() -> bool:
        return should_continue is None or should_continue()

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__)

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts: {e}"
                        )
                        raise

                    if not keep_going():
                        logger.warning(f"{func.__name__} failed while stopping, not retrying: {e}")
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, exponential)
                    logger.warning(
                        f"{func.__name__} failed (attempt {attempt}/{max_attempts}), "
                        f"retrying in {delay:.1f}s: {e}"
                    )
                    sleep(delay)

                    if not keep_going():
                        logger.warning(f"Stopped during backoff, giving up on {func.__name__}")
                        raise

            return None  # Should never reach here

        return wrapper
    return decorator
