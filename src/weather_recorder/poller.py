"""
Hourly polling loop that records one weather sample per recording hour.
"""
import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from .alerting import WebhookAlerter
from .api_client import OpenMeteoClient, WeatherAPIError
from .config import Config
from .database import DatabaseError, MeasurementDatabase
from .utils import retry


logger = logging.getLogger(__name__)

# Errors raised while handling a recording slot
SLOT_ERRORS = (WeatherAPIError, DatabaseError)


class PollerError(Exception):
    """Raised when the poller gives up after an unrecoverable error."""
    pass


class HourlyPoller:
    """
    Samples the weather provider once per configured recording hour.

    Each pass reads the clock. If the hour is a recording hour and no sample
    exists yet for (hour, date), the current reading is fetched and stored.
    Failures are reported to the alerter and then handled by the configured
    failure policy: ``exit`` stops the poller immediately, ``retry`` backs off
    and tries again before stopping.
    """

    def __init__(
        self,
        config: Config,
        database: MeasurementDatabase,
        client: OpenMeteoClient,
        alerter: WebhookAlerter,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Optional[Callable[[float], object]] = None,
    ):
        """
        Initialize the poller.

        Args:
            config: Configuration instance
            database: Store the samples are written to
            client: Weather provider client
            alerter: Receives a notification for every fatal error
            clock: Returns the current local time
            sleep: Waits for the given number of seconds (defaults to an
                interruptible wait that ends early on stop())
        """
        poller_config = config.get_poller_config()

        self.database = database
        self.client = client
        self.alerter = alerter
        self.clock = clock

        self.recording_hours = frozenset(config.recording_hours)
        self.sleep_interval = poller_config["sleep_interval"]
        self.idle_interval = poller_config["idle_interval"]
        self.date_format = poller_config["date_format"]
        self.failure_policy = poller_config["failure_policy"]

        self._stop_event = threading.Event()
        self.sleep = sleep if sleep is not None else self._stop_event.wait
        self.running = False

        # Statistics
        self.recorded_count = 0
        self.skipped_count = 0

        if self.failure_policy == "retry":
            self._handle_slot = retry(
                max_attempts=poller_config["max_attempts"],
                base_delay=poller_config["retry_base_delay"],
                max_delay=poller_config["retry_max_delay"],
                exceptions=SLOT_ERRORS,
                sleep=self.sleep,
                should_continue=lambda: not self._stop_event.is_set(),
            )(self._record_slot)
        else:
            self._handle_slot = self._record_slot

        logger.info(
            f"Poller initialized: hours={sorted(self.recording_hours)}, "
            f"policy={self.failure_policy}"
        )

    def check_once(self) -> bool:
        """
        Run a single pass of the polling loop.

        Returns:
            True if the current hour is a recording hour, False otherwise

        Raises:
            PollerError: If the slot could not be handled
        """
        now = self.clock()

        if now.hour not in self.recording_hours:
            return False

        try:
            self._handle_slot(now)
        except SLOT_ERRORS as e:
            logger.error(f"Failed to record measurement for {now:%Y-%m-%d %H}h: {e}")
            self.alerter.notify(e)
            raise PollerError(f"Failed to record measurement: {e}") from e

        return True

    def _record_slot(self, now: datetime) -> None:
        date = now.strftime(self.date_format)

        if self.database.find_measurement(now.hour, date) is not None:
            self.skipped_count += 1
            logger.debug(f"Measurement for {date} {now.hour}h already stored")
            return

        measurement = self.client.get_latest_measurement(now, self.date_format)
        row_id = self.database.insert_measurement(measurement)

        if row_id is None:
            self.skipped_count += 1
            logger.warning(f"Measurement for {date} {now.hour}h was stored concurrently")
        else:
            self.recorded_count += 1
            logger.info(f"Record saved (row ID: {row_id}) for {date} {now.hour}h")

    def run(self) -> None:
        """
        Run the polling loop until stop() is called.

        Raises:
            PollerError: If a recording slot fails and the policy gives up
        """
        self.running = True
        self._stop_event.clear()
        logger.info("Poller started")

        try:
            while self.running:
                matched = self.check_once()
                delay = self.sleep_interval if matched else self.idle_interval

                if delay > 0 and self.running:
                    self.sleep(delay)
        finally:
            self.running = False
            logger.info(
                f"Poller stopped (recorded={self.recorded_count}, "
                f"already present={self.skipped_count})"
            )

    def stop(self) -> None:
        """Ask the polling loop to exit after the current pass."""
        self.running = False
        self._stop_event.set()
