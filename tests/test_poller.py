"""
Tests for poller module.
"""
from datetime import datetime
from unittest.mock import Mock

import pytest

from weather_recorder.api_client import WeatherAPIError
from weather_recorder.config import Config
from weather_recorder.database import DatabaseError
from weather_recorder.models import Measurement
from weather_recorder.poller import HourlyPoller, PollerError


class FakeClient:
    """Weather client returning fixed readings and counting calls."""

    def __init__(self, temperature=20.0, error=None):
        self.temperature = temperature
        self.error = error
        self.calls = 0

    def get_latest_measurement(self, when, date_format="%Y-%m-%d"):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return Measurement(
            hour=when.hour,
            date=when.strftime(date_format),
            temperature=self.temperature,
            wind_speed=4.0,
        )


class TestHourlyPoller:
    """Tests for HourlyPoller class."""

    @pytest.fixture
    def alerter(self):
        return Mock()

    @pytest.fixture
    def client(self):
        return FakeClient()

    def make_poller(self, config, db, client, alerter, now, sleep=None):
        return HourlyPoller(
            config, db, client, alerter,
            clock=lambda: now,
            sleep=sleep or Mock(),
        )

    @pytest.mark.parametrize("hour", [h for h in range(24) if h not in (10, 15, 21)])
    def test_non_recording_hours_create_nothing(self, config, db, client, alerter, hour):
        """Test that no record is created outside the recording hours."""
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, hour, 30))

        assert poller.check_once() is False
        assert client.calls == 0
        assert db.get_record_count() == 0

    def test_recording_hour_creates_record(self, config, db, client, alerter):
        """Test that a recording hour without a sample stores one."""
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 2))

        assert poller.check_once() is True

        stored = db.find_measurement(10, "2024-01-01")
        assert stored is not None
        assert stored.temperature == 20.0
        assert client.calls == 1
        assert poller.recorded_count == 1

    def test_existing_record_is_not_fetched_again(self, config, db, client, alerter):
        """Test that an (hour, date) with a record is never fetched again."""
        db.insert_measurement(Measurement(hour=15, date="2024-01-01", temperature=18.0, wind_speed=2.0))
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 15, 40))

        assert poller.check_once() is True
        assert poller.check_once() is True

        assert client.calls == 0
        assert db.get_record_count() == 1
        assert poller.skipped_count == 2

    def test_new_day_records_again(self, config, db, client, alerter):
        """Test that the same hour on a new date gets its own record."""
        db.insert_measurement(Measurement(hour=10, date="2024-01-01", temperature=18.0, wind_speed=2.0))
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 2, 10, 0))

        poller.check_once()

        assert client.calls == 1
        assert db.get_record_count(10) == 2

    def test_fetch_error_alerts_and_exits(self, config, db, alerter):
        """Test that a provider error is alerted and stops the poller."""
        error = WeatherAPIError("API request failed with status 500")
        client = FakeClient(error=error)
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 21, 0))

        with pytest.raises(PollerError, match="status 500"):
            poller.check_once()

        alerter.notify.assert_called_once_with(error)
        assert db.get_record_count() == 0

    def test_lookup_error_is_not_treated_as_missing(self, config, db, client, alerter):
        """Test that a failed lookup does not trigger a fetch."""
        db.find_measurement = Mock(side_effect=DatabaseError("disk I/O error"))
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 0))

        with pytest.raises(PollerError):
            poller.check_once()

        assert client.calls == 0
        alerter.notify.assert_called_once()

    def test_retry_policy_recovers(self, tmp_path, db, alerter):
        """Test that the retry policy backs off and then records."""
        config = Config({
            "poller": {"failure_policy": "retry", "max_attempts": 3, "retry_base_delay": 2.0},
            "database": {"path": str(tmp_path / "weather.db")},
        })
        client = FakeClient()
        original = client.get_latest_measurement
        outcomes = [WeatherAPIError("timeout"), None]

        def flaky(when, date_format="%Y-%m-%d"):
            outcome = outcomes.pop(0) if outcomes else None
            if outcome is not None:
                raise outcome
            return original(when, date_format)

        client.get_latest_measurement = flaky
        sleep = Mock()
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 0), sleep=sleep)

        assert poller.check_once() is True

        sleep.assert_called_once_with(2.0)
        alerter.notify.assert_not_called()
        assert db.get_record_count() == 1

    def test_retry_policy_gives_up(self, tmp_path, db, alerter):
        """Test that the retry policy alerts and exits after the last attempt."""
        config = Config({
            "poller": {"failure_policy": "retry", "max_attempts": 3, "retry_base_delay": 1.0},
            "database": {"path": str(tmp_path / "weather.db")},
        })
        client = FakeClient(error=WeatherAPIError("down"))
        sleep = Mock()
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 0), sleep=sleep)

        with pytest.raises(PollerError):
            poller.check_once()

        assert client.calls == 3
        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0]
        alerter.notify.assert_called_once()

    def test_run_sleeps_per_outcome(self, config, db, client, alerter):
        """Test the loop sleeps long after a recording hour and briefly otherwise."""
        times = iter([
            datetime(2024, 1, 1, 9, 59),
            datetime(2024, 1, 1, 10, 0),
            datetime(2024, 1, 1, 10, 10),
        ])
        sleeps = []
        poller = None

        def sleep(seconds):
            sleeps.append(seconds)
            if len(sleeps) == 3:
                poller.stop()

        poller = HourlyPoller(config, db, client, alerter, clock=lambda: next(times), sleep=sleep)
        poller.run()

        assert sleeps == [30, 600, 600]
        assert client.calls == 1
        assert db.get_record_count() == 1
        assert poller.running is False

    def test_run_propagates_fatal_error(self, config, db, alerter):
        """Test that run() stops with PollerError on a fatal failure."""
        client = FakeClient(error=DatabaseError("readonly database"))
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 15, 0))

        with pytest.raises(PollerError):
            poller.run()

        assert poller.running is False

    def test_run_busy_polls_without_idle_interval(self, tmp_path, db, client, alerter):
        """Test that idle_interval 0 never sleeps outside the recording hours."""
        config = Config({
            "poller": {"idle_interval": 0, "sleep_interval": 600},
            "database": {"path": str(tmp_path / "weather.db")},
        })
        times = iter([
            datetime(2024, 1, 1, 9, 59, 57),
            datetime(2024, 1, 1, 9, 59, 58),
            datetime(2024, 1, 1, 9, 59, 59),
            datetime(2024, 1, 1, 10, 0, 0),
        ])
        poller = None

        def stop_after_sleep(seconds):
            poller.stop()

        sleep = Mock(side_effect=stop_after_sleep)
        poller = HourlyPoller(config, db, client, alerter, clock=lambda: next(times), sleep=sleep)
        poller.run()

        sleep.assert_called_once_with(600)
        assert client.calls == 1
        assert db.get_record_count(10) == 1

    def test_retry_policy_stops_backoff_on_shutdown(self, tmp_path, db, alerter):
        """Test that stopping the poller during backoff ends the remaining attempts."""
        config = Config({
            "poller": {"failure_policy": "retry", "max_attempts": 5, "retry_base_delay": 1.0},
            "database": {"path": str(tmp_path / "weather.db")},
        })
        client = FakeClient(error=WeatherAPIError("down"))
        poller = None

        def stop_during_backoff(seconds):
            poller.stop()

        sleep = Mock(side_effect=stop_during_backoff)
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 0), sleep=sleep)

        with pytest.raises(PollerError):
            poller.check_once()

        assert client.calls == 1
        sleep.assert_called_once_with(1.0)
        alerter.notify.assert_called_once()

    def test_retry_policy_after_stop_does_not_retry(self, tmp_path, db, alerter):
        """Test that a failure after stop() is not retried at all."""
        config = Config({
            "poller": {"failure_policy": "retry", "max_attempts": 3},
            "database": {"path": str(tmp_path / "weather.db")},
        })
        client = FakeClient(error=WeatherAPIError("down"))
        sleep = Mock()
        poller = self.make_poller(config, db, client, alerter, datetime(2024, 1, 1, 10, 0), sleep=sleep)
        poller.stop()

        with pytest.raises(PollerError):
            poller.check_once()

        assert client.calls == 1
        sleep.assert_not_called()
