"""
Tests for utils module.
"""
from unittest.mock import Mock

import pytest

from weather_recorder.utils import backoff_delay, retry


class TestBackoffDelay:
    """Tests for backoff_delay()."""

    def test_exponential_with_cap(self):
        """Test that delays double per attempt and stop at max_delay."""
        delays = [backoff_delay(attempt, 1.0, 5.0) for attempt in range(1, 6)]
        assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_constant(self):
        """Test constant delays when exponential backoff is off."""
        assert backoff_delay(4, 2.0, 60.0, exponential=False) == 2.0


class TestRetry:
    """Tests for the retry decorator."""

    def test_succeeds_after_failures(self):
        """Test that a call is retried until it succeeds."""
        func = Mock(side_effect=[ValueError("first"), "ok"], __name__="func")
        sleep = Mock()

        assert retry(max_attempts=3, exceptions=(ValueError,), sleep=sleep)(func)() == "ok"
        sleep.assert_called_once_with(1.0)

    def test_unlisted_exception_is_not_retried(self):
        """Test that exceptions outside the tuple propagate immediately."""
        func = Mock(side_effect=KeyError("x"), __name__="func")

        with pytest.raises(KeyError):
            retry(max_attempts=3, exceptions=(ValueError,), sleep=Mock())(func)()

        assert func.call_count == 1

    def test_should_continue_ends_retries(self):
        """Test that should_continue returning False re-raises the last error."""
        func = Mock(side_effect=ValueError("down"), __name__="func")
        answers = iter([True, False])
        sleep = Mock()

        wrapped = retry(
            max_attempts=5,
            exceptions=(ValueError,),
            sleep=sleep,
            should_continue=lambda: next(answers),
        )(func)

        with pytest.raises(ValueError, match="down"):
            wrapped()

        assert func.call_count == 1
        sleep.assert_called_once()
