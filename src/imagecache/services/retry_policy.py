"""
Retry scheduling for failed fetches.

The wait grows with the fourth power of the failure count, measured from
the stored ``log_time`` (the first failure), so ten attempts span about a
week: 1 min, 16 min, 1.3 h, 4.2 h, 10.5 h, 21.6 h, 40 h, 2.8 d, 4.5 d, 1 wk.
"""

from __future__ import annotations

DEFAULT_MAX_RETRY = 10


class RetryPolicy:
    """Pure decision logic for retrying failed fetches.

    Parameters
    ----------
    max_retry : int
        Failure count above which an entry is permanently abandoned.
    """

    def __init__(self, max_retry: int = DEFAULT_MAX_RETRY) -> None:
        if max_retry < 0:
            raise ValueError("max_retry must be non-negative")
        self.max_retry = max_retry

    @staticmethod
    def delay_seconds(failure_count: int) -> int:
        """Seconds to wait after ``failure_count`` failures."""
        return failure_count**4 * 60

    def is_abandoned(self, failure_count: int) -> bool:
        """Whether the entry has exceeded the retry ceiling."""
        return failure_count > self.max_retry

    def is_due(self, failure_count: int, last_attempt: int, now: int) -> bool:
        """Whether a retry may be attempted at ``now``."""
        if self.is_abandoned(failure_count):
            return False
        return (now - last_attempt) > self.delay_seconds(failure_count)
