"""
Tests for the retry policy.
"""

from __future__ import annotations

import pytest

from imagecache.services.retry_policy import DEFAULT_MAX_RETRY, RetryPolicy


class TestRetryPolicy:
    """Tests for RetryPolicy decisions."""

    def test_delay_values(self) -> None:
        assert RetryPolicy.delay_seconds(1) == 60
        assert RetryPolicy.delay_seconds(2) == 960
        assert RetryPolicy.delay_seconds(10) == 600_000

    def test_delay_strictly_increasing(self) -> None:
        delays = [RetryPolicy.delay_seconds(n) for n in range(1, 12)]
        assert delays == sorted(delays)
        assert len(set(delays)) == len(delays)

    def test_default_ceiling(self) -> None:
        policy = RetryPolicy()
        assert policy.max_retry == DEFAULT_MAX_RETRY == 10
        assert policy.is_abandoned(10) is False
        assert policy.is_abandoned(11) is True

    def test_negative_ceiling_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetryPolicy(-1)

    @pytest.mark.parametrize(
        ("count", "elapsed", "due"),
        [
            (1, 60, False),
            (1, 61, True),
            (2, 900, False),
            (2, 961, True),
            (10, 600_000, False),
            (10, 600_001, True),
        ],
    )
    def test_is_due(self, count: int, elapsed: int, due: bool) -> None:
        policy = RetryPolicy()
        assert policy.is_due(count, last_attempt=1_000, now=1_000 + elapsed) is due

    def test_abandoned_never_due(self) -> None:
        policy = RetryPolicy(max_retry=10)
        assert policy.is_due(11, last_attempt=0, now=10**9) is False
