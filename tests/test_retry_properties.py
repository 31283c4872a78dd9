"""Property-based tests for retry logic with exponential backoff.

Feature: groups-connector
"""

from unittest.mock import Mock

import pytest
import structlog
from hypothesis import given, settings, strategies as st

from groups_connector.utils.retry import exponential_backoff_retry

log = structlog.stdlib.get_logger()


@given(
    st.integers(min_value=1, max_value=6),
    st.floats(min_value=0.01, max_value=2.0),
)
@settings(max_examples=50, deadline=None)
def test_exponential_backoff_behavior(num_failures: int, base_delay: float):
    """Property: each wait doubles the previous one until max_delay caps it."""
    sleep = Mock()
    call_count = 0

    @exponential_backoff_retry(
        max_retries=num_failures,
        base_delay=base_delay,
        max_delay=10.0,
        exceptions=(ValueError,),
        sleep=sleep,
    )
    def flaky():
        nonlocal call_count
        call_count += 1
        if call_count <= num_failures:
            raise ValueError(f"Simulated failure {call_count}")
        return "success"

    assert flaky() == "success"
    assert call_count == num_failures + 1

    delays = [call.args[0] for call in sleep.call_args_list]
    assert delays == [min(base_delay * (2**i), 10.0) for i in range(num_failures)]


@given(st.integers(min_value=0, max_value=10))
@settings(max_examples=30, deadline=None)
def test_exponential_backoff_max_retries(max_retries: int):
    """Retries stop after max_retries and the last error propagates."""
    sleep = Mock()
    call_count = 0

    @exponential_backoff_retry(
        max_retries=max_retries,
        base_delay=0.01,
        max_delay=1.0,
        exceptions=(ValueError,),
        sleep=sleep,
    )
    def always_failing():
        nonlocal call_count
        call_count += 1
        raise ValueError("Always fails")

    with pytest.raises(ValueError, match="Always fails"):
        always_failing()

    assert call_count == max_retries + 1
    assert sleep.call_count == max_retries


@given(st.floats(min_value=0.0, max_value=100.0))
@settings(max_examples=50, deadline=None)
def test_server_hint_overrides_backoff(hint: float):
    """Property: a hinted wait is used as-is, capped at max_delay."""
    sleep = Mock()
    call_count = 0

    @exponential_backoff_retry(
        max_retries=2,
        base_delay=1.0,
        max_delay=30.0,
        exceptions=(ValueError,),
        sleep=sleep,
        delay_hint=lambda error: hint,
    )
    def throttled_once():
        nonlocal call_count
        call_count += 1
        if call_count == 1:
            raise ValueError("throttled")
        return "ok"

    assert throttled_once() == "ok"
    sleep.assert_called_once_with(min(hint, 30.0))


def test_missing_hint_falls_back_to_backoff():
    sleep = Mock()
    failures = iter([ValueError("first"), ValueError("second")])

    @exponential_backoff_retry(
        max_retries=2,
        base_delay=0.5,
        exceptions=(ValueError,),
        sleep=sleep,
        delay_hint=lambda error: None,
    )
    def flaky():
        error = next(failures, None)
        if error:
            raise error
        return "ok"

    assert flaky() == "ok"
    assert [call.args[0] for call in sleep.call_args_list] == [0.5, 1.0]


def test_unlisted_exceptions_are_not_retried():
    sleep = Mock()

    @exponential_backoff_retry(max_retries=3, exceptions=(ValueError,), sleep=sleep)
    def wrong_kind():
        raise KeyError("nope")

    with pytest.raises(KeyError):
        wrong_kind()

    sleep.assert_not_called()
