"""
Tests for the retry policy.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from plrecon.utils.retry import RetryPolicy


class Flaky:
    def __init__(self, failures, error=ValueError):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error(f"failure {self.calls}")
        return "ok"


def test_success_needs_no_retry():
    fn = Flaky(failures=0)
    waits = []
    assert RetryPolicy().call(fn, sleep=waits.append) == "ok"
    assert fn.calls == 1
    assert waits == []


def test_single_retry_after_fixed_delay():
    fn = Flaky(failures=1)
    waits = []
    result = RetryPolicy(max_attempts=2, delay_seconds=1.5).call(fn, sleep=waits.append)

    assert result == "ok"
    assert fn.calls == 2
    assert waits == [1.5]


def test_last_error_is_raised_when_exhausted():
    fn = Flaky(failures=5)
    with pytest.raises(ValueError, match="failure 2"):
        RetryPolicy(max_attempts=2, delay_seconds=0).call(fn, sleep=lambda s: None)
    assert fn.calls == 2


def test_unlisted_errors_are_not_retried():
    fn = Flaky(failures=1, error=KeyError)
    with pytest.raises(KeyError):
        RetryPolicy(max_attempts=3).call(fn, retry_on=(ValueError,), sleep=lambda s: None)
    assert fn.calls == 1


def test_backoff_grows_delay():
    policy = RetryPolicy(max_attempts=4, delay_seconds=1.0, backoff=2.0)
    assert [policy.delay_for(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]


def test_on_retry_hook_sees_each_failure():
    seen = []
    RetryPolicy(max_attempts=3, delay_seconds=0).call(
        Flaky(failures=2),
        sleep=lambda s: None,
        on_retry=lambda attempt, error: seen.append((attempt, str(error))),
    )
    assert seen == [(1, "failure 1"), (2, "failure 2")]


def test_policy_rejects_zero_attempts():
    with pytest.raises(PydanticValidationError):
        RetryPolicy(max_attempts=0)


def test_defaults_come_from_config():
    policy = RetryPolicy.from_config()
    assert policy.max_attempts == 2
    assert policy.delay_seconds == 0.0
