import pytest

from logoforge.errors import AIResponseError, InputValidationError, RetryExhaustedError
from logoforge.retry import backoff_delay, is_retryable, with_retry


class Flaky:
    def __init__(self, failures, error=None, result="ok"):
        self.failures = failures
        self.error = error or AIResponseError("model returned garbage")
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.result


async def test_succeeds_after_transient_failures(sleep):
    op = Flaky(failures=2)
    assert await with_retry(op, max_attempts=3, base_delay=1.0, sleep=sleep) == "ok"
    assert op.calls == 3
    assert sleep.delays == [1.0, 2.0]


async def test_gives_up_after_max_attempts(sleep):
    op = Flaky(failures=10)
    with pytest.raises(RetryExhaustedError) as info:
        await with_retry(op, max_attempts=3, base_delay=1.0, sleep=sleep, label="Stage A")
    assert op.calls == 3
    assert info.value.attempts == 3
    assert isinstance(info.value.last_error, AIResponseError)
    assert info.value.error_type == "ai_error"
    assert "Stage A failed after 3 attempts" in str(info.value)


async def test_non_retryable_error_raised_after_one_call(sleep):
    op = Flaky(failures=10, error=InputValidationError("Invalid input: brief cannot be empty."))
    with pytest.raises(InputValidationError):
        await with_retry(op, max_attempts=3, sleep=sleep)
    assert op.calls == 1
    assert sleep.delays == []


async def test_plain_error_with_input_message_is_not_retried(sleep):
    op = Flaky(failures=10, error=ValueError("Required field missing: brand_name"))
    with pytest.raises(ValueError):
        await with_retry(op, max_attempts=3, sleep=sleep)
    assert op.calls == 1


async def test_delays_are_capped(sleep):
    op = Flaky(failures=10)
    with pytest.raises(RetryExhaustedError):
        await with_retry(op, max_attempts=6, base_delay=3.0, max_delay=10.0, sleep=sleep)
    assert sleep.delays == [3.0, 6.0, 10.0, 10.0, 10.0]


@pytest.mark.parametrize("attempts,delay", [(0, 1.0), (3, -1.0)])
async def test_rejects_bad_arguments(attempts, delay, sleep):
    with pytest.raises(ValueError):
        await with_retry(Flaky(0), max_attempts=attempts, base_delay=delay, sleep=sleep)


def test_backoff_delay():
    assert backoff_delay(1, 1.0) == 1.0
    assert backoff_delay(3, 1.0) == 4.0
    assert backoff_delay(10, 1.0) == 10.0


def test_is_retryable():
    assert is_retryable(AIResponseError("bad json"))
    assert is_retryable(RuntimeError("503 UNAVAILABLE"))
    assert not is_retryable(InputValidationError("nope"))
    assert not is_retryable(ValueError("brief cannot be empty"))
