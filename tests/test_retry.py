"""Retry policy and caller tests."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from genroute.errors import APIError, ConfigurationError, CredentialError
from genroute.retry import (
    AsyncCaller,
    RetryPolicy,
    _compute_backoff_delay,
    retry_async,
    should_retry_generate,
)
from genroute.types import CallOptions

pytestmark = pytest.mark.unit

_FAST = RetryPolicy(max_attempts=3, initial_delay_s=0, jitter=False)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"initial_delay_s": -1},
        {"backoff_multiplier": 0},
        {"max_delay_s": -1},
        {"max_elapsed_s": -1},
    ],
)
def test_policy_rejects_invalid_bounds(kwargs: dict[str, float]) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_backoff_grows_and_caps_without_jitter() -> None:
    policy = RetryPolicy(initial_delay_s=1, backoff_multiplier=2, max_delay_s=3, jitter=False)
    delays = [_compute_backoff_delay(policy, retry_index=i) for i in (1, 2, 3)]
    assert delays == [1, 2, 3]


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (APIError("x", retryable=True), True),
        (APIError("x", status_code=503), True),
        (APIError("x", status_code=400), False),
        (httpx.ReadTimeout("slow"), True),
        (TimeoutError(), True),
        (ConfigurationError("bad model"), False),
        (CredentialError("no project"), False),
        (ValueError("schema"), False),
        (asyncio.CancelledError(), False),
    ],
)
def test_should_retry_generate(exc: BaseException, expected: bool) -> None:
    assert should_retry_generate(exc) is expected


@pytest.mark.asyncio
async def test_retry_async_retries_until_success() -> None:
    calls = 0

    async def flaky() -> str:
        nonlocal calls
        calls += 1
        if calls < 3:
            raise APIError("busy", status_code=503)
        return "ok"

    assert await retry_async(flaky, policy=_FAST) == "ok"
    assert calls == 3


@pytest.mark.asyncio
async def test_retry_async_does_not_retry_fatal_errors() -> None:
    calls = 0

    async def fatal() -> str:
        nonlocal calls
        calls += 1
        raise ConfigurationError("Unknown model family: None")

    with pytest.raises(ConfigurationError):
        await retry_async(fatal, policy=_FAST)
    assert calls == 1


@pytest.mark.asyncio
async def test_retry_async_raises_last_error_when_exhausted() -> None:
    errors = [APIError("a", status_code=503), APIError("b", status_code=503)]

    async def always() -> str:
        raise errors.pop(0)

    with pytest.raises(APIError, match="b"):
        await retry_async(always, policy=RetryPolicy(max_attempts=2, initial_delay_s=0))


@pytest.mark.asyncio
async def test_caller_without_signal_runs_attempt() -> None:
    async def attempt() -> int:
        return 7

    assert await AsyncCaller(_FAST).call_with_options(None, attempt) == 7
    assert await AsyncCaller(_FAST).call_with_options(CallOptions(), attempt) == 7


@pytest.mark.asyncio
async def test_caller_with_unset_signal_returns_result() -> None:
    async def attempt() -> str:
        await asyncio.sleep(0)
        return "done"

    options = CallOptions(signal=asyncio.Event())
    assert await AsyncCaller(_FAST).call_with_options(options, attempt) == "done"


@pytest.mark.asyncio
async def test_signal_stops_further_retries() -> None:
    signal = asyncio.Event()
    calls = 0

    async def attempt() -> str:
        nonlocal calls
        calls += 1
        signal.set()
        raise APIError("busy", status_code=503)

    with pytest.raises(asyncio.CancelledError):
        await AsyncCaller(_FAST).call_with_options(CallOptions(signal=signal), attempt)
    assert calls == 1
