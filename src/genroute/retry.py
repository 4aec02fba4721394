"""Minimal async retry and the cancellation-aware caller.

Design goals:
- Small API surface
- Explicit state (policy + attempt counters)
- No brittle substring matching for retry decisions
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import random
import time
from typing import TYPE_CHECKING, TypeVar

import httpx

from genroute._http import RETRYABLE_STATUS_CODES
from genroute.errors import APIError, _walk_exception_chain

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from genroute.types import CallOptions

T = TypeVar("T")

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with exponential backoff and optional jitter."""

    # Defaults are intentionally conservative: retries should help without
    # surprising tail-latency.
    max_attempts: int = 2
    initial_delay_s: float = 0.5
    backoff_multiplier: float = 2.0
    max_delay_s: float = 5.0
    jitter: bool = True  # "full jitter" when enabled
    max_elapsed_s: float | None = 15.0

    def __post_init__(self) -> None:
        """Validate invariants to keep retry behavior predictable."""
        if self.max_attempts < 1:
            raise ValueError("RetryPolicy.max_attempts must be >= 1")
        if self.initial_delay_s < 0:
            raise ValueError("RetryPolicy.initial_delay_s must be >= 0")
        if self.backoff_multiplier <= 0:
            raise ValueError("RetryPolicy.backoff_multiplier must be > 0")
        if self.max_delay_s < 0:
            raise ValueError("RetryPolicy.max_delay_s must be >= 0")
        if self.max_elapsed_s is not None and self.max_elapsed_s < 0:
            raise ValueError("RetryPolicy.max_elapsed_s must be >= 0 or None")


def _retry_after_from_error(exc: BaseException) -> float | None:
    if isinstance(exc, APIError):
        v = exc.retry_after_s
        if isinstance(v, (int, float)) and v >= 0:
            return float(v)
    return None


def _is_transient_network_error(exc: BaseException) -> bool:
    for e in _walk_exception_chain(exc):
        if isinstance(e, (TimeoutError, asyncio.TimeoutError)):
            return True
        # RequestError is a stable base class for transport-level failures.
        if isinstance(e, (httpx.TimeoutException, httpx.RequestError)):
            return True
    return False


def should_retry_generate(exc: BaseException) -> bool:
    """Return True when a generate-content exception should be retried.

    Contract:
    - Cancellation is never retried.
    - APIError is retried only when the transport marks it retryable or it
      carries a known retryable HTTP status code.
    - A small set of timeout/transport exceptions are retried as a fallback.
    - Everything else (configuration, credential, schema errors) is fatal.
    """
    if isinstance(exc, asyncio.CancelledError):
        return False

    if isinstance(exc, APIError):
        return (exc.retryable is True) or (
            isinstance(exc.status_code, int) and exc.status_code in RETRYABLE_STATUS_CODES
        )

    return _is_transient_network_error(exc)


def _compute_backoff_delay(policy: RetryPolicy, *, retry_index: int) -> float:
    # retry_index starts at 1 for the first retry sleep.
    base = policy.initial_delay_s * (policy.backoff_multiplier ** max(0, retry_index - 1))
    base = min(policy.max_delay_s, base)
    if base <= 0:
        return 0.0
    if not policy.jitter:
        return base
    # Full jitter: random in [0, base] to avoid thundering herd.
    return random.random() * base  # noqa: S311


async def retry_async(
    factory: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    should_retry: Callable[[BaseException], bool] = should_retry_generate,
) -> T:
    """Run an async factory with bounded retries."""
    start = time.monotonic()
    last_exc: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return await factory()
        except Exception as exc:
            last_exc = exc
            if not should_retry(exc) or attempt >= policy.max_attempts:
                raise

            retry_after = _retry_after_from_error(exc)
            delay = _compute_backoff_delay(policy, retry_index=attempt)
            if retry_after is not None:
                delay = max(delay, retry_after)

            if policy.max_elapsed_s is not None:
                remaining = policy.max_elapsed_s - (time.monotonic() - start)
                if remaining <= 0:
                    raise
                delay = min(delay, remaining)

            log.debug(
                "Attempt %d/%d failed (%s); retrying in %.2fs",
                attempt,
                policy.max_attempts,
                type(exc).__name__,
                delay,
            )
            if delay > 0:
                await asyncio.sleep(delay)

    # Defensive: loop should always return or raise.
    if last_exc is None:  # pragma: no cover
        raise RuntimeError("retry_async exhausted without an exception")
    raise last_exc


async def _run_until_signalled(
    attempt: Callable[[], Awaitable[T]], signal: asyncio.Event
) -> T:
    """Await *attempt*, cancelling it as soon as *signal* is set."""
    task = asyncio.ensure_future(attempt())
    waiter = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
    if task.done() and not task.cancelled():
        return task.result()
    raise asyncio.CancelledError("call cancelled by signal")


@dataclass(frozen=True)
class AsyncCaller:
    """Retrying call wrapper with cooperative cancellation.

    One ``call_with_options`` invocation runs the attempt under ``policy``;
    a set ``options.signal`` aborts the call with ``asyncio.CancelledError``
    and stops further retries.
    """

    policy: RetryPolicy = field(default_factory=RetryPolicy)
    should_retry: Callable[[BaseException], bool] = should_retry_generate

    async def call_with_options(
        self,
        options: CallOptions | None,
        attempt: Callable[[], Awaitable[T]],
    ) -> T:
        signal = options.signal if options is not None else None

        async def once() -> T:
            if signal is None:
                return await attempt()
            if signal.is_set():
                raise asyncio.CancelledError("call cancelled by signal")
            return await _run_until_signalled(attempt, signal)

        return await retry_async(once, policy=self.policy, should_retry=self.should_retry)
