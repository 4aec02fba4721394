"""Transport-side error helpers.

Bundled clients attach retry metadata via APIError so the caller's retry logic
can be bounded and deterministic without brittle substring matching.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx

from genroute._http import RETRYABLE_STATUS_CODES
from genroute.errors import APIError, RateLimitError, _walk_exception_chain


def extract_status_code(exc: BaseException) -> int | None:
    """Walk the exception chain to find an HTTP status code."""
    for e in _walk_exception_chain(exc):
        for attr in ("status_code", "status"):
            value = getattr(e, attr, None)
            if isinstance(value, int) and 100 <= value <= 599:
                return value
        response = getattr(e, "response", None)
        value = getattr(response, "status_code", None)
        if isinstance(value, int) and 100 <= value <= 599:
            return value
    return None


_PROTO_DURATION_RE = re.compile(r"^(\d+(?:\.\d+)?)s$")


def _retry_info_seconds(body: Any) -> float | None:
    """Extract retry delay from a Google API-style error body.

    Error bodies from both deployments are shaped like::

        {"error": {"details": [{"@type": "...RetryInfo", "retryDelay": "8s"}]}}

    The ``retryDelay`` value is a protobuf Duration string (e.g. ``"8s"``,
    ``"8.352104981s"``).
    """
    if isinstance(body, list) and body:
        # streamGenerateContent reports errors as a one-element JSON array.
        body = body[0]
    if not isinstance(body, dict):
        return None
    error: Any = body.get("error")
    if not isinstance(error, dict):
        return None
    detail_list: Any = error.get("details")
    if not isinstance(detail_list, list):
        return None
    for entry in detail_list:
        if not isinstance(entry, dict):
            continue
        at_type = entry.get("@type", "")
        if not isinstance(at_type, str) or "RetryInfo" not in at_type:
            continue
        delay_raw = entry.get("retryDelay")
        if not isinstance(delay_raw, str):
            continue
        m = _PROTO_DURATION_RE.match(delay_raw)
        if m:
            return float(m.group(1))
    return None


def _response_body(response: Any) -> Any:
    if not isinstance(response, httpx.Response):
        return None
    try:
        return response.json()
    except (ValueError, httpx.ResponseNotRead):
        return None


def extract_retry_after_s(exc: BaseException) -> float | None:
    """Walk the exception chain to find a retry-after delay in seconds."""
    for e in _walk_exception_chain(exc):
        value = getattr(e, "retry_after", None)
        if isinstance(value, (int, float)) and value >= 0:
            return float(value)

        response = getattr(e, "response", None)
        headers: Any = getattr(response, "headers", None)
        if headers is not None:
            raw = headers.get("Retry-After")
            if isinstance(raw, str) and raw.strip():
                try:
                    seconds = float(raw)
                except ValueError:
                    seconds = None
                if seconds is not None and seconds >= 0:
                    return seconds

        retry_info = _retry_info_seconds(_response_body(response))
        if retry_info is not None:
            return retry_info
    return None


def _auth_hint(client_type: str, status_code: int | None, cause: str) -> str | None:
    """Generate a hint for auth errors where naming the credential is useful."""
    cause_lower = cause.lower()
    if status_code in {401, 403} or (
        status_code == 400 and ("api key" in cause_lower or "api_key" in cause_lower)
    ):
        if client_type == "apiKey":
            return "Check the API key (try setting GEMINI_API_KEY or passing api_key=...)."
        return (
            "Check IAM permissions for the credential and that the project "
            "has the Vertex AI API enabled."
        )
    return None


def wrap_transport_error(
    exc: BaseException,
    *,
    client_type: str,
    phase: str,
    message: str | None = None,
) -> APIError:
    """Map httpx exceptions into APIError with stable retry metadata."""
    if isinstance(exc, asyncio.CancelledError):
        raise exc

    # Already wrapped: fill in missing context only.
    if isinstance(exc, APIError):
        if exc.phase is None:
            exc.phase = phase
        return exc

    status_code = extract_status_code(exc)
    retry_after_s = extract_retry_after_s(exc)

    retryable = retry_after_s is not None
    if isinstance(status_code, int) and status_code in RETRYABLE_STATUS_CODES:
        retryable = True
    else:
        for e in _walk_exception_chain(exc):
            if isinstance(e, (httpx.TimeoutException, httpx.RequestError)):
                retryable = True
                break

    cause = str(exc)
    msg = message or f"{phase} failed"
    err_cls: type[APIError] = RateLimitError if status_code == 429 else APIError
    status_note = f" (status={status_code})" if isinstance(status_code, int) else ""
    return err_cls(
        f"{msg}{status_note}: {cause}" if cause else f"{msg}{status_note}",
        hint=_auth_hint(client_type, status_code, cause),
        retryable=retryable,
        status_code=status_code,
        retry_after_s=retry_after_s,
        phase=phase,
    )
