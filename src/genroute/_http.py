"""Small HTTP-related constants shared across genroute.

This module is intentionally tiny to avoid circular imports and drift.
"""

from __future__ import annotations

# Retryable status codes shared by transport error mapping and core retry.
RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({408, 409, 429, 500, 502, 503, 504})

CONSUMER_HOST = "generativelanguage.googleapis.com"

DEFAULT_LOCATION = "us-central1"
DEFAULT_ENDPOINT = f"{DEFAULT_LOCATION}-aiplatform.googleapis.com"
DEFAULT_API_VERSION = "v1"

# Sent when runtime introspection cannot produce a library/version pair.
BASELINE_USER_AGENT = "genroute-py/0"
