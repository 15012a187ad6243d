"""
Indexer API error classification for retry decisions.

- **RateLimitedError (429)**: rate limit exceeded, retried with backoff
- **TransientHttpError (5xx, timeouts, network, bad JSON)**: retried
- **FatalHttpError (other 4xx, malformed payloads)**: no retry

Error Classification Strategy:
    HTTP 429 → RateLimitedError → retry
    HTTP 5xx → TransientHttpError → retry
    HTTP 4xx → FatalHttpError → fail immediately
    Timeout  → TransientHttpError → retry
    Network  → TransientHttpError → retry

The service layer wraps every one of these into ``UpstreamFailureError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class IndexerHttpError(Exception):
    """
    Base exception for all indexer HTTP errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code (None for non-HTTP errors).
        response_text: Raw response body text.
        payload: Parsed response payload if available.
    """
    message: str
    status_code: int | None = None
    response_text: str | None = None
    payload: Any | None = None

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.response_text:
            parts.append(f"response={self.response_text}")
        return " | ".join(parts)


class RateLimitedError(IndexerHttpError):
    """HTTP 429 - rate limit exceeded after all retries."""
    pass


class TransientHttpError(IndexerHttpError):
    """Retryable failure: 5xx, timeout, connection error or invalid JSON."""
    pass


class FatalHttpError(IndexerHttpError):
    """Non-retryable failure: 4xx client error or an unexpected payload shape."""
    pass
