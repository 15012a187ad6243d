"""
Request-level error taxonomy.

- **MarketValidationError**: malformed market identifier or identifier list;
  raised before any data is fetched.
- **MarketNotFoundError**: the identifier does not resolve against the
  market list; surfaced to the caller, never retried.
- **UpstreamFailureError**: the data source failed. Single-market operations
  propagate it; the comparison records it per market.
"""

from __future__ import annotations


class MarketHealthError(Exception):
    """Base class for errors surfaced by the market health service."""


class MarketValidationError(MarketHealthError):
    def __init__(self, message: str, *, value: object = None) -> None:
        super().__init__(message)
        self.value = value


class MarketNotFoundError(MarketHealthError):
    def __init__(self, market_id: str) -> None:
        super().__init__(f"Market {market_id} not found")
        self.market_id = market_id


class UpstreamFailureError(MarketHealthError):
    def __init__(self, operation: str, market_id: str | None, cause: Exception) -> None:
        target = f" for {market_id}" if market_id else ""
        super().__init__(f"Failed to {operation}{target}: {cause}")
        self.operation = operation
        self.market_id = market_id
        self.cause = cause
