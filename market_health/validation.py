from __future__ import annotations

import re
from typing import Iterable

from market_health.errors import MarketValidationError

HEX_MARKET_ID = re.compile(r"^0x[a-fA-F0-9]{64}$")
TICKER_MARKET_ID = re.compile(r"^[A-Za-z0-9]+-[A-Za-z0-9]+$")

MIN_COMPARE_MARKETS = 2
MAX_COMPARE_MARKETS = 5


def is_valid_market_id(value: str) -> bool:
    return bool(HEX_MARKET_ID.match(value) or TICKER_MARKET_ID.match(value))


def validate_market_id(value: object) -> str:
    if not isinstance(value, str):
        raise MarketValidationError("Market ID must be a string", value=value)
    candidate = value.strip()
    if not is_valid_market_id(candidate):
        raise MarketValidationError(
            "Invalid market ID format. Expected 66-character hex address starting with '0x' "
            f"or ticker format 'BASE-QUOTE', got {value!r}",
            value=value,
        )
    return candidate


def parse_market_list(value: str | Iterable[str]) -> list[str]:
    """
    Validate the identifier list of a comparison.

    Accepts a comma-separated string or an iterable of identifiers and
    requires between 2 and 5 valid identifiers after trimming blanks.
    """
    if isinstance(value, str):
        raw = value.split(",")
    else:
        raw = list(value)
    if any(not isinstance(item, str) for item in raw):
        raise MarketValidationError("Market IDs must be strings", value=value)
    market_ids = [item.strip() for item in raw if item.strip()]
    if not MIN_COMPARE_MARKETS <= len(market_ids) <= MAX_COMPARE_MARKETS:
        raise MarketValidationError(
            f"Must provide {MIN_COMPARE_MARKETS}-{MAX_COMPARE_MARKETS} market IDs, got {len(market_ids)}",
            value=value,
        )
    return [validate_market_id(market_id) for market_id in market_ids]
