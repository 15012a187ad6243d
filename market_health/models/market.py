"""
Data models for spot market descriptors.

A market descriptor is fetched from the indexer market list and is used to
resolve a caller-supplied identifier (hex market id or ``BASE-QUOTE``
ticker) and to label every report with its ticker.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenMeta:
    """
    Token metadata for one side of a market.

    Attributes:
        name: Display name (e.g., "Injective").
        symbol: Token symbol (e.g., "INJ").
        decimals: On-chain decimals used by the denom.
    """
    name: str
    symbol: str
    decimals: int


@dataclass(frozen=True)
class Market:
    """
    Spot market descriptor.

    Attributes:
        market_id: 0x-prefixed 64-hex-digit market address.
        ticker: Human ticker as published by the exchange (e.g., "INJ/USDT").
        base_denom: Base asset denom.
        quote_denom: Quote asset denom.
        base_token: Base token metadata.
        quote_token: Quote token metadata.
        maker_fee_rate: Maker fee rate as a decimal string.
        taker_fee_rate: Taker fee rate as a decimal string.
        service_provider_fee: Service provider fee share as a decimal string.
        min_price_tick_size: Price tick as a decimal string.
        min_quantity_tick_size: Quantity tick as a decimal string.
    """
    market_id: str
    ticker: str
    base_denom: str
    quote_denom: str
    base_token: TokenMeta
    quote_token: TokenMeta
    maker_fee_rate: str = "0"
    taker_fee_rate: str = "0"
    service_provider_fee: str = "0"
    min_price_tick_size: str = "0"
    min_quantity_tick_size: str = "0"

    def matches(self, identifier: str) -> bool:
        """Return True if identifier names this market by id or by ``BASE-QUOTE`` ticker."""
        candidate = identifier.strip()
        if candidate.lower() == self.market_id.lower():
            return True
        return candidate.replace("-", "/").upper() == self.ticker.upper()
