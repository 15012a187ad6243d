from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PriceLevel:
    """
    One price tier of an order book side.

    Attributes:
        price: Price as a decimal string.
        quantity: Resting quantity as a decimal string.
        timestamp: Last update time in epoch milliseconds.
    """
    price: str
    quantity: str
    timestamp: int = 0


@dataclass(frozen=True)
class OrderBookSnapshot:
    """
    Point-in-time order book.

    Attributes:
        buys: Bid levels, best (highest) bid first.
        sells: Ask levels, best (lowest) ask first.
        sequence: Monotonically increasing book sequence number.
    """
    buys: tuple[PriceLevel, ...]
    sells: tuple[PriceLevel, ...]
    sequence: int = 0
