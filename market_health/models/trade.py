from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Trade:
    """
    A single executed trade print.

    Attributes:
        trade_id: Exchange trade identifier.
        market_id: Market the trade executed on.
        execution_price: Price as a decimal string.
        execution_quantity: Quantity as a decimal string.
        executed_at: Execution time in epoch milliseconds.
        trade_direction: "buy" or "sell" from the taker's perspective.
        execution_side: "maker" or "taker".
        execution_type: Exchange execution type (e.g., "limitMatchNewOrder").
        order_hash: Hash of the order that produced the fill.
        subaccount_id: Subaccount that owns the order.
        fee: Fee paid as a decimal string.
    """
    trade_id: str
    market_id: str
    execution_price: str
    execution_quantity: str
    executed_at: int
    trade_direction: str = ""
    execution_side: str = ""
    execution_type: str = ""
    order_hash: str = ""
    subaccount_id: str = ""
    fee: str = "0"
