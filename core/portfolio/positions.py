"""Derivative position valuation.

Unrealized P&L for indexer-reported positions, computed in Decimal.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Optional

from core.types import DerivativePosition, PositionDirection
from core.upstream.types import PositionRecord

ZERO = Decimal("0")


def to_decimal(value: Optional[str]) -> Decimal:
    """Parse an upstream numeric string; unparseable or non-finite values are zero."""
    if not value:
        return ZERO
    try:
        number = Decimal(value)
    except InvalidOperation:
        return ZERO
    return number if number.is_finite() else ZERO


def position_direction(raw: Optional[str]) -> PositionDirection:
    direction = (raw or "").strip().lower()
    if direction == "long":
        return "long"
    if direction == "short":
        return "short"
    return "unknown"


def unrealized_pnl(
    direction: PositionDirection,
    entry_price: Decimal,
    mark_price: Decimal,
    quantity: Decimal,
) -> Decimal:
    """Calculate unrealized P&L at the mark price.

    Args:
        direction: long, short or unknown
        entry_price: Average entry price
        mark_price: Current mark price
        quantity: Position size

    Returns:
        Unrealized P&L (positive = profit); zero when either price is not
        positive or the direction is unknown
    """
    if entry_price <= 0 or mark_price <= 0:
        return ZERO
    if direction == "long":
        return (mark_price - entry_price) * quantity
    if direction == "short":
        return (entry_price - mark_price) * quantity
    return ZERO


def pnl_percent(pnl: Decimal, entry_price: Decimal, quantity: Decimal) -> Decimal:
    """P&L as a percentage of entry notional (e.g. 5 = 5%)."""
    notional = entry_price * quantity
    if entry_price <= 0 or notional == 0:
        return ZERO
    return pnl / notional * 100


def build_position(record: PositionRecord, ticker: Optional[str]) -> DerivativePosition:
    """Value a position record.

    Args:
        record: Position as reported by the indexer
        ticker: Market ticker from the catalog, None when unknown
    """
    direction = position_direction(record.direction)
    entry = to_decimal(record.entry_price)
    mark = to_decimal(record.mark_price)
    quantity = to_decimal(record.quantity)
    pnl = unrealized_pnl(direction, entry, mark, quantity)

    return DerivativePosition(
        market_id=record.market_id,
        market_name=ticker or record.market_id,
        ticker=ticker or "Unknown",
        direction=direction,
        quantity=record.quantity or "0",
        entry_price=record.entry_price or "0",
        mark_price=record.mark_price or "0",
        margin=record.margin or "0",
        unrealized_pnl=float(pnl),
        unrealized_pnl_percent=float(pnl_percent(pnl, entry, quantity)),
    )
