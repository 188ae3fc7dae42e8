"""Records returned by the upstream query capabilities.

These mirror the fields the engine consumes from the chain and indexer;
everything else in the upstream payloads is dropped at the adapter.
Numeric fields stay strings exactly as the upstream reports them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class BankBalance:
    denom: str
    amount: str  # integer, base units


@dataclass(frozen=True)
class DenomMetadata:
    base: str
    symbol: str = ""
    name: str = ""
    display: str = ""


@dataclass(frozen=True)
class SpotMarketRecord:
    market_id: str
    ticker: str = ""
    base_denom: str = ""
    quote_denom: str = ""
    market_status: str = ""
    min_price_tick_size: str = "0"
    min_quantity_tick_size: str = "0"


@dataclass(frozen=True)
class DerivativeMarketRecord:
    market_id: str
    ticker: str = ""
    quote_denom: str = ""
    market_status: str = ""
    min_price_tick_size: str = "0"
    min_quantity_tick_size: str = "0"
    oracle_type: Optional[str] = None
    is_perpetual: bool = False


@dataclass(frozen=True)
class TradeRecord:
    """A single fill, newest first in every list.

    ``price`` is the spot trade price or the derivative execution price.
    """

    market_id: str
    price: str
    quantity: str = "0"
    executed_at: int = 0  # epoch ms


@dataclass(frozen=True)
class FundingRateRecord:
    market_id: str
    rate: str
    timestamp: int = 0  # epoch ms


@dataclass(frozen=True)
class PositionRecord:
    market_id: str
    subaccount_id: str = ""
    ticker: str = ""
    direction: str = ""
    quantity: str = "0"
    entry_price: str = "0"
    mark_price: str = "0"
    margin: str = "0"


@dataclass(frozen=True)
class SubaccountBalance:
    denom: str
    total_balance: str = "0"  # base units, may carry a fractional part
    available_balance: str = "0"
