from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal, Optional

MarketType = Literal["spot", "derivative", "perpetual"]
MarketTypeFilter = Literal["spot", "derivative", "perpetual", "all"]
MarketSort = Literal["volume", "priceChange", "ticker"]
SortOrder = Literal["asc", "desc"]
PositionDirection = Literal["long", "short", "unknown"]


@dataclass(frozen=True)
class DenomMeta:
    symbol: str
    name: str
    decimals: int
    logo: Optional[str] = None


@dataclass(frozen=True)
class Token:
    denom: str
    symbol: str
    name: str
    decimals: int
    price_usd: float = 0.0
    logo: Optional[str] = None


@dataclass(frozen=True)
class MarketInfo:
    market_id: str
    ticker: str
    type: MarketType
    market_status: str = "active"
    min_price_tick_size: str = "0"
    min_quantity_tick_size: str = "0"
    base_denom: Optional[str] = None
    quote_denom: Optional[str] = None
    base_symbol: Optional[str] = None
    quote_symbol: Optional[str] = None
    oracle_type: Optional[str] = None
    volume_24h: float = 0.0
    price_change_24h: float = 0.0
    last_price: float = 0.0
    funding_rate: Optional[str] = None
    open_interest: Optional[str] = None


@dataclass(frozen=True)
class MarketsQuery:
    type: MarketTypeFilter = "all"
    sort: MarketSort = "volume"
    order: SortOrder = "desc"
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class OrderBookLevel:
    price: Decimal
    quantity: Decimal


@dataclass(frozen=True)
class OrderBookSnapshot:
    """Bids sorted best-first (descending), asks best-first (ascending)."""

    bids: tuple[OrderBookLevel, ...] = ()
    asks: tuple[OrderBookLevel, ...] = ()


@dataclass(frozen=True)
class MarketAnalytics:
    market_id: str
    ticker: str
    liquidity_score: int  # 0-100
    spread_percent: float
    bid_depth_usd: float
    ask_depth_usd: float
    bid_count: int
    ask_count: int
    top_bid_price: str
    top_ask_price: str
    mid_price: float


@dataclass(frozen=True)
class PortfolioBalance:
    denom: str
    symbol: str
    amount: str  # integer, base units
    amount_human: str
    value_usd: float


@dataclass(frozen=True)
class DerivativePosition:
    market_id: str
    market_name: str
    ticker: str
    direction: PositionDirection
    quantity: str
    entry_price: str
    mark_price: str
    margin: str
    unrealized_pnl: float
    unrealized_pnl_percent: float


@dataclass(frozen=True)
class PortfolioSummary:
    total_balance_value_usd: float
    total_positions_value_usd: float
    total_unrealized_pnl: float
    positions_count: int


@dataclass(frozen=True)
class PortfolioResponse:
    address: str
    total_value_usd: float
    balances: tuple[PortfolioBalance, ...]
    derivative_positions: tuple[DerivativePosition, ...]
    summary: PortfolioSummary
    timestamp: int  # epoch milliseconds


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    expires_at: float


@dataclass(frozen=True)
class CacheStats:
    keys: int
    hits: int
    misses: int
    inflight: int = 0
