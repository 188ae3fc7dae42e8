"""Response models.

The JSON surface uses camelCase keys; the models are validated straight from
the core dataclasses and dumped by alias.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.types import MarketAnalytics


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class TokenOut(CamelModel):
    denom: str
    symbol: str
    name: str
    decimals: int
    price_usd: float
    logo: Optional[str] = None


class MarketOut(CamelModel):
    market_id: str
    ticker: str
    type: Literal["spot", "derivative", "perpetual"]
    market_status: str
    min_price_tick_size: str
    min_quantity_tick_size: str
    base_denom: Optional[str] = None
    quote_denom: Optional[str] = None
    base_symbol: Optional[str] = None
    quote_symbol: Optional[str] = None
    oracle_type: Optional[str] = None
    # to_camel would yield "volume24H"
    volume_24h: float = Field(alias="volume24h")
    price_change_24h: float = Field(alias="priceChange24h")
    last_price: float
    funding_rate: Optional[str] = None
    open_interest: Optional[str] = None


class OrderCount(CamelModel):
    bids: int
    asks: int


class MarketAnalyticsOut(CamelModel):
    market_id: str
    ticker: str
    liquidity_score: int
    spread_percent: float
    bid_depth_usd: float
    ask_depth_usd: float
    order_count: OrderCount
    top_bid_price: str
    top_ask_price: str
    mid_price: float

    @classmethod
    def from_analytics(cls, analytics: MarketAnalytics) -> MarketAnalyticsOut:
        return cls(
            market_id=analytics.market_id,
            ticker=analytics.ticker,
            liquidity_score=analytics.liquidity_score,
            spread_percent=analytics.spread_percent,
            bid_depth_usd=analytics.bid_depth_usd,
            ask_depth_usd=analytics.ask_depth_usd,
            order_count=OrderCount(bids=analytics.bid_count, asks=analytics.ask_count),
            top_bid_price=analytics.top_bid_price,
            top_ask_price=analytics.top_ask_price,
            mid_price=analytics.mid_price,
        )


class PortfolioBalanceOut(CamelModel):
    denom: str
    symbol: str
    amount: str
    amount_human: str
    value_usd: float


class DerivativePositionOut(CamelModel):
    market_id: str
    market_name: str
    ticker: str
    direction: str
    quantity: str
    entry_price: str
    mark_price: str
    margin: str
    unrealized_pnl: float
    unrealized_pnl_percent: float


class PortfolioSummaryOut(CamelModel):
    total_balance_value_usd: float
    total_positions_value_usd: float
    total_unrealized_pnl: float
    positions_count: int


class PortfolioOut(CamelModel):
    address: str
    total_value_usd: float
    balances: list[PortfolioBalanceOut]
    derivative_positions: list[DerivativePositionOut]
    summary: PortfolioSummaryOut
    timestamp: int
