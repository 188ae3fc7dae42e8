"""Order book analytics: spread, depth and a 0-100 liquidity score."""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Optional

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.errors import UpstreamError
from core.markets.catalog import MarketCatalog
from core.types import MarketAnalytics, OrderBookLevel, OrderBookSnapshot
from core.upstream.interfaces import DerivativeQueries, SpotQueries

logger = logging.getLogger(__name__)

ANALYTICS_CACHE_PREFIX = "analytics:"

# Total two-sided depth (USD) that earns the full depth score.
FULL_DEPTH_USD = Decimal("1000000")
MAX_DEPTH_SCORE = Decimal("50")

# (exclusive upper bound on spread %, points), checked in order
SPREAD_SCORE_STEPS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("0.01"), 50),
    (Decimal("0.1"), 40),
    (Decimal("0.5"), 25),
    (Decimal("1"), 10),
)


# Raw depth values can exceed the default 28-digit precision.
_WIDE = Context(prec=80)


def _round(value: Decimal, places: int) -> float:
    return float(value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP, context=_WIDE))


def _plain(value: Decimal) -> str:
    return format(value.normalize(_WIDE), "f") if value else "0"


def _side_depth(levels: tuple[OrderBookLevel, ...]) -> Decimal:
    return sum((level.price * level.quantity for level in levels), Decimal("0"))


def depth_score(total_depth_usd: Decimal) -> Decimal:
    return min(total_depth_usd / FULL_DEPTH_USD, Decimal("1")) * MAX_DEPTH_SCORE


def spread_score(spread_percent: Decimal) -> int:
    for bound, points in SPREAD_SCORE_STEPS:
        if spread_percent < bound:
            return points
    return 0


def compute_analytics(market_id: str, ticker: str, snapshot: OrderBookSnapshot) -> MarketAnalytics:
    """Derive analytics from an order book snapshot.

    Args:
        market_id: Market the snapshot belongs to
        ticker: Display ticker
        snapshot: Bids best-first (descending), asks best-first (ascending)

    Returns:
        MarketAnalytics with rounded outputs
    """
    zero = Decimal("0")
    top_bid = snapshot.bids[0].price if snapshot.bids else zero
    top_ask = snapshot.asks[0].price if snapshot.asks else zero

    mid = (top_bid + top_ask) / 2 if snapshot.bids and snapshot.asks else zero
    spread_percent = (top_ask - top_bid) / mid * 100 if mid > 0 else zero

    bid_depth = _side_depth(snapshot.bids)
    ask_depth = _side_depth(snapshot.asks)

    # Spread points need both sides of the book
    spread_points = spread_score(spread_percent) if mid > 0 else 0
    score = depth_score(bid_depth + ask_depth) + spread_points

    return MarketAnalytics(
        market_id=market_id,
        ticker=ticker,
        liquidity_score=int(score.quantize(Decimal(1), rounding=ROUND_HALF_UP, context=_WIDE)),
        spread_percent=_round(spread_percent, 4),
        bid_depth_usd=_round(bid_depth, 2),
        ask_depth_usd=_round(ask_depth, 2),
        bid_count=len(snapshot.bids),
        ask_count=len(snapshot.asks),
        top_bid_price=_plain(top_bid),
        top_ask_price=_plain(top_ask),
        mid_price=_round(mid, 6),
    )


class AnalyticsEngine:
    """Per-market analytics, cached briefly since order books move fast."""

    def __init__(
        self,
        catalog: MarketCatalog,
        spot: SpotQueries,
        derivatives: DerivativeQueries,
        cache: TTLCache,
        config: Optional[LensConfig] = None,
    ) -> None:
        self._catalog = catalog
        self._spot = spot
        self._derivatives = derivatives
        self._cache = cache
        self._config = config or LensConfig()

    async def get_market_analytics(self, market_id: str) -> Optional[MarketAnalytics]:
        """Analytics for ``market_id``.

        Returns None when the market is unknown or its order book cannot be
        fetched; a failed fetch is not cached.

        Raises:
            UpstreamError: If the market catalog cannot be built
        """
        market = await self._catalog.get_market(market_id)
        if market is None:
            return None

        source = self._spot if market.type == "spot" else self._derivatives

        async def produce() -> MarketAnalytics:
            snapshot = await source.fetch_orderbook(market_id)
            return compute_analytics(market_id, market.ticker, snapshot)

        try:
            return await self._cache.get_or_compute(
                f"{ANALYTICS_CACHE_PREFIX}{market_id}", self._config.analytics_ttl, produce
            )
        except UpstreamError as e:
            logger.warning("Order book unavailable for %s (%s): %s", market.ticker, market_id, e)
            return None
