"""Unified spot + derivative market catalog.

The full market list is rebuilt from the indexer at most once per cache
lifetime. The first markets in the list are enriched with their latest
trade price (and funding rate for perpetuals); enrichment is best-effort and
never fails the build.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.denoms.resolver import resolve_denom
from core.errors import UpstreamError
from core.types import MarketInfo, MarketsQuery
from core.upstream.interfaces import DerivativeQueries, SpotQueries
from core.upstream.types import DerivativeMarketRecord, SpotMarketRecord

logger = logging.getLogger(__name__)

MARKETS_CACHE_KEY = "markets:all"
RECENT_TRADES_LIMIT = 2


def _to_float(value: str) -> float:
    try:
        number = Decimal(value or "0")
    except InvalidOperation:
        return 0.0
    return float(number) if number.is_finite() else 0.0


def spot_market_info(record: SpotMarketRecord) -> MarketInfo:
    base = resolve_denom(record.base_denom)
    quote = resolve_denom(record.quote_denom)
    return MarketInfo(
        market_id=record.market_id,
        ticker=record.ticker or f"{base.symbol}/{quote.symbol}",
        type="spot",
        market_status=record.market_status or "active",
        min_price_tick_size=record.min_price_tick_size or "0",
        min_quantity_tick_size=record.min_quantity_tick_size or "0",
        base_denom=record.base_denom,
        quote_denom=record.quote_denom,
        base_symbol=base.symbol,
        quote_symbol=quote.symbol,
    )


def derivative_market_info(record: DerivativeMarketRecord) -> MarketInfo:
    quote = resolve_denom(record.quote_denom)
    return MarketInfo(
        market_id=record.market_id,
        ticker=record.ticker or "Unknown",
        type="perpetual" if record.is_perpetual else "derivative",
        market_status=record.market_status or "active",
        min_price_tick_size=record.min_price_tick_size or "0",
        min_quantity_tick_size=record.min_quantity_tick_size or "0",
        quote_denom=record.quote_denom,
        quote_symbol=quote.symbol,
        oracle_type=record.oracle_type,
    )


def _matches_type(market: MarketInfo, market_type: str) -> bool:
    if market_type == "all":
        return True
    if market_type == "perpetual":
        # Injective lists most futures as perpetual; "perpetual" is the umbrella filter.
        return market.type in ("perpetual", "derivative")
    return market.type == market_type


def _matches_search(market: MarketInfo, search: str) -> bool:
    needle = search.lower()
    return any(
        needle in value.lower()
        for value in (market.ticker, market.base_symbol, market.quote_symbol)
        if value
    )


def filter_markets(markets: Sequence[MarketInfo], query: MarketsQuery) -> tuple[list[MarketInfo], int]:
    """Apply type filter, search, sort and pagination.

    Returns:
        Tuple of (page of markets, total matching before pagination)
    """
    filtered = [m for m in markets if _matches_type(m, query.type)]
    if query.search:
        filtered = [m for m in filtered if _matches_search(m, query.search)]

    reverse = query.order != "asc"
    if query.sort == "ticker":
        filtered.sort(key=lambda m: (m.ticker.casefold(), m.ticker), reverse=reverse)
    elif query.sort == "priceChange":
        filtered.sort(key=lambda m: m.price_change_24h, reverse=reverse)
    else:
        filtered.sort(key=lambda m: m.volume_24h, reverse=reverse)

    total = len(filtered)
    offset = max(query.offset, 0)
    return filtered[offset : offset + max(query.limit, 0)], total


class MarketCatalog:
    """Cached market list with query support."""

    def __init__(
        self,
        spot: SpotQueries,
        derivatives: DerivativeQueries,
        cache: TTLCache,
        config: Optional[LensConfig] = None,
    ) -> None:
        self._spot = spot
        self._derivatives = derivatives
        self._cache = cache
        self._config = config or LensConfig()

    async def get_all_markets(self) -> list[MarketInfo]:
        """Every spot and derivative market, spot first.

        Raises:
            UpstreamError: If either market list cannot be fetched
        """
        markets = await self._cache.get_or_compute(MARKETS_CACHE_KEY, self._config.markets_ttl, self._build_markets)
        return list(markets)

    async def get_markets(self, query: Optional[MarketsQuery] = None) -> tuple[list[MarketInfo], int]:
        return filter_markets(await self.get_all_markets(), query or MarketsQuery())

    async def get_market(self, market_id: str) -> Optional[MarketInfo]:
        for market in await self.get_all_markets():
            if market.market_id == market_id:
                return market
        return None

    async def _build_markets(self) -> tuple[MarketInfo, ...]:
        spot_records, derivative_records = await asyncio.gather(
            self._spot.fetch_markets(),
            self._derivatives.fetch_markets(),
            return_exceptions=True,
        )
        if isinstance(spot_records, BaseException):
            raise spot_records
        if isinstance(derivative_records, BaseException):
            raise derivative_records

        markets = [spot_market_info(r) for r in spot_records]
        markets.extend(derivative_market_info(r) for r in derivative_records)

        limit = self._config.enrich_limit
        semaphore = asyncio.Semaphore(self._config.enrich_concurrency)
        enriched = await asyncio.gather(*(self._enrich(m, semaphore) for m in markets[:limit]))
        markets[:limit] = enriched

        logger.info(
            "Built market catalog: %d spot, %d derivative (%d enriched)",
            len(spot_records),
            len(derivative_records),
            len(enriched),
        )
        return tuple(markets)

    async def _enrich(self, market: MarketInfo, semaphore: asyncio.Semaphore) -> MarketInfo:
        async with semaphore:
            last_price = await self._fetch_last_price(market)
            funding_rate = await self._fetch_funding_rate(market) if market.type == "perpetual" else None

        changes: dict[str, object] = {}
        if last_price is not None:
            changes["last_price"] = last_price
        if funding_rate is not None:
            changes["funding_rate"] = funding_rate
        return replace(market, **changes) if changes else market

    async def _fetch_last_price(self, market: MarketInfo) -> Optional[float]:
        source = self._spot if market.type == "spot" else self._derivatives
        try:
            trades = await source.fetch_trades(market.market_id, limit=RECENT_TRADES_LIMIT)
        except UpstreamError as e:
            logger.debug("Trade enrichment failed for %s: %s", market.ticker, e)
            return None
        if not trades:
            return None
        return _to_float(trades[0].price)

    async def _fetch_funding_rate(self, market: MarketInfo) -> Optional[str]:
        try:
            rates = await self._derivatives.fetch_funding_rates(market.market_id, limit=1)
        except UpstreamError as e:
            logger.debug("Funding rate enrichment failed for %s: %s", market.ticker, e)
            return None
        if not rates:
            return None
        return rates[0].rate or "0"
