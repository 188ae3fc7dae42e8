"""Portfolio aggregation for a single Injective account.

Joins wallet balances, exchange sub-account balances and open derivative
positions into one priced view. Only the wallet balance read is required;
every other input degrades to an empty default when its upstream fails.
"""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Callable, Optional, Sequence

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.errors import UpstreamError
from core.markets.catalog import MarketCatalog
from core.portfolio.balances import merge_balance_amounts, value_balances
from core.portfolio.positions import build_position, to_decimal
from core.tokens.registry import TokenRegistry
from core.types import DerivativePosition, PortfolioResponse, PortfolioSummary
from core.upstream.address import subaccount_id
from core.upstream.interfaces import AccountQueries, BankQueries, DerivativeQueries
from core.upstream.types import SubaccountBalance

logger = logging.getLogger(__name__)

PRICE_MAP_CACHE_KEY = "portfolio:price_map"


def _now_ms() -> int:
    return int(time.time() * 1000)


class PortfolioAggregator:
    """Builds PortfolioResponse views."""

    def __init__(
        self,
        bank: BankQueries,
        derivatives: DerivativeQueries,
        accounts: AccountQueries,
        tokens: TokenRegistry,
        catalog: MarketCatalog,
        cache: TTLCache,
        config: Optional[LensConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            bank: Wallet balance source
            derivatives: Position source
            accounts: Sub-account balance source
            tokens: Price source
            catalog: Market tickers for positions
            cache: Shared TTL cache (price map)
            config: Cache lifetimes
            clock: Epoch-milliseconds time source for response timestamps
        """
        self._bank = bank
        self._derivatives = derivatives
        self._accounts = accounts
        self._tokens = tokens
        self._catalog = catalog
        self._cache = cache
        self._config = config or LensConfig()
        self._clock = clock or _now_ms

    async def get_portfolio(self, address: str) -> PortfolioResponse:
        """Aggregate the portfolio of ``address``.

        Args:
            address: Bech32 ``inj1…`` account address

        Raises:
            InvalidAddressError: If the address cannot be decoded
            UpstreamError: If wallet balances cannot be fetched
        """
        default_subaccount = subaccount_id(address)

        bank_balances, subaccount_balances, positions, price_map = await asyncio.gather(
            self._bank.fetch_balances(address),
            self._fetch_subaccount_balances(default_subaccount),
            self._fetch_positions(default_subaccount),
            self._get_price_map(),
            return_exceptions=True,
        )
        for outcome in (bank_balances, subaccount_balances, positions, price_map):
            if isinstance(outcome, BaseException):
                raise outcome

        balances = value_balances(merge_balance_amounts(bank_balances, subaccount_balances), price_map)

        total_balance_value = sum(b.value_usd for b in balances)
        total_margin = sum((to_decimal(p.margin) for p in positions), Decimal("0"))
        total_pnl = sum(p.unrealized_pnl for p in positions)

        summary = PortfolioSummary(
            total_balance_value_usd=total_balance_value,
            total_positions_value_usd=float(total_margin),
            total_unrealized_pnl=total_pnl,
            positions_count=len(positions),
        )
        return PortfolioResponse(
            address=address,
            total_value_usd=total_balance_value + float(total_margin),
            balances=tuple(balances),
            derivative_positions=tuple(positions),
            summary=summary,
            timestamp=self._clock(),
        )

    async def _fetch_subaccount_balances(self, subaccount: str) -> Sequence[SubaccountBalance]:
        try:
            return await self._accounts.fetch_subaccount_balances(subaccount)
        except UpstreamError as e:
            logger.warning("Sub-account balances unavailable for %s: %s", subaccount, e)
            return []

    async def _fetch_positions(self, subaccount: str) -> list[DerivativePosition]:
        try:
            records = await self._derivatives.fetch_positions(subaccount)
        except UpstreamError as e:
            logger.warning("Derivative positions unavailable for %s: %s", subaccount, e)
            return []
        if not records:
            return []

        try:
            tickers = {m.market_id: m.ticker for m in await self._catalog.get_all_markets()}
        except UpstreamError as e:
            logger.warning("Market catalog unavailable, positions shown without tickers: %s", e)
            tickers = {}

        return [build_position(record, tickers.get(record.market_id)) for record in records]

    async def _get_price_map(self) -> dict[str, float]:
        try:
            return await self._cache.get_or_compute(
                PRICE_MAP_CACHE_KEY, self._config.price_map_ttl, self._tokens.get_price_map
            )
        except UpstreamError as e:
            logger.warning("Token prices unavailable, balances valued at 0: %s", e)
            return {}
