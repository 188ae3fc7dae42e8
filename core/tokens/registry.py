"""Token registry with USD reference prices.

Builds the set of tokens traded on the exchange from the spot and
derivative market lists, names them from chain denom metadata (falling back
to the static denom resolver) and prices them from the latest trade of each
USDT-quoted spot market.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.denoms.resolver import DAI_DENOM, USDC_DENOM, USDT_DENOM, resolve_denom
from core.errors import UpstreamError
from core.types import Token
from core.upstream.interfaces import BankQueries, DerivativeQueries, SpotQueries
from core.upstream.types import DenomMetadata, DerivativeMarketRecord, SpotMarketRecord

logger = logging.getLogger(__name__)

TOKENS_CACHE_KEY = "tokens:all"

# Reference stablecoin that USD prices are derived from.
REFERENCE_QUOTE_DENOM = USDT_DENOM
STABLECOIN_PRICES: dict[str, float] = {
    USDT_DENOM: 1.0,
    USDC_DENOM: 1.0,
    DAI_DENOM: 1.0,
}


def human_price(raw_price: Decimal, base_decimals: int, quote_decimals: int) -> Decimal:
    """Convert a raw indexer spot price to quote tokens per base token.

    The indexer reports spot prices in quote base-units per base base-unit.
    """
    return raw_price * Decimal(10) ** (base_decimals - quote_decimals)


class TokenRegistry:
    """Cached token list and price lookups."""

    def __init__(
        self,
        bank: BankQueries,
        spot: SpotQueries,
        derivatives: DerivativeQueries,
        cache: TTLCache,
        config: Optional[LensConfig] = None,
    ) -> None:
        self._bank = bank
        self._spot = spot
        self._derivatives = derivatives
        self._cache = cache
        self._config = config or LensConfig()

    async def get_all_tokens(self) -> list[Token]:
        """Return every known token with its USD price.

        Raises:
            UpstreamError: If either market list cannot be fetched
        """
        tokens = await self._cache.get_or_compute(TOKENS_CACHE_KEY, self._config.tokens_ttl, self._build_tokens)
        return list(tokens)

    async def get_token(self, denom: str) -> Optional[Token]:
        """Look up a single token.

        Denoms missing from the exchange token set still resolve from the
        static table and naming rules, with a price of 0. Returns None only
        for a blank denom.
        """
        denom = denom.strip()
        if not denom:
            return None
        for token in await self.get_all_tokens():
            if token.denom == denom:
                return token
        meta = resolve_denom(denom)
        return Token(denom=denom, symbol=meta.symbol, name=meta.name, decimals=meta.decimals, logo=meta.logo)

    async def get_price(self, denom: str) -> float:
        """USD price of ``denom``, 0.0 when unknown."""
        return (await self.get_price_map()).get(denom, 0.0)

    async def get_price_map(self) -> dict[str, float]:
        """Map of denom to USD price over the current token set."""
        return {token.denom: token.price_usd for token in await self.get_all_tokens()}

    async def _build_tokens(self) -> tuple[Token, ...]:
        spot_markets, derivative_markets, metadata = await asyncio.gather(
            self._spot.fetch_markets(),
            self._derivatives.fetch_markets(),
            self._bank.fetch_denoms_metadata(),
            return_exceptions=True,
        )
        if isinstance(spot_markets, BaseException):
            raise spot_markets
        if isinstance(derivative_markets, BaseException):
            raise derivative_markets
        if isinstance(metadata, UpstreamError):
            logger.warning("Denom metadata unavailable, using built-in names: %s", metadata)
            metadata = []
        elif isinstance(metadata, BaseException):
            raise metadata

        metadata_by_base = {item.base: item for item in metadata if item.base}
        prices = await self._fetch_prices(spot_markets)

        tokens = tuple(
            self._make_token(denom, metadata_by_base.get(denom), prices.get(denom, 0.0))
            for denom in _collect_denoms(spot_markets, derivative_markets)
        )
        logger.info(
            "Built token registry: %d tokens from %d spot and %d derivative markets (%d priced)",
            len(tokens),
            len(spot_markets),
            len(derivative_markets),
            sum(1 for token in tokens if token.price_usd > 0),
        )
        return tokens

    @staticmethod
    def _make_token(denom: str, metadata: Optional[DenomMetadata], price_usd: float) -> Token:
        resolved = resolve_denom(denom)
        symbol = (metadata.symbol if metadata else "") or resolved.symbol
        name = (metadata.name if metadata else "") or resolved.name
        return Token(
            denom=denom,
            symbol=symbol,
            name=name,
            decimals=resolved.decimals,
            price_usd=price_usd,
            logo=resolved.logo,
        )

    async def _fetch_prices(self, spot_markets: Sequence[SpotMarketRecord]) -> dict[str, float]:
        """Price every base denom of a USDT-quoted spot market from its latest trade."""
        candidates = [m for m in spot_markets if m.quote_denom == REFERENCE_QUOTE_DENOM and m.base_denom]
        semaphore = asyncio.Semaphore(self._config.enrich_concurrency)

        async def latest_price(market: SpotMarketRecord) -> Optional[Decimal]:
            async with semaphore:
                try:
                    trades = await self._spot.fetch_trades(market.market_id, limit=1)
                except UpstreamError as e:
                    logger.debug("No price for %s: %s", market.ticker or market.market_id, e)
                    return None
            if not trades:
                return None
            try:
                raw = Decimal(trades[0].price)
            except InvalidOperation:
                raw = None
            if raw is None or not raw.is_finite():
                logger.debug("Unparseable trade price %r for %s", trades[0].price, market.market_id)
                return None
            if raw <= 0:
                return None
            return human_price(
                raw,
                resolve_denom(market.base_denom).decimals,
                resolve_denom(market.quote_denom).decimals,
            )

        results = await asyncio.gather(*(latest_price(m) for m in candidates))

        prices: dict[str, float] = {}
        for market, price in zip(candidates, results):
            if price is not None:
                prices[market.base_denom] = float(price)
        prices.update(STABLECOIN_PRICES)
        return prices


def _collect_denoms(
    spot_markets: Sequence[SpotMarketRecord],
    derivative_markets: Sequence[DerivativeMarketRecord],
) -> list[str]:
    """Distinct denoms in first-seen order."""
    seen: dict[str, None] = {}
    for market in spot_markets:
        for denom in (market.base_denom, market.quote_denom):
            if denom:
                seen.setdefault(denom, None)
    for market in derivative_markets:
        if market.quote_denom:
            seen.setdefault(market.quote_denom, None)
    return list(seen)
