"""Service wiring for the API.

All services share one TTL cache and one set of upstream clients. They are
built lazily on first use from ``LensConfig.from_env()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.markets.analytics import AnalyticsEngine
from core.markets.catalog import MarketCatalog
from core.portfolio.aggregator import PortfolioAggregator
from core.tokens.registry import TokenRegistry
from core.upstream.injective import InjectiveClients

logger = logging.getLogger(__name__)


@dataclass
class Services:
    config: LensConfig
    cache: TTLCache
    clients: InjectiveClients
    tokens: TokenRegistry
    catalog: MarketCatalog
    analytics: AnalyticsEngine
    portfolio: PortfolioAggregator


def build_services(config: LensConfig, clients: Optional[InjectiveClients] = None) -> Services:
    """Wire every service around a shared cache.

    Args:
        config: Runtime configuration
        clients: Upstream clients (default: HTTP clients built from config)
    """
    clients = clients or InjectiveClients.from_config(config)
    cache = TTLCache()
    tokens = TokenRegistry(clients.bank, clients.spot, clients.derivatives, cache, config)
    catalog = MarketCatalog(clients.spot, clients.derivatives, cache, config)
    return Services(
        config=config,
        cache=cache,
        clients=clients,
        tokens=tokens,
        catalog=catalog,
        analytics=AnalyticsEngine(catalog, clients.spot, clients.derivatives, cache, config),
        portfolio=PortfolioAggregator(
            clients.bank, clients.derivatives, clients.accounts, tokens, catalog, cache, config
        ),
    )


_services: Services | None = None


def get_services() -> Services:
    """Get or initialize the shared services."""
    global _services
    if _services is None:
        config = LensConfig.from_env()
        logger.info("Using indexer %s and LCD %s", config.indexer_url, config.lcd_url)
        _services = build_services(config)
    return _services


async def close_services() -> None:
    """Release upstream connections, if services were ever built."""
    global _services
    if _services is not None:
        await _services.clients.aclose()
        _services = None
