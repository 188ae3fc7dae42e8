"""Market catalog and order book analytics."""

from .analytics import AnalyticsEngine, compute_analytics
from .catalog import MarketCatalog, filter_markets

__all__ = [
    "AnalyticsEngine",
    "MarketCatalog",
    "compute_analytics",
    "filter_markets",
]
