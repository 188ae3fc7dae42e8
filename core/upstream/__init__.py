"""Upstream query capabilities and their Injective HTTP adapters."""

from .interfaces import AccountQueries, BankQueries, DerivativeQueries, SpotQueries

__all__ = [
    "AccountQueries",
    "BankQueries",
    "DerivativeQueries",
    "SpotQueries",
]
