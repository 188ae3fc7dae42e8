"""Portfolio aggregation.

Wallet and sub-account balances, derivative positions and their valuation.
"""

from .aggregator import PortfolioAggregator
from .balances import merge_balance_amounts, value_balances
from .positions import build_position, pnl_percent, unrealized_pnl

__all__ = [
    "PortfolioAggregator",
    # Balances
    "merge_balance_amounts",
    "value_balances",
    # Positions
    "build_position",
    "pnl_percent",
    "unrealized_pnl",
]
