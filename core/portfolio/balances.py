"""Wallet balance merging and valuation.

Bank (wallet) and exchange sub-account balances are summed per denom in
integer base units, then converted to human amounts and valued in USD.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Mapping, Sequence

from core.denoms.resolver import resolve_denom, to_human_amount
from core.types import PortfolioBalance
from core.upstream.types import BankBalance, SubaccountBalance


def _base_units(value: str) -> int:
    """Whole base units in ``value``; fractional parts are truncated."""
    try:
        return int(Decimal(value or "0").to_integral_value(rounding=ROUND_DOWN))
    except (InvalidOperation, ValueError, OverflowError):
        return 0


def merge_balance_amounts(
    bank_balances: Sequence[BankBalance],
    subaccount_balances: Sequence[SubaccountBalance],
) -> dict[str, int]:
    """Sum bank and sub-account holdings per denom.

    Denoms keep first-seen order (bank first). Sub-account entries whose
    total is not positive are skipped.

    Returns:
        Mapping of denom to total amount in base units
    """
    amounts: dict[str, int] = {}
    for balance in bank_balances:
        if not balance.denom:
            continue
        amounts[balance.denom] = amounts.get(balance.denom, 0) + max(_base_units(balance.amount), 0)

    for balance in subaccount_balances:
        total = _base_units(balance.total_balance)
        if not balance.denom or total <= 0:
            continue
        amounts[balance.denom] = amounts.get(balance.denom, 0) + total

    return amounts


def value_balances(amounts: Mapping[str, int], price_map: Mapping[str, float]) -> list[PortfolioBalance]:
    """Build priced balances, most valuable first."""
    balances = []
    for denom, amount in amounts.items():
        meta = resolve_denom(denom)
        amount_human = to_human_amount(str(amount), meta.decimals)
        price = price_map.get(denom, 0.0)
        balances.append(
            PortfolioBalance(
                denom=denom,
                symbol=meta.symbol,
                amount=str(amount),
                amount_human=amount_human,
                value_usd=float(Decimal(amount_human) * Decimal(str(price))),
            )
        )
    balances.sort(key=lambda b: b.value_usd, reverse=True)
    return balances
