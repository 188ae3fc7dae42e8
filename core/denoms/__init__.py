"""Denom metadata resolution."""

from .resolver import KNOWN_DENOMS, resolve_denom, to_human_amount

__all__ = ["KNOWN_DENOMS", "resolve_denom", "to_human_amount"]
