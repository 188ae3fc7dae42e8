"""Unified wallet portfolio endpoint."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from api import deps
from api.envelope import error_response, ok
from api.schemas import PortfolioOut
from core.errors import InvalidInputError, LensError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/portfolio", tags=["Portfolio"])

ADDRESS_PREFIX = "inj1"
MIN_ADDRESS_LENGTH = 40


@router.get("/{address}")
async def get_portfolio(address: str) -> Any:
    """Balances, derivative positions and PnL for an ``inj1…`` address in one call."""
    if not address.startswith(ADDRESS_PREFIX) or len(address) < MIN_ADDRESS_LENGTH:
        return error_response(
            400,
            "INVALID_ADDRESS",
            "Invalid Injective address. Must start with 'inj1' and be at least 40 characters.",
        )

    try:
        portfolio = await deps.get_services().portfolio.get_portfolio(address)
    except InvalidInputError as e:
        return error_response(e.status_code, e.code, e.message)
    except LensError as e:
        logger.warning("Portfolio failed for %s: %s", address, e)
        return error_response(e.status_code, "PORTFOLIO_FETCH_ERROR", e.message)

    return ok(PortfolioOut.model_validate(portfolio).to_json(), cached=True)
