"""Market discovery and analytics endpoints."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Query

from api import deps
from api.envelope import error_response, ok
from api.schemas import MarketAnalyticsOut, MarketOut
from core.errors import LensError
from core.types import MarketSort, MarketsQuery, MarketTypeFilter, SortOrder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/markets", tags=["Markets"])


@router.get("")
async def list_markets(
    type: MarketTypeFilter = Query("all", description="Market type filter"),
    sort: MarketSort = Query("volume", description="Sort field"),
    order: SortOrder = Query("desc", description="Sort order"),
    search: Optional[str] = Query(None, description="Search by ticker or symbol"),
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> Any:
    """Spot and derivative markets with filtering, search, sorting and pagination."""
    query = MarketsQuery(type=type, sort=sort, order=order, search=search or None, limit=limit, offset=offset)
    try:
        markets, total = await deps.get_services().catalog.get_markets(query)
    except LensError as e:
        logger.warning("Market list failed: %s", e)
        return error_response(e.status_code, "MARKETS_FETCH_ERROR", e.message)

    return ok(
        [MarketOut.model_validate(m).to_json() for m in markets],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{market_id}")
async def get_market(market_id: str) -> Any:
    try:
        market = await deps.get_services().catalog.get_market(market_id)
    except LensError as e:
        logger.warning("Market lookup failed for %s: %s", market_id, e)
        return error_response(e.status_code, "MARKET_FETCH_ERROR", e.message)

    if market is None:
        return error_response(404, "MARKET_NOT_FOUND", "Market not found")
    return ok(MarketOut.model_validate(market).to_json())


@router.get("/{market_id}/analytics")
async def get_market_analytics(market_id: str) -> Any:
    """Liquidity score, spread and order book depth for one market."""
    try:
        analytics = await deps.get_services().analytics.get_market_analytics(market_id)
    except LensError as e:
        logger.warning("Analytics failed for %s: %s", market_id, e)
        return error_response(e.status_code, "ANALYTICS_FETCH_ERROR", e.message)

    if analytics is None:
        return error_response(404, "ANALYTICS_NOT_FOUND", "Market not found or no analytics available")
    return ok(MarketAnalyticsOut.from_analytics(analytics).to_json())
