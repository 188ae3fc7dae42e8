"""Token metadata and denom resolution endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Path

from api import deps
from api.envelope import error_response, ok
from api.schemas import TokenOut
from core.errors import LensError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tokens", tags=["Tokens"])


@router.get("")
async def list_tokens() -> Any:
    """All tokens traded on the exchange, with USD prices."""
    try:
        tokens = await deps.get_services().tokens.get_all_tokens()
    except LensError as e:
        logger.warning("Token list failed: %s", e)
        return error_response(e.status_code, "TOKEN_FETCH_ERROR", e.message)

    return ok([TokenOut.model_validate(t).to_json() for t in tokens], total=len(tokens), cached=True)


@router.get("/{denom:path}")
async def get_token(denom: str = Path(..., description="Raw denom, e.g. peggy0x... or ibc/...")) -> Any:
    """Resolve a single denom. Slashes in IBC and factory denoms are accepted as-is."""
    try:
        token = await deps.get_services().tokens.get_token(denom)
    except LensError as e:
        logger.warning("Token lookup failed for %s: %s", denom, e)
        return error_response(e.status_code, "TOKEN_FETCH_ERROR", e.message)

    if token is None:
        return error_response(404, "TOKEN_NOT_FOUND", f"Token not found: {denom}")
    return ok(TokenOut.model_validate(token).to_json())
