"""Health check API endpoint."""

from __future__ import annotations

import time
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter

from api import deps
from api.envelope import now_ms

router = APIRouter(prefix="/health", tags=["System"])

SERVICE_NAME = "Ninja Lens API"
SERVICE_VERSION = "1.0.0"

# Track API start time
_api_start_time = time.monotonic()


@router.get("")
async def health_check() -> dict[str, Any]:
    """Service liveness, uptime and cache statistics.

    Does not touch any upstream.
    """
    stats = deps.get_services().cache.stats()
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "uptime": round(time.monotonic() - _api_start_time, 3),
        "cache": asdict(stats),
        "timestamp": now_ms(),
    }
