"""Response envelope shared by all endpoints.

Success: ``{"success": true, "data": ..., "meta": {..., "timestamp": ms}}``
Failure: ``{"success": false, "error": {"code": ..., "message": ...}}``
"""

from __future__ import annotations

import time
from typing import Any

from fastapi.responses import JSONResponse


def now_ms() -> int:
    return int(time.time() * 1000)


def ok(data: Any, **meta: Any) -> dict[str, Any]:
    return {"success": True, "data": data, "meta": {**meta, "timestamp": now_ms()}}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
    )
