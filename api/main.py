"""FastAPI application for the Ninja Lens aggregation API.

Endpoints:
- GET /health - Liveness, uptime and cache statistics
- GET /api/v1/tokens - Token list with USD prices
- GET /api/v1/tokens/{denom} - Single denom resolution
- GET /api/v1/markets - Market screener (filter, search, sort, paginate)
- GET /api/v1/markets/{market_id} - Single market
- GET /api/v1/markets/{market_id}/analytics - Liquidity score, spread, depth
- GET /api/v1/portfolio/{address} - Balances, positions and PnL in one call

Every response uses the ``{success, data, meta}`` / ``{success, error}``
envelope. No authentication.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import deps
from api.envelope import error_response
from api.routes import health, markets, portfolio, tokens

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    await deps.close_services()


app = FastAPI(
    title="Ninja Lens API",
    description="A single lens to see everything on Injective: portfolios, markets, analytics and tokens",
    version=health.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["GET"], allow_headers=["*"])

app.include_router(health.router)
app.include_router(tokens.router)
app.include_router(markets.router)
app.include_router(portfolio.router)


@app.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    return RedirectResponse(url="/docs")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    """Reject malformed query/path parameters with the standard envelope."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return error_response(400, "INVALID_REQUEST", details or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return error_response(404, "NOT_FOUND", "Endpoint not found. Visit /docs for API documentation.")
    return error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


@app.exception_handler(Exception)
async def global_exception_handler(_request: Request, exc: Exception):
    """Global exception handler to ensure consistent error responses."""
    logger.exception("Unhandled error", exc_info=exc)
    return error_response(500, "INTERNAL_ERROR", "An internal error occurred.")
