"""Runtime configuration for the Ninja Lens service.

Values come from environment variables; every field has a mainnet default so
the service runs without any configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_INDEXER_URL = "https://sentry.exchange.grpc-web.injective.network"
DEFAULT_LCD_URL = "https://sentry.lcd.injective.network"


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {raw!r}")
    return value


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {raw!r}")
    return value


@dataclass(frozen=True)
class LensConfig:
    """Upstream endpoints, HTTP policy and cache lifetimes (seconds)."""

    indexer_url: str = DEFAULT_INDEXER_URL
    lcd_url: str = DEFAULT_LCD_URL
    request_timeout_seconds: float = 10.0
    max_retries: int = 2

    tokens_ttl: float = 120.0
    markets_ttl: float = 60.0
    analytics_ttl: float = 15.0
    price_map_ttl: float = 60.0

    enrich_limit: int = 30
    enrich_concurrency: int = 10

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> LensConfig:
        """Build a config from environment variables.

        Args:
            env: Mapping to read from (defaults to ``os.environ``)

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if env is None else env
        return cls(
            indexer_url=env.get("INJECTIVE_INDEXER_URL", "").strip() or DEFAULT_INDEXER_URL,
            lcd_url=env.get("INJECTIVE_LCD_URL", "").strip() or DEFAULT_LCD_URL,
            request_timeout_seconds=_env_float(env, "LENS_HTTP_TIMEOUT", cls.request_timeout_seconds),
            max_retries=_env_int(env, "LENS_HTTP_MAX_RETRIES", cls.max_retries),
            tokens_ttl=_env_float(env, "LENS_TOKENS_TTL", cls.tokens_ttl),
            markets_ttl=_env_float(env, "LENS_MARKETS_TTL", cls.markets_ttl),
            analytics_ttl=_env_float(env, "LENS_ANALYTICS_TTL", cls.analytics_ttl),
            price_map_ttl=_env_float(env, "LENS_PRICE_MAP_TTL", cls.price_map_ttl),
            enrich_limit=_env_int(env, "LENS_ENRICH_LIMIT", cls.enrich_limit),
            enrich_concurrency=max(1, _env_int(env, "LENS_ENRICH_CONCURRENCY", cls.enrich_concurrency)),
        )
