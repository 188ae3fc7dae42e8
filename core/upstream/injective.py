"""HTTP adapters for the Injective chain LCD and exchange indexer.

Each adapter implements one of the query capabilities in
``core.upstream.interfaces`` on top of a shared ``httpx.AsyncClient``.
Failures are classified into transient/permanent ``UpstreamError``s and
transient ones are retried with exponential backoff.

Payload keys are read in either snake_case or camelCase, since the LCD and
the indexer gateway do not agree on a convention.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

import httpx

from core.config import LensConfig
from core.errors import (
    PermanentUpstreamError,
    TransientUpstreamError,
    classify_http_error,
)
from core.types import OrderBookLevel, OrderBookSnapshot
from core.upstream.types import (
    BankBalance,
    DenomMetadata,
    DerivativeMarketRecord,
    FundingRateRecord,
    PositionRecord,
    SpotMarketRecord,
    SubaccountBalance,
    TradeRecord,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

LCD_PAGE_LIMIT = 1000

# Chain LCD
BANK_BALANCES_PATH = "/cosmos/bank/v1beta1/balances/{address}"
DENOMS_METADATA_PATH = "/cosmos/bank/v1beta1/denoms_metadata"

# Indexer gateway
SPOT_MARKETS_PATH = "/api/exchange/spot/v1/markets"
SPOT_TRADES_PATH = "/api/exchange/spot/v1/trades"
SPOT_ORDERBOOK_PATH = "/api/exchange/spot/v2/orderbook/{market_id}"
DERIVATIVE_MARKETS_PATH = "/api/exchange/derivative/v1/markets"
DERIVATIVE_TRADES_PATH = "/api/exchange/derivative/v1/trades"
DERIVATIVE_FUNDING_RATES_PATH = "/api/exchange/derivative/v1/funding_rates"
DERIVATIVE_ORDERBOOK_PATH = "/api/exchange/derivative/v2/orderbook/{market_id}"
DERIVATIVE_POSITIONS_PATH = "/api/exchange/derivative/v1/positions"
SUBACCOUNT_BALANCES_PATH = "/api/exchange/accounts/v1/subaccount_balances/{subaccount_id}"


# ---------------------------------------------------------------------------
# Retry Logic
# ---------------------------------------------------------------------------


def with_retry(
    base_delay: float = 0.25,
    max_delay: float = 2.0,
    jitter: bool = True,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for exponential backoff with jitter on transient errors.

    The number of retries comes from the bound instance's ``max_retries``.

    Args:
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        jitter: Whether to add random jitter to delays
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs) -> T:
            max_retries = getattr(self, "max_retries", 0)
            attempt = 0
            while True:
                try:
                    return await func(self, *args, **kwargs)
                except TransientUpstreamError as e:
                    if attempt >= max_retries:
                        logger.warning("Giving up after %d attempt(s): %s", attempt + 1, e)
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    if jitter:
                        delay *= 0.5 + random.random()

                    logger.debug(
                        "Transient upstream error (attempt %d/%d): %s. Retrying in %.2fs",
                        attempt + 1,
                        max_retries + 1,
                        e,
                        delay,
                    )
                    attempt += 1
                    await asyncio.sleep(delay)

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _field(payload: Mapping[str, Any], name: str, default: Any = None) -> Any:
    """Read ``name`` (snake_case) or its camelCase twin from a payload."""
    if name in payload:
        return payload[name]
    return payload.get(_camel(name), default)


def _str(payload: Mapping[str, Any], name: str, default: str = "") -> str:
    value = _field(payload, name)
    if value is None or value == "":
        return default
    return str(value)


def _int(payload: Mapping[str, Any], name: str) -> int:
    value = _field(payload, name)
    try:
        return int(value) if value not in (None, "") else 0
    except (TypeError, ValueError):
        return 0


def _decimal(value: Any) -> Decimal:
    if value in (None, ""):
        return Decimal("0")
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise PermanentUpstreamError(f"Malformed numeric value in upstream payload: {value!r}") from exc
    if not number.is_finite():
        raise PermanentUpstreamError(f"Non-finite numeric value in upstream payload: {value!r}")
    return number


def _list(payload: Mapping[str, Any], name: str) -> list[Mapping[str, Any]]:
    items = _field(payload, name) or []
    if not isinstance(items, list):
        raise PermanentUpstreamError(f"Expected a list for '{name}', got {type(items).__name__}")
    return [item for item in items if isinstance(item, Mapping)]


def _levels(items: list[Mapping[str, Any]]) -> tuple[OrderBookLevel, ...]:
    return tuple(
        OrderBookLevel(price=_decimal(_field(item, "price")), quantity=_decimal(_field(item, "quantity")))
        for item in items
    )


# ---------------------------------------------------------------------------
# Base client
# ---------------------------------------------------------------------------


class _HttpQueryClient:
    """Shared request path for all adapters."""

    def __init__(self, client: httpx.AsyncClient, *, max_retries: int = 2) -> None:
        self._client = client
        self.max_retries = max_retries

    @with_retry()
    async def _get_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Mapping[str, Any]:
        """GET ``path`` and return the decoded JSON object.

        Raises:
            TransientUpstreamError: For retry-able failures
            PermanentUpstreamError: For non-retry-able failures
        """
        try:
            resp = await self._client.get(path, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise classify_http_error(
                e.response.status_code,
                f"GET {path} failed with {e.response.status_code}: {e.response.text[:200]}",
            ) from e
        except httpx.TimeoutException as e:
            raise TransientUpstreamError(f"GET {path} timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientUpstreamError(f"GET {path} network error: {e}") from e
        except ValueError as e:
            raise PermanentUpstreamError(f"GET {path} returned invalid JSON: {e}") from e

        if not isinstance(data, Mapping):
            raise PermanentUpstreamError(f"GET {path} returned {type(data).__name__}, expected an object")
        return data


# ---------------------------------------------------------------------------
# Chain bank (LCD)
# ---------------------------------------------------------------------------


class ChainBankClient(_HttpQueryClient):
    """Bank module queries against the chain LCD."""

    async def _paginate(self, path: str, items_key: str) -> list[Mapping[str, Any]]:
        items: list[Mapping[str, Any]] = []
        next_key: Optional[str] = None
        while True:
            params: dict[str, Any] = {"pagination.limit": LCD_PAGE_LIMIT}
            if next_key:
                params["pagination.key"] = next_key
            data = await self._get_json(path, params=params)
            items.extend(_list(data, items_key))
            next_key = _field(_field(data, "pagination") or {}, "next_key")
            if not next_key:
                return items

    async def fetch_balances(self, address: str) -> list[BankBalance]:
        items = await self._paginate(BANK_BALANCES_PATH.format(address=address), "balances")
        return [BankBalance(denom=_str(item, "denom"), amount=_str(item, "amount", "0")) for item in items]

    async def fetch_denoms_metadata(self) -> list[DenomMetadata]:
        items = await self._paginate(DENOMS_METADATA_PATH, "metadatas")
        return [
            DenomMetadata(
                base=_str(item, "base"),
                symbol=_str(item, "symbol"),
                name=_str(item, "name"),
                display=_str(item, "display"),
            )
            for item in items
        ]


# ---------------------------------------------------------------------------
# Indexer: spot, derivatives, accounts
# ---------------------------------------------------------------------------


class IndexerSpotClient(_HttpQueryClient):
    """Spot exchange queries against the indexer gateway."""

    async def fetch_markets(self) -> list[SpotMarketRecord]:
        data = await self._get_json(SPOT_MARKETS_PATH)
        return [
            SpotMarketRecord(
                market_id=_str(item, "market_id"),
                ticker=_str(item, "ticker"),
                base_denom=_str(item, "base_denom"),
                quote_denom=_str(item, "quote_denom"),
                market_status=_str(item, "market_status"),
                min_price_tick_size=_str(item, "min_price_tick_size", "0"),
                min_quantity_tick_size=_str(item, "min_quantity_tick_size", "0"),
            )
            for item in _list(data, "markets")
        ]

    async def fetch_trades(self, market_id: str, *, limit: int) -> list[TradeRecord]:
        data = await self._get_json(SPOT_TRADES_PATH, params={"market_id": market_id, "limit": limit})
        trades = []
        for item in _list(data, "trades"):
            # Spot trades nest price and quantity under "price".
            level = _field(item, "price")
            if isinstance(level, Mapping):
                price, quantity = _str(level, "price", "0"), _str(level, "quantity", "0")
            else:
                price, quantity = _str(item, "price", "0"), _str(item, "quantity", "0")
            trades.append(
                TradeRecord(
                    market_id=_str(item, "market_id", market_id),
                    price=price,
                    quantity=quantity,
                    executed_at=_int(item, "executed_at"),
                )
            )
        return trades

    async def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot:
        data = await self._get_json(SPOT_ORDERBOOK_PATH.format(market_id=market_id))
        book = _field(data, "orderbook") or {}
        return OrderBookSnapshot(bids=_levels(_list(book, "buys")), asks=_levels(_list(book, "sells")))


class IndexerDerivativesClient(_HttpQueryClient):
    """Derivative exchange queries against the indexer gateway."""

    async def fetch_markets(self) -> list[DerivativeMarketRecord]:
        data = await self._get_json(DERIVATIVE_MARKETS_PATH)
        return [
            DerivativeMarketRecord(
                market_id=_str(item, "market_id"),
                ticker=_str(item, "ticker"),
                quote_denom=_str(item, "quote_denom"),
                market_status=_str(item, "market_status"),
                min_price_tick_size=_str(item, "min_price_tick_size", "0"),
                min_quantity_tick_size=_str(item, "min_quantity_tick_size", "0"),
                oracle_type=_str(item, "oracle_type") or None,
                is_perpetual=bool(_field(item, "is_perpetual", False)),
            )
            for item in _list(data, "markets")
        ]

    async def fetch_trades(self, market_id: str, *, limit: int) -> list[TradeRecord]:
        data = await self._get_json(DERIVATIVE_TRADES_PATH, params={"market_id": market_id, "limit": limit})
        trades = []
        for item in _list(data, "trades"):
            delta = _field(item, "position_delta")
            if not isinstance(delta, Mapping):
                delta = {}
            trades.append(
                TradeRecord(
                    market_id=_str(item, "market_id", market_id),
                    price=_str(delta, "execution_price", "0"),
                    quantity=_str(delta, "execution_quantity", "0"),
                    executed_at=_int(item, "executed_at"),
                )
            )
        return trades

    async def fetch_funding_rates(self, market_id: str, *, limit: int) -> list[FundingRateRecord]:
        data = await self._get_json(DERIVATIVE_FUNDING_RATES_PATH, params={"market_id": market_id, "limit": limit})
        return [
            FundingRateRecord(
                market_id=_str(item, "market_id", market_id),
                rate=_str(item, "rate", "0"),
                timestamp=_int(item, "timestamp"),
            )
            for item in _list(data, "funding_rates")
        ]

    async def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot:
        data = await self._get_json(DERIVATIVE_ORDERBOOK_PATH.format(market_id=market_id))
        book = _field(data, "orderbook") or {}
        return OrderBookSnapshot(bids=_levels(_list(book, "buys")), asks=_levels(_list(book, "sells")))

    async def fetch_positions(self, subaccount_id: str) -> list[PositionRecord]:
        data = await self._get_json(DERIVATIVE_POSITIONS_PATH, params={"subaccount_id": subaccount_id})
        return [
            PositionRecord(
                market_id=_str(item, "market_id"),
                subaccount_id=_str(item, "subaccount_id", subaccount_id),
                ticker=_str(item, "ticker"),
                direction=_str(item, "direction"),
                quantity=_str(item, "quantity", "0"),
                entry_price=_str(item, "entry_price", "0"),
                mark_price=_str(item, "mark_price", "0"),
                margin=_str(item, "margin", "0"),
            )
            for item in _list(data, "positions")
        ]


class IndexerAccountClient(_HttpQueryClient):
    """Account queries against the indexer gateway."""

    async def fetch_subaccount_balances(self, subaccount_id: str) -> list[SubaccountBalance]:
        data = await self._get_json(SUBACCOUNT_BALANCES_PATH.format(subaccount_id=subaccount_id))
        balances = []
        for item in _list(data, "balances"):
            deposit = _field(item, "deposit") or {}
            balances.append(
                SubaccountBalance(
                    denom=_str(item, "denom"),
                    total_balance=_str(deposit, "total_balance", "0"),
                    available_balance=_str(deposit, "available_balance", "0"),
                )
            )
        return balances


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


@dataclass
class InjectiveClients:
    """All upstream query capabilities, sharing one HTTP client per host."""

    bank: ChainBankClient
    spot: IndexerSpotClient
    derivatives: IndexerDerivativesClient
    accounts: IndexerAccountClient
    _http_clients: tuple[httpx.AsyncClient, ...] = ()

    @classmethod
    def from_config(cls, config: LensConfig) -> InjectiveClients:
        timeout = httpx.Timeout(config.request_timeout_seconds)
        headers = {"Accept": "application/json", "User-Agent": "ninja-lens/1.0"}
        lcd = httpx.AsyncClient(base_url=config.lcd_url, timeout=timeout, headers=headers)
        indexer = httpx.AsyncClient(base_url=config.indexer_url, timeout=timeout, headers=headers)
        retries = config.max_retries
        return cls(
            bank=ChainBankClient(lcd, max_retries=retries),
            spot=IndexerSpotClient(indexer, max_retries=retries),
            derivatives=IndexerDerivativesClient(indexer, max_retries=retries),
            accounts=IndexerAccountClient(indexer, max_retries=retries),
            _http_clients=(lcd, indexer),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP connections."""
        for client in self._http_clients:
            try:
                await client.aclose()
            except httpx.HTTPError:
                logger.warning("Failed to close HTTP client", exc_info=True)


__all__ = [
    "ChainBankClient",
    "IndexerAccountClient",
    "IndexerDerivativesClient",
    "IndexerSpotClient",
    "InjectiveClients",
    "with_retry",
]
