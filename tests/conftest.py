"""Shared test fixtures for pytest.

Provides in-memory fakes for the upstream query capabilities and sample
market data used across multiple test files.
"""

from collections import Counter
from decimal import Decimal
from typing import Any, Optional

import pytest

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.denoms.resolver import USDC_DENOM, USDT_DENOM
from core.types import OrderBookLevel, OrderBookSnapshot
from core.upstream.types import (
    DerivativeMarketRecord,
    SpotMarketRecord,
    TradeRecord,
)

# Documented example account; its Ethereum form is 0xbdaedec95d563fb05240d6e01821008454c24c36
INJ_ADDRESS = "inj1hkhdaj2a2clmq5jq6mspsggqs32vynpk228q3r"
ETH_ADDRESS = "0xbdaedec95d563fb05240d6e01821008454c24c36"
SUBACCOUNT_ID = ETH_ADDRESS + "0" * 24

WETH_DENOM = "peggy0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"

INJ_USDT = "0x0611780ba69656949525013d947713300f56c37b6175e02f26bffa495c3208fe"
WETH_USDT = "0xd1956e20d74eeb1febe31cd37060781ff1cb266f49e0512b446a5fafa9a16034"
USDC_USDT = "0xda0bb7a7d8361d17a9d2327ed161748f33ecbf02738b45a7dd1d812735d1531c"
INJ_PERP = "0x9b9980167ecc3645ff1a5517886652d94a0825e54a77d2057cbbe3ebee015963"
BTC_FUTURE = "0x4ca0f92fc28be0c9761326016b5a1a2177dd6375558365116b5bdda9abc229ce"


def _pick(value: Any, key: str) -> Any:
    """Resolve a per-key canned response; exceptions are raised."""
    if isinstance(value, dict):
        value = value.get(key, [])
    if isinstance(value, BaseException):
        raise value
    return value


class FakeBank:
    def __init__(self, balances: Any = None, metadata: Any = None) -> None:
        self.balances = balances if balances is not None else []
        self.metadata = metadata if metadata is not None else []
        self.calls: Counter = Counter()

    async def fetch_balances(self, address: str):
        self.calls["balances"] += 1
        return _pick(self.balances, address)

    async def fetch_denoms_metadata(self):
        self.calls["metadata"] += 1
        return _pick(self.metadata, "")


class FakeSpot:
    def __init__(
        self,
        markets: Any = None,
        trades: Optional[dict[str, Any]] = None,
        orderbooks: Optional[dict[str, Any]] = None,
    ) -> None:
        self.markets = markets if markets is not None else []
        self.trades = trades or {}
        self.orderbooks = orderbooks or {}
        self.calls: Counter = Counter()

    async def fetch_markets(self):
        self.calls["markets"] += 1
        return _pick(self.markets, "")

    async def fetch_trades(self, market_id: str, *, limit: int):
        self.calls["trades"] += 1
        return _pick(self.trades, market_id)

    async def fetch_orderbook(self, market_id: str):
        self.calls["orderbook"] += 1
        book = self.orderbooks.get(market_id, OrderBookSnapshot())
        if isinstance(book, BaseException):
            raise book
        return book


class FakeDerivatives:
    def __init__(
        self,
        markets: Any = None,
        trades: Optional[dict[str, Any]] = None,
        funding_rates: Optional[dict[str, Any]] = None,
        orderbooks: Optional[dict[str, Any]] = None,
        positions: Any = None,
    ) -> None:
        self.markets = markets if markets is not None else []
        self.trades = trades or {}
        self.funding_rates = funding_rates or {}
        self.orderbooks = orderbooks or {}
        self.positions = positions if positions is not None else []
        self.calls: Counter = Counter()

    async def fetch_markets(self):
        self.calls["markets"] += 1
        return _pick(self.markets, "")

    async def fetch_trades(self, market_id: str, *, limit: int):
        self.calls["trades"] += 1
        return _pick(self.trades, market_id)

    async def fetch_funding_rates(self, market_id: str, *, limit: int):
        self.calls["funding_rates"] += 1
        return _pick(self.funding_rates, market_id)

    async def fetch_orderbook(self, market_id: str):
        self.calls["orderbook"] += 1
        book = self.orderbooks.get(market_id, OrderBookSnapshot())
        if isinstance(book, BaseException):
            raise book
        return book

    async def fetch_positions(self, subaccount_id: str):
        self.calls["positions"] += 1
        return _pick(self.positions, subaccount_id)


class FakeAccounts:
    def __init__(self, balances: Any = None) -> None:
        self.balances = balances if balances is not None else []
        self.calls: Counter = Counter()

    async def fetch_subaccount_balances(self, subaccount_id: str):
        self.calls["subaccount_balances"] += 1
        return _pick(self.balances, subaccount_id)


def book(bids: list[tuple[str, str]], asks: list[tuple[str, str]]) -> OrderBookSnapshot:
    """Build an order book from (price, quantity) string pairs."""
    return OrderBookSnapshot(
        bids=tuple(OrderBookLevel(Decimal(p), Decimal(q)) for p, q in bids),
        asks=tuple(OrderBookLevel(Decimal(p), Decimal(q)) for p, q in asks),
    )


@pytest.fixture
def config() -> LensConfig:
    return LensConfig()


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache()


@pytest.fixture
def spot_markets() -> list[SpotMarketRecord]:
    """INJ/USDT, WETH/USDT and USDC/USDT spot markets."""
    return [
        SpotMarketRecord(
            market_id=INJ_USDT,
            ticker="INJ/USDT",
            base_denom="inj",
            quote_denom=USDT_DENOM,
            market_status="active",
            min_price_tick_size="0.000000000000001",
            min_quantity_tick_size="1000000000000000",
        ),
        SpotMarketRecord(
            market_id=WETH_USDT,
            ticker="WETH/USDT",
            base_denom=WETH_DENOM,
            quote_denom=USDT_DENOM,
            market_status="active",
        ),
        SpotMarketRecord(
            market_id=USDC_USDT,
            ticker="",
            base_denom=USDC_DENOM,
            quote_denom=USDT_DENOM,
        ),
    ]


@pytest.fixture
def derivative_markets() -> list[DerivativeMarketRecord]:
    """An INJ perpetual and a dated BTC future, both USDT-quoted."""
    return [
        DerivativeMarketRecord(
            market_id=INJ_PERP,
            ticker="INJ/USDT PERP",
            quote_denom=USDT_DENOM,
            market_status="active",
            oracle_type="bandibc",
            is_perpetual=True,
        ),
        DerivativeMarketRecord(
            market_id=BTC_FUTURE,
            ticker="BTC/USDT 24-DEC",
            quote_denom=USDT_DENOM,
            market_status="",
            is_perpetual=False,
        ),
    ]


@pytest.fixture
def spot_trades() -> dict[str, list[TradeRecord]]:
    """Raw indexer prices: quote base-units per base base-unit."""
    return {
        # 25 USDT per INJ: 25 * 10^(6 - 18)
        INJ_USDT: [TradeRecord(market_id=INJ_USDT, price="0.000000000025", quantity="1000000000000000000")],
        # 3000 USDT per WETH
        WETH_USDT: [TradeRecord(market_id=WETH_USDT, price="0.000000003", quantity="1000000000000000000")],
        USDC_USDT: [TradeRecord(market_id=USDC_USDT, price="0.999", quantity="1000000")],
    }
