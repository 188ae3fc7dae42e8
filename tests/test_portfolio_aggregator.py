"""Tests for portfolio aggregation, balance merging and position PnL."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import AsyncMock, Mock

import pytest

from core.cache.ttl import TTLCache
from core.config import LensConfig
from core.denoms.resolver import USDT_DENOM
from core.errors import InvalidAddressError, PermanentUpstreamError, TransientUpstreamError
from core.portfolio.aggregator import PRICE_MAP_CACHE_KEY, PortfolioAggregator
from core.portfolio.balances import merge_balance_amounts, value_balances
from core.portfolio.positions import build_position, pnl_percent, unrealized_pnl
from core.types import MarketInfo
from core.upstream.types import BankBalance, PositionRecord, SubaccountBalance
from conftest import (
    BTC_FUTURE,
    INJ_ADDRESS,
    INJ_PERP,
    SUBACCOUNT_ID,
    WETH_DENOM,
    FakeAccounts,
    FakeBank,
    FakeDerivatives,
)

NINJA_DENOM = "factory/inj1xyz/ninja"
NOW_MS = 1_700_000_000_000

PRICES = {"inj": 25.0, USDT_DENOM: 1.0, WETH_DENOM: 3000.0}


# ---------------------------------------------------------------------------
# PnL
# ---------------------------------------------------------------------------


def test_long_pnl():
    pnl = unrealized_pnl("long", Decimal("20"), Decimal("25"), Decimal("10"))
    assert pnl == Decimal("50")
    assert pnl_percent(pnl, Decimal("20"), Decimal("10")) == Decimal("25")


def test_short_pnl():
    pnl = unrealized_pnl("short", Decimal("60000"), Decimal("64000"), Decimal("0.5"))
    assert pnl == Decimal("-2000")
    assert float(pnl_percent(pnl, Decimal("60000"), Decimal("0.5"))) == pytest.approx(-6.6667, abs=1e-4)


def test_pnl_on_btc_position():
    entry, mark, quantity = Decimal("42000"), Decimal("43500"), Decimal("0.1")

    long = unrealized_pnl("long", entry, mark, quantity)
    short = unrealized_pnl("short", entry, mark, quantity)

    assert float(long) == 150.0
    assert float(pnl_percent(long, entry, quantity)) == pytest.approx(3.5714, abs=1e-4)
    assert float(short) == -150.0


def test_pnl_is_zero_without_prices_or_direction():
    assert unrealized_pnl("long", Decimal("0"), Decimal("25"), Decimal("1")) == 0
    assert unrealized_pnl("short", Decimal("10"), Decimal("0"), Decimal("1")) == 0
    assert unrealized_pnl("unknown", Decimal("10"), Decimal("12"), Decimal("1")) == 0
    assert pnl_percent(Decimal("5"), Decimal("10"), Decimal("0")) == 0


def test_build_position_without_catalog_entry():
    record = PositionRecord(market_id="0xgone", direction="LONG", quantity="1", entry_price="", mark_price="3")

    position = build_position(record, None)

    assert position.ticker == "Unknown"
    assert position.market_name == "0xgone"
    assert position.direction == "long"
    assert position.entry_price == "0"
    assert position.margin == "0"
    assert position.unrealized_pnl == 0.0
    assert position.unrealized_pnl_percent == 0.0


@pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity", "sNaN"])
def test_non_finite_prices_give_zero_pnl(bad):
    record = PositionRecord(market_id=INJ_PERP, direction="short", quantity="2", entry_price="30", mark_price=bad)

    position = build_position(record, "INJ/USDT PERP")

    assert position.unrealized_pnl == 0.0
    assert position.unrealized_pnl_percent == 0.0


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


def test_merge_sums_base_units_per_denom():
    bank = [BankBalance("inj", "2500000000000000000"), BankBalance(USDT_DENOM, "100000000")]
    subaccount = [
        SubaccountBalance(USDT_DENOM, total_balance="50000000.75"),
        SubaccountBalance("inj", total_balance="0"),
        SubaccountBalance(WETH_DENOM, total_balance="1000000000000000000"),
        SubaccountBalance("peggy0xdead", total_balance="-5"),
    ]

    amounts = merge_balance_amounts(bank, subaccount)

    assert amounts == {
        "inj": 2500000000000000000,
        USDT_DENOM: 150000000,
        WETH_DENOM: 1000000000000000000,
    }


def test_merge_ignores_non_finite_amounts():
    bank = [BankBalance("inj", "Infinity"), BankBalance(USDT_DENOM, "5000000")]
    subaccount = [SubaccountBalance(USDT_DENOM, total_balance="NaN")]

    assert merge_balance_amounts(bank, subaccount) == {"inj": 0, USDT_DENOM: 5000000}


def test_value_balances_sorted_by_usd():
    balances = value_balances({"inj": 2500000000000000000, USDT_DENOM: 150000000, NINJA_DENOM: 1}, PRICES)

    assert [b.symbol for b in balances] == ["USDT", "INJ", "NINJA"]
    assert balances[0].amount_human == "150"
    assert balances[1].amount_human == "2.5"
    assert balances[1].value_usd == pytest.approx(62.5)
    assert balances[2].amount_human == "0.000000000000000001"
    assert balances[2].value_usd == 0.0


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


def _positions() -> list[PositionRecord]:
    return [
        PositionRecord(
            market_id=INJ_PERP,
            subaccount_id=SUBACCOUNT_ID,
            direction="long",
            quantity="10",
            entry_price="20",
            mark_price="25",
            margin="100",
        ),
        PositionRecord(
            market_id=BTC_FUTURE,
            subaccount_id=SUBACCOUNT_ID,
            direction="short",
            quantity="0.5",
            entry_price="60000",
            mark_price="64000",
            margin="3000",
        ),
    ]


def _catalog(markets=None, error=None) -> Mock:
    catalog = Mock()
    if error is not None:
        catalog.get_all_markets = AsyncMock(side_effect=error)
    else:
        catalog.get_all_markets = AsyncMock(return_value=markets or [])
    return catalog


def _tokens(prices=None, error=None) -> Mock:
    tokens = Mock()
    if error is not None:
        tokens.get_price_map = AsyncMock(side_effect=error)
    else:
        tokens.get_price_map = AsyncMock(return_value=dict(prices or PRICES))
    return tokens


def _aggregator(bank, derivatives, accounts, tokens=None, catalog=None, cache=None) -> PortfolioAggregator:
    return PortfolioAggregator(
        bank=bank,
        derivatives=derivatives,
        accounts=accounts,
        tokens=tokens or _tokens(),
        catalog=catalog
        or _catalog(
            [
                MarketInfo(market_id=INJ_PERP, ticker="INJ/USDT PERP", type="perpetual"),
                MarketInfo(market_id=BTC_FUTURE, ticker="BTC/USDT 24-DEC", type="derivative"),
            ]
        ),
        cache=cache or TTLCache(),
        config=LensConfig(),
        clock=lambda: NOW_MS,
    )


@pytest.fixture
def bank() -> FakeBank:
    return FakeBank(
        balances=[
            BankBalance("inj", "2500000000000000000"),
            BankBalance(USDT_DENOM, "100000000"),
            BankBalance(NINJA_DENOM, "1000000000000000000"),
        ]
    )


@pytest.fixture
def accounts() -> FakeAccounts:
    return FakeAccounts(
        balances=[
            SubaccountBalance(USDT_DENOM, total_balance="50000000.75", available_balance="50000000"),
            SubaccountBalance(WETH_DENOM, total_balance="1000000000000000000"),
        ]
    )


@pytest.mark.asyncio
async def test_full_portfolio(bank, accounts):
    derivatives = FakeDerivatives(positions=_positions())
    aggregator = _aggregator(bank, derivatives, accounts)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert portfolio.address == INJ_ADDRESS
    assert portfolio.timestamp == NOW_MS
    assert [b.symbol for b in portfolio.balances] == ["WETH", "USDT", "INJ", "NINJA"]
    assert portfolio.balances[1].amount == "150000000"

    long, short = portfolio.derivative_positions
    assert long.ticker == "INJ/USDT PERP"
    assert long.unrealized_pnl == pytest.approx(50.0)
    assert long.unrealized_pnl_percent == pytest.approx(25.0)
    assert short.ticker == "BTC/USDT 24-DEC"
    assert short.unrealized_pnl == pytest.approx(-2000.0)

    summary = portfolio.summary
    assert summary.total_balance_value_usd == pytest.approx(3212.5)
    assert summary.total_positions_value_usd == pytest.approx(3100.0)
    assert summary.total_unrealized_pnl == pytest.approx(-1950.0)
    assert summary.positions_count == 2
    assert portfolio.total_value_usd == pytest.approx(6312.5)


@pytest.mark.asyncio
async def test_queries_use_default_subaccount():
    derivatives = FakeDerivatives(positions={SUBACCOUNT_ID: _positions()})
    accounts = FakeAccounts(balances={SUBACCOUNT_ID: [SubaccountBalance(USDT_DENOM, total_balance="1000000")]})
    aggregator = _aggregator(FakeBank(), derivatives, accounts)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert portfolio.summary.positions_count == 2
    assert portfolio.balances[0].amount_human == "1"


@pytest.mark.asyncio
async def test_invalid_address_fails_fast():
    bank = FakeBank()
    aggregator = _aggregator(bank, FakeDerivatives(), FakeAccounts())

    with pytest.raises(InvalidAddressError):
        await aggregator.get_portfolio("inj1hkhdaj2a2clmq5jq6mspsggqs32vynpk228q3q")
    assert bank.calls["balances"] == 0


@pytest.mark.asyncio
async def test_bank_failure_propagates(accounts):
    bank = FakeBank(balances=TransientUpstreamError("lcd down", 503))
    aggregator = _aggregator(bank, FakeDerivatives(positions=_positions()), accounts)

    with pytest.raises(TransientUpstreamError):
        await aggregator.get_portfolio(INJ_ADDRESS)


@pytest.mark.asyncio
async def test_subaccount_and_position_failures_degrade(bank):
    derivatives = FakeDerivatives(positions=PermanentUpstreamError("bad subaccount", 400))
    accounts = FakeAccounts(balances=TransientUpstreamError("timeout"))
    aggregator = _aggregator(bank, derivatives, accounts)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert portfolio.derivative_positions == ()
    assert portfolio.summary.positions_count == 0
    assert [b.symbol for b in portfolio.balances] == ["USDT", "INJ", "NINJA"]
    assert portfolio.total_value_usd == pytest.approx(162.5)


@pytest.mark.asyncio
async def test_catalog_failure_keeps_positions(bank, accounts):
    catalog = _catalog(error=TransientUpstreamError("indexer down"))
    aggregator = _aggregator(bank, FakeDerivatives(positions=_positions()), accounts, catalog=catalog)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert [p.ticker for p in portfolio.derivative_positions] == ["Unknown", "Unknown"]
    assert portfolio.derivative_positions[0].market_name == INJ_PERP
    assert portfolio.derivative_positions[0].unrealized_pnl == pytest.approx(50.0)


@pytest.mark.asyncio
async def test_non_finite_position_values_do_not_fail_portfolio(bank, accounts):
    positions = [
        PositionRecord(
            market_id=INJ_PERP,
            direction="long",
            quantity="10",
            entry_price="20",
            mark_price="NaN",
            margin="Infinity",
        )
    ]
    aggregator = _aggregator(bank, FakeDerivatives(positions=positions), accounts)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert portfolio.derivative_positions[0].unrealized_pnl == 0.0
    assert portfolio.summary.total_positions_value_usd == 0.0
    assert portfolio.summary.positions_count == 1


@pytest.mark.asyncio
async def test_price_map_failure_values_at_zero_and_is_not_cached(bank, accounts):
    cache = TTLCache()
    tokens = _tokens(error=TransientUpstreamError("indexer down"))
    aggregator = _aggregator(bank, FakeDerivatives(), accounts, tokens=tokens, cache=cache)

    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)

    assert portfolio.summary.total_balance_value_usd == 0.0
    assert all(b.value_usd == 0.0 for b in portfolio.balances)
    assert cache.get(PRICE_MAP_CACHE_KEY) is None

    tokens.get_price_map = AsyncMock(return_value=dict(PRICES))
    portfolio = await aggregator.get_portfolio(INJ_ADDRESS)
    assert portfolio.summary.total_balance_value_usd == pytest.approx(3212.5)


@pytest.mark.asyncio
async def test_price_map_is_cached(bank, accounts):
    tokens = _tokens()
    aggregator = _aggregator(bank, FakeDerivatives(), accounts, tokens=tokens)

    await aggregator.get_portfolio(INJ_ADDRESS)
    await aggregator.get_portfolio(INJ_ADDRESS)

    assert tokens.get_price_map.await_count == 1
