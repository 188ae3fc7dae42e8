from __future__ import annotations

from typing import Protocol, Sequence

from core.types import OrderBookSnapshot
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


class BankQueries(Protocol):
    """Chain bank module."""

    async def fetch_balances(self, address: str) -> Sequence[BankBalance]:
        raise NotImplementedError

    async def fetch_denoms_metadata(self) -> Sequence[DenomMetadata]:
        raise NotImplementedError


class SpotQueries(Protocol):
    """Indexer spot exchange API."""

    async def fetch_markets(self) -> Sequence[SpotMarketRecord]:
        raise NotImplementedError

    async def fetch_trades(self, market_id: str, *, limit: int) -> Sequence[TradeRecord]:
        raise NotImplementedError

    async def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot:
        raise NotImplementedError


class DerivativeQueries(Protocol):
    """Indexer derivative exchange API."""

    async def fetch_markets(self) -> Sequence[DerivativeMarketRecord]:
        raise NotImplementedError

    async def fetch_trades(self, market_id: str, *, limit: int) -> Sequence[TradeRecord]:
        raise NotImplementedError

    async def fetch_funding_rates(self, market_id: str, *, limit: int) -> Sequence[FundingRateRecord]:
        raise NotImplementedError

    async def fetch_orderbook(self, market_id: str) -> OrderBookSnapshot:
        raise NotImplementedError

    async def fetch_positions(self, subaccount_id: str) -> Sequence[PositionRecord]:
        raise NotImplementedError


class AccountQueries(Protocol):
    """Indexer account API."""

    async def fetch_subaccount_balances(self, subaccount_id: str) -> Sequence[SubaccountBalance]:
        raise NotImplementedError
