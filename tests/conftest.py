"""Shared test fixtures for the cmdtrader test suite.

FakeAPI is a scriptable stand-in for an exchange adapter: it records every
call and answers order status queries from per-order scripts. FakeClock
replaces real sleeping with virtual time so algo loops run instantly.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
import whenever

from cmdtrader.drivers.paper import PaperExchange, PaperPerpExchange
from cmdtrader.engine.primitives import Balance, OrderInfo, Position, Ticker


# ── Time ──


@dataclass
class FakeClock:
    """Virtual clock: sleep() advances time and runs hooks instead of waiting."""

    t: float = 0.0
    sleeps: list[float] = field(default_factory=list)
    hooks: list[Callable[["FakeClock"], None]] = field(default_factory=list)

    def now(self) -> float:
        return self.t

    def wallclock(self) -> whenever.Instant:
        return whenever.Instant.from_timestamp(1_700_000_000 + int(self.t))

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.t += max(0.0, seconds)
        for hook in list(self.hooks):
            hook(self)

        await asyncio.sleep(0)


# ── Exchange adapter ──


def make_wallet(btc=1.5, usd=12000.0, btcAvailable=None, usdAvailable=None, **extra):
    wallet = [
        Balance("exchange", "btc", btc, btc if btcAvailable is None else btcAvailable),
        Balance("exchange", "usd", usd, usd if usdAvailable is None else usdAvailable),
    ]
    for currency, amount in extra.items():
        wallet.append(Balance("exchange", currency, amount, amount))

    return wallet


def open_info(handle, amount=1.0, executed=0.0, side="buy"):
    return OrderInfo(str(handle), side, amount, amount - executed, executed, False, True)


def filled_info(handle, amount=1.0, side="buy"):
    return OrderInfo(str(handle), side, amount, 0.0, amount, True, False)


def cancelled_info(handle, amount=1.0, executed=0.0, side="buy"):
    return OrderInfo(str(handle), side, amount, amount - executed, executed, False, False)


@dataclass
class FakeAPI:
    """Records calls; order handles are strings 'order-N'."""

    quote: Ticker = field(default_factory=lambda: Ticker(6540.0, 6560.0, 6545.0))
    wallet: list[Balance] = field(default_factory=make_wallet)
    held: list[Position] = field(default_factory=list)
    accountInfo: dict[str, Any] = field(default_factory=dict)
    precision: int = 6

    calls: list[tuple] = field(default_factory=list)
    # handle -> queued OrderInfo answers; the last one repeats
    statuses: dict[str, list[OrderInfo]] = field(default_factory=dict)
    active: list[str] = field(default_factory=list)
    failOn: set[str] = field(default_factory=set)
    counter: int = 0

    def named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    def _handle(self) -> str:
        self.counter += 1
        return f"order-{self.counter}"

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, *args))
        if name in self.failOn:
            raise RuntimeError(f"{name} failed")

    async def ticker(self, symbol):
        self._record("ticker", symbol)
        return self.quote

    async def walletBalances(self):
        self._record("walletBalances")
        return list(self.wallet)

    async def limitOrder(self, symbol, amount, price, side, isEverything):
        self._record("limitOrder", symbol, amount, price, side, isEverything)
        handle = self._handle()
        self.active.append(handle)
        return handle

    async def marketOrder(self, symbol, amount, side, isEverything):
        self._record("marketOrder", symbol, amount, side, isEverything)
        return self._handle()

    async def stopOrder(self, symbol, amount, price, side, trigger):
        self._record("stopOrder", symbol, amount, price, side, trigger)
        return self._handle()

    async def activeOrders(self, symbol, side):
        self._record("activeOrders", symbol, side)
        return list(self.active)

    async def cancelOrders(self, orders):
        self._record("cancelOrders", list(orders))

    async def order(self, handle):
        self._record("order", handle)
        queue = self.statuses.get(handle)
        if not queue:
            return open_info(handle)

        return queue.pop(0) if len(queue) > 1 else queue[0]

    async def positions(self):
        self._record("positions")
        return list(self.held)

    async def account(self):
        self._record("account")
        return dict(self.accountInfo)

    async def close(self):
        self._record("close")


# ── Fixtures ──


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def api():
    return FakeAPI()


def make_exchange(api=None, clock=None, **overrides):
    """Spot exchange with the full command set over a FakeAPI."""
    kwargs = dict(clock=clock or FakeClock()) | overrides
    return PaperExchange({}, api or FakeAPI(), **kwargs)


def make_contracts_exchange(api=None, clock=None, **overrides):
    kwargs = dict(clock=clock or FakeClock()) | overrides
    return PaperPerpExchange({}, api or FakeAPI(precision=0), **kwargs)


@pytest.fixture
def exchange(api, clock):
    return make_exchange(api, clock)
