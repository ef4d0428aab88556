"""Simulated in-memory exchanges for dry runs and tests.

The market is a single bid/ask per symbol, moved with setPrice(). Market
orders fill immediately; limit and stop orders rest until the simulated
price crosses them, which is checked whenever the market moves or an order
is queried.
"""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from cmdtrader.drivers.ratelimit import RateLimiter
from cmdtrader.engine.clock import AppClock
from cmdtrader.engine.errors import TransportError
from cmdtrader.engine.exchange import ORDER_COMMANDS, BASE_COMMANDS, ContractsExchange, Exchange
from cmdtrader.engine.primitives import Balance, OrderInfo, Position, Ticker, split_symbol


@dataclass(slots=True)
class PaperOrder:
    id: str
    symbol: str
    kind: str
    side: str
    amount: float
    price: float
    executed: float = 0.0
    cancelled: bool = False

    @property
    def is_filled(self) -> bool:
        return self.executed >= self.amount

    @property
    def is_open(self) -> bool:
        return not (self.cancelled or self.is_filled)


def parse_wallet(text: str) -> dict[str, float]:
    """'btc=1.5, usd=12000' -> {'btc': 1.5, 'usd': 12000.0}"""
    wallet: dict[str, float] = {}
    for part in (text or "").split(","):
        if "=" in part:
            currency, amount = part.split("=", 1)
            wallet[currency.strip().lower()] = float(amount)

    return wallet


@dataclass
class PaperAPI:
    """Spot market simulation over a single wallet."""

    wallet: dict[str, float] = field(default_factory=dict)
    prices: dict[str, Ticker] = field(default_factory=dict)
    spread: float = 1.0
    defaultPrice: float = 1000.0
    precision: int = 6
    limiter: RateLimiter = field(default_factory=RateLimiter)
    orders: dict[str, PaperOrder] = field(default_factory=dict)
    closed: bool = False
    ids: Any = field(default_factory=lambda: itertools.count(1))

    @classmethod
    def fromCredentials(cls, credentials: Mapping[str, str], clock: AppClock) -> PaperAPI:
        return cls(
            wallet=parse_wallet(credentials.get("wallet", "btc=1,usd=10000")),
            spread=float(credentials.get("spread", 1)),
            defaultPrice=float(credentials.get("price", 1000)),
            limiter=RateLimiter(float(credentials.get("interval", 0)), clock),
        )

    async def call(self) -> None:
        if self.closed:
            raise TransportError("paper exchange is closed")

        await self.limiter.wait()

    def setPrice(self, symbol: str, bid: float, ask: float | None = None) -> None:
        ask = bid + self.spread if ask is None else ask
        self.prices[symbol.upper()] = Ticker(bid, ask, (bid + ask) / 2)
        self.match(symbol.upper())

    def quote(self, symbol: str) -> Ticker:
        symbol = symbol.upper()
        if symbol not in self.prices:
            self.prices[symbol] = Ticker(self.defaultPrice, self.defaultPrice + self.spread, self.defaultPrice + self.spread / 2)

        return self.prices[symbol]

    # ── Book keeping ──

    def locked(self, currency: str) -> float:
        total = 0.0
        for order in self.orders.values():
            if not order.is_open or order.kind != "limit":
                continue

            pair = split_symbol(order.symbol)
            left = order.amount - order.executed
            if order.side == "sell" and pair.asset == currency:
                total += left
            elif order.side == "buy" and pair.currency == currency:
                total += left * order.price

        return total

    def settle(self, order: PaperOrder, price: float) -> None:
        pair = split_symbol(order.symbol)
        size = order.amount - order.executed
        sign = 1 if order.side == "buy" else -1
        self.wallet[pair.asset] = self.wallet.get(pair.asset, 0) + sign * size
        self.wallet[pair.currency] = self.wallet.get(pair.currency, 0) - sign * size * price
        order.executed = order.amount
        logger.debug("[paper] Filled {} {} {} at {}", order.side, size, order.symbol, price)

    def match(self, symbol: str) -> None:
        t = self.quote(symbol)
        for order in self.orders.values():
            if not order.is_open or order.symbol != symbol:
                continue

            match order.kind, order.side:
                case "limit", "buy" if t.ask <= order.price:
                    self.settle(order, order.price)
                case "limit", "sell" if t.bid >= order.price:
                    self.settle(order, order.price)
                case "stop", "buy" if t.ask >= order.price:
                    self.settle(order, t.ask)
                case "stop", "sell" if t.bid <= order.price:
                    self.settle(order, t.bid)

    def add(self, symbol: str, kind: str, side: str, amount: float, price: float) -> PaperOrder:
        order = PaperOrder(f"paper-{next(self.ids)}", symbol.upper(), kind, side, amount, price)
        self.orders[order.id] = order
        return order

    def fill(self, order: PaperOrder, executed: float | None = None) -> None:
        """Force a (partial) fill, for tests and demos."""
        if executed is None:
            self.settle(order, order.price)
        else:
            order.executed = min(order.amount, executed)

    # ── ExchangeAPI ──

    async def ticker(self, symbol: str) -> Ticker:
        await self.call()
        return self.quote(symbol)

    async def walletBalances(self) -> list[Balance]:
        await self.call()
        return [
            Balance("exchange", currency, amount, amount - self.locked(currency))
            for currency, amount in self.wallet.items()
        ]

    async def limitOrder(self, symbol: str, amount: float, price: float, side: str, isEverything: bool) -> PaperOrder:
        await self.call()
        order = self.add(symbol, "limit", side, amount, price)
        self.match(order.symbol)
        return order

    async def marketOrder(self, symbol: str, amount: float, side: str, isEverything: bool) -> PaperOrder:
        await self.call()
        t = self.quote(symbol)
        order = self.add(symbol, "market", side, amount, t.ask if side == "buy" else t.bid)
        self.settle(order, order.price)
        return order

    async def stopOrder(self, symbol: str, amount: float, price: float, side: str, trigger: str) -> PaperOrder:
        await self.call()
        return self.add(symbol, "stop", side, amount, price)

    async def activeOrders(self, symbol: str, side: str) -> list[PaperOrder]:
        await self.call()
        return [
            o
            for o in self.orders.values()
            if o.is_open and o.symbol == symbol.upper() and side in {"all", o.side}
        ]

    async def cancelOrders(self, orders: list[PaperOrder]) -> None:
        await self.call()
        for order in orders:
            if order is not None and order.is_open:
                order.cancelled = True

    async def order(self, orderInfo: PaperOrder) -> OrderInfo:
        await self.call()
        self.match(orderInfo.symbol)
        return OrderInfo(
            id=orderInfo.id,
            side=orderInfo.side,  # type: ignore[arg-type]
            amount=orderInfo.amount,
            remaining=orderInfo.amount - orderInfo.executed,
            executed=orderInfo.executed,
            is_filled=orderInfo.is_filled,
            is_open=orderInfo.is_open,
        )

    async def close(self) -> None:
        self.closed = True


@dataclass
class PaperPerpAPI(PaperAPI):
    """Perpetual contracts simulation: fills change a signed position instead of a wallet."""

    precision: int = 0
    equity: float = 1.0
    held: dict[str, float] = field(default_factory=dict)

    @classmethod
    def fromCredentials(cls, credentials: Mapping[str, str], clock: AppClock) -> PaperPerpAPI:
        return cls(
            equity=float(credentials.get("equity", 1)),
            spread=float(credentials.get("spread", 0.5)),
            defaultPrice=float(credentials.get("price", 1000)),
            limiter=RateLimiter(float(credentials.get("interval", 0)), clock),
        )

    def settle(self, order: PaperOrder, price: float) -> None:
        size = order.amount - order.executed
        sign = 1 if order.side == "buy" else -1
        self.held[order.symbol] = self.held.get(order.symbol, 0) + sign * size
        order.executed = order.amount

    async def positions(self) -> list[Position]:
        await self.call()
        return [Position(symbol, size) for symbol, size in self.held.items() if size]

    async def account(self) -> dict[str, Any]:
        await self.call()
        return dict(equity=self.equity, availableFunds=self.equity, balance=self.equity, pnl=0.0)


class PaperExchange(Exchange):
    name = "paper"
    description = "Simulated spot exchange"
    whitelist = BASE_COMMANDS + ORDER_COMMANDS

    @classmethod
    def create(cls, credentials: Mapping[str, str], **kwargs) -> PaperExchange:
        clock = kwargs.setdefault("clock", AppClock())
        return cls(credentials, PaperAPI.fromCredentials(credentials, clock), **kwargs)


class PaperPerpExchange(ContractsExchange):
    name = "paperperp"
    description = "Simulated perpetual contracts exchange"
    whitelist = BASE_COMMANDS + ORDER_COMMANDS

    @classmethod
    def create(cls, credentials: Mapping[str, str], **kwargs) -> PaperPerpExchange:
        clock = kwargs.setdefault("clock", AppClock())
        return cls(credentials, PaperPerpAPI.fromCredentials(credentials, clock), **kwargs)
