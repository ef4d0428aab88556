"""Narrow protocols for the exchange adapter and notification boundaries.

The engine never talks to an exchange or a chat service directly; it only
relies on these interfaces, so drivers and test fakes are interchangeable.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from cmdtrader.engine.primitives import Balance, OrderHandle, OrderInfo, Position, Ticker


@runtime_checkable
class ExchangeAPI(Protocol):
    """Spot exchange operations used by the command set."""

    precision: int

    async def ticker(self, symbol: str) -> Ticker: ...
    async def walletBalances(self) -> list[Balance]: ...
    async def limitOrder(
        self, symbol: str, amount: float, price: float, side: str, isEverything: bool
    ) -> OrderHandle: ...
    async def marketOrder(
        self, symbol: str, amount: float, side: str, isEverything: bool
    ) -> OrderHandle: ...
    async def stopOrder(
        self, symbol: str, amount: float, price: float, side: str, trigger: str
    ) -> OrderHandle: ...
    async def activeOrders(self, symbol: str, side: str) -> list[OrderHandle]: ...
    async def cancelOrders(self, orders: list[OrderHandle]) -> None: ...
    async def order(self, orderInfo: OrderHandle) -> OrderInfo: ...
    async def close(self) -> None: ...


@runtime_checkable
class ContractsAPI(ExchangeAPI, Protocol):
    """Derivatives exchange: positions instead of wallet holdings."""

    async def positions(self) -> list[Position]: ...
    async def account(self) -> dict[str, Any]: ...


@runtime_checkable
class NotificationChannel(Protocol):
    async def send(self, message: str, options: dict[str, Any]) -> None: ...
