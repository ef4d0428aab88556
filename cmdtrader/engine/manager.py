"""Entry point for inbound messages: open exchanges, run command blocks, release exchanges.

Exchange instances are shared between concurrently running blocks that use
the same exchange name and credentials, and reference counted so the last
block to finish tears the instance down.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from cmdtrader.drivers import EXCHANGES, ExchangeSpec
from cmdtrader.engine.commandlang import command_blocks, parse_actions, strip_command_blocks
from cmdtrader.engine.exchange import Exchange
from cmdtrader.engine.notifier import Notifier

ALERT_MARKER = "{!}"


@dataclass(slots=True)
class ActionOutcome:
    name: str
    result: Any = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ExchangeManager:
    def __init__(
        self,
        exchanges: Mapping[str, ExchangeSpec] | None = None,
        notifier: Notifier | None = None,
        *,
        closeDelay: float = 0.5,
        exchangeOptions: Mapping[str, Any] | None = None,
    ):
        self.exchanges = dict(EXCHANGES if exchanges is None else exchanges)
        self.notifier = notifier or Notifier()
        self.closeDelay = closeDelay

        # extra keyword arguments for every exchange created (macros, clock, polling delays...)
        self.exchangeOptions = dict(exchangeOptions or {})
        self.opened: list[Exchange] = []
        self.tasks: set[asyncio.Task] = set()

    def findOpened(self, name: str, credentials: Mapping[str, str]) -> Exchange | None:
        for exchange in self.opened:
            if exchange.matches(name, credentials):
                return exchange

        return None

    def openExchange(self, name: str, credentials: Mapping[str, str]) -> Exchange | None:
        """Reuse the open instance for (name, credentials) or create one; None if unsupported."""
        if exchange := self.findOpened(name, credentials):
            exchange.addReference()
            return exchange

        spec = self.exchanges.get(name)
        if spec is None:
            return None

        logger.info("[{}] Starting {}", name, spec.description)
        exchange = spec.create(credentials, notifier=self.notifier, **self.exchangeOptions)
        self.opened.append(exchange)
        return exchange

    async def closeExchange(self, exchange: Exchange | None) -> None:
        if exchange is None or exchange not in self.opened:
            return

        if exchange.removeReference() <= 0:
            self.opened.remove(exchange)
            await exchange.terminate()

    async def executeCommandSequence(
        self, exchange: Exchange, symbol: str, actions: str
    ) -> list[ActionOutcome]:
        """Run every action of one block in order under a fresh session id.

        A failing action is logged and recorded; the remaining actions still run.
        """
        if not symbol.strip() or not actions.strip():
            return []

        session = str(uuid.uuid4())
        logger.info(
            "[{}] Session {} on {}: {}",
            exchange.name,
            session,
            symbol.upper(),
            " ".join(actions.split()),
        )

        outcomes: list[ActionOutcome] = []
        for action in parse_actions(actions):
            try:
                result = await exchange.executeCommand(symbol, action.name, action.params, session)
                outcomes.append(ActionOutcome(action.name, result))
            except Exception as e:
                logger.error("[{}] {} FAILED: {}", exchange.name, action.name, e)
                outcomes.append(ActionOutcome(action.name, error=e))

        logger.info("[{}] Session {} complete", exchange.name, session)
        return outcomes

    async def runBlock(self, exchange: Exchange, symbol: str, actions: str) -> list[ActionOutcome]:
        try:
            return await self.executeCommandSequence(exchange, symbol, actions)
        finally:
            await asyncio.sleep(self.closeDelay)
            await self.closeExchange(exchange)

    def spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task

    def executeMessage(
        self, message: str, credentials: Mapping[str, Mapping[str, str]]
    ) -> list[asyncio.Task]:
        """Start one task per command block in message and return without waiting for them.

        Must be called from inside a running event loop.
        """
        logger.info("Message received: {}", message.strip())

        tasks = []
        for block in command_blocks(message):
            found = credentials.get(block.exchange)
            if found is None:
                logger.error("[{}] No credentials for exchange. Skipping", block.exchange)
                continue

            exchange = self.openExchange(block.exchange, found)
            if exchange is None:
                logger.error("[{}] Exchange is not supported", block.exchange)
                continue

            tasks.append(self.spawn(self.runBlock(exchange, block.symbol, block.actions)))

        if ALERT_MARKER in message:
            tasks.append(self.spawn(self.handleAlerts(message)))

        return tasks

    async def handleAlerts(self, message: str) -> str | None:
        """Send the prose around the command blocks when the message carries the alert marker."""
        if ALERT_MARKER not in message:
            return None

        text = " ".join(strip_command_blocks(message).replace(ALERT_MARKER, "", 1).split())
        if not text:
            return None

        await self.notifier.send(text)
        return text

    async def shutdown(self) -> None:
        for task in list(self.tasks):
            task.cancel()

        await asyncio.gather(*self.tasks, return_exceptions=True)
        for exchange in list(self.opened):
            self.opened.remove(exchange)
            await exchange.terminate()
