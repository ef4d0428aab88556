#!/usr/bin/env python3
"""Interactive front door: type messages containing command blocks, watch them run.

    paper(BTCUSD) { limitOrder(buy, offset=50, amount=0.1); wait(30s); cancelOrders(session) }
"""

original_print = print
import asyncio
import logging
import os
import pathlib
import sys
from dataclasses import dataclass, field

import whenever
from loguru import logger
from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory, ThreadedHistory
from prompt_toolkit.patch_stdout import patch_stdout

from cmdtrader.config import BotConfig, loadConfig
from cmdtrader.engine.manager import ExchangeManager
from cmdtrader.engine.notifier import Notifier, WebhookChannel


@dataclass
class BotApp:
    config: BotConfig = field(default_factory=loadConfig)
    notifier: Notifier = field(init=False)
    manager: ExchangeManager = field(init=False)
    exiting: bool = False

    _console_handler_id: int | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.notifier = Notifier(default=self.config.notifyDefault)
        if self.config.webhookUrl:
            self.notifier.addChannel("webhook", WebhookChannel(self.config.webhookUrl))

        self.manager = ExchangeManager(
            notifier=self.notifier,
            closeDelay=self.config.closeDelay,
            exchangeOptions=self.config.exchangeOptions(),
        )

    def setupLogging(self) -> None:
        now = whenever.ZonedDateTime.now("UTC")
        LOGDIR = pathlib.Path(self.config.logdir) / f"{now.year}" / f"{now.month:02}"
        LOGDIR.mkdir(exist_ok=True, parents=True)
        LOG_FILE_TEMPLATE = str(
            LOGDIR
            / f"cmdtrader-{now.year}{now.month:02}{now.day:02}-{now.hour:02}{now.minute:02}{now.second:02}"
        )

        # third-party libraries (httpx) still log through stdlib logging
        logging.basicConfig(
            level=logging.INFO,
            filename=LOG_FILE_TEMPLATE + "-libs.log",
            format="%(asctime)s %(message)s",
        )

        logger.remove()
        self.setConsoleLogLevel(self.config.logLevel)

        # everything (including typed input at TRACE) goes to the log files
        logger.add(sink=LOG_FILE_TEMPLATE + "-cmdtrader.log", level="TRACE", colorize=False)
        logger.add(sink=LOG_FILE_TEMPLATE + "-cmdtrader-color.log", level="TRACE", colorize=True)
        logger.info("Logging session with prefix: {}", LOG_FILE_TEMPLATE)

    def setConsoleLogLevel(self, level: str) -> None:
        def asink(x):
            # plain print so patch_stdout() keeps the prompt intact
            original_print(x, end="")

        if self._console_handler_id is not None:
            logger.remove(self._console_handler_id)

        self._console_handler_id = logger.add(asink, colorize=True, level=level.upper())

    async def submit(self, text: str) -> list[asyncio.Task]:
        """Hand text to the manager; blocks keep running after this returns."""
        if not text.strip():
            return []

        return self.manager.executeMessage(text, self.config.credentials)

    async def dorepl(self) -> None:
        session: PromptSession = PromptSession(
            history=ThreadedHistory(FileHistory(os.path.expanduser("~/.cmdtrader_history"))),
            auto_suggest=AutoSuggestFromHistory(),
        )

        while not self.exiting:
            try:
                text = await session.prompt_async("cmdtrader> ", enable_history_search=True)
                logger.trace("cmdtrader> {}", text)

                match text.strip().lower():
                    case "exit" | "quit":
                        self.exiting = True
                    case "running":
                        for task in self.manager.tasks:
                            logger.info("[running] {}", task.get_coro())
                    case _:
                        await self.submit(text)
            except KeyboardInterrupt:
                continue
            except EOFError:
                logger.warning("Exiting...")
                self.exiting = True

        await self.manager.shutdown()

    async def run(self, message: str | None = None) -> None:
        if message is None:
            with patch_stdout(raw=True):
                await self.dorepl()

            return

        tasks = await self.submit(message)
        await asyncio.gather(*tasks)


def main() -> None:
    app = BotApp()
    app.setupLogging()

    message = " ".join(sys.argv[1:]) or None
    try:
        asyncio.run(app.run(message))
    except KeyboardInterrupt:
        logger.warning("Goodbye")


if __name__ == "__main__":
    main()
