"""Smoke tests for BotApp construction.

These catch missing imports and broken __post_init__ wiring, which unit
tests on the engine modules miss.
"""

from dataclasses import dataclass, field

from loguru import logger

from cmdtrader.cli import BotApp
from cmdtrader.config import BotConfig
from cmdtrader.engine.notifier import WebhookChannel


@dataclass
class RecordingChannel:
    sent: list = field(default_factory=list)

    async def send(self, message, options):
        self.sent.append(message)


class TestAppConstruction:
    def test_construct(self):
        app = BotApp(config=BotConfig())
        assert app.manager.notifier is app.notifier
        assert set(app.manager.exchanges) == {"paper", "paperperp"}
        assert "webhook" not in app.notifier.channels

    def test_webhook_configured(self):
        app = BotApp(config=BotConfig(webhookUrl="https://hooks.example.com/x"))
        assert isinstance(app.notifier.channels["webhook"], WebhookChannel)

    def test_exchange_options_from_config(self):
        app = BotApp(config=BotConfig(tickerTtl=7, closeDelay=0))
        assert app.manager.exchangeOptions["tickerTtl"] == 7
        assert app.manager.closeDelay == 0

    def test_console_log_level(self):
        app = BotApp(config=BotConfig())
        app.setConsoleLogLevel("debug")
        first = app._console_handler_id
        app.setConsoleLogLevel("info")
        assert app._console_handler_id != first
        logger.remove(app._console_handler_id)


class TestRun:
    async def test_blank_submit(self):
        assert await BotApp(config=BotConfig()).submit("   ") == []

    async def test_runs_message_to_completion(self):
        app = BotApp(config=BotConfig(closeDelay=0, credentials={"paper": {}}))
        channel = RecordingChannel()
        app.notifier.addChannel("rec", channel)
        app.notifier.default = ["rec"]

        await app.run('paper(BTCUSD) { notify("hello from the desk") }')
        assert channel.sent == ["hello from the desk"]
        assert app.manager.opened == []
