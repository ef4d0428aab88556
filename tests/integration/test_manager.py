"""End-to-end tests for ExchangeManager: messages in, command blocks run, exchanges released."""

import asyncio
from dataclasses import dataclass, field

import pytest

from cmdtrader.drivers import ExchangeSpec
from cmdtrader.drivers.paper import PaperExchange
from cmdtrader.engine.clock import AppClock
from cmdtrader.engine.errors import UnknownCommandError
from cmdtrader.engine.manager import ExchangeManager
from cmdtrader.engine.notifier import Notifier
from tests.conftest import FakeAPI, FakeClock


@dataclass
class RecordingChannel:
    sent: list = field(default_factory=list)

    async def send(self, message, options):
        self.sent.append(message)


@dataclass
class FakeDriver:
    """Exchange factory over FakeAPI that remembers what it built."""

    built: list = field(default_factory=list)

    def __call__(self, credentials, **kwargs):
        kwargs.setdefault("clock", FakeClock())
        ex = PaperExchange(credentials, FakeAPI(), **kwargs)
        self.built.append(ex)
        return ex


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def manager(driver, channel):
    notifier = Notifier(default=["rec"], channels={"rec": channel})
    return ExchangeManager({"paper": ExchangeSpec("fake paper", driver)}, notifier, closeDelay=0)


# ── Exchange lifetime ──


class TestOpenClose:
    async def test_shared_per_credentials(self, manager, driver):
        first = manager.openExchange("paper", {"key": "a"})
        again = manager.openExchange("paper", {"key": "a"})
        other = manager.openExchange("paper", {"key": "b"})

        assert first is again
        assert first.refCount == 2
        assert other is not first
        assert len(driver.built) == 2

    async def test_closed_at_last_reference(self, manager):
        ex = manager.openExchange("paper", {})
        manager.openExchange("paper", {})

        await manager.closeExchange(ex)
        assert ex in manager.opened
        assert ex.api.named("close") == []

        await manager.closeExchange(ex)
        assert ex not in manager.opened
        assert ex.api.named("close") == [("close",)]

    def test_unsupported(self, manager):
        assert manager.openExchange("kraken", {}) is None

    async def test_notifier_and_options_passed_on(self, driver, channel):
        notifier = Notifier()
        manager = ExchangeManager(
            {"paper": ExchangeSpec("fake paper", driver)},
            notifier,
            exchangeOptions={"macros": {"pause": "wait(1s)"}, "tickerTtl": 5},
        )
        ex = manager.openExchange("paper", {})
        assert ex.notifier is notifier
        assert ex.config.macro("pause") == "wait(1s)"
        assert ex.cache.ttl == 5


# ── Command sequences ──


class TestExecuteCommandSequence:
    async def test_failure_does_not_stop_sequence(self, manager):
        ex = manager.openExchange("paper", {})
        outcomes = await manager.executeCommandSequence(ex, "BTCUSD", "wait(1s); bogus(); wait(2s)")

        assert [o.name for o in outcomes] == ["wait", "bogus", "wait"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, UnknownCommandError)
        assert ex.clock.sleeps == [1, 2]

    async def test_shared_session(self, manager):
        ex = manager.openExchange("paper", {})
        outcomes = await manager.executeCommandSequence(
            ex, "BTCUSD", "limitOrder(buy, 100, 0.1); limitOrder(buy, 200, 0.1); cancelOrders(session)"
        )
        assert outcomes[-1].result == 2
        assert ex.api.named("cancelOrders") == [("cancelOrders", ["order-1", "order-2"])]

    async def test_each_sequence_gets_new_session(self, manager):
        ex = manager.openExchange("paper", {})
        await manager.executeCommandSequence(ex, "BTCUSD", "limitOrder(buy, 100, 0.1)")
        [outcome] = await manager.executeCommandSequence(ex, "BTCUSD", "cancelOrders(session)")
        assert outcome.result == 0

    async def test_blank_input(self, manager):
        ex = manager.openExchange("paper", {})
        assert await manager.executeCommandSequence(ex, " ", "wait(1s)") == []
        assert await manager.executeCommandSequence(ex, "BTCUSD", "") == []


# ── Messages ──


class TestExecuteMessage:
    async def test_runs_blocks_and_releases(self, manager, driver):
        tasks = manager.executeMessage(
            "morning! paper(BTCUSD) { wait(1s); wait(2s) } and paper(ETHUSD) { wait(3s) }",
            {"paper": {}},
        )
        results = await asyncio.gather(*tasks)

        assert [[o.result for o in r] for r in results] == [[1, 2], [3]]
        assert len(driver.built) == 1
        assert manager.opened == []
        assert driver.built[0].api.named("close") == [("close",)]

    async def test_skips_missing_credentials_and_unsupported(self, manager, driver):
        tasks = manager.executeMessage(
            "bitfinex(BTCUSD) { wait(1s) } kraken(BTCUSD) { wait(1s) } paper(BTCUSD) { wait(1s) }",
            {"paper": {}, "kraken": {}},
        )
        assert len(tasks) == 1
        await asyncio.gather(*tasks)

    async def test_no_blocks(self, manager):
        assert manager.executeMessage("just chatting", {"paper": {}}) == []

    async def test_alert_sends_prose(self, manager, channel):
        tasks = manager.executeMessage(
            "{!} BTC breaking out   paper(BTCUSD) { wait(1s) } buy now",
            {"paper": {}},
        )
        assert len(tasks) == 2

        results = await asyncio.gather(*tasks)
        assert results[-1] == "BTC breaking out buy now"
        assert channel.sent == ["BTC breaking out buy now"]

    async def test_alert_without_marker(self, manager, channel):
        assert await manager.handleAlerts("paper(BTCUSD) { wait(1s) }") is None
        assert await manager.handleAlerts("{!} paper(BTCUSD) { wait(1s) }") is None
        assert channel.sent == []


class TestShutdown:
    async def test_cancels_running_blocks(self, manager, driver):
        manager.exchangeOptions["clock"] = AppClock()
        [task] = manager.executeMessage("paper(BTCUSD) { wait(1h) }", {"paper": {}})
        await asyncio.sleep(0.01)

        await manager.shutdown()
        assert task.cancelled()
        assert manager.opened == []
        assert driver.built[0].api.named("close") == [("close",)]
