"""Tests for the simulated paper exchanges."""

import pytest

from cmdtrader.drivers import EXCHANGES
from cmdtrader.drivers.paper import PaperAPI, PaperExchange, PaperPerpAPI, PaperPerpExchange, parse_wallet
from cmdtrader.engine.commandlang import parse_actions
from cmdtrader.engine.errors import TransportError
from tests.conftest import FakeClock


def test_parse_wallet():
    assert parse_wallet("BTC=1.5, usd=12000") == {"btc": 1.5, "usd": 12000}
    assert parse_wallet("") == {}


def test_registered():
    assert set(EXCHANGES) == {"paper", "paperperp"}
    ex = EXCHANGES["paper"].create({"wallet": "btc=1"}, clock=FakeClock())
    assert isinstance(ex, PaperExchange)
    assert ex.credentials == {"wallet": "btc=1"}


class TestPaperAPI:
    @pytest.fixture
    def api(self):
        api = PaperAPI(wallet={"btc": 1.0, "usd": 10000.0})
        api.setPrice("BTCUSD", 5000, 5010)
        return api

    async def test_limit_order_rests_then_fills(self, api):
        order = await api.limitOrder("BTCUSD", 0.5, 4900, "buy", False)
        info = await api.order(order)
        assert info.is_open and not info.is_filled

        balances = {b.currency: b for b in await api.walletBalances()}
        assert balances["usd"].available == 10000 - 0.5 * 4900

        api.setPrice("BTCUSD", 4890, 4895)
        info = await api.order(order)
        assert info.is_filled and not info.is_open
        assert api.wallet == {"btc": 1.5, "usd": 10000 - 0.5 * 4900}

    async def test_market_order_fills_at_touch(self, api):
        await api.marketOrder("BTCUSD", 0.5, "sell", False)
        assert api.wallet == {"btc": 0.5, "usd": 12500}

    async def test_stop_triggers(self, api):
        order = await api.stopOrder("BTCUSD", 1, 4950, "sell", "mark")
        assert (await api.order(order)).is_open

        api.setPrice("BTCUSD", 4940, 4945)
        assert (await api.order(order)).is_filled
        assert api.wallet["btc"] == 0

    async def test_active_and_cancel(self, api):
        buy = await api.limitOrder("BTCUSD", 0.1, 4000, "buy", False)
        sell = await api.limitOrder("BTCUSD", 0.1, 6000, "sell", False)
        assert await api.activeOrders("BTCUSD", "buy") == [buy]
        assert await api.activeOrders("BTCUSD", "all") == [buy, sell]

        await api.cancelOrders([buy])
        info = await api.order(buy)
        assert not info.is_open and not info.is_filled
        assert await api.activeOrders("btcusd", "all") == [sell]

    async def test_closed_rejects_calls(self, api):
        await api.close()
        with pytest.raises(TransportError):
            await api.ticker("BTCUSD")

    async def test_default_price(self):
        api = PaperAPI(defaultPrice=200, spread=2)
        ticker = await api.ticker("ETHUSD")
        assert (ticker.bid, ticker.ask) == (200, 202)


class TestPaperPerp:
    async def test_positions_follow_fills(self):
        api = PaperPerpAPI()
        api.setPrice("BTC-PERPETUAL", 5000, 5000.5)
        await api.marketOrder("BTC-PERPETUAL", 3, "buy", False)
        await api.marketOrder("BTC-PERPETUAL", 1, "sell", False)
        [position] = await api.positions()
        assert (position.instrument, position.size) == ("BTC-PERPETUAL", 2)

    async def test_exchange_end_to_end(self):
        ex = PaperPerpExchange.create({"equity": "2"}, clock=FakeClock())
        for action in parse_actions("marketOrder(buy, 5); marketOrder(position=2)"):
            await ex.executeCommand("BTC-PERPETUAL", action.name, action.params, "s1")

        [position] = await ex.api.positions()
        assert position.size == 2
        assert (await ex.api.account())["equity"] == 2


class TestPaperExchange:
    async def test_scaled_order_against_simulation(self):
        ex = PaperExchange.create({"wallet": "btc=0,usd=10000", "price": "5000"}, clock=FakeClock())
        action = parse_actions("scaledOrder(from=10, to=110, orderCount=3, amount=0.3)")[0]
        placed = await ex.executeCommand("BTCUSD", action.name, action.params, "s1")

        assert [p.price for p in placed] == [4990, 4940, 4890]
        assert len(await ex.api.activeOrders("BTCUSD", "buy")) == 3

        [count] = [
            await ex.executeCommand("BTCUSD", a.name, a.params, "s1")
            for a in parse_actions("cancelOrders(session)")
        ]
        assert count == 3
        assert await ex.api.activeOrders("BTCUSD", "all") == []

    async def test_rate_limited_calls(self):
        clock = FakeClock()
        ex = PaperExchange.create({"interval": "2"}, clock=clock)
        await ex.api.ticker("BTCUSD")
        await ex.api.ticker("BTCUSD")
        assert clock.sleeps == [2]
