"""Command: balance

Category: Account
"""

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.engine.primitives import fmt_amount, round_down, split_symbol
from cmdtrader.engine.sizing import balance_total_asset, balance_total_fiat


@command(names=["balance"])
@dataclass
class IOpBalance(IOp):
    """Report wallet holdings for both legs of the symbol plus their combined value."""

    async def run(self) -> str:
        balances = await self.ex.accountBalances(self.symbol)
        orderbook = await self.ex.api.ticker(self.symbol)

        pair = split_symbol(self.symbol)
        price = float(orderbook.last_price)

        totalFiat = round_down(balance_total_fiat(self.symbol, balances, price), 2)
        totalCoins = round_down(balance_total_asset(self.symbol, balances, price), 4)
        coins = round_down(sum(float(b.amount) for b in balances if b.currency == pair.asset), 4)
        fiat = round_down(sum(float(b.amount) for b in balances if b.currency == pair.currency), 2)

        msg = (
            f"{self.ex.name}: Balances - {fmt_amount(coins)} {pair.asset} & {fmt_amount(fiat)} {pair.currency}. "
            f"Total Value - {fmt_amount(totalCoins)} {pair.asset} ({fmt_amount(totalFiat)} {pair.currency})."
        )
        logger.info("[{}] {}", self.ex.name, msg)
        await self.ex.notifier.send(msg)
        return msg


@dataclass
class IOpContractsBalance(IOp):
    """Report margin account equity; replaces balance on contracts exchanges."""

    async def run(self) -> str:
        account = await self.ex.api.account()

        def fmt(key: str) -> str:
            return fmt_amount(round_down(float(account.get(key, 0)), 4))

        msg = (
            f"{self.ex.name}: Equity: {fmt('equity')}, available: {fmt('availableFunds')}, "
            f"balance: {fmt('balance')}, pnl: {fmt('pnl')}."
        )
        logger.info("[{}] {}", self.ex.name, msg)
        await self.ex.notifier.send(msg)
        return msg
