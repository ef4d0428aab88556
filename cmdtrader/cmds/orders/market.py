"""Command: marketOrder

Category: Orders
"""

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.cmds.orders.prepare import prepare_order
from cmdtrader.engine.primitives import PlacedOrder, validate_side


@command(names=["marketOrder"])
@dataclass
class IOpMarketOrder(IOp):
    """Buy or sell at market; the size is worked out against the current top of book."""

    def argmap(self):
        return dict(side="buy", amount="0", position="")

    async def run(self) -> PlacedOrder:
        prepared = await prepare_order(self, "0")
        if prepared is None:
            return PlacedOrder.null(validate_side(self.p["side"]))

        logger.info("[{}] Market {} {} {}", self.ex.name, prepared.side, prepared.size, self.symbol)
        order = await self.ex.api.marketOrder(
            self.symbol, prepared.size, prepared.side, prepared.isAllAvailable
        )

        return PlacedOrder(order, prepared.side, prepared.price, prepared.size, "")
