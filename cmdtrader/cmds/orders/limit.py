"""Command: limitOrder

Category: Orders
"""

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.cmds.orders.prepare import prepare_order
from cmdtrader.engine.primitives import PlacedOrder, validate_side


@command(names=["limitOrder"])
@dataclass
class IOpLimitOrder(IOp):
    """Place a limit order at an offset from the current bid/ask or at an absolute '@price'."""

    def argmap(self):
        return dict(
            side="buy",
            offset="0",
            amount="0",
            tag=str(self.ex.clock.wallclock()),
            position="",
        )

    async def run(self) -> PlacedOrder:
        prepared = await prepare_order(self, self.p["offset"])
        if prepared is None:
            return PlacedOrder.null(validate_side(self.p["side"]))

        logger.info(
            "[{}] Limit {} {} {} at {}",
            self.ex.name,
            prepared.side,
            prepared.size,
            self.symbol,
            prepared.price,
        )
        order = await self.ex.api.limitOrder(
            self.symbol, prepared.size, prepared.price, prepared.side, prepared.isAllAvailable
        )
        self.ex.addToSession(self.session, self.p["tag"], order)

        return PlacedOrder(order, prepared.side, prepared.price, prepared.size, "")
