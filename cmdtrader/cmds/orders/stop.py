"""Command: stopMarketOrder

Category: Orders
"""

from dataclasses import dataclass
from typing import Final

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.cmds.orders.prepare import prepare_order
from cmdtrader.engine.errors import CommandError
from cmdtrader.engine.primitives import PlacedOrder, validate_side

TRIGGERS: Final = ("mark", "index", "last")


@command(names=["stopMarketOrder"])
@dataclass
class IOpStopMarketOrder(IOp):
    """Stop order that turns into a market order once price crosses the trigger.

    The offset is measured from the other side of the book: a buy stop sits
    above the ask, a sell stop below the bid.
    """

    def argmap(self):
        return dict(
            side="buy",
            offset="0",
            amount="0",
            tag=str(self.ex.clock.wallclock()),
            position="",
            trigger="mark",
        )

    async def run(self) -> PlacedOrder:
        trigger = self.p["trigger"].strip().lower()
        if trigger not in TRIGGERS:
            raise CommandError(f"Stop trigger '{trigger}' not supported, use one of: {', '.join(TRIGGERS)}")

        prepared = await prepare_order(self, self.p["offset"], priceFromOpposite=True)
        if prepared is None:
            return PlacedOrder.null(validate_side(self.p["side"]))

        logger.info(
            "[{}] Stop {} {} {} at {} (trigger {})",
            self.ex.name,
            prepared.side,
            prepared.size,
            self.symbol,
            prepared.price,
            trigger,
        )
        order = await self.ex.api.stopOrder(
            self.symbol, prepared.size, prepared.price, prepared.side, trigger
        )
        self.ex.addToSession(self.session, self.p["tag"], order)

        return PlacedOrder(order, prepared.side, prepared.price, prepared.size, "")
