"""Command: pingPongOrder

Category: Algorithmic Orders
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.algo.base import AlgoOp, AlgoState
from cmdtrader.cmds.algo.scaled import SCALED_DEFAULTS, place_scaled
from cmdtrader.cmds.base import command
from cmdtrader.engine.commandlang import OrderedArg
from cmdtrader.engine.errors import CommandError
from cmdtrader.engine.primitives import PlacedOrder, as_bool, fmt_amount, opposite_side, parse_quantity


def closest_first(orders: list[PlacedOrder]) -> list[PlacedOrder]:
    """Buys highest price first, sells lowest price first."""
    return sorted(orders, key=lambda o: -o.price if o.side == "buy" else o.price)


@command(names=["pingPongOrder"])
@dataclass
class IOpPingPongOrder(AlgoOp):
    """Scaled order whose fills each get an opposite order pongDistance away.

    With endless=true filled pongs place new pings too, forever, until the
    order is cancelled.
    """

    def argmap(self):
        return SCALED_DEFAULTS | dict(tag="pingpong", pongDistance="20", endless="false")

    async def opposite(self, original: PlacedOrder, distance: float) -> PlacedOrder:
        side = opposite_side(original.side)
        price = original.price + distance if original.side == "buy" else original.price - distance
        args = [
            OrderedArg("side", side, 0),
            OrderedArg("offset", f"@{fmt_amount(price)}", 1),
            OrderedArg("amount", f"{fmt_amount(original.amount)}{original.units}", 2),
            OrderedArg("tag", self.p["tag"], 3),
        ]
        return await self.ex.executeCommand(self.symbol, "limitOrder", args, self.session)

    async def poll(self, queue: list[PlacedOrder], into: list[PlacedOrder], distance: float) -> tuple[list[PlacedOrder], bool]:
        """Check the order nearest the market in queue; on fill, place its opposite into `into`."""
        queue = closest_first(queue)
        info = await self.ex.api.order(queue[0].order)
        if info.is_filled:
            self.transition(AlgoState.REACTING)
            logger.info("[{}] Ping pong: {} at {} filled", self.ex.name, queue[0].side, queue[0].price)
            placed = await self.opposite(queue[0], distance)
            if placed.order is not None:
                into.append(placed)

            return queue[1:], True

        if not info.is_open:
            logger.info("[{}] Ping pong: found a cancelled order - discarding", self.ex.name)
            return queue[1:], True

        return queue, False

    async def run(self) -> None:
        pong = parse_quantity(self.p["pongDistance"])
        if pong.units or pong.value <= 0:
            raise CommandError(f"pongDistance '{self.p['pongDistance']}' must be a positive price distance")

        distance = pong.value
        endless = as_bool(self.p["endless"])

        pings = closest_first([o for o in await place_scaled(self, self.p) if o.order is not None])
        pongs: list[PlacedOrder] = []
        logger.info("[{}] Ping pong initial orders placed - {} orders", self.ex.name, len(pings))
        if not pings:
            return

        backoff = self.ex.backoff()
        self.register(pings[0].side, self.p["tag"])
        try:
            while pings or (endless and pongs):
                if self.cancelled:
                    self.transition(AlgoState.CANCELLED)
                    logger.info("[{}] Ping pong order cancelled - stopping", self.ex.name)
                    await self.ex.api.cancelOrders([o.order for o in pings])
                    await self.ex.api.cancelOrders([o.order for o in pongs])
                    return

                self.transition(AlgoState.AWAITING_FILL)
                changed = False
                if pings:
                    pings, hit = await self.poll(pings, pongs, distance)
                    changed |= hit

                if endless and pongs:
                    pongs, hit = await self.poll(pongs, pings, distance)
                    changed |= hit

                if changed:
                    backoff.reset()

                await backoff.wait(self.ex.clock)

            self.transition(AlgoState.DONE)
        finally:
            self.release()
