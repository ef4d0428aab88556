"""Command: twapOrder (alias steppedMarketOrder)

Category: Algorithmic Orders
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.algo.base import AlgoOp, AlgoState, clamp_int
from cmdtrader.cmds.base import command
from cmdtrader.engine.commandlang import OrderedArg
from cmdtrader.engine.errors import AlgoCancelledError
from cmdtrader.engine.primitives import (
    PlacedOrder,
    fmt_amount,
    parse_percentage,
    round_down,
    round_up,
    time_to_seconds,
    validate_side,
)
from cmdtrader.engine.scaled import scaled_amounts


@command(names=["twapOrder", "steppedMarketOrder"])
@dataclass
class IOpTwapOrder(AlgoOp):
    """Split a market order into orderCount slices spread evenly over duration."""

    def argmap(self):
        return dict(
            side="buy",
            amount="0",
            orderCount="10",
            duration="60s",
            position="",
            tag="twap",
            varyAmount="0",
        )

    async def run(self) -> list[PlacedOrder]:
        count = clamp_int(self.p["orderCount"], 1, 50, 10)
        duration = time_to_seconds(self.p["duration"], 60)
        gap = round_up(duration / count, 0)

        side, amount = await self.ex.positionToAmount(
            self.symbol, self.p["position"], validate_side(self.p["side"]), self.p["amount"]
        )
        if amount.value == 0:
            logger.warning("[{}] TWAP order not placed, order size is zero", self.ex.name)
            return []

        vary = parse_percentage(self.p["varyAmount"])
        if vary:
            slices = scaled_amounts(count, amount.value, vary, 6)
        else:
            slices = [round_down(amount.value / count, 6)] * count

        logger.info(
            "[{}] TWAP {} {}{} in {} slices every {}s",
            self.ex.name,
            side,
            fmt_amount(amount.value),
            amount.units,
            count,
            gap,
        )

        results: list[PlacedOrder] = []
        self.register(side, self.p["tag"])
        try:
            for i, size in enumerate(slices):
                if self.cancelled:
                    self.transition(AlgoState.CANCELLED)
                    raise AlgoCancelledError("TWAP order cancelled - aborting")

                self.transition(AlgoState.PLACING)
                args = [
                    OrderedArg("side", side, 0),
                    OrderedArg("amount", f"{fmt_amount(size)}{amount.units}", 1),
                ]
                results.append(await self.ex.executeCommand(self.symbol, "marketOrder", args, self.session))
                logger.info("[{}] TWAP slice {} of {} done", self.ex.name, i + 1, count)

                if i < count - 1:
                    self.transition(AlgoState.AWAITING_FILL)
                    await self.ex.clock.sleep(gap)

            self.transition(AlgoState.DONE)
        finally:
            self.release()

        return results
