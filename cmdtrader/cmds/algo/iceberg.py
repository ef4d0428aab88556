"""Command: icebergOrder

Category: Algorithmic Orders
"""

from __future__ import annotations

import dataclasses
import random
from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.algo.base import AlgoOp, AlgoState
from cmdtrader.cmds.base import command
from cmdtrader.engine.commandlang import OrderedArg
from cmdtrader.engine.primitives import (
    OrderHandle,
    fmt_amount,
    parse_quantity,
    time_to_seconds,
    validate_side,
)


@dataclass(slots=True, frozen=True)
class IcebergProgress:
    """Loop state, replaced (never mutated) on every iteration."""

    remaining: float
    activeOrder: OrderHandle | None = None
    stopPrice: float = 0
    suspended: bool = False


def _float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0


@command(names=["icebergOrder"])
@dataclass
class IOpIcebergOrder(AlgoOp):
    """Work a large order through a single small limit order at a time.

    Each child is averageAmount +/-10% placed variance away from the top of
    book, only while the market is better than limitPrice. A child whose
    price has slipped past its stop is cancelled and replaced.
    """

    rng: random.Random = dataclasses.field(default_factory=random.Random, repr=False)

    def argmap(self):
        return dict(
            side="buy",
            totalAmount="0",
            averageAmount="0",
            variance="0.1%",
            limitPrice="",
            timeLimit="1d",
            tag="iceberg",
        )

    async def run(self) -> float:
        """Returns the amount still unfilled when the order stopped."""
        side = validate_side(self.p["side"])
        isBuy = side == "buy"
        total = _float(self.p["totalAmount"])
        average = _float(self.p["averageAmount"])
        limitPrice = _float(self.p["limitPrice"])
        timeLimit = time_to_seconds(self.p["timeLimit"], 0)

        v = parse_quantity(self.p["variance"])
        variance = v.value / 100 if v.units == "%" else v.value

        if not (limitPrice and total and average):
            logger.warning("[{}] Iceberg order needs limitPrice, totalAmount and averageAmount", self.ex.name)
            return total

        expiry = self.ex.clock.now() + timeLimit
        backoff = self.ex.backoff()
        state = IcebergProgress(remaining=total)

        self.register(side, self.p["tag"])
        try:
            while state.remaining > self.ex.minOrderSize:
                if self.cancelled or (timeLimit > 0 and self.ex.clock.now() > expiry):
                    self.transition(AlgoState.CANCELLED if self.cancelled else AlgoState.EXPIRED)
                    logger.info("[{}] Iceberg order over expiry time or cancelled - stopping", self.ex.name)
                    if state.activeOrder is not None:
                        await self.ex.api.cancelOrders([state.activeOrder])

                    return state.remaining

                orderbook = await self.ex.api.ticker(self.symbol)
                price = float(orderbook.bid if isBuy else orderbook.ask)
                favourable = price < limitPrice if isBuy else price > limitPrice

                if state.activeOrder is None:
                    if favourable:
                        amount = min(average * self.rng.uniform(0.9, 1.1), state.remaining)
                        offset = price * variance
                        orderPrice = price - offset if isBuy else price + offset
                        stopPrice = price + offset if isBuy else price - offset
                        logger.info(
                            "[{}] Iceberg: {} left, placing {} at {}, cancelling at {}",
                            self.ex.name,
                            fmt_amount(state.remaining),
                            fmt_amount(amount),
                            orderPrice,
                            stopPrice,
                        )

                        self.transition(AlgoState.PLACING)
                        args = [
                            OrderedArg("side", side, 0),
                            OrderedArg("amount", fmt_amount(amount), 1),
                            OrderedArg("offset", f"@{fmt_amount(orderPrice)}", 2),
                            OrderedArg("tag", self.p["tag"], 3),
                        ]
                        placed = await self.ex.executeCommand(self.symbol, "limitOrder", args, self.session)
                        if placed.order is None:
                            logger.warning("[{}] Iceberg order could not place a child order - stopping", self.ex.name)
                            return state.remaining

                        state = IcebergProgress(state.remaining, placed.order, stopPrice)
                        self.transition(AlgoState.AWAITING_FILL)
                        backoff.reset()
                    elif not state.suspended:
                        logger.info(
                            "[{}] Iceberg order suspended while price ({}) wrong side of limitPrice ({}) - waiting",
                            self.ex.name,
                            price,
                            limitPrice,
                        )
                        state = dataclasses.replace(state, suspended=True)
                else:
                    info = await self.ex.api.order(state.activeOrder)
                    if info.is_filled:
                        self.transition(AlgoState.REACTING)
                        logger.info("[{}] Iceberg child order filled ({})", self.ex.name, info.executed)
                        state = IcebergProgress(state.remaining - info.executed)
                        backoff.reset()
                    elif not info.is_open:
                        self.transition(AlgoState.CANCELLED)
                        logger.info("[{}] Iceberg child order cancelled elsewhere - aborting entire order", self.ex.name)
                        return state.remaining
                    elif (price > state.stopPrice) if isBuy else (price < state.stopPrice):
                        self.transition(AlgoState.REACTING)
                        logger.info("[{}] Iceberg: price slipped too far - cancelling current order", self.ex.name)
                        await self.ex.api.cancelOrders([state.activeOrder])
                        state = IcebergProgress(state.remaining - info.executed)
                        backoff.reset()

                await backoff.wait(self.ex.clock)

            self.transition(AlgoState.DONE)
            return state.remaining
        finally:
            self.release()
