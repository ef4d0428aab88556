"""Command: scaledOrder

Category: Algorithmic Orders
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.algo.base import clamp_int
from cmdtrader.cmds.base import IOp, command
from cmdtrader.engine.commandlang import OrderedArg
from cmdtrader.engine.primitives import PlacedOrder, fmt_amount, parse_percentage, validate_side
from cmdtrader.engine.scaled import scaled_amounts, scaled_prices

SCALED_DEFAULTS = {
    "from": "0",
    "to": "50",
    "orderCount": "10",
    "amount": "0",
    "side": "buy",
    "easing": "linear",
    "varyAmount": "0",
    "varyPrice": "0",
    "tag": "",
    "position": "",
}


async def place_scaled(op: IOp, p: dict[str, str]) -> list[PlacedOrder]:
    """Spread amount over a ladder of limit orders between the from/to offsets.

    The ladder always starts nearest the market (highest price for buys,
    lowest for sells). A slot that fails to place yields a null PlacedOrder
    and the rest of the ladder is still attempted.
    """
    ex, symbol, session = op.ex, op.symbol, op.session

    count = clamp_int(p["orderCount"], 2, 100, 10)
    varyAmount = parse_percentage(p["varyAmount"])
    varyPrice = parse_percentage(p["varyPrice"])

    side, amount = await ex.positionToAmount(symbol, p["position"], validate_side(p["side"]), p["amount"])
    if amount.value == 0:
        logger.warning("[{}] Scaled order not placed, order size is zero", ex.name)
        return []

    start = await ex.offsetToAbsolutePrice(symbol, side, p["from"], session)
    end = await ex.offsetToAbsolutePrice(symbol, side, p["to"], session)
    if (side == "buy" and start < end) or (side == "sell" and start > end):
        start, end = end, start

    total = await ex.scaledOrderSize(symbol, side, amount, count, start, end, p["easing"])
    if total == 0:
        logger.warning("[{}] Scaled order would place orders below the minimum order size, ignoring", ex.name)
        return []

    amounts = scaled_amounts(count, total, varyAmount, ex.api.precision)
    prices = scaled_prices(count, start, end, varyPrice, p["easing"])
    logger.info(
        "[{}] Scaled {} of {}{} over {} orders from {} to {}",
        ex.name,
        side,
        fmt_amount(total),
        amount.units,
        count,
        start,
        end,
    )

    placed: list[PlacedOrder] = []
    for price, size in zip(prices, amounts):
        args = [
            OrderedArg("side", side, 0),
            OrderedArg("offset", f"@{fmt_amount(price)}", 1),
            OrderedArg("amount", f"{fmt_amount(size)}{amount.units}", 2),
            OrderedArg("tag", p["tag"], 3),
        ]
        try:
            placed.append(await ex.executeCommand(symbol, "limitOrder", args, session))
        except Exception as e:
            logger.error("[{}] Scaled order slot at {} failed, continuing with the rest: {}", ex.name, price, e)
            placed.append(PlacedOrder.null(side, price, size, amount.units))

    return placed


@command(names=["scaledOrder"])
@dataclass
class IOpScaledOrder(IOp):
    """Ladder of limit orders spaced along an easing curve between two price offsets."""

    def argmap(self):
        return dict(SCALED_DEFAULTS)

    async def run(self) -> list[PlacedOrder]:
        return await place_scaled(self, self.p)
