"""Shared side/amount/price resolution for the single order commands."""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp
from cmdtrader.engine.primitives import Side, opposite_side, validate_side


@dataclass(slots=True)
class PreparedOrder:
    side: Side
    price: float
    size: float
    isAllAvailable: bool


async def prepare_order(
    op: IOp, offset: str, *, priceFromOpposite: bool = False
) -> PreparedOrder | None:
    """Validate side, apply any target position, price and size the order.

    Returns None when the resolved size is zero (nothing should be placed).
    """
    side = validate_side(op.p["side"])
    side, amount = await op.ex.positionToAmount(op.symbol, op.p["position"], side, op.p["amount"])
    if amount.value == 0:
        logger.warning("[{} {}] Order not placed, order size is zero", op.ex.name, op.ctx.name)
        return None

    priceSide = opposite_side(side) if priceFromOpposite else side
    price = await op.ex.offsetToAbsolutePrice(op.symbol, priceSide, offset, op.session)
    details = await op.ex.orderSizeFromAmount(op.symbol, side, price, amount)
    if details.orderSize == 0:
        logger.warning("[{} {}] No funds available or order size is 0", op.ex.name, op.ctx.name)
        return None

    return PreparedOrder(side, price, details.orderSize, details.isAllAvailable)
