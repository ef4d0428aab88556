"""Wallet based order sizing for spot markets.

All functions take the wallet already filtered down to the two legs of the
symbol (see Exchange.accountBalances) and a reference price in currency per
unit of asset.
"""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from cmdtrader.engine.easing import ease
from cmdtrader.engine.primitives import (
    MIN_ORDER_SIZE,
    Balance,
    OrderSizeResult,
    Quantity,
    Side,
    round_down,
    round_near,
    split_symbol,
)


def _sum(balances: Iterable[Balance], currency: str, attr: str) -> float:
    return sum(float(getattr(b, attr)) for b in balances if b.currency == currency)


def balance_total_asset(symbol: str, balances: list[Balance], price: float) -> float:
    """Everything held, in asset terms: asset amount plus currency amount converted at price."""
    pair = split_symbol(symbol)
    total = _sum(balances, pair.asset, "amount")
    if price:
        total += _sum(balances, pair.currency, "amount") / price

    total = round_down(total, 4)
    logger.debug("[{}] Total balance in {}: {}", symbol, pair.asset, total)
    return total


def balance_total_fiat(symbol: str, balances: list[Balance], price: float) -> float:
    """Everything held, in currency terms."""
    pair = split_symbol(symbol)
    total = _sum(balances, pair.currency, "amount") + _sum(balances, pair.asset, "amount") * price
    total = round_down(total, 4)
    logger.debug("[{}] Total balance in {}: {}", symbol, pair.currency, total)
    return total


def balance_available_asset(symbol: str, balances: list[Balance], price: float, side: Side) -> float:
    """What can be spent right now on side, in asset terms.

    Buying spends the available currency, selling spends the available asset.
    """
    pair = split_symbol(symbol)
    if side == "buy":
        available = _sum(balances, pair.currency, "available") / price if price else 0
    else:
        available = _sum(balances, pair.asset, "available")

    available = round_down(available, 4)
    logger.debug("[{}] Available to {}: {} {}", symbol, side, available, pair.asset)
    return available


def calc_order_size(
    symbol: str,
    side: Side,
    quantity: Quantity,
    balances: list[Balance],
    price: float,
    min_order_size: float = MIN_ORDER_SIZE,
) -> OrderSizeResult:
    """Turn an amount with units into a concrete asset order size.

    '' is an asset amount, '%' a share of the total holdings, '%%' a share of
    what is available for side, anything else an amount of that currency
    converted at price. The result never exceeds what is available, and a
    size below min_order_size becomes 0.
    """
    total = balance_total_asset(symbol, balances, price)
    available = balance_available_asset(symbol, balances, price, side)

    match quantity.units:
        case "":
            size = quantity.value
        case "%":
            size = total * quantity.value / 100
        case "%%":
            size = available * quantity.value / 100
        case _:
            size = quantity.value / price if price else 0

    size = min(size, available)
    if size < min_order_size:
        size = 0

    size = round_down(size, 4)
    return OrderSizeResult(
        total=total,
        available=available,
        isAllAvailable=size == available,
        orderSize=size,
    )


def scaled_order_size(
    symbol: str,
    side: Side,
    quantity: Quantity,
    order_count: int,
    start: float,
    end: float,
    easing: str,
    balances: list[Balance],
    min_order_size: float = MIN_ORDER_SIZE,
) -> float:
    """Total size of a scaled order ladder, reduced to what the wallet can fund.

    Only plain asset amounts are adjusted; amounts with units are sized per
    order by limitOrder and pass straight through.
    """
    if quantity.units != "":
        return quantity.value

    pair = split_symbol(symbol)
    desired = quantity.value

    if side == "sell":
        to_spend = min(_sum(balances, pair.asset, "available"), desired)
    else:
        prices = [
            round_near(ease(start, end, i / (order_count - 1) if order_count > 1 else 0, easing), 2)
            for i in range(order_count)
        ]
        per_order = desired / order_count
        needed = sum(p * per_order for p in prices)
        available = _sum(balances, pair.currency, "available")
        to_spend = desired * (available / needed) if available < needed else desired

    if to_spend / order_count < min_order_size:
        return 0

    return round_down(to_spend, 6)
