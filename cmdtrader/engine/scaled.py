"""Generators for the amounts and prices of multi-order ladders."""

from __future__ import annotations

import random

from cmdtrader.engine.easing import ease


def scaled_amounts(
    count: int,
    total: float,
    random_diff: float = 0,
    precision: int = 6,
    rng: random.Random | None = None,
) -> list[float]:
    """Split total into count amounts, each optionally jittered by up to ±random_diff.

    The jittered weights are rescaled so the amounts still add up to total
    (the rounding residue goes into the last entry).
    """
    if count < 1:
        return []

    rng = rng or random.Random()
    diff = min(1.0, max(0.0, random_diff))
    weights = [1 + rng.uniform(-diff, diff) for _ in range(count)]
    scale = total / sum(weights)

    amounts = [round(w * scale, precision) for w in weights]
    amounts[-1] = round(total - sum(amounts[:-1]), precision)

    return amounts


def scaled_prices(
    count: int,
    start: float,
    end: float,
    random_diff: float = 0,
    easing: str = "linear",
    rng: random.Random | None = None,
) -> list[float]:
    """Place count prices from start to end along an easing curve.

    With random_diff each point moves by up to half of random_diff times the
    range in either direction, never leaving the [start, end] band.
    """
    if count < 1:
        return []

    rng = rng or random.Random()
    lo, hi = min(start, end), max(start, end)
    amplitude = min(1.0, max(0.0, random_diff)) * (hi - lo) / 2

    prices = []
    for i in range(count):
        progress = i / (count - 1) if count > 1 else 0
        price = ease(start, end, progress, easing)
        if amplitude:
            price = min(hi, max(lo, price + rng.uniform(-amplitude, amplitude)))

        prices.append(price)

    return prices
