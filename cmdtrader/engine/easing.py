"""Easing curves used to space out the prices of a scaled order ladder."""

from __future__ import annotations

from collections.abc import Callable
from typing import Final


def _linear(t: float) -> float:
    return t


def _ease_in(t: float) -> float:
    return t * t


def _ease_out(t: float) -> float:
    return 1 - (1 - t) * (1 - t)


def _ease_in_out(t: float) -> float:
    if t < 0.5:
        return 2 * t * t

    return 1 - 2 * (1 - t) * (1 - t)


EASINGS: Final[dict[str, Callable[[float], float]]] = {
    "linear": _linear,
    "ease-in": _ease_in,
    "ease-out": _ease_out,
    "ease-in-out": _ease_in_out,
}


def ease(start: float, end: float, progress: float, kind: str = "linear") -> float:
    """Interpolate from start to end following the named curve.

    Unknown curve names fall back to linear. The result is rounded to 10
    places so hand-computed reference points compare exactly.
    """
    t = min(1.0, max(0.0, progress))
    curve = EASINGS.get((kind or "linear").strip().lower(), _linear)
    return round(start + (end - start) * curve(t), 10)
