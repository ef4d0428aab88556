"""Pure types, constants, and text parsers: no external dependencies beyond stdlib and loguru."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Any, Final, Literal, NamedTuple, TypeAlias

from loguru import logger

from cmdtrader.engine.errors import CommandError

Side: TypeAlias = Literal["buy", "sell"]
OrderHandle: TypeAlias = Any

SIDES: Final = ("buy", "sell")

# Units accepted after a number: an asset/currency code, '%' (of total) or '%%' (of available)
QUANTITY_RE: Final = re.compile(r"^([0-9]+(\.[0-9]+)?)\s*([a-zA-Z]+|%{1,2})?$")
PERCENTAGE_RE: Final = re.compile(r"([0-9]+(\.[0-9]+)?)\s*(%)?")
DURATION_RE: Final = re.compile(r"([0-9]+)\s*(s|m|h|d)?", re.IGNORECASE)
SYMBOL_RE: Final = re.compile(r"^(.{3,4})(.{3})")

DURATION_SCALE: Final = dict(s=1, m=60, h=3600, d=86400)

MIN_ORDER_SIZE: Final = 0.001


@dataclass(slots=True, frozen=True)
class Quantity:
    """A parsed amount with optional units.

    units is '' for a plain amount in the traded asset, '%' for a share of
    the total holdings, '%%' for a share of what is currently available, or
    an asset/currency code (case preserved) for an amount in that currency.
    """

    value: float
    units: str = ""

    @classmethod
    def zero(cls) -> Quantity:
        return cls(0, "")

    def __str__(self) -> str:
        return f"{fmt_amount(self.value)}{self.units}"


class SymbolPair(NamedTuple):
    asset: str
    currency: str


@dataclass(slots=True)
class Balance:
    type: str
    currency: str
    amount: float
    available: float


@dataclass(slots=True)
class Ticker:
    bid: float
    ask: float
    last_price: float


@dataclass(slots=True)
class OrderInfo:
    id: str
    side: Side
    amount: float
    remaining: float
    executed: float
    is_filled: bool
    is_open: bool


@dataclass(slots=True)
class Position:
    instrument: str
    size: float


@dataclass(slots=True)
class OrderSizeResult:
    total: float
    available: float
    isAllAvailable: bool
    orderSize: float


@dataclass(slots=True)
class PlacedOrder:
    """Outcome of a single order placement.

    order is the adapter's handle, or None when nothing was sent to the
    exchange (zero size or a failed slot inside a scaled order).
    """

    order: OrderHandle | None
    side: Side
    price: float
    amount: float
    units: str = ""

    @classmethod
    def null(cls, side: Side, price: float = 0, amount: float = 0, units: str = "") -> PlacedOrder:
        return cls(None, side, price, amount, units)

    @property
    def placed(self) -> bool:
        return self.order is not None


def parse_quantity(text: str | None) -> Quantity:
    """Parse '12', '1.5btc', '50%', '25%%' or '100usd'.

    Anything that doesn't look like a non-negative number with optional
    units parses as zero.
    """
    if not text:
        return Quantity.zero()

    m = QUANTITY_RE.match(str(text).strip())
    if not m:
        return Quantity.zero()

    return Quantity(float(m.group(1)), m.group(3) or "")


def parse_percentage(text: str | None) -> float:
    """'10%' is 0.1, a bare '10' stays 10. Unparseable is 0."""
    m = PERCENTAGE_RE.search(str(text or ""))
    if not m:
        return 0

    value = float(m.group(1))
    if m.group(3) == "%":
        return value / 100

    return value


def parse_target(text: str | None) -> float | None:
    """Signed plain number for a target position, None when the text isn't one."""
    try:
        value = float(str(text).strip())
    except ValueError:
        return None

    return value if math.isfinite(value) else None


def time_to_seconds(text: str | None, default: int = 10) -> int:
    """Convert '30', '30s', '5m', '2h' or '1d' into whole seconds."""
    m = DURATION_RE.search(str(text or ""))
    if not m:
        return default

    return int(m.group(1)) * DURATION_SCALE[(m.group(2) or "s").lower()]


def _quantize(value: float, places: int, rounding: str) -> float:
    # str() gives the shortest repr so 1.15 stays 1.15 instead of 1.149999...
    exp = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exp, rounding=rounding))


def round_down(value: float, places: int = 0) -> float:
    return _quantize(value, places, ROUND_FLOOR)


def round_up(value: float, places: int = 0) -> float:
    return _quantize(value, places, ROUND_CEILING)


def round_near(value: float, places: int = 0) -> float:
    return _quantize(value, places, ROUND_HALF_UP)


def split_symbol(symbol: str) -> SymbolPair:
    """Split 'BTCUSD' into ('btc', 'usd'), 'DASHUSD' into ('dash', 'usd')."""
    m = SYMBOL_RE.match(symbol.lower())
    if not m:
        logger.warning("[{}] Can't split symbol into asset/currency, assuming btc/usd", symbol)
        return SymbolPair("btc", "usd")

    return SymbolPair(m.group(1), m.group(2))


def validate_side(side: str) -> Side:
    side = side.strip().lower()
    if side not in SIDES:
        raise CommandError("side must be buy or sell")

    return side  # type: ignore[return-value]


def opposite_side(side: Side) -> Side:
    return "sell" if side == "buy" else "buy"


def as_bool(text: str) -> bool:
    return str(text).strip().lower() in {"true", "yes", "1", "on"}


def fmt_amount(value: float) -> str:
    """Plain decimal text without trailing zeros: 2.0 -> '2', 0.5454 -> '0.5454'."""
    text = f"{value:.8f}".rstrip("0").rstrip(".")
    return "0" if text in {"", "-0"} else text
