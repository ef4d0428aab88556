"""Exchange instances: command dispatch plus the sizing/pricing helpers commands share.

An Exchange wraps one adapter (ExchangeAPI) for one set of credentials. It
owns the command table for that instance, the per-session order registry,
the running algo registry and a short-lived ticker cache. Subclasses adjust
the sizing rules (ContractsExchange) and which commands are on offer.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Final

from cachetools import TTLCache
from loguru import logger

from cmdtrader.cmds import COMMANDS, IOp
from cmdtrader.cmds.account.balance import IOpContractsBalance
from cmdtrader.cmds.base import CommandContext
from cmdtrader.engine import sizing
from cmdtrader.engine.clock import AppClock, PollBackoff
from cmdtrader.engine.commandlang import OrderedArg, parse_arguments
from cmdtrader.engine.errors import CommandError, UnknownCommandError
from cmdtrader.engine.notifier import Notifier
from cmdtrader.engine.primitives import (
    MIN_ORDER_SIZE,
    Balance,
    OrderHandle,
    OrderSizeResult,
    Quantity,
    Side,
    Ticker,
    parse_quantity,
    parse_target,
    round_down,
    split_symbol,
)
from cmdtrader.engine.protocols import ContractsAPI, ExchangeAPI
from cmdtrader.engine.registry import AlgoRegistry, SessionRegistry

# Available on every exchange
BASE_COMMANDS: Final = (
    "wait",
    "scaledOrder",
    "twapOrder",
    "steppedMarketOrder",
    "icebergOrder",
    "pingPongOrder",
    "stopMarketOrder",
    "macro",
    "notify",
    "balance",
)

# Direct order management, added by exchanges that can trade
ORDER_COMMANDS: Final = ("limitOrder", "marketOrder", "cancelOrders")

ABSOLUTE_PRICE_PREFIX: Final = "@"


@dataclass(slots=True)
class ExchangeConfig:
    """Command table for one exchange instance.

    commands maps canonical names to handler classes, macros maps macro names
    to stored action text. Lookups are case-insensitive.
    """

    commands: dict[str, type[IOp]] = field(default_factory=dict)
    macros: dict[str, str] = field(default_factory=dict)
    index: dict[str, str] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        whitelist: tuple[str, ...],
        overrides: Mapping[str, type[IOp]] | None = None,
        macros: Mapping[str, str] | None = None,
    ) -> ExchangeConfig:
        commands = {name: COMMANDS[name] for name in whitelist}
        commands.update(overrides or {})

        config = cls(commands=commands)
        for name in commands:
            config.index[name.lower()] = name

        for name, actions in (macros or {}).items():
            if name.lower() in config.index:
                logger.warning("[{}] Macro name clashes with a command, ignoring macro", name)
                continue

            config.macros[name] = actions
            config.index[name.lower()] = name

        return config

    def lookup(self, name: str) -> tuple[str, type[IOp] | None] | None:
        """(canonical name, handler) for a command, (name, None) for a macro, None if unknown."""
        canonical = self.index.get(name.strip().lower())
        if canonical is None:
            return None

        return canonical, self.commands.get(canonical)

    def macro(self, name: str) -> str | None:
        canonical = self.index.get(name.strip().lower())
        return self.macros.get(canonical) if canonical else None


class Exchange:
    """Spot exchange driven through an ExchangeAPI adapter."""

    name: ClassVar[str] = "exchange"
    description: ClassVar[str] = ""
    whitelist: ClassVar[tuple[str, ...]] = BASE_COMMANDS
    overrides: ClassVar[dict[str, type[IOp]]] = {}

    def __init__(
        self,
        credentials: Mapping[str, str],
        api: ExchangeAPI,
        *,
        notifier: Notifier | None = None,
        macros: Mapping[str, str] | None = None,
        clock: AppClock | None = None,
        minOrderSize: float = MIN_ORDER_SIZE,
        minPollingDelay: float = 1,
        maxPollingDelay: float = 10,
        pollingStep: float = 1,
        tickerTtl: float = 30,
    ):
        self.credentials = dict(credentials)
        self.api = api
        self.notifier = notifier or Notifier()
        self.clock = clock or AppClock()
        self.minOrderSize = minOrderSize
        self.minPollingDelay = minPollingDelay
        self.maxPollingDelay = maxPollingDelay
        self.pollingStep = pollingStep

        self.config = ExchangeConfig.build(self.whitelist, self.overrides, macros)
        self.sessions = SessionRegistry()
        self.algos = AlgoRegistry()
        self.refCount = 1
        self.cache: TTLCache[tuple[str, str], Ticker] = TTLCache(
            maxsize=512, ttl=tickerTtl, timer=self.clock.now
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} refs={self.refCount}>"

    # ── Lifetime ──

    def matches(self, name: str, credentials: Mapping[str, str]) -> bool:
        return self.name == name and self.credentials == dict(credentials)

    def addReference(self) -> int:
        self.refCount += 1
        return self.refCount

    def removeReference(self) -> int:
        self.refCount -= 1
        return self.refCount

    async def terminate(self) -> None:
        logger.info("[{}] Exchange closing down", self.name)
        await self.api.close()

    def backoff(self) -> PollBackoff:
        return PollBackoff(self.minPollingDelay, self.maxPollingDelay, self.pollingStep)

    # ── Dispatch ──

    async def executeCommand(
        self, symbol: str, name: str, args: list[OrderedArg], session: str
    ) -> Any:
        """Run one named action; macros re-enter through the macro command."""
        found = self.config.lookup(name)
        if found is None:
            logger.error("[{}] Unknown command: {}", self.name, name)
            raise UnknownCommandError(name)

        canonical, handler = found
        if handler is None:
            return await self.executeCommand(
                symbol, "macro", parse_arguments(f"func={canonical}"), session
            )

        op = handler(CommandContext(self, symbol, session, canonical), args)
        return await op.run()

    # ── Registries ──

    def addToSession(self, session: str, tag: str, order: OrderHandle) -> None:
        self.sessions.add(session, tag, order)

    def findInSession(self, session: str, tag: str | None = None) -> list[OrderHandle]:
        return self.sessions.find(session, tag)

    def cancelAlgorithmicOrders(self, which: str, tag: str, session: str) -> int:
        return self.algos.cancelMatching(which, tag, session)

    # ── Market data ──

    async def ticker(self, symbol: str, session: str) -> Ticker:
        """Ticker cached per session and symbol for tickerTtl seconds."""
        key = (session, symbol.upper())
        if (found := self.cache.get(key)) is not None:
            return found

        found = await self.api.ticker(symbol)
        self.cache[key] = found
        return found

    async def accountBalances(self, symbol: str) -> list[Balance]:
        """Wallet entries of type 'exchange' for the two legs of symbol."""
        pair = split_symbol(symbol)
        wallet = await self.api.walletBalances()
        filtered = [
            b
            for b in wallet
            if b.type == "exchange" and b.currency in {pair.asset, pair.currency}
        ]
        logger.debug("[{}] Balances for {}: {}", self.name, symbol, filtered)
        return filtered

    async def offsetToAbsolutePrice(
        self, symbol: str, side: Side, offset: str, session: str
    ) -> float:
        """'@6500' is an absolute price; otherwise an offset below the bid (buy) or above the ask (sell)."""
        offset = (offset or "").strip()
        if offset.startswith(ABSOLUTE_PRICE_PREFIX):
            absolute = parse_quantity(offset[1:])
            if absolute.units or absolute.value <= 0:
                raise CommandError(f"Absolute price '{offset}' is not a positive number")

            return round_down(absolute.value, 4)

        orderbook = await self.ticker(symbol, session)
        distance = parse_quantity(offset)

        if side == "buy":
            base = float(orderbook.bid)
            shift = base * distance.value / 100 if distance.units == "%" else distance.value
            return round_down(base - shift, 2)

        base = float(orderbook.ask)
        shift = base * distance.value / 100 if distance.units == "%" else distance.value
        return round_down(base + shift, 2)

    # ── Sizing ──

    async def orderSizeFromAmount(
        self, symbol: str, side: Side, price: float, amount: Quantity | str
    ) -> OrderSizeResult:
        quantity = amount if isinstance(amount, Quantity) else parse_quantity(amount)
        balances = await self.accountBalances(symbol)
        return sizing.calc_order_size(symbol, side, quantity, balances, price, self.minOrderSize)

    async def positionToAmount(
        self, symbol: str, targetPosition: str, side: Side, amount: str
    ) -> tuple[Side, Quantity]:
        """Resolve a target holding into the side and amount needed to reach it.

        With no target the given side and amount are used unchanged.
        """
        if not (targetPosition or "").strip():
            return side, parse_quantity(amount)

        target = parse_target(targetPosition)
        if target is None:
            logger.warning("[{}] Target position '{}' is not a number, nothing to do", symbol, targetPosition)
            return side, Quantity.zero()

        pair = split_symbol(symbol)
        balances = await self.accountBalances(symbol)
        held = sum(float(b.amount) for b in balances if b.currency == pair.asset)
        change = round_down(target - held, 4)

        logger.info("[{}] Target position {} {}, holding {}: change {}", symbol, targetPosition, pair.asset, held, change)
        return ("sell" if change < 0 else "buy"), Quantity(abs(change), "")

    async def scaledOrderSize(
        self,
        symbol: str,
        side: Side,
        quantity: Quantity,
        orderCount: int,
        start: float,
        end: float,
        easing: str,
    ) -> float:
        if quantity.units != "":
            return quantity.value

        balances = await self.accountBalances(symbol)
        return sizing.scaled_order_size(
            symbol, side, quantity, orderCount, start, end, easing, balances, self.minOrderSize
        )


class ContractsExchange(Exchange):
    """Exchange trading whole contracts against margin instead of wallet balances."""

    api: ContractsAPI
    overrides = {"balance": IOpContractsBalance}

    def __init__(self, credentials: Mapping[str, str], api: ContractsAPI, **kwargs):
        kwargs.setdefault("minOrderSize", 1)
        super().__init__(credentials, api, **kwargs)

    async def orderSizeFromAmount(
        self, symbol: str, side: Side, price: float, amount: Quantity | str
    ) -> OrderSizeResult:
        quantity = amount if isinstance(amount, Quantity) else parse_quantity(amount)
        if quantity.units != "":
            raise CommandError(
                f"{self.name} amount does not support % or units. Use just the number of contracts (eg '1')"
            )

        size = round_down(quantity.value, 0)
        if size < self.minOrderSize:
            size = 0

        return OrderSizeResult(total=0, available=0, isAllAvailable=False, orderSize=size)

    async def positionToAmount(
        self, symbol: str, targetPosition: str, side: Side, amount: str
    ) -> tuple[Side, Quantity]:
        if not (targetPosition or "").strip():
            return side, Quantity(parse_quantity(amount).value, "")

        target = parse_target(targetPosition)
        if target is None:
            logger.warning("[{}] Target position '{}' is not a number, nothing to do", symbol, targetPosition)
            return side, Quantity.zero()

        held = 0.0
        for position in await self.api.positions():
            if position.instrument.upper() == symbol.upper():
                held = float(position.size)

        change = round_down(int(target) - held, 0)
        logger.info("[{}] Target position {} contracts, holding {}: change {}", symbol, targetPosition, held, change)
        return ("sell" if change < 0 else "buy"), Quantity(abs(change), "")

    async def scaledOrderSize(
        self,
        symbol: str,
        side: Side,
        quantity: Quantity,
        orderCount: int,
        start: float,
        end: float,
        easing: str,
    ) -> float:
        if quantity.units == "" and quantity.value / orderCount < self.minOrderSize:
            return 0

        return quantity.value
