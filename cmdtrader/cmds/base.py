"""Command base class and registration decorator.

Every action an exchange understands is an IOp subclass registered by
name with @command. argmap() declares the parameter schema as an ordered
mapping of name -> default text; positional arguments bind in that order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

import prettyprinter as pp
from loguru import logger

from cmdtrader.engine.commandlang import OrderedArg, assign_params

if TYPE_CHECKING:
    from cmdtrader.engine.exchange import Exchange

# name -> command class, filled in as the command modules are imported
COMMANDS: dict[str, type[IOp]] = {}


def command(names: list[str]):
    """Register the decorated IOp under each of names (first is canonical)."""

    def register(cls: type[IOp]) -> type[IOp]:
        cls.names = tuple(names)
        for name in names:
            COMMANDS[name] = cls

        return cls

    return register


@dataclass(slots=True)
class CommandContext:
    ex: Exchange
    symbol: str
    session: str
    name: str = ""


@dataclass
class IOp:
    ctx: CommandContext
    args: list[OrderedArg] = field(default_factory=list)
    p: dict[str, str] = field(init=False)

    names: ClassVar[tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        self.p = assign_params(self.argmap(), self.args)
        logger.debug("[{} {}] {}", self.ex.name, self.ctx.name, pp.pformat(self.p))

    @property
    def ex(self) -> Exchange:
        return self.ctx.ex

    @property
    def symbol(self) -> str:
        return self.ctx.symbol

    @property
    def session(self) -> str:
        return self.ctx.session

    def argmap(self) -> dict[str, str]:
        return {}

    async def run(self) -> Any:
        raise NotImplementedError
