"""Command: macro

Category: Utilities
"""

from dataclasses import dataclass
from typing import Any

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.engine.commandlang import parse_actions
from cmdtrader.engine.errors import CommandError


@command(names=["macro"])
@dataclass
class IOpMacro(IOp):
    """Run a stored action list by name, strictly in order.

    The first failing action stops the macro and the failure propagates to
    whoever ran it.
    """

    def argmap(self):
        return dict(func="", tag="")

    async def run(self) -> list[Any]:
        name = self.p["func"]
        actions = self.ex.config.macro(name)
        if actions is None:
            raise CommandError(f"No macro named {name} found.")

        logger.info("[{}] Running macro {}: {}", self.ex.name, name, actions)
        results = []
        for action in parse_actions(actions):
            results.append(
                await self.ex.executeCommand(self.symbol, action.name, action.params, self.session)
            )

        return results
