"""Command: wait

Category: Utilities
"""

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.engine.primitives import time_to_seconds


@command(names=["wait"])
@dataclass
class IOpWait(IOp):
    """Pause the rest of the command sequence, e.g. wait(5m)."""

    def argmap(self):
        return dict(duration="10s")

    async def run(self) -> int:
        delay = time_to_seconds(self.p["duration"], 10)
        logger.info("[{}] Waiting for {} seconds", self.ex.name, delay)
        await self.ex.clock.sleep(delay)
        return delay
