"""Command: notify

Category: Utilities
"""

from dataclasses import dataclass

from cmdtrader.cmds.base import IOp, command


@command(names=["notify"])
@dataclass
class IOpNotify(IOp):
    """Send a message through the notifier ('who' picks a channel, default fans out)."""

    def argmap(self):
        return dict(
            msg=f"Message from {self.ex.name}",
            title="",
            color="good",
            text="",
            footer="not financial advice",
            who="default",
        )

    async def run(self) -> int:
        return await self.ex.notifier.send(self.p["msg"], self.p, self.p["who"].strip().lower())
