"""Command: cancelOrders

Category: Orders
"""

from dataclasses import dataclass

from loguru import logger

from cmdtrader.cmds.base import IOp, command
from cmdtrader.engine.errors import CommandError
from cmdtrader.engine.registry import CANCEL_SCOPES


@command(names=["cancelOrders"])
@dataclass
class IOpCancelOrders(IOp):
    """Cancel orders by scope: buy, sell, all, session (this sequence) or tagged (this sequence + tag).

    Matching algorithmic orders are flagged to stop first so they can't
    replace what is being cancelled.
    """

    def argmap(self):
        return dict(which="session", tag="")

    async def run(self) -> int:
        which = self.p["which"].strip().lower()
        if which not in CANCEL_SCOPES:
            raise CommandError(f"cancelOrders which must be one of: {', '.join(CANCEL_SCOPES)}")

        tag = self.p["tag"]
        self.ex.cancelAlgorithmicOrders(which, tag, self.session)

        match which:
            case "buy" | "sell" | "all":
                orders = await self.ex.api.activeOrders(self.symbol, which)
            case "tagged":
                orders = self.ex.findInSession(self.session, tag)
            case _:
                orders = self.ex.findInSession(self.session)

        logger.info("[{}] Cancelling {} orders ({})", self.ex.name, len(orders), which)
        await self.ex.api.cancelOrders(orders)
        return len(orders)
