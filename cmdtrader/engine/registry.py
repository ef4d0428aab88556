"""Per-exchange bookkeeping of placed orders and running algorithmic orders."""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Final

from loguru import logger

from cmdtrader.engine.primitives import OrderHandle, Side

CANCEL_SCOPES: Final = ("session", "tagged", "buy", "sell", "all")


@dataclass(slots=True)
class SessionOrder:
    tag: str
    order: OrderHandle


@dataclass(slots=True)
class SessionRegistry:
    """Orders placed per command sequence (session), each with an optional tag.

    Entries are never evicted: a session lives as long as the exchange instance.
    """

    sessions: dict[str, list[SessionOrder]] = field(default_factory=lambda: defaultdict(list))

    def add(self, session: str, tag: str, order: OrderHandle) -> None:
        self.sessions[session].append(SessionOrder(tag, order))

    def find(self, session: str, tag: str | None = None) -> list[OrderHandle]:
        return [
            entry.order
            for entry in self.sessions.get(session, [])
            if tag is None or entry.tag == tag
        ]


@dataclass(slots=True)
class AlgoOrder:
    id: str
    side: Side
    session: str
    tag: str
    cancelled: bool = False


@dataclass(slots=True)
class AlgoRegistry:
    """Running algorithmic orders and their cancellation flags."""

    running: dict[str, AlgoOrder] = field(default_factory=dict)

    def start(self, side: Side, session: str, tag: str) -> AlgoOrder:
        algo = AlgoOrder(str(uuid.uuid4()), side, session, tag)
        self.running[algo.id] = algo
        logger.debug("[{}] Algo order registered ({} {} tag={})", algo.id, side, session, tag)
        return algo

    def isCancelled(self, algoId: str) -> bool:
        algo = self.running.get(algoId)
        return algo is None or algo.cancelled

    def end(self, algoId: str) -> None:
        if self.running.pop(algoId, None):
            logger.debug("[{}] Algo order finished", algoId)

    def cancelMatching(self, which: str, tag: str, session: str) -> int:
        """Flag every running algo matching the cancelOrders scope; returns how many."""
        count = 0
        for algo in self.running.values():
            match which:
                case "all":
                    hit = True
                case "buy" | "sell":
                    hit = algo.side == which
                case "tagged":
                    hit = algo.session == session and algo.tag == tag
                case "session":
                    hit = algo.session == session
                case _:
                    hit = False

            if hit and not algo.cancelled:
                algo.cancelled = True
                count += 1
                logger.info("[{}] Algo order flagged for cancellation", algo.id)

        return count
