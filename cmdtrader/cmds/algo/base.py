"""Shared state handling for long-running algorithmic orders."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Final

from loguru import logger

from cmdtrader.cmds.base import IOp
from cmdtrader.engine.primitives import Side


class AlgoState(enum.Enum):
    REGISTERED = enum.auto()
    PLACING = enum.auto()
    AWAITING_FILL = enum.auto()
    REACTING = enum.auto()
    CANCELLED = enum.auto()
    EXPIRED = enum.auto()
    DONE = enum.auto()


TERMINAL: Final = frozenset({AlgoState.CANCELLED, AlgoState.EXPIRED, AlgoState.DONE})


def clamp_int(text: str, lo: int, hi: int, default: int) -> int:
    try:
        value = int(float(text))
    except ValueError:
        value = default

    return max(lo, min(hi, value))


@dataclass
class AlgoOp(IOp):
    """IOp that registers itself as a cancellable algo order while it runs.

    Subclasses call register() once they know their side, check stopped()
    at the top of each loop iteration, and always release() on the way out.
    """

    state: AlgoState | None = field(init=False, default=None)
    algoId: str | None = field(init=False, default=None)

    def transition(self, state: AlgoState) -> None:
        if state is not self.state:
            logger.debug("[{} {}] {} -> {}", self.ex.name, self.ctx.name, self.state and self.state.name, state.name)
            self.state = state

    def register(self, side: Side, tag: str) -> None:
        self.algoId = self.ex.algos.start(side, self.session, tag).id
        self.transition(AlgoState.REGISTERED)

    def release(self) -> None:
        if self.algoId:
            self.ex.algos.end(self.algoId)

        if self.state not in TERMINAL:
            self.transition(AlgoState.DONE)

    @property
    def cancelled(self) -> bool:
        return self.algoId is not None and self.ex.algos.isCancelled(self.algoId)
