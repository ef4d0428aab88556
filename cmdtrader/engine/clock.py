"""Time source and polling backoff shared by the algorithmic orders."""
from __future__ import annotations

import asyncio
import dataclasses
import time

import whenever


@dataclasses.dataclass
class AppClock:
    """Monotonic time plus cooperative sleep.

    Everything that waits (algo loops, wait(), rate limiters, the ticker
    cache) goes through one of these so tests can swap in a virtual clock.
    """

    def now(self) -> float:
        return time.monotonic()

    def wallclock(self) -> whenever.Instant:
        return whenever.Instant.now()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


@dataclasses.dataclass(slots=True)
class PollBackoff:
    """Linear polling delay: reset to minDelay on activity, +step per idle poll up to maxDelay."""

    minDelay: float = 1
    maxDelay: float = 10
    step: float = 1
    current: float = dataclasses.field(init=False)

    def __post_init__(self) -> None:
        self.current = self.minDelay

    def reset(self) -> None:
        self.current = self.minDelay

    def idle(self) -> float:
        """Return the delay to wait now, then grow it for next time."""
        delay = self.current
        self.current = min(self.maxDelay, self.current + self.step)
        return delay

    async def wait(self, clock: AppClock) -> None:
        await clock.sleep(self.idle())
