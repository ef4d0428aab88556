"""Minimum spacing between outbound calls, per adapter instance."""

from __future__ import annotations

from dataclasses import dataclass, field

from cmdtrader.engine.clock import AppClock


@dataclass(slots=True)
class RateLimiter:
    """Each wait() returns no sooner than minInterval after the previous call was allowed through.

    The slot is reserved before suspending so concurrent callers queue up
    behind each other instead of waking together.
    """

    minInterval: float = 0.0
    clock: AppClock = field(default_factory=AppClock)
    nextCallAt: float = 0.0

    async def wait(self) -> None:
        now = self.clock.now()
        callAt = max(now, self.nextCallAt)
        self.nextCallAt = callAt + self.minInterval
        if callAt > now:
            await self.clock.sleep(callAt - now)
