"""Exchange drivers known to the manager, by name."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Final

from cmdtrader.drivers.paper import PaperExchange, PaperPerpExchange
from cmdtrader.engine.exchange import Exchange


@dataclass(slots=True, frozen=True)
class ExchangeSpec:
    description: str
    factory: Callable[..., Exchange]

    def create(self, credentials: Mapping[str, str], **kwargs: Any) -> Exchange:
        return self.factory(credentials, **kwargs)


EXCHANGES: Final[dict[str, ExchangeSpec]] = {
    cls.name: ExchangeSpec(cls.description, cls.create)
    for cls in (PaperExchange, PaperPerpExchange)
}
