"""Outbound notifications: a set of named channels plus a default fan-out list."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from cmdtrader.engine.protocols import NotificationChannel


@dataclass(slots=True)
class LogChannel:
    """Writes notifications into the log."""

    level: str = "INFO"

    async def send(self, message: str, options: dict[str, Any]) -> None:
        title = options.get("title")
        if title:
            logger.log(self.level, "[notify] {}: {}", title, message)
        else:
            logger.log(self.level, "[notify] {}", message)


@dataclass(slots=True)
class WebhookChannel:
    """POSTs {"text": message, **options} as JSON to a URL."""

    url: str
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    async def send(self, message: str, options: dict[str, Any]) -> None:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            got = await client.post(self.url, json={"text": message, **options})
            got.raise_for_status()


@dataclass
class Notifier:
    default: list[str] = field(default_factory=lambda: ["log"])
    channels: dict[str, NotificationChannel] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.channels.setdefault("log", LogChannel())

    def addChannel(self, name: str, channel: NotificationChannel) -> None:
        self.channels[name.lower()] = channel

    async def send(
        self, message: str, options: dict[str, Any] | None = None, where: str | None = None
    ) -> int:
        """Deliver message to where (or the default channels); returns deliveries made.

        A failing channel is logged and skipped so notifications never break
        the order flow that triggered them.
        """
        targets = self.default if where in {None, "", "default"} else [where.lower()]
        delivered = 0
        for name in targets:
            channel = self.channels.get(name)
            if channel is None:
                logger.warning("[{}] No such notification channel", name)
                continue

            try:
                await channel.send(message, dict(options or {}))
                delivered += 1
            except Exception as e:
                logger.error("[{}] Notification failed: {}", name, e)

        return delivered
