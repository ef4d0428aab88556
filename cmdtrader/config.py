"""Runtime configuration from defaults, an optional .env file and the environment.

Precedence (later wins): CONFIG_DEFAULT < .env.cmdtrader < os.environ.

Credentials and macros are flattened into variables:

    CMDTRADER_CREDENTIALS_PAPER_WALLET="btc=1.5,usd=12000"
    CMDTRADER_MACRO_CLOSEALL="cancelOrders(all); marketOrder(sell, 100%)"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from dotenv import dotenv_values

PREFIX: Final = "CMDTRADER_"
CREDENTIALS_PREFIX: Final = PREFIX + "CREDENTIALS_"
MACRO_PREFIX: Final = PREFIX + "MACRO_"

CONFIG_DEFAULT: Final = dict(
    CMDTRADER_LOGDIR="runlogs",
    CMDTRADER_LOG_LEVEL="INFO",
    CMDTRADER_MIN_POLL="1",
    CMDTRADER_MAX_POLL="10",
    CMDTRADER_POLL_STEP="1",
    CMDTRADER_TICKER_TTL="30",
    CMDTRADER_CLOSE_DELAY="0.5",
    CMDTRADER_NOTIFY_DEFAULT="log",
    CMDTRADER_WEBHOOK_URL="",
)

# exchanges that need no real credentials are always usable
ALWAYS_AVAILABLE: Final = ("paper", "paperperp")


@dataclass(slots=True)
class BotConfig:
    logdir: str = "runlogs"
    logLevel: str = "INFO"
    minPollingDelay: float = 1
    maxPollingDelay: float = 10
    pollingStep: float = 1
    tickerTtl: float = 30
    closeDelay: float = 0.5
    notifyDefault: list[str] = field(default_factory=lambda: ["log"])
    webhookUrl: str = ""
    credentials: dict[str, dict[str, str]] = field(default_factory=dict)
    macros: dict[str, str] = field(default_factory=dict)

    def exchangeOptions(self) -> dict[str, Any]:
        return dict(
            macros=self.macros,
            minPollingDelay=self.minPollingDelay,
            maxPollingDelay=self.maxPollingDelay,
            pollingStep=self.pollingStep,
            tickerTtl=self.tickerTtl,
        )


def loadConfig(path: str = ".env.cmdtrader", environ: Mapping[str, str] | None = None) -> BotConfig:
    raw: dict[str, str] = {
        **CONFIG_DEFAULT,
        **{k: v for k, v in dotenv_values(path).items() if v is not None},
        **(os.environ if environ is None else environ),
    }

    credentials: dict[str, dict[str, str]] = {name: {} for name in ALWAYS_AVAILABLE}
    macros: dict[str, str] = {}
    for key, value in raw.items():
        if key.startswith(CREDENTIALS_PREFIX):
            exchange, _, name = key.removeprefix(CREDENTIALS_PREFIX).partition("_")
            if exchange and name:
                credentials.setdefault(exchange.lower(), {})[name.lower()] = value
        elif key.startswith(MACRO_PREFIX):
            macros[key.removeprefix(MACRO_PREFIX).lower()] = value

    return BotConfig(
        logdir=raw["CMDTRADER_LOGDIR"],
        logLevel=raw["CMDTRADER_LOG_LEVEL"].upper(),
        minPollingDelay=float(raw["CMDTRADER_MIN_POLL"]),
        maxPollingDelay=float(raw["CMDTRADER_MAX_POLL"]),
        pollingStep=float(raw["CMDTRADER_POLL_STEP"]),
        tickerTtl=float(raw["CMDTRADER_TICKER_TTL"]),
        closeDelay=float(raw["CMDTRADER_CLOSE_DELAY"]),
        notifyDefault=[x.strip().lower() for x in raw["CMDTRADER_NOTIFY_DEFAULT"].split(",") if x.strip()],
        webhookUrl=raw["CMDTRADER_WEBHOOK_URL"],
        credentials=credentials,
        macros=macros,
    )
