"""Command set. Importing this package registers every built-in command in COMMANDS."""

from cmdtrader.cmds.base import COMMANDS, CommandContext, IOp, command

from cmdtrader.cmds.account import balance  # noqa: F401
from cmdtrader.cmds.algo import iceberg, pingpong, scaled, twap  # noqa: F401
from cmdtrader.cmds.orders import cancel, limit, market, stop  # noqa: F401
from cmdtrader.cmds.utilities import macro, notify, wait  # noqa: F401

__all__ = ["COMMANDS", "CommandContext", "IOp", "command"]
