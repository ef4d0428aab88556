"""Exception types raised by the command engine."""
from __future__ import annotations


class TraderError(Exception):
    """Base class for all engine failures."""


class CommandError(TraderError):
    """A single action could not be executed with the arguments given."""


class UnknownCommandError(CommandError):
    """Action name is neither a whitelisted command nor a configured macro."""

    def __init__(self, name: str):
        super().__init__(f"Unknown command: {name}")
        self.name = name


class TransportError(TraderError):
    """Exchange adapter call failed to complete."""


class AlgoCancelledError(TraderError):
    """An algorithmic order observed its cancellation flag and stopped."""
