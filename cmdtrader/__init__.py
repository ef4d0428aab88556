"""cmdtrader: run exchange command blocks from plain text messages."""

__version__ = "0.1.0"
