"""Parsing of free-text messages into command blocks, actions and arguments.

A message may contain any number of blocks of the form

    exchange(SYMBOL) { action(args); action(args) }

surrounded by arbitrary prose. Arguments are comma separated, either
positional (`buy`, `"quoted, text"`) or named (`side=buy`, `msg="a, b"`).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final, NamedTuple

BLOCK_RE: Final = re.compile(r"([a-z]+)\(([\s\S]*?)\)\s*{([\s\S]*?)}", re.IGNORECASE)
ACTION_RE: Final = re.compile(r"([a-z]+)\(([\s\S]*?)\)", re.IGNORECASE)

# A top-level argument is either a run of text containing complete quoted
# strings (commas inside them don't split) or a plain comma-free run.
# An unterminated quote can't match the first branch so it becomes literal text.
ARGUMENT_SPLIT_RE: Final = re.compile(r'((?:[^,"]*"[^"]*")+[^,]*)|([^,]+)')
ARGUMENT_RE: Final = re.compile(
    r'^(([a-zA-Z]+)\s*=\s*(("([^"]*)")|"?(.+)"?))|(.+)$', re.DOTALL
)
QUOTED_RE: Final = re.compile(r'^"(.*)"$', re.DOTALL)


class OrderedArg(NamedTuple):
    name: str
    value: str
    index: int


class CommandBlock(NamedTuple):
    exchange: str
    symbol: str
    actions: str


@dataclass(slots=True)
class ParsedAction:
    name: str
    params: list[OrderedArg] = field(default_factory=list)


def command_blocks(message: str) -> list[CommandBlock]:
    """Find every well-formed command block in message, in order."""
    blocks: list[CommandBlock] = []
    for m in BLOCK_RE.finditer(message or ""):
        exchange = m.group(1).strip().lower()
        symbol = m.group(2).strip()
        actions = m.group(3).strip()
        if exchange and symbol and actions:
            blocks.append(CommandBlock(exchange, symbol, actions))

    return blocks


def strip_command_blocks(message: str) -> str:
    return BLOCK_RE.sub("", message or "")


def parse_actions(text: str) -> list[ParsedAction]:
    """Extract 'name(args)' actions; anything between them is ignored."""
    return [
        ParsedAction(m.group(1).strip(), parse_arguments(m.group(2).strip()))
        for m in ACTION_RE.finditer(text or "")
    ]


def _unquote(value: str) -> str:
    m = QUOTED_RE.match(value)
    return m.group(1) if m else value


def parse_arguments(text: str) -> list[OrderedArg]:
    """Split an argument list into named and positional arguments.

    >>> parse_arguments('12, side=buy, msg="a, b"')
    [OrderedArg(name='', value='12', index=0), OrderedArg(name='side', value='buy', index=1), OrderedArg(name='msg', value='a, b', index=2)]
    """
    parts = [m.group(0).strip() for m in ARGUMENT_SPLIT_RE.finditer(text or "")]

    args: list[OrderedArg] = []
    for index, part in enumerate(parts):
        m = ARGUMENT_RE.match(part)
        if not m:
            continue

        if m.group(2):
            value = m.group(5) if m.group(5) is not None else m.group(6).strip()

            args.append(OrderedArg(m.group(2), value, index))
        else:
            args.append(OrderedArg("", _unquote(m.group(7)), index))

    return args


def assign_params(defaults: dict[str, str], args: list[OrderedArg]) -> dict[str, str]:
    """Bind parsed arguments onto an ordered set of default parameters.

    Positional argument at index i fills the i-th declared parameter, named
    arguments match parameter names case-insensitively. A named argument
    always beats a positional one for the same parameter. Names that match
    no parameter are ignored.
    """
    params = dict(defaults)
    keys = list(defaults.keys())
    lookup = {k.lower(): k for k in keys}

    for arg in args:
        if not arg.name and arg.index < len(keys):
            params[keys[arg.index]] = arg.value

    for arg in args:
        if arg.name and (key := lookup.get(arg.name.lower())):
            params[key] = arg.value

    return params
