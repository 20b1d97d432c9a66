"""Argument helpers for modprobe: module options and the --wait value."""

from __future__ import annotations

import re
from typing import Sequence

_ULONG_MAX = 2**64 - 1
_NUMBER_RE = re.compile(r"\s*([+-]?)(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)")


class InvalidWaitValue(ValueError):
    """The --wait argument is not a whole unsigned number."""


def options_from_array(args: Sequence[str]) -> str | None:
    """Join the options after the module name into one string.

    A value holding a space and not already quoted is wrapped in double
    quotes. Returns None when only the module name was given.
    """
    parts: list[str] = []
    for arg in args[1:]:
        key, sep, value = arg.partition("=")
        if sep and value[:1] not in ("\"", "'") and " " in value:
            parts.append(f'{key}="{value}"')
        else:
            parts.append(arg)
    return " ".join(parts) if parts else None


def parse_wait(value: str) -> int:
    """Parse a wait time in milliseconds as an unsigned long (decimal, 0x hex or 0 octal)."""
    match = _NUMBER_RE.fullmatch(value) if value else None
    if match is None:
        raise InvalidWaitValue(f"unexpected wait value '{value}'.")
    sign, digits = match.groups()
    magnitude = int(digits, 0) if not digits.startswith("0") or len(digits) == 1 or digits[1] in "xX" else int(digits, 8)
    if magnitude > _ULONG_MAX:
        return _ULONG_MAX
    if sign == "-":
        return (-magnitude) % (_ULONG_MAX + 1)
    return magnitude