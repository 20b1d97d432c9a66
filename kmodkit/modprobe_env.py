"""Handling of the MODPROBE_OPTIONS environment variable."""

from __future__ import annotations

import os
from typing import Mapping, MutableMapping, Sequence

ENV_NAME = "MODPROBE_OPTIONS"
_QUOTES = "\"'"


def split_env_options(env: str) -> list[str]:
    """Split an options string on spaces, honouring single and double quotes.

    A quoted word loses its quotes; quotes inside a word are removed and the
    spaces between them kept. Every space ends a word, so repeated spaces
    give empty words.
    """
    chars = list(env)
    words: list[str] = []
    start = 0
    quote: int | None = None
    i = 0
    while i < len(chars):
        c = chars[i]
        if quote is None:
            if c == " ":
                words.append("".join(chars[start:i]))
                start = i + 1
            elif c in _QUOTES:
                quote = i
        elif c == chars[quote]:
            if quote == start:
                words.append("".join(chars[start + 1:i]))
                start = i + 1
            else:
                del chars[i]
                del chars[quote]
                i -= 2
            quote = None
        i += 1
    if start < len(chars):
        words.append("".join(chars[start:]))
    return words


def prepend_options_from_env(
    argv: Sequence[str], env: Mapping[str, str] | None = None
) -> list[str]:
    """Insert the words of MODPROBE_OPTIONS right after the program name."""
    if env is None:
        env = os.environ
    value = env.get(ENV_NAME)
    if value is None:
        return list(argv)
    return [argv[0], *split_env_options(value), *argv[1:]]


def append_env_option(env: MutableMapping[str, str] | None, value: str) -> str:
    """Append a word to MODPROBE_OPTIONS in env and return the new value."""
    if env is None:
        env = os.environ
    old = env.get(ENV_NAME)
    new = value if old is None else f"{old} {value}"
    env[ENV_NAME] = new
    return new