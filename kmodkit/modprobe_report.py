"""Text that modprobe prints about versions, actions and insertion errors."""

from __future__ import annotations

import errno
import os


def format_version_line(crc: int, symbol: str) -> str:
    """A symbol version line: the CRC as at least eight hex digits, a tab, the name."""
    return f"0x{crc:08x}\t{symbol}"


def format_action(
    path: str | None,
    install: bool,
    options: str | None,
    install_commands: str | None = None,
    name: str | None = None,
    builtin: bool = False,
) -> str | None:
    """Describe what a probe does for one module, or None if nothing is shown."""
    opts = options or ""
    if install:
        return f"install {install_commands or ''} {opts}"
    if path is None:
        if builtin:
            return f"builtin {name}"
        return None
    return f"insmod {path} {opts}"


def insert_error_message(name: str, errno_value: int) -> str:
    """The message printed when inserting a module failed with an errno value."""
    code = abs(errno_value)
    if code == errno.EEXIST:
        reason = "Module already in kernel"
    elif code == errno.ENOENT:
        reason = "Unknown symbol in module, or unknown parameter (see dmesg)"
    else:
        reason = os.strerror(code)
    return f"could not insert '{name}': {reason}"