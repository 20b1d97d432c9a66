"""Priority-filtered logging to stderr or syslog."""

from __future__ import annotations

import os
import sys
from enum import IntEnum
from typing import TextIO

try:
    import syslog
except ImportError:  # pragma: no cover - non-Unix platforms
    syslog = None  # type: ignore[assignment]


class Priority(IntEnum):
    """Syslog priorities; lower values are more severe."""

    EMERG = 0
    ALERT = 1
    CRIT = 2
    ERR = 3
    WARNING = 4
    NOTICE = 5
    INFO = 6
    DEBUG = 7


_NAMES = {
    Priority.CRIT: "FATAL",
    Priority.ERR: "ERROR",
    Priority.WARNING: "WARNING",
    Priority.NOTICE: "NOTICE",
    Priority.INFO: "INFO",
    Priority.DEBUG: "DEBUG",
}


def prio_to_str(prio: int) -> str:
    """Return the label printed for a priority."""
    try:
        return _NAMES[Priority(prio)]
    except (ValueError, KeyError):
        return f"LOG-{prio:03d}"


class FatalError(Exception):
    """Raised after a message of critical (or worse) priority is logged."""

    def __init__(self, message: str, priority: int = Priority.CRIT) -> None:
        super().__init__(message.rstrip("\n"))
        self.priority = priority


class Logger:
    """Writes messages at or above a priority threshold."""

    def __init__(
        self,
        program_name: str | None = None,
        priority: int = Priority.WARNING,
        stream: TextIO | None = None,
    ) -> None:
        self.program_name = program_name or os.path.basename(sys.argv[0] or "kmod")
        self.priority = priority
        self.stream = stream
        self.use_syslog = False

    def open(self, use_syslog: bool) -> None:
        """Choose the destination; syslog is used only where available."""
        self.use_syslog = bool(use_syslog) and syslog is not None
        if self.use_syslog:
            syslog.openlog(self.program_name, syslog.LOG_CONS, syslog.LOG_DAEMON)

    def close(self) -> None:
        if self.use_syslog:
            syslog.closelog()
        self.use_syslog = False

    def __enter__(self) -> "Logger":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def log(self, prio: int, message: str) -> None:
        """Emit a message; raise FatalError for critical priorities."""
        if prio > self.priority:
            return
        prioname = prio_to_str(prio)
        if self.use_syslog:
            syslog.syslog(int(prio), f"{prioname}: {message.rstrip(chr(10))}")
        else:
            text = message if message.endswith("\n") else message + "\n"
            stream = self.stream if self.stream is not None else sys.stderr
            stream.write(f"{self.program_name}: {prioname}: {text}")
            stream.flush()
        if prio <= Priority.CRIT:
            raise FatalError(message, prio)

    def crit(self, message: str) -> None:
        self.log(Priority.CRIT, message)

    def err(self, message: str) -> None:
        self.log(Priority.ERR, message)

    def warn(self, message: str) -> None:
        self.log(Priority.WARNING, message)

    def info(self, message: str) -> None:
        self.log(Priority.INFO, message)

    def debug(self, message: str) -> None:
        self.log(Priority.DEBUG, message)