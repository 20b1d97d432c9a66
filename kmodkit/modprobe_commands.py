"""Install and remove commands from the modprobe configuration."""

from __future__ import annotations

import os
import subprocess

CMDLINE_OPTS_VAR = "$CMDLINE_OPTS"


class CommandError(RuntimeError):
    """An install or remove command failed."""

    def __init__(self, modname: str, kind: str, status: int | None) -> None:
        super().__init__(f"Error running {kind} command for {modname}")
        self.modname = modname
        self.kind = kind
        self.status = status


def expand_command(command: str, cmdline_opts: str | None = None) -> str:
    """Replace every $CMDLINE_OPTS in the command with the given options."""
    return command.replace(CMDLINE_OPTS_VAR, cmdline_opts or "")


def run_command(
    modname: str,
    kind: str,
    command: str,
    cmdline_opts: str | None = None,
    dry_run: bool = False,
) -> str:
    """Run a command through the shell with MODPROBE_MODULE set.

    Returns the expanded command. With dry_run nothing is run. Raises
    CommandError if the shell cannot start or the command exits non-zero.
    """
    cmd = expand_command(command, cmdline_opts)
    if dry_run:
        return cmd
    env = dict(os.environ)
    env["MODPROBE_MODULE"] = modname
    try:
        result = subprocess.run(cmd, shell=True, env=env, check=False)
    except OSError:
        raise CommandError(modname, kind, None) from None
    if result.returncode != 0:
        raise CommandError(modname, kind, result.returncode)
    return cmd