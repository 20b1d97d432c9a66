"""Render modules.devname entries as static device-node descriptions."""

from __future__ import annotations

import getopt
import os
import re
import sys
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Callable, Iterable, NamedTuple

MODULES_ROOT = "/lib/modules"

_ENTRY_RE = re.compile(r"\s*(\S+)\s+(\S+)\s+(\S)\s*\+?(\d+):\s*\+?(\d+)")


class InvalidDevnameEntry(ValueError):
    """A modules.devname line could not be parsed."""


@dataclass(frozen=True)
class DevnameEntry:
    """One device node: owning module, node name, type ('c' or 'b'), numbers."""

    modname: str
    devname: str
    kind: str
    major: int
    minor: int


def parse_devname_line(line: str) -> DevnameEntry:
    """Parse a line of the form 'modname devname c MAJ:MIN'."""
    match = _ENTRY_RE.match(line)
    if match is None or match.group(3) not in ("c", "b"):
        raise InvalidDevnameEntry(f"invalid devname entry: {line}")
    modname, devname, kind, major, minor = match.groups()
    return DevnameEntry(modname, devname, kind, int(major), int(minor))


def format_human(entry: DevnameEntry) -> str:
    kind = "character" if entry.kind == "c" else "block"
    return (
        f"Module: {entry.modname}\n"
        f"\tDevice node: /dev/{entry.devname}\n"
        f"\t\tType: {kind} device\n"
        f"\t\tMajor: {entry.major}\n"
        f"\t\tMinor: {entry.minor}\n"
    )


def format_tmpfiles(entry: DevnameEntry) -> str:
    text = ""
    slash = entry.devname.rfind("/")
    if slash >= 0:
        text += f"d /dev/{entry.devname[:slash]} 0755 - - -\n"
    text += (
        f"{entry.kind}! /dev/{entry.devname} 0600 - - - "
        f"{entry.major}:{entry.minor}\n"
    )
    return text


def format_devname(entry: DevnameEntry) -> str:
    return f"{entry.modname} {entry.devname} {entry.kind}{entry.major}:{entry.minor}\n"


class _Format(NamedTuple):
    writer: Callable[[DevnameEntry], str]
    description: str


FORMATS: dict[str, _Format] = {
    "human": _Format(format_human, "(default) a human readable format. Do not parse."),
    "tmpfiles": _Format(
        format_tmpfiles, "the tmpfiles.d(5) format used by systemd-tmpfiles."
    ),
    "devname": _Format(format_devname, "the modules.devname format."),
}


def convert(lines: Iterable[str], fmt: str) -> tuple[str, list[str]]:
    """Render lines in the named format; return the text and the invalid lines."""
    try:
        writer = FORMATS[fmt].writer
    except KeyError:
        raise ValueError(f"Unknown format: '{fmt}'.") from None
    rendered: list[str] = []
    invalid: list[str] = []
    for line in lines:
        if line.startswith("#"):
            continue
        try:
            entry = parse_devname_line(line)
        except InvalidDevnameEntry:
            invalid.append(line)
            continue
        rendered.append(writer(entry))
    return "".join(rendered), invalid


def _help(prog: str) -> None:
    print(
        "Usage:\n"
        f"\t{prog} static-nodes [options]\n"
        "\n"
        "kmod static-nodes outputs the static-node information of the currently running kernel.\n"
        "\n"
        "Options:\n"
        '\t-f, --format=FORMAT  choose format to use: see "Formats"\n'
        "\t-o, --output=FILE    write output to file\n"
        "\t-h, --help           show this help\n"
        "\n"
        "Formats:"
    )
    for name, fmt in FORMATS.items():
        print(f"\t{name:<12} {fmt.description}")


def main(argv: list[str] | None = None) -> int:
    """Write the running kernel's static nodes; return the exit status."""
    if argv is None:
        argv = sys.argv[1:]
    prog = os.path.basename(sys.argv[0] or "kmod")
    output: str | None = None
    fmt = "human"

    try:
        opts, _ = getopt.gnu_getopt(argv, "o:f:h", ["output=", "format=", "help"])
    except getopt.GetoptError as exc:
        print(f"{prog}: {exc}", file=sys.stderr)
        return 1

    for opt, arg in opts:
        if opt in ("-o", "--output"):
            output = arg
        elif opt in ("-f", "--format"):
            if arg not in FORMATS:
                print(f"Unknown format: '{arg}'.", file=sys.stderr)
                _help(prog)
                return 1
            fmt = arg
        else:
            _help(prog)
            return 0

    release = os.uname().release
    devname_path = f"{MODULES_ROOT}/{release}/modules.devname"

    with ExitStack() as stack:
        try:
            infile = stack.enter_context(open(devname_path, encoding="utf-8"))
        except FileNotFoundError:
            print(f"Warning: {devname_path} not found - ignoring", file=sys.stderr)
            return 0
        except OSError as exc:
            print(
                f"Error: could not open {devname_path} - {exc.strerror}",
                file=sys.stderr,
            )
            return 1

        if output is None:
            out = sys.stdout
        else:
            parent = os.path.dirname(output)
            try:
                if parent:
                    os.makedirs(parent, 0o755, exist_ok=True)
            except OSError as exc:
                print(
                    f"Error: could not create parent directory for {output} - "
                    f"{exc.strerror}.",
                    file=sys.stderr,
                )
                return 1
            try:
                out = stack.enter_context(open(output, "w", encoding="utf-8"))
            except OSError as exc:
                print(f"Error: could not create {output} - {exc.strerror}", file=sys.stderr)
                return 1

        text, invalid = convert(infile, fmt)
        for line in invalid:
            suffix = "" if line.endswith("\n") else "\n"
            print(f"Error: invalid devname entry: {line}", end=suffix, file=sys.stderr)
        out.write(text)
        out.flush()

    return 1 if invalid else 0