"""Kernel symbol table: exported symbols, their CRCs and owning modules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from .log import Logger

INT32_MAX = 2**31 - 1
KSYMTAB_PREFIX = "__ksymtab_"

_FIELD_SPLIT = re.compile(r"[ \t]+")
_CRC_RE = re.compile(r"\s*([+-]?)((?:0[xX])?[0-9a-fA-F]+)")


class SymbolBinding(Enum):
    """How a module binds to a symbol it uses."""

    NONE = "\0"
    LOCAL = "L"
    GLOBAL = "G"
    WEAK = "W"
    UNDEF = "U"


@dataclass(frozen=True)
class DependencySymbol:
    """A symbol a module needs, with the CRC it expects."""

    symbol: str
    crc: int = 0
    bind: SymbolBinding = SymbolBinding.UNDEF

    @property
    def is_weak(self) -> bool:
        return self.bind is SymbolBinding.WEAK


@dataclass(eq=False)
class Module:
    """A module file found while building the dependency data.

    Modules compare by identity, so they can be used as graph nodes.
    """

    path: str
    modname: str
    relpath: str | None = None
    uncrelpath: str | None = None
    exports: list[tuple[str, int]] = field(default_factory=list)
    dependency_symbols: list[DependencySymbol] = field(default_factory=list)
    info: list[tuple[str, str]] = field(default_factory=list)
    deps: list["Module"] = field(default_factory=list)
    sort_idx: int = 0
    dep_sort_idx: int = INT32_MAX
    idx: int = 0
    users: int = 0


@dataclass
class Symbol:
    """An exported symbol; owner is None for symbols of the kernel itself."""

    name: str
    crc: int = 0
    owner: Module | None = None


def _parse_crc(text: str) -> int | None:
    match = _CRC_RE.fullmatch(text)
    if match is None:
        return None
    value = int(match.group(2), 16)
    if match.group(1) == "-":
        value = -value
    return value % (1 << 64)


class SymbolTable:
    """Symbols by name; adding a name again replaces the earlier entry."""

    def __init__(self, sym_prefix: str = "", logger: Logger | None = None) -> None:
        self.sym_prefix = sym_prefix
        self.logger = logger if logger is not None else Logger()
        self._symbols: dict[str, Symbol] = {}

    def __len__(self) -> int:
        return len(self._symbols)

    def __iter__(self) -> Iterator[Symbol]:
        return iter(self._symbols.values())

    def _strip_prefix(self, name: str) -> str:
        if self.sym_prefix and name.startswith(self.sym_prefix):
            return name[len(self.sym_prefix):]
        return name

    def add(
        self,
        name: str,
        crc: int = 0,
        owner: Module | None = None,
        prefix_skipped: bool = False,
    ) -> Symbol:
        """Register a symbol, dropping the architecture prefix unless already done."""
        if not prefix_skipped:
            name = self._strip_prefix(name)
        symbol = Symbol(name, crc, owner)
        self._symbols[name] = symbol
        owner_path = owner.path if owner is not None else ""
        self.logger.debug(f"add sym={name}, owner={owner_path}")
        return symbol

    def find(self, name: str) -> Symbol | None:
        """Look a symbol up; a leading '.' (PPC64) and the prefix are ignored."""
        if name.startswith("."):
            name = name[1:]
        return self._symbols.get(self._strip_prefix(name))

    def add_fake_symbols(self) -> None:
        """Add the symbols the kernel loader provides by itself."""
        self.add("__this_module", 0, None, True)
        self.add("_GLOBAL_OFFSET_TABLE_", 0, None, True)
        if self.find("TOC.") is None:
            self.add("TOC.", 0, None, True)

    def load_symvers(self, filename: str) -> None:
        """Load vmlinux symbols and CRCs from a Module.symvers file.

        Raises OSError if the file cannot be opened.
        """
        try:
            fp = open(filename, encoding="utf-8", errors="replace")
        except OSError:
            self.logger.debug(f"load symvers: {filename}: could not open")
            raise
        self.logger.debug(f"load symvers: {filename}")
        with fp:
            for linenum, line in enumerate(fp, start=1):
                fields = [f for f in _FIELD_SPLIT.split(line) if f]
                if len(fields) < 3:
                    continue
                ver, sym, where = fields[:3]
                if where != "vmlinux":
                    continue
                crc = _parse_crc(ver)
                if crc is None:
                    self.logger.err(
                        f"{filename}:{linenum} Invalid symbol version {ver}"
                    )
                    continue
                self.add(sym, crc, None, False)
        self.add_fake_symbols()
        self.logger.debug(f"loaded symvers: {filename}")

    def load_system_map(self, filename: str) -> None:
        """Load exported kernel symbols from a System.map file.

        Raises OSError if the file cannot be opened.
        """
        try:
            fp = open(filename, encoding="utf-8", errors="replace")
        except OSError:
            self.logger.debug(f"load System.map: {filename}: could not open")
            raise
        self.logger.debug(f"load System.map: {filename}")
        with fp:
            for linenum, line in enumerate(fp, start=1):
                parts = line.split(" ", 2)
                if len(parts) < 3:
                    self.logger.err(f"{filename}:{linenum}: invalid line: {line}")
                    continue
                name = self._strip_prefix(parts[2])
                if not name.startswith(KSYMTAB_PREFIX):
                    continue
                name = name.split("\n", 1)[0]
                self.add(name[len(KSYMTAB_PREFIX):], 0, None, True)
        self.add_fake_symbols()
        self.logger.debug(f"loaded System.map: {filename}")