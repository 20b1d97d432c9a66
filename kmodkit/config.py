"""Loading of depmod configuration: search order, overrides, externals, excludes."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, TextIO

from .log import Logger

CFG_BUILTIN_KEY = "built-in"
CFG_EXTERNAL_KEY = "external"

DEFAULT_CONFIG_PATHS = (
    "/etc/depmod.d",
    "/run/depmod.d",
    "/usr/local/lib/depmod.d",
    "/usr/lib/depmod.d",
    "/lib/depmod.d",
)

_TOKEN_SPLIT = re.compile(r"[\t ]+")


class SearchType(Enum):
    PATH = "path"
    BUILTIN = "built-in"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Search:
    """A search entry: a subdirectory, the built-in tree or external dirs."""

    type: SearchType
    path: str = ""

    @classmethod
    def from_word(cls, word: str) -> "Search":
        if word == CFG_BUILTIN_KEY:
            return cls(SearchType.BUILTIN)
        if word == CFG_EXTERNAL_KEY:
            return cls(SearchType.EXTERNAL)
        return cls(SearchType.PATH, word)

    def __str__(self) -> str:
        if self.type is SearchType.EXTERNAL:
            return CFG_EXTERNAL_KEY
        if self.type is SearchType.BUILTIN:
            return CFG_BUILTIN_KEY
        return self.path


def kernel_matches(pattern: str, kversion: str) -> bool:
    """True if the kernel version matches the pattern ('*' matches anything)."""
    if pattern == "*":
        return True
    try:
        return re.search(pattern, kversion) is not None
    except re.error:
        return False


def _list_config_files(paths: Iterable[str], logger: Logger) -> list[str]:
    found: dict[str, str] = {}

    def insert(name: str, path: str) -> None:
        if name in found:
            logger.debug(f"Ignoring duplicate config file: {path}")
            return
        found[name] = path

    for path in paths:
        if not os.path.exists(path):
            logger.debug(f"could not stat '{path}'")
            continue
        if not os.path.isdir(path):
            insert(os.path.basename(path), path)
            continue
        try:
            names = os.listdir(path)
        except OSError as exc:
            logger.err(f"files list {path}: {exc.strerror}")
            continue
        for name in names:
            if name.startswith("."):
                continue
            if len(name) < 6 or not name.endswith(".conf"):
                logger.info(f"All cfg files need .conf: {path}/{name}")
                continue
            full = os.path.join(path, name)
            if os.path.isdir(full):
                logger.err(
                    f"Directories inside directories are not supported: {path}/{name}"
                )
                continue
            insert(name, full)
        logger.debug(f"parsed configuration files from {path}")

    return [found[name] for name in sorted(found)]


def list_config_files(paths: Iterable[str]) -> list[str]:
    """Return configuration files from paths, sorted by name, first name wins."""
    return _list_config_files(paths, Logger())


def _wrapped_lines(fp: TextIO) -> Iterator[tuple[int, str]]:
    """Yield (line number, line), joining lines that end in a backslash."""
    pending = ""
    linenum = 0
    for raw in fp:
        linenum += 1
        line = raw[:-1] if raw.endswith("\n") else raw
        if line.endswith("\\"):
            pending += line[:-1]
            continue
        yield linenum, pending + line
        pending = ""
    if pending:
        yield linenum, pending


@dataclass
class Config:
    """depmod settings; entry lists hold the most recently added entry first."""

    kversion: str = ""
    dirname: str = ""
    outdirname: str = ""
    sym_prefix: str = ""
    check_symvers: bool = False
    print_unknown: bool = False
    warn_dups: bool = False
    overrides: list[str] = field(default_factory=list)
    searches: list[Search] = field(default_factory=list)
    externals: list[str] = field(default_factory=list)
    excludes: list[str] = field(default_factory=list)
    logger: Logger = field(default_factory=Logger, repr=False, compare=False)

    def add_search(self, path: str) -> Search:
        search = Search.from_word(path)
        self.logger.debug(f"search add: {path}, search type={search.type.value}")
        self.searches.insert(0, search)
        return search

    def add_override(self, modname: str, subdir: str) -> str:
        path = f"{subdir}/{modname}"
        self.logger.debug(f"override add: {path}")
        self.overrides.insert(0, path)
        return path

    def add_external(self, path: str) -> None:
        self.logger.debug(f"external add: {path}")
        self.externals.insert(0, path)

    def add_exclude(self, path: str) -> None:
        self.logger.debug(f"exclude add: {path}")
        self.excludes.insert(0, path)

    def parse_file(self, filename: str) -> None:
        """Apply the commands of one configuration file; raise OSError if unreadable."""
        try:
            fp = open(filename, encoding="utf-8", errors="replace")
        except OSError as exc:
            self.logger.err(f"file parse {filename}: {exc.strerror}")
            raise
        with fp:
            for linenum, line in _wrapped_lines(fp):
                if not line or line[0] == "#":
                    continue
                tokens = [t for t in _TOKEN_SPLIT.split(line) if t]
                if not tokens:
                    continue
                cmd, args = tokens[0], tokens[1:]
                where = f"{filename}:{linenum}"
                if cmd == "search":
                    for word in args:
                        self.add_search(word)
                elif cmd == "override" and len(args) >= 3:
                    modname, version, subdir = args[:3]
                    if not kernel_matches(version, self.kversion):
                        self.logger.info(
                            f"{where}: override kernel did not match {version}"
                        )
                        continue
                    self.add_override(modname, subdir)
                elif cmd == "external" and len(args) >= 2:
                    version, directory = args[:2]
                    if not kernel_matches(version, self.kversion):
                        self.logger.info(
                            f"{where}: external directory did not match {version}"
                        )
                        continue
                    self.add_external(directory)
                elif cmd == "exclude":
                    for word in args:
                        self.add_exclude(word)
                elif cmd in ("include", "make_map_files"):
                    self.logger.info(f"{where}: command {cmd} not implemented yet")
                else:
                    self.logger.err(f"{where}: ignoring bad line starting with '{cmd}'")

    def load(self, paths: Iterable[str] | None = None) -> None:
        """Parse every configuration file found under paths (defaults if None)."""
        if paths is None:
            paths = DEFAULT_CONFIG_PATHS
        for filename in _list_config_files(paths, self.logger):
            try:
                self.parse_file(filename)
            except OSError:
                continue
        if not self.searches:
            self.add_search("updates")

    def should_exclude_dir(self, name: str) -> bool:
        if name in (".", "..", "build", "source"):
            return True
        return name in self.excludes