"""Module dependency graph: symbol resolution, ordering and cycle reports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from .log import Logger
from .symbols import Module, SymbolTable


class DependencyCycleError(ValueError):
    """The modules depend on each other in one or more cycles."""

    def __init__(self, cycles: list[list[str]]) -> None:
        self.cycles = cycles
        self.modules_in_cycles = sorted({name for cycle in cycles for name in cycle})
        lines = [f"Cycle detected: {' -> '.join(cycle)}" for cycle in cycles]
        lines.append(
            f"Found {len(self.modules_in_cycles)} modules in dependency cycles!"
        )
        super().__init__("\n".join(lines))


def _add_dependency(module: Module, owner: Module | None) -> bool:
    if owner is None:
        return False
    if any(dep is owner for dep in module.deps):
        return False
    module.deps.append(owner)
    owner.users += 1
    return True


def resolve_dependencies(
    modules: Iterable[Module],
    symbols: SymbolTable,
    check_symvers: bool = False,
    print_unknown: bool = False,
    logger: Logger | None = None,
) -> None:
    """Link each module to the modules exporting the symbols it needs."""
    if logger is None:
        logger = Logger()
    for module in modules:
        if not module.dependency_symbols:
            logger.debug(f"ignoring {module.path}: no dependency symbols")
            continue
        logger.debug(f"do dependencies of {module.path}")
        for needed in module.dependency_symbols:
            sym = symbols.find(needed.symbol)
            if sym is None:
                logger.debug(
                    f"{module.path} needs ({needed.bind.value}) unknown symbol "
                    f"{needed.symbol}"
                )
                if print_unknown and not needed.is_weak:
                    logger.warn(f"{module.path} needs unknown symbol {needed.symbol}")
                continue
            if check_symvers and sym.crc != needed.crc and not needed.is_weak:
                logger.debug(
                    f"symbol {sym.name} ({sym.crc:#x}) module {module.path} "
                    f"({needed.crc:#x})"
                )
                if print_unknown:
                    logger.warn(
                        f"{module.path} disagrees about version of symbol "
                        f"{needed.symbol}"
                    )
            if _add_dependency(module, sym.owner) and sym.owner is not None:
                logger.debug(
                    f'{module.path} needs "{sym.name}": {sym.owner.path}'
                )


def _topological(modules: Sequence[Module]) -> tuple[list[Module], dict[int, int]]:
    """Sort modules without users first; return the order and remaining users."""
    users = {id(m): m.users for m in modules}
    roots = [m for m in modules if users[id(m)] == 0]
    ordered: list[Module] = []
    while roots:
        src = roots.pop()
        src.dep_sort_idx = len(ordered)
        ordered.append(src)
        for dst in src.deps:
            users[id(dst)] -= 1
            if users[id(dst)] == 0:
                roots.append(dst)
    return ordered, users


@dataclass(frozen=True)
class _Vertex:
    mod: Module
    parent: "_Vertex | None"

    def ancestors(self) -> list[Module]:
        chain = []
        vertex = self.parent
        while vertex is not None:
            chain.append(vertex.mod)
            vertex = vertex.parent
        return chain


def find_cycles(modules: Sequence[Module]) -> list[list[str]]:
    """Return the dependency cycles as lists of names, first name repeated last."""
    _, users = _topological(modules)
    roots = [m for m in modules if users[id(m)] > 0]
    visited: set[int] = set()
    cycles: list[list[str]] = []

    def drop(module: Module) -> None:
        roots[:] = [r for r in roots if r is not module]

    while roots:
        root = roots.pop(0)
        stack = [_Vertex(root, None)]
        while stack:
            vertex = stack.pop()
            mod = vertex.mod
            if id(mod) in visited and mod is root:
                chain = list(reversed(vertex.ancestors()))
                for member in chain:
                    drop(member)
                cycles.append([m.modname for m in chain] + [mod.modname])
                continue
            ancestors = vertex.ancestors()
            if any(a is mod for a in ancestors):
                # A cycle that does not pass through the root: it is found
                # when one of its members is the root.
                continue
            visited.add(id(mod))
            if not mod.deps:
                drop(mod)
                continue
            stack.extend(_Vertex(dep, vertex) for dep in mod.deps)
    return cycles


def calculate_order(modules: Sequence[Module]) -> list[Module]:
    """Give every module its topological index and sort each one's deps by it.

    Returns the modules in topological order, modules without users first.
    Raises DependencyCycleError if the graph has cycles.
    """
    ordered, _ = _topological(modules)
    if len(ordered) < len(modules):
        raise DependencyCycleError(find_cycles(modules))
    for module in modules:
        if len(module.deps) > 1:
            module.deps.sort(key=lambda m: m.dep_sort_idx)
    return ordered


def all_sorted_dependencies(module: Module) -> list[Module]:
    """Every direct and indirect dependency once, in topological order."""
    found: list[Module] = []
    seen: set[int] = set()

    def fill(mod: Module) -> None:
        for dep in mod.deps:
            if id(dep) in seen:
                continue
            seen.add(id(dep))
            found.append(dep)
            fill(dep)

    fill(module)
    found.sort(key=lambda m: m.dep_sort_idx)
    return found