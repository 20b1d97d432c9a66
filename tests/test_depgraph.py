import io

import pytest

from kmodkit.depgraph import (
    DependencyCycleError,
    all_sorted_dependencies,
    calculate_order,
    find_cycles,
    resolve_dependencies,
)
from kmodkit.log import Logger
from kmodkit.symbols import DependencySymbol, Module, SymbolBinding, SymbolTable


def mod(name):
    return Module(f"/lib/modules/1.0/kernel/{name}.ko", name)


def link(src, dst):
    src.deps.append(dst)
    dst.users += 1


def make_logger():
    stream = io.StringIO()
    return Logger("depmod", stream=stream), stream


def test_resolve_links_owner():
    a, b = mod("a"), mod("b")
    table = SymbolTable()
    table.add("foo", 7, b)
    table.add("bar", 8, b)
    a.dependency_symbols = [DependencySymbol("foo", 7), DependencySymbol("bar", 8)]
    resolve_dependencies([a, b], table)
    assert a.deps == [b]
    assert b.users == 1
    assert b.deps == []


def test_resolve_kernel_symbol_adds_no_dependency():
    a = mod("a")
    table = SymbolTable()
    table.add("printk", 1, None)
    a.dependency_symbols = [DependencySymbol("printk", 1)]
    resolve_dependencies([a], table)
    assert a.deps == []


def test_unknown_symbol_warns_when_asked():
    a = mod("a")
    a.dependency_symbols = [DependencySymbol("missing")]
    logger, stream = make_logger()
    resolve_dependencies([a], SymbolTable(), False, True, logger)
    assert f"{a.path} needs unknown symbol missing" in stream.getvalue()


def test_unknown_weak_symbol_is_silent():
    a = mod("a")
    a.dependency_symbols = [DependencySymbol("missing", 0, SymbolBinding.WEAK)]
    logger, stream = make_logger()
    resolve_dependencies([a], SymbolTable(), False, True, logger)
    assert stream.getvalue() == ""


def test_crc_mismatch_warns_and_still_links():
    a, b = mod("a"), mod("b")
    table = SymbolTable()
    table.add("foo", 1, b)
    a.dependency_symbols = [DependencySymbol("foo", 2)]
    logger, stream = make_logger()
    resolve_dependencies([a, b], table, True, True, logger)
    assert "disagrees about version of symbol foo" in stream.getvalue()
    assert a.deps == [b]


def test_calculate_order_chain():
    a, b, c = mod("a"), mod("b"), mod("c")
    link(a, b)
    link(b, c)
    ordered = calculate_order([c, b, a])
    assert ordered == [a, b, c]
    assert a.dep_sort_idx < b.dep_sort_idx < c.dep_sort_idx


def test_calculate_order_sorts_deps():
    a, b, c = mod("a"), mod("b"), mod("c")
    link(a, c)
    link(a, b)
    link(b, c)
    calculate_order([a, b, c])
    assert a.deps == [b, c]


def test_cycle_raises():
    a, b = mod("a"), mod("b")
    link(a, b)
    link(b, a)
    with pytest.raises(DependencyCycleError) as info:
        calculate_order([a, b])
    assert info.value.modules_in_cycles == ["a", "b"]
    assert "Cycle detected: " in str(info.value)


def test_find_cycles_ignores_branch_into_cycle():
    a, b, c = mod("a"), mod("b"), mod("c")
    link(a, b)
    link(b, a)
    link(c, a)
    cycles = find_cycles([a, b, c])
    assert len(cycles) == 1
    cycle = cycles[0]
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b"}


def test_find_cycles_none_without_cycles():
    a, b = mod("a"), mod("b")
    link(a, b)
    assert find_cycles([a, b]) == []


def test_all_sorted_dependencies():
    a, b, c, d = mod("a"), mod("b"), mod("c"), mod("d")
    link(a, c)
    link(a, b)
    link(b, c)
    link(c, d)
    calculate_order([a, b, c, d])
    deps = all_sorted_dependencies(a)
    assert deps == [b, c, d]
    assert all_sorted_dependencies(d) == []