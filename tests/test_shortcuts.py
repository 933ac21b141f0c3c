# tests/test_shortcuts.py
import pytest

from routeserver.core.errors import ShortcutIntegrityError
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import Shortcut
from routeserver.services.shortcuts import (
    RecursiveShortcutExpander,
    TableShortcutExpander,
)

EXPANDER_CLASSES = [RecursiveShortcutExpander, TableShortcutExpander]

# 0 -1-> 1 -2-> 2 -3-> 3 -4-> 4
LINE = GraphSnapshot(5, [(0, 1, 1), (1, 2, 2), (2, 3, 3), (3, 4, 4)])

NESTED = [
    Shortcut(tail=0, head=2, skipped=1, weight=3),
    Shortcut(tail=2, head=4, skipped=3, weight=7),
    Shortcut(tail=0, head=4, skipped=2, weight=10),
]


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_nested_shortcut_expands_to_original_edges(expander_cls):
    expander = expander_cls(LINE, NESTED)

    assert expander.expand(NESTED[2]) == [(0, 1), (1, 2), (2, 3), (3, 4)]


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_expanded_weight_matches_shortcut_weight(expander_cls):
    expander = expander_cls(LINE, NESTED)

    for shortcut in NESTED:
        edges = expander.expand(shortcut)
        assert sum(LINE.weight(*edge) for edge in edges) == shortcut.weight


def test_strategies_agree():
    recursive = RecursiveShortcutExpander(LINE, NESTED)
    table = TableShortcutExpander(LINE, NESTED)

    for shortcut in NESTED:
        assert recursive.expand(shortcut) == table.expand(shortcut)


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_unpack_path_mixes_shortcuts_and_edges(expander_cls):
    expander = expander_cls(LINE, NESTED)

    assert expander.unpack_path([0, 2, 3, 4]) == (0, 1, 2, 3, 4)
    assert expander.unpack_path([3]) == (3,)
    assert expander.expand_edge(3, 4) == [(3, 4)]


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_missing_constituent_edge_fails_construction(expander_cls):
    broken = [Shortcut(tail=0, head=3, skipped=1, weight=6)]  # no edge 1 -> 3

    with pytest.raises(ShortcutIntegrityError, match="not in the graph"):
        expander_cls(LINE, broken)


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_wrong_weight_fails_construction(expander_cls):
    broken = [Shortcut(tail=0, head=2, skipped=1, weight=4)]

    with pytest.raises(ShortcutIntegrityError, match="sum to 3"):
        expander_cls(LINE, broken)


@pytest.mark.parametrize("expander_cls", EXPANDER_CLASSES)
def test_cyclic_shortcuts_fail_construction(expander_cls):
    # every half that is not a shortcut exists, so only the loop is wrong
    graph = GraphSnapshot(3, [(1, 0, 1), (2, 1, 1), (0, 2, 1)])
    cyclic = [
        Shortcut(tail=0, head=2, skipped=1, weight=2),
        Shortcut(tail=0, head=1, skipped=2, weight=1),
        Shortcut(tail=1, head=2, skipped=0, weight=1),
    ]

    with pytest.raises(ShortcutIntegrityError, match="refers back to itself"):
        expander_cls(graph, cyclic)


def test_unknown_shortcut_is_rejected():
    expander = RecursiveShortcutExpander(LINE, NESTED[:1])

    with pytest.raises(ShortcutIntegrityError, match="Unknown shortcut"):
        expander.expand(NESTED[1])


def test_deep_chain_does_not_recurse():
    n = 5000
    graph = GraphSnapshot(n, [(v, v + 1, 1) for v in range(n - 1)])
    # shortcut (0, v) skips v - 1 and builds on (0, v - 1)
    chain = [Shortcut(tail=0, head=v, skipped=v - 1, weight=v) for v in range(2, n)]

    expander = RecursiveShortcutExpander(graph, chain)

    assert len(expander.expand(chain[-1])) == n - 1
