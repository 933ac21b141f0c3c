# routeserver/services/shortcuts.py
from abc import ABC, abstractmethod
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from routeserver.core.errors import ShortcutIntegrityError
from routeserver.core.logger import logger
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import Edge, Shortcut, Weight
from routeserver.graphs.validation import DEFAULT_ABS_TOLERANCE, weights_equal


class ShortcutExpander(ABC):
    """
    Turns contraction-hierarchy shortcuts back into original graph edges.

    Construction checks every shortcut against the original graph: both halves
    must resolve to original edges, references must not loop, and the expanded
    edges must add up to the shortcut's weight. Any problem raises
    ``ShortcutIntegrityError`` so the owning backend is never built.
    """

    name: str = ""

    def __init__(
        self,
        graph: GraphSnapshot,
        shortcuts: Iterable[Shortcut],
        abs_tol: float = DEFAULT_ABS_TOLERANCE,
    ) -> None:
        self.graph = graph
        self.abs_tol = abs_tol

        table: Dict[Edge, Shortcut] = {}
        for shortcut in shortcuts:
            if shortcut.key in table:
                raise ShortcutIntegrityError(f"Duplicate shortcut {shortcut.key}")
            table[shortcut.key] = shortcut
        self._shortcuts: Mapping[Edge, Shortcut] = MappingProxyType(table)

        self._verify()
        logger.info(f"{type(self).__name__} ready with {len(self._shortcuts)} shortcuts")

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def shortcuts(self) -> Mapping[Edge, Shortcut]:
        return self._shortcuts

    def expand(self, shortcut: Shortcut) -> List[Edge]:
        """
        Ordered original edges that ``shortcut`` stands for.
        """
        if self._shortcuts.get(shortcut.key) != shortcut:
            raise ShortcutIntegrityError(f"Unknown shortcut {shortcut.key}")
        return self._expand(shortcut)

    def expand_edge(self, tail: int, head: int) -> List[Edge]:
        """
        Expand a contracted-graph edge; original edges come back unchanged.
        """
        shortcut = self._shortcuts.get((tail, head))
        if shortcut is None:
            return [(tail, head)]
        return self._expand(shortcut)

    def unpack_path(self, vertices: Sequence[int]) -> Tuple[int, ...]:
        """
        Replace every shortcut along a contracted-graph vertex sequence.
        """
        if not vertices:
            return ()
        unpacked = [vertices[0]]
        for tail, head in zip(vertices[:-1], vertices[1:]):
            unpacked.extend(edge_head for _, edge_head in self.expand_edge(tail, head))
        return tuple(unpacked)

    def check_contracted_edge(self, tail: int, head: int, weight: Weight) -> None:
        """
        A contracted-graph edge must be a known shortcut or an original edge,
        with the same weight.
        """
        shortcut = self._shortcuts.get((tail, head))
        if shortcut is not None:
            expected = shortcut.weight
        elif self.graph.has_edge(tail, head):
            expected = self.graph.weight(tail, head)
        else:
            raise ShortcutIntegrityError(
                f"Contracted edge ({tail}, {head}) is neither a shortcut nor in the graph"
            )
        if not weights_equal(weight, expected, self.abs_tol):
            raise ShortcutIntegrityError(
                f"Contracted edge ({tail}, {head}) has weight {weight}, the graph says {expected}"
            )

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _expand(self, shortcut: Shortcut) -> List[Edge]:
        ...

    def _walk(self, root: Edge, known: Mapping[Edge, Tuple[Edge, ...]]) -> List[Edge]:
        """
        Worklist expansion of ``root``; pieces already present in ``known``
        are copied instead of walked again.
        """
        edges: List[Edge] = []
        stack = [root]
        while stack:
            tail, head = stack.pop()
            done = known.get((tail, head))
            if done is not None:
                edges.extend(done)
                continue
            shortcut = self._shortcuts.get((tail, head))
            if shortcut is None:
                edges.append((tail, head))
                continue
            # second half first so the first half is popped first
            stack.append((shortcut.skipped, shortcut.head))
            stack.append((shortcut.tail, shortcut.skipped))
        return edges

    def _half_weight(self, half: Edge, resolved: Mapping[Edge, Weight]) -> Weight:
        if half in self._shortcuts:
            return resolved[half]
        return self.graph.weight(*half)

    def _verify(self) -> None:
        """
        Post-order walk over the shortcut dependency graph.
        """
        resolved: Dict[Edge, Weight] = {}

        for root in self._shortcuts:
            if root in resolved:
                continue

            on_stack = set()
            stack: List[Tuple[Edge, bool]] = [(root, False)]
            while stack:
                key, children_done = stack.pop()
                shortcut = self._shortcuts[key]
                halves = ((shortcut.tail, shortcut.skipped), (shortcut.skipped, shortcut.head))

                if children_done:
                    on_stack.discard(key)
                    total = self._half_weight(halves[0], resolved) + self._half_weight(
                        halves[1], resolved
                    )
                    if not weights_equal(total, shortcut.weight, self.abs_tol):
                        raise ShortcutIntegrityError(
                            f"Shortcut {key} stores weight {shortcut.weight}, "
                            f"its original edges sum to {total}"
                        )
                    resolved[key] = total
                    continue

                if key in resolved:
                    continue
                if key in on_stack:
                    raise ShortcutIntegrityError(f"Shortcut {key} refers back to itself")

                on_stack.add(key)
                stack.append((key, True))
                for half in halves:
                    if half in self._shortcuts:
                        if half not in resolved:
                            stack.append((half, False))
                    elif not self.graph.has_edge(*half):
                        raise ShortcutIntegrityError(
                            f"Shortcut {key} needs edge {half}, which is not in the graph"
                        )


class RecursiveShortcutExpander(ShortcutExpander):
    """
    Rebuilds the edge sequence on every call. Low memory, slower queries.
    """

    name = "recursive"

    def _expand(self, shortcut: Shortcut) -> List[Edge]:
        return self._walk(shortcut.key, {})


class TableShortcutExpander(ShortcutExpander):
    """
    Precomputes the edge sequence of every shortcut up front.
    """

    name = "table"

    def __init__(
        self,
        graph: GraphSnapshot,
        shortcuts: Iterable[Shortcut],
        abs_tol: float = DEFAULT_ABS_TOLERANCE,
    ) -> None:
        super().__init__(graph, shortcuts, abs_tol)

        table: Dict[Edge, Tuple[Edge, ...]] = {}
        for key in self._shortcuts:
            table[key] = tuple(self._walk(key, table))
        self._table: Mapping[Edge, Tuple[Edge, ...]] = MappingProxyType(table)

    def _expand(self, shortcut: Shortcut) -> List[Edge]:
        return list(self._table[shortcut.key])


EXPANDERS = {
    RecursiveShortcutExpander.name: RecursiveShortcutExpander,
    TableShortcutExpander.name: TableShortcutExpander,
}
