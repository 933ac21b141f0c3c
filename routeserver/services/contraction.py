# routeserver/services/contraction.py
from typing import Dict, Iterator, List, Optional, Tuple

import networkx as nx

from routeserver.core.errors import ConfigurationError, ShortcutIntegrityError
from routeserver.graphs.graph import build_frozen_digraph
from routeserver.graphs.path import Path, Shortcut, ShortestPathRequest, Weight, shortcuts_from_rows
from routeserver.graphs.validation import weights_equal
from routeserver.models.artifacts import ContractedGraphArtifact
from routeserver.services.path_finding import PathFindingBackend
from routeserver.services.shortcuts import ShortcutExpander


class ContractedGraph:
    """
    Contraction hierarchy split into its two search graphs.

    ``upward`` holds every edge that climbs in level. ``downward_reversed``
    holds every edge that descends, reversed, so a search from the target
    also only climbs. Both are frozen networkx graphs.
    """

    def __init__(self, artifact: ContractedGraphArtifact) -> None:
        n = artifact.num_vertices
        if len(artifact.levels) != n:
            raise ConfigurationError(
                f"Contraction hierarchy has {len(artifact.levels)} levels for {n} vertices"
            )

        self.num_vertices = n
        self.levels: Tuple[int, ...] = tuple(artifact.levels)

        upward: List[Tuple[int, int, Weight]] = []
        downward_reversed: List[Tuple[int, int, Weight]] = []
        for tail, head, weight in artifact.edges:
            if not (0 <= tail < n and 0 <= head < n):
                raise ConfigurationError(f"CH edge ({tail}, {head}) is outside 0..{n - 1}")
            if tail == head:
                continue
            if self.levels[tail] == self.levels[head]:
                raise ConfigurationError(
                    f"CH edge ({tail}, {head}) joins two vertices of level {self.levels[tail]}"
                )
            if self.levels[tail] < self.levels[head]:
                upward.append((tail, head, weight))
            else:
                downward_reversed.append((head, tail, weight))

        self.upward = build_frozen_digraph(n, upward)
        self.downward_reversed = build_frozen_digraph(n, downward_reversed)

        self.shortcuts: Tuple[Shortcut, ...] = tuple(shortcuts_from_rows(artifact.shortcuts))
        for shortcut in self.shortcuts:
            weight = self.edge_weight(shortcut.tail, shortcut.head)
            if weight is None or not weights_equal(weight, shortcut.weight):
                raise ShortcutIntegrityError(
                    f"Shortcut {shortcut.key} with weight {shortcut.weight} "
                    f"does not match CH edge weight {weight}"
                )

    def edge_weight(self, tail: int, head: int) -> Optional[Weight]:
        if self.upward.has_edge(tail, head):
            return self.upward.adj[tail][head]["weight"]
        if self.downward_reversed.has_edge(head, tail):
            return self.downward_reversed.adj[head][tail]["weight"]
        return None

    def edges(self) -> Iterator[Tuple[int, int, Weight]]:
        """Every search edge in its original direction."""
        yield from self.upward.edges(data="weight")
        for head, tail, weight in self.downward_reversed.edges(data="weight"):
            yield tail, head, weight

    @property
    def num_edges(self) -> int:
        return self.upward.number_of_edges() + self.downward_reversed.number_of_edges()


def _trace(predecessors: Dict[int, List[int]], start: int, end: int) -> List[int]:
    """Walk predecessor lists back from ``end``; returns ``start .. end``."""
    chain = [end]
    while chain[-1] != start:
        chain.append(predecessors[chain[-1]][0])
    chain.reverse()
    return chain


class ContractionHierarchyBackend(PathFindingBackend):
    """
    Bidirectional upward search on a contraction hierarchy.

    Both searches run to exhaustion over their (small) upward search spaces;
    the meeting vertex is the one minimising forward + backward distance, ties
    going to the lowest vertex ID. The contracted path is then unpacked so the
    returned ``Path`` only contains original graph edges.
    """

    name = "ch"

    def __init__(self, ch: ContractedGraph, expander: ShortcutExpander) -> None:
        for shortcut in ch.shortcuts:
            if expander.shortcuts.get(shortcut.key) != shortcut:
                raise ShortcutIntegrityError(
                    f"Shortcut {shortcut.key} is not known to the shortcut expander"
                )
        if expander.graph.num_vertices != ch.num_vertices:
            raise ConfigurationError(
                f"Contraction hierarchy has {ch.num_vertices} vertices, "
                f"graph has {expander.graph.num_vertices}"
            )
        for tail, head, weight in ch.edges():
            expander.check_contracted_edge(tail, head, weight)
        self.ch = ch
        self.expander = expander

    @property
    def num_vertices(self) -> int:
        return self.ch.num_vertices

    def _search(self, request: ShortestPathRequest) -> Optional[Path]:
        forward_pred, forward_dist = nx.dijkstra_predecessor_and_distance(
            self.ch.upward, request.source, weight="weight"
        )
        backward_pred, backward_dist = nx.dijkstra_predecessor_and_distance(
            self.ch.downward_reversed, request.target, weight="weight"
        )

        meeting = [v for v in forward_dist if v in backward_dist]
        if not meeting:
            return None
        best = min(meeting, key=lambda v: (forward_dist[v] + backward_dist[v], v))

        up = _trace(forward_pred, request.source, best)
        down = _trace(backward_pred, request.target, best)
        down.reverse()
        contracted = up + down[1:]

        return Path(
            vertices=self.expander.unpack_path(contracted),
            weight=forward_dist[best] + backward_dist[best],
        )
