# routeserver/graphs/graph.py
from typing import Iterable, Tuple

import networkx as nx

from routeserver.core.errors import ConfigurationError
from routeserver.graphs.path import Weight


def build_frozen_digraph(
    num_vertices: int,
    edges: Iterable[Tuple[int, int, Weight]],
) -> nx.DiGraph:
    """
    Build a frozen ``nx.DiGraph`` over vertices ``0..num_vertices-1``.

    Parallel edges collapse to the cheapest one. Endpoints outside the vertex
    range are a configuration error.
    """
    G = nx.DiGraph()
    G.add_nodes_from(range(num_vertices))

    for tail, head, weight in edges:
        if not (0 <= tail < num_vertices and 0 <= head < num_vertices):
            raise ConfigurationError(
                f"Edge ({tail}, {head}) references a vertex outside 0..{num_vertices - 1}"
            )
        if weight < 0:
            raise ConfigurationError(f"Edge ({tail}, {head}) has negative weight {weight}")

        existing = G.get_edge_data(tail, head)
        if existing is not None and existing["weight"] <= weight:
            continue
        G.add_edge(tail, head, weight=weight)

    return nx.freeze(G)


class GraphSnapshot:
    """
    Immutable road network: vertices, directed weighted edges.

    The underlying networkx graph is frozen, so every mutating networkx call
    raises ``NetworkXError``. The snapshot is shared by all request handlers.
    """

    def __init__(self, num_vertices: int, edges: Iterable[Tuple[int, int, Weight]]) -> None:
        self._graph = build_frozen_digraph(num_vertices, edges)

    @property
    def nx_graph(self) -> nx.DiGraph:
        return self._graph

    @property
    def num_vertices(self) -> int:
        return self._graph.number_of_nodes()

    @property
    def num_edges(self) -> int:
        return self._graph.number_of_edges()

    def has_edge(self, tail: int, head: int) -> bool:
        return self._graph.has_edge(tail, head)

    def weight(self, tail: int, head: int) -> Weight:
        """Weight of edge ``tail -> head``; ``KeyError`` if there is none."""
        return self._graph.adj[tail][head]["weight"]

    def __repr__(self) -> str:
        return f"GraphSnapshot(vertices={self.num_vertices}, edges={self.num_edges})"
