# routeserver/services/path_finding.py
from abc import ABC, abstractmethod
from typing import Optional

import networkx as nx

from routeserver.core.errors import InvalidVertex
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import Path, ShortestPathRequest


class PathFindingBackend(ABC):
    """
    Answers "shortest path from A to B" against a fixed, read-only graph.

    ``find_shortest_path`` returns ``None`` when the two vertices are not
    connected; that is an ordinary outcome, not an error. Vertex IDs outside
    the backend's graph raise ``InvalidVertex``. Implementations must not
    mutate any state during a query: one instance serves every request
    concurrently.
    """

    name: str = ""

    @property
    @abstractmethod
    def num_vertices(self) -> int:
        ...

    def find_shortest_path(self, request: ShortestPathRequest) -> Optional[Path]:
        for vertex in (request.source, request.target):
            if not (isinstance(vertex, int) and 0 <= vertex < self.num_vertices):
                raise InvalidVertex(
                    f"Vertex {vertex!r} is not in {self.name} graph of {self.num_vertices} vertices"
                )

        if request.source == request.target:
            return Path.single_vertex(request.source)

        return self._search(request)

    @abstractmethod
    def _search(self, request: ShortestPathRequest) -> Optional[Path]:
        """Called only with two distinct, valid vertices."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(vertices={self.num_vertices})"


class DijkstraBackend(PathFindingBackend):
    """
    Plain Dijkstra over the original graph. No preprocessing; the reference
    answer the other backends are checked against.
    """

    name = "dijkstra"

    def __init__(self, graph: GraphSnapshot) -> None:
        self.graph = graph

    @property
    def num_vertices(self) -> int:
        return self.graph.num_vertices

    def _search(self, request: ShortestPathRequest) -> Optional[Path]:
        try:
            weight, vertices = nx.single_source_dijkstra(
                self.graph.nx_graph,
                source=request.source,
                target=request.target,
                weight="weight",
            )
        except nx.NetworkXNoPath:
            return None
        return Path(vertices=tuple(vertices), weight=weight)
