# routeserver/services/graph_manager.py
from dataclasses import dataclass
from time import perf_counter
from types import MappingProxyType
from typing import Dict, Iterable, Mapping

from routeserver.core.config import Settings
from routeserver.core.errors import ConfigurationError, RoutingError
from routeserver.core.logger import logger
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.loaders import (
    read_contracted_graph,
    read_coordinates_file,
    read_graph_file,
    read_hub_labels,
)
from routeserver.graphs.path import Shortcut
from routeserver.graphs.vertex_index import SpatialLookup, VertexIndex
from routeserver.services.contraction import ContractedGraph, ContractionHierarchyBackend
from routeserver.services.hub_labels import HubLabelBackend, HubLabels
from routeserver.services.path_finding import DijkstraBackend, PathFindingBackend
from routeserver.services.shortcuts import EXPANDERS, ShortcutExpander


@dataclass(frozen=True)
class RoutingState:
    """
    Everything loaded at startup. Built once, then only read.
    """

    graph: GraphSnapshot
    vertex_index: VertexIndex
    spatial_lookup: SpatialLookup
    backends: Mapping[str, PathFindingBackend]
    default_backend: str

    @classmethod
    def build(
        cls,
        graph: GraphSnapshot,
        vertex_index: VertexIndex,
        backends: Iterable[PathFindingBackend],
        default_backend: str,
    ) -> "RoutingState":
        """
        Check that every piece agrees on the vertex set and freeze the result.
        """
        if len(vertex_index) != graph.num_vertices:
            raise ConfigurationError(
                f"Coordinates cover {len(vertex_index)} vertices, graph has {graph.num_vertices}"
            )

        by_name: Dict[str, PathFindingBackend] = {}
        for backend in backends:
            if backend.num_vertices != graph.num_vertices:
                raise ConfigurationError(
                    f"Backend {backend.name!r} has {backend.num_vertices} vertices, "
                    f"graph has {graph.num_vertices}"
                )
            by_name[backend.name] = backend

        if default_backend not in by_name:
            raise ConfigurationError(
                f"Default backend {default_backend!r} is not loaded "
                f"(available: {', '.join(sorted(by_name)) or 'none'})"
            )

        return cls(
            graph=graph,
            vertex_index=vertex_index,
            spatial_lookup=SpatialLookup(vertex_index),
            backends=MappingProxyType(by_name),
            default_backend=default_backend,
        )


class GraphManager:
    """
    Loads the startup artifacts named in the settings and wires the backends.

    Any failure is reported as ``ConfigurationError``; the service must not
    start with a partial or inconsistent data set.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def load(self) -> RoutingState:
        t0 = perf_counter()
        try:
            state = self._load()
        except ConfigurationError:
            raise
        except RoutingError as exc:
            raise ConfigurationError(f"Startup artifacts are inconsistent: {exc}") from exc

        logger.info(
            f"Routing state loaded in {(perf_counter() - t0) * 1000.0:.1f} ms: "
            f"backends={sorted(state.backends)}, default={state.default_backend!r}"
        )
        return state

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _load(self) -> RoutingState:
        s = self.settings
        if s.GRAPH_PATH is None or s.COORDINATES_PATH is None:
            raise ConfigurationError("GRAPH_PATH and COORDINATES_PATH must both be set")

        graph = read_graph_file(s.GRAPH_PATH)
        vertex_index = read_coordinates_file(s.COORDINATES_PATH, s.COORDINATE_SCALE)

        backends = [DijkstraBackend(graph)]

        if s.CH_PATH is not None:
            ch = ContractedGraph(read_contracted_graph(s.CH_PATH))
            logger.info(f"Contraction hierarchy ready: {ch.num_edges} search edges")
            backends.append(
                ContractionHierarchyBackend(ch, self._expander(graph, ch.shortcuts))
            )

        if s.HUB_LABEL_PATH is not None:
            labels = HubLabels(read_hub_labels(s.HUB_LABEL_PATH))
            logger.info(f"Hub labels ready: {labels.num_entries} label entries")
            backends.append(HubLabelBackend(labels, self._expander(graph, labels.shortcuts)))

        return RoutingState.build(graph, vertex_index, backends, s.BACKEND)

    def _expander(
        self,
        graph: GraphSnapshot,
        shortcuts: Iterable[Shortcut],
    ) -> ShortcutExpander:
        expander_cls = EXPANDERS[self.settings.SHORTCUT_EXPANDER]
        return expander_cls(graph, shortcuts, abs_tol=self.settings.WEIGHT_ABS_TOLERANCE)
