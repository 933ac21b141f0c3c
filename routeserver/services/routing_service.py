# routeserver/services/routing_service.py

from enum import Enum
from time import perf_counter
from typing import Optional, Tuple

from routeserver.core.errors import NoPathFound, RoutingError, SnapDistanceExceeded, UnknownBackend
from routeserver.core.logger import logger
from routeserver.graphs.path import Path, Point, ShortestPathRequest
from routeserver.graphs.validation import DEFAULT_ABS_TOLERANCE, PathValidator
from routeserver.models.routing import (
    LineStringGeometry,
    RouteProperties,
    RouteRequest,
    RouteResponse,
)
from routeserver.services.graph_manager import RoutingState
from routeserver.services.path_finding import PathFindingBackend


class RouteStage(str, Enum):
    RECEIVED = "received"
    SNAPPED = "snapped"
    PATH_COMPUTED = "path_computed"
    VALIDATED = "validated"
    ENCODED = "encoded"
    RESPONDED = "responded"


class RouteOrchestrator:
    """
    Request handler for /route:
    - snaps both coordinates to their nearest vertices
    - asks a backend for the shortest path
    - re-validates the path against the original graph
    - encodes it as a GeoJSON LineString

    The orchestrator only reads the shared ``RoutingState``; any number of
    ``compute_route`` calls may run at once.
    """

    def __init__(
        self,
        state: RoutingState,
        validate_paths: bool = True,
        max_snap_distance_m: Optional[float] = None,
        abs_tol: float = DEFAULT_ABS_TOLERANCE,
    ) -> None:
        self.state = state
        self.validator: Optional[PathValidator] = (
            PathValidator(state.graph, abs_tol) if validate_paths else None
        )
        self.max_snap_distance_m = max_snap_distance_m

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def backend(self, name: Optional[str] = None) -> PathFindingBackend:
        name = name or self.state.default_backend
        backend = self.state.backends.get(name)
        if backend is None:
            raise UnknownBackend(
                f"Backend {name!r} is not loaded (available: {', '.join(sorted(self.state.backends))})"
            )
        return backend

    def compute_route(self, request: RouteRequest) -> RouteResponse:
        """
        Main entry point for the /route endpoint.

        A failure is tagged with the last stage the request completed
        (``RoutingError.stage``) and raised to the HTTP layer; nothing is retried.
        """
        t0 = perf_counter()
        stage = RouteStage.RECEIVED

        try:
            backend = self.backend(request.backend)

            # 1) Snap both endpoints
            source, source_snap_m = self._snap(Point(*request.from_), "from")
            target, target_snap_m = self._snap(Point(*request.to), "to")
            stage = RouteStage.SNAPPED

            # 2) Shortest path
            sp_request = ShortestPathRequest(source=source, target=target)
            t_sp0 = perf_counter()
            path: Optional[Path] = backend.find_shortest_path(sp_request)
            took_ms = (perf_counter() - t_sp0) * 1000.0
            if path is None:
                raise NoPathFound(f"No route between vertex {source} and vertex {target}")
            stage = RouteStage.PATH_COMPUTED

            # 3) Independent check against the original graph
            if self.validator is not None:
                self.validator.validate(sp_request, path)
            stage = RouteStage.VALIDATED

            # 4) Geometry
            geometry = LineStringGeometry(
                coordinates=self.state.vertex_index.convert_path(path.vertices)
            )
            stage = RouteStage.ENCODED

            response = RouteResponse(
                geometry=geometry,
                properties=RouteProperties(
                    source=source,
                    target=target,
                    weight=path.weight,
                    backend=backend.name,
                    vertices=len(path.vertices),
                    snap_distance_m={"from": source_snap_m, "to": target_snap_m},
                    took_ms=took_ms,
                ),
            )
            stage = RouteStage.RESPONDED
        except RoutingError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            raise

        logger.info(
            f"route_request: {source:>7} -> {target:>7}, cost: {path.weight:>9}, "
            f"took: {took_ms:>6.1f}ms (total {(perf_counter() - t0) * 1000.0:.1f}ms, "
            f"backend={backend.name})"
        )
        return response

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _snap(self, point: Point, which: str) -> Tuple[int, float]:
        vertex, distance_m = self.state.spatial_lookup.nearest(point)
        if self.max_snap_distance_m is not None and distance_m > self.max_snap_distance_m:
            raise SnapDistanceExceeded(
                f"'{which}' point ({point.lon:.6f}, {point.lat:.6f}) is {distance_m:.0f} m "
                f"from the nearest vertex (limit {self.max_snap_distance_m:.0f} m)"
            )
        return vertex, distance_m
