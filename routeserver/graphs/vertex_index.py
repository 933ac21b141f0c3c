# routeserver/graphs/vertex_index.py
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from routeserver.core.errors import ConfigurationError
from routeserver.graphs.path import Point

EARTH_RADIUS_M = 6_371_000.0


class VertexIndex:
    """
    Maps vertex IDs to their geographic points. Vertex ``i`` sits at ``points[i]``.
    """

    def __init__(self, points: Iterable[Point]) -> None:
        self._points: Tuple[Point, ...] = tuple(points)

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> Tuple[Point, ...]:
        return self._points

    def point(self, vertex: int) -> Point:
        return self._points[vertex]

    def convert_path(self, vertices: Sequence[int]) -> List[List[float]]:
        """
        Turn a vertex sequence into GeoJSON ``[lon, lat]`` coordinates.
        """
        return [[self._points[v].lon, self._points[v].lat] for v in vertices]


class SpatialLookup:
    """
    Nearest-vertex search over every point of a ``VertexIndex``.

    Distances are great-circle (haversine). The full coordinate set is scanned
    with numpy; ``argmin`` returns the first minimum, so on ties the vertex
    with the lowest ID wins and repeated queries are stable.
    """

    def __init__(self, index: VertexIndex) -> None:
        if len(index) == 0:
            raise ConfigurationError("Cannot build a spatial lookup over zero vertices")

        lons = np.radians(np.fromiter((p.lon for p in index.points), dtype=float, count=len(index)))
        lats = np.radians(np.fromiter((p.lat for p in index.points), dtype=float, count=len(index)))
        lons.flags.writeable = False
        lats.flags.writeable = False

        self._lons = lons
        self._lats = lats
        self._cos_lats = np.cos(lats)
        self._cos_lats.flags.writeable = False

    def nearest(self, point: Point) -> Tuple[int, float]:
        """
        Return ``(vertex_id, distance_m)`` of the vertex closest to ``point``.
        """
        lon = np.radians(point.lon)
        lat = np.radians(point.lat)

        h = (
            np.sin((self._lats - lat) / 2.0) ** 2
            + np.cos(lat) * self._cos_lats * np.sin((self._lons - lon) / 2.0) ** 2
        )
        vertex = int(np.argmin(h))
        best = min(1.0, float(h[vertex]))
        distance_m = 2.0 * EARTH_RADIUS_M * float(np.arcsin(np.sqrt(best)))
        return vertex, distance_m

    def nearest_vertex(self, point: Point) -> int:
        vertex, _ = self.nearest(point)
        return vertex
