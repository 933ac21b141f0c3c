# routeserver/graphs/validation.py
import math

from routeserver.core.errors import PathValidationError
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import Path, ShortestPathRequest, Weight

DEFAULT_ABS_TOLERANCE = 1e-6


def weights_equal(a: Weight, b: Weight, abs_tol: float = DEFAULT_ABS_TOLERANCE) -> bool:
    """
    Exact comparison for integer weights, ``math.isclose`` otherwise.
    """
    if isinstance(a, int) and isinstance(b, int):
        return a == b
    return math.isclose(a, b, rel_tol=1e-9, abs_tol=abs_tol)


class PathValidator:
    """
    Re-checks a backend's answer against the original (non-contracted) graph.

    A failure here means a backend or its shortcut data is wrong, so it is
    raised as ``PathValidationError`` and answered with a server error.
    """

    def __init__(self, graph: GraphSnapshot, abs_tol: float = DEFAULT_ABS_TOLERANCE) -> None:
        self.graph = graph
        self.abs_tol = abs_tol

    def validate(self, request: ShortestPathRequest, path: Path) -> None:
        vertices = path.vertices

        if not vertices:
            raise PathValidationError("Path has no vertices")
        if vertices[0] != request.source or vertices[-1] != request.target:
            raise PathValidationError(
                f"Path runs {vertices[0]} -> {vertices[-1]}, "
                f"request was {request.source} -> {request.target}"
            )
        if path.weight < 0:
            raise PathValidationError(f"Path weight {path.weight} is negative")

        total: Weight = 0
        for tail, head in zip(vertices[:-1], vertices[1:]):
            if not self.graph.has_edge(tail, head):
                raise PathValidationError(f"Path uses ({tail}, {head}), which is not a graph edge")
            total += self.graph.weight(tail, head)

        if not weights_equal(total, path.weight, self.abs_tol):
            raise PathValidationError(
                f"Backend reported weight {path.weight}, edges sum to {total}"
            )
