# routeserver/graphs/loaders.py
"""
Readers for the startup artifacts.

Road network and coordinates come as DIMACS shortest-path files (one-based
vertex IDs, shifted to zero-based here). Contraction hierarchies and hub
labels come as JSON documents validated against the pydantic artifact models.
"""
from pathlib import Path
from typing import Dict, Iterator, List, Tuple, Type, TypeVar

from pydantic import BaseModel, ValidationError

from routeserver.core.errors import ConfigurationError
from routeserver.core.logger import logger
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import Point, Weight
from routeserver.graphs.vertex_index import VertexIndex
from routeserver.models.artifacts import ContractedGraphArtifact, HubLabelArtifact

ArtifactT = TypeVar("ArtifactT", bound=BaseModel)


def _parse_weight(token: str) -> Weight:
    try:
        return int(token)
    except ValueError:
        return float(token)


def _records(path: Path) -> Iterator[Tuple[int, List[str]]]:
    """Yield ``(line_number, tokens)`` for every non-comment, non-blank line."""
    try:
        with open(path, "r", encoding="utf-8") as fh:
            for line_no, line in enumerate(fh, start=1):
                tokens = line.split()
                if not tokens or tokens[0] == "c":
                    continue
                yield line_no, tokens
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc


def read_graph_file(path: Path) -> GraphSnapshot:
    """
    Read a DIMACS ``.gr`` file::

        p sp <vertices> <arcs>
        a <tail> <head> <weight>
    """
    num_vertices = None
    declared_arcs = 0
    edges: List[Tuple[int, int, Weight]] = []

    for line_no, tokens in _records(path):
        try:
            if tokens[0] == "p":
                if len(tokens) != 4 or tokens[1] != "sp":
                    raise ValueError("expected 'p sp <n> <m>'")
                num_vertices, declared_arcs = int(tokens[2]), int(tokens[3])
            elif tokens[0] == "a":
                if num_vertices is None:
                    raise ValueError("arc before problem line")
                if len(tokens) != 4:
                    raise ValueError("expected 'a <u> <v> <w>'")
                edges.append((int(tokens[1]) - 1, int(tokens[2]) - 1, _parse_weight(tokens[3])))
            else:
                raise ValueError(f"unknown record type {tokens[0]!r}")
        except ValueError as exc:
            raise ConfigurationError(f"{path}:{line_no}: {exc}") from exc

    if num_vertices is None:
        raise ConfigurationError(f"{path}: missing problem line")
    if len(edges) != declared_arcs:
        raise ConfigurationError(
            f"{path}: problem line declares {declared_arcs} arcs, found {len(edges)}"
        )

    graph = GraphSnapshot(num_vertices, edges)
    logger.info(f"Loaded graph {path}: {graph.num_vertices} vertices, {graph.num_edges} edges")
    return graph


def read_coordinates_file(path: Path, scale: float = 1_000_000.0) -> VertexIndex:
    """
    Read a DIMACS ``.co`` file::

        p aux sp co <vertices>
        v <id> <lon * scale> <lat * scale>

    Every vertex must appear exactly once.
    """
    num_vertices = None
    points: Dict[int, Point] = {}

    for line_no, tokens in _records(path):
        try:
            if tokens[0] == "p":
                if len(tokens) != 5 or tokens[1:4] != ["aux", "sp", "co"]:
                    raise ValueError("expected 'p aux sp co <n>'")
                num_vertices = int(tokens[4])
            elif tokens[0] == "v":
                if num_vertices is None:
                    raise ValueError("vertex before problem line")
                if len(tokens) != 4:
                    raise ValueError("expected 'v <id> <x> <y>'")
                vertex = int(tokens[1]) - 1
                if not 0 <= vertex < num_vertices:
                    raise ValueError(f"vertex id {vertex + 1} outside 1..{num_vertices}")
                if vertex in points:
                    raise ValueError(f"duplicate vertex id {vertex + 1}")
                lon = float(tokens[2]) / scale
                lat = float(tokens[3]) / scale
                if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
                    raise ValueError(f"coordinate ({lon}, {lat}) out of range")
                points[vertex] = Point(lon=lon, lat=lat)
            else:
                raise ValueError(f"unknown record type {tokens[0]!r}")
        except ValueError as exc:
            raise ConfigurationError(f"{path}:{line_no}: {exc}") from exc

    if num_vertices is None:
        raise ConfigurationError(f"{path}: missing problem line")
    if len(points) != num_vertices:
        raise ConfigurationError(
            f"{path}: problem line declares {num_vertices} vertices, found {len(points)}"
        )

    index = VertexIndex(points[v] for v in range(num_vertices))
    logger.info(f"Loaded coordinates {path}: {len(index)} vertices")
    return index


def _read_json_artifact(path: Path, model: Type[ArtifactT]) -> ArtifactT:
    try:
        raw = Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {path}: {exc}") from exc

    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"{path}: invalid {model.__name__}: {exc}") from exc


def read_contracted_graph(path: Path) -> ContractedGraphArtifact:
    artifact = _read_json_artifact(path, ContractedGraphArtifact)
    logger.info(
        f"Loaded contraction hierarchy {path}: {artifact.num_vertices} vertices, "
        f"{len(artifact.edges)} edges, {len(artifact.shortcuts)} shortcuts"
    )
    return artifact


def read_hub_labels(path: Path) -> HubLabelArtifact:
    artifact = _read_json_artifact(path, HubLabelArtifact)
    logger.info(
        f"Loaded hub labels {path}: {artifact.num_vertices} vertices, "
        f"{sum(len(label) for label in artifact.forward_labels)} forward entries"
    )
    return artifact
