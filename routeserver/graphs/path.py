# routeserver/graphs/path.py
from dataclasses import dataclass
from typing import Iterable, List, Tuple, Union

Weight = Union[int, float]
Edge = Tuple[int, int]


@dataclass(frozen=True)
class Point:
    """A geographic point in degrees."""

    lon: float
    lat: float


@dataclass(frozen=True)
class ShortestPathRequest:
    source: int
    target: int


@dataclass(frozen=True)
class Path:
    """
    A walk through the original graph.

    ``vertices[0]`` is the request source and ``vertices[-1]`` its target;
    ``weight`` is the summed edge weight of the walk.
    """

    vertices: Tuple[int, ...]
    weight: Weight

    @classmethod
    def single_vertex(cls, vertex: int) -> "Path":
        return cls(vertices=(vertex,), weight=0)


@dataclass(frozen=True)
class Shortcut:
    """
    Contraction-hierarchy edge ``tail -> head`` standing for
    ``tail -> skipped -> head``. Either half may itself be a shortcut.
    """

    tail: int
    head: int
    skipped: int
    weight: Weight

    @property
    def key(self) -> Edge:
        return (self.tail, self.head)


def shortcuts_from_rows(rows: Iterable[Tuple[int, int, int, Weight]]) -> List[Shortcut]:
    return [Shortcut(tail=t, head=h, skipped=s, weight=w) for t, h, s, w in rows]
