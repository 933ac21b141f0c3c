# routeserver/services/hub_labels.py
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Tuple

from routeserver.core.errors import ConfigurationError, IntegrityError, ShortcutIntegrityError
from routeserver.graphs.path import Path, Shortcut, ShortestPathRequest, Weight, shortcuts_from_rows
from routeserver.models.artifacts import HubLabelArtifact, LabelEntry
from routeserver.services.path_finding import PathFindingBackend
from routeserver.services.shortcuts import ShortcutExpander

# hub -> (distance, parent)
Label = Mapping[int, Tuple[Weight, Optional[int]]]


def _build_label(vertex: int, entries: List[LabelEntry], n: int, side: str) -> Label:
    label = {}
    for hub, distance, parent in entries:
        if not 0 <= hub < n:
            raise ConfigurationError(f"{side} label of {vertex} names hub {hub} outside 0..{n - 1}")
        if hub in label:
            raise ConfigurationError(f"{side} label of {vertex} lists hub {hub} twice")
        if distance < 0:
            raise ConfigurationError(f"{side} label of {vertex} has negative distance to {hub}")
        label[hub] = (distance, parent)

    own = label.get(vertex)
    if own is None or own[0] != 0 or own[1] is not None:
        raise ConfigurationError(f"{side} label of {vertex} lacks its own zero-distance entry")

    for hub, (_, parent) in label.items():
        if hub != vertex and parent not in label:
            raise ConfigurationError(
                f"{side} label of {vertex}: parent {parent} of hub {hub} is not in the label"
            )
    return MappingProxyType(label)


class HubLabels:
    """
    Per-vertex forward and backward hub labels, validated on load.
    """

    def __init__(self, artifact: HubLabelArtifact) -> None:
        n = artifact.num_vertices
        if len(artifact.forward_labels) != n or len(artifact.backward_labels) != n:
            raise ConfigurationError(
                f"Hub labels cover {len(artifact.forward_labels)} forward / "
                f"{len(artifact.backward_labels)} backward vertices, expected {n}"
            )

        self.num_vertices = n
        self.forward: Tuple[Label, ...] = tuple(
            _build_label(v, entries, n, "forward") for v, entries in enumerate(artifact.forward_labels)
        )
        self.backward: Tuple[Label, ...] = tuple(
            _build_label(v, entries, n, "backward") for v, entries in enumerate(artifact.backward_labels)
        )
        self.shortcuts: Tuple[Shortcut, ...] = tuple(shortcuts_from_rows(artifact.shortcuts))

    @property
    def num_entries(self) -> int:
        return sum(len(label) for label in self.forward) + sum(len(label) for label in self.backward)

    def parent_edges(self) -> Iterator[Tuple[int, int, Weight]]:
        """
        Contracted edges implied by the parent pointers, with the weight the
        label distances give them. Forward parents precede their hub, backward
        parents follow it.
        """
        for label in self.forward:
            for hub, (distance, parent) in label.items():
                if parent is not None:
                    yield parent, hub, distance - label[parent][0]
        for label in self.backward:
            for hub, (distance, parent) in label.items():
                if parent is not None:
                    yield hub, parent, distance - label[parent][0]


def _follow_parents(label: Label, hub: int, end: int) -> List[int]:
    """``hub, parent(hub), ... , end``; bounded by the label size."""
    chain = [hub]
    while chain[-1] != end:
        if len(chain) > len(label):
            raise IntegrityError(f"Parent chain from hub {hub} does not reach {end}")
        chain.append(label[chain[-1]][1])
    return chain


class HubLabelBackend(PathFindingBackend):
    """
    Hub-label queries: the shortest path leads through the common hub of the
    source's forward label and the target's backward label with the smallest
    summed distance (ties to the lowest hub ID).
    """

    name = "hub_labels"

    def __init__(self, labels: HubLabels, expander: ShortcutExpander) -> None:
        for shortcut in labels.shortcuts:
            if expander.shortcuts.get(shortcut.key) != shortcut:
                raise ShortcutIntegrityError(
                    f"Shortcut {shortcut.key} is not known to the shortcut expander"
                )
        if expander.graph.num_vertices != labels.num_vertices:
            raise ConfigurationError(
                f"Hub labels cover {labels.num_vertices} vertices, "
                f"graph has {expander.graph.num_vertices}"
            )
        for tail, head, weight in labels.parent_edges():
            expander.check_contracted_edge(tail, head, weight)
        self.labels = labels
        self.expander = expander

    @property
    def num_vertices(self) -> int:
        return self.labels.num_vertices

    def _search(self, request: ShortestPathRequest) -> Optional[Path]:
        forward = self.labels.forward[request.source]
        backward = self.labels.backward[request.target]

        # walk the smaller label
        small, large = (forward, backward) if len(forward) <= len(backward) else (backward, forward)
        hubs = [hub for hub in small if hub in large]
        if not hubs:
            return None
        best = min(hubs, key=lambda h: (forward[h][0] + backward[h][0], h))

        up = _follow_parents(forward, best, request.source)
        up.reverse()
        down = _follow_parents(backward, best, request.target)
        contracted = up + down[1:]

        return Path(
            vertices=self.expander.unpack_path(contracted),
            weight=forward[best][0] + backward[best][0],
        )
