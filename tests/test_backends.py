# tests/test_backends.py
import itertools

import pytest

from routeserver.core.errors import ConfigurationError, InvalidVertex, ShortcutIntegrityError
from routeserver.graphs.graph import GraphSnapshot
from routeserver.graphs.path import ShortestPathRequest
from routeserver.graphs.validation import PathValidator
from routeserver.models.artifacts import ContractedGraphArtifact, HubLabelArtifact
from routeserver.services.contraction import ContractedGraph, ContractionHierarchyBackend
from routeserver.services.hub_labels import HubLabelBackend, HubLabels
from routeserver.services.path_finding import DijkstraBackend
from routeserver.services.shortcuts import RecursiveShortcutExpander, TableShortcutExpander

from conftest import CH_ARTIFACT, hub_labels_from_ch

VERTICES = range(6)


@pytest.fixture
def graph(routing_state):
    return routing_state.graph


@pytest.fixture
def backends(graph):
    ch = ContractedGraph(ContractedGraphArtifact(**CH_ARTIFACT))
    labels = HubLabels(HubLabelArtifact(**hub_labels_from_ch(CH_ARTIFACT)))
    return [
        DijkstraBackend(graph),
        ContractionHierarchyBackend(ch, RecursiveShortcutExpander(graph, ch.shortcuts)),
        ContractionHierarchyBackend(ch, TableShortcutExpander(graph, ch.shortcuts)),
        HubLabelBackend(labels, RecursiveShortcutExpander(graph, labels.shortcuts)),
        HubLabelBackend(labels, TableShortcutExpander(graph, labels.shortcuts)),
    ]


def test_every_backend_returns_valid_paths(graph, backends):
    validator = PathValidator(graph)

    for backend in backends:
        for source, target in itertools.product(VERTICES, VERTICES):
            request = ShortestPathRequest(source, target)
            path = backend.find_shortest_path(request)
            if path is not None:
                validator.validate(request, path)


def test_backends_agree_on_weight(backends):
    reference, *others = backends

    for source, target in itertools.product(VERTICES, VERTICES):
        request = ShortestPathRequest(source, target)
        expected = reference.find_shortest_path(request)
        for backend in others:
            path = backend.find_shortest_path(request)
            if expected is None:
                assert path is None, (backend, request)
            else:
                assert path.weight == expected.weight, (backend, request)


@pytest.mark.parametrize("source, target, weight", [(0, 2, 2), (1, 3, 2), (3, 1, 2), (0, 1, 1), (4, 5, 7)])
def test_known_weights(backends, source, target, weight):
    for backend in backends:
        assert backend.find_shortest_path(ShortestPathRequest(source, target)).weight == weight


def test_diagonal_goes_through_a_corner(backends):
    for backend in backends:
        path = backend.find_shortest_path(ShortestPathRequest(0, 2))
        assert path.vertices in [(0, 1, 2), (0, 3, 2)]


def test_ch_path_has_no_shortcuts_left(backends):
    ch_backend = backends[1]

    path = ch_backend.find_shortest_path(ShortestPathRequest(3, 1))

    # (3, 1) is a shortcut over vertex 0
    assert path.vertices == (3, 0, 1)


@pytest.mark.parametrize("vertex", VERTICES)
def test_same_source_and_target(backends, vertex):
    for backend in backends:
        path = backend.find_shortest_path(ShortestPathRequest(vertex, vertex))
        assert path.vertices == (vertex,)
        assert path.weight == 0


@pytest.mark.parametrize("source, target", [(0, 4), (5, 2), (3, 5)])
def test_disconnected_vertices(backends, source, target):
    for backend in backends:
        assert backend.find_shortest_path(ShortestPathRequest(source, target)) is None


@pytest.mark.parametrize("source, target", [(0, 6), (-1, 0), (0, 99)])
def test_invalid_vertex(backends, source, target):
    for backend in backends:
        with pytest.raises(InvalidVertex):
            backend.find_shortest_path(ShortestPathRequest(source, target))


def test_repeated_queries_are_identical(backends):
    for backend in backends:
        first = backend.find_shortest_path(ShortestPathRequest(0, 2))
        second = backend.find_shortest_path(ShortestPathRequest(0, 2))
        assert first == second


def test_float_weights():
    graph = GraphSnapshot(3, [(0, 1, 0.1), (1, 2, 0.2), (0, 2, 0.5)])
    path = DijkstraBackend(graph).find_shortest_path(ShortestPathRequest(0, 2))

    assert path.vertices == (0, 1, 2)
    PathValidator(graph).validate(ShortestPathRequest(0, 2), path)


def test_ch_rejects_equal_levels():
    artifact = ContractedGraphArtifact(num_vertices=2, levels=[1, 1], edges=[[0, 1, 1]])

    with pytest.raises(ConfigurationError, match="level"):
        ContractedGraph(artifact)


def test_ch_rejects_shortcut_without_edge():
    artifact = ContractedGraphArtifact(
        num_vertices=3,
        levels=[0, 1, 2],
        edges=[[0, 1, 1], [1, 2, 1]],
        shortcuts=[[0, 2, 1, 2]],
    )

    with pytest.raises(ShortcutIntegrityError):
        ContractedGraph(artifact)


def test_ch_backend_needs_matching_expander(graph):
    ch = ContractedGraph(ContractedGraphArtifact(**CH_ARTIFACT))

    with pytest.raises(ShortcutIntegrityError):
        ContractionHierarchyBackend(ch, RecursiveShortcutExpander(graph, []))


def test_hub_labels_need_self_entry():
    artifact = HubLabelArtifact(
        num_vertices=2,
        forward_labels=[[[0, 0, None]], [[0, 1, 1]]],
        backward_labels=[[[0, 0, None]], [[1, 0, None]]],
    )

    with pytest.raises(ConfigurationError, match="own zero-distance entry"):
        HubLabels(artifact)


def test_hub_labels_need_parents_in_label():
    artifact = HubLabelArtifact(
        num_vertices=3,
        forward_labels=[[[0, 0, None], [2, 4, 1]], [[1, 0, None]], [[2, 0, None]]],
        backward_labels=[[[0, 0, None]], [[1, 0, None]], [[2, 0, None]]],
    )

    with pytest.raises(ConfigurationError, match="parent 1"):
        HubLabels(artifact)


# 0 -1-> 1 -1-> 2
PATH_GRAPH = GraphSnapshot(3, [(0, 1, 1), (1, 2, 1)])


def test_ch_edge_must_exist_in_graph():
    ch = ContractedGraph(
        ContractedGraphArtifact(
            num_vertices=3, levels=[0, 1, 2], edges=[[0, 1, 1], [1, 2, 1], [0, 2, 1]]
        )
    )

    with pytest.raises(ShortcutIntegrityError, match=r"\(0, 2\) is neither a shortcut"):
        ContractionHierarchyBackend(ch, RecursiveShortcutExpander(PATH_GRAPH, ch.shortcuts))


def test_ch_edge_weight_must_match_graph():
    ch = ContractedGraph(
        ContractedGraphArtifact(num_vertices=3, levels=[0, 1, 2], edges=[[0, 1, 2], [1, 2, 1]])
    )

    with pytest.raises(ShortcutIntegrityError, match="has weight 2"):
        ContractionHierarchyBackend(ch, RecursiveShortcutExpander(PATH_GRAPH, ch.shortcuts))


def test_hub_label_parent_must_be_an_edge():
    labels = HubLabels(
        HubLabelArtifact(
            num_vertices=3,
            # 0 reaches hub 2 straight from 0, but there is no edge 0 -> 2
            forward_labels=[[[0, 0, None], [2, 1, 0]], [[1, 0, None]], [[2, 0, None]]],
            backward_labels=[[[0, 0, None]], [[1, 0, None]], [[2, 0, None]]],
        )
    )

    with pytest.raises(ShortcutIntegrityError, match=r"\(0, 2\) is neither a shortcut"):
        HubLabelBackend(labels, TableShortcutExpander(PATH_GRAPH, labels.shortcuts))


def test_hub_label_distances_must_match_graph():
    labels = HubLabels(
        HubLabelArtifact(
            num_vertices=3,
            forward_labels=[[[0, 0, None]], [[1, 0, None]], [[2, 0, None]]],
            # 1 -> 2 costs 1, the label claims 3
            backward_labels=[[[0, 0, None]], [[1, 0, None]], [[2, 0, None], [1, 3, 2]]],
        )
    )

    with pytest.raises(ShortcutIntegrityError, match="has weight 3"):
        HubLabelBackend(labels, TableShortcutExpander(PATH_GRAPH, labels.shortcuts))
