# tests/conftest.py
import json
import os
import sys

import networkx as nx
import pytest

# Add the project root directory to sys.path so that "import routeserver" works
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from routeserver.core.config import Settings  # noqa: E402
from routeserver.models.artifacts import ContractedGraphArtifact  # noqa: E402
from routeserver.services.contraction import ContractedGraph  # noqa: E402
from routeserver.services.graph_manager import GraphManager  # noqa: E402

# Test network, DIMACS ids 1..6 (0..5 inside the service):
#
#   4 ---- 3          5 ---- 6   (disjoint, weight 7)
#   |      |
#   1 ---- 2          square: unit weights, both directions
#
GRAPH_FILE = """\
c unit square plus a disconnected pair
p sp 6 10
a 1 2 1
a 2 1 1
a 2 3 1
a 3 2 1
a 3 4 1
a 4 3 1
a 4 1 1
a 1 4 1
a 5 6 7
a 6 5 7
"""

# micro-degrees: square corners 0.01 deg apart, the pair one degree away
COORDINATES_FILE = """\
c lon lat * 1e6
p aux sp co 6
v 1 0 0
v 2 10000 0
v 3 10000 10000
v 4 0 10000
v 5 1000000 1000000
v 6 1010000 1000000
"""

# Contraction order 0, 2, 1, 3, 4, 5. Contracting vertex 0 adds the
# shortcuts 1 <-> 3 (weight 2, skipping 0).
CH_ARTIFACT = {
    "num_vertices": 6,
    "levels": [0, 2, 1, 3, 4, 5],
    "edges": [
        [0, 1, 1], [1, 0, 1],
        [1, 2, 1], [2, 1, 1],
        [2, 3, 1], [3, 2, 1],
        [3, 0, 1], [0, 3, 1],
        [4, 5, 7], [5, 4, 7],
        [1, 3, 2], [3, 1, 2],
    ],
    "shortcuts": [[1, 3, 0, 2], [3, 1, 0, 2]],
}


def hub_labels_from_ch(artifact: dict) -> dict:
    """
    Unpruned hub labels: every vertex's full upward search space.
    """
    ch = ContractedGraph(ContractedGraphArtifact(**artifact))

    def labels(graph):
        out = []
        for v in range(ch.num_vertices):
            pred, dist = nx.dijkstra_predecessor_and_distance(graph, v, weight="weight")
            out.append(
                [[hub, dist[hub], pred[hub][0] if hub != v else None] for hub in sorted(dist)]
            )
        return out

    return {
        "num_vertices": artifact["num_vertices"],
        "forward_labels": labels(ch.upward),
        "backward_labels": labels(ch.downward_reversed),
        "shortcuts": artifact["shortcuts"],
    }


@pytest.fixture
def network_files(tmp_path):
    paths = {
        "graph": tmp_path / "network.gr",
        "coordinates": tmp_path / "network.co",
        "ch": tmp_path / "network.ch.json",
        "hub_labels": tmp_path / "network.hl.json",
    }
    paths["graph"].write_text(GRAPH_FILE, encoding="utf-8")
    paths["coordinates"].write_text(COORDINATES_FILE, encoding="utf-8")
    paths["ch"].write_text(json.dumps(CH_ARTIFACT), encoding="utf-8")
    paths["hub_labels"].write_text(json.dumps(hub_labels_from_ch(CH_ARTIFACT)), encoding="utf-8")
    return paths


@pytest.fixture
def make_settings(network_files):
    def _make(**overrides) -> Settings:
        values = dict(
            GRAPH_PATH=network_files["graph"],
            COORDINATES_PATH=network_files["coordinates"],
            CH_PATH=network_files["ch"],
            HUB_LABEL_PATH=network_files["hub_labels"],
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def routing_state(make_settings):
    return GraphManager(make_settings()).load()
