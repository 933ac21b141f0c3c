# routeserver/models/artifacts.py

from typing import List, Optional, Tuple, Union

from pydantic import BaseModel, Field

Weight = Union[int, float]


class ContractedGraphArtifact(BaseModel):
    """
    Precomputed contraction hierarchy, stored as JSON.

    - ``levels[v]`` is the contraction rank of vertex ``v`` (higher = contracted later).
    - ``edges`` holds every CH edge as ``[tail, head, weight]``, shortcuts included.
    - ``shortcuts`` holds ``[tail, head, skipped, weight]`` for each CH edge that
      replaced ``tail -> skipped -> head``.

    Vertex IDs are zero-based and match the road network graph.
    """
    num_vertices: int = Field(ge=0)
    levels: List[int]
    edges: List[Tuple[int, int, Weight]]
    shortcuts: List[Tuple[int, int, int, Weight]] = []


LabelEntry = Tuple[int, Weight, Optional[int]]


class HubLabelArtifact(BaseModel):
    """
    Precomputed hub labels, stored as JSON.

    ``forward_labels[v]`` lists ``[hub, distance, parent]`` for hubs reachable
    from ``v``; ``parent`` is the vertex before ``hub`` on that path (``null``
    for the entry ``hub == v``). ``backward_labels[v]`` lists hubs that reach
    ``v``; there ``parent`` is the vertex after ``hub`` towards ``v``.

    Consecutive vertices along parent chains are edges of the contracted graph
    the labels were computed on, so ``shortcuts`` is needed to expand them.
    """
    num_vertices: int = Field(ge=0)
    forward_labels: List[List[LabelEntry]]
    backward_labels: List[List[LabelEntry]]
    shortcuts: List[Tuple[int, int, int, Weight]] = []
