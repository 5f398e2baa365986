"""
Core graph model classes for architecture diagrams.

Provides the typed node/edge/graph values the layout engine consumes, plus
``prepare()`` which filters untrusted edges and builds the adjacency
indices every downstream layout stage reuses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger("arch-layout")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class NodeCategory(Enum):
    """Architecture component kinds known to the diagram canvas."""
    CLIENT = "client"
    CDN = "cdn"
    API_GATEWAY = "apiGateway"
    LOAD_BALANCER = "loadBalancer"
    SERVICE = "service"
    CONTAINER = "container"
    SERVERLESS_FUNCTION = "serverlessFunction"
    WORKFLOW = "workflow"
    QUEUE = "queue"
    EVENT_STREAM = "eventStream"
    NOTIFICATION = "notification"
    SCHEDULER = "scheduler"
    CACHE = "cache"
    DATABASE = "database"
    BLOB_STORAGE = "blobStorage"
    TEXT = "text"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass
class Node:
    """A diagram node. ``x``/``y`` are top-left coordinates."""
    id: str
    label: str = ""
    category: str = NodeCategory.SERVICE.value
    x: float = 0
    y: float = 0
    annotations: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "category": self.category,
            "x": self.x,
            "y": self.y,
        }
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=data["id"],
            label=data.get("label", ""),
            category=data.get("category", NodeCategory.SERVICE.value),
            x=data.get("x", 0),
            y=data.get("y", 0),
            annotations=dict(data.get("annotations") or {}),
        )


@dataclass
class Edge:
    """A directed, optionally labeled connection between two nodes."""
    id: str
    source: str
    target: str
    label: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "source": self.source, "target": self.target}
        if self.label is not None:
            data["label"] = self.label
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edge:
        return cls(
            id=data["id"],
            source=data["source"],
            target=data["target"],
            label=data.get("label"),
        )


@dataclass
class Graph:
    """Ordered nodes plus edges. Layout returns a new Graph, never mutates."""
    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)

    def node_ids(self) -> list[str]:
        return [n.id for n in self.nodes]

    def with_positions(
        self,
        positions: dict[str, tuple[float, float]],
        edges: Optional[list[Edge]] = None,
    ) -> Graph:
        """Return a copy whose nodes take their coordinates from *positions*.

        Nodes missing from *positions* keep their current coordinates.
        Node order and all non-geometric fields are preserved. *edges*
        replaces the edge list when given (the filtered edges after layout).
        """
        nodes: list[Node] = []
        for node in self.nodes:
            pos = positions.get(node.id)
            if pos is None:
                nodes.append(replace(node, annotations=dict(node.annotations)))
            else:
                nodes.append(replace(
                    node, x=pos[0], y=pos[1], annotations=dict(node.annotations),
                ))
        kept = self.edges if edges is None else edges
        return Graph(nodes=nodes, edges=[replace(e) for e in kept])

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Graph:
        return cls(
            nodes=[Node.from_dict(n) for n in data.get("nodes", [])],
            edges=[Edge.from_dict(e) for e in data.get("edges", [])],
        )


@dataclass
class CleanGraph:
    """A graph whose edges all reference existing, distinct nodes.

    Nodes live in an arena (``nodes``) addressed by position; ``index``
    maps node id to that position. ``outgoing``/``incoming`` hold neighbor
    ids per node in edge order and have an entry for every node.
    """
    nodes: list[Node]
    edges: list[Edge]
    index: dict[str, int]
    outgoing: dict[str, list[str]]
    incoming: dict[str, list[str]]
    dropped_edges: list[str] = field(default_factory=list)

    def node(self, node_id: str) -> Node:
        return self.nodes[self.index[node_id]]

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass
class NodeBounds:
    """Axis-aligned bounding box for a placed node."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    def intersects(self, other: 'NodeBounds', margin: float = 0) -> bool:
        """Check if two bounding boxes overlap (with optional margin)."""
        return not (
            self.right + margin <= other.x
            or other.right + margin <= self.x
            or self.bottom + margin <= other.y
            or other.bottom + margin <= self.y
        )


# ---------------------------------------------------------------------------
# Preparation
# ---------------------------------------------------------------------------

def prepare(graph: Graph) -> CleanGraph:
    """Drop dangling and self-loop edges and build adjacency indices.

    Upstream graph generation is not fully trusted, so malformed edges are
    dropped silently rather than reported as errors. The node list is
    passed through untouched.
    """
    index: dict[str, int] = {}
    for i, node in enumerate(graph.nodes):
        index.setdefault(node.id, i)

    outgoing: dict[str, list[str]] = {node_id: [] for node_id in index}
    incoming: dict[str, list[str]] = {node_id: [] for node_id in index}
    edges: list[Edge] = []
    dropped: list[str] = []

    for edge in graph.edges:
        if edge.source not in index or edge.target not in index or edge.source == edge.target:
            dropped.append(edge.id)
            continue
        edges.append(edge)
        outgoing[edge.source].append(edge.target)
        incoming[edge.target].append(edge.source)

    if dropped:
        logger.debug("Dropped %d malformed edge(s): %s", len(dropped), ", ".join(dropped))

    return CleanGraph(
        nodes=graph.nodes,
        edges=edges,
        index=index,
        outgoing=outgoing,
        incoming=incoming,
        dropped_edges=dropped,
    )
