"""
Geometric placement helpers for layered architecture diagrams.

- Layer/rank to coordinate mapping (left-to-right columns)
- Collision resolution that only ever nudges nodes downward
- Overlap detection on placed node boxes
"""

from __future__ import annotations

from dataclasses import dataclass

from arch_layout.models import Graph, NodeBounds


@dataclass
class PlacedNode:
    """A node id with its computed top-left position."""
    id: str
    x: float
    y: float


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

def place_layers(
    layers: dict[int, list[str]],
    column_gap: float,
    row_gap: float,
    padding_x: float = 36,
    padding_y: float = 36,
) -> list[PlacedNode]:
    """Map each (depth, rank) to coordinates.

    Returns nodes in placement order: ascending depth, then rank. The
    collision pass relies on this order for its tie-breaking.
    """
    placed: list[PlacedNode] = []
    for depth in sorted(layers):
        for row, node_id in enumerate(layers[depth]):
            placed.append(PlacedNode(
                id=node_id,
                x=padding_x + depth * column_gap,
                y=padding_y + row * row_gap,
            ))
    return placed


# ---------------------------------------------------------------------------
# Collision resolution
# ---------------------------------------------------------------------------

def resolve_collisions(
    placed: list[PlacedNode],
    width: float = 112,
    height: float = 76,
    margin: float = 18,
    passes: int = 2,
) -> list[PlacedNode]:
    """Push overlapping nodes apart vertically.

    Two nodes collide when their top-left corners are closer than
    ``width + margin`` horizontally and ``height + margin`` vertically.
    The lower node (the second of the pair on equal ``y``) moves down by
    ``height + margin``. Runs a fixed number of O(n^2) passes; x is never
    touched, so column order from crossing minimization survives.

    Returns new PlacedNode objects; the input list is not modified.
    """
    nodes = [PlacedNode(p.id, p.x, p.y) for p in placed]
    step = height + margin

    for _ in range(passes):
        for i in range(len(nodes)):
            for j in range(i + 1, len(nodes)):
                a = nodes[i]
                b = nodes[j]
                overlap_x = abs(a.x - b.x) < width + margin
                overlap_y = abs(a.y - b.y) < height + margin
                if overlap_x and overlap_y:
                    if a.y <= b.y:
                        b.y += step
                    else:
                        a.y += step

    return nodes


# ---------------------------------------------------------------------------
# Overlap detection
# ---------------------------------------------------------------------------

def get_all_node_bounds(graph: Graph, width: float, height: float) -> dict[str, NodeBounds]:
    """Return a bounding box per node, using the fixed node size."""
    return {n.id: NodeBounds(n.x, n.y, width, height) for n in graph.nodes}


def find_overlapping_nodes(
    graph: Graph,
    width: float = 112,
    height: float = 76,
    margin: float = 0,
) -> list[tuple[str, str]]:
    """Find all pairs of overlapping nodes in a laid-out graph.

    Args:
        graph: The graph to check.
        width: Fixed node width.
        height: Fixed node height.
        margin: Minimum required gap between boxes.

    Returns:
        List of (node_id_1, node_id_2) pairs that overlap.
    """
    bounds = get_all_node_bounds(graph, width, height)
    overlaps: list[tuple[str, str]] = []

    ids = list(bounds.keys())
    for i in range(len(ids)):
        for j in range(i + 1, len(ids)):
            if bounds[ids[i]].intersects(bounds[ids[j]], margin):
                overlaps.append((ids[i], ids[j]))

    return overlaps
