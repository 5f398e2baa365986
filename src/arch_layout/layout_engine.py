"""
Layered layout engine for architecture diagrams.

Implements the local (fallback) half of automatic layout:
- Depth assignment with Kahn's algorithm, tolerant of cycles
- Lane classification of component categories
- Barycenter crossing minimization (Sugiyama-style layer sweeps)
- Depth/density-aware spacing, placement and collision resolution

Everything here is a pure function of its inputs: no randomness and no
module-level state, so the same graph and config always produce the same
coordinates.
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Optional, Union

from arch_layout.layout import place_layers, resolve_collisions
from arch_layout.models import CleanGraph, Graph, NodeCategory, prepare


class LayoutInvariantError(AssertionError):
    """Raised when an internal layout stage receives inconsistent tables."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutEngineConfig:
    """Configuration for the layout engine and the external solver."""
    # Dimensions
    node_width: float = 112
    node_height: float = 76

    # Placement
    padding_x: float = 36
    padding_y: float = 36
    base_column_gap: float = 162
    base_row_gap: float = 104
    min_column_gap: float = 132
    min_row_gap: float = 94

    # Compaction: estimated layer count drives column spacing,
    # node count drives row spacing
    deep_layer_threshold: int = 6
    shallow_layer_threshold: int = 3
    deep_compactness: float = 0.86
    shallow_compactness: float = 0.98
    default_compactness: float = 0.92
    dense_node_threshold: int = 14
    dense_row_factor: float = 0.94

    # Algorithm tuning
    crossing_passes: int = 4        # Forward+backward barycenter sweeps
    lane_bias: float = 0.08         # Added per lane ordinal to barycenters
    collision_margin: float = 18
    collision_passes: int = 2

    # External solver
    solver_algorithm: str = "layered"
    solver_direction: str = "RIGHT"
    solver_edge_routing: str = "ORTHOGONAL"
    solver_node_spacing: float = 32
    solver_layer_spacing: float = 68
    solver_edge_node_spacing: float = 16
    solver_padding: float = 24
    solver_timeout: float = 10.0    # Seconds

    def solver_options(self) -> dict[str, str]:
        """Named layout options sent along with every solver request."""
        return {
            "algorithm": self.solver_algorithm,
            "direction": self.solver_direction,
            "edgeRouting": self.solver_edge_routing,
            "spacing.nodeNode": _fmt(self.solver_node_spacing),
            "spacing.nodeNodeBetweenLayers": _fmt(self.solver_layer_spacing),
            "spacing.edgeNodeBetweenLayers": _fmt(self.solver_edge_node_spacing),
            "padding": _fmt(self.solver_padding),
        }

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ---------------------------------------------------------------------------
# Lanes
# ---------------------------------------------------------------------------

class Lane(IntEnum):
    """Coarse semantic bands, ordered from the user toward the data."""
    CLIENT = 0
    INGRESS = 1
    COMPUTE = 2
    MESSAGING = 3
    STORAGE = 4


_CATEGORY_LANES: dict[str, Lane] = {
    NodeCategory.CLIENT.value: Lane.CLIENT,
    NodeCategory.CDN.value: Lane.CLIENT,
    NodeCategory.API_GATEWAY.value: Lane.CLIENT,
    NodeCategory.LOAD_BALANCER.value: Lane.INGRESS,
    NodeCategory.SERVICE.value: Lane.COMPUTE,
    NodeCategory.CONTAINER.value: Lane.COMPUTE,
    NodeCategory.SERVERLESS_FUNCTION.value: Lane.COMPUTE,
    NodeCategory.WORKFLOW.value: Lane.COMPUTE,
    NodeCategory.QUEUE.value: Lane.MESSAGING,
    NodeCategory.EVENT_STREAM.value: Lane.MESSAGING,
    NodeCategory.NOTIFICATION.value: Lane.MESSAGING,
    NodeCategory.SCHEDULER.value: Lane.MESSAGING,
    NodeCategory.CACHE.value: Lane.STORAGE,
    NodeCategory.DATABASE.value: Lane.STORAGE,
    NodeCategory.BLOB_STORAGE.value: Lane.STORAGE,
    # Coarse category names
    "ingress": Lane.INGRESS,
    "routing": Lane.INGRESS,
    "compute": Lane.COMPUTE,
    "messaging": Lane.MESSAGING,
    "storage": Lane.STORAGE,
}

_LANE_LOOKUP: dict[str, Lane] = {k.lower(): v for k, v in _CATEGORY_LANES.items()}


def lane_of(category: Union[str, NodeCategory]) -> int:
    """Map a component category to its lane ordinal.

    Matching is case-insensitive; unknown categories fall into the
    compute lane.
    """
    if isinstance(category, NodeCategory):
        category = category.value
    return int(_LANE_LOOKUP.get(category.strip().lower(), Lane.COMPUTE))


def category_lane_table() -> dict[str, str]:
    """Return ``category -> lane name`` for every known category."""
    return {c.value: Lane(lane_of(c)).name for c in NodeCategory}


# ---------------------------------------------------------------------------
# Depth assignment
# ---------------------------------------------------------------------------

def _kahn_depths(clean: CleanGraph) -> tuple[dict[str, int], set[str]]:
    """Longest-path depths over the acyclic core.

    Returns the depth table (every node starts at 0) and the set of
    visited node ids. Nodes on or downstream of a cycle are never visited.
    """
    indegree = {node_id: len(preds) for node_id, preds in clean.incoming.items()}
    depth = {node_id: 0 for node_id in clean.index}
    visited: set[str] = set()

    queue = deque(node_id for node_id in clean.index if indegree[node_id] == 0)
    while queue:
        node_id = queue.popleft()
        visited.add(node_id)
        for target in clean.outgoing[node_id]:
            depth[target] = max(depth[target], depth[node_id] + 1)
            indegree[target] -= 1
            if indegree[target] == 0:
                queue.append(target)

    return depth, visited


def _fallback_depth(x: float, position: int, column_gap: float, limit: int) -> int:
    """Depth for a node that topological processing never reached."""
    if math.isfinite(x):
        estimate = round(x / max(column_gap, 1))
    else:
        estimate = position
    return min(max(0, estimate), limit)


def _apply_fallback(
    clean: CleanGraph,
    depth: dict[str, int],
    visited: set[str],
    column_gap: float,
) -> dict[str, int]:
    result = dict(depth)
    for node_id, position in clean.index.items():
        if node_id not in visited:
            node = clean.nodes[position]
            result[node_id] = _fallback_depth(node.x, position, column_gap, len(clean))
    return result


def find_cycle_nodes(clean: CleanGraph) -> list[str]:
    """Ids of nodes outside the acyclic core, in node order."""
    _, visited = _kahn_depths(clean)
    return [node_id for node_id in clean.index if node_id not in visited]


def assign_depths(
    clean: CleanGraph,
    config: Optional[LayoutEngineConfig] = None,
) -> dict[str, int]:
    """Assign every node a non-negative layer index.

    Uses Kahn's algorithm so each node lands one layer past its deepest
    predecessor. Nodes stranded by a cycle get a fallback depth estimated
    from their advisory ``x`` and the column gap, which keeps the result
    total at the cost of weaker layering inside cyclic components.
    """
    cfg = config or LayoutEngineConfig()
    depth, visited = _kahn_depths(clean)
    column_gap, _ = compute_spacing(_estimated_layers(depth), len(clean), cfg)
    return _apply_fallback(clean, depth, visited, column_gap)


def _estimated_layers(depth: dict[str, int]) -> int:
    return max(depth.values(), default=0) + 1


# ---------------------------------------------------------------------------
# Crossing minimization
# ---------------------------------------------------------------------------

def _order_hint(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _rank_table(layers: dict[int, list[str]]) -> dict[str, int]:
    return {node_id: i for ids in layers.values() for i, node_id in enumerate(ids)}


def _reorder_layer(
    layer: list[str],
    neighbors: dict[str, list[str]],
    ranks: dict[str, int],
    lanes: dict[str, int],
    lane_bias: float,
) -> list[str]:
    """Sort one layer by lane-biased barycenter of its neighbors' ranks."""
    scored: list[tuple[float, str]] = []
    for index, node_id in enumerate(layer):
        adjacent = neighbors[node_id]
        if adjacent:
            barycenter = sum(ranks[n] for n in adjacent) / len(adjacent)
        else:
            barycenter = float(index)
        scored.append((barycenter + lanes[node_id] * lane_bias, node_id))
    # Stable: equal scores keep their current relative order.
    scored.sort(key=lambda item: item[0])
    return [node_id for _, node_id in scored]


def minimize_crossings(
    clean: CleanGraph,
    depths: dict[str, int],
    lanes: Optional[dict[str, int]] = None,
    passes: int = 4,
    lane_bias: float = 0.08,
) -> dict[int, list[str]]:
    """Order nodes within each layer to reduce edge crossings.

    Layers start sorted by (lane, advisory y, insertion order). Each pass
    sweeps forward (layers 1..N, ranking by incoming neighbors) then
    backward (layers N-1..0, ranking by outgoing neighbors). A layer's
    new order is committed to a fresh rank table before the next layer
    is processed.

    Raises:
        LayoutInvariantError: if *depths* or *lanes* lack an entry for a node.
    """
    if lanes is None:
        lanes = {n.id: lane_of(n.category) for n in clean.nodes}

    layers: dict[int, list[str]] = {}
    for node_id in clean.index:
        if node_id not in depths:
            raise LayoutInvariantError(f"depth map has no entry for node '{node_id}'")
        if node_id not in lanes:
            raise LayoutInvariantError(f"lane map has no entry for node '{node_id}'")
        layers.setdefault(depths[node_id], []).append(node_id)

    for d, ids in layers.items():
        layers[d] = sorted(ids, key=lambda n: (
            lanes[n], _order_hint(clean.node(n).y), clean.index[n],
        ))

    ordered_depths = sorted(layers)
    ranks = _rank_table(layers)

    for _ in range(passes):
        for i in range(1, len(ordered_depths)):
            d = ordered_depths[i]
            if len(layers[d]) > 1:
                layers[d] = _reorder_layer(layers[d], clean.incoming, ranks, lanes, lane_bias)
                ranks = _rank_table(layers)
        for i in range(len(ordered_depths) - 2, -1, -1):
            d = ordered_depths[i]
            if len(layers[d]) > 1:
                layers[d] = _reorder_layer(layers[d], clean.outgoing, ranks, lanes, lane_bias)
                ranks = _rank_table(layers)

    return {d: list(layers[d]) for d in ordered_depths}


# ---------------------------------------------------------------------------
# Spacing
# ---------------------------------------------------------------------------

def compute_spacing(
    layer_count: int,
    node_count: int,
    config: Optional[LayoutEngineConfig] = None,
) -> tuple[float, float]:
    """Return (column_gap, row_gap), compacted for deep or dense graphs.

    Gaps never drop below the node size plus the collision margin, so
    neighbouring grid slots can't collide and collision resolution leaves
    the crossing-minimized order alone.
    """
    cfg = config or LayoutEngineConfig()
    if layer_count >= cfg.deep_layer_threshold:
        compactness = cfg.deep_compactness
    elif layer_count <= cfg.shallow_layer_threshold:
        compactness = cfg.shallow_compactness
    else:
        compactness = cfg.default_compactness

    row_factor = cfg.dense_row_factor if node_count > cfg.dense_node_threshold else 1
    column_gap = max(cfg.min_column_gap, round(cfg.base_column_gap * compactness))
    row_gap = max(cfg.min_row_gap, round(cfg.base_row_gap * row_factor))
    column_gap = max(column_gap, math.ceil(cfg.node_width + cfg.collision_margin))
    row_gap = max(row_gap, math.ceil(cfg.node_height + cfg.collision_margin))
    return column_gap, row_gap


# ---------------------------------------------------------------------------
# Fallback pipeline
# ---------------------------------------------------------------------------

def layout_tidy(graph: Graph, config: Optional[LayoutEngineConfig] = None) -> Graph:
    """Lay out *graph* left-to-right without any external solver.

    Steps:
    1. Filter malformed edges and build adjacency
    2. Depth assignment (Kahn + cycle fallback)
    3. Lane classification
    4. Crossing minimization
    5. Placement with depth/density compaction
    6. Collision resolution

    Returns a new graph with every node's ``x``/``y`` replaced and the
    filtered edge list. An empty graph is returned unchanged.
    """
    if not graph.nodes:
        return graph
    cfg = config or LayoutEngineConfig()

    clean = prepare(graph)
    raw_depths, visited = _kahn_depths(clean)
    column_gap, row_gap = compute_spacing(_estimated_layers(raw_depths), len(clean), cfg)
    depths = _apply_fallback(clean, raw_depths, visited, column_gap)
    lanes = {n.id: lane_of(n.category) for n in clean.nodes}

    layers = minimize_crossings(
        clean, depths, lanes, passes=cfg.crossing_passes, lane_bias=cfg.lane_bias,
    )
    placed = place_layers(layers, column_gap, row_gap, cfg.padding_x, cfg.padding_y)
    placed = resolve_collisions(
        placed,
        width=cfg.node_width,
        height=cfg.node_height,
        margin=cfg.collision_margin,
        passes=cfg.collision_passes,
    )

    positions = {p.id: (p.x, p.y) for p in placed}
    return graph.with_positions(positions, edges=clean.edges)
