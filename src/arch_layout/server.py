"""
Architecture Layout MCP Server - automatic layout of architecture diagrams
via Model Context Protocol.

Exposes 2 tools that let an LLM agent turn a generated node/edge list into
readable, non-overlapping coordinates.

Tools:
  1. layout   - positioning: auto (external solver, local fallback), tidy,
                             depths, layers
  2. inspect  - read-only: overlaps, lanes, summary
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from arch_layout.layout import find_overlapping_nodes
from arch_layout.layout_engine import (
    Lane,
    LayoutEngineConfig,
    assign_depths,
    category_lane_table,
    find_cycle_nodes,
    lane_of,
    layout_tidy,
    minimize_crossings,
)
from arch_layout.models import prepare
from arch_layout.service import auto_layout
from arch_layout.solver import GraphvizSolver, LayoutSolver
from arch_layout.validation import (
    ValidationError,
    parse_graph,
    validate_action,
    validate_direction,
    validate_edge_routing,
    validate_non_negative_number,
    validate_passes,
    validate_positive_number,
    validate_timeout,
    _INSPECT_ACTIONS,
    _LAYOUT_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging - suppress routine FastMCP INFO messages that editors show
# as warnings (they go to stderr).
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("arch-layout")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "arch-layout",
    instructions=(
        "MCP server that computes readable left-to-right layouts for\n"
        "architecture diagrams.\n\n"
        "=== ONLY 2 TOOLS - use the 'action' parameter to pick the operation ===\n\n"
        "1. layout(action, nodes, edges, ...) - auto, tidy, depths, layers.\n"
        "2. inspect(action, nodes, edges, ...) - overlaps, lanes, summary.\n\n"
        "=== INPUT ===\n"
        "- nodes: [{id, label, category, x, y, annotations}]; x/y are hints only.\n"
        "- edges: [{id, source, target, label}].\n"
        "- Edges to unknown nodes and self-loops are dropped, not rejected.\n"
        "- Cycles are fine; every node always gets a position.\n"
        "- Read archlayout://categories for the category -> lane table.\n"
    ),
)

# External solver used by layout(action='auto'). Replaceable for tests.
_solver: LayoutSolver = GraphvizSolver()


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("archlayout://categories")
def category_catalog() -> str:
    """Return every known component category with its lane."""
    entries = [f"  {cat}: {lane}" for cat, lane in category_lane_table().items()]
    lanes = ", ".join(f"{lane.name}={int(lane)}" for lane in Lane)
    return (
        "Component categories (unknown categories use COMPUTE):\n"
        + "\n".join(entries)
        + f"\nLanes: {lanes}"
    )


@mcp.resource("archlayout://config/defaults")
def config_defaults() -> str:
    """Return the default layout configuration as JSON."""
    return json.dumps(LayoutEngineConfig().to_dict(), indent=2)


# ===================================================================
# TOOL 1: layout - positioning
# ===================================================================

@mcp.tool()
async def layout(
    action: str,
    nodes: Optional[list[dict[str, Any]]] = None,
    edges: Optional[list[dict[str, Any]]] = None,
    node_width: float = 112,
    node_height: float = 76,
    column_gap: float = 162,
    row_gap: float = 104,
    collision_margin: float = 18,
    passes: int = 4,
    direction: str = "RIGHT",
    edge_routing: str = "ORTHOGONAL",
    timeout: float = 10.0,
) -> str:
    """Compute node coordinates for an architecture diagram.

    Actions:
      auto   - Try the external layered solver; on any failure fall back to
               the local engine. Params: nodes, edges, sizes, direction,
               edge_routing, timeout.
      tidy   - Local engine only (depths, lanes, crossing minimization,
               collision resolution). Params: nodes, edges, sizes, passes.
      depths - Return the layer index of every node. Params: nodes, edges.
      layers - Return the ordered node ids of every layer.
               Params: nodes, edges, passes.

    Args:
        action: One of: auto, tidy, depths, layers.
        nodes: Node dicts {id, label, category, x, y, annotations}.
        edges: Edge dicts {id, source, target, label}.
        node_width: Fixed node width.
        node_height: Fixed node height.
        column_gap: Base gap between layer columns (before compaction).
        row_gap: Base gap between rows within a layer (before compaction).
        collision_margin: Minimum spacing enforced by collision resolution.
        passes: Crossing-minimization passes.
        direction: External solver flow direction (RIGHT, DOWN, LEFT, UP).
        edge_routing: External solver edge routing (ORTHOGONAL, POLYLINE, SPLINES).
        timeout: External solver timeout in seconds.

    Returns:
        JSON text, or an "Error: ..." string for invalid input.
    """
    try:
        action = validate_action(action, "layout", _LAYOUT_ACTIONS)
        graph = parse_graph(nodes if nodes is not None else [], edges if edges is not None else [])
        cfg = replace(
            LayoutEngineConfig(),
            node_width=validate_positive_number(node_width, "node_width"),
            node_height=validate_positive_number(node_height, "node_height"),
            base_column_gap=validate_positive_number(column_gap, "column_gap"),
            base_row_gap=validate_positive_number(row_gap, "row_gap"),
            collision_margin=validate_non_negative_number(collision_margin, "collision_margin"),
            crossing_passes=validate_passes(passes),
            solver_direction=validate_direction(direction),
            solver_edge_routing=validate_edge_routing(edge_routing),
            solver_timeout=validate_timeout(timeout),
        )
    except ValidationError as exc:
        return f"Error: {exc.message}"

    clean = prepare(graph)

    if action == "auto":
        result = await auto_layout(graph, _solver, cfg)
        return json.dumps({**result.to_dict(), "dropped_edges": clean.dropped_edges}, indent=2)

    elif action == "tidy":
        result = layout_tidy(graph, cfg)
        return json.dumps({**result.to_dict(), "dropped_edges": clean.dropped_edges}, indent=2)

    elif action == "depths":
        depths = assign_depths(clean, cfg)
        return json.dumps({
            "depths": depths,
            "cycle_nodes": find_cycle_nodes(clean),
        }, indent=2)

    elif action == "layers":
        depths = assign_depths(clean, cfg)
        layers = minimize_crossings(
            clean, depths, passes=cfg.crossing_passes, lane_bias=cfg.lane_bias,
        )
        return json.dumps({"layers": {str(d): ids for d, ids in layers.items()}}, indent=2)

    return f"Error: unhandled layout action '{action}'."


# ===================================================================
# TOOL 2: inspect - read-only
# ===================================================================

@mcp.tool()
def inspect(
    action: str,
    nodes: Optional[list[dict[str, Any]]] = None,
    edges: Optional[list[dict[str, Any]]] = None,
    node_width: float = 112,
    node_height: float = 76,
    margin: float = 0,
) -> str:
    """Read-only inspection of a node/edge list.

    Actions:
      overlaps - Pairs of nodes whose boxes overlap at their current x/y.
                 Params: nodes, node_width, node_height, margin.
      lanes    - Lane name of every node. Params: nodes.
      summary  - Node/edge counts, dropped edge ids and nodes caught in
                 cycles. Params: nodes, edges.

    Args:
        action: One of: overlaps, lanes, summary.
        nodes: Node dicts {id, label, category, x, y, annotations}.
        edges: Edge dicts {id, source, target, label}.
        node_width: Fixed node width for overlap checks.
        node_height: Fixed node height for overlap checks.
        margin: Minimum gap for overlap checks.

    Returns:
        JSON text, or an "Error: ..." string for invalid input.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
        graph = parse_graph(nodes if nodes is not None else [], edges if edges is not None else [])
        node_width = validate_positive_number(node_width, "node_width")
        node_height = validate_positive_number(node_height, "node_height")
        margin = validate_non_negative_number(margin, "margin")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "overlaps":
        pairs = find_overlapping_nodes(graph, node_width, node_height, margin)
        return json.dumps([list(p) for p in pairs])

    elif action == "lanes":
        return json.dumps({n.id: Lane(lane_of(n.category)).name for n in graph.nodes}, indent=2)

    elif action == "summary":
        clean = prepare(graph)
        return json.dumps({
            "nodes": len(clean.nodes),
            "edges": len(clean.edges),
            "dropped_edges": clean.dropped_edges,
            "cycle_nodes": find_cycle_nodes(clean),
        }, indent=2)

    return f"Error: unhandled inspect action '{action}'."


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
