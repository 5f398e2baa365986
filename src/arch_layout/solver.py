"""
External layout solver boundary.

The preferred layout path hands the filtered graph to a constraint-based
layered solver. Anything that implements :class:`LayoutSolver` can be
plugged in; :class:`GraphvizSolver` drives the Graphviz ``dot`` executable.
Every failure surfaces as :class:`LayoutSolverError` so callers can fall
back to the local engine.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Protocol

from arch_layout.layout_engine import LayoutEngineConfig
from arch_layout.models import CleanGraph, Graph, prepare

logger = logging.getLogger("arch-layout.solver")

_POINTS_PER_INCH = 72.0


class LayoutSolverError(Exception):
    """Raised when the external solver fails, times out or answers badly."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------

@dataclass
class SolverNode:
    id: str
    width: float
    height: float


@dataclass
class SolverEdge:
    id: str
    source: str
    target: str


@dataclass
class SolverRequest:
    """Fixed-size nodes, filtered edges and named layout options."""
    nodes: list[SolverNode]
    edges: list[SolverEdge]
    options: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_clean(cls, clean: CleanGraph, config: LayoutEngineConfig) -> SolverRequest:
        return cls(
            nodes=[
                SolverNode(node_id, config.node_width, config.node_height)
                for node_id in clean.index
            ],
            edges=[SolverEdge(e.id, e.source, e.target) for e in clean.edges],
            options=config.solver_options(),
        )


@dataclass
class SolverResponse:
    """Top-left position per node id, in the solver's coordinate space."""
    positions: dict[str, tuple[float, float]] = field(default_factory=dict)


class LayoutSolver(Protocol):
    """Anything that can lay out a :class:`SolverRequest` asynchronously."""

    async def layout(self, request: SolverRequest) -> SolverResponse:
        ...


# ---------------------------------------------------------------------------
# Graphviz
# ---------------------------------------------------------------------------

_RANKDIR = {"RIGHT": "LR", "DOWN": "TB", "LEFT": "RL", "UP": "BT"}
_SPLINES = {"ORTHOGONAL": "ortho", "POLYLINE": "polyline", "SPLINES": "spline"}


def _quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _inches(points: str) -> str:
    return f"{float(points) / _POINTS_PER_INCH:.4f}"


class GraphvizSolver:
    """Lay out graphs with Graphviz ``dot`` run as a subprocess.

    ``dot`` is a layered (Sugiyama) solver, so only the ``layered``
    algorithm family is accepted.
    """

    def __init__(self, executable: str = "dot") -> None:
        self.executable = executable

    def to_dot(self, request: SolverRequest) -> str:
        """Render *request* as a DOT document."""
        opts = request.options
        algorithm = opts.get("algorithm", "layered")
        if algorithm != "layered":
            raise LayoutSolverError(f"Graphviz cannot run layout algorithm '{algorithm}'.")
        direction = opts.get("direction", "RIGHT").upper()
        routing = opts.get("edgeRouting", "ORTHOGONAL").upper()
        if direction not in _RANKDIR:
            raise LayoutSolverError(f"Unsupported layout direction '{direction}'.")
        if routing not in _SPLINES:
            raise LayoutSolverError(f"Unsupported edge routing '{routing}'.")

        graph_attrs = [
            f"rankdir={_RANKDIR[direction]}",
            f"splines={_SPLINES[routing]}",
            f"nodesep={_inches(opts.get('spacing.nodeNode', '32'))}",
            f"ranksep={_inches(opts.get('spacing.nodeNodeBetweenLayers', '68'))}",
            f"pad={_inches(opts.get('padding', '24'))}",
        ]
        lines = [
            "digraph layout {",
            f"  graph [{', '.join(graph_attrs)}];",
            '  node [shape=box, fixedsize=true, label=""];',
        ]
        for node in request.nodes:
            lines.append(
                f"  {_quote(node.id)} [width={node.width / _POINTS_PER_INCH:.4f}, "
                f"height={node.height / _POINTS_PER_INCH:.4f}];"
            )
        for edge in request.edges:
            lines.append(f"  {_quote(edge.source)} -> {_quote(edge.target)} [id={_quote(edge.id)}];")
        lines.append("}")
        return "\n".join(lines) + "\n"

    def parse(self, output: str, request: SolverRequest) -> SolverResponse:
        """Convert ``dot -Tjson`` output to top-left, y-down positions."""
        try:
            data = json.loads(output)
        except json.JSONDecodeError as exc:
            raise LayoutSolverError(f"Graphviz returned invalid JSON: {exc}") from exc

        sizes = {n.id: (n.width, n.height) for n in request.nodes}
        try:
            bb_height = float(data["bb"].split(",")[3])
            positions: dict[str, tuple[float, float]] = {}
            for obj in data.get("objects", []):
                name = obj.get("name")
                if name not in sizes or "pos" not in obj:
                    continue
                cx, cy = (float(v) for v in obj["pos"].split(","))
                width, height = sizes[name]
                positions[name] = (cx - width / 2, bb_height - cy - height / 2)
        except (KeyError, IndexError, ValueError, AttributeError) as exc:
            raise LayoutSolverError(f"Malformed Graphviz output: {exc}") from exc
        return SolverResponse(positions=positions)

    async def layout(self, request: SolverRequest) -> SolverResponse:
        dot = self.to_dot(request)
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable, "-Tjson",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise LayoutSolverError(
                f"Cannot start Graphviz executable '{self.executable}': {exc}"
            ) from exc

        try:
            stdout, stderr = await process.communicate(dot.encode("utf-8"))
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await asyncio.shield(process.wait())
            raise

        if process.returncode != 0:
            error_msg = stderr.decode("utf-8", errors="replace").strip() if stderr else "unknown error"
            raise LayoutSolverError(
                f"Graphviz exited with code {process.returncode}: {error_msg}"
            )
        return self.parse(stdout.decode("utf-8", errors="replace"), request)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------

def normalize_positions(
    response: SolverResponse,
    clean: CleanGraph,
    config: LayoutEngineConfig,
) -> dict[str, tuple[float, float]]:
    """Shift solver positions so the minimum lands on the configured padding.

    Raises:
        LayoutSolverError: if the response is empty, misses a node, or
            carries non-finite coordinates.
    """
    if not response.positions:
        raise LayoutSolverError("Solver returned no node positions.")

    missing = [node_id for node_id in clean.index if node_id not in response.positions]
    if missing:
        raise LayoutSolverError(f"Solver omitted {len(missing)} node(s): {', '.join(missing)}")

    raw: dict[str, tuple[float, float]] = {}
    for node_id in clean.index:
        try:
            x, y = response.positions[node_id]
            x, y = float(x), float(y)
        except (TypeError, ValueError) as exc:
            raise LayoutSolverError(
                f"Solver returned a malformed position for '{node_id}': {exc}"
            ) from exc
        if not (math.isfinite(x) and math.isfinite(y)):
            raise LayoutSolverError(f"Solver returned a non-finite position for '{node_id}'.")
        raw[node_id] = (x, y)

    min_x = min(x for x, _ in raw.values())
    min_y = min(y for _, y in raw.values())
    return {
        node_id: (
            round(config.padding_x + (x - min_x)),
            round(config.padding_y + (y - min_y)),
        )
        for node_id, (x, y) in raw.items()
    }


async def try_external_layout(
    graph: Graph,
    solver: LayoutSolver,
    config: Optional[LayoutEngineConfig] = None,
) -> Graph:
    """Lay out *graph* with *solver*, bounded by ``config.solver_timeout``.

    Returns a new graph with solver positions and the filtered edge list.
    An empty graph is returned unchanged without calling the solver.

    Raises:
        LayoutSolverError: on any solver failure, timeout or bad response.
    """
    if not graph.nodes:
        return graph
    cfg = config or LayoutEngineConfig()
    clean = prepare(graph)
    request = SolverRequest.from_clean(clean, cfg)

    try:
        response = await asyncio.wait_for(solver.layout(request), timeout=cfg.solver_timeout)
    except LayoutSolverError:
        raise
    except asyncio.TimeoutError as exc:
        raise LayoutSolverError(
            f"Solver timed out after {cfg.solver_timeout} seconds."
        ) from exc
    except Exception as exc:
        raise LayoutSolverError(f"Solver failed: {exc}") from exc

    if not isinstance(response, SolverResponse) or not isinstance(response.positions, dict):
        raise LayoutSolverError(
            f"Solver returned {type(response).__name__} instead of a SolverResponse."
        )
    positions = normalize_positions(response, clean, cfg)
    logger.debug("Solver placed %d node(s)", len(positions))
    return graph.with_positions(positions, edges=clean.edges)
