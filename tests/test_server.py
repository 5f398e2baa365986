"""Tests for the MCP server tools (2-tool architecture)."""

import asyncio
import json

import pytest

from arch_layout import server
from arch_layout.server import category_catalog, config_defaults, inspect, layout

from fakes import FakeSolver


NODES = [
    {"id": "client", "label": "Browser", "category": "ingress"},
    {"id": "gateway", "label": "Gateway", "category": "routing"},
    {"id": "svc_a", "label": "Orders", "category": "compute"},
    {"id": "svc_b", "label": "Billing", "category": "compute"},
    {"id": "db", "label": "Postgres", "category": "storage", "annotations": {"engine": "pg"}},
]
EDGES = [
    {"id": "e1", "source": "client", "target": "gateway"},
    {"id": "e2", "source": "gateway", "target": "svc_a"},
    {"id": "e3", "source": "gateway", "target": "svc_b"},
    {"id": "e4", "source": "svc_a", "target": "db"},
    {"id": "e5", "source": "svc_b", "target": "db", "label": "writes"},
]


@pytest.fixture
def fake_solver(monkeypatch):
    def install(solver):
        monkeypatch.setattr(server, "_solver", solver)
        return solver
    return install


def _run(**kwargs) -> str:
    return asyncio.run(layout(**kwargs))


# ===================================================================
# layout tool
# ===================================================================

class TestLayoutTool:
    def test_tidy(self) -> None:
        data = json.loads(_run(action="tidy", nodes=NODES, edges=EDGES))
        pos = {n["id"]: (n["x"], n["y"]) for n in data["nodes"]}
        assert pos["client"] == (36, 36)
        assert pos["svc_a"][0] == pos["svc_b"][0]
        assert data["dropped_edges"] == []
        assert data["edges"][4]["label"] == "writes"
        assert data["nodes"][4]["annotations"] == {"engine": "pg"}

    def test_action_case_insensitive(self) -> None:
        assert not _run(action="  TIDY ", nodes=NODES, edges=EDGES).startswith("Error")

    def test_auto_uses_solver(self, fake_solver) -> None:
        positions = {n["id"]: (i * 100.0, 0.0) for i, n in enumerate(NODES)}
        fake_solver(FakeSolver(positions))
        data = json.loads(_run(action="auto", nodes=NODES, edges=EDGES))
        xs = [n["x"] for n in data["nodes"]]
        assert xs == [36, 136, 236, 336, 436]

    def test_auto_falls_back(self, fake_solver) -> None:
        fake_solver(FakeSolver(error=RuntimeError("dot crashed")))
        auto = json.loads(_run(action="auto", nodes=NODES, edges=EDGES))
        tidy = json.loads(_run(action="tidy", nodes=NODES, edges=EDGES))
        assert auto == tidy

    def test_auto_passes_solver_options(self, fake_solver) -> None:
        solver = fake_solver(FakeSolver({"a": (0, 0)}))
        _run(action="auto", nodes=[{"id": "a"}], edges=[],
             direction="down", edge_routing="polyline", node_width=200)
        request = solver.requests[0]
        assert request.options["direction"] == "DOWN"
        assert request.options["edgeRouting"] == "POLYLINE"
        assert request.nodes[0].width == 200

    def test_dangling_edge_reported(self) -> None:
        edges = EDGES + [{"id": "bad", "source": "db", "target": "nowhere"}]
        data = json.loads(_run(action="tidy", nodes=NODES, edges=edges))
        assert data["dropped_edges"] == ["bad"]
        assert len(data["edges"]) == 5

    def test_depths(self) -> None:
        data = json.loads(_run(action="depths", nodes=NODES, edges=EDGES))
        assert data["depths"] == {"client": 0, "gateway": 1, "svc_a": 2, "svc_b": 2, "db": 3}
        assert data["cycle_nodes"] == []

    def test_depths_with_cycle(self) -> None:
        nodes = [{"id": "x"}, {"id": "y"}, {"id": "z"}]
        edges = [
            {"id": "1", "source": "x", "target": "y"},
            {"id": "2", "source": "y", "target": "z"},
            {"id": "3", "source": "z", "target": "x"},
        ]
        data = json.loads(_run(action="depths", nodes=nodes, edges=edges))
        assert data["cycle_nodes"] == ["x", "y", "z"]
        assert set(data["depths"]) == {"x", "y", "z"}

    def test_layers(self) -> None:
        data = json.loads(_run(action="layers", nodes=NODES, edges=EDGES))
        assert data["layers"] == {
            "0": ["client"], "1": ["gateway"], "2": ["svc_a", "svc_b"], "3": ["db"],
        }

    def test_empty_graph(self) -> None:
        data = json.loads(_run(action="tidy"))
        assert data == {"nodes": [], "edges": [], "dropped_edges": []}

    def test_unknown_action(self) -> None:
        result = _run(action="spring", nodes=NODES, edges=EDGES)
        assert result.startswith("Error:")
        assert "auto" in result

    def test_duplicate_node_id(self) -> None:
        result = _run(action="tidy", nodes=[{"id": "a"}, {"id": "a"}], edges=[])
        assert result.startswith("Error:")
        assert "duplicate" in result

    def test_bad_edge(self) -> None:
        result = _run(action="tidy", nodes=NODES, edges=[{"id": "e", "source": "client"}])
        assert "missing required key 'target'" in result

    def test_bad_spacing(self) -> None:
        result = _run(action="tidy", nodes=NODES, edges=EDGES, node_width=0)
        assert result.startswith("Error:")
        assert "node_width" in result

    def test_bad_direction(self) -> None:
        result = _run(action="auto", nodes=NODES, edges=EDGES, direction="SIDEWAYS")
        assert "direction" in result


# ===================================================================
# inspect tool
# ===================================================================

class TestInspectTool:
    def test_overlaps(self) -> None:
        nodes = [
            {"id": "a", "x": 0, "y": 0},
            {"id": "b", "x": 20, "y": 20},
            {"id": "c", "x": 900, "y": 0},
        ]
        assert json.loads(inspect(action="overlaps", nodes=nodes)) == [["a", "b"]]

    def test_overlaps_after_layout_is_empty(self) -> None:
        data = json.loads(_run(action="tidy", nodes=NODES, edges=EDGES))
        assert json.loads(inspect(action="overlaps", nodes=data["nodes"])) == []

    def test_lanes(self) -> None:
        data = json.loads(inspect(action="lanes", nodes=NODES))
        assert data == {
            "client": "INGRESS",
            "gateway": "INGRESS",
            "svc_a": "COMPUTE",
            "svc_b": "COMPUTE",
            "db": "STORAGE",
        }

    def test_summary(self) -> None:
        edges = EDGES + [
            {"id": "loop", "source": "db", "target": "db"},
            {"id": "back", "source": "db", "target": "svc_a"},
        ]
        data = json.loads(inspect(action="summary", nodes=NODES, edges=edges))
        assert data["nodes"] == 5
        assert data["edges"] == 6
        assert data["dropped_edges"] == ["loop"]
        assert data["cycle_nodes"] == ["svc_a", "db"]

    def test_unknown_action(self) -> None:
        assert inspect(action="cells").startswith("Error:")

    def test_negative_margin(self) -> None:
        assert "margin" in inspect(action="overlaps", nodes=NODES, margin=-1)


# ===================================================================
# resources
# ===================================================================

def test_category_catalog() -> None:
    text = category_catalog()
    assert "database: STORAGE" in text
    assert "loadBalancer: INGRESS" in text
    assert "CLIENT=0" in text


def test_config_defaults() -> None:
    data = json.loads(config_defaults())
    assert data["node_width"] == 112
    assert data["crossing_passes"] == 4
    assert data["solver_timeout"] == 10.0
