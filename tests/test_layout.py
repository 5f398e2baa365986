"""Tests for placement and collision helpers."""

from arch_layout.layout import (
    PlacedNode,
    find_overlapping_nodes,
    get_all_node_bounds,
    place_layers,
    resolve_collisions,
)
from arch_layout.models import Graph, Node


def test_place_layers_columns_and_rows() -> None:
    placed = place_layers({0: ["a"], 1: ["b", "c"]}, column_gap=150, row_gap=100)
    by_id = {p.id: (p.x, p.y) for p in placed}
    assert by_id == {"a": (36, 36), "b": (186, 36), "c": (186, 136)}


def test_place_layers_order_is_depth_then_rank() -> None:
    placed = place_layers({2: ["z"], 0: ["a", "b"]}, column_gap=100, row_gap=100)
    assert [p.id for p in placed] == ["a", "b", "z"]


def test_place_layers_custom_padding() -> None:
    placed = place_layers({0: ["a"]}, 100, 100, padding_x=0, padding_y=5)
    assert (placed[0].x, placed[0].y) == (0, 5)


class TestResolveCollisions:
    def test_pushes_second_node_on_tie(self) -> None:
        placed = [PlacedNode("a", 0, 0), PlacedNode("b", 0, 0)]
        resolved = resolve_collisions(placed)
        assert (resolved[0].y, resolved[1].y) == (0, 94)

    def test_pushes_lower_node(self) -> None:
        placed = [PlacedNode("a", 0, 50), PlacedNode("b", 0, 0)]
        resolved = resolve_collisions(placed)
        assert resolved[0].y == 144
        assert resolved[1].y == 0

    def test_chain_of_three(self) -> None:
        placed = [PlacedNode("a", 0, 0), PlacedNode("b", 0, 0), PlacedNode("c", 0, 0)]
        resolved = resolve_collisions(placed)
        assert [p.y for p in resolved] == [0, 94, 188]

    def test_x_never_changes(self) -> None:
        placed = [PlacedNode("a", 10, 0), PlacedNode("b", 20, 0)]
        resolved = resolve_collisions(placed)
        assert [p.x for p in resolved] == [10, 20]

    def test_separate_columns_untouched(self) -> None:
        placed = [PlacedNode("a", 0, 0), PlacedNode("b", 130, 0)]
        resolved = resolve_collisions(placed)
        assert [p.y for p in resolved] == [0, 0]

    def test_input_not_mutated(self) -> None:
        placed = [PlacedNode("a", 0, 0), PlacedNode("b", 0, 0)]
        resolve_collisions(placed)
        assert placed[1].y == 0

    def test_zero_passes_is_identity(self) -> None:
        placed = [PlacedNode("a", 0, 0), PlacedNode("b", 0, 0)]
        resolved = resolve_collisions(placed, passes=0)
        assert [p.y for p in resolved] == [0, 0]


def test_find_overlapping_nodes() -> None:
    g = Graph(nodes=[
        Node("a", x=0, y=0),
        Node("b", x=50, y=30),
        Node("c", x=500, y=0),
    ])
    assert find_overlapping_nodes(g) == [("a", "b")]
    assert find_overlapping_nodes(g, width=10, height=10) == []


def test_get_all_node_bounds() -> None:
    g = Graph(nodes=[Node("a", x=5, y=6)])
    bounds = get_all_node_bounds(g, 112, 76)
    assert bounds["a"].right == 117
    assert bounds["a"].bottom == 82
