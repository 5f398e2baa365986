"""
Input validation for architecture layout MCP tool parameters.

Provides reusable validators that produce clear error messages for all
parameters received from LLM callers, and ``parse_graph`` which turns
validated node/edge dicts into a :class:`Graph`.

Structural problems (wrong types, missing ids, duplicate node ids) are
validation errors. Edges pointing at unknown nodes or at their own
source are *not*: the layout engine drops those silently.
"""

from __future__ import annotations

from typing import Any

from arch_layout.models import Edge, Graph, Node


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationError(Exception):
    """Raised when input validation fails."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Primitive validators
# ---------------------------------------------------------------------------

def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """Validate a numeric value and optional range."""
    if not isinstance(value, (int, float)):
        raise ValidationError(
            f"'{field_name}' must be a number, got {type(value).__name__}."
        )
    val = float(value)
    if min_val is not None and val < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {val}."
        )
    if max_val is not None and val > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {val}."
        )
    return val


def validate_int(
    value: Any,
    field_name: str,
    *,
    min_val: int | None = None,
    max_val: int | None = None,
) -> int:
    """Validate an integer value and optional range."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be an integer, got {type(value).__name__}."
        )
    if min_val is not None and value < min_val:
        raise ValidationError(
            f"'{field_name}' must be >= {min_val}, got {value}."
        )
    if max_val is not None and value > max_val:
        raise ValidationError(
            f"'{field_name}' must be <= {max_val}, got {value}."
        )
    return value


def validate_enum(value: Any, field_name: str, allowed: set[str]) -> str:
    """Validate that a string value is one of the allowed choices (case-insensitive)."""
    if not isinstance(value, str):
        raise ValidationError(
            f"'{field_name}' must be a string, got {type(value).__name__}."
        )
    normalized = value.strip().upper()
    if normalized not in {a.upper() for a in allowed}:
        choices = ", ".join(sorted(allowed))
        raise ValidationError(
            f"'{field_name}' must be one of [{choices}], got '{value}'."
        )
    return normalized


def validate_list(value: Any, field_name: str, *, min_length: int = 0) -> list:
    """Ensure *value* is a list with at least *min_length* items."""
    if not isinstance(value, list):
        raise ValidationError(
            f"'{field_name}' must be a list, got {type(value).__name__}."
        )
    if len(value) < min_length:
        raise ValidationError(
            f"'{field_name}' must have at least {min_length} item(s), got {len(value)}."
        )
    return value


def validate_positive_number(value: Any, field_name: str) -> float:
    """Validate that a number is positive (> 0)."""
    return validate_number(value, field_name, min_val=0.001)


def validate_non_negative_number(value: Any, field_name: str) -> float:
    """Validate that a number is >= 0."""
    return validate_number(value, field_name, min_val=0)


# ---------------------------------------------------------------------------
# Actions / options
# ---------------------------------------------------------------------------

_LAYOUT_ACTIONS = {"AUTO", "TIDY", "DEPTHS", "LAYERS"}
_INSPECT_ACTIONS = {"OVERLAPS", "LANES", "SUMMARY"}

_VALID_DIRECTIONS = {"RIGHT", "DOWN", "LEFT", "UP"}
_VALID_EDGE_ROUTING = {"ORTHOGONAL", "POLYLINE", "SPLINES"}


def validate_action(value: Any, tool_name: str, allowed: set[str]) -> str:
    """Validate the action parameter for a tool."""
    if not isinstance(value, str) or not value.strip():
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"'{tool_name}' requires an 'action' parameter. Valid actions: {choices}."
        )
    normalized = value.strip().upper()
    if normalized not in allowed:
        choices = ", ".join(sorted(a.lower() for a in allowed))
        raise ValidationError(
            f"Unknown {tool_name} action '{value}'. Valid actions: {choices}."
        )
    return value.strip().lower()


def validate_direction(value: Any) -> str:
    """Validate a solver flow direction (RIGHT, DOWN, LEFT, UP)."""
    return validate_enum(value, "direction", _VALID_DIRECTIONS)


def validate_edge_routing(value: Any) -> str:
    """Validate a solver edge routing style."""
    return validate_enum(value, "edge_routing", _VALID_EDGE_ROUTING)


def validate_passes(value: Any) -> int:
    """Validate crossing-minimization pass count (0..50)."""
    return validate_int(value, "passes", min_val=0, max_val=50)


def validate_timeout(value: Any) -> float:
    """Validate solver timeout in seconds (> 0, at most 300)."""
    return validate_number(value, "timeout", min_val=0.001, max_val=300)


# ---------------------------------------------------------------------------
# Node / edge dict validators
# ---------------------------------------------------------------------------

def validate_node_dict(n: Any, index: int) -> None:
    """Validate a single node dict from the nodes list."""
    if not isinstance(n, dict):
        raise ValidationError(f"Node at index {index} must be a dict/object.")
    if "id" not in n:
        raise ValidationError(f"Node at index {index} missing required key 'id'.")
    if not isinstance(n["id"], str) or not n["id"].strip():
        raise ValidationError(f"Node at index {index}: 'id' must be a non-empty string.")
    if "label" in n and not isinstance(n["label"], str):
        raise ValidationError(f"Node at index {index}: 'label' must be a string.")
    if "category" in n and not isinstance(n["category"], str):
        raise ValidationError(f"Node at index {index}: 'category' must be a string.")
    for key in ("x", "y"):
        if key in n and not isinstance(n[key], (int, float)):
            raise ValidationError(f"Node at index {index}: '{key}' must be a number.")
    if "annotations" in n and not isinstance(n["annotations"], dict):
        raise ValidationError(f"Node at index {index}: 'annotations' must be a dict/object.")


def validate_edge_dict(e: Any, index: int) -> None:
    """Validate a single edge dict. Endpoints are not checked against nodes."""
    if not isinstance(e, dict):
        raise ValidationError(f"Edge at index {index} must be a dict/object.")
    for key in ("id", "source", "target"):
        if key not in e:
            raise ValidationError(f"Edge at index {index} missing required key '{key}'.")
        if not isinstance(e[key], str) or not e[key].strip():
            raise ValidationError(f"Edge at index {index}: '{key}' must be a non-empty string.")
    if "label" in e and e["label"] is not None and not isinstance(e["label"], str):
        raise ValidationError(f"Edge at index {index}: 'label' must be a string.")


def parse_graph(nodes: Any, edges: Any) -> Graph:
    """Validate raw node/edge lists and build a :class:`Graph`.

    Raises:
        ValidationError: on structural problems or duplicate node ids.
    """
    validate_list(nodes, "nodes")
    validate_list(edges, "edges")

    seen: set[str] = set()
    for i, n in enumerate(nodes):
        validate_node_dict(n, i)
        if n["id"] in seen:
            raise ValidationError(f"Node at index {i}: duplicate id '{n['id']}'.")
        seen.add(n["id"])
    for i, e in enumerate(edges):
        validate_edge_dict(e, i)

    return Graph(
        nodes=[Node.from_dict(n) for n in nodes],
        edges=[Edge.from_dict(e) for e in edges],
    )
