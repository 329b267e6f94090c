"""
Input validation for drawio-builder MCP tool parameters.

Provides reusable validators that produce clear error messages for all
parameters received from LLM callers.  Validators raise
:class:`ValidationError`; the tools catch it and report ``INVALID_INPUT``.
"""

from __future__ import annotations

from typing import Any


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

def validate_non_empty_string(value: Any, field_name: str) -> str:
    """Ensure *value* is a non-empty string after stripping whitespace."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty string.")
    return value.strip()


def validate_number(
    value: Any,
    field_name: str,
    *,
    min_val: float | None = None,
    max_val: float | None = None,
) -> float:
    """Validate a numeric value and optional range."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
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


def validate_bool(value: Any, field_name: str) -> bool:
    """Ensure *value* is a boolean."""
    if not isinstance(value, bool):
        raise ValidationError(
            f"'{field_name}' must be a boolean, got {type(value).__name__}."
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


def validate_file_path(value: Any, field_name: str) -> str:
    """Validate that a file path is a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{field_name}' must be a non-empty file path string.")
    return value.strip()


# ---------------------------------------------------------------------------
# Tool actions
# ---------------------------------------------------------------------------

_DIAGRAM_ACTIONS = {
    "CREATE", "IMPORT_XML", "GET_XML", "CLEAR", "STATS",
    "LIST", "SAVE", "LOAD", "FINISH",
}
_DRAW_ACTIONS = {
    "ADD_CELLS", "ADD_SHAPES", "SET_SHAPE", "EDIT_CELLS",
    "EDIT_EDGES", "DELETE_CELLS", "DELETE_EDGE",
}
_GROUP_ACTIONS = {"CREATE", "ADD_CELLS", "REMOVE_CELL", "LIST_CHILDREN"}
_LAYER_ACTIONS = {"CREATE", "LIST", "GET_ACTIVE", "SET_ACTIVE", "MOVE_CELL"}
_INSPECT_ACTIONS = {"CELLS", "CELL", "SHAPES", "SHAPE", "PRESETS"}

_CELL_TYPES = {"VERTEX", "EDGE"}


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


def validate_cell_type(value: Any) -> str:
    """Validate a cell type filter ('vertex' or 'edge')."""
    return validate_enum(value, "cell_type", _CELL_TYPES).lower()


# ---------------------------------------------------------------------------
# Item dict validators
# ---------------------------------------------------------------------------

def _check_optional(item: dict, label: str, index: int, key: str, kind: type | tuple, noun: str) -> None:
    if key in item and item[key] is not None:
        val = item[key]
        if not isinstance(val, kind) or isinstance(val, bool):
            raise ValidationError(f"{label} at index {index}: '{key}' must be {noun}.")


def _check_geometry(item: dict, label: str, index: int) -> None:
    for key in ("x", "y", "width", "height"):
        if item.get(key) is None:
            continue
        try:
            value = validate_number(item[key], key)
        except ValidationError as exc:
            raise ValidationError(f"{label} at index {index}: {exc.message}") from None
        if key in ("width", "height") and value <= 0:
            raise ValidationError(f"{label} at index {index}: '{key}' must be > 0.")


def _check_required_id(item: dict, label: str, index: int, key: str) -> None:
    if key not in item:
        raise ValidationError(f"{label} at index {index} missing required key '{key}'.")
    if not isinstance(item[key], str) or not item[key].strip():
        raise ValidationError(f"{label} at index {index}: '{key}' must be a non-empty string.")


def validate_cell_item(item: Any, index: int) -> None:
    """Validate one entry of a draw(action='add_cells') batch."""
    if not isinstance(item, dict):
        raise ValidationError(f"Cell at index {index} must be a dict/object.")
    cell_type = item.get("type", "vertex")
    if not isinstance(cell_type, str) or cell_type.lower() not in {"vertex", "edge"}:
        raise ValidationError(f"Cell at index {index}: 'type' must be 'vertex' or 'edge'.")
    _check_geometry(item, "Cell", index)
    for key in ("text", "style", "temp_id", "source_id", "target_id"):
        _check_optional(item, "Cell", index, key, str, "a string")


def validate_shape_item(item: Any, index: int) -> None:
    """Validate one entry of a draw(action='add_shapes') batch."""
    if not isinstance(item, dict):
        raise ValidationError(f"Shape at index {index} must be a dict/object.")
    _check_required_id(item, "Shape", index, "shape_name")
    _check_geometry(item, "Shape", index)
    for key in ("text", "style", "temp_id"):
        _check_optional(item, "Shape", index, key, str, "a string")


def validate_shape_assignment(item: Any, index: int) -> None:
    """Validate one entry of a draw(action='set_shape') batch."""
    if not isinstance(item, dict):
        raise ValidationError(f"Assignment at index {index} must be a dict/object.")
    _check_required_id(item, "Assignment", index, "cell_id")
    _check_required_id(item, "Assignment", index, "shape_name")


def validate_cell_update(item: Any, index: int) -> None:
    """Validate one vertex update dict."""
    if not isinstance(item, dict):
        raise ValidationError(f"Update at index {index} must be a dict/object.")
    _check_required_id(item, "Update", index, "cell_id")
    _check_geometry(item, "Update", index)
    for key in ("text", "style"):
        _check_optional(item, "Update", index, key, str, "a string")


def validate_edge_update(item: Any, index: int) -> None:
    """Validate one edge update dict."""
    if not isinstance(item, dict):
        raise ValidationError(f"Update at index {index} must be a dict/object.")
    _check_required_id(item, "Update", index, "cell_id")
    for key in ("text", "style", "source_id", "target_id"):
        _check_optional(item, "Update", index, key, str, "a string")


def validate_group_item(item: Any, index: int) -> None:
    """Validate one group definition for group(action='create')."""
    if not isinstance(item, dict):
        raise ValidationError(f"Group at index {index} must be a dict/object.")
    _check_geometry(item, "Group", index)
    for key in ("text", "style", "temp_id"):
        _check_optional(item, "Group", index, key, str, "a string")


def validate_group_assignment(item: Any, index: int) -> None:
    """Validate one {cell_id, group_id} pair."""
    if not isinstance(item, dict):
        raise ValidationError(f"Assignment at index {index} must be a dict/object.")
    _check_required_id(item, "Assignment", index, "cell_id")
    _check_required_id(item, "Assignment", index, "group_id")


def validate_items(value: Any, field_name: str, item_validator: Any) -> list:
    """Validate a non-empty list and run *item_validator* on each entry."""
    items = validate_list(value, field_name, min_length=1)
    for i, item in enumerate(items):
        item_validator(item, i)
    return items
