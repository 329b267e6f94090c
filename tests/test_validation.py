"""Tests for input validation of tool parameters."""

import pytest

from drawio_builder.validation import (
    ValidationError,
    validate_action,
    validate_bool,
    validate_cell_item,
    validate_cell_type,
    validate_cell_update,
    validate_edge_update,
    validate_enum,
    validate_file_path,
    validate_group_item,
    validate_group_assignment,
    validate_int,
    validate_items,
    validate_list,
    validate_non_empty_string,
    validate_number,
    validate_shape_item,
    _DRAW_ACTIONS,
)


class TestValidateNonEmptyString:
    def test_valid(self) -> None:
        assert validate_non_empty_string("  hi ", "f") == "hi"

    def test_empty(self) -> None:
        with pytest.raises(ValidationError, match="non-empty"):
            validate_non_empty_string("   ", "f")

    def test_wrong_type(self) -> None:
        with pytest.raises(ValidationError, match="non-empty"):
            validate_non_empty_string(None, "f")


class TestValidateNumber:
    def test_valid(self) -> None:
        assert validate_number(3, "n") == 3.0

    def test_bool_is_not_a_number(self) -> None:
        with pytest.raises(ValidationError, match="number"):
            validate_number(True, "n")

    def test_range(self) -> None:
        with pytest.raises(ValidationError, match=">="):
            validate_number(-1, "n", min_val=0)
        with pytest.raises(ValidationError, match="<="):
            validate_number(11, "n", max_val=10)


class TestValidateInt:
    def test_float_rejected(self) -> None:
        with pytest.raises(ValidationError, match="integer"):
            validate_int(1.5, "i")

    def test_range(self) -> None:
        assert validate_int(5, "i", min_val=1, max_val=5) == 5
        with pytest.raises(ValidationError, match="<="):
            validate_int(501, "i", max_val=500)


def test_validate_bool() -> None:
    assert validate_bool(False, "b") is False
    with pytest.raises(ValidationError, match="boolean"):
        validate_bool("yes", "b")


def test_validate_enum() -> None:
    assert validate_enum("edge", "t", {"VERTEX", "EDGE"}) == "EDGE"
    with pytest.raises(ValidationError, match="must be one of"):
        validate_enum("node", "t", {"VERTEX", "EDGE"})


def test_validate_list() -> None:
    with pytest.raises(ValidationError, match="at least 1"):
        validate_list([], "l", min_length=1)
    with pytest.raises(ValidationError, match="list"):
        validate_list("abc", "l")


def test_validate_file_path() -> None:
    assert validate_file_path(" out.drawio ", "file_path") == "out.drawio"
    with pytest.raises(ValidationError, match="file path"):
        validate_file_path("", "file_path")


class TestValidateAction:
    def test_normalized(self) -> None:
        assert validate_action(" Add_Cells ", "draw", _DRAW_ACTIONS) == "add_cells"

    def test_unknown(self) -> None:
        with pytest.raises(ValidationError, match="Unknown draw action"):
            validate_action("explode", "draw", _DRAW_ACTIONS)

    def test_missing(self) -> None:
        with pytest.raises(ValidationError, match="requires"):
            validate_action("", "draw", _DRAW_ACTIONS)


def test_validate_cell_type() -> None:
    assert validate_cell_type("Vertex") == "vertex"
    with pytest.raises(ValidationError):
        validate_cell_type("group")


class TestItemValidators:
    def test_cell_item(self) -> None:
        validate_cell_item({"type": "EDGE", "source_id": "a", "target_id": "b"}, 0)
        validate_cell_item({}, 0)

    def test_cell_item_bad_type(self) -> None:
        with pytest.raises(ValidationError, match="index 2: 'type'"):
            validate_cell_item({"type": "node"}, 2)

    def test_cell_item_bad_geometry(self) -> None:
        with pytest.raises(ValidationError, match="'width' must be > 0"):
            validate_cell_item({"width": 0}, 0)
        with pytest.raises(ValidationError, match="'x' must be a number"):
            validate_cell_item({"x": "10"}, 0)

    def test_shape_item_requires_name(self) -> None:
        with pytest.raises(ValidationError, match="missing required key 'shape_name'"):
            validate_shape_item({"x": 1}, 0)

    def test_edge_update_requires_id(self) -> None:
        with pytest.raises(ValidationError, match="'cell_id' must be a non-empty string"):
            validate_edge_update({"cell_id": ""}, 0)

    def test_group_assignment(self) -> None:
        validate_group_assignment({"cell_id": "a", "group_id": "g"}, 0)
        with pytest.raises(ValidationError, match="group_id"):
            validate_group_assignment({"cell_id": "a"}, 0)

    def test_items_requires_entries(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            validate_items([], "cells", validate_cell_item)
        with pytest.raises(ValidationError, match="list"):
            validate_items(None, "cells", validate_cell_item)

    def test_not_a_dict(self) -> None:
        with pytest.raises(ValidationError, match="dict"):
            validate_items(["x"], "cells", validate_cell_item)

    def test_geometry_uses_number_rules(self) -> None:
        with pytest.raises(ValidationError, match="Group at index 1: 'y' must be a number, got bool"):
            validate_group_item({"y": True}, 1)
        with pytest.raises(ValidationError, match="Update at index 0: 'height' must be > 0"):
            validate_cell_update({"cell_id": "a", "height": -3.5}, 0)
