"""Tests for the cell store data classes."""

from drawio_builder.models import (
    DEFAULT_LAYER_ID,
    BatchItemResult,
    DeleteResult,
    Edge,
    Layer,
    ModelState,
    StructuredError,
    Vertex,
)


def test_vertex_defaults_and_dict() -> None:
    v = Vertex(id="cell-2", value="Hub")
    assert v.parent == DEFAULT_LAYER_ID
    assert (v.width, v.height) == (200, 100)
    data = v.to_dict()
    assert data["type"] == "vertex"
    assert data["value"] == "Hub"
    assert "children" not in data


def test_group_dict_lists_children() -> None:
    g = Vertex(id="cell-3", is_group=True, children=["cell-4"])
    data = g.to_dict()
    assert data["is_group"] is True
    assert data["children"] == ["cell-4"]


def test_vertex_edges_of_bounds() -> None:
    v = Vertex(id="a", x=10, y=20, width=30, height=40)
    assert v.right == 40
    assert v.bottom == 60


def test_edge_references() -> None:
    e = Edge(id="cell-4", source_id="cell-2", target_id="cell-3")
    assert e.references("cell-2")
    assert e.references("cell-3")
    assert not e.references("cell-5")
    assert e.to_dict()["type"] == "edge"


def test_structured_error_omits_unset_fields() -> None:
    err = StructuredError(code="CELL_NOT_FOUND", message="Cell 'x' not found", cell_id="x")
    assert err.to_dict() == {"code": "CELL_NOT_FOUND", "message": "Cell 'x' not found", "cell_id": "x"}


def test_batch_item_result_dict() -> None:
    ok = BatchItemResult(True, cell=Vertex(id="cell-2"), temp_id="a").to_dict()
    assert ok["success"] is True
    assert ok["cell"]["id"] == "cell-2"
    assert ok["temp_id"] == "a"
    assert "error" not in ok

    failed = BatchItemResult(False, error=StructuredError("X", "boom"), cell_id="c").to_dict()
    assert failed["success"] is False
    assert failed["error"]["code"] == "X"
    assert "cell" not in failed


def test_delete_result_dict() -> None:
    assert DeleteResult(deleted=False).to_dict() == {"deleted": False, "cascaded_edge_ids": []}


class TestModelState:
    def test_fresh_state(self) -> None:
        state = ModelState()
        assert state.cells == {}
        assert state.layers == [Layer("1", "Default Layer")]
        assert state.active_layer_id == "1"

    def test_cell_ids_are_sequential(self) -> None:
        state = ModelState()
        assert state.allocate_cell_id() == "cell-2"
        assert state.allocate_cell_id() == "cell-3"

    def test_layer_ids_skip_taken_ids(self) -> None:
        state = ModelState()
        state.layers.append(Layer("layer-2", "Imported"))
        assert state.allocate_layer_id() == "layer-3"

    def test_vertices_and_edges(self) -> None:
        state = ModelState()
        state.cells["a"] = Vertex(id="a")
        state.cells["b"] = Edge(id="b")
        assert [c.id for c in state.vertices()] == ["a"]
        assert [c.id for c in state.edges()] == ["b"]
