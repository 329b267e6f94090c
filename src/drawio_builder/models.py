"""
Core data model for the draw.io cell store.

A diagram is a flat mapping of cells (vertices and edges) plus an ordered
list of layers.  Groups are vertices that own a list of child ids; layers
are independent of containment.  Operations on the store never raise for
domain failures: they hand back a :class:`StructuredError` instead of the
success value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union


ROOT_ID = "0"
DEFAULT_LAYER_ID = "1"
DEFAULT_LAYER_NAME = "Default Layer"

FIRST_CELL_NUMBER = 2
FIRST_LAYER_NUMBER = 2


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------

@dataclass
class Cell:
    """Fields shared by vertices and edges."""
    id: str
    value: str = ""
    style: str = ""
    parent: str = DEFAULT_LAYER_ID

    kind: ClassVar[str] = "cell"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.kind,
            "value": self.value,
            "style": self.style,
            "parent": self.parent,
        }


@dataclass
class Vertex(Cell):
    """A positioned shape.  ``is_group`` marks it as a container."""
    x: float = 0
    y: float = 0
    width: float = 200
    height: float = 100
    is_group: bool = False
    children: list[str] = field(default_factory=list)

    kind: ClassVar[str] = "vertex"

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data.update(x=self.x, y=self.y, width=self.width, height=self.height)
        if self.is_group:
            data["is_group"] = True
            data["children"] = list(self.children)
        return data


@dataclass
class Edge(Cell):
    """A connector.  Endpoints are only ``None`` for imported edges."""
    source_id: Optional[str] = None
    target_id: Optional[str] = None

    kind: ClassVar[str] = "edge"

    def references(self, cell_id: str) -> bool:
        return self.source_id == cell_id or self.target_id == cell_id

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["source_id"] = self.source_id
        data["target_id"] = self.target_id
        return data


@dataclass
class Layer:
    id: str
    name: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class StructuredError:
    """Machine-readable failure returned in place of a success value."""
    code: str
    message: str
    cell_id: Optional[str] = None
    index: Optional[int] = None
    suggestion: Optional[str] = None
    details: Optional[list[dict[str, Any]]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "message": self.message}
        for key in ("cell_id", "index", "suggestion", "details"):
            val = getattr(self, key)
            if val is not None:
                data[key] = val
        return data


@dataclass
class BatchItemResult:
    """Outcome of one entry of a batch operation."""
    success: bool
    cell: Optional[Cell] = None
    error: Optional[StructuredError] = None
    temp_id: Optional[str] = None
    cell_id: Optional[str] = None
    group_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.cell is not None:
            data["cell"] = self.cell.to_dict()
        if self.error is not None:
            data["error"] = self.error.to_dict()
        for key in ("temp_id", "cell_id", "group_id"):
            val = getattr(self, key)
            if val is not None:
                data[key] = val
        return data


@dataclass
class DeleteResult:
    deleted: bool
    cascaded_edge_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"deleted": self.deleted, "cascaded_edge_ids": list(self.cascaded_edge_ids)}


@dataclass
class ImportSummary:
    pages: int
    cells: int
    layers: int

    def to_dict(self) -> dict[str, int]:
        return {"pages": self.pages, "cells": self.cells, "layers": self.layers}


VertexResult = Union[Vertex, StructuredError]
EdgeResult = Union[Edge, StructuredError]


# ---------------------------------------------------------------------------
# Model state
# ---------------------------------------------------------------------------

def _default_layers() -> list[Layer]:
    return [Layer(DEFAULT_LAYER_ID, DEFAULT_LAYER_NAME)]


@dataclass
class ModelState:
    """Everything a diagram owns.  Replaced wholesale by clear and import."""
    cells: dict[str, Cell] = field(default_factory=dict)
    layers: list[Layer] = field(default_factory=_default_layers)
    active_layer_id: str = DEFAULT_LAYER_ID
    next_cell_number: int = FIRST_CELL_NUMBER
    next_layer_number: int = FIRST_LAYER_NUMBER
    # placeholder id -> style the caller asked for; kept in memory only
    deferred_styles: dict[str, str] = field(default_factory=dict)

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    def allocate_cell_id(self) -> str:
        cid = f"cell-{self.next_cell_number}"
        self.next_cell_number += 1
        return cid

    def allocate_layer_id(self) -> str:
        """Next ``layer-N`` id, skipping any id an import already brought in."""
        taken = {layer.id for layer in self.layers}
        while True:
            lid = f"layer-{self.next_layer_number}"
            self.next_layer_number += 1
            if lid not in taken and lid not in self.cells:
                return lid

    def vertices(self) -> list[Vertex]:
        return [c for c in self.cells.values() if isinstance(c, Vertex)]

    def edges(self) -> list[Edge]:
        return [c for c in self.cells.values() if isinstance(c, Edge)]
