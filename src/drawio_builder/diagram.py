"""
The cell store: an in-memory draw.io diagram and every operation on it.

``DiagramModel`` owns one :class:`ModelState`.  Mutating operations keep
the store's invariants (edge endpoints exist when set, group child lists
mirror cell parents, the active layer exists) and report domain failures as
:class:`StructuredError` values rather than exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional, Union, cast

from drawio_builder import codec
from drawio_builder.models import (
    BatchItemResult,
    Cell,
    DeleteResult,
    Edge,
    EdgeResult,
    ImportSummary,
    Layer,
    ModelState,
    StructuredError,
    Vertex,
    VertexResult,
)
from drawio_builder.placeholder import ShapeResolver, resolve_placeholders_in_xml, resolved_style
from drawio_builder.styles import DefaultStyle, ResolvedShape

logger = logging.getLogger(__name__)

CellResult = Union[Cell, StructuredError]

_LIST_CELLS_HINT = "Use inspect(action='cells') to see available cells"
_LIST_LAYERS_HINT = "Use layer(action='list') to see available layers"


def _not_found(code: str, what: str, cell_id: str, suggestion: str = _LIST_CELLS_HINT) -> StructuredError:
    return StructuredError(
        code=code,
        message=f"{what} '{cell_id}' not found",
        cell_id=cell_id,
        suggestion=suggestion,
    )


def _size(value: Optional[float], default: float) -> float:
    return max(1, value if value is not None else default)


class DiagramModel:
    """One diagram.  Not safe for concurrent mutation; use one per caller."""

    def __init__(self) -> None:
        self._state = ModelState()

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def active_layer_id(self) -> str:
        return self._state.active_layer_id

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_cell(self, cell_id: str) -> Optional[Cell]:
        return self._state.cells.get(cell_id)

    def list_cells(self, cell_type: Optional[str] = None) -> list[Cell]:
        """All cells, optionally only ``"vertex"`` or ``"edge"`` ones."""
        cells = list(self._state.cells.values())
        if cell_type:
            cells = [c for c in cells if c.kind == cell_type]
        return cells

    def _get_group(self, group_id: str) -> Union[Vertex, StructuredError]:
        group = self._state.cells.get(group_id)
        if group is None:
            return _not_found("GROUP_NOT_FOUND", "Group", group_id)
        if not isinstance(group, Vertex) or not group.is_group:
            return StructuredError(
                code="NOT_A_GROUP",
                message=f"Cell '{group_id}' is not a group/container",
                cell_id=group_id,
                suggestion="Use group(action='create') to create a group first",
            )
        return group

    def _detach_from_group(self, cell: Cell) -> None:
        parent = self._state.cells.get(cell.parent)
        if isinstance(parent, Vertex) and parent.is_group and cell.id in parent.children:
            parent.children.remove(cell.id)

    # ------------------------------------------------------------------
    # Vertices and edges
    # ------------------------------------------------------------------

    def _build_rectangle(
        self,
        cell_id: str,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        text: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Vertex:
        return Vertex(
            id=cell_id,
            value=text if text is not None else "New Cell",
            style=style if style is not None else DefaultStyle.VERTEX,
            parent=self._state.active_layer_id,
            x=x if x is not None else 100,
            y=y if y is not None else 100,
            width=_size(width, 200),
            height=_size(height, 100),
        )

    def add_rectangle(
        self,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        text: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Vertex:
        """Create a vertex on the active layer."""
        vertex = self._build_rectangle(
            self._state.allocate_cell_id(), x, y, width, height, text, style,
        )
        self._state.cells[vertex.id] = vertex
        return vertex

    def insert_vertex(self, vertex: Vertex, deferred_style: Optional[str] = None) -> VertexResult:
        """Store a vertex built elsewhere (e.g. a placeholder) on the active layer.

        ``deferred_style`` is the style a placeholder should end up with once
        :meth:`resolve_placeholders` runs, instead of the resolver's own style.
        """
        if vertex.id in self._state.cells:
            return StructuredError(
                code="DUPLICATE_ID",
                message=f"Cell '{vertex.id}' already exists",
                cell_id=vertex.id,
            )
        vertex.parent = self._state.active_layer_id
        self._state.cells[vertex.id] = vertex
        if deferred_style is not None:
            self._state.deferred_styles[vertex.id] = deferred_style
        return vertex

    def add_edge(
        self,
        source_id: str,
        target_id: str,
        text: Optional[str] = None,
        style: Optional[str] = None,
    ) -> EdgeResult:
        if source_id not in self._state.cells:
            return _not_found("SOURCE_NOT_FOUND", "Source cell", source_id)
        if target_id not in self._state.cells:
            return _not_found("TARGET_NOT_FOUND", "Target cell", target_id)
        edge = Edge(
            id=self._state.allocate_cell_id(),
            value=text if text is not None else "",
            style=style if style is not None else DefaultStyle.EDGE,
            parent=self._state.active_layer_id,
            source_id=source_id,
            target_id=target_id,
        )
        self._state.cells[edge.id] = edge
        return edge

    def delete_cell(self, cell_id: str) -> DeleteResult:
        """Delete a cell.  Deleting a vertex also deletes every edge touching it."""
        cells = self._state.cells
        cell = cells.get(cell_id)
        if cell is None:
            return DeleteResult(deleted=False)

        cascaded: list[str] = []
        if isinstance(cell, Vertex):
            cascaded = [e.id for e in self._state.edges() if e.references(cell_id)]
            for edge_id in cascaded:
                self._detach_from_group(cells[edge_id])
                del cells[edge_id]
            if cell.is_group:
                for child_id in cell.children:
                    child = cells.get(child_id)
                    if child is not None:
                        child.parent = self._state.active_layer_id

        self._detach_from_group(cell)
        del cells[cell_id]
        self._state.deferred_styles.pop(cell_id, None)
        return DeleteResult(deleted=True, cascaded_edge_ids=cascaded)

    def edit_cell(
        self,
        cell_id: str,
        text: Optional[str] = None,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        style: Optional[str] = None,
    ) -> VertexResult:
        """Partially update a vertex; ``None`` leaves a field unchanged."""
        cell = self._state.cells.get(cell_id)
        if cell is None:
            return _not_found("CELL_NOT_FOUND", "Cell", cell_id)
        if not isinstance(cell, Vertex):
            return StructuredError(
                code="WRONG_CELL_TYPE",
                message=f"Cell '{cell_id}' is not a vertex",
                cell_id=cell_id,
                suggestion=f"This cell is an {cell.kind}. Use draw(action='edit_edges') for edge cells.",
            )
        if text is not None:
            cell.value = text
        if x is not None:
            cell.x = x
        if y is not None:
            cell.y = y
        if width is not None:
            cell.width = max(1, width)
        if height is not None:
            cell.height = max(1, height)
        if style is not None:
            cell.style = style
        return cell

    def edit_edge(
        self,
        cell_id: str,
        text: Optional[str] = None,
        source_id: Optional[str] = None,
        target_id: Optional[str] = None,
        style: Optional[str] = None,
    ) -> EdgeResult:
        """Partially update an edge.  Endpoints are checked before anything changes."""
        cell = self._state.cells.get(cell_id)
        if cell is None:
            return _not_found("CELL_NOT_FOUND", "Cell", cell_id)
        if not isinstance(cell, Edge):
            return StructuredError(
                code="WRONG_CELL_TYPE",
                message=f"Cell '{cell_id}' is not an edge",
                cell_id=cell_id,
                suggestion=f"This cell is a {cell.kind}. Use draw(action='edit_cells') for vertex cells.",
            )
        if source_id is not None and source_id not in self._state.cells:
            return _not_found("SOURCE_NOT_FOUND", "Source cell", source_id)
        if target_id is not None and target_id not in self._state.cells:
            return _not_found("TARGET_NOT_FOUND", "Target cell", target_id)

        if text is not None:
            cell.value = text
        if source_id is not None:
            cell.source_id = source_id
        if target_id is not None:
            cell.target_id = target_id
        if style is not None:
            cell.style = style
        return cell

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def create_group(
        self,
        x: Optional[float] = None,
        y: Optional[float] = None,
        width: Optional[float] = None,
        height: Optional[float] = None,
        text: Optional[str] = None,
        style: Optional[str] = None,
    ) -> Vertex:
        group = Vertex(
            id=self._state.allocate_cell_id(),
            value=text if text is not None else "",
            style=style if style is not None else DefaultStyle.GROUP,
            parent=self._state.active_layer_id,
            x=x if x is not None else 0,
            y=y if y is not None else 0,
            width=_size(width, 400),
            height=_size(height, 300),
            is_group=True,
        )
        self._state.cells[group.id] = group
        return group

    def batch_create_groups(self, items: Iterable[Mapping[str, Any]]) -> list[BatchItemResult]:
        results: list[BatchItemResult] = []
        for item in items:
            group = self.create_group(
                x=item.get("x"),
                y=item.get("y"),
                width=item.get("width"),
                height=item.get("height"),
                text=item.get("text"),
                style=item.get("style"),
            )
            results.append(BatchItemResult(success=True, cell=group, temp_id=item.get("temp_id")))
        return results

    def add_cell_to_group(self, cell_id: str, group_id: str) -> CellResult:
        cell = self._state.cells.get(cell_id)
        if cell is None:
            return _not_found("CELL_NOT_FOUND", "Cell", cell_id)
        group = self._get_group(group_id)
        if isinstance(group, StructuredError):
            return group
        if cell_id == group_id:
            return StructuredError(
                code="SELF_REFERENCE",
                message=f"Cannot add group '{group_id}' to itself",
                cell_id=cell_id,
            )
        if cell.parent != group_id:
            self._detach_from_group(cell)
            cell.parent = group_id
        if cell_id not in group.children:
            group.children.append(cell_id)
        return cell

    def batch_add_cells_to_group(self, assignments: Iterable[Mapping[str, Any]]) -> list[BatchItemResult]:
        results: list[BatchItemResult] = []
        for item in assignments:
            cell_id = item.get("cell_id", "")
            group_id = item.get("group_id", "")
            result = self.add_cell_to_group(cell_id, group_id)
            if isinstance(result, StructuredError):
                results.append(BatchItemResult(False, error=result, cell_id=cell_id, group_id=group_id))
            else:
                results.append(BatchItemResult(True, cell=result, cell_id=cell_id, group_id=group_id))
        return results

    def remove_cell_from_group(self, cell_id: str) -> CellResult:
        """Take a cell out of its group and put it back on the active layer."""
        cell = self._state.cells.get(cell_id)
        if cell is None:
            return _not_found("CELL_NOT_FOUND", "Cell", cell_id)
        parent = self._state.cells.get(cell.parent)
        if not isinstance(parent, Vertex) or not parent.is_group:
            return StructuredError(
                code="NOT_IN_GROUP",
                message=f"Cell '{cell_id}' is not inside a group",
                cell_id=cell_id,
                suggestion="Cell is already at the layer level",
            )
        if cell_id in parent.children:
            parent.children.remove(cell_id)
        cell.parent = self._state.active_layer_id
        return cell

    def list_group_children(self, group_id: str) -> Union[list[Cell], StructuredError]:
        group = self._get_group(group_id)
        if isinstance(group, StructuredError):
            return group
        return [self._state.cells[cid] for cid in group.children if cid in self._state.cells]

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def create_layer(self, name: str) -> Layer:
        layer = Layer(self._state.allocate_layer_id(), name)
        self._state.layers.append(layer)
        return layer

    def list_layers(self) -> list[Layer]:
        return list(self._state.layers)

    def get_active_layer(self) -> Layer:
        # set_active_layer only accepts existing layers
        return cast(Layer, self._state.get_layer(self._state.active_layer_id))

    def set_active_layer(self, layer_id: str) -> Union[Layer, StructuredError]:
        layer = self._state.get_layer(layer_id)
        if layer is None:
            return _not_found("LAYER_NOT_FOUND", "Layer", layer_id, _LIST_LAYERS_HINT)
        self._state.active_layer_id = layer_id
        return layer

    def move_cell_to_layer(self, cell_id: str, layer_id: str) -> CellResult:
        cell = self._state.cells.get(cell_id)
        if cell is None:
            return _not_found("CELL_NOT_FOUND", "Cell", cell_id)
        if self._state.get_layer(layer_id) is None:
            return _not_found("LAYER_NOT_FOUND", "Layer", layer_id, _LIST_LAYERS_HINT)
        self._detach_from_group(cell)
        cell.parent = layer_id
        return cell

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def _validate_batch(self, items: list[Mapping[str, Any]]) -> list[BatchItemResult]:
        errors: list[BatchItemResult] = []
        declared: set[str] = set()
        for index, item in enumerate(items):
            if item.get("type") == "edge":
                for key, code, role in (
                    ("source_id", "INVALID_SOURCE", "source"),
                    ("target_id", "INVALID_TARGET", "target"),
                ):
                    ref = item.get(key)
                    if ref and (ref in declared or ref in self._state.cells):
                        continue
                    errors.append(BatchItemResult(
                        success=False,
                        temp_id=item.get("temp_id"),
                        error=StructuredError(
                            code=code,
                            message=f"Edge at index {index}: {role} cell '{ref}' not found",
                            index=index,
                            suggestion=(
                                f"Ensure {key} references an existing cell or a "
                                "temp_id defined earlier in the batch"
                            ),
                        ),
                    ))
            temp_id = item.get("temp_id")
            if temp_id:
                declared.add(temp_id)
        return errors

    def _preview_cell(self, index: int, item: Mapping[str, Any]) -> Cell:
        cell_id = f"temp-cell-{index}"
        if item.get("type") == "edge":
            return Edge(
                id=cell_id,
                value=item.get("text") or "",
                style=item.get("style") if item.get("style") is not None else DefaultStyle.EDGE,
                parent=self._state.active_layer_id,
                source_id=item.get("source_id"),
                target_id=item.get("target_id"),
            )
        return self._build_rectangle(
            cell_id,
            x=item.get("x"),
            y=item.get("y"),
            width=item.get("width"),
            height=item.get("height"),
            text=item.get("text"),
            style=item.get("style"),
        )

    def batch_add_cells(
        self, items: Iterable[Mapping[str, Any]], dry_run: bool = False,
    ) -> list[BatchItemResult]:
        """Add vertices and edges in one all-or-nothing step.

        Every item is validated before any is applied.  Edge items may name a
        ``temp_id`` declared by an earlier item.  If any item fails, only the
        failures are returned and the model is untouched.  ``dry_run`` stops
        after validation and returns ``temp-cell-{index}`` previews.
        """
        items = list(items)
        errors = self._validate_batch(items)
        if errors:
            return errors

        if dry_run:
            return [
                BatchItemResult(True, cell=self._preview_cell(i, item), temp_id=item.get("temp_id"))
                for i, item in enumerate(items)
            ]

        results: list[BatchItemResult] = []
        temp_ids: dict[str, str] = {}
        for item in items:
            cell: Cell
            if item.get("type") == "edge":
                source = temp_ids.get(item["source_id"], item["source_id"])
                target = temp_ids.get(item["target_id"], item["target_id"])
                # endpoints were checked by _validate_batch
                cell = cast(Edge, self.add_edge(source, target, text=item.get("text"), style=item.get("style")))
            else:
                cell = self.add_rectangle(
                    x=item.get("x"),
                    y=item.get("y"),
                    width=item.get("width"),
                    height=item.get("height"),
                    text=item.get("text"),
                    style=item.get("style"),
                )
            temp_id = item.get("temp_id")
            if temp_id:
                temp_ids[temp_id] = cell.id
            results.append(BatchItemResult(True, cell=cell, temp_id=temp_id))
        return results

    def batch_edit_cells(self, updates: Iterable[Mapping[str, Any]]) -> list[BatchItemResult]:
        results: list[BatchItemResult] = []
        for update in updates:
            cell_id = update.get("cell_id", "")
            result = self.edit_cell(
                cell_id,
                text=update.get("text"),
                x=update.get("x"),
                y=update.get("y"),
                width=update.get("width"),
                height=update.get("height"),
                style=update.get("style"),
            )
            if isinstance(result, StructuredError):
                results.append(BatchItemResult(False, error=result, cell_id=cell_id))
            else:
                results.append(BatchItemResult(True, cell=result, cell_id=cell_id))
        return results

    def batch_edit_edges(self, updates: Iterable[Mapping[str, Any]]) -> list[BatchItemResult]:
        results: list[BatchItemResult] = []
        for update in updates:
            cell_id = update.get("cell_id", "")
            result = self.edit_edge(
                cell_id,
                text=update.get("text"),
                source_id=update.get("source_id"),
                target_id=update.get("target_id"),
                style=update.get("style"),
            )
            if isinstance(result, StructuredError):
                results.append(BatchItemResult(False, error=result, cell_id=cell_id))
            else:
                results.append(BatchItemResult(True, cell=result, cell_id=cell_id))
        return results

    # ------------------------------------------------------------------
    # Whole-model operations
    # ------------------------------------------------------------------

    def clear(self) -> dict[str, int]:
        """Reset to an empty diagram; returns how many cells were removed."""
        removed = {
            "vertices": len(self._state.vertices()),
            "edges": len(self._state.edges()),
        }
        self._state = ModelState()
        return removed

    def get_stats(self) -> dict[str, Any]:
        vertices = edges = groups = with_text = 0
        min_x = min_y = float("inf")
        max_x = max_y = float("-inf")
        by_layer: dict[str, int] = {}

        for cell in self._state.cells.values():
            if isinstance(cell, Vertex):
                vertices += 1
                if cell.is_group:
                    groups += 1
                min_x = min(min_x, cell.x)
                min_y = min(min_y, cell.y)
                max_x = max(max_x, cell.right)
                max_y = max(max_y, cell.bottom)
            else:
                edges += 1
            if cell.value and cell.value.strip():
                with_text += 1
            by_layer[cell.parent] = by_layer.get(cell.parent, 0) + 1

        total = vertices + edges
        bounds = None
        if vertices:
            bounds = {"min_x": min_x, "min_y": min_y, "max_x": max_x, "max_y": max_y}
        return {
            "total_cells": total,
            "vertices": vertices,
            "edges": edges,
            "groups": groups,
            "layers": len(self._state.layers),
            "bounds": bounds,
            "cells_with_text": with_text,
            "cells_without_text": total - with_text,
            "cells_by_layer": by_layer,
        }

    def to_xml(self, compress: bool = False) -> str:
        return codec.to_xml(self._state, compress=compress)

    def resolve_placeholders(self, resolver: ShapeResolver) -> Union[list[str], StructuredError]:
        """Give every placeholder in the diagram its final style.

        Only placeholder cells change; every other cell is left as it is.  A
        style recorded through ``insert_vertex(deferred_style=...)`` wins over
        the resolver's style, keeping any image the resolver supplies.  If any
        placeholder cannot be resolved nothing is changed and the aggregated
        error is returned.  Returns the ids of the resolved placeholders.
        """
        resolved: dict[str, ResolvedShape] = {}

        def recording(shape_name: str, placeholder_id: str) -> Optional[ResolvedShape]:
            shape = resolver(shape_name, placeholder_id)
            if shape is not None:
                deferred = self._state.deferred_styles.get(placeholder_id)
                if deferred is not None:
                    shape = ResolvedShape(style=deferred, image=shape.image)
                resolved[placeholder_id] = shape
            return shape

        outcome = resolve_placeholders_in_xml(self.to_xml(), recording)
        if isinstance(outcome, StructuredError):
            return outcome

        for cell_id, shape in resolved.items():
            cell = self._state.cells.get(cell_id)
            if cell is not None:
                cell.style = resolved_style(shape)
            self._state.deferred_styles.pop(cell_id, None)
        return list(resolved)

    def import_xml(self, text: str) -> Union[ImportSummary, StructuredError]:
        """Replace the whole model with the content of a draw.io document.

        On error the current model is left as it was.

        Raises:
            DecodeError: a compressed page could not be decoded.
        """
        parsed = codec.parse_xml(text)
        if isinstance(parsed, StructuredError):
            return parsed
        state, summary = parsed
        self._state = state
        logger.debug(
            "Imported %d page(s) with %d cells and %d layers",
            summary.pages, summary.cells, summary.layers,
        )
        return summary


