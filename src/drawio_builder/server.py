"""
drawio-builder MCP Server — build draw.io diagrams incrementally via Model Context Protocol.

Every diagram lives in memory under a caller-chosen name and is edited
through a handful of action-based tools.  Diagrams round-trip through the
draw.io XML format, so they can be saved, re-opened and edited in draw.io.

Tools:
  1. diagram  — lifecycle: create, import_xml, get_xml, clear, stats, list,
                           save, load, finish
  2. draw     — content:  add_cells, add_shapes, set_shape, edit_cells,
                           edit_edges, delete_cells, delete_edge
  3. group    — containers: create, add_cells, remove_cell, list_children
  4. layer    — layers: create, list, get_active, set_active, move_cell
  5. inspect  — read-only: cells, cell, shapes, shape, presets
"""

from __future__ import annotations

import functools
import json
import logging
import sys
import threading
import time
from typing import Any, Callable, Optional, Sequence

from mcp.server.fastmcp import FastMCP

from drawio_builder.compression import DecodeError
from drawio_builder.config import ConfigError, ServerConfig, parse_config
from drawio_builder.diagram import DiagramModel
from drawio_builder.models import BatchItemResult, Edge, StructuredError
from drawio_builder.placeholder import (
    Position,
    create_placeholder_cell,
    strip_image_from_style,
)
from drawio_builder.styles import (
    BASIC_SHAPE_CATEGORIES,
    BASIC_SHAPES,
    STYLE_PRESETS,
    get_basic_shape,
    resolve_basic_shape,
)
from drawio_builder.validation import (
    ValidationError,
    validate_action,
    validate_bool,
    validate_cell_item,
    validate_cell_type,
    validate_cell_update,
    validate_edge_update,
    validate_file_path,
    validate_group_assignment,
    validate_group_item,
    validate_int,
    validate_items,
    validate_list,
    validate_non_empty_string,
    validate_shape_assignment,
    validate_shape_item,
    _DIAGRAM_ACTIONS,
    _DRAW_ACTIONS,
    _GROUP_ACTIONS,
    _INSPECT_ACTIONS,
    _LAYER_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging: keep routine FastMCP INFO messages off stderr.
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("drawio-builder")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "drawio-builder-mcp",
    instructions=(
        "MCP server for building draw.io / diagrams.net diagrams step by step.\n\n"
        "=== 5 TOOLS — use the 'action' parameter to pick the operation ===\n\n"
        "1. diagram(action, ...) — create, import_xml, get_xml, clear, stats,\n"
        "   list, save, load, finish.\n"
        "2. draw(action, ...) — add_cells, add_shapes, set_shape, edit_cells,\n"
        "   edit_edges, delete_cells, delete_edge.\n"
        "3. group(action, ...) — create, add_cells, remove_cell, list_children.\n"
        "4. layer(action, ...) — create, list, get_active, set_active, move_cell.\n"
        "5. inspect(action, ...) — cells, cell, shapes, shape, presets.\n\n"
        "=== RULES ===\n"
        "- Cell ids are assigned by the server (cell-2, cell-3, ...).\n"
        "- In draw(action='add_cells') give items a temp_id and reference it\n"
        "  from later edge items; the whole batch fails if any edge endpoint\n"
        "  is unknown, and nothing is added.\n"
        "- New cells go to the active layer.\n"
        "- draw(action='add_shapes', transactional=True) adds lightweight\n"
        "  placeholders; call diagram(action='finish') when done to resolve them.\n"
        "- Every response is JSON: {success, data} or {success, error}.\n"
    ),
)

# In-memory diagram registry: name -> DiagramModel
# Guarded by _diagrams_lock for thread-safety.
_diagrams: dict[str, DiagramModel] = {}
_diagrams_lock = threading.Lock()

_config = ServerConfig()


# ===================================================================
# Response helpers
# ===================================================================

def _ok(data: Any) -> str:
    return json.dumps({"success": True, "data": data}, indent=2)


def _fail(error: StructuredError) -> str:
    return json.dumps({"success": False, "error": error.to_dict()}, indent=2)


def _invalid(message: str) -> str:
    return _fail(StructuredError(code="INVALID_INPUT", message=message))


def _batch(results: list[dict[str, Any]], **extra: Any) -> str:
    succeeded = sum(1 for r in results if r.get("success"))
    data: dict[str, Any] = dict(extra)
    data["summary"] = {
        "total": len(results),
        "succeeded": succeeded,
        "failed": len(results) - succeeded,
    }
    data["results"] = results
    return _ok(data)


def _get_diagram(name: str) -> Optional[DiagramModel]:
    with _diagrams_lock:
        return _diagrams.get(name)


def _diagram_not_found(name: str) -> str:
    return _fail(StructuredError(
        code="DIAGRAM_NOT_FOUND",
        message=f"Diagram '{name}' not found",
        suggestion="Use diagram(action='create') or diagram(action='list')",
    ))


def _logged(func: Callable[..., str]) -> Callable[..., str]:
    """Log every tool call at DEBUG with its duration and payload size."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> str:
        action = kwargs.get("action", args[0] if args else "")
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "[tool:%s] action=%s took %.1f ms, response %.1f KB",
            func.__name__, action, elapsed_ms, len(result.encode("utf-8")) / 1024,
        )
        return result

    return wrapper


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("drawio://shapes/basic")
def basic_shape_catalog() -> str:
    """Return the built-in shape catalog as a reference."""
    entries: list[str] = []
    for category, names in BASIC_SHAPE_CATEGORIES.items():
        entries.append(f"{category}:")
        for name in names:
            shape = BASIC_SHAPES[name]
            entries.append(
                f"  {name} ({shape.default_width:g}x{shape.default_height:g}): {shape.style}"
            )
    return "Available basic shapes:\n" + "\n".join(entries)


# ===================================================================
# TOOL 1: diagram, lifecycle
# ===================================================================

def _import_into(name: str, model: DiagramModel, xml: str) -> str:
    try:
        result = model.import_xml(xml)
    except DecodeError as exc:
        return _fail(StructuredError(
            code="DECODE_FAILED",
            message=str(exc),
            suggestion="Compressed pages must be base64-encoded raw DEFLATE data",
        ))
    if isinstance(result, StructuredError):
        return _fail(result)
    with _diagrams_lock:
        _diagrams[name] = model
    data = result.to_dict()
    data["name"] = name
    data["active_layer"] = model.get_active_layer().to_dict()
    return _ok(data)


def _export(model: DiagramModel, compress: bool) -> dict[str, Any]:
    return {
        "xml": model.to_xml(compress=compress),
        "stats": model.get_stats(),
        "compression": (
            {"enabled": True, "algorithm": "deflate-raw", "encoding": "base64"}
            if compress else {"enabled": False}
        ),
    }


@mcp.tool()
@_logged
def diagram(
    action: str,
    name: str = "",
    xml_content: str = "",
    file_path: str = "",
    compress: bool = False,
) -> str:
    """Diagram lifecycle management.

    Actions:
      create     — Create a new empty diagram. Params: name.
      import_xml — Replace a diagram with draw.io XML (created if missing).
                   Params: name, xml_content.
      get_xml    — Export the diagram as draw.io XML. Params: name, compress.
      clear      — Remove every cell and layer. Params: name.
      stats      — Cell counts, bounds and per-layer totals. Params: name.
      list       — List all in-memory diagrams. No params needed.
      save       — Write the diagram to a .drawio file. Params: name, file_path, compress.
      load       — Read a .drawio file into a diagram. Params: name, file_path.
      finish     — Resolve transactional placeholders to their final shapes
                   and return the XML. Params: name, compress.

    Args:
        action: One of: create, import_xml, get_xml, clear, stats, list, save, load, finish.
        name: Diagram name (key in memory).
        xml_content: XML string for import_xml.
        file_path: Path for save/load; relative paths use DIAGRAMS_DIR when set.
        compress: Compress the page content the way draw.io does.

    Returns:
        JSON envelope: {"success": true, "data": ...} or {"success": false, "error": ...}.
    """
    try:
        action = validate_action(action, "diagram", _DIAGRAM_ACTIONS)
        validate_bool(compress, "compress")
        if action != "list":
            name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return _invalid(exc.message)

    if action == "create":
        model = DiagramModel()
        with _diagrams_lock:
            _diagrams[name] = model
        return _ok({"name": name, "active_layer": model.get_active_layer().to_dict()})

    elif action == "import_xml":
        try:
            validate_non_empty_string(xml_content, "xml_content")
        except ValidationError as exc:
            return _invalid(exc.message)
        return _import_into(name, _get_diagram(name) or DiagramModel(), xml_content)

    elif action == "load":
        try:
            file_path = validate_file_path(file_path, "file_path")
        except ValidationError as exc:
            return _invalid(exc.message)
        path = _config.resolve_path(file_path)
        if not path.is_file():
            return _fail(StructuredError(
                code="FILE_NOT_FOUND",
                message=f"File '{path}' not found",
            ))
        xml = path.read_text(encoding="utf-8")
        return _import_into(name, _get_diagram(name) or DiagramModel(), xml)

    elif action == "list":
        with _diagrams_lock:
            items = list(_diagrams.items())
        result: list[dict[str, Any]] = []
        for n, model in items:
            stats = model.get_stats()
            result.append({
                "name": n,
                "vertices": stats["vertices"],
                "edges": stats["edges"],
                "layers": stats["layers"],
            })
        return _ok(result)

    model = _get_diagram(name)
    if model is None:
        return _diagram_not_found(name)

    if action == "get_xml":
        return _ok(_export(model, compress))

    elif action == "clear":
        removed = model.clear()
        return _ok({"name": name, "cleared": removed})

    elif action == "stats":
        return _ok(model.get_stats())

    elif action == "save":
        try:
            file_path = validate_file_path(file_path, "file_path")
        except ValidationError as exc:
            return _invalid(exc.message)
        path = _config.resolve_path(file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(model.to_xml(compress=compress), encoding="utf-8")
        return _ok({"name": name, "path": str(path.resolve())})

    elif action == "finish":
        resolved = model.resolve_placeholders(resolve_basic_shape)
        if isinstance(resolved, StructuredError):
            return _fail(resolved)
        data = _export(model, compress)
        data["placeholders_resolved"] = len(resolved)
        return _ok(data)

    else:
        return _invalid(f"Unknown diagram action '{action}'.")


# ===================================================================
# TOOL 2: draw, content
# ===================================================================

def _shape_not_found(shape_name: str) -> StructuredError:
    logger.warning("Unknown shape '%s'", shape_name)
    return StructuredError(
        code="SHAPE_NOT_FOUND",
        message=f"Unknown shape '{shape_name}'",
        suggestion="Use inspect(action='shapes') to see available shapes",
    )


def _add_shape(model: DiagramModel, item: dict[str, Any], transactional: bool) -> dict[str, Any]:
    shape_name = item["shape_name"]
    temp_id = item.get("temp_id")
    shape = get_basic_shape(shape_name)
    if shape is None:
        entry = BatchItemResult(False, error=_shape_not_found(shape_name), temp_id=temp_id).to_dict()
        entry["shape_name"] = shape_name
        return entry

    style = item.get("style") or shape.style
    width = item.get("width") or shape.default_width
    height = item.get("height") or shape.default_height
    x = item.get("x") if item.get("x") is not None else 100
    y = item.get("y") if item.get("y") is not None else 100
    if transactional:
        cell = create_placeholder_cell(
            shape.name, strip_image_from_style(style), Position(x, y, width, height),
        )
        if item.get("text") is not None:
            cell.value = item["text"]
        stored = model.insert_vertex(cell, deferred_style=item.get("style"))
        if isinstance(stored, StructuredError):
            entry = BatchItemResult(False, error=stored, temp_id=temp_id).to_dict()
        else:
            entry = BatchItemResult(True, cell=stored, temp_id=temp_id).to_dict()
    else:
        vertex = model.add_rectangle(
            x=x, y=y, width=width, height=height, text=item.get("text"), style=style,
        )
        entry = BatchItemResult(True, cell=vertex, temp_id=temp_id).to_dict()
    entry["shape_name"] = shape.name
    return entry


def _set_shape(model: DiagramModel, item: dict[str, Any]) -> dict[str, Any]:
    cell_id = item["cell_id"]
    shape_name = item["shape_name"]
    shape = get_basic_shape(shape_name)
    if shape is None:
        result = BatchItemResult(False, error=_shape_not_found(shape_name), cell_id=cell_id)
    else:
        edited = model.edit_cell(cell_id, style=shape.style)
        if isinstance(edited, StructuredError):
            result = BatchItemResult(False, error=edited, cell_id=cell_id)
        else:
            result = BatchItemResult(True, cell=edited, cell_id=cell_id)
    entry = result.to_dict()
    entry["shape_name"] = shape_name
    return entry


@mcp.tool()
@_logged
def draw(
    action: str,
    diagram_name: str = "",
    cells: Optional[list[dict[str, Any]]] = None,
    shapes: Optional[list[dict[str, Any]]] = None,
    assignments: Optional[list[dict[str, Any]]] = None,
    updates: Optional[list[dict[str, Any]]] = None,
    cell_ids: Optional[list[str]] = None,
    cell_id: str = "",
    dry_run: bool = False,
    transactional: bool = False,
) -> str:
    """Add, edit and delete diagram content.

    Actions:
      add_cells    — Add vertices and edges in one all-or-nothing batch.
                     Params: cells [{type: vertex|edge, x, y, width, height,
                     text, style, source_id, target_id, temp_id}], dry_run.
                     Edges may reference temp_ids of earlier items.
      add_shapes   — Add vertices from the basic shape catalog.
                     Params: shapes [{shape_name, x, y, width, height, text,
                     style, temp_id}], transactional.
      set_shape    — Restyle vertices as catalog shapes.
                     Params: assignments [{cell_id, shape_name}].
      edit_cells   — Update vertices. Params: updates [{cell_id, text, x, y,
                     width, height, style}].
      edit_edges   — Update edges. Params: updates [{cell_id, text, source_id,
                     target_id, style}].
      delete_cells — Delete cells; deleting a vertex deletes its edges too.
                     Params: cell_ids.
      delete_edge  — Delete a single edge. Params: cell_id.

    Args:
        action: One of the actions above.
        diagram_name: Target diagram name.
        cells: Items for add_cells.
        shapes: Items for add_shapes.
        assignments: Items for set_shape.
        updates: Items for edit_cells / edit_edges.
        cell_ids: Ids for delete_cells.
        cell_id: Id for delete_edge.
        dry_run: Validate add_cells without changing the diagram.
        transactional: Create add_shapes cells as placeholders.

    Returns:
        JSON envelope with per-item results for batch actions.
    """
    try:
        action = validate_action(action, "draw", _DRAW_ACTIONS)
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return _invalid(exc.message)
    model = _get_diagram(diagram_name)
    if model is None:
        return _diagram_not_found(diagram_name)

    if action == "add_cells":
        try:
            validate_bool(dry_run, "dry_run")
            items = validate_items(cells, "cells", validate_cell_item)
        except ValidationError as exc:
            return _invalid(exc.message)
        normalized = [dict(item, type=str(item.get("type", "vertex")).lower()) for item in items]
        results = model.batch_add_cells(normalized, dry_run=dry_run)
        applied = not dry_run and all(r.success for r in results)
        return _batch([r.to_dict() for r in results], applied=applied, dry_run=dry_run)

    elif action == "add_shapes":
        try:
            validate_bool(transactional, "transactional")
            items = validate_items(shapes, "shapes", validate_shape_item)
        except ValidationError as exc:
            return _invalid(exc.message)
        results = [_add_shape(model, item, transactional) for item in items]
        return _batch(results, transactional=transactional)

    elif action == "set_shape":
        try:
            items = validate_items(assignments, "assignments", validate_shape_assignment)
        except ValidationError as exc:
            return _invalid(exc.message)
        return _batch([_set_shape(model, item) for item in items])

    elif action == "edit_cells":
        try:
            items = validate_items(updates, "updates", validate_cell_update)
        except ValidationError as exc:
            return _invalid(exc.message)
        return _batch([r.to_dict() for r in model.batch_edit_cells(items)])

    elif action == "edit_edges":
        try:
            items = validate_items(updates, "updates", validate_edge_update)
        except ValidationError as exc:
            return _invalid(exc.message)
        return _batch([r.to_dict() for r in model.batch_edit_edges(items)])

    elif action == "delete_cells":
        try:
            ids = validate_list(cell_ids, "cell_ids", min_length=1)
            ids = [validate_non_empty_string(cid, f"cell_ids[{i}]") for i, cid in enumerate(ids)]
        except ValidationError as exc:
            return _invalid(exc.message)
        outcomes: list[dict[str, Any]] = []
        for cid in ids:
            outcome = model.delete_cell(cid).to_dict()
            outcome["cell_id"] = cid
            outcomes.append(outcome)
        return _ok({"results": outcomes, "deleted": sum(1 for o in outcomes if o["deleted"])})

    elif action == "delete_edge":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        cell = model.get_cell(cell_id)
        if cell is None:
            return _fail(StructuredError(
                code="CELL_NOT_FOUND",
                message=f"Edge '{cell_id}' not found",
                cell_id=cell_id,
                suggestion="Use inspect(action='cells', cell_type='edge') to see available edges",
            ))
        if not isinstance(cell, Edge):
            return _fail(StructuredError(
                code="NOT_AN_EDGE",
                message=f"Cell '{cell_id}' is a {cell.kind}, not an edge",
                cell_id=cell_id,
                suggestion="Use draw(action='delete_cells') to delete vertices",
            ))
        model.delete_cell(cell_id)
        stats = model.get_stats()
        return _ok({
            "deleted": cell_id,
            "remaining": {k: stats[k] for k in ("total_cells", "vertices", "edges")},
        })

    else:
        return _invalid(f"Unknown draw action '{action}'.")


# ===================================================================
# TOOL 3: group, containers
# ===================================================================

@mcp.tool()
@_logged
def group(
    action: str,
    diagram_name: str = "",
    groups: Optional[list[dict[str, Any]]] = None,
    assignments: Optional[list[dict[str, Any]]] = None,
    cell_id: str = "",
    group_id: str = "",
) -> str:
    """Group (container) management.

    Actions:
      create        — Create groups. Params: groups [{x, y, width, height,
                      text, style, temp_id}].
      add_cells     — Put cells into groups. Params: assignments [{cell_id, group_id}].
      remove_cell   — Take a cell out of its group (back to the active layer).
                      Params: cell_id.
      list_children — List a group's children. Params: group_id.

    Args:
        action: One of: create, add_cells, remove_cell, list_children.
        diagram_name: Target diagram name.
        groups: Group definitions for create.
        assignments: Pairs for add_cells.
        cell_id: Cell for remove_cell.
        group_id: Group for list_children.

    Returns:
        JSON envelope.
    """
    try:
        action = validate_action(action, "group", _GROUP_ACTIONS)
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return _invalid(exc.message)
    model = _get_diagram(diagram_name)
    if model is None:
        return _diagram_not_found(diagram_name)

    if action == "create":
        try:
            items = validate_items(groups, "groups", validate_group_item)
        except ValidationError as exc:
            return _invalid(exc.message)
        return _batch([r.to_dict() for r in model.batch_create_groups(items)])

    elif action == "add_cells":
        try:
            items = validate_items(assignments, "assignments", validate_group_assignment)
        except ValidationError as exc:
            return _invalid(exc.message)
        return _batch([r.to_dict() for r in model.batch_add_cells_to_group(items)])

    elif action == "remove_cell":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        result = model.remove_cell_from_group(cell_id)
        if isinstance(result, StructuredError):
            return _fail(result)
        return _ok(result.to_dict())

    elif action == "list_children":
        try:
            group_id = validate_non_empty_string(group_id, "group_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        children = model.list_group_children(group_id)
        if isinstance(children, StructuredError):
            return _fail(children)
        return _ok({"group_id": group_id, "children": [c.to_dict() for c in children]})

    else:
        return _invalid(f"Unknown group action '{action}'.")


# ===================================================================
# TOOL 4: layer, layers
# ===================================================================

@mcp.tool()
@_logged
def layer(
    action: str,
    diagram_name: str = "",
    name: str = "",
    layer_id: str = "",
    cell_id: str = "",
) -> str:
    """Layer management.

    Actions:
      create     — Add a layer. Params: name.
      list       — List layers and the active one.
      get_active — Get the active layer (where new cells go).
      set_active — Switch the active layer. Params: layer_id.
      move_cell  — Move a cell to a layer. Params: cell_id, layer_id.

    Args:
        action: One of: create, list, get_active, set_active, move_cell.
        diagram_name: Target diagram name.
        name: Layer name for create.
        layer_id: Layer for set_active / move_cell.
        cell_id: Cell for move_cell.

    Returns:
        JSON envelope.
    """
    try:
        action = validate_action(action, "layer", _LAYER_ACTIONS)
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return _invalid(exc.message)
    model = _get_diagram(diagram_name)
    if model is None:
        return _diagram_not_found(diagram_name)

    if action == "create":
        try:
            name = validate_non_empty_string(name, "name")
        except ValidationError as exc:
            return _invalid(exc.message)
        return _ok(model.create_layer(name).to_dict())

    elif action == "list":
        return _ok({
            "layers": [lyr.to_dict() for lyr in model.list_layers()],
            "active_layer_id": model.active_layer_id,
        })

    elif action == "get_active":
        return _ok(model.get_active_layer().to_dict())

    elif action == "set_active":
        try:
            layer_id = validate_non_empty_string(layer_id, "layer_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        result = model.set_active_layer(layer_id)
        if isinstance(result, StructuredError):
            return _fail(result)
        return _ok(result.to_dict())

    elif action == "move_cell":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
            layer_id = validate_non_empty_string(layer_id, "layer_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        moved = model.move_cell_to_layer(cell_id, layer_id)
        if isinstance(moved, StructuredError):
            return _fail(moved)
        return _ok(moved.to_dict())

    else:
        return _invalid(f"Unknown layer action '{action}'.")


# ===================================================================
# TOOL 5: inspect, read-only
# ===================================================================

@mcp.tool()
@_logged
def inspect(
    action: str,
    diagram_name: str = "",
    cell_id: str = "",
    cell_type: str = "",
    page: int = 0,
    page_size: int = 50,
    category: str = "",
    shape_name: str = "",
) -> str:
    """Read-only inspection of diagrams and the shape catalog.

    Actions:
      cells   — Page through cells. Params: diagram_name, cell_type
                (vertex|edge), page, page_size.
      cell    — Get one cell. Params: diagram_name, cell_id.
      shapes  — Shape categories, or the shapes of one category. Params: category.
      shape   — Look up a shape by name. Params: shape_name.
      presets — Named style presets.

    Args:
        action: One of: cells, cell, shapes, shape, presets.
        diagram_name: Target diagram name (cells / cell).
        cell_id: Cell for the cell action.
        cell_type: Optional filter for cells.
        page: Zero-based page index for cells.
        page_size: Cells per page (1..500).
        category: Shape category for shapes.
        shape_name: Shape for the shape action.

    Returns:
        JSON envelope.
    """
    try:
        action = validate_action(action, "inspect", _INSPECT_ACTIONS)
    except ValidationError as exc:
        return _invalid(exc.message)

    if action == "presets":
        return _ok({"presets": STYLE_PRESETS})

    elif action == "shapes":
        if not category:
            return _ok({"categories": {k: list(v) for k, v in BASIC_SHAPE_CATEGORIES.items()}})
        names = BASIC_SHAPE_CATEGORIES.get(category.strip().lower())
        if names is None:
            return _fail(StructuredError(
                code="CATEGORY_NOT_FOUND",
                message=f"Unknown shape category '{category}'",
                suggestion=f"Available categories: {', '.join(BASIC_SHAPE_CATEGORIES)}",
            ))
        return _ok({"category": category, "shapes": [BASIC_SHAPES[n].to_dict() for n in names]})

    elif action == "shape":
        try:
            shape_name = validate_non_empty_string(shape_name, "shape_name")
        except ValidationError as exc:
            return _invalid(exc.message)
        shape = get_basic_shape(shape_name)
        if shape is None:
            return _fail(_shape_not_found(shape_name))
        return _ok(shape.to_dict())

    # All other actions need a diagram
    try:
        diagram_name = validate_non_empty_string(diagram_name, "diagram_name")
    except ValidationError as exc:
        return _invalid(exc.message)
    model = _get_diagram(diagram_name)
    if model is None:
        return _diagram_not_found(diagram_name)

    if action == "cells":
        try:
            validate_int(page, "page", min_val=0)
            validate_int(page_size, "page_size", min_val=1, max_val=500)
            kind = validate_cell_type(cell_type) if cell_type else None
        except ValidationError as exc:
            return _invalid(exc.message)
        cells = model.list_cells(kind)
        start = page * page_size
        return _ok({
            "page": page,
            "page_size": page_size,
            "total_cells": len(cells),
            "total_pages": -(-len(cells) // page_size),
            "active_layer": model.get_active_layer().to_dict(),
            "cells": [c.to_dict() for c in cells[start:start + page_size]],
        })

    elif action == "cell":
        try:
            cell_id = validate_non_empty_string(cell_id, "cell_id")
        except ValidationError as exc:
            return _invalid(exc.message)
        cell = model.get_cell(cell_id)
        if cell is None:
            return _fail(StructuredError(
                code="CELL_NOT_FOUND",
                message=f"Cell '{cell_id}' not found",
                cell_id=cell_id,
                suggestion="Use inspect(action='cells') to see available cells",
            ))
        return _ok(cell.to_dict())

    else:
        return _invalid(f"Unknown inspect action '{action}'.")


# ===================================================================
# Entry point
# ===================================================================

def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the MCP server."""
    global _config
    try:
        _config = parse_config(argv)
    except ConfigError as exc:
        print(f"drawio-builder-mcp: {exc}", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=_config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting drawio-builder-mcp (%s transport)", _config.transport)
    if _config.transport == "http":
        mcp.settings.port = _config.http_port
        mcp.run(transport="streamable-http")
    else:
        mcp.run()


if __name__ == "__main__":
    main()
