"""
XML codec between the cell store and draw.io interchange documents.

Export renders a single-page ``<mxfile>``; import accepts ``<mxfile>``
documents with any number of pages (plain or compressed) as well as a bare
``<mxGraphModel>``, and merges every page into one :class:`ModelState`.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Optional, Union

from drawio_builder.compression import compress_xml, decompress_xml
from drawio_builder.models import (
    DEFAULT_LAYER_ID,
    FIRST_CELL_NUMBER,
    ROOT_ID,
    Cell,
    Edge,
    ImportSummary,
    Layer,
    ModelState,
    StructuredError,
    Vertex,
)
from drawio_builder.styles import ensure_container, is_container_style

logger = logging.getLogger(__name__)

HOST = "drawio-builder-mcp"
PAGE_ID = "page-1"
PAGE_NAME = "Page-1"

_CANVAS_ATTRS: dict[str, str] = {
    "dx": "800",
    "dy": "600",
    "grid": "1",
    "gridSize": "10",
    "guides": "1",
    "tooltips": "1",
    "connect": "1",
    "arrows": "1",
    "fold": "1",
    "page": "1",
    "pageScale": "1",
    "pageWidth": "850",
    "pageHeight": "1100",
    "math": "0",
    "shadow": "0",
}

# Attributes a rich <UserObject>/<object> may leave on its nested <mxCell>
_NESTED_CELL_ATTRS = ("style", "vertex", "edge", "parent", "source", "target")

_DEFAULT_GEOMETRY = {"x": 0.0, "y": 0.0, "width": 200.0, "height": 100.0}

_ATTR_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&apos;",
    "\n": "&#10;",
    "\r": "&#13;",
    "\t": "&#9;",
}
_ATTR_ESCAPE_RE = re.compile("[&<>\"'\n\r\t]")
_TEXT_ESCAPE_RE = re.compile("[&<>]")


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def escape_attr(value: str) -> str:
    """Escape all five XML-reserved characters plus whitespace controls."""
    return _ATTR_ESCAPE_RE.sub(lambda m: _ATTR_ESCAPES[m.group(0)], value)


def _escape_text(value: str) -> str:
    return _TEXT_ESCAPE_RE.sub(lambda m: _ATTR_ESCAPES[m.group(0)], value)


def format_number(value: float) -> str:
    """Render integral numbers without a trailing ``.0``."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def serialize(el: ET.Element) -> str:
    """Compact serialization that keeps attribute order and escapes apostrophes.

    ``ET.tostring`` leaves ``'`` unescaped inside attributes, which draw.io
    tolerates but other consumers of the exported text do not.
    """
    parts: list[str] = []
    _write(el, parts)
    return "".join(parts)


def _write(el: ET.Element, out: list[str]) -> None:
    out.append(f"<{el.tag}")
    for key, val in el.attrib.items():
        out.append(f' {key}="{escape_attr(val)}"')
    children = list(el)
    if not children and not el.text:
        out.append("/>")
        return
    out.append(">")
    if el.text:
        out.append(_escape_text(el.text))
    for child in children:
        _write(child, out)
    out.append(f"</{el.tag}>")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------

def cell_to_element(cell: Cell) -> ET.Element:
    attrib: dict[str, str] = {"id": cell.id, "value": cell.value}
    if isinstance(cell, Vertex):
        attrib["style"] = ensure_container(cell.style) if cell.is_group else cell.style
        attrib["vertex"] = "1"
        if cell.is_group:
            attrib["connectable"] = "0"
        attrib["parent"] = cell.parent
        el = ET.Element("mxCell", attrib=attrib)
        ET.SubElement(el, "mxGeometry", attrib={
            "x": format_number(cell.x),
            "y": format_number(cell.y),
            "width": format_number(cell.width),
            "height": format_number(cell.height),
            "as": "geometry",
        })
        return el

    attrib["style"] = cell.style
    attrib["edge"] = "1"
    attrib["parent"] = cell.parent
    if isinstance(cell, Edge):
        if cell.source_id:
            attrib["source"] = cell.source_id
        if cell.target_id:
            attrib["target"] = cell.target_id
    el = ET.Element("mxCell", attrib=attrib)
    ET.SubElement(el, "mxGeometry", attrib={"relative": "1", "as": "geometry"})
    return el


def _document_order(state: ModelState) -> list[Cell]:
    """Cells in insertion order, except that a parent cell precedes its children."""
    ordered: list[Cell] = []
    emitted: set[str] = set()
    pending = list(state.cells.values())
    while pending:
        deferred: list[Cell] = []
        for cell in pending:
            if cell.parent in state.cells and cell.parent not in emitted:
                deferred.append(cell)
            else:
                ordered.append(cell)
                emitted.add(cell.id)
        if len(deferred) == len(pending):
            # parent cycle; emit the rest as they are
            ordered.extend(deferred)
            break
        pending = deferred
    return ordered


def build_model_element(state: ModelState) -> ET.Element:
    model = ET.Element("mxGraphModel", attrib=dict(_CANVAS_ATTRS))
    root = ET.SubElement(model, "root")
    ET.SubElement(root, "mxCell", attrib={"id": ROOT_ID})
    ET.SubElement(root, "mxCell", attrib={"id": DEFAULT_LAYER_ID, "parent": ROOT_ID})
    for layer in state.layers:
        if layer.id == DEFAULT_LAYER_ID:
            continue
        ET.SubElement(root, "mxCell", attrib={
            "id": layer.id,
            "value": layer.name,
            "style": "",
            "parent": ROOT_ID,
        })
    for cell in _document_order(state):
        root.append(cell_to_element(cell))
    return model


def to_xml(state: ModelState, compress: bool = False) -> str:
    """Render ``state`` as a single-page draw.io document."""
    mxfile = ET.Element("mxfile", attrib={"host": HOST, "activeLayerId": state.active_layer_id})
    page = ET.SubElement(mxfile, "diagram", attrib={"id": PAGE_ID, "name": PAGE_NAME})
    model = build_model_element(state)
    if compress:
        page.text = compress_xml(serialize(model))
    else:
        page.append(model)
    return serialize(mxfile)


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------

@dataclass
class _SourceCell:
    """One cell as read from the document, before classification."""
    id: str
    value: str
    style: str
    parent: str
    vertex: bool
    edge: bool
    source: Optional[str]
    target: Optional[str]
    geometry: Optional[ET.Element]


def _read_source_cell(el: ET.Element) -> Optional[_SourceCell]:
    if el.tag == "mxCell":
        attrs = dict(el.attrib)
        geometry = el.find("mxGeometry")
        value = attrs.get("value", attrs.get("label", ""))
    elif el.tag in ("UserObject", "object"):
        attrs = dict(el.attrib)
        geometry = None
        value = attrs.get("value", attrs.get("label", ""))
        inner = el.find("mxCell")
        if inner is not None:
            geometry = inner.find("mxGeometry")
            for key in _NESTED_CELL_ATTRS:
                if key not in attrs and key in inner.attrib:
                    attrs[key] = inner.attrib[key]
    else:
        return None
    return _SourceCell(
        id=attrs.get("id", ""),
        value=value,
        style=attrs.get("style", ""),
        parent=attrs.get("parent", ""),
        vertex=attrs.get("vertex") == "1",
        edge=attrs.get("edge") == "1",
        source=attrs.get("source"),
        target=attrs.get("target"),
        geometry=geometry,
    )


def _geometry_value(geometry: Optional[ET.Element], key: str) -> float:
    default = _DEFAULT_GEOMETRY[key]
    if geometry is None or key not in geometry.attrib:
        return default
    try:
        return float(geometry.attrib[key])
    except ValueError:
        return default


def _page_model(diagram_el: ET.Element) -> Union[Optional[ET.Element], StructuredError]:
    """The ``mxGraphModel`` of one page, inflating compressed content first.

    Raises:
        DecodeError: the page holds a compressed payload that cannot be decoded.
    """
    model = diagram_el.find("mxGraphModel")
    if model is not None:
        return model
    payload = (diagram_el.text or "").strip()
    if not payload:
        return None
    inner = decompress_xml(payload)
    try:
        inner_root = ET.fromstring(inner)
    except ET.ParseError as exc:
        return StructuredError(
            code="INVALID_XML",
            message=f"Compressed page '{diagram_el.get('name', '')}' is not well-formed: {exc}",
            suggestion="Re-export the diagram from draw.io",
        )
    if inner_root.tag == "mxGraphModel":
        return inner_root
    return inner_root.find("mxGraphModel")


def _merge_page(state: ModelState, model: ET.Element) -> int:
    """Merge one page into ``state``; returns the highest numeric id token seen."""
    max_number = 0
    root_el = model.find("root")
    if root_el is None:
        return max_number
    for el in root_el:
        src = _read_source_cell(el)
        if src is None:
            continue
        if not src.id:
            logger.debug("Skipping <%s> without an id", el.tag)
            continue
        match = re.search(r"\d+", src.id)
        if match:
            max_number = max(max_number, int(match.group(0)))
        if src.id == ROOT_ID:
            continue
        if src.id == DEFAULT_LAYER_ID and src.parent == ROOT_ID:
            continue

        if src.parent == ROOT_ID and not src.vertex and not src.edge:
            if src.id != DEFAULT_LAYER_ID and state.get_layer(src.id) is None:
                state.layers.append(Layer(src.id, src.value or src.id))
            continue

        parent = src.parent or DEFAULT_LAYER_ID
        if src.edge:
            state.cells[src.id] = Edge(
                id=src.id,
                value=src.value,
                style=src.style,
                parent=parent,
                source_id=src.source,
                target_id=src.target,
            )
        else:
            state.cells[src.id] = Vertex(
                id=src.id,
                value=src.value,
                style=src.style,
                parent=parent,
                x=_geometry_value(src.geometry, "x"),
                y=_geometry_value(src.geometry, "y"),
                width=_geometry_value(src.geometry, "width"),
                height=_geometry_value(src.geometry, "height"),
                is_group=is_container_style(src.style),
            )
    return max_number


def _populate_children(state: ModelState) -> None:
    for cell in state.cells.values():
        if isinstance(cell, Vertex) and cell.is_group:
            cell.children = []
    for cell in state.cells.values():
        parent = state.cells.get(cell.parent)
        if isinstance(parent, Vertex) and parent.is_group:
            parent.children.append(cell.id)


def parse_xml(text: str) -> Union[tuple[ModelState, ImportSummary], StructuredError]:
    """Parse a draw.io document into a fresh :class:`ModelState`.

    Nothing outside the returned state is touched, so a caller can keep its
    previous state when an error comes back.

    Raises:
        DecodeError: a compressed page could not be decoded.
    """
    if not text or not text.strip():
        return StructuredError(
            code="EMPTY_XML",
            message="XML string is empty",
            suggestion="Provide a valid draw.io XML string",
        )
    if "<mxfile" not in text and "<mxGraphModel" not in text:
        return StructuredError(
            code="INVALID_XML",
            message="XML does not appear to be a draw.io file",
            suggestion="Provide XML that contains <mxfile> or <mxGraphModel> elements",
        )
    try:
        root = ET.fromstring(text.strip())
    except ET.ParseError as exc:
        return StructuredError(
            code="INVALID_XML",
            message=f"XML is not well-formed: {exc}",
            suggestion="Check the document for unbalanced tags or unescaped characters",
        )

    requested_layer: Optional[str] = None
    if root.tag == "mxfile":
        requested_layer = root.get("activeLayerId")
        pages = root.findall("diagram")
        page_count = len(pages) or 1
        models: list[ET.Element] = []
        for page in pages:
            model = _page_model(page)
            if isinstance(model, StructuredError):
                return model
            if model is not None:
                models.append(model)
    elif root.tag == "mxGraphModel":
        page_count = 1
        models = [root]
    else:
        return StructuredError(
            code="INVALID_XML",
            message=f"Unrecognized root element <{root.tag}>",
            suggestion="Provide XML whose root is <mxfile> or <mxGraphModel>",
        )

    state = ModelState()
    max_number = 0
    for model in models:
        max_number = max(max_number, _merge_page(state, model))
    _populate_children(state)

    state.next_cell_number = max(max_number + 1, FIRST_CELL_NUMBER)
    if requested_layer and state.get_layer(requested_layer) is not None:
        state.active_layer_id = requested_layer

    logger.debug(
        "Parsed %d page(s): %d cells, %d layers", page_count, len(state.cells), len(state.layers)
    )
    return state, ImportSummary(pages=page_count, cells=len(state.cells), layers=len(state.layers))
