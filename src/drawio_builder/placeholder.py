"""
Placeholder cells for transactional diagram construction.

While a diagram is being built step by step, shape cells can be stored as
lightweight stand-ins: real vertices whose style carries ``placeholder=1``
and whose id encodes the shape name
(``placeholder-{hyphenated-name}-{8 hex}``).  Once the caller is done, the
exported XML is patched so that every stand-in gets its final style.

The shape name is always recovered from the *id*, never from the label, so
callers may relabel placeholders freely.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Union

from drawio_builder.codec import escape_attr
from drawio_builder.models import StructuredError, Vertex
from drawio_builder.styles import (
    PLACEHOLDER_MARKER,
    ResolvedShape,
    StyleBuilder,
    append_marker,
    remove_marker,
)

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "placeholder-"

ShapeResolver = Callable[[str, str], Optional[ResolvedShape]]

_SUFFIX_RE = re.compile(r"^[0-9a-f]{8}$")
_PLACEHOLDER_CELL_RE = re.compile(
    r'<mxCell\s+id="([^"]+)"[^>]*style="([^"]*' + re.escape(PLACEHOLDER_MARKER) + r'[^"]*)"'
)
_IMAGE_TOKEN_RE = re.compile(r"(?:^|(?<=;))image=[^;]*")
_BASE64_DATA_URI_RE = re.compile(r"^data:([^;,]+);base64,")


@dataclass
class Position:
    x: float
    y: float
    width: float
    height: float


@dataclass
class PlaceholderRef:
    id: str
    shape_name: str


def _hyphenate(shape_name: str) -> str:
    return re.sub(r"\s+", "-", shape_name.lower())


def create_placeholder_cell(shape_name: str, base_style: str, position: Position) -> Vertex:
    """Build (but do not store) a placeholder vertex for ``shape_name``."""
    cell_id = f"{PLACEHOLDER_PREFIX}{_hyphenate(shape_name)}-{uuid.uuid4().hex[:8]}"
    return Vertex(
        id=cell_id,
        value=shape_name,
        style=append_marker(base_style, PLACEHOLDER_MARKER),
        x=position.x,
        y=position.y,
        width=position.width,
        height=position.height,
    )


def is_placeholder(cell_id: str) -> bool:
    return cell_id.startswith(PLACEHOLDER_PREFIX)


def extract_shape_name_from_placeholder_id(placeholder_id: str) -> Optional[str]:
    """``placeholder-front-doors-1a2b3c4d`` -> ``front-doors``; ``None`` if malformed."""
    if not is_placeholder(placeholder_id):
        return None
    parts = placeholder_id[len(PLACEHOLDER_PREFIX):].split("-")
    if len(parts) < 2 or not _SUFFIX_RE.match(parts[-1]):
        return None
    name = "-".join(parts[:-1])
    return name or None


def find_placeholders_in_xml(xml: str) -> list[PlaceholderRef]:
    refs: list[PlaceholderRef] = []
    for match in _PLACEHOLDER_CELL_RE.finditer(xml):
        cell_id = match.group(1)
        if not is_placeholder(cell_id):
            continue
        shape_name = extract_shape_name_from_placeholder_id(cell_id)
        if shape_name:
            refs.append(PlaceholderRef(cell_id, shape_name))
    return refs


def _style_image_uri(image: str) -> str:
    # ';' delimits style tokens, so draw.io stores base64 data URIs without ';base64'
    return _BASE64_DATA_URI_RE.sub(r"data:\1,", image)


def resolved_style(resolved: ResolvedShape) -> str:
    """Final style for a resolved placeholder: marker dropped, image applied."""
    style = resolved.style
    if PLACEHOLDER_MARKER in style:
        style = remove_marker(style, PLACEHOLDER_MARKER)
    if resolved.image:
        style = StyleBuilder(style).image(_style_image_uri(resolved.image)).build()
    return style


def resolve_placeholders_in_xml(xml: str, resolver: ShapeResolver) -> Union[str, StructuredError]:
    """Rewrite every placeholder's style in ``xml`` using ``resolver``.

    Every placeholder is attempted.  If any could not be resolved, a single
    ``PLACEHOLDER_RESOLUTION_FAILED`` error listing all of them is returned
    and ``xml`` should be considered unresolved.
    """
    failures: list[dict[str, str]] = []
    updated = xml
    for ref in find_placeholders_in_xml(xml):
        resolved = resolver(ref.shape_name, ref.id)
        if resolved is None:
            failures.append({"placeholder_id": ref.id, "shape_name": ref.shape_name})
            continue
        new_style = escape_attr(resolved_style(resolved))
        pattern = re.compile(
            r'(<mxCell\s+id="' + re.escape(ref.id) + r'"[^>]*?)style="[^"]*'
            + re.escape(PLACEHOLDER_MARKER) + r'[^"]*"'
        )
        updated = pattern.sub(lambda m: f'{m.group(1)}style="{new_style}"', updated)

    if failures:
        logger.warning("Could not resolve %d placeholder(s): %s", len(failures),
                       ", ".join(f["shape_name"] for f in failures))
        return StructuredError(
            code="PLACEHOLDER_RESOLUTION_FAILED",
            message=f"Failed to resolve {len(failures)} placeholder(s)",
            suggestion="Check the shape names with inspect(action='shapes')",
            details=failures,
        )
    return updated


def strip_image_from_style(style: str) -> str:
    """Drop ``image=...`` tokens, keeping the rest of the style."""
    stripped = _IMAGE_TOKEN_RE.sub("", style)
    stripped = re.sub(r";;+", ";", stripped)
    return stripped.strip(";")
