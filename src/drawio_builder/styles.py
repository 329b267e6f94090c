"""
Style strings, presets and the basic shape catalog.

draw.io styles are semicolon-delimited ``key=value`` tokens, optionally
mixed with bare shape names (``ellipse;whiteSpace=wrap;html=1;``).  The
cell store treats a style as opaque text; only the few markers it cares
about (container, placeholder, image) are inspected or rewritten here.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional


CONTAINER_MARKER = "container=1"
PLACEHOLDER_MARKER = "placeholder=1"


# ---------------------------------------------------------------------------
# Style builder
# ---------------------------------------------------------------------------

class StyleBuilder:
    """Order-preserving editor for semicolon-delimited draw.io style strings."""

    def __init__(self, base: str = "") -> None:
        # (key, value) pairs; bare tokens such as "ellipse" carry value None
        self._tokens: list[tuple[str, Optional[str]]] = []
        if base:
            self._parse(base)

    def _parse(self, raw: str) -> None:
        tokens = [t.strip() for t in raw.split(";") if t.strip()]
        for tok in tokens:
            if "=" in tok:
                k, v = tok.split("=", 1)
                self.set(k, v)
            else:
                self._tokens.append((tok, None))

    def get(self, key: str) -> Optional[str]:
        for k, v in self._tokens:
            if k == key and v is not None:
                return v
        return None

    def set(self, key: str, value: str) -> StyleBuilder:
        for i, (k, v) in enumerate(self._tokens):
            if k == key and v is not None:
                self._tokens[i] = (key, value)
                return self
        self._tokens.append((key, value))
        return self

    def remove(self, key: str) -> StyleBuilder:
        self._tokens = [(k, v) for k, v in self._tokens if k != key]
        return self

    # -- markers --

    def shape(self, name: str) -> StyleBuilder:
        return self.set("shape", name)

    def image(self, url: str) -> StyleBuilder:
        if self.get("shape") is None:
            self.shape("image")
        return self.set("image", url)

    # -- build --

    def build(self) -> str:
        if not self._tokens:
            return ""
        parts = [k if v is None else f"{k}={v}" for k, v in self._tokens]
        return ";".join(parts) + ";"


def append_marker(style: str, marker: str) -> str:
    """Append ``marker`` to ``style`` once, keeping the rest of the text intact."""
    if marker in style:
        return style
    if style and not style.endswith(";"):
        style += ";"
    return f"{style}{marker};"


def remove_marker(style: str, marker: str) -> str:
    """Drop every occurrence of the ``marker`` token from ``style``."""
    key = marker.split("=", 1)[0]
    return StyleBuilder(style).remove(key).build()


def is_container_style(style: str) -> bool:
    """Whether an imported style marks its cell as a group."""
    return CONTAINER_MARKER in style or "swimlane" in style.lower()


def ensure_container(style: str) -> str:
    return append_marker(style, CONTAINER_MARKER)


# ---------------------------------------------------------------------------
# Defaults and presets
# ---------------------------------------------------------------------------

class DefaultStyle:
    """Styles applied when a caller does not supply one."""

    VERTEX = "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;"
    EDGE = "edgeStyle=orthogonalEdgeStyle;rounded=0;orthogonalLoop=1;jettySize=auto;html=1;"
    GROUP = (
        "rounded=1;whiteSpace=wrap;html=1;fillColor=#f5f5f5;strokeColor=#666666;"
        "dashed=1;container=1;collapsible=0;"
    )


STYLE_PRESETS: dict[str, dict[str, str]] = {
    "azure": {
        "primary": "fillColor=#0078D4;strokeColor=#0078D4;fontColor=#ffffff;",
        "secondary": "fillColor=#50E6FF;strokeColor=#0078D4;fontColor=#000000;",
        "container": "fillColor=#E6F2FA;strokeColor=#0078D4;rounded=1;dashed=1;",
    },
    "flowchart": {
        "process": "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;",
        "decision": "rhombus;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;",
        "start": "ellipse;whiteSpace=wrap;html=1;fillColor=#d5e8d4;strokeColor=#82b366;",
        "end": "ellipse;whiteSpace=wrap;html=1;fillColor=#f8cecc;strokeColor=#b85450;",
        "data": "shape=parallelogram;whiteSpace=wrap;html=1;fillColor=#e1d5e7;strokeColor=#9673a6;",
    },
    "general": {
        "blue": "fillColor=#dae8fc;strokeColor=#6c8ebf;",
        "green": "fillColor=#d5e8d4;strokeColor=#82b366;",
        "orange": "fillColor=#ffe6cc;strokeColor=#d79b00;",
        "red": "fillColor=#f8cecc;strokeColor=#b85450;",
        "purple": "fillColor=#e1d5e7;strokeColor=#9673a6;",
        "yellow": "fillColor=#fff2cc;strokeColor=#d6b656;",
        "gray": "fillColor=#f5f5f5;strokeColor=#666666;",
    },
    "edges": {
        "solid": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;",
        "dashed": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;dashed=1;",
        "curved": "edgeStyle=orthogonalEdgeStyle;rounded=1;html=1;",
        "arrow": "edgeStyle=orthogonalEdgeStyle;rounded=0;html=1;endArrow=block;endFill=1;",
    },
}


# ---------------------------------------------------------------------------
# Basic shape catalog
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BasicShape:
    name: str
    style: str
    default_width: float
    default_height: float

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "style": self.style,
            "width": self.default_width,
            "height": self.default_height,
        }


@dataclass
class ResolvedShape:
    """What a shape resolver hands back for one placeholder."""
    style: str
    image: Optional[str] = None


def _shape(name: str, style: str, w: float, h: float) -> tuple[str, BasicShape]:
    return name, BasicShape(name, style, w, h)


BASIC_SHAPES: dict[str, BasicShape] = dict([
    _shape("rectangle", "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;", 200, 100),
    _shape("rounded", "whiteSpace=wrap;html=1;rounded=1;fillColor=#d5e8d4;strokeColor=#82b366;", 200, 100),
    _shape("ellipse", "ellipse;whiteSpace=wrap;html=1;fillColor=#ffe6cc;strokeColor=#d79b00;", 120, 80),
    _shape("diamond", "rhombus;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;", 120, 80),
    _shape("circle", "ellipse;whiteSpace=wrap;html=1;aspect=fixed;fillColor=#f8cecc;strokeColor=#b85450;", 80, 80),
    _shape("process", "whiteSpace=wrap;html=1;fillColor=#dae8fc;strokeColor=#6c8ebf;", 200, 100),
    _shape("decision", "rhombus;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;", 120, 80),
    _shape("start", "ellipse;whiteSpace=wrap;html=1;fillColor=#d5e8d4;strokeColor=#82b366;", 120, 80),
    _shape("end", "ellipse;whiteSpace=wrap;html=1;fillColor=#f8cecc;strokeColor=#b85450;", 120, 80),
    _shape("parallelogram", "shape=parallelogram;whiteSpace=wrap;html=1;fillColor=#e1d5e7;strokeColor=#9673a6;", 200, 100),
    _shape(
        "hexagon",
        "shape=hexagon;perimeter=hexagonPerimeter2;whiteSpace=wrap;html=1;fillColor=#ffe6cc;strokeColor=#d79b00;",
        120, 80,
    ),
    _shape(
        "cylinder",
        "shape=cylinder3;whiteSpace=wrap;html=1;boundedLbl=1;backgroundOutline=1;size=15;"
        "fillColor=#dae8fc;strokeColor=#6c8ebf;",
        80, 100,
    ),
    _shape("triangle", "triangle;whiteSpace=wrap;html=1;fillColor=#fff2cc;strokeColor=#d6b656;", 80, 100),
])

BASIC_SHAPE_CATEGORIES: dict[str, list[str]] = {
    "general": ["rectangle", "rounded", "ellipse", "diamond", "circle", "hexagon", "cylinder", "triangle"],
    "flowchart": ["process", "decision", "start", "end", "parallelogram"],
}


def _shape_key(name: str) -> str:
    return re.sub(r"[\s_]+", "-", name.strip().lower())


def get_basic_shape(name: str) -> Optional[BasicShape]:
    """Exact, case-insensitive catalog lookup."""
    return BASIC_SHAPES.get(_shape_key(name))


def resolve_basic_shape(shape_name: str, placeholder_id: str) -> Optional[ResolvedShape]:
    """Default placeholder resolver backed by :data:`BASIC_SHAPES`."""
    shape = get_basic_shape(shape_name)
    if shape is None:
        return None
    return ResolvedShape(style=shape.style)
