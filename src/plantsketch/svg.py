"""SVG document building blocks shared by every diagram kind."""
from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from PIL import ImageFont

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)

FONT_FAMILY = "Arial, sans-serif"

ARROWHEAD = "arrowhead"
INHERITANCE = "inheritance"


@dataclass(frozen=True)
class Canvas:
    width: float
    height: float


class TextMeasurer:
    """Label widths from Pillow's bundled font.

    Only the font shipped inside Pillow is used, so widths do not depend on
    the fonts installed on the machine. Instances are created per layout and
    cache fonts by size for that layout only.
    """

    def __init__(self) -> None:
        self._fonts: Dict[int, ImageFont.FreeTypeFont] = {}

    def font(self, size: float) -> ImageFont.FreeTypeFont:
        key_size = max(1, int(round(size)))
        if key_size not in self._fonts:
            self._fonts[key_size] = ImageFont.load_default(size=key_size)
        return self._fonts[key_size]

    def measure(self, text: str, size: float) -> float:
        return float(self.font(size).getlength(text))


def _q(tag: str) -> str:
    return f"{{{SVG_NS}}}{tag}"


def _fmt(value: float) -> str:
    if math.isclose(value, round(value)):
        return str(int(round(value)))
    return f"{value:.3f}".rstrip("0").rstrip(".")


def _attrs(values: Dict[str, object]) -> Dict[str, str]:
    out: Dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, (int, float)):
            value = _fmt(float(value))
        out[key.replace("_", "-")] = str(value)
    return out


def _arrowhead_marker() -> ET.Element:
    marker = ET.Element(
        _q("marker"),
        {
            "id": ARROWHEAD,
            "markerWidth": "10",
            "markerHeight": "7",
            "refX": "9",
            "refY": "3.5",
            "orient": "auto-start-reverse",
        },
    )
    ET.SubElement(marker, _q("polygon"), {"points": "0 0, 10 3.5, 0 7", "fill": "#333"})
    return marker


def _inheritance_marker() -> ET.Element:
    marker = ET.Element(
        _q("marker"),
        {
            "id": INHERITANCE,
            "markerWidth": "12",
            "markerHeight": "12",
            "refX": "10",
            "refY": "6",
            "orient": "auto",
        },
    )
    ET.SubElement(
        marker,
        _q("polygon"),
        {"points": "0 0, 10 6, 0 12", "fill": "white", "stroke": "#333", "stroke-width": "1"},
    )
    return marker


_MARKER_FACTORIES = {
    ARROWHEAD: _arrowhead_marker,
    INHERITANCE: _inheritance_marker,
}


def new_document(canvas: Canvas, markers: Iterable[str] = (ARROWHEAD,)) -> ET.Element:
    """Create the ``<svg>`` root: size, marker definitions and background."""
    if canvas.width <= 0 or canvas.height <= 0:
        raise ValueError(f"canvas must be positive, got {canvas.width}x{canvas.height}")
    root = ET.Element(
        _q("svg"),
        {
            "width": _fmt(canvas.width),
            "height": _fmt(canvas.height),
            "viewBox": f"0 0 {_fmt(canvas.width)} {_fmt(canvas.height)}",
        },
    )
    defs = ET.SubElement(root, _q("defs"))
    wanted = [ARROWHEAD] + [name for name in markers if name != ARROWHEAD]
    for name in wanted:
        defs.append(_MARKER_FACTORIES[name]())
    ET.SubElement(
        root,
        _q("rect"),
        {
            "width": "100%",
            "height": "100%",
            "fill": "white",
            "stroke": "#ddd",
            "stroke-width": "1",
        },
    )
    return root


def group(parent: ET.Element, css_class: str, **attrs: object) -> ET.Element:
    return ET.SubElement(parent, _q("g"), _attrs({"class": css_class, **attrs}))


def shape(parent: ET.Element, tag: str, **attrs: object) -> ET.Element:
    return ET.SubElement(parent, _q(tag), _attrs(attrs))


def line(
    parent: ET.Element,
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    *,
    stroke: str = "#333",
    dashed: bool = False,
    marker_start: Optional[str] = None,
    marker_end: Optional[str] = None,
) -> ET.Element:
    return shape(
        parent,
        "line",
        x1=x1,
        y1=y1,
        x2=x2,
        y2=y2,
        stroke=stroke,
        stroke_width=2,
        stroke_dasharray="5,5" if dashed else None,
        marker_start=f"url(#{marker_start})" if marker_start else None,
        marker_end=f"url(#{marker_end})" if marker_end else None,
    )


def text(
    parent: ET.Element,
    x: float,
    y: float,
    content: str,
    *,
    size: float = 12,
    anchor: Optional[str] = "middle",
    bold: bool = False,
    fill: Optional[str] = None,
) -> ET.Element:
    node = shape(
        parent,
        "text",
        x=x,
        y=y,
        text_anchor=anchor,
        font_family=FONT_FAMILY,
        font_size=size,
        font_weight="bold" if bold else None,
        fill=fill,
    )
    node.text = content
    return node


def polygon(parent: ET.Element, points: Iterable[Tuple[float, float]], **attrs: object) -> ET.Element:
    joined = " ".join(f"{_fmt(x)},{_fmt(y)}" for x, y in points)
    return shape(parent, "polygon", points=joined, **attrs)


def to_string(root: ET.Element) -> str:
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode")


__all__ = [
    "ARROWHEAD",
    "INHERITANCE",
    "SVG_NS",
    "Canvas",
    "group",
    "line",
    "TextMeasurer",
    "new_document",
    "polygon",
    "shape",
    "text",
    "to_string",
]
