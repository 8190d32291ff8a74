"""PlantUML subset to SVG renderer."""
from __future__ import annotations

import logging
from typing import List, Sequence

from .classifier import DiagramKind, classify
from .diagrams import DIAGRAM_TYPES, Diagram

logger = logging.getLogger(__name__)


class RenderFailure(RuntimeError):
    """Raised when building a diagram fails unexpectedly."""


def normalize_lines(source: str) -> List[str]:
    """Split source text into trimmed, non-empty lines."""
    return [line.strip() for line in source.splitlines() if line.strip()]


def build_diagram(lines: Sequence[str]) -> Diagram:
    kind = classify(lines)
    return DIAGRAM_TYPES[kind].from_lines(lines)


def render(source: str) -> str:
    """Render PlantUML-style source to a standalone SVG document string.

    Unrecognised lines and dangling references are skipped; input that matches
    no diagram kind renders a generic placeholder panel. Any unexpected fault
    raised while classifying, parsing, laying out or emitting is re-raised as
    :class:`RenderFailure`.
    """
    try:
        lines = normalize_lines(source)
        diagram = build_diagram(lines)
        logger.debug("rendering %s diagram from %d lines", diagram.kind.value, len(lines))
        return diagram.to_svg()
    except Exception as exc:
        raise RenderFailure(f"Failed to render PlantUML: {exc}") from exc


__all__ = ["DiagramKind", "RenderFailure", "build_diagram", "classify", "normalize_lines", "render"]
