"""Public API for plantsketch."""
from .plantsketch import DiagramKind, RenderFailure, build_diagram, classify, normalize_lines, render

__all__ = ["render", "classify", "build_diagram", "normalize_lines", "DiagramKind", "RenderFailure"]
