"""Diagram kind detection.

The rules below are evaluated top to bottom and the first predicate that
matches decides the kind. Several rules can match the same source (component
and class diagrams both contain arrows, for example), so the order of
``RULES`` is part of the contract.
"""
from __future__ import annotations

import enum
import logging
from typing import Callable, Sequence, Tuple

logger = logging.getLogger(__name__)


class DiagramKind(enum.Enum):
    SEQUENCE = "sequence"
    CLASS = "class"
    USECASE = "usecase"
    ACTIVITY = "activity"
    COMPONENT = "component"
    MINDMAP = "mindmap"
    GANTT = "gantt"
    GENERIC = "generic"


Predicate = Callable[[str], bool]


def _any_of(*tokens: str) -> Predicate:
    return lambda code: any(token in code for token in tokens)


def _is_component(code: str) -> bool:
    return "package" in code and "[" in code and "]" in code


def _is_activity(code: str) -> bool:
    return ("start" in code and "stop" in code) or "if (" in code or "endif" in code


RULES: Tuple[Tuple[Predicate, DiagramKind], ...] = (
    (_any_of("@startmindmap", "@endmindmap"), DiagramKind.MINDMAP),
    (_any_of("@startgantt", "@endgantt"), DiagramKind.GANTT),
    (_is_component, DiagramKind.COMPONENT),
    (_any_of("class ", "<|--", "--|>"), DiagramKind.CLASS),
    (_any_of("actor", "usecase", "rectangle"), DiagramKind.USECASE),
    (_is_activity, DiagramKind.ACTIVITY),
    (_any_of("->", "<-", "-->", "<--", "participant"), DiagramKind.SEQUENCE),
)


def classify(lines: Sequence[str]) -> DiagramKind:
    """Return the diagram kind for already normalized source lines."""
    code = " ".join(lines).lower()
    for predicate, kind in RULES:
        if predicate(code):
            logger.debug("classified %d lines as %s", len(lines), kind.value)
            return kind
    logger.debug("no rule matched %d lines, using generic", len(lines))
    return DiagramKind.GENERIC
