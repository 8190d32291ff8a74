"""Per-kind parsers, layouts and SVG emitters.

Every diagram kind is a dataclass built from normalized source lines with
``from_lines``. ``layout`` is pure and returns the computed geometry, and
``to_svg`` draws that geometry as a standalone SVG document. Entities are
always drawn before relations so that connecting lines sit on top.
"""
from __future__ import annotations

import abc
import logging
import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Type

from . import svg
from .classifier import DiagramKind
from .svg import Canvas

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


@dataclass(frozen=True)
class Box:
    x: float
    y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


def _body(lines: Sequence[str]) -> List[str]:
    return [line for line in lines if line and not line.startswith("@")]


class Diagram(abc.ABC):
    """Shared ``lines -> svg`` contract of the diagram kinds."""

    kind: ClassVar[DiagramKind]
    markers: ClassVar[Tuple[str, ...]] = (svg.ARROWHEAD,)

    @classmethod
    @abc.abstractmethod
    def from_lines(cls, lines: Sequence[str]) -> "Diagram":
        ...

    @abc.abstractmethod
    def layout(self):
        ...

    @abc.abstractmethod
    def draw(self, root: ET.Element, layout) -> None:
        ...

    def to_svg(self) -> str:
        layout = self.layout()
        root = svg.new_document(layout.canvas, self.markers)
        self.draw(root, layout)
        return svg.to_string(root)


# =============================================================================
# Sequence
# =============================================================================

_SEQUENCE_ARROW = re.compile(r"^(\w+)\s*(-->|<--|->|<-)\s*(\w+)\s*(?::\s*(.*))?$")
_PARTICIPANT = re.compile(r"^(?:participant|actor|boundary|control|entity|database)\s+(\w+)")

SEQUENCE_MIN_WIDTH = 600
PARTICIPANT_SPACING = 150
INTERACTION_SPACING = 60


@dataclass(frozen=True)
class Interaction:
    source: str
    target: str
    arrow: str
    message: str = ""

    @property
    def dashed(self) -> bool:
        return "--" in self.arrow

    @property
    def rightward(self) -> bool:
        return "->" in self.arrow


@dataclass(frozen=True)
class SequenceLayout:
    canvas: Canvas
    participant_x: Mapping[str, float]
    interaction_y: Tuple[float, ...]


@dataclass
class SequenceDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.SEQUENCE

    participants: List[str] = field(default_factory=list)
    interactions: List[Interaction] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "SequenceDiagram":
        diagram = cls()
        for line in _body(lines):
            declared = _PARTICIPANT.match(line)
            if declared:
                diagram._add_participant(declared.group(1))
                continue
            match = _SEQUENCE_ARROW.match(line)
            if match is None:
                continue
            source, arrow, target, message = match.groups()
            diagram._add_participant(source)
            diagram._add_participant(target)
            diagram.interactions.append(Interaction(source, target, arrow, (message or "").strip()))
        logger.debug(
            "sequence: %d participants, %d interactions",
            len(diagram.participants),
            len(diagram.interactions),
        )
        return diagram

    def _add_participant(self, name: str) -> None:
        if name not in self.participants:
            self.participants.append(name)

    def layout(self) -> SequenceLayout:
        width = max(SEQUENCE_MIN_WIDTH, len(self.participants) * PARTICIPANT_SPACING)
        height = 200 + len(self.interactions) * INTERACTION_SPACING
        positions = {
            name: 100 + index * PARTICIPANT_SPACING for index, name in enumerate(self.participants)
        }
        rows = tuple(100 + index * INTERACTION_SPACING for index in range(len(self.interactions)))
        return SequenceLayout(Canvas(width, height), MappingProxyType(positions), rows)

    def draw(self, root: ET.Element, layout: SequenceLayout) -> None:
        bottom = layout.canvas.height - 20
        for name in self.participants:
            x = layout.participant_x[name]
            node = svg.group(root, "entity participant")
            svg.shape(
                node, "rect", x=x - 40, y=20, width=80, height=40,
                fill="#e3f2fd", stroke="#1976d2", stroke_width=2, rx=5,
            )
            svg.text(node, x, 45, name, size=14, bold=True)
            svg.line(node, x, 60, x, bottom, stroke="#ddd", dashed=True)

        for interaction, y in zip(self.interactions, layout.interaction_y):
            from_x = layout.participant_x.get(interaction.source)
            to_x = layout.participant_x.get(interaction.target)
            if from_x is None or to_x is None:
                continue
            edge = svg.group(root, "relation interaction")
            svg.line(
                edge, from_x, y, to_x, y,
                dashed=interaction.dashed,
                marker_end=svg.ARROWHEAD if interaction.rightward else None,
                marker_start=None if interaction.rightward else svg.ARROWHEAD,
            )
            if interaction.message:
                svg.text(edge, (from_x + to_x) / 2, y - 10, interaction.message)


# =============================================================================
# Class
# =============================================================================

_CLASS_DECL = re.compile(r"^class\s+(\w+)")
_CLASS_RELATION = re.compile(r"(\w+)\s*(<\|--|--\|>|<--|-->)\s*(\w+)")

CLASS_MIN_WIDTH = 200
CLASS_GAP = 50
CLASS_LEFT = 50
CLASS_TOP = 50
CLASS_HEADER = 30
CLASS_ROW = 20
CLASS_ANCHOR_Y = 150


@dataclass
class ClassDecl:
    name: str
    attributes: List[str] = field(default_factory=list)
    methods: List[str] = field(default_factory=list)

    @property
    def member_count(self) -> int:
        return len(self.attributes) + len(self.methods)


@dataclass(frozen=True)
class Relationship:
    left: str
    relation: str
    right: str

    @property
    def inheritance(self) -> bool:
        return "|" in self.relation

    @property
    def endpoints(self) -> Tuple[str, str]:
        """(source, target) in the direction the arrowhead points."""
        if self.relation.startswith("<"):
            return self.right, self.left
        return self.left, self.right


@dataclass(frozen=True)
class ClassLayout:
    canvas: Canvas
    boxes: Mapping[str, Box]

    def anchor(self, name: str) -> Optional[Point]:
        box = self.boxes.get(name)
        if box is None:
            return None
        return (box.center[0], CLASS_ANCHOR_Y)


@dataclass
class ClassDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.CLASS
    markers: ClassVar[Tuple[str, ...]] = (svg.ARROWHEAD, svg.INHERITANCE)

    classes: List[ClassDecl] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "ClassDiagram":
        diagram = cls()
        by_name: Dict[str, ClassDecl] = {}
        current: Optional[ClassDecl] = None
        for line in _body(lines):
            opened = _CLASS_DECL.match(line)
            if opened:
                name = opened.group(1)
                current = by_name.get(name)
                if current is None:
                    current = by_name[name] = ClassDecl(name)
                    diagram.classes.append(current)
                continue
            if line == "}":
                current = None
                continue
            if current is not None and line != "{":
                if "(" in line and ")" in line:
                    current.methods.append(line)
                elif "class" not in line:
                    current.attributes.append(line)
            related = _CLASS_RELATION.search(line)
            if related:
                diagram.relationships.append(Relationship(*related.groups()))
        logger.debug(
            "class: %d classes, %d relationships",
            len(diagram.classes),
            len(diagram.relationships),
        )
        return diagram

    def layout(self) -> ClassLayout:
        measurer = svg.TextMeasurer()
        boxes: Dict[str, Box] = {}
        x = float(CLASS_LEFT)
        tallest = 0.0
        for decl in self.classes:
            labels = [(decl.name, 14.0)] + [(member, 12.0) for member in decl.attributes + decl.methods]
            widest = max(measurer.measure(label, size) for label, size in labels)
            width = max(CLASS_MIN_WIDTH, math.ceil(widest + 20))
            height = 80 + decl.member_count * CLASS_ROW
            boxes[decl.name] = Box(x, CLASS_TOP, width, height)
            x += width + CLASS_GAP
            tallest = max(tallest, height)
        count = len(self.classes)
        width = max(800, count * 250, x)
        height = max(400 + max(0, count - 2) * 100, tallest + 100)
        return ClassLayout(Canvas(width, height), MappingProxyType(boxes))

    def draw(self, root: ET.Element, layout: ClassLayout) -> None:
        for decl in self.classes:
            box = layout.boxes[decl.name]
            node = svg.group(root, "entity class")
            svg.shape(
                node, "rect", x=box.x, y=box.y, width=box.width, height=box.height,
                fill="#fff3e0", stroke="#f57c00", stroke_width=2,
            )
            svg.shape(node, "rect", x=box.x, y=box.y, width=box.width, height=CLASS_HEADER, fill="#f57c00")
            svg.text(node, box.center[0], box.y + 20, decl.name, size=14, bold=True, fill="white")

            text_y = box.y + 50
            for attribute in decl.attributes:
                svg.text(node, box.x + 10, text_y, attribute, anchor=None)
                text_y += CLASS_ROW
            if decl.attributes and decl.methods:
                svg.shape(
                    node, "line", x1=box.x, y1=text_y, x2=box.right, y2=text_y,
                    stroke="#f57c00", stroke_width=1,
                )
                text_y += 10
            for method in decl.methods:
                svg.text(node, box.x + 10, text_y, method, anchor=None)
                text_y += CLASS_ROW

        for relationship in self.relationships:
            source, target = relationship.endpoints
            start = layout.anchor(source)
            end = layout.anchor(target)
            if start is None or end is None:
                logger.debug(
                    "class: dropping relationship %s %s %s",
                    relationship.left,
                    relationship.relation,
                    relationship.right,
                )
                continue
            edge = svg.group(root, "relation inheritance" if relationship.inheritance else "relation association")
            svg.line(
                edge, start[0], start[1], end[0], end[1],
                marker_end=svg.INHERITANCE if relationship.inheritance else svg.ARROWHEAD,
            )


# =============================================================================
# Use case
# =============================================================================

_ACTOR = re.compile(r"^actor\s+(\w+)")
_USECASE = re.compile(r"\(([^)]+)\)")
_LINK_ACTOR_FIRST = re.compile(r"^(\w+)\s*--\s*\(([^)]+)\)")
_LINK_USECASE_FIRST = re.compile(r"^\(([^)]+)\)\s*--\s*(\w+)\s*$")

ACTOR_X = 100
USECASE_X = 400


@dataclass(frozen=True)
class ActorLink:
    actor: str
    usecase: str


@dataclass(frozen=True)
class UseCaseLayout:
    canvas: Canvas
    actors: Mapping[str, Point]
    usecases: Mapping[str, Point]


@dataclass
class UseCaseDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.USECASE

    actors: List[str] = field(default_factory=list)
    usecases: List[str] = field(default_factory=list)
    links: List[ActorLink] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "UseCaseDiagram":
        diagram = cls()
        for line in _body(lines):
            actor = _ACTOR.match(line)
            if actor:
                if actor.group(1) not in diagram.actors:
                    diagram.actors.append(actor.group(1))
                continue
            for label in _USECASE.findall(line):
                if label not in diagram.usecases:
                    diagram.usecases.append(label)
            link = _LINK_ACTOR_FIRST.match(line)
            if link:
                diagram.links.append(ActorLink(link.group(1), link.group(2)))
                continue
            link = _LINK_USECASE_FIRST.match(line)
            if link:
                diagram.links.append(ActorLink(link.group(2), link.group(1)))
        logger.debug(
            "usecase: %d actors, %d use cases, %d links",
            len(diagram.actors),
            len(diagram.usecases),
            len(diagram.links),
        )
        return diagram

    def layout(self) -> UseCaseLayout:
        actors = {name: (ACTOR_X, 100 + index * 100) for index, name in enumerate(self.actors)}
        usecases = {label: (USECASE_X, 100 + index * 80) for index, label in enumerate(self.usecases)}
        column = max(len(self.actors) * 100, len(self.usecases) * 80)
        canvas = Canvas(800, max(600, 100 + column + 100))
        return UseCaseLayout(canvas, MappingProxyType(actors), MappingProxyType(usecases))

    def draw(self, root: ET.Element, layout: UseCaseLayout) -> None:
        for name in self.actors:
            x, y = layout.actors[name]
            node = svg.group(root, "entity actor")
            svg.shape(node, "circle", cx=x, cy=y, r=15, fill="#ffeb3b", stroke="#f57f17", stroke_width=2)
            svg.line(node, x, y + 15, x, y + 45)
            svg.line(node, x - 15, y + 25, x + 15, y + 25)
            svg.line(node, x, y + 45, x - 10, y + 65)
            svg.line(node, x, y + 45, x + 10, y + 65)
            svg.text(node, x, y + 85, name, bold=True)

        for label in self.usecases:
            x, y = layout.usecases[label]
            node = svg.group(root, "entity usecase")
            svg.shape(node, "ellipse", cx=x, cy=y, rx=80, ry=30, fill="#e8f5e8", stroke="#4caf50", stroke_width=2)
            svg.text(node, x, y + 5, label)

        for link in self.links:
            actor = layout.actors.get(link.actor)
            usecase = layout.usecases.get(link.usecase)
            if actor is None or usecase is None:
                continue
            edge = svg.group(root, "relation link")
            svg.line(edge, actor[0] + 15, actor[1], usecase[0] - 80, usecase[1])


# =============================================================================
# Activity
# =============================================================================

_DECISION = re.compile(r"^if\s*\(([^)]+)\)")
_ACTIVITY = re.compile(r"^:(.*);$")

ACTIVITY_FIRST_Y = 50
ACTIVITY_SPACING = 80


@dataclass(frozen=True)
class ActivityStep:
    label: str
    decision: bool = False


@dataclass(frozen=True)
class ActivityNode:
    role: str
    label: str
    y: float
    half_width: float
    half_height: float


@dataclass(frozen=True)
class ActivityLayout:
    canvas: Canvas
    center_x: float
    nodes: Tuple[ActivityNode, ...]

    @property
    def connectors(self) -> List[Tuple[Point, Point]]:
        return [
            ((self.center_x, upper.y + upper.half_height), (self.center_x, lower.y - lower.half_height))
            for upper, lower in zip(self.nodes, self.nodes[1:])
        ]


@dataclass
class ActivityDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.ACTIVITY

    has_start: bool = False
    has_stop: bool = False
    steps: List[ActivityStep] = field(default_factory=list)

    @property
    def activities(self) -> List[str]:
        return [step.label for step in self.steps if not step.decision]

    @property
    def decisions(self) -> List[str]:
        return [step.label for step in self.steps if step.decision]

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "ActivityDiagram":
        diagram = cls()
        for line in _body(lines):
            decision = _DECISION.match(line)
            activity = _ACTIVITY.match(line)
            if line == "start":
                diagram.has_start = True
            elif line in ("stop", "end"):
                diagram.has_stop = True
            elif decision:
                diagram.steps.append(ActivityStep(decision.group(1).strip(), decision=True))
            elif activity:
                diagram.steps.append(ActivityStep(activity.group(1).strip()))
        logger.debug(
            "activity: %d steps, start=%s, stop=%s",
            len(diagram.steps),
            diagram.has_start,
            diagram.has_stop,
        )
        return diagram

    def layout(self) -> ActivityLayout:
        measurer = svg.TextMeasurer()
        placed: List[Tuple[str, str, float, float]] = []
        current = float(ACTIVITY_FIRST_Y)
        if self.has_start:
            placed.append(("start", "START", current, 15.0))
            current += 60
        for step in self.steps:
            if step.decision:
                half_width = max(40.0, measurer.measure(step.label, 10) / 2 + 15)
                placed.append(("decision", step.label, current, half_width))
            else:
                half_width = max(80.0, (measurer.measure(step.label, 12) + 20) / 2)
                placed.append(("activity", step.label, current, half_width))
            current += ACTIVITY_SPACING
        if self.has_stop:
            placed.append(("stop", "STOP", current, 15.0))

        widest = max([half_width * 2 for _, _, _, half_width in placed], default=0.0)
        width = max(400.0, math.ceil(widest + 80))
        height = (
            100
            + len(self.steps) * ACTIVITY_SPACING
            + (50 if self.has_start else 0)
            + (50 if self.has_stop else 0)
        )
        nodes = tuple(
            ActivityNode(role, label, y, half_width, 15.0 if role in ("start", "stop") else 20.0)
            for role, label, y, half_width in placed
        )
        return ActivityLayout(Canvas(width, height), width / 2, nodes)

    def draw(self, root: ET.Element, layout: ActivityLayout) -> None:
        cx = layout.center_x
        for node in layout.nodes:
            y = node.y
            group = svg.group(root, f"entity {node.role}")
            if node.role in ("start", "stop"):
                fill, stroke = ("#4caf50", "#2e7d32") if node.role == "start" else ("#f44336", "#c62828")
                svg.shape(group, "circle", cx=cx, cy=y, r=15, fill=fill, stroke=stroke, stroke_width=2)
                svg.text(group, cx, y + 5, node.label, size=10, fill="white")
            elif node.role == "decision":
                w = node.half_width
                svg.polygon(
                    group,
                    [(cx, y - 20), (cx + w, y), (cx, y + 20), (cx - w, y)],
                    fill="#fff3e0", stroke="#ff9800", stroke_width=2,
                )
                svg.text(group, cx, y + 5, node.label, size=10)
            else:
                w = node.half_width
                svg.shape(
                    group, "rect", x=cx - w, y=y - 20, width=w * 2, height=40,
                    fill="#e3f2fd", stroke="#1976d2", stroke_width=2, rx=5,
                )
                svg.text(group, cx, y + 5, node.label)

        for (x1, y1), (x2, y2) in layout.connectors:
            edge = svg.group(root, "relation flow")
            svg.line(edge, x1, y1, x2, y2, marker_end=svg.ARROWHEAD)


# =============================================================================
# Component
# =============================================================================

_PACKAGE = re.compile(r'^package\s+(?:"([^"]+)"|(\w+))')
_COMPONENT = re.compile(r"\[([^\]]+)\](?:\s+as\s+(\w+))?")
_CONNECTION = re.compile(r"^(\w+|\[[^\]]+\])\s*(-->|->|--)\s*(\w+|\[[^\]]+\])(?:\s*:\s*(.+))?")

PACKAGE_SPACING = 350
PACKAGE_WIDTH = 300
PACKAGE_MIN_HEIGHT = 200
PACKAGE_TOP = 50
COMPONENT_WIDTH = 120
COMPONENT_HEIGHT = 50


@dataclass
class Component:
    name: str
    alias: str


@dataclass
class Package:
    name: Optional[str]
    components: List[Component] = field(default_factory=list)

    @property
    def rows(self) -> int:
        return (len(self.components) + 1) // 2


@dataclass(frozen=True)
class Connection:
    source: str
    arrow: str
    target: str
    label: str = ""

    @property
    def directed(self) -> bool:
        return ">" in self.arrow


@dataclass(frozen=True)
class ComponentLayout:
    canvas: Canvas
    packages: Tuple[Box, ...]
    components: Mapping[str, Box]
    positions: Mapping[str, Point]


@dataclass
class ComponentDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.COMPONENT

    packages: List[Package] = field(default_factory=list)
    standalone: Package = field(default_factory=lambda: Package(None))
    connections: List[Connection] = field(default_factory=list)
    registry: Dict[str, Component] = field(default_factory=dict)
    by_name: Dict[str, Component] = field(default_factory=dict)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "ComponentDiagram":
        diagram = cls()
        current: Optional[Package] = None
        for line in _body(lines):
            if line == "}":
                current = None
                continue
            opened = _PACKAGE.match(line)
            if opened:
                current = Package(opened.group(1) or opened.group(2))
                diagram.packages.append(current)
                continue
            connected = _CONNECTION.match(line)
            if connected:
                source, arrow, target, label = connected.groups()
                diagram.connections.append(
                    Connection(source.strip("[]"), arrow, target.strip("[]"), (label or "").strip())
                )
                continue
            declared = _COMPONENT.search(line)
            if declared:
                diagram._declare(declared.group(1), declared.group(2), current or diagram.standalone)
        logger.debug(
            "component: %d packages, %d standalone, %d connections",
            len(diagram.packages),
            len(diagram.standalone.components),
            len(diagram.connections),
        )
        return diagram

    def _declare(self, name: str, alias: Optional[str], package: Package) -> None:
        component = self.by_name.get(name)
        if component is None:
            component = Component(name, alias or name)
            package.components.append(component)
            self.by_name[name] = component
        elif alias:
            component.alias = alias
        self.registry[name] = component
        self.registry[component.alias] = component

    def layout(self) -> ComponentLayout:
        boxes: Dict[str, Box] = {}
        package_boxes: List[Box] = []
        for index, package in enumerate(self.packages):
            pkg = Box(
                50 + index * PACKAGE_SPACING,
                PACKAGE_TOP,
                PACKAGE_WIDTH,
                max(PACKAGE_MIN_HEIGHT, 60 + 70 * package.rows),
            )
            package_boxes.append(pkg)
            for slot, component in enumerate(package.components):
                boxes[component.name] = Box(
                    pkg.x + 20 + (slot % 2) * 130,
                    pkg.y + 50 + (slot // 2) * 70,
                    COMPONENT_WIDTH,
                    COMPONENT_HEIGHT,
                )

        tallest = max([pkg.height for pkg in package_boxes], default=PACKAGE_MIN_HEIGHT)
        row_y = PACKAGE_TOP + tallest + 50
        row_right = 0.0
        for slot, component in enumerate(self.standalone.components):
            box = Box(50 + slot * 150, row_y, COMPONENT_WIDTH, COMPONENT_HEIGHT)
            boxes[component.name] = box
            row_right = box.right

        bottom = row_y + COMPONENT_HEIGHT if self.standalone.components else PACKAGE_TOP + tallest
        canvas = Canvas(
            max(800, len(self.packages) * PACKAGE_SPACING, row_right + 50),
            max(600, bottom + 100),
        )
        positions = {key: boxes[component.name].center for key, component in self.registry.items()}
        return ComponentLayout(
            canvas,
            tuple(package_boxes),
            MappingProxyType(boxes),
            MappingProxyType(positions),
        )

    def draw(self, root: ET.Element, layout: ComponentLayout) -> None:
        for package, pkg in zip(self.packages, layout.packages):
            node = svg.group(root, "entity package")
            svg.shape(
                node, "rect", x=pkg.x, y=pkg.y, width=pkg.width, height=pkg.height,
                fill="#f3e5f5", stroke="#9c27b0", stroke_width=2, stroke_dasharray="5,5", rx=10,
            )
            svg.text(node, pkg.x + 10, pkg.y + 25, package.name or "", size=16, anchor=None, bold=True, fill="#9c27b0")
            for component in package.components:
                self._draw_component(node, layout.components[component.name], component, "#e8f5e8", "#4caf50")

        if self.standalone.components:
            node = svg.group(root, "entity standalone")
            for component in self.standalone.components:
                self._draw_component(node, layout.components[component.name], component, "#e3f2fd", "#2196f3")

        for connection in self.connections:
            start = layout.positions.get(connection.source)
            end = layout.positions.get(connection.target)
            if start is None or end is None:
                logger.debug("component: dropping connection %s -> %s", connection.source, connection.target)
                continue
            edge = svg.group(root, "relation connection")
            svg.line(
                edge, start[0], start[1], end[0], end[1],
                marker_end=svg.ARROWHEAD if connection.directed else None,
            )
            if connection.label:
                svg.text(edge, (start[0] + end[0]) / 2, (start[1] + end[1]) / 2 - 8, connection.label, size=11)

    @staticmethod
    def _draw_component(parent: ET.Element, box: Box, component: Component, fill: str, stroke: str) -> None:
        node = svg.group(parent, "component")
        svg.shape(
            node, "rect", x=box.x, y=box.y, width=box.width, height=box.height,
            fill=fill, stroke=stroke, stroke_width=2, rx=5,
        )
        svg.text(node, box.center[0], box.y + 30, component.name, size=11, bold=True)


# =============================================================================
# Mind map
# =============================================================================

_MINDMAP_NODE = re.compile(r"^(\*+)\s*(.+)")

PALETTE = ("#ff9800", "#2196f3", "#4caf50", "#e91e63", "#9c27b0")


def palette_color(level: int) -> str:
    return PALETTE[level % len(PALETTE)]


@dataclass(frozen=True)
class MindMapNode:
    level: int
    text: str


@dataclass(frozen=True)
class MindMapLayout:
    canvas: Canvas
    centers: Tuple[Point, ...]
    parents: Tuple[Optional[int], ...]


@dataclass
class MindMapDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.MINDMAP

    nodes: List[MindMapNode] = field(default_factory=list)

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "MindMapDiagram":
        diagram = cls()
        for line in _body(lines):
            match = _MINDMAP_NODE.match(line)
            if match:
                diagram.nodes.append(MindMapNode(len(match.group(1)), match.group(2).strip()))
        logger.debug("mindmap: %d nodes", len(diagram.nodes))
        return diagram

    def parent_of(self, index: int) -> Optional[int]:
        """Nearest earlier node one level up, or None for roots and orphans."""
        level = self.nodes[index].level
        if level <= 1:
            return None
        for candidate in range(index - 1, -1, -1):
            if self.nodes[candidate].level == level - 1:
                return candidate
        return None

    def layout(self) -> MindMapLayout:
        centers = tuple((100 + node.level * 150, 100 + index * 60) for index, node in enumerate(self.nodes))
        right = max(
            [x + 60 + node.level * 10 for (x, _), node in zip(centers, self.nodes)],
            default=0,
        )
        canvas = Canvas(max(800, right + 40), max(600, 100 + len(self.nodes) * 60 + 40))
        parents = tuple(self.parent_of(index) for index in range(len(self.nodes)))
        return MindMapLayout(canvas, centers, parents)

    def draw(self, root: ET.Element, layout: MindMapLayout) -> None:
        for node, (x, y) in zip(self.nodes, layout.centers):
            color = palette_color(node.level)
            group = svg.group(root, f"entity node level-{node.level}")
            svg.shape(
                group, "ellipse", cx=x, cy=y, rx=60 + node.level * 10, ry=25,
                fill=color, fill_opacity=0.125, stroke=color, stroke_width=2,
            )
            svg.text(group, x, y + 5, node.text, bold=True)

        for index, parent in enumerate(layout.parents):
            if parent is None:
                continue
            parent_x, parent_y = layout.centers[parent]
            x, y = layout.centers[index]
            edge = svg.group(root, "relation branch")
            svg.line(edge, parent_x + 60, parent_y, x - 60, y, stroke="#666")


# =============================================================================
# Gantt
# =============================================================================

_PROJECT_START = re.compile(r"^project starts\s+(?:the\s+)?(.+)$", re.IGNORECASE)
_TASK = re.compile(r"^\[([^\]]+)\]\s+(?:lasts|requires)\s+(\d+)\s+(days?|weeks?)", re.IGNORECASE)
_TASK_AFTER = re.compile(r"^\[([^\]]+)\]\s+starts\s+at\s+\[([^\]]+)\]'s\s+end", re.IGNORECASE)

GANTT_BAR_X = 200
PIXELS_PER_DAY = 20
TASK_SPACING = 50


@dataclass
class Task:
    name: str
    duration_days: int
    after: Optional[str] = None

    @property
    def caption(self) -> str:
        unit = "day" if self.duration_days == 1 else "days"
        caption = f"{self.duration_days} {unit}"
        if self.after:
            caption += f" (after {self.after})"
        return caption


@dataclass(frozen=True)
class GanttLayout:
    canvas: Canvas
    bars: Tuple[Box, ...]


@dataclass
class GanttDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.GANTT

    tasks: List[Task] = field(default_factory=list)
    project_start: Optional[str] = None

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "GanttDiagram":
        diagram = cls()
        by_name: Dict[str, Task] = {}
        for line in _body(lines):
            started = _PROJECT_START.match(line)
            if started:
                diagram.project_start = started.group(1).strip()
                continue
            task = _TASK.match(line)
            if task:
                name, amount, unit = task.groups()
                days = int(amount) * (7 if unit.lower().startswith("week") else 1)
                if name in by_name:
                    by_name[name].duration_days = days
                else:
                    by_name[name] = Task(name, days)
                    diagram.tasks.append(by_name[name])
                continue
            follows = _TASK_AFTER.match(line)
            if follows and follows.group(1) in by_name:
                by_name[follows.group(1)].after = follows.group(2)
        logger.debug("gantt: %d tasks, start=%r", len(diagram.tasks), diagram.project_start)
        return diagram

    def layout(self) -> GanttLayout:
        # Every bar starts at the same origin; predecessors are not scheduled.
        bars = tuple(
            Box(GANTT_BAR_X, 80 + index * TASK_SPACING, task.duration_days * PIXELS_PER_DAY, 30)
            for index, task in enumerate(self.tasks)
        )
        longest = max([bar.width for bar in bars], default=0)
        canvas = Canvas(max(800, GANTT_BAR_X + longest + 120), 100 + len(self.tasks) * TASK_SPACING)
        return GanttLayout(canvas, bars)

    def draw(self, root: ET.Element, layout: GanttLayout) -> None:
        header = svg.group(root, "entity header")
        svg.text(header, layout.canvas.width / 2, 30, "Gantt Chart", size=16, bold=True)
        if self.project_start:
            svg.text(header, 50, 50, f"Start: {self.project_start}", anchor=None)

        for task, bar in zip(self.tasks, layout.bars):
            node = svg.group(root, "entity task")
            svg.shape(
                node, "rect", x=bar.x, y=bar.y, width=bar.width, height=bar.height,
                fill="#4caf50", stroke="#2e7d32", stroke_width=1,
            )
            svg.text(node, 50, bar.y + 20, task.name, anchor=None)
            svg.text(node, bar.right + 10, bar.y + 20, task.caption, size=10, anchor=None)


# =============================================================================
# Generic fallback
# =============================================================================


@dataclass(frozen=True)
class GenericLayout:
    canvas: Canvas


@dataclass
class GenericDiagram(Diagram):
    kind: ClassVar[DiagramKind] = DiagramKind.GENERIC

    line_count: int = 0

    @classmethod
    def from_lines(cls, lines: Sequence[str]) -> "GenericDiagram":
        return cls(len(lines))

    @property
    def summary(self) -> str:
        return f"{self.line_count} lines of PlantUML code detected"

    def layout(self) -> GenericLayout:
        return GenericLayout(Canvas(600, 400))

    def draw(self, root: ET.Element, layout: GenericLayout) -> None:
        panel = svg.group(root, "entity panel")
        svg.shape(
            panel, "rect", x=50, y=50, width=500, height=300,
            fill="#f5f5f5", stroke="#999", stroke_width=2, rx=10,
        )
        svg.text(panel, 300, 150, "PlantUML Diagram", size=16, bold=True)
        svg.text(panel, 300, 180, "Parsed from your code", size=14)
        svg.text(panel, 300, 220, self.summary, fill="#666")


DIAGRAM_TYPES: Mapping[DiagramKind, Type[Diagram]] = MappingProxyType(
    {
        DiagramKind.SEQUENCE: SequenceDiagram,
        DiagramKind.CLASS: ClassDiagram,
        DiagramKind.USECASE: UseCaseDiagram,
        DiagramKind.ACTIVITY: ActivityDiagram,
        DiagramKind.COMPONENT: ComponentDiagram,
        DiagramKind.MINDMAP: MindMapDiagram,
        DiagramKind.GANTT: GanttDiagram,
        DiagramKind.GENERIC: GenericDiagram,
    }
)
