from __future__ import annotations

import math
import sys
import unittest
import xml.etree.ElementTree as ET
from pathlib import Path
from unittest import mock

from PIL import ImageFont

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from plantsketch import build_diagram, normalize_lines
from plantsketch.diagrams import (
    PALETTE,
    ActivityDiagram,
    ClassDiagram,
    ComponentDiagram,
    Diagram,
    GanttDiagram,
    GenericDiagram,
    MindMapDiagram,
    SequenceDiagram,
    UseCaseDiagram,
    palette_color,
)
from plantsketch.resources import load_example

SVG = "{http://www.w3.org/2000/svg}"


def _lines(source: str) -> list[str]:
    return normalize_lines(source)


def _groups(svg_text: str, prefix: str) -> list[ET.Element]:
    root = ET.fromstring(svg_text)
    return [g for g in root.findall(f"{SVG}g") if (g.get("class") or "").split()[0] == prefix]


class DiagramContractTests(unittest.TestCase):
    def test_kind_without_draw_cannot_be_instantiated(self) -> None:
        class Partial(Diagram):
            @classmethod
            def from_lines(cls, lines):
                return cls()

            def layout(self):
                return None

        with self.assertRaises(TypeError):
            Partial()
        with self.assertRaises(TypeError):
            Diagram()


class SequenceDiagramTests(unittest.TestCase):
    SOURCE = "@startuml\nAlice -> Bob: Hello\nBob --> Alice: Hi back\n@enduml"

    def test_participants_and_interactions(self) -> None:
        diagram = SequenceDiagram.from_lines(_lines(self.SOURCE))
        self.assertEqual(diagram.participants, ["Alice", "Bob"])
        self.assertEqual(len(diagram.interactions), 2)
        self.assertEqual(diagram.interactions[0].message, "Hello")
        self.assertTrue(diagram.interactions[1].dashed)
        self.assertTrue(diagram.interactions[1].rightward)

    def test_geometry(self) -> None:
        layout = SequenceDiagram.from_lines(_lines(self.SOURCE)).layout()
        self.assertEqual((layout.canvas.width, layout.canvas.height), (600, 320))
        self.assertEqual(dict(layout.participant_x), {"Alice": 100, "Bob": 250})
        self.assertEqual(layout.interaction_y, (100, 160))

    def test_svg_draws_each_interaction_once(self) -> None:
        out = SequenceDiagram.from_lines(_lines(self.SOURCE)).to_svg()
        root = ET.fromstring(out)
        self.assertEqual(root.get("width"), "600")
        self.assertEqual(root.get("height"), "320")
        self.assertEqual(len(_groups(out, "entity")), 2)
        relations = _groups(out, "relation")
        self.assertEqual(len(relations), 2)
        for group in relations:
            self.assertEqual(len(group.findall(f"{SVG}line")), 1)

    def test_leftward_arrow_uses_marker_start(self) -> None:
        out = SequenceDiagram.from_lines(_lines("Alice <-- Bob: response")).to_svg()
        line = _groups(out, "relation")[0].find(f"{SVG}line")
        self.assertEqual(line.get("marker-start"), "url(#arrowhead)")
        self.assertIsNone(line.get("marker-end"))
        self.assertEqual(line.get("stroke-dasharray"), "5,5")

    def test_participant_declaration_and_width_growth(self) -> None:
        names = ["A", "B", "C", "D", "E"]
        diagram = SequenceDiagram.from_lines([f"participant {name}" for name in names])
        self.assertEqual(diagram.participants, names)
        self.assertEqual(diagram.layout().canvas.width, 750)

    def test_unmatched_lines_are_ignored(self) -> None:
        diagram = SequenceDiagram.from_lines(_lines("note over Alice\nAlice -> Bob\n== section =="))
        self.assertEqual(len(diagram.interactions), 1)
        self.assertEqual(diagram.interactions[0].message, "")


class ClassDiagramTests(unittest.TestCase):
    def test_parses_members_and_relationships(self) -> None:
        diagram = ClassDiagram.from_lines(_lines(load_example("class")))
        self.assertEqual([c.name for c in diagram.classes], ["Animal", "Dog", "Cat"])
        animal = diagram.classes[0]
        self.assertEqual(animal.attributes, ["+String name", "+int age"])
        self.assertEqual(animal.methods, ["+void eat()", "+void sleep()"])
        self.assertEqual(len(diagram.relationships), 2)
        self.assertEqual(diagram.relationships[0].endpoints, ("Dog", "Animal"))
        self.assertTrue(diagram.relationships[0].inheritance)

    def test_box_height_grows_with_members(self) -> None:
        layout = ClassDiagram.from_lines(_lines(load_example("class"))).layout()
        self.assertEqual(layout.boxes["Animal"].height, 160)
        self.assertEqual(layout.boxes["Dog"].height, 120)
        self.assertGreaterEqual(layout.boxes["Animal"].width, 200)
        self.assertLess(layout.boxes["Animal"].right, layout.boxes["Dog"].x)
        self.assertGreaterEqual(layout.canvas.width, 800)
        self.assertGreaterEqual(layout.canvas.height, 500)

    def test_long_attribute_widens_box_with_bundled_font(self) -> None:
        attribute = "+String aVeryLongAttributeNameThatOverflowsTheBox"
        diagram = ClassDiagram.from_lines(["class Customer {", attribute, "}"])
        expected = math.ceil(
            max(
                ImageFont.load_default(size=14).getlength("Customer"),
                ImageFont.load_default(size=12).getlength(attribute),
            )
            + 20
        )
        real_truetype = ImageFont.truetype
        with mock.patch("PIL.ImageFont.truetype", side_effect=real_truetype) as truetype:
            box = diagram.layout().boxes["Customer"]
        self.assertGreater(expected, 200)
        self.assertEqual(box.width, expected)
        for call in truetype.call_args_list:
            self.assertNotIsInstance(call.args[0], (str, Path))
        again = ClassDiagram.from_lines(["class Customer {", attribute, "}"]).layout()
        self.assertEqual(again.boxes["Customer"].width, box.width)

    def test_redeclared_class_is_reused(self) -> None:
        diagram = ClassDiagram.from_lines(["class A {", "+x", "}", "class A {", "+y", "}"])
        self.assertEqual(len(diagram.classes), 1)
        self.assertEqual(diagram.classes[0].attributes, ["+x", "+y"])

    def test_unknown_class_relationship_is_dropped(self) -> None:
        diagram = ClassDiagram.from_lines(["class A", "A <|-- Missing", "B --|> A"])
        self.assertEqual(len(diagram.relationships), 2)
        self.assertEqual(_groups(diagram.to_svg(), "relation"), [])

    def test_inheritance_marker_is_defined_and_used(self) -> None:
        out = ClassDiagram.from_lines(["class A", "class B", "A <|-- B", "A --> B"]).to_svg()
        root = ET.fromstring(out)
        marker_ids = {m.get("id") for m in root.iter(f"{SVG}marker")}
        self.assertEqual(marker_ids, {"arrowhead", "inheritance"})
        relations = _groups(out, "relation")
        self.assertEqual(relations[0].find(f"{SVG}line").get("marker-end"), "url(#inheritance)")
        self.assertEqual(relations[1].find(f"{SVG}line").get("marker-end"), "url(#arrowhead)")


class UseCaseDiagramTests(unittest.TestCase):
    def test_template_entities_and_links(self) -> None:
        diagram = UseCaseDiagram.from_lines(_lines(load_example("usecase")))
        self.assertEqual(diagram.actors, ["Customer", "Clerk"])
        self.assertEqual(diagram.usecases, ["Checkout", "Payment", "Help"])
        self.assertEqual([(l.actor, l.usecase) for l in diagram.links], [("Customer", "Checkout"), ("Clerk", "Checkout")])
        self.assertEqual(len(_groups(diagram.to_svg(), "relation")), 2)

    def test_unresolved_link_is_dropped(self) -> None:
        diagram = UseCaseDiagram.from_lines(["actor User", "Ghost -- (Login)"])
        self.assertEqual(diagram.usecases, ["Login"])
        self.assertEqual(_groups(diagram.to_svg(), "relation"), [])

    def test_actor_glyph(self) -> None:
        out = UseCaseDiagram.from_lines(["actor User"]).to_svg()
        actor = _groups(out, "entity")[0]
        self.assertEqual(len(actor.findall(f"{SVG}circle")), 1)
        self.assertEqual(len(actor.findall(f"{SVG}line")), 4)


class ActivityDiagramTests(unittest.TestCase):
    def test_steps_keep_encounter_order(self) -> None:
        diagram = ActivityDiagram.from_lines(_lines(load_example("activity")))
        self.assertTrue(diagram.has_start)
        self.assertTrue(diagram.has_stop)
        self.assertEqual(
            [step.label for step in diagram.steps],
            ["Read data", "data available?", "Process data", "Wait for data", "Generate report"],
        )
        self.assertEqual(diagram.decisions, ["data available?"])
        self.assertEqual(len(diagram.activities), 4)

    def test_vertical_lane_geometry(self) -> None:
        layout = ActivityDiagram.from_lines(_lines(load_example("activity"))).layout()
        self.assertEqual(layout.canvas.height, 600)
        self.assertEqual([node.role for node in layout.nodes][:3], ["start", "activity", "decision"])
        self.assertEqual([node.y for node in layout.nodes], [50, 110, 190, 270, 350, 430, 510])
        self.assertEqual(len(layout.connectors), 6)
        for (x1, y1), (x2, y2) in layout.connectors:
            self.assertEqual(x1, x2)
            self.assertLess(y1, y2)

    def test_shapes(self) -> None:
        out = ActivityDiagram.from_lines(_lines(load_example("activity"))).to_svg()
        kinds = [g.get("class") for g in _groups(out, "entity")]
        self.assertEqual(kinds.count("entity decision"), 1)
        self.assertEqual(kinds.count("entity activity"), 4)
        decision = [g for g in _groups(out, "entity") if g.get("class") == "entity decision"][0]
        self.assertIsNotNone(decision.find(f"{SVG}polygon"))

    def test_without_terminators(self) -> None:
        diagram = ActivityDiagram.from_lines([":Only step;"])
        layout = diagram.layout()
        self.assertFalse(diagram.has_start)
        self.assertEqual(layout.canvas.height, 180)
        self.assertEqual(layout.connectors, [])


class ComponentDiagramTests(unittest.TestCase):
    def test_template_packages_and_connections(self) -> None:
        diagram = ComponentDiagram.from_lines(_lines(load_example("component")))
        self.assertEqual([p.name for p in diagram.packages], ["Frontend", "Backend"])
        self.assertEqual([c.alias for c in diagram.packages[1].components], ["AG", "US", "DB"])
        self.assertEqual(len(diagram.connections), 4)
        self.assertEqual(len(_groups(diagram.to_svg(), "relation")), 4)

    def test_alias_and_full_name_resolve_to_same_position(self) -> None:
        source = "\n".join(
            [
                'package "Core" {',
                "[Authentication Service] as Auth",
                "[Billing]",
                "}",
                "Auth --> Billing",
                "[Authentication Service] --> Billing",
            ]
        )
        diagram = ComponentDiagram.from_lines(_lines(source))
        layout = diagram.layout()
        self.assertEqual(layout.positions["Auth"], layout.positions["Authentication Service"])
        lines = [g.find(f"{SVG}line") for g in _groups(diagram.to_svg(), "relation")]
        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0].attrib, lines[1].attrib)

    def test_alias_does_not_swallow_later_full_name(self) -> None:
        diagram = ComponentDiagram.from_lines(['package "P" {', "[Api] as DB", "[DB]", "}"])
        self.assertEqual([c.name for c in diagram.packages[0].components], ["Api", "DB"])
        layout = diagram.layout()
        self.assertEqual(layout.positions["DB"], layout.components["DB"].center)
        self.assertEqual(layout.positions["Api"], layout.components["Api"].center)

    def test_dangling_alias_draws_nothing(self) -> None:
        diagram = ComponentDiagram.from_lines(_lines('package "P" {\n[Api] as A\n}\nA --> Ghost'))
        self.assertEqual(len(diagram.connections), 1)
        self.assertEqual(_groups(diagram.to_svg(), "relation"), [])

    def test_grid_and_standalone_row(self) -> None:
        source = 'package "P" {\n[A]\n[B]\n[C]\n}\n[Loose]\n[Other]'
        diagram = ComponentDiagram.from_lines(_lines(source))
        layout = diagram.layout()
        a, b, c = (layout.components[name] for name in ("A", "B", "C"))
        self.assertEqual((a.x, a.y), (70, 100))
        self.assertEqual((b.x, b.y), (200, 100))
        self.assertEqual((c.x, c.y), (70, 170))
        self.assertEqual([comp.name for comp in diagram.standalone.components], ["Loose", "Other"])
        self.assertEqual(layout.components["Loose"].y, 300)
        self.assertEqual(layout.components["Other"].x, 200)

    def test_duplicate_component_is_not_repeated(self) -> None:
        diagram = ComponentDiagram.from_lines(["package X {", "[Db]", "[Db] as D", "}", "D -- Db"])
        self.assertEqual(len(diagram.packages[0].components), 1)
        out = diagram.to_svg()
        line = _groups(out, "relation")[0].find(f"{SVG}line")
        self.assertIsNone(line.get("marker-end"))


class MindMapDiagramTests(unittest.TestCase):
    def test_levels_and_parents(self) -> None:
        diagram = MindMapDiagram.from_lines(_lines(load_example("mindmap")))
        self.assertEqual([n.level for n in diagram.nodes][:3], [1, 2, 3])
        layout = diagram.layout()
        self.assertEqual(layout.parents[0], None)
        self.assertEqual(layout.parents[2], 1)
        self.assertEqual(layout.parents[6], 0)
        self.assertEqual(layout.centers[1], (400, 160))
        self.assertEqual(len(_groups(diagram.to_svg(), "relation")), len(diagram.nodes) - 1)

    def test_orphan_is_unconnected(self) -> None:
        diagram = MindMapDiagram.from_lines(["* Root", "*** Deep"])
        self.assertEqual(diagram.layout().parents, (None, None))
        self.assertEqual(_groups(diagram.to_svg(), "relation"), [])

    def test_palette_cycles_by_level(self) -> None:
        self.assertEqual(palette_color(3), PALETTE[3])
        self.assertEqual(palette_color(1), palette_color(6))
        out = MindMapDiagram.from_lines(["* One", "****** Six"]).to_svg()
        strokes = [g.find(f"{SVG}ellipse").get("stroke") for g in _groups(out, "entity")]
        self.assertEqual(strokes[0], strokes[1])


class GanttDiagramTests(unittest.TestCase):
    def test_tasks_and_bars(self) -> None:
        diagram = GanttDiagram.from_lines(_lines(load_example("gantt")))
        self.assertEqual(diagram.project_start, "2024-01-01")
        self.assertEqual([(t.name, t.duration_days) for t in diagram.tasks], [("Task 1", 10), ("Task 2", 5), ("Task 3", 8)])
        self.assertEqual(diagram.tasks[1].after, "Task 1")
        layout = diagram.layout()
        self.assertEqual([bar.x for bar in layout.bars], [200, 200, 200])
        self.assertEqual([bar.width for bar in layout.bars], [200, 100, 160])
        self.assertEqual(layout.canvas.height, 250)

    def test_weeks_and_redeclaration(self) -> None:
        diagram = GanttDiagram.from_lines(["[Design] lasts 2 weeks", "[Design] lasts 1 day"])
        self.assertEqual(len(diagram.tasks), 1)
        self.assertEqual(diagram.tasks[0].duration_days, 1)
        self.assertEqual(diagram.tasks[0].caption, "1 day")

    def test_long_task_widens_canvas(self) -> None:
        layout = GanttDiagram.from_lines(["[Long] lasts 60 days"]).layout()
        self.assertEqual(layout.canvas.width, 200 + 1200 + 120)


class GenericDiagramTests(unittest.TestCase):
    def test_line_count_panel(self) -> None:
        lines = _lines("@startuml\nfoo\nbar\n@enduml")
        diagram = build_diagram(lines)
        self.assertIsInstance(diagram, GenericDiagram)
        out = diagram.to_svg()
        texts = [t.text for t in ET.fromstring(out).iter(f"{SVG}text")]
        self.assertIn("4 lines of PlantUML code detected", texts)


if __name__ == "__main__":
    unittest.main()
