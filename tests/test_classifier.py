from __future__ import annotations

import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from plantsketch import DiagramKind, classify, normalize_lines
from plantsketch.classifier import RULES


def _kind(source: str) -> DiagramKind:
    return classify(normalize_lines(source))


class ClassifierPrecedenceTests(unittest.TestCase):
    def test_literal_precedence_cases(self) -> None:
        cases = [
            ("@startmindmap\n* A\n** B\n@endmindmap", DiagramKind.MINDMAP),
            ('package "P" {\n[X]\n}', DiagramKind.COMPONENT),
            ("class Foo {\n}\nFoo -> Bar", DiagramKind.CLASS),
            ("Alice -> Bob: hi", DiagramKind.SEQUENCE),
            ("@startuml\n@enduml", DiagramKind.GENERIC),
        ]
        for source, expected in cases:
            with self.subTest(source=source):
                self.assertEqual(_kind(source), expected)

    def test_rule_order_is_fixed(self) -> None:
        self.assertEqual(
            [kind for _predicate, kind in RULES],
            [
                DiagramKind.MINDMAP,
                DiagramKind.GANTT,
                DiagramKind.COMPONENT,
                DiagramKind.CLASS,
                DiagramKind.USECASE,
                DiagramKind.ACTIVITY,
                DiagramKind.SEQUENCE,
            ],
        )

    def test_markers_win_over_body_content(self) -> None:
        self.assertEqual(_kind("@startgantt\n[Build] lasts 3 days\nclass X\n@endgantt"), DiagramKind.GANTT)
        self.assertEqual(_kind("@startmindmap\n* actor\n@endmindmap"), DiagramKind.MINDMAP)

    def test_component_needs_package_and_brackets(self) -> None:
        self.assertEqual(_kind("[A] --> [B]"), DiagramKind.SEQUENCE)
        self.assertEqual(_kind('package "P" {\n[A] --> [B]\n}'), DiagramKind.COMPONENT)

    def test_inheritance_arrow_alone_is_class(self) -> None:
        self.assertEqual(_kind("Animal <|-- Dog"), DiagramKind.CLASS)
        self.assertEqual(_kind("Dog --|> Animal"), DiagramKind.CLASS)

    def test_usecase_and_activity_keywords(self) -> None:
        self.assertEqual(_kind("actor Customer\nCustomer -- (Buy)"), DiagramKind.USECASE)
        self.assertEqual(_kind("start\n:Work;\nstop"), DiagramKind.ACTIVITY)
        self.assertEqual(_kind("if (ready?) then (yes)\n:Go;\nendif"), DiagramKind.ACTIVITY)

    def test_case_insensitive(self) -> None:
        self.assertEqual(_kind("PARTICIPANT Alice"), DiagramKind.SEQUENCE)

    def test_empty_input_is_generic(self) -> None:
        self.assertEqual(classify([]), DiagramKind.GENERIC)
        self.assertEqual(_kind("just some words\nand more"), DiagramKind.GENERIC)


if __name__ == "__main__":
    unittest.main()
