from __future__ import annotations

import math
import unittest

from stack_lang.ast import Word
from stack_lang.parser import parse
from stack_lang.values import equal, format_value, value_of_expression


def _reparse_value(value):
    statements = parse(format_value(value)).statements
    assert len(statements) == 1, statements
    return value_of_expression(statements[0])


class ParserGrammarConformanceTests(unittest.TestCase):
    def test_program_fixtures_parse(self) -> None:
        fixtures = (
            "1 2 + println",
            "def inc { 1 + }\n5 inc",
            "def fact { dup 1 <= { drop 1 } { dup 1 - fact * } if }",
            "[ 10 20 30 ] 0 swap nth",
            '"hi" println  # greet',
            "true ! { 1 } { 2 } if",
            "5 { 1 + } keep 2drop",
            "{ x } 42 def\nx",
            "1 2 3 rotl rotr 3drop",
            "\n\n# header\n\n1\n\n",
        )
        for source in fixtures:
            with self.subTest(source=source):
                parse(source)

    def test_rendered_programs_reparse_identically(self) -> None:
        fixtures = (
            "def fact { dup 1 <= { drop 1 } { dup 1 - fact * } if } 5 fact",
            '[ 1 "two" [ true false ] {} ] 2 swap nth',
            "1.5 -2 0.001 + * zero? eval",
            '"tab\\tquote\\"" println',
        )
        for source in fixtures:
            with self.subTest(source=source):
                program = parse(source)
                self.assertEqual(parse(str(program)), program)

    def test_number_display_round_trips(self) -> None:
        for value in (0.0, -0.0, 1.0, -7.0, 0.1, 2.5e-9, 123456789.125, 1e21, -3.0e-5):
            with self.subTest(value=value):
                self.assertTrue(equal(_reparse_value(value), value))

    def test_non_finite_numbers_display_as_words(self) -> None:
        for value, text in ((math.inf, "inf"), (-math.inf, "-inf"), (math.nan, "NaN")):
            with self.subTest(text=text):
                self.assertEqual(format_value(value), text)
        self.assertEqual(parse("inf NaN").statements, (Word("inf"), Word("NaN")))

    def test_string_display_round_trips(self) -> None:
        for value in ("", "plain", 'with "quotes"', "back\\slash", "line\nbreak", "tab\there", "\x07bell", "ünï"):
            with self.subTest(value=value):
                self.assertEqual(_reparse_value(value), value)

    def test_bool_display_round_trips(self) -> None:
        self.assertIs(_reparse_value(True), True)
        self.assertIs(_reparse_value(False), False)

    def test_procedure_display_round_trips(self) -> None:
        procedure = parse("{ def sq { dup * } 3 sq [ 1 { } ] \"s\" <= }").statements[0]
        self.assertTrue(equal(_reparse_value(procedure), procedure))

    def test_list_display_round_trips(self) -> None:
        value = (1.0, "a", (True, ()), parse("{ 1 + }").statements[0])
        self.assertTrue(equal(_reparse_value(value), value))


if __name__ == "__main__":
    unittest.main()
