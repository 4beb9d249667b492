from __future__ import annotations

import unittest

from stack_lang.ast import Bool, Builtin, Definition, Number, Operator, Procedure, Program, Sequence, String, Word
from stack_lang.parser import ParseError, format_parse_error, line_and_column, parse, parse_statement


class ParserLanguageSyntaxTests(unittest.TestCase):
    def test_empty_and_blank_programs(self) -> None:
        for source in ("", "\n", "\n\n   \n", "# only a comment", "  # comment\n\n# another\n"):
            with self.subTest(source=source):
                self.assertEqual(parse(source), Program(statements=()))

    def test_single_number(self) -> None:
        self.assertEqual(parse("1"), Program(statements=(Number(1.0),)))

    def test_statement_kinds(self) -> None:
        program = parse('1 "two" true x dup')
        self.assertEqual(
            program.statements,
            (Number(1.0), String("two"), Bool(True), Word("x"), Operator(Builtin.DUP)),
        )

    def test_lines_flatten_into_one_sequence(self) -> None:
        program = parse("1 2 +  # add\n\n3 *\n")
        self.assertEqual(
            program.statements,
            (Number(1.0), Number(2.0), Operator(Builtin.ADD), Number(3.0), Operator(Builtin.MUL)),
        )

    def test_less_equal_is_one_builtin(self) -> None:
        self.assertEqual(parse("<=").statements, (Operator(Builtin.LE),))
        self.assertEqual(parse(">=").statements, (Operator(Builtin.GE),))
        self.assertEqual(parse("< =").statements, (Operator(Builtin.LT), Operator(Builtin.EQ)))

    def test_multi_character_stack_words(self) -> None:
        program = parse("2dup 2drop 3drop dupd dup drop")
        self.assertEqual(
            [stmt.builtin for stmt in program.statements],
            [Builtin.DUP2, Builtin.DROP2, Builtin.DROP3, Builtin.DUPD, Builtin.DUP, Builtin.DROP],
        )

    def test_identifier_with_builtin_prefix_is_word(self) -> None:
        self.assertEqual(parse("define dupe swapped").statements, (Word("define"), Word("dupe"), Word("swapped")))

    def test_predicate_style_identifier(self) -> None:
        self.assertEqual(parse("zero?").statements, (Word("zero?"),))

    def test_procedure_forms(self) -> None:
        self.assertEqual(parse("{}").statements, (Procedure(),))
        self.assertEqual(parse("{ }").statements, (Procedure(),))
        self.assertEqual(
            parse("{ 1 + }").statements,
            (Procedure((Number(1.0), Operator(Builtin.ADD))),),
        )
        self.assertEqual(
            parse("{ 1\n  2 }").statements,
            (Procedure((Number(1.0), Number(2.0))),),
        )

    def test_list_forms(self) -> None:
        self.assertEqual(parse("[]").statements, (Sequence(),))
        self.assertEqual(parse("[ ]").statements, (Sequence(),))
        self.assertEqual(
            parse('[1 "a" [true] { x }]').statements,
            (Sequence((Number(1.0), String("a"), Sequence((Bool(True),)), Procedure((Word("x"),)))),),
        )

    def test_definition_statement(self) -> None:
        stmt = parse_statement("def inc { 1 + }")
        self.assertEqual(stmt, Definition(name="inc", body=Procedure((Number(1.0), Operator(Builtin.ADD)))))

    def test_def_without_space_is_builtin(self) -> None:
        self.assertEqual(parse("{ x } 5 def").statements[-1], Operator(Builtin.DEF))
        self.assertEqual(parse("{ x } 5 def\n1").statements[2:], (Operator(Builtin.DEF), Number(1.0)))
        self.assertEqual(parse("{ { x } 5 def}").statements[0].statements[-1], Operator(Builtin.DEF))

    def test_def_before_trailing_blank_or_comment_is_builtin(self) -> None:
        for source in ('"x" 5 def \nx', '"x" 5 def\t# bind\nx'):
            with self.subTest(source=source):
                self.assertEqual(parse(source).statements[2:], (Operator(Builtin.DEF), Word("x")))
        for source in ('"x" 5 def # bind', '"x" 5 def   '):
            with self.subTest(source=source):
                self.assertEqual(parse(source).statements[-1], Operator(Builtin.DEF))
        self.assertEqual(parse("{ { x } 5 def }").statements[0].statements[-1], Operator(Builtin.DEF))
        self.assertEqual(parse("[ { def } ]").statements[0].items[0].statements, (Operator(Builtin.DEF),))

    def test_def_commits_after_keyword(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("def 5 { }")
        err = ctx.exception
        self.assertEqual(err.expected, ("Identifier",))
        self.assertEqual(err.context[:2], ("Identifier", "Definition"))
        self.assertFalse(err.incomplete)

    def test_def_requires_procedure_body(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("def inc 1")
        self.assertEqual(ctx.exception.expected, ("Procedure",))
        self.assertEqual(ctx.exception.context[0], "Definition")

    def test_builtin_names_cannot_be_defined(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("def dup { }")
        self.assertEqual(ctx.exception.found, "BUILTIN(dup)")

    def test_missing_closing_brace_is_incomplete(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("{ 1 2")
        err = ctx.exception
        self.assertTrue(err.incomplete)
        self.assertEqual(err.expected, ("}",))
        self.assertEqual(err.context, ("Procedure", "Expression", "Statement", "Program"))

    def test_missing_closing_bracket_is_incomplete(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("[ 1\n 2")
        self.assertTrue(ctx.exception.incomplete)
        self.assertEqual(ctx.exception.context[0], "List")

    def test_mismatched_closer_is_hard_failure(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("{ 1 ]")
        self.assertFalse(ctx.exception.incomplete)
        self.assertIn("Procedure", ctx.exception.context)

    def test_stray_closer_at_top_level(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("1 }")
        self.assertEqual(ctx.exception.found, "RBRACE(})")
        self.assertEqual(ctx.exception.context, ("Statement", "Program"))

    def test_words_and_builtins_are_not_list_items(self) -> None:
        for source in ("[ a ]", "[ + ]"):
            with self.subTest(source=source):
                with self.assertRaises(ParseError) as ctx:
                    parse(source)
                self.assertEqual(ctx.exception.context[:2], ("Expression", "List"))

    def test_unterminated_string_is_unrecoverable_and_incomplete(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse('1 "abc')
        err = ctx.exception
        self.assertTrue(err.incomplete)
        self.assertEqual(err.context[0], "String")
        self.assertEqual(err.start, 2)

    def test_missing_whitespace_reports_position(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("1 2+")
        self.assertEqual(ctx.exception.start, 3)
        self.assertEqual(ctx.exception.expected, ("whitespace",))

    def test_error_message_renders_trace(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("{ [ x ] }")
        text = str(ctx.exception)
        self.assertIn("expected Literal, Procedure, List", text)
        self.assertIn("while parsing Expression while parsing List", text)
        self.assertTrue(text.endswith("while parsing Program"))

    def test_format_parse_error_points_at_offending_input(self) -> None:
        source = "1 2\n3 }"
        with self.assertRaises(ParseError) as ctx:
            parse(source)
        self.assertEqual(line_and_column(source, ctx.exception.start), (2, 3))
        rendered = format_parse_error(source, ctx.exception)
        lines = rendered.splitlines()
        self.assertTrue(lines[0].startswith("2:3: "))
        self.assertEqual(lines[1], "3 }")
        self.assertEqual(lines[2], "  ^")

    def test_parse_statement_requires_exactly_one(self) -> None:
        self.assertEqual(parse_statement(" swap \n"), Operator(Builtin.SWAP))
        with self.assertRaises(ParseError):
            parse_statement("1 2")


if __name__ == "__main__":
    unittest.main()
