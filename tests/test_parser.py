"""
Kat Parser Test Suite
=====================

Tests for the recursive descent parser: program framing, every statement
form, the statement tree shape, and parse errors.

Test Organization
-----------------
- TestProgram: start/close framing
- TestStatements: declarations, output, input
- TestControlFlow: if/else and while nesting
- TestTreeShape: head tokens, children and the tree printer
- TestParseErrors: missing and unexpected tokens
"""

import pytest

from katc.lang.lexer import KatLexer
from katc.lang.parser import KatParser, parse_source
from katc.lang.ast import (
    ASTPrinter,
    IfStatement,
    InputStatement,
    OutputStatement,
    StatementKind,
    VariableDeclaration,
    WhileLoop,
)
from katc.lang.errors import MissingTokenError, ParseError, UnexpectedTokenError


def parse(body: str):
    """Helper to parse statements wrapped in start { ... close }."""
    return parse_source(f"start {{ {body} close }}", "test.kat")


def head(stmt) -> list[str]:
    return [t.lexeme for t in stmt.tokens]


# =============================================================================
# Program Framing
# =============================================================================

class TestProgram:
    """Tests for the start { ... close } frame."""

    def test_empty_program(self):
        program = parse_source("start { close }")
        assert program.statements == []

    def test_program_location(self):
        program = parse_source("\n  start { close }", "test.kat")
        assert (program.location.line, program.location.column) == (2, 3)

    def test_statements_in_source_order(self):
        program = parse("intbox a; floatbox b; out << a; in >> b;")
        assert [s.kind for s in program.statements] == [
            StatementKind.VARIABLE_DECLARATION,
            StatementKind.VARIABLE_DECLARATION,
            StatementKind.OUTPUT,
            StatementKind.INPUT,
        ]

    def test_parser_on_token_list(self):
        """KatParser works directly on a lexer token list."""
        tokens = KatLexer("start { intbox x = 5; close }").tokenize()
        program = KatParser(tokens).parse()
        assert len(program.statements) == 1


# =============================================================================
# Simple Statements
# =============================================================================

class TestStatements:
    """Tests for declarations, output and input."""

    def test_declaration_with_initializer(self):
        stmt = parse("intbox x = 5;").statements[0]
        assert isinstance(stmt, VariableDeclaration)
        assert head(stmt) == ["intbox", "x", "=", "5"]
        assert stmt.storage_kind == "intbox"
        assert stmt.name == "x"
        assert [t.lexeme for t in stmt.initializer] == ["5"]

    def test_declaration_without_initializer(self):
        stmt = parse("stringbox s;").statements[0]
        assert head(stmt) == ["stringbox", "s"]
        assert stmt.initializer == []

    @pytest.mark.parametrize("storage", ["intbox", "floatbox", "stringbox", "charbox", "boolbox"])
    def test_every_storage_kind(self, storage):
        stmt = parse(f"{storage} v;").statements[0]
        assert stmt.kind == StatementKind.VARIABLE_DECLARATION
        assert stmt.storage_kind == storage

    def test_flat_initializer_chain(self):
        """Initializers are kept flat, in source order, without precedence."""
        stmt = parse("intbox y = a + 1 * b;").statements[0]
        assert head(stmt) == ["intbox", "y", "=", "a", "+", "1", "*", "b"]

    def test_output_chain(self):
        stmt = parse('out << "hi" << x << endl;').statements[0]
        assert isinstance(stmt, OutputStatement)
        assert head(stmt) == ['"hi"', "<<", "x", "<<", "endl"]

    def test_output_with_separated_less_than(self):
        """`out < < x;` is accepted as `out << x;`."""
        stmt = parse("out < < x;").statements[0]
        assert stmt.kind == StatementKind.OUTPUT
        assert head(stmt) == ["x"]

    def test_output_boolean_and_char(self):
        stmt = parse("out << true << 'c';").statements[0]
        assert head(stmt) == ["true", "<<", "'c'"]

    def test_input(self):
        stmt = parse("in >> x;").statements[0]
        assert isinstance(stmt, InputStatement)
        assert head(stmt) == ["x"]
        assert stmt.target.lexeme == "x"


# =============================================================================
# Control Flow
# =============================================================================

class TestControlFlow:
    """Tests for if/else and while."""

    def test_if_without_else(self):
        stmt = parse("if (x == 5) { out << x; }").statements[0]
        assert isinstance(stmt, IfStatement)
        assert head(stmt) == ["x", "==", "5"]
        assert len(stmt.then_branch) == 1
        assert stmt.else_branch is None

    def test_if_with_else(self):
        stmt = parse("if (x < 1) { out << x; } else { out << y; in >> y; }").statements[0]
        assert len(stmt.then_branch) == 1
        assert [s.kind for s in stmt.else_branch] == [StatementKind.OUTPUT, StatementKind.INPUT]
        assert len(stmt.children) == 3

    def test_empty_else(self):
        stmt = parse("if (x < 1) { } else { }").statements[0]
        assert stmt.then_branch == []
        assert stmt.else_branch == []

    def test_while(self):
        stmt = parse("while (i < 10) { out << i; in >> i; }").statements[0]
        assert isinstance(stmt, WhileLoop)
        assert head(stmt) == ["i", "<", "10"]
        assert len(stmt.body) == 2
        assert stmt.children == stmt.body

    def test_nested_structures(self):
        program = parse("while (a < 3) { if (a == 1) { while (b > 0) { in >> b; } } }")
        loop = program.statements[0]
        inner_if = loop.body[0]
        inner_loop = inner_if.then_branch[0]
        assert inner_if.kind == StatementKind.IF_STATEMENT
        assert inner_loop.kind == StatementKind.WHILE_LOOP
        assert inner_loop.body[0].kind == StatementKind.INPUT

    def test_single_operand_condition(self):
        """The grammar accepts any expression as a condition."""
        stmt = parse("if (flag) { }").statements[0]
        assert head(stmt) == ["flag"]


# =============================================================================
# Tree Shape
# =============================================================================

class TestTreeShape:
    """Tests for head tokens, children and printing."""

    def test_round_trip_program(self):
        program = parse_source("start { intbox x = 5; if (x == 5) { out << x; } close }")
        assert len(program.statements) == 2

        decl, branch = program.statements
        assert decl.kind == StatementKind.VARIABLE_DECLARATION
        assert decl.children == []
        assert branch.kind == StatementKind.IF_STATEMENT
        assert len(branch.children) == 1
        assert branch.children[0].kind == StatementKind.OUTPUT
        assert branch.else_branch is None

    def test_only_if_and_while_own_children(self):
        program = parse("intbox x = 1; out << x; in >> x;")
        for stmt in program.statements:
            assert stmt.children == []

    def test_head_tokens_exclude_nested_statements(self):
        stmt = parse("if (x == 1) { out << y; }").statements[0]
        assert "y" not in head(stmt)

    def test_statement_location(self):
        program = parse_source("start {\n    out << x;\nclose }")
        stmt = program.statements[0]
        assert (stmt.location.line, stmt.location.column) == (2, 5)

    def test_ast_printer(self):
        program = parse("intbox x = 5; if (x == 5) { out << x; } else { in >> x; } while (x < 9) { }")
        text = ASTPrinter().print(program)
        assert text.splitlines() == [
            "Program",
            "  Declare: intbox x = 5",
            "  If (x == 5)",
            "    Then:",
            "      Output: x",
            "    Else:",
            "      Input: x",
            "  While (x < 9)",
        ]


# =============================================================================
# Parse Errors
# =============================================================================

class TestParseErrors:
    """Tests for parse failures."""

    def test_missing_close_at_end_of_input(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("start { intbox x = 5;")
        message = str(exc_info.value)
        assert "Expected 'close' keyword" in message
        assert "at line 1" in message

    def test_missing_close_before_brace(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("start { intbox x = 5; }")
        assert "Expected 'close' keyword at line 1" in str(exc_info.value)

    def test_missing_close_cites_last_line(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("start {\n  intbox x = 5;\n")
        assert exc_info.value.line == 2
        assert "at line 2" in str(exc_info.value)

    def test_missing_start(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("{ close }")
        assert "Expected 'start' keyword" in str(exc_info.value)

    def test_missing_brace_after_close(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("start { close")
        assert "Expected '}' after 'close'" in str(exc_info.value)

    def test_empty_token_list(self):
        with pytest.raises(MissingTokenError) as exc_info:
            KatParser([]).parse()
        assert "at line 1" in str(exc_info.value)

    def test_tokens_after_program(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            parse_source("start { close } intbox x;")
        assert exc_info.value.found == "intbox"

    def test_missing_semicolon(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("intbox x = 5")
        assert "Expected ';' at the end of variable declaration at line 1" in str(exc_info.value)

    def test_missing_variable_name(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("intbox = 5;")
        assert "Expected variable name" in str(exc_info.value)

    def test_dangling_operator(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("intbox x = 5 + ;")
        assert "Expected operand after operator" in str(exc_info.value)

    def test_output_without_operator(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("out x;")
        assert "Expected '<<' after 'out'" in str(exc_info.value)

    def test_output_with_single_less_than(self):
        with pytest.raises(MissingTokenError):
            parse("out < x;")

    def test_input_without_target(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("in >> 5;")
        assert "Expected variable name after '>>'" in str(exc_info.value)

    def test_if_without_parenthesis(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("if x == 1 { }")
        assert "Expected '(' after 'if'" in str(exc_info.value)

    def test_empty_condition(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse("while () { }")
        assert "Expected an expression" in str(exc_info.value)

    def test_unclosed_block(self):
        with pytest.raises(ParseError):
            parse_source("start { if (x == 1) { out << x;")

    def test_unknown_statement(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            parse("x = 5;")
        assert "Unexpected token 'x' at line 1" in str(exc_info.value)

    def test_error_shows_source_line(self):
        source = "start {\n  intbox x = 5\nclose }"
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source(source, "prog.kat")
        message = str(exc_info.value)
        assert message.startswith("prog.kat:3:1: error: Expected ';'")
        assert "    close }" in message
