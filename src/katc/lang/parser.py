"""
Kat Recursive Descent Parser
============================

This module implements the recursive descent parser for the kat language.
It takes the token list from the lexer and builds the statement tree.

Grammar (Informal EBNF)
-----------------------
program     ::= 'start' '{' statement* 'close' '}'
statement   ::= var_decl | output | input | if_stmt | while_stmt
var_decl    ::= storage_kind IDENTIFIER ('=' expression)? ';'
output      ::= 'out' ('<<' | '<' '<') expression ';'
input       ::= 'in' '>>' IDENTIFIER ';'
if_stmt     ::= 'if' '(' expression ')' '{' statement* '}'
                ('else' '{' statement* '}')?
while_stmt  ::= 'while' '(' expression ')' '{' statement* '}'
expression  ::= operand (OPERATOR operand)*
operand     ::= IDENTIFIER | INTEGER | FLOAT | STRING | CHAR
              | 'true' | 'false' | 'endl'

Expressions are flat: operands and operators are kept in source order
with no precedence levels.

The parser keeps one cursor, looks ahead one token and never backtracks.
The first error raises a ParseError; there is no recovery.

Example Usage
-------------
>>> from katc.lang.parser import parse_source
>>> program = parse_source('start { intbox x = 5; close }')
>>> [stmt.kind.name for stmt in program.statements]
['VARIABLE_DECLARATION']
"""

import logging
from typing import Optional

from katc.errors import SourceLocation
from katc.lang.lexer import KatLexer, Token, TokenKind
from katc.lang.ast import (
    ProgramNode,
    Statement,
    VariableDeclaration,
    OutputStatement,
    InputStatement,
    IfStatement,
    WhileLoop,
    ExpressionStatement,
)
from katc.lang.errors import MissingTokenError, UnexpectedTokenError

logger = logging.getLogger(__name__)

# Keywords that are valid expression operands
OPERAND_KEYWORDS = frozenset({"true", "false", "endl"})

OPERAND_KINDS = (
    TokenKind.IDENTIFIER,
    TokenKind.INTEGER_LITERAL,
    TokenKind.FLOAT_LITERAL,
    TokenKind.STRING_LITERAL,
    TokenKind.CHAR_LITERAL,
)


class KatParser:
    """
    Recursive descent parser for kat programs.

    Attributes:
        tokens: Token list from the lexer
        filename: Source filename for error reporting
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            filename: Source filename for error messages
            source_lines: Original source lines for error context
        """
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []

        self._pos = 0

    def parse(self) -> ProgramNode:
        """
        Parse the token list into a program.

        Returns:
            ProgramNode holding the top-level statements

        Raises:
            ParseError: On the first token that does not fit the grammar
        """
        program = self._parse_program()
        logger.debug("Parsing completed: %d top-level statements", len(program.statements))
        return program

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.tokens)

    def _peek(self) -> Optional[Token]:
        """Current token, or None once the list is exhausted."""
        if self._at_end():
            return None
        return self.tokens[self._pos]

    def _advance(self) -> Token:
        token = self.tokens[self._pos]
        self._pos += 1
        return token

    def _check(self, kind: TokenKind, value: Optional[str] = None) -> bool:
        token = self._peek()
        if token is None or token.kind != kind:
            return False
        return value is None or token.lexeme == value

    def _match(self, kind: TokenKind, value: Optional[str] = None) -> Optional[Token]:
        """
        Consume the current token if it has the given kind (and value).

        Returns:
            The consumed token, or None if it did not match
        """
        if self._check(kind, value):
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, value: Optional[str], description: str) -> Token:
        """
        Consume a required token.

        Raises:
            MissingTokenError: If the current token is not the expected one
        """
        token = self._match(kind, value)
        if token is None:
            raise self._missing(description)
        return token

    def _current_location(self) -> SourceLocation:
        """
        Location of the current token.

        Past the end of the list this is the last token's location, so
        errors still cite a real line.
        """
        token = self._peek()
        if token is not None:
            return token.location
        if self.tokens:
            return self.tokens[-1].location
        return SourceLocation(self.filename, 1, 1)

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _missing(self, description: str) -> MissingTokenError:
        location = self._current_location()
        return MissingTokenError(description, location, self._get_source_line(location.line))

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        token = self._peek()
        location = self._current_location()
        found = token.lexeme if token is not None else "end of input"
        return UnexpectedTokenError(
            found,
            expected=expected,
            location=location,
            source_line=self._get_source_line(location.line),
        )

    # =========================================================================
    # Program and Statement Parsing
    # =========================================================================

    def _parse_program(self) -> ProgramNode:
        start = self._expect(TokenKind.KEYWORD, "start", "'start' keyword")
        self._expect(TokenKind.SYMBOL, "{", "'{' after 'start'")

        statements = []
        while not self._match(TokenKind.KEYWORD, "close"):
            if self._at_end() or self._check(TokenKind.SYMBOL, "}"):
                raise self._missing("'close' keyword")
            statements.append(self._parse_statement())

        self._expect(TokenKind.SYMBOL, "}", "'}' after 'close'")

        if not self._at_end():
            raise self._unexpected("end of input after 'close }'")

        return ProgramNode(location=start.location, statements=statements)

    def _parse_statement(self) -> Statement:
        """Dispatch on the statement's leading keyword."""
        token = self._peek()

        if token is not None and token.is_storage_kind():
            return self._parse_variable_declaration()
        if self._check(TokenKind.KEYWORD, "out"):
            return self._parse_output()
        if self._check(TokenKind.KEYWORD, "in"):
            return self._parse_input()
        if self._check(TokenKind.KEYWORD, "if"):
            return self._parse_if_statement()
        if self._check(TokenKind.KEYWORD, "while"):
            return self._parse_while_loop()

        raise self._unexpected("a statement")

    def _parse_block(self, owner: str) -> list[Statement]:
        """Parse `'{' statement* '}'`."""
        self._expect(TokenKind.SYMBOL, "{", f"'{{' after {owner}")

        statements = []
        while not self._match(TokenKind.SYMBOL, "}"):
            if self._at_end():
                raise self._missing(f"'}}' to close {owner} block")
            statements.append(self._parse_statement())
        return statements

    def _parse_variable_declaration(self) -> VariableDeclaration:
        storage = self._advance()
        name = self._expect(TokenKind.IDENTIFIER, None, "variable name")
        tokens = [storage, name]

        assign = self._match(TokenKind.OPERATOR, "=")
        if assign:
            tokens.append(assign)
            tokens.extend(self._parse_expression().tokens)

        self._expect(TokenKind.SYMBOL, ";", "';' at the end of variable declaration")
        return VariableDeclaration(location=storage.location, tokens=tokens)

    def _parse_output(self) -> OutputStatement:
        out = self._advance()

        if not self._match(TokenKind.OPERATOR, "<<"):
            if not (self._match(TokenKind.OPERATOR, "<") and self._match(TokenKind.OPERATOR, "<")):
                raise self._missing("'<<' after 'out'")

        expression = self._parse_expression()
        self._expect(TokenKind.SYMBOL, ";", "';' at the end of output statement")
        return OutputStatement(location=out.location, tokens=expression.tokens)

    def _parse_input(self) -> InputStatement:
        keyword = self._advance()
        self._expect(TokenKind.OPERATOR, ">>", "'>>' after 'in'")
        target = self._expect(TokenKind.IDENTIFIER, None, "variable name after '>>'")
        self._expect(TokenKind.SYMBOL, ";", "';' at the end of input statement")
        return InputStatement(location=keyword.location, tokens=[target])

    def _parse_condition(self, owner: str) -> list[Token]:
        self._expect(TokenKind.SYMBOL, "(", f"'(' after '{owner}'")
        condition = self._parse_expression()
        self._expect(TokenKind.SYMBOL, ")", f"')' after '{owner}' condition")
        return condition.tokens

    def _parse_if_statement(self) -> IfStatement:
        keyword = self._advance()
        condition = self._parse_condition("if")
        then_branch = self._parse_block("'if'")

        else_branch = None
        if self._match(TokenKind.KEYWORD, "else"):
            else_branch = self._parse_block("'else'")

        return IfStatement(
            location=keyword.location,
            tokens=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_while_loop(self) -> WhileLoop:
        keyword = self._advance()
        condition = self._parse_condition("while")
        body = self._parse_block("'while'")
        return WhileLoop(location=keyword.location, tokens=condition, body=body)

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def _is_operand(self, token: Optional[Token]) -> bool:
        if token is None:
            return False
        if token.kind in OPERAND_KINDS:
            return True
        return token.kind == TokenKind.KEYWORD and token.lexeme in OPERAND_KEYWORDS

    def _parse_operand(self, context: str) -> Token:
        if not self._is_operand(self._peek()):
            raise self._missing(context)
        return self._advance()

    def _parse_expression(self) -> ExpressionStatement:
        """
        Parse a flat operand/operator chain.

        Returns:
            ExpressionStatement whose tokens callers splice into their
            own head tokens
        """
        first = self._parse_operand("an expression")
        tokens = [first]

        while True:
            op = self._match(TokenKind.OPERATOR)
            if op is None:
                break
            tokens.append(op)
            tokens.append(self._parse_operand("operand after operator"))

        return ExpressionStatement(location=first.location, tokens=tokens)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> ProgramNode:
    """
    Tokenize and parse source text in one step.

    Raises:
        LexicalError: If the source cannot be tokenized
        ParseError: If the tokens do not form a valid program
    """
    tokens = KatLexer(source, filename).tokenize()
    return KatParser(tokens, filename, source.splitlines()).parse()
