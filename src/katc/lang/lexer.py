"""
Kat Lexer (Tokenizer)
=====================

This module implements the lexer for the kat language. It converts source
text into the ordered token list consumed by the parser.

Token Categories
----------------
- Keywords: start, close, intbox, floatbox, stringbox, charbox, boolbox,
  out, in, if, else, true, false, endl, while
- Identifiers: [A-Za-z_][A-Za-z0-9_]*
- Integer literals: 42
- Float literals: 3.14 (no exponent, no sign)
- String literals: "double quoted" (lexeme keeps the quotes)
- Char literals: 'c' or '\\n' (lexeme keeps the quotes)
- Operators: + - * / % == != < > <= >= << >> =
- Symbols: { } ( ) ; ,

Comments
--------
- Single-line: // comment
- Multi-line: /* comment */

Operators are matched longest-first, so "<<" is always a single token and
never two "<" tokens.

Example Usage
-------------
>>> from katc.lang.lexer import KatLexer
>>> for token in KatLexer('start { out << x; close }').tokenize():
...     print(token)
Token(KEYWORD, 'start', 1:1)
Token(SYMBOL, '{', 1:7)
Token(KEYWORD, 'out', 1:9)
Token(OPERATOR, '<<', 1:13)
Token(IDENTIFIER, 'x', 1:16)
Token(SYMBOL, ';', 1:17)
Token(KEYWORD, 'close', 1:19)
Token(SYMBOL, '}', 1:25)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from katc.errors import SourceLocation
from katc.lang.errors import (
    LexicalError,
    UnterminatedStringError,
    UnterminatedCharError,
    UnterminatedCommentError,
    InvalidCharacterError,
)


# =============================================================================
# Token Kinds
# =============================================================================

class TokenKind(Enum):
    """Lexical category of a token."""

    KEYWORD = auto()
    IDENTIFIER = auto()
    INTEGER_LITERAL = auto()
    FLOAT_LITERAL = auto()
    STRING_LITERAL = auto()
    CHAR_LITERAL = auto()
    OPERATOR = auto()
    SYMBOL = auto()


# Reserved words of the language
KEYWORDS: frozenset[str] = frozenset({
    "start", "close",
    "intbox", "floatbox", "stringbox", "charbox", "boolbox",
    "out", "in",
    "if", "else", "while",
    "true", "false", "endl",
})

# Storage-kind keywords that open a variable declaration
STORAGE_KINDS: frozenset[str] = frozenset({
    "intbox", "floatbox", "stringbox", "charbox", "boolbox",
})

# Longest first: two-character operators must win over their prefixes
OPERATORS: tuple[str, ...] = tuple(sorted(
    ("+", "-", "*", "/", "%", "==", "!=", "<", ">", "<=", ">=", "<<", ">>", "="),
    key=len,
    reverse=True,
))

SYMBOLS: frozenset[str] = frozenset("{}();,")

# Operators that may join the two operands of a lowered condition
COMPARISON_OPERATORS: frozenset[str] = frozenset({"==", "!=", "<", "<=", ">", ">="})


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from kat source code.

    Attributes:
        kind: The TokenKind classification
        lexeme: The exact source text of the token
        line: Line of the token's first character (1-indexed)
        column: Column of the token's first character (1-indexed)
        filename: Name of the source file
    """
    kind: TokenKind
    lexeme: str
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.lexeme!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_keyword(self, value: Optional[str] = None) -> bool:
        """Return True if this is a keyword (optionally a specific one)."""
        return self.kind == TokenKind.KEYWORD and (value is None or self.lexeme == value)

    def is_storage_kind(self) -> bool:
        """Return True if this token opens a variable declaration."""
        return self.kind == TokenKind.KEYWORD and self.lexeme in STORAGE_KINDS

    def is_literal(self) -> bool:
        """Return True for integer, float, string and char literals."""
        return self.kind in (
            TokenKind.INTEGER_LITERAL,
            TokenKind.FLOAT_LITERAL,
            TokenKind.STRING_LITERAL,
            TokenKind.CHAR_LITERAL,
        )


def format_tokens(tokens: list[Token]) -> str:
    """Render a token dump, one token per line."""
    return "\n".join(
        f"Token({t.kind.name.lower()}, {t.lexeme}, line {t.line}, column {t.column})"
        for t in tokens
    )


# =============================================================================
# Lexer Implementation
# =============================================================================

class KatLexer:
    """
    Tokenizes kat source code.

    Usage:
        lexer = KatLexer(source_text, filename)
        tokens = lexer.tokenize()

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    IDENT_START = string.ascii_letters + "_"
    IDENT_CHARS = string.ascii_letters + string.digits + "_"
    DIGITS = string.digits

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        self._pos = 0
        self._line = 1
        self._column = 1

        # Track line start position for error reporting
        self._line_start_pos = 0

    def tokenize(self) -> list[Token]:
        """
        Convert the whole source into tokens.

        Returns:
            The complete, ordered token list

        Raises:
            LexicalError: On the first invalid construct. No tokens are
                returned in that case.
        """
        return list(self._scan_tokens())

    def _scan_tokens(self) -> Iterator[Token]:
        while True:
            self._skip_whitespace_and_comments()
            if self._at_end():
                return
            yield self._scan_token()

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Character at current position + offset, or '' past the end."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume one character, keeping line/column bookkeeping current."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _is_digit(self, char: str) -> bool:
        """ASCII digits only; '' (past the end) is not a digit."""
        return char != "" and char in self.DIGITS

    def _current_line_text(self) -> str:
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]

    def _line_text(self, line: int) -> str:
        lines = self.source.splitlines()
        if 0 < line <= len(lines):
            return lines[line - 1]
        return ""

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char.isspace():
                self._advance()
                continue

            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            if char == "/" and self._peek(1) == "*":
                self._skip_block_comment()
                continue

            break

    def _skip_block_comment(self) -> None:
        start = SourceLocation(self.filename, self._line, self._column)

        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise UnterminatedCommentError(start)

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _make_token(self, kind: TokenKind, start_pos: int, line: int, column: int) -> Token:
        return Token(
            kind=kind,
            lexeme=self.source[start_pos:self._pos],
            line=line,
            column=column,
            filename=self.filename,
        )

    def _scan_token(self) -> Token:
        start_pos = self._pos
        line = self._line
        column = self._column
        char = self._peek()

        if char in self.IDENT_START:
            while self._peek() and self._peek() in self.IDENT_CHARS:
                self._advance()
            word = self.source[start_pos:self._pos]
            kind = TokenKind.KEYWORD if word in KEYWORDS else TokenKind.IDENTIFIER
            return self._make_token(kind, start_pos, line, column)

        if self._is_digit(char):
            return self._scan_number(start_pos, line, column)

        if char == '"':
            return self._scan_string(start_pos, line, column)

        if char == "'":
            return self._scan_char(start_pos, line, column)

        for op in OPERATORS:
            if self.source.startswith(op, self._pos):
                for _ in op:
                    self._advance()
                return self._make_token(TokenKind.OPERATOR, start_pos, line, column)

        if char in SYMBOLS:
            self._advance()
            return self._make_token(TokenKind.SYMBOL, start_pos, line, column)

        raise InvalidCharacterError(
            char,
            SourceLocation(self.filename, line, column),
            self._current_line_text(),
        )

    def _scan_number(self, start_pos: int, line: int, column: int) -> Token:
        """Digits, optionally followed by '.' and more digits."""
        while self._is_digit(self._peek()):
            self._advance()

        if self._peek() == "." and self._is_digit(self._peek(1)):
            self._advance()
            while self._is_digit(self._peek()):
                self._advance()
            return self._make_token(TokenKind.FLOAT_LITERAL, start_pos, line, column)

        return self._make_token(TokenKind.INTEGER_LITERAL, start_pos, line, column)

    def _scan_string(self, start_pos: int, line: int, column: int) -> Token:
        """
        Scan a double-quoted string literal.

        A backslash escapes the following character, including a quote.
        Newlines inside the literal are allowed and tracked.
        """
        start = SourceLocation(self.filename, line, column)
        self._advance()

        while not self._at_end():
            char = self._advance()
            if char == "\\":
                if self._at_end():
                    break
                self._advance()
            elif char == '"':
                return self._make_token(TokenKind.STRING_LITERAL, start_pos, line, column)

        raise UnterminatedStringError(start, self._line_text(line))

    def _scan_char(self, start_pos: int, line: int, column: int) -> Token:
        """Scan a single-quoted literal holding one, possibly escaped, character."""
        start = SourceLocation(self.filename, line, column)
        self._advance()

        if self._at_end() or self._peek() == "\n":
            raise UnterminatedCharError(start, self._line_text(line))

        if self._peek() == "'":
            raise LexicalError(
                f"Empty char literal at line {line}",
                start,
                hint="character literals hold exactly one character",
                source_line=self._line_text(line),
            )

        if self._advance() == "\\":
            if self._at_end() or self._peek() == "\n":
                raise UnterminatedCharError(start, self._line_text(line))
            self._advance()

        if self._peek() != "'":
            raise UnterminatedCharError(start, self._line_text(line))
        self._advance()

        return self._make_token(TokenKind.CHAR_LITERAL, start_pos, line, column)
