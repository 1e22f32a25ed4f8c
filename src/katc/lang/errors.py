"""
Kat Compiler Error Hierarchy
============================

This module defines the exceptions raised by the three compiler stages.
Every stage fails fast: the first error aborts the stage and propagates to
the caller, so later stages never run on incomplete output.

Exception Hierarchy
-------------------
KatLanguageError (base for all language errors)
├── LexicalError - tokenizer errors
│   ├── UnterminatedStringError - missing closing '"'
│   ├── UnterminatedCharError - missing closing "'"
│   ├── UnterminatedCommentError - missing closing '*/'
│   └── InvalidCharacterError - character outside the language
├── ParseError - grammar errors
│   ├── MissingTokenError - required token not found
│   └── UnexpectedTokenError - token where none is allowed
└── EmissionError - code generation errors
    ├── UnsupportedStorageKindError - unknown storage keyword
    ├── UnsupportedStatementError - unknown statement node
    ├── UnresolvedIdentifierError - identifier used before declaration
    └── UnsupportedConditionError - condition that cannot be lowered
"""

from typing import Optional

from katc.errors import KatError, SourceLocation


# =============================================================================
# Base Language Exception
# =============================================================================

class KatLanguageError(KatError):
    """
    Base exception for errors in kat source programs.

    The lexer, parser and code generator only ever raise subclasses of
    this type.
    """
    pass


# =============================================================================
# Lexical Errors
# =============================================================================

class LexicalError(KatLanguageError):
    """
    Error while converting source text into tokens.

    Lexical errors are always fatal; no partial token sequence is returned.
    """
    pass


class UnterminatedStringError(LexicalError):
    """
    String literal without a closing quote.

    The reported location is where the literal started, not where the
    lexer ran out of input.

    Example:
        stringbox s = "hello;
    """

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        line = location.line if location else "?"
        super().__init__(
            f"Unterminated string literal at line {line}",
            location=location,
            hint="add closing '\"' to complete the string",
            source_line=source_line,
        )


class UnterminatedCharError(LexicalError):
    """Character literal without a closing quote."""

    def __init__(
        self,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        line = location.line if location else "?"
        super().__init__(
            f"Unterminated char literal at line {line}",
            location=location,
            hint="character literals hold exactly one character, e.g. 'a' or '\\n'",
            source_line=source_line,
        )


class UnterminatedCommentError(LexicalError):
    """Block comment without a closing '*/'."""

    def __init__(self, location: Optional[SourceLocation] = None):
        line = location.line if location else "?"
        super().__init__(
            f"Unterminated multi-line comment starting at line {line}",
            location=location,
            hint="add closing */ to terminate the comment",
        )


class InvalidCharacterError(LexicalError):
    """
    Character that cannot start any token.

    Attributes:
        char: The offending character
    """

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        where = f" at line {location.line}, column {location.column}" if location else ""
        super().__init__(
            f"Unknown token '{char}'{where}",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Parse Errors
# =============================================================================

class ParseError(KatLanguageError):
    """
    Token sequence does not match the grammar.

    The parser does not recover or resynchronize; the first ParseError
    aborts the parse.
    """
    pass


class MissingTokenError(ParseError):
    """
    Required token is missing.

    The message always reads "Expected <what> at line <N>", including when
    the token stream ends where the token should have been.

    Attributes:
        expected: Description of what was expected
    """

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        line = location.line if location else "?"
        super().__init__(
            f"Expected {expected} at line {line}",
            location=location,
            source_line=source_line,
        )


class UnexpectedTokenError(ParseError):
    """
    Token that does not start any valid construct at this position.

    Attributes:
        found: Lexeme of the offending token
        expected: What the grammar allows here (optional)
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected
        line = location.line if location else "?"
        super().__init__(
            f"Unexpected token '{found}' at line {line}",
            location=location,
            hint=f"expected {expected}" if expected else None,
            source_line=source_line,
        )


# =============================================================================
# Emission Errors
# =============================================================================

class EmissionError(KatLanguageError):
    """
    Error while generating the instruction listing.

    Also raised when the code generator is used after finalize().
    """
    pass


class UnsupportedStorageKindError(EmissionError):
    """Declaration with a storage kind the generator has no layout for."""

    def __init__(self, storage_kind: str, location: Optional[SourceLocation] = None):
        self.storage_kind = storage_kind
        super().__init__(
            f"Unsupported variable type: {storage_kind}",
            location=location,
            hint="use intbox, floatbox, stringbox, charbox or boolbox",
        )


class UnsupportedStatementError(EmissionError):
    """Statement node the generator cannot dispatch."""

    def __init__(self, node_type: str, location: Optional[SourceLocation] = None):
        self.node_type = node_type
        super().__init__(f"Invalid statement type: {node_type}", location=location)


class UnresolvedIdentifierError(EmissionError):
    """
    Identifier used before any declaration of it.

    Attributes:
        identifier: The unresolved name
        similar_identifiers: Declared names that look close to it
    """

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        similar_identifiers: Optional[list[str]] = None,
    ):
        self.identifier = identifier
        self.similar_identifiers = similar_identifiers or []

        hint = None
        if self.similar_identifiers:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_identifiers[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undeclared identifier '{identifier}'",
            location=location,
            hint=hint,
        )


class UnsupportedConditionError(EmissionError):
    """
    Condition that is not a single binary comparison.

    Only raised in strict mode; otherwise the condition is left unlowered
    and a warning is recorded.
    """

    def __init__(self, condition: str, location: Optional[SourceLocation] = None):
        self.condition = condition
        super().__init__(
            f"cannot lower condition '{condition}'",
            location=location,
            hint="conditions must have the form <operand> <comparison> <operand>",
        )
