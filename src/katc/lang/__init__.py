"""
Kat Language Compiler
=====================

This package implements the compiler for the kat language, a small
structured language delimited by `start { ... close }`. It provides:

- A lexer (tokenizer) with longest-match operators
- A recursive descent parser producing a statement tree
- A code generator emitting an illustrative instruction listing

Pipeline
--------
    Source -> Lexer -> Tokens -> Parser -> Statement tree -> CodeGenerator -> Listing

Usage
-----
>>> from katc.lang import compile_kat
>>> source = '''
... start {
...     intbox x = 5;
...     if (x == 5) { out << x << endl; }
... close }
... '''
>>> print(compile_kat(source))  # doctest: +SKIP

Language Summary
----------------
- Storage kinds: intbox, floatbox, stringbox, charbox, boolbox
- Statements: declarations, out <<, in >>, if/else, while
- Expressions: flat operand/operator chains without precedence
"""

from katc.lang.compiler import (
    KatCompiler,
    CompilerOptions,
    CompilerResult,
    compile_kat,
    compile_file,
)
from katc.lang.errors import (
    KatLanguageError,
    LexicalError,
    ParseError,
    EmissionError,
    UnterminatedStringError,
    UnterminatedCharError,
    UnterminatedCommentError,
    InvalidCharacterError,
    MissingTokenError,
    UnexpectedTokenError,
    UnsupportedStorageKindError,
    UnsupportedStatementError,
    UnresolvedIdentifierError,
    UnsupportedConditionError,
)
from katc.lang.lexer import KatLexer, Token, TokenKind, format_tokens
from katc.lang.parser import KatParser, parse_source
from katc.lang.codegen import CodeGenerator, SymbolTable, SymbolInfo
from katc.lang.ast import (
    ASTNode,
    ASTPrinter,
    ASTVisitor,
    ProgramNode,
    Statement,
    StatementKind,
    VariableDeclaration,
    OutputStatement,
    InputStatement,
    IfStatement,
    WhileLoop,
    ExpressionStatement,
)

__all__ = [
    # Main API
    "KatCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_kat",
    "compile_file",
    # Errors
    "KatLanguageError",
    "LexicalError",
    "ParseError",
    "EmissionError",
    "UnterminatedStringError",
    "UnterminatedCharError",
    "UnterminatedCommentError",
    "InvalidCharacterError",
    "MissingTokenError",
    "UnexpectedTokenError",
    "UnsupportedStorageKindError",
    "UnsupportedStatementError",
    "UnresolvedIdentifierError",
    "UnsupportedConditionError",
    # Lexer
    "KatLexer",
    "Token",
    "TokenKind",
    "format_tokens",
    # Parser
    "KatParser",
    "parse_source",
    # Code Generator
    "CodeGenerator",
    "SymbolTable",
    "SymbolInfo",
    # Statement tree
    "ASTNode",
    "ASTPrinter",
    "ASTVisitor",
    "ProgramNode",
    "Statement",
    "StatementKind",
    "VariableDeclaration",
    "OutputStatement",
    "InputStatement",
    "IfStatement",
    "WhileLoop",
    "ExpressionStatement",
]
