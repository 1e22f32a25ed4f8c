"""
katc - Compiler for the kat Language
====================================

This package translates programs written in kat, a small structured
teaching language, into an illustrative assembly-style instruction listing.

Main Components
---------------
- **lang**: the compiler itself (lexer, parser, code generator)
- **cli**: the `katcc` command-line tool

Quick Start
-----------
    >>> from katc import compile_kat
    >>> listing = compile_kat('start { intbox x = 5; out << x; close }')

Or from the terminal:
    $ katcc hello.kat -o hello.asm
"""

__version__ = "1.0.0"

from katc.errors import KatError, SourceLocation
from katc.lang import (
    KatCompiler,
    CompilerOptions,
    CompilerResult,
    compile_kat,
    compile_file,
    KatLanguageError,
    LexicalError,
    ParseError,
    EmissionError,
)

__all__ = [
    "__version__",
    "KatError",
    "SourceLocation",
    "KatCompiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_kat",
    "compile_file",
    "KatLanguageError",
    "LexicalError",
    "ParseError",
    "EmissionError",
]
