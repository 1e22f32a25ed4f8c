"""
Kat Compiler Main Module
========================

This module provides the main compiler interface. It runs the three
stages in strict order:

    Source -> Lex -> Parse -> Generate -> Instruction listing

Usage
-----
Command line:
    $ katcc hello.kat -o hello.asm

Programmatic:
    >>> from katc.lang import compile_kat
    >>> listing = compile_kat('start { intbox x = 5; close }')

Error Handling
--------------
Each stage raises its own KatLanguageError subclass (LexicalError,
ParseError, EmissionError). Errors always propagate: a later stage never
runs on the output of a failed stage, and nothing is written to an output
sink or file unless the whole pipeline succeeded.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, TextIO

from katc.lang.lexer import KatLexer, Token
from katc.lang.parser import KatParser
from katc.lang.codegen import CodeGenerator
from katc.lang.ast import ProgramNode

logger = logging.getLogger(__name__)


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        strict_conditions: Treat conditions that are not a single binary
            comparison as errors instead of leaving them unlowered with a
            warning.
        storage_prefix: Prefix of generated storage-location names.
    """
    strict_conditions: bool = False
    storage_prefix: str = "var_"


@dataclass
class CompilerResult:
    """
    Result of a successful compilation.

    Failures raise instead of returning a result, so every result holds a
    complete listing.

    Attributes:
        filename: Source filename
        assembly: Generated instruction listing
        tokens: Tokens produced by the lexer
        ast: Statement tree produced by the parser
        token_count: Number of tokens lexed
        warnings: Diagnostics that did not stop compilation
    """
    filename: str = ""
    assembly: str = ""
    tokens: list[Token] = field(default_factory=list)
    ast: Optional[ProgramNode] = None
    token_count: int = 0
    warnings: list[str] = field(default_factory=list)


class KatCompiler:
    """
    Compiler for kat programs.

    Example:
        compiler = KatCompiler()
        result = compiler.compile_file("hello.kat", "hello.asm")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def tokenize(self, source: str, filename: str = "<input>") -> list[Token]:
        """Run only the lexer."""
        tokens = KatLexer(source, filename).tokenize()
        logger.info("Tokenization completed: %d tokens", len(tokens))
        return tokens

    def parse(self, source: str, filename: str = "<input>") -> ProgramNode:
        """Run the lexer and the parser."""
        tokens = self.tokenize(source, filename)
        return KatParser(tokens, filename, source.splitlines()).parse()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile source text to an instruction listing.

        Args:
            source: kat source code
            filename: Source filename for error messages

        Returns:
            CompilerResult with the listing and diagnostics

        Raises:
            KatLanguageError: From whichever stage failed first
        """
        result = CompilerResult(filename=filename)

        tokens = self.tokenize(source, filename)
        result.tokens = tokens
        result.token_count = len(tokens)

        ast = KatParser(tokens, filename, source.splitlines()).parse()
        result.ast = ast

        generator = CodeGenerator(
            strict_conditions=self.options.strict_conditions,
            storage_prefix=self.options.storage_prefix,
        )
        result.assembly = generator.generate(ast)
        result.warnings = list(generator.warnings)

        return result

    def compile_to(self, source: str, sink: TextIO, filename: str = "<input>") -> CompilerResult:
        """
        Compile and write the listing to a text sink.

        The sink is only written to after every stage has succeeded.
        """
        result = self.compile_source(source, filename)
        sink.write(result.assembly)
        sink.flush()
        return result

    def compile_file(
        self,
        filepath: str | Path,
        output_path: Optional[str | Path] = None,
    ) -> CompilerResult:
        """
        Compile a source file, optionally writing the listing to disk.

        Args:
            filepath: Path to the .kat source file
            output_path: Where to write the listing (not written if None)

        Raises:
            FileNotFoundError: If the source file does not exist
            KatLanguageError: If compilation fails; output_path is left
                untouched in that case
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        logger.info("Source code loaded from %s (%d bytes)", path, len(source))

        result = self.compile_source(source, str(path))

        if output_path is not None:
            write_listing(result.assembly, output_path)
            logger.info("Listing written to %s", output_path)

        return result


# =============================================================================
# Utility Functions
# =============================================================================

def write_listing(assembly: str, output_path: str | Path) -> None:
    """
    Write a listing so that the target is either complete or untouched.

    The text goes to a temporary file beside the target, which is renamed
    over it only after the write succeeded.
    """
    target = Path(output_path)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=target.parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(assembly)
            tmp.flush()
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_kat(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile kat source code to an instruction listing.

    Raises:
        KatLanguageError: If compilation fails

    Example:
        >>> listing = compile_kat('start { out << "hi" << endl; close }')
    """
    return KatCompiler(options).compile_source(source, filename).assembly


def compile_file(
    filepath: str | Path,
    output_path: Optional[str | Path] = None,
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile a .kat file, optionally writing the listing.

    Example:
        >>> listing = compile_file("hello.kat", "hello.asm")
    """
    return KatCompiler(options).compile_file(filepath, output_path).assembly
