"""
katcc - Kat Compiler Command-Line Interface
===========================================

This module implements the command-line interface for the kat compiler.
It validates the input file, reads it, runs the compiler and writes the
instruction listing.

Usage Examples
--------------
Basic compilation:
    $ katcc hello.kat

With output file:
    $ katcc hello.kat -o hello.asm

Inspect the front end:
    $ katcc --tokens hello.kat
    $ katcc --ast hello.kat

Verbose mode:
    $ katcc -v hello.kat
"""

import logging
from pathlib import Path
from typing import Optional

import click

from katc import __version__
from katc.lang import KatCompiler, CompilerOptions, format_tokens
from katc.lang.compiler import write_listing
from katc.lang.ast import ASTPrinter
from katc.cli.errors import handle_cli_exception

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".kat"


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def validate_source_path(ctx: click.Context, param: click.Parameter, value: Path) -> Path:
    """Reject input files without the .kat extension."""
    if value.suffix != SOURCE_SUFFIX:
        raise click.BadParameter(
            f"input file must have a {SOURCE_SUFFIX} extension: {value}",
            ctx=ctx,
            param=param,
        )
    return value


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    callback=validate_source_path,
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output listing file (default: input.asm)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream and exit",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print the statement tree and exit",
)
@click.option(
    "--strict",
    is_flag=True,
    help="Fail on conditions that are not a single binary comparison",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="katcc")
def main(
    input_file: Path,
    output: Optional[Path],
    tokens: bool,
    ast: bool,
    strict: bool,
    verbose: bool,
) -> None:
    """
    Compile a kat program into an instruction listing.

    INPUT_FILE is the kat source file (.kat) to compile.

    \b
    Examples:
        katcc hello.kat                 # Outputs hello.asm
        katcc hello.kat -o out.asm      # Specify output file
        katcc --tokens hello.kat        # Dump tokens
        katcc --ast hello.kat           # Dump the statement tree
    """
    setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".asm")

    compiler = KatCompiler(CompilerOptions(strict_conditions=strict))

    try:
        source = input_file.read_text(encoding="utf-8")
        logger.info("Compiler started on %s", input_file)

        if tokens:
            click.echo(format_tokens(compiler.tokenize(source, str(input_file))))
            return

        if ast:
            program = compiler.parse(source, str(input_file))
            click.echo(ASTPrinter().print(program))
            return

        result = compiler.compile_source(source, str(input_file))
        write_listing(result.assembly, output)
        logger.info("Listing written to %s", output)

        for warning in result.warnings:
            click.echo(warning, err=True)

        if verbose:
            click.echo(f"Tokenized: {result.token_count} tokens")
            if result.ast:
                click.echo(f"Parsed: {len(result.ast.statements)} top-level statements")
            click.echo(f"Wrote {len(result.assembly)} bytes to {output}")

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose)


if __name__ == "__main__":
    main()
