"""
Instruction Listing Generator for Kat
=====================================

This module walks the statement tree and produces the textual instruction
listing. It is the last stage of the compiler.

Code Generation Strategy
------------------------
Statements are visited depth-first in source order. Declarations go to the
data section, everything else goes to the text section:

    section .data
    var_x dd 5
    section .text
        ; If statement
        cmp var_x, 5
        je true_branch0
        jmp false_branch1
    true_branch0:
        ...
        jmp end_if2
    false_branch1:
    end_if2:
        ; Finalize assembly

The listing is illustrative. Output only loads registers and never performs
a system call. Input validates its target and emits nothing.

Storage Layout
--------------
| Storage kind | Directive | Zero value | Notes                    |
|--------------|-----------|------------|--------------------------|
| intbox       | dd        | 0          | 4-byte integer           |
| floatbox     | dq        | 0.0        | 8-byte float             |
| charbox      | db        | 0          | 1 byte, quoted character |
| stringbox    | db        | ""         | null-terminated bytes    |
| boolbox      | db        | 0          | true -> 1, false -> 0    |

Control Flow
------------
Every label comes from one counter owned by the generator instance, so
labels never repeat within a pass. `if` takes three labels and `while`
takes two. A condition is lowered to a comparison only when it is exactly
`operand comparison operand`.

Usage
-----
>>> from katc.lang.parser import parse_source
>>> from katc.lang.codegen import CodeGenerator
>>> program = parse_source('start { intbox x = 5; out << x; close }')
>>> listing = CodeGenerator().generate(program)
"""

import difflib
import logging
from dataclasses import dataclass
from typing import Optional

from katc.errors import SourceLocation
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
from katc.lang.lexer import Token, TokenKind
from katc.lang.errors import (
    EmissionError,
    UnsupportedStorageKindError,
    UnsupportedStatementError,
    UnresolvedIdentifierError,
    UnsupportedConditionError,
)

logger = logging.getLogger(__name__)


# Storage kind -> (data directive, zero value)
DATA_DIRECTIVES: dict[str, tuple[str, str]] = {
    "intbox": ("dd", "0"),
    "floatbox": ("dq", "0.0"),
    "charbox": ("db", "0"),
    "stringbox": ("db", '""'),
    "boolbox": ("db", "0"),
}

# Comparison operator -> conditional jump taken when the comparison holds
CONDITIONAL_JUMPS: dict[str, str] = {
    "==": "je",
    "!=": "jne",
    "<": "jl",
    "<=": "jle",
    ">": "jg",
    ">=": "jge",
}

NEWLINE_CHAR = "'\\n'"


# =============================================================================
# Symbol Table
# =============================================================================

@dataclass
class SymbolInfo:
    """
    A declared variable.

    Attributes:
        name: Identifier in the source program
        storage: Generated storage-location name
        storage_kind: Declared storage keyword (intbox, ...)
        location: Where the declaration appears
    """
    name: str
    storage: str
    storage_kind: str
    location: Optional[SourceLocation] = None


class SymbolTable:
    """
    Flat, global mapping from identifiers to storage locations.

    There are no nested scopes. Declaring a name again replaces the
    previous entry.
    """

    def __init__(self, prefix: str = "var_"):
        self.prefix = prefix
        self._symbols: dict[str, SymbolInfo] = {}

    def declare(
        self,
        name: str,
        storage_kind: str,
        location: Optional[SourceLocation] = None,
    ) -> SymbolInfo:
        """Record a declaration and return its entry."""
        if name in self._symbols:
            logger.debug("Redeclaration of '%s' replaces the earlier entry", name)
        info = SymbolInfo(
            name=name,
            storage=f"{self.prefix}{name}",
            storage_kind=storage_kind,
            location=location,
        )
        self._symbols[name] = info
        return info

    def lookup(self, name: str) -> Optional[SymbolInfo]:
        return self._symbols.get(name)

    def similar(self, name: str) -> list[str]:
        """Declared names close to `name`, for did-you-mean hints."""
        return difflib.get_close_matches(name, list(self._symbols), n=3)

    def __contains__(self, name: str) -> bool:
        return name in self._symbols

    def __len__(self) -> int:
        return len(self._symbols)


# =============================================================================
# Code Generator Class
# =============================================================================

class CodeGenerator:
    """
    Generates the instruction listing from a kat statement tree.

    One instance performs one emission pass: the symbol table and the
    label/temporary counters live on the instance and start fresh with it.
    After finalize() the instance refuses further emission.

    Attributes:
        symbols: The symbol table built during the pass
        warnings: Diagnostics that did not stop generation
    """

    def __init__(self, strict_conditions: bool = False, storage_prefix: str = "var_"):
        """
        Initialize the code generator.

        Args:
            strict_conditions: Raise UnsupportedConditionError for conditions
                that are not a single binary comparison instead of leaving
                them unlowered with a warning.
            storage_prefix: Prefix of generated storage-location names.
        """
        self.strict_conditions = strict_conditions

        self.symbols = SymbolTable(storage_prefix)
        self.warnings: list[str] = []

        self._data: list[str] = []
        self._text: list[str] = []

        self._label_counter: int = 0
        self._temp_counter: int = 0

        self._finalized = False

    def generate(self, program: ProgramNode) -> str:
        """
        Generate the complete listing for a program and finalize.

        Args:
            program: The root of the statement tree

        Returns:
            The instruction listing

        Raises:
            EmissionError: On the first statement that cannot be emitted
        """
        for stmt in program.statements:
            self._generate_statement(stmt)
        listing = self.finalize()
        logger.debug(
            "Generation completed: %d data lines, %d text lines",
            len(self._data), len(self._text),
        )
        return listing

    def finalize(self) -> str:
        """Close the text section and return the listing."""
        self._check_open()
        self._emit_comment("Finalize assembly")
        self._finalized = True
        return self.listing()

    def listing(self) -> str:
        """Render the data and text sections emitted so far."""
        lines = ["section .data", *self._data, "section .text", *self._text]
        return "\n".join(lines) + "\n"

    @property
    def finalized(self) -> bool:
        return self._finalized

    # =========================================================================
    # Output Methods
    # =========================================================================

    def _check_open(self) -> None:
        if self._finalized:
            raise EmissionError("code generator already finalized; no further emission is possible")

    def _emit(self, line: str) -> None:
        self._check_open()
        self._text.append(line)

    def _emit_comment(self, comment: str) -> None:
        self._emit(f"    ; {comment}")

    def _emit_label(self, label: str) -> None:
        self._emit(f"{label}:")

    def _emit_instruction(self, mnemonic: str, operand: str = "") -> None:
        if operand:
            self._emit(f"    {mnemonic} {operand}")
        else:
            self._emit(f"    {mnemonic}")

    def _emit_data(self, line: str) -> None:
        self._check_open()
        self._data.append(line)

    def _new_label(self, base: str) -> str:
        label = f"{base}{self._label_counter}"
        self._label_counter += 1
        return label

    def _new_temp(self) -> str:
        temp = f"temp{self._temp_counter}"
        self._temp_counter += 1
        return temp

    # =========================================================================
    # Operand Resolution
    # =========================================================================

    def _resolve(self, token: Token) -> str:
        """Storage name of an identifier token."""
        info = self.symbols.lookup(token.lexeme)
        if info is None:
            raise UnresolvedIdentifierError(
                token.lexeme,
                token.location,
                similar_identifiers=self.symbols.similar(token.lexeme),
            )
        return info.storage

    def _operand(self, token: Token) -> str:
        """Render a condition operand."""
        if token.kind == TokenKind.IDENTIFIER:
            return self._resolve(token)
        if token.is_keyword("true"):
            return "1"
        if token.is_keyword("false"):
            return "0"
        if token.is_keyword("endl"):
            return NEWLINE_CHAR
        return token.lexeme

    # =========================================================================
    # Statement Code Generation
    # =========================================================================

    def _generate_statements(self, statements: list[Statement]) -> None:
        for stmt in statements:
            self._generate_statement(stmt)

    def _generate_statement(self, stmt: Statement) -> None:
        self._check_open()

        if isinstance(stmt, VariableDeclaration):
            self._generate_declaration(stmt)
        elif isinstance(stmt, OutputStatement):
            self._generate_output(stmt)
        elif isinstance(stmt, InputStatement):
            self._generate_input(stmt)
        elif isinstance(stmt, IfStatement):
            self._generate_if(stmt)
        elif isinstance(stmt, WhileLoop):
            self._generate_while(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self._generate_expression(stmt)
        else:
            raise UnsupportedStatementError(
                type(stmt).__name__,
                getattr(stmt, "location", None),
            )

    def _generate_declaration(self, stmt: VariableDeclaration) -> None:
        """
        Emit the data-section line for a declaration.

        A single constant initializer goes straight into the data line. Any
        other initializer keeps the zero value there and is evaluated into a
        temporary in the text section.
        """
        storage_kind = stmt.storage_kind
        if storage_kind not in DATA_DIRECTIVES:
            raise UnsupportedStorageKindError(storage_kind, stmt.location)
        directive, value = DATA_DIRECTIVES[storage_kind]

        initializer = stmt.initializer
        deferred = bool(initializer) and not (
            len(initializer) == 1 and self._is_constant(initializer[0])
        )
        if deferred:
            for token in initializer:
                if token.kind == TokenKind.IDENTIFIER:
                    self._resolve(token)
        elif initializer:
            value = self._initial_value(storage_kind, initializer[0])

        info = self.symbols.declare(stmt.name, storage_kind, stmt.location)

        if storage_kind == "stringbox":
            self._emit_data(f"{info.storage} {directive} {value}, 0")
        else:
            self._emit_data(f"{info.storage} {directive} {value}")

        if deferred:
            temp = self._new_temp()
            expression = " ".join(t.lexeme for t in initializer)
            self._emit_comment(f"Evaluate initializer into {temp}: {expression}")
            self._emit_instruction("mov", f"{info.storage}, {temp}")

    @staticmethod
    def _is_constant(token: Token) -> bool:
        return token.is_literal() or token.is_keyword("true") or token.is_keyword("false")

    @staticmethod
    def _initial_value(storage_kind: str, token: Token) -> str:
        if storage_kind == "boolbox":
            # Only the keyword true sets a boolbox; any other constant stores 0.
            return "1" if token.is_keyword("true") else "0"
        if token.is_keyword("true"):
            return "1"
        if token.is_keyword("false"):
            return "0"
        return token.lexeme

    def _generate_output(self, stmt: OutputStatement) -> None:
        """Load each printed value into a register; the print itself is left to the platform."""
        self._emit_comment("Output logic")
        for token in stmt.tokens:
            if token.kind == TokenKind.STRING_LITERAL:
                self._emit_comment("Print string literal")
                self._emit_instruction("mov", f"rdi, {token.lexeme}")
            elif token.kind == TokenKind.IDENTIFIER:
                self._emit_comment("Print identifier")
                self._emit_instruction("mov", f"rax, {self._resolve(token)}")
            elif token.is_keyword("endl"):
                self._emit_comment("Print newline")
                self._emit_instruction("mov", f"rdi, {NEWLINE_CHAR}")
            elif token.is_literal():
                self._emit_comment("Print literal")
                self._emit_instruction("mov", f"rdi, {token.lexeme}")
            elif token.is_keyword("true") or token.is_keyword("false"):
                self._emit_comment("Print boolean")
                self._emit_instruction("mov", f"rdi, {self._operand(token)}")

    def _generate_input(self, stmt: InputStatement) -> None:
        # No input code is generated yet; only the target is checked.
        self._resolve(stmt.target)

    def _lower_condition(self, stmt: Statement, target: str) -> None:
        """
        Emit a comparison and a conditional jump to `target`.

        Only `operand comparison operand` is lowered. Anything else emits no
        comparison, or raises in strict mode.
        """
        condition = stmt.tokens
        if (
            len(condition) == 3
            and condition[1].kind == TokenKind.OPERATOR
            and condition[1].lexeme in CONDITIONAL_JUMPS
        ):
            left = self._operand(condition[0])
            right = self._operand(condition[2])
            self._emit_instruction("cmp", f"{left}, {right}")
            self._emit_instruction(CONDITIONAL_JUMPS[condition[1].lexeme], target)
            return

        text = stmt.text()
        if self.strict_conditions:
            raise UnsupportedConditionError(text, stmt.location)

        warning = f"{stmt.location}: warning: condition '{text}' is not a binary comparison; no comparison emitted"
        self.warnings.append(warning)
        logger.debug("Condition left unlowered: %s", text)
        self._emit_comment(f"Condition not lowered: {text}")

    def _generate_if(self, stmt: IfStatement) -> None:
        true_label = self._new_label("true_branch")
        false_label = self._new_label("false_branch")
        end_label = self._new_label("end_if")

        self._emit_comment("If statement")
        self._lower_condition(stmt, true_label)
        self._emit_instruction("jmp", false_label)

        self._emit_label(true_label)
        self._generate_statements(stmt.then_branch)
        self._emit_instruction("jmp", end_label)

        self._emit_label(false_label)
        if stmt.else_branch is not None:
            self._generate_statements(stmt.else_branch)

        self._emit_label(end_label)

    def _generate_while(self, stmt: WhileLoop) -> None:
        """
        Emit a while loop.

        The conditional jump targets the loop start and the body is entered
        by falling through. The end label is never jumped to.
        """
        start_label = self._new_label("start_loop")
        end_label = self._new_label("end_loop")

        self._emit_comment("While loop")
        self._emit_label(start_label)
        self._lower_condition(stmt, start_label)

        self._generate_statements(stmt.body)

        self._emit_instruction("jmp", start_label)
        self._emit_label(end_label)

    def _generate_expression(self, stmt: ExpressionStatement) -> None:
        self._emit_comment(f"Expression logic: {stmt.text()}")
