"""
Kat Statement Tree
==================

This module defines the statement nodes produced by the parser and
consumed by the code generator.

Node Hierarchy
--------------
ASTNode (base)
├── ProgramNode - root node: ordered top-level statements
└── Statement - base of every statement; carries head tokens
    ├── VariableDeclaration - storage kind, name, optional initializer
    ├── OutputStatement - out << expression
    ├── InputStatement - in >> identifier
    ├── IfStatement - condition, then branch, optional else branch
    ├── WhileLoop - condition, body
    └── ExpressionStatement - flat operand/operator chain

Design Notes
------------
- Head tokens are the flat tokens describing the statement itself; tokens
  of nested statements are never included.
- Only IfStatement and WhileLoop own child statements. The else branch is
  an explicit optional field, never a positional child.
- Expressions stay a flat token chain: the language has no precedence.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Optional

from katc.errors import SourceLocation
from katc.lang.lexer import Token, TokenKind


class StatementKind(Enum):
    """Tag of each statement variant."""

    VARIABLE_DECLARATION = auto()
    OUTPUT = auto()
    INPUT = auto()
    IF_STATEMENT = auto()
    WHILE_LOOP = auto()
    EXPRESSION = auto()


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all tree nodes.

    Attributes:
        location: Source location where this node starts
    """
    location: SourceLocation

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}@{self.location.line}:{self.location.column}"


@dataclass
class Statement(ASTNode):
    """
    Base class for statement nodes.

    Attributes:
        location: Source location of the statement's first token
        tokens: Head tokens of the statement
    """
    tokens: list[Token] = field(default_factory=list)

    kind: StatementKind = field(init=False, repr=False)

    @property
    def children(self) -> list["Statement"]:
        """Owned child statements; empty for every kind without a body."""
        return []

    def text(self) -> str:
        """Head tokens joined with single spaces."""
        return " ".join(t.lexeme for t in self.tokens)


@dataclass
class ProgramNode(ASTNode):
    """
    Root of the tree: a complete `start { ... close }` program.

    Attributes:
        statements: Top-level statements in source order
    """
    statements: list[Statement] = field(default_factory=list)


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class VariableDeclaration(Statement):
    """
    Variable declaration such as `intbox x = 5;`.

    Head tokens: storage keyword, identifier, and optionally '=' followed by
    the initializer expression.
    """

    def __post_init__(self):
        self.kind = StatementKind.VARIABLE_DECLARATION

    @property
    def storage_kind(self) -> str:
        return self.tokens[0].lexeme

    @property
    def name(self) -> str:
        return self.tokens[1].lexeme

    @property
    def name_token(self) -> Token:
        return self.tokens[1]

    @property
    def initializer(self) -> list[Token]:
        """Initializer tokens after '=', or an empty list."""
        return self.tokens[3:]


@dataclass
class OutputStatement(Statement):
    """`out << expression;` with the expression tokens as head tokens."""

    def __post_init__(self):
        self.kind = StatementKind.OUTPUT


@dataclass
class InputStatement(Statement):
    """`in >> identifier;` with the identifier as the only head token."""

    def __post_init__(self):
        self.kind = StatementKind.INPUT

    @property
    def target(self) -> Token:
        return self.tokens[0]


@dataclass
class IfStatement(Statement):
    """
    `if (condition) { ... } [else { ... }]`.

    Attributes:
        tokens: The condition tokens
        then_branch: Statements executed when the condition holds
        else_branch: Statements of the else block, or None without one
    """
    then_branch: list[Statement] = field(default_factory=list)
    else_branch: Optional[list[Statement]] = None

    def __post_init__(self):
        self.kind = StatementKind.IF_STATEMENT

    @property
    def children(self) -> list[Statement]:
        return list(self.then_branch) + list(self.else_branch or [])


@dataclass
class WhileLoop(Statement):
    """`while (condition) { ... }` with the condition as head tokens."""
    body: list[Statement] = field(default_factory=list)

    def __post_init__(self):
        self.kind = StatementKind.WHILE_LOOP

    @property
    def children(self) -> list[Statement]:
        return list(self.body)


@dataclass
class ExpressionStatement(Statement):
    """
    A flat operand/operator chain.

    The parser returns one of these from its expression rule; callers splice
    its tokens into their own head tokens.
    """

    def __post_init__(self):
        self.kind = StatementKind.EXPRESSION

    @property
    def operands(self) -> list[Token]:
        return [t for t in self.tokens if t.kind != TokenKind.OPERATOR]


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for tree visitors.

    Dispatches to `visit_<ClassName>` and falls back to generic_visit,
    which walks every child statement.

    Usage:
        class MyVisitor(ASTVisitor):
            def visit_IfStatement(self, node):
                ...
    """

    def visit(self, node: ASTNode) -> Any:
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        if isinstance(node, ProgramNode):
            children = node.statements
        elif isinstance(node, Statement):
            children = node.children
        else:
            children = []
        for child in children:
            self.visit(child)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for debugging the statement tree.

    Usage:
        printer = ASTPrinter()
        print(printer.print(program))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the tree and return it as a string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        self.output.append(f"{'  ' * self.indent_level}{text}")

    def _block(self, statements: list[Statement]) -> None:
        self.indent_level += 1
        for stmt in statements:
            self.visit(stmt)
        self.indent_level -= 1

    def visit_ProgramNode(self, node: ProgramNode):
        self._emit("Program")
        self._block(node.statements)

    def visit_VariableDeclaration(self, node: VariableDeclaration):
        init = ""
        if node.initializer:
            init = " = " + " ".join(t.lexeme for t in node.initializer)
        self._emit(f"Declare: {node.storage_kind} {node.name}{init}")

    def visit_OutputStatement(self, node: OutputStatement):
        self._emit(f"Output: {node.text()}")

    def visit_InputStatement(self, node: InputStatement):
        self._emit(f"Input: {node.text()}")

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"If ({node.text()})")
        self.indent_level += 1
        self._emit("Then:")
        self._block(node.then_branch)
        if node.else_branch is not None:
            self._emit("Else:")
            self._block(node.else_branch)
        self.indent_level -= 1

    def visit_WhileLoop(self, node: WhileLoop):
        self._emit(f"While ({node.text()})")
        self._block(node.body)

    def visit_ExpressionStatement(self, node: ExpressionStatement):
        self._emit(f"Expr: {node.text()}")
