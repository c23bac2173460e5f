"""gopy AST — parse-time node definitions.

Any child slot may hold None when the parser gave up on that sub-construct;
consumers must tolerate absent nodes.
"""

from __future__ import annotations

from dataclasses import dataclass, fields


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# BASES
# ============================================================


@dataclass
class Node:
    """Base for all AST nodes."""

    pos: Pos


@dataclass
class Statement(Node):
    """Base for all statements."""


@dataclass
class Expression(Node):
    """Base for all expressions."""


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass
class Identifier(Expression):
    """name."""

    value: str


@dataclass
class IntegerLiteral(Expression):
    """123."""

    value: int


@dataclass
class StringLiteral(Expression):
    """"text"."""

    value: str


@dataclass
class Boolean(Expression):
    """true / false."""

    value: bool


@dataclass
class PrefixExpression(Expression):
    """op right, for -, ! and not."""

    op: str
    right: Expression | None


@dataclass
class InfixExpression(Expression):
    """left op right."""

    op: str
    left: Expression | None
    right: Expression | None


@dataclass
class CallExpression(Expression):
    """callee(args)."""

    callee: Expression | None
    args: list[Expression | None]


@dataclass
class IfExpression(Expression):
    """if condition / consequence block / else alternative block."""

    condition: Expression | None
    consequence: BlockStatement | None
    alternative: BlockStatement | None = None


@dataclass
class FunctionLiteral(Expression):
    """def(params) block."""

    params: list[Identifier]
    body: BlockStatement | None


@dataclass
class ArrayLiteral(Expression):
    """[elements]."""

    elements: list[Expression | None]


@dataclass
class IndexExpression(Expression):
    """base[index]."""

    base: Expression | None
    index: Expression | None


@dataclass
class MemberExpression(Expression):
    """base.member."""

    base: Expression | None
    member: Identifier


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class BlockStatement(Statement):
    """Indented run of statements."""

    statements: list[Statement]


@dataclass
class LetStatement(Statement):
    """let name = value."""

    name: Identifier
    value: Expression | None


@dataclass
class ReturnStatement(Statement):
    """return value."""

    value: Expression | None


@dataclass
class AssignmentStatement(Statement):
    """target = value. target is an Identifier or a MemberExpression."""

    target: Expression
    value: Expression | None


@dataclass
class ExpressionStatement(Statement):
    """Bare expression as statement."""

    expr: Expression | None


@dataclass
class MethodStatement(Statement):
    """def name(receiver, params) block, inside a class body."""

    name: Identifier
    params: list[Identifier]
    body: BlockStatement | None


@dataclass
class ClassStatement(Statement):
    """class Name field field ... with an indented block of methods."""

    name: Identifier
    fields: list[Identifier]
    methods: list[MethodStatement]


@dataclass
class ForStatement(Statement):
    """for iterator in iterable block. iterable is an upper bound."""

    iterator: Identifier
    iterable: Expression | None
    body: BlockStatement | None


@dataclass
class Program:
    """Top-level program — ordered statements."""

    statements: list[Statement]


# ============================================================
# SERIALIZATION
# ============================================================


def to_dict(node: object) -> object:
    """Render a node tree as plain dicts and lists, tagging each node with _type."""
    if node is None or isinstance(node, (bool, int, str)):
        return node
    if isinstance(node, list):
        return [to_dict(item) for item in node]
    if isinstance(node, (Node, Program)):
        result: dict[str, object] = {"_type": type(node).__name__}
        for f in fields(node):
            if f.name == "pos":
                continue
            result[f.name] = to_dict(getattr(node, f.name))
        return result
    raise TypeError("cannot serialize " + type(node).__name__)
