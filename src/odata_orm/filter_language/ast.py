"""AST nodes for OData filter expressions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar


class NodeKind(StrEnum):
    """Discriminator naming each AST node variant."""

    COMPARISON = "Comparison"
    AND = "And"
    OR = "Or"
    NOT = "Not"
    METHOD_CALL = "MethodCall"
    GROUP = "Group"
    IN_LIST = "InList"
    ARITHMETIC = "Arithmetic"
    MEMBER_PATH = "MemberPath"
    LITERAL = "Literal"


class LiteralType(StrEnum):
    """Inferred type of a literal token."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    DATETIME = "datetime"
    DATE = "date"
    GUID = "guid"


COMPARISON_OPERATORS = ("eq", "ne", "gt", "ge", "lt", "le")
ARITHMETIC_OPERATORS = ("mul", "div", "add", "sub", "mod")


@dataclass(frozen=True, slots=True)
class Expr:
    """Base AST expression type."""

    kind: ClassVar[NodeKind]


@dataclass(frozen=True, slots=True)
class Literal(Expr):
    """Literal token with its raw text and inferred type."""

    kind: ClassVar[NodeKind] = NodeKind.LITERAL

    raw: str
    literal_type: LiteralType


@dataclass(frozen=True, slots=True)
class MemberPath(Expr):
    """Property path `a/b/c`."""

    kind: ClassVar[NodeKind] = NodeKind.MEMBER_PATH

    segments: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class Group(Expr):
    """Parenthesized expression."""

    kind: ClassVar[NodeKind] = NodeKind.GROUP

    expr: Expr


@dataclass(frozen=True, slots=True)
class MethodCall(Expr):
    """Built-in function invocation `name(arg, ...)`."""

    kind: ClassVar[NodeKind] = NodeKind.METHOD_CALL

    name: str
    arguments: tuple[Expr, ...]


@dataclass(frozen=True, slots=True)
class Arithmetic(Expr):
    """Arithmetic operation (`mul`, `div`, `add`, `sub` or `mod`)."""

    kind: ClassVar[NodeKind] = NodeKind.ARITHMETIC

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Comparison(Expr):
    """Comparison operation (`eq`, `ne`, `gt`, `ge`, `lt` or `le`)."""

    kind: ClassVar[NodeKind] = NodeKind.COMPARISON

    operator: str
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class InList(Expr):
    """Membership test `field in (literal, ...)`."""

    kind: ClassVar[NodeKind] = NodeKind.IN_LIST

    field: Expr
    items: tuple[Literal, ...]


@dataclass(frozen=True, slots=True)
class And(Expr):
    """Logical conjunction."""

    kind: ClassVar[NodeKind] = NodeKind.AND

    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Or(Expr):
    """Logical disjunction."""

    kind: ClassVar[NodeKind] = NodeKind.OR

    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Not(Expr):
    """Logical negation."""

    kind: ClassVar[NodeKind] = NodeKind.NOT

    operand: Expr
