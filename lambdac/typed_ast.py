"""lambdac annotated AST.

Each annotated node class extends its untyped counterpart with the ``type``
inferred for it, so rendering and free-name queries work on both trees while
the two stay distinct types. Annotated trees are built once by inference and
afterwards only ever replaced, never edited.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Union

from lambdac.ast_nodes import (
    Abstraction, Application, BinaryOp, BoolLiteral, Expr, Identifier, IfElse,
    IntLiteral, Let, RecursiveLet, expression_to_source,
)
from lambdac.types import Substitution, Type, apply_substitution, type_to_str


@dataclass(frozen=True)
class TypedIntLiteral(IntLiteral):
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedBoolLiteral(BoolLiteral):
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedIdentifier(Identifier):
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedAbstraction(Abstraction):
    body: TypedExpr
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedApplication(Application):
    callee: TypedExpr
    argument: TypedExpr
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedLet(Let):
    value: TypedExpr
    body: TypedExpr
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedRecursiveLet(RecursiveLet):
    value: TypedExpr
    body: TypedExpr
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedBinaryOp(BinaryOp):
    left: TypedExpr
    right: TypedExpr
    type: Type = field(kw_only=True)


@dataclass(frozen=True)
class TypedIfElse(IfElse):
    condition: TypedExpr
    then: TypedExpr
    otherwise: TypedExpr
    type: Type = field(kw_only=True)


TypedExpr = Union[
    TypedIntLiteral, TypedBoolLiteral, TypedIdentifier, TypedAbstraction,
    TypedApplication, TypedLet, TypedRecursiveLet, TypedBinaryOp, TypedIfElse,
]

_CHILDREN: dict[type, tuple[str, ...]] = {
    TypedIntLiteral: (),
    TypedBoolLiteral: (),
    TypedIdentifier: (),
    TypedAbstraction: ("body",),
    TypedApplication: ("callee", "argument"),
    TypedLet: ("value", "body"),
    TypedRecursiveLet: ("value", "body"),
    TypedBinaryOp: ("left", "right"),
    TypedIfElse: ("condition", "then", "otherwise"),
}


def children(expr: TypedExpr) -> tuple[str, ...]:
    """Names of the child fields of an annotated node."""
    try:
        return _CHILDREN[type(expr)]
    except KeyError:
        raise TypeError(f"Not an annotated expression: {expr!r}") from None


def apply_substitution_to_expression(expr: TypedExpr, substitution: Substitution) -> TypedExpr:
    """Rewrite every annotation in the tree through ``substitution``."""
    updates = {
        name: apply_substitution_to_expression(getattr(expr, name), substitution)
        for name in children(expr)
    }
    return dataclasses.replace(expr, type=apply_substitution(expr.type, substitution), **updates)


def expression_to_typed_str(expr: TypedExpr, indent: int = 0) -> str:
    """Indented dump of an annotated tree, one node per line with its type."""
    pad = "  " * indent
    label = type(expr).__name__.removeprefix("Typed")
    if isinstance(expr, (IntLiteral, BoolLiteral, Identifier)):
        head = f"{pad}{label} {expression_to_source(expr)} : {type_to_str(expr.type)}"
        return head
    if isinstance(expr, Abstraction):
        label = f"{label} {expr.parameter}"
    elif isinstance(expr, (Let, RecursiveLet)):
        label = f"{label} {expr.name}"
    elif isinstance(expr, BinaryOp):
        label = f"{label} {expr.op}"
    lines = [f"{pad}{label} : {type_to_str(expr.type)}"]
    lines.extend(expression_to_typed_str(getattr(expr, name), indent + 1) for name in children(expr))
    return "\n".join(lines)


def strip_types(expr: Expr) -> Expr:
    """Drop annotations, returning the equivalent untyped tree."""
    base = {
        TypedIntLiteral: IntLiteral,
        TypedBoolLiteral: BoolLiteral,
        TypedIdentifier: Identifier,
        TypedAbstraction: Abstraction,
        TypedApplication: Application,
        TypedLet: Let,
        TypedRecursiveLet: RecursiveLet,
        TypedBinaryOp: BinaryOp,
        TypedIfElse: IfElse,
    }.get(type(expr))
    if base is None:
        return expr
    values = {}
    for f in dataclasses.fields(base):
        value = getattr(expr, f.name)
        values[f.name] = strip_types(value) if isinstance(value, Expr) else value
    return base(**values)
