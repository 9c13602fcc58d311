"""lambdac AST node definitions.

The untyped expression tree produced by the parser: literals, identifiers,
single-argument abstraction and application, let / let rec, the three
built-in binary operators and if/then/else.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from lambdac.errors import SourceLocation

BINARY_OPERATORS = ("+", "-", "<")


@dataclass(frozen=True)
class Expr:
    location: Optional[SourceLocation] = field(default=None, kw_only=True, compare=False)


@dataclass(frozen=True)
class IntLiteral(Expr):
    value: int


@dataclass(frozen=True)
class BoolLiteral(Expr):
    value: bool


@dataclass(frozen=True)
class Identifier(Expr):
    name: str


@dataclass(frozen=True)
class Abstraction(Expr):
    """x -> body"""
    parameter: str
    body: Expr


@dataclass(frozen=True)
class Application(Expr):
    callee: Expr
    argument: Expr


@dataclass(frozen=True)
class Let(Expr):
    name: str
    value: Expr
    body: Expr


@dataclass(frozen=True)
class RecursiveLet(Expr):
    """let rec name = value in body; ``name`` is in scope inside ``value``."""
    name: str
    value: Expr
    body: Expr


@dataclass(frozen=True)
class BinaryOp(Expr):
    op: str
    left: Expr
    right: Expr

    def __post_init__(self) -> None:
        if self.op not in BINARY_OPERATORS:
            raise ValueError(f"Unknown binary operator '{self.op}'")


@dataclass(frozen=True)
class IfElse(Expr):
    condition: Expr
    then: Expr
    otherwise: Expr


# ---------------------------------------------------------------------------
# Source rendering
# ---------------------------------------------------------------------------

def _is_atom(expr: Expr) -> bool:
    return isinstance(expr, (IntLiteral, BoolLiteral, Identifier))


def _operand(expr: Expr) -> str:
    if _is_atom(expr) or isinstance(expr, Application):
        return expression_to_source(expr)
    return f"({expression_to_source(expr)})"


def expression_to_source(expr: Expr) -> str:
    """Render a (typed or untyped) tree back to surface syntax."""
    if isinstance(expr, IntLiteral):
        return str(expr.value)
    if isinstance(expr, BoolLiteral):
        return "true" if expr.value else "false"
    if isinstance(expr, Identifier):
        return expr.name
    if isinstance(expr, Abstraction):
        return f"{expr.parameter} -> {expression_to_source(expr.body)}"
    if isinstance(expr, Application):
        callee = expression_to_source(expr.callee)
        if not (_is_atom(expr.callee) or isinstance(expr.callee, Application)):
            callee = f"({callee})"
        argument = expression_to_source(expr.argument)
        if not _is_atom(expr.argument):
            argument = f"({argument})"
        return f"{callee} {argument}"
    if isinstance(expr, RecursiveLet):
        return (f"let rec {expr.name} = {expression_to_source(expr.value)} "
                f"in {expression_to_source(expr.body)}")
    if isinstance(expr, Let):
        return (f"let {expr.name} = {expression_to_source(expr.value)} "
                f"in {expression_to_source(expr.body)}")
    if isinstance(expr, BinaryOp):
        return f"{_operand(expr.left)} {expr.op} {_operand(expr.right)}"
    if isinstance(expr, IfElse):
        return (f"if {expression_to_source(expr.condition)} "
                f"then {expression_to_source(expr.then)} "
                f"else {expression_to_source(expr.otherwise)}")
    raise TypeError(f"Unknown expression node: {expr!r}")


def free_identifiers(expr: Expr) -> set[str]:
    """Names referenced in ``expr`` that no binder inside it introduces."""
    if isinstance(expr, Identifier):
        return {expr.name}
    if isinstance(expr, (IntLiteral, BoolLiteral)):
        return set()
    if isinstance(expr, Abstraction):
        return free_identifiers(expr.body) - {expr.parameter}
    if isinstance(expr, Application):
        return free_identifiers(expr.callee) | free_identifiers(expr.argument)
    if isinstance(expr, RecursiveLet):
        return (free_identifiers(expr.value) | free_identifiers(expr.body)) - {expr.name}
    if isinstance(expr, Let):
        return free_identifiers(expr.value) | (free_identifiers(expr.body) - {expr.name})
    if isinstance(expr, BinaryOp):
        return free_identifiers(expr.left) | free_identifiers(expr.right)
    if isinstance(expr, IfElse):
        return (free_identifiers(expr.condition) | free_identifiers(expr.then)
                | free_identifiers(expr.otherwise))
    raise TypeError(f"Unknown expression node: {expr!r}")
