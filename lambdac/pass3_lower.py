"""lambdac Pass 3: Lower.

Down-levelled tree -> IR. Only the integer/boolean straight-line subset is
accepted: literals, identifiers bound to slots, non-function lets, ``+`` and
saturated applications of the built-in ``add``. Anything else is reported
as an unsupported construct instead of being skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping

from lambdac.errors import CompileError, missing_variable, unsupported_construct
from lambdac.ir import IRAdd, IRBlock, IRConst, IRExpr, IRFunction, IRGetLocal, IRModule, IRSetLocal, IRType
from lambdac.typed_ast import (
    TypedAbstraction, TypedApplication, TypedBinaryOp, TypedBoolLiteral, TypedExpr,
    TypedIdentifier, TypedIntLiteral, TypedLet,
)
from lambdac.types import INT, FunctionType
from lambdac.unify import unify

logger = logging.getLogger(__name__)

ADD_BUILTIN = "add"


@dataclass(frozen=True)
class FunctionState:
    """Slot layout of the function being generated."""
    param_types: tuple[IRType, ...] = ()
    locals: tuple[IRType, ...] = ()

    def allocate(self, typ: IRType) -> tuple[FunctionState, int]:
        index = len(self.param_types) + len(self.locals)
        return FunctionState(self.param_types, self.locals + (typ,)), index


class IRGenerator:
    """Lowers one entry expression to a single exported function."""

    def __init__(self, slot_type: IRType = IRType.I32, entry_name: str = "main",
                 export: bool = True) -> None:
        self.slot_type = slot_type
        self.entry_name = entry_name
        self.export = export

    def generate_module(self, expr: TypedExpr) -> IRModule:
        if isinstance(expr, TypedAbstraction):
            unify(expr.type, FunctionType(INT, INT), expr.location)
            state = FunctionState(param_types=(self.slot_type,))
            scope = {expr.parameter: 0}
            body = expr.body
        else:
            unify(expr.type, INT, expr.location)
            state = FunctionState()
            scope = {}
            body = expr

        ir_body, state = self.generate(body, state, scope)
        function = IRFunction(
            name=self.entry_name,
            param_types=list(state.param_types),
            return_type=self.slot_type,
            locals=list(state.locals),
            body=IRBlock((ir_body,)),
            export=self.export,
        )
        logger.debug("generated %s with %d param(s) and %d local(s)",
                     function.name, len(function.param_types), len(function.locals))
        return IRModule(name=self.entry_name, functions=[function])

    def generate(
        self,
        expr: TypedExpr,
        state: FunctionState,
        scope: Mapping[str, int],
    ) -> tuple[IRExpr, FunctionState]:
        if isinstance(expr, TypedIntLiteral):
            return IRConst(expr.value), state

        if isinstance(expr, TypedBoolLiteral):
            return IRConst(1 if expr.value else 0), state

        if isinstance(expr, TypedIdentifier):
            if expr.name not in scope:
                raise CompileError(missing_variable(expr.name, expr.location))
            return IRGetLocal(scope[expr.name]), state

        if isinstance(expr, TypedLet):
            value, state = self.generate(expr.value, state, scope)
            state, index = state.allocate(self.slot_type)
            logger.debug("slot %d <- %s", index, expr.name)
            body, state = self.generate(expr.body, state, {**scope, expr.name: index})
            return IRBlock((IRSetLocal(index, value), body)), state

        if isinstance(expr, TypedBinaryOp) and expr.op == "+":
            return self._generate_add(expr.left, expr.right, state, scope)

        if isinstance(expr, TypedApplication):
            operands = self._add_operands(expr, scope)
            if operands is not None:
                return self._generate_add(*operands, state, scope)

        raise CompileError(unsupported_construct(expr))

    def _generate_add(self, left: TypedExpr, right: TypedExpr, state: FunctionState,
                      scope: Mapping[str, int]) -> tuple[IRExpr, FunctionState]:
        left_ir, state = self.generate(left, state, scope)
        right_ir, state = self.generate(right, state, scope)
        return IRAdd(left_ir, right_ir), state

    @staticmethod
    def _add_operands(expr: TypedApplication, scope: Mapping[str, int]):
        """Match ``add l r`` when ``add`` is the built-in, not a local."""
        callee = expr.callee
        if (isinstance(callee, TypedApplication)
                and isinstance(callee.callee, TypedIdentifier)
                and callee.callee.name == ADD_BUILTIN
                and ADD_BUILTIN not in scope):
            return callee.argument, expr.argument
        return None


def generate_ir(
    expr: TypedExpr,
    slot_type: IRType = IRType.I32,
    entry_name: str = "main",
    export: bool = True,
) -> IRModule:
    """Run Pass 3: lower a down-levelled entry expression to an IR module."""
    return IRGenerator(slot_type, entry_name, export).generate_module(expr)
