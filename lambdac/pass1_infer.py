"""lambdac Pass 1: Infer.

Hindley-Milner type inference (Algorithm W) with let-polymorphism:

  W(G, x)               = instantiate(G(x))
  W(G, x -> e)          = W(G[x:a], e); return S(a) -> t
  W(G, e1 e2)           = S1,t1 = W(G, e1); S2,t2 = W(S1 G, e2)
                          S3 = unify(S2 t1, t2 -> b); return S3(b)
  W(G, let x = e1 in e2)
                        = S1,t1 = W(G, e1)
                          W(S1 G [x: generalize(S1 G, t1)], e2)

Sibling sub-expressions are always inferred against the environment already
updated by the substitution of every earlier sibling; a variable solved
while inferring the callee must be visible when inferring the argument.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from lambdac.ast_nodes import (
    Abstraction, Application, BinaryOp, BoolLiteral, Expr, Identifier, IfElse,
    IntLiteral, Let, RecursiveLet,
)
from lambdac.errors import CompileError, undefined_variable
from lambdac.typed_ast import (
    TypedAbstraction, TypedApplication, TypedBinaryOp, TypedBoolLiteral, TypedExpr,
    TypedIdentifier, TypedIfElse, TypedIntLiteral, TypedLet, TypedRecursiveLet,
    apply_substitution_to_expression,
)
from lambdac.types import (
    BOOL, INT, FunctionType, NameSupply, Type, TypeEnvironment,
    apply_substitution, compose_all, compose_substitutions, default_supply,
    environment_apply_substitution, generalize, instantiate, monomorphic,
    substitution_to_str, type_to_str,
)
from lambdac.unify import unify

logger = logging.getLogger(__name__)


@dataclass
class InferenceResult:
    """An annotated tree plus the substitution its inference produced."""
    expression: TypedExpr
    substitution: dict[str, Type] = field(default_factory=dict)

    @property
    def type(self) -> Type:
        return self.expression.type


class TypeInferrer:
    """Algorithm W over the lambdac expression tree."""

    def __init__(self, names: Optional[NameSupply] = None) -> None:
        self.names = names or default_supply()

    def infer(self, expr: Expr, env: TypeEnvironment) -> InferenceResult:
        if isinstance(expr, IntLiteral):
            return InferenceResult(TypedIntLiteral(expr.value, location=expr.location, type=INT))

        if isinstance(expr, BoolLiteral):
            return InferenceResult(TypedBoolLiteral(expr.value, location=expr.location, type=BOOL))

        if isinstance(expr, Identifier):
            return self._infer_identifier(expr, env)
        if isinstance(expr, Abstraction):
            return self._infer_abstraction(expr, env)
        if isinstance(expr, Application):
            return self._infer_application(expr, env)
        if isinstance(expr, RecursiveLet):
            return self._infer_recursive_let(expr, env)
        if isinstance(expr, Let):
            return self._infer_let(expr, env)
        if isinstance(expr, BinaryOp):
            return self._infer_binary_op(expr, env)
        if isinstance(expr, IfElse):
            return self._infer_if_else(expr, env)

        raise TypeError(f"Unknown expression node: {expr!r}")

    def _infer_identifier(self, expr: Identifier, env: TypeEnvironment) -> InferenceResult:
        scheme = env.get(expr.name)
        if scheme is None:
            raise CompileError(undefined_variable(expr.name, expr.location))
        # instantiation resolves nothing, so its renaming stays local
        typ = instantiate(scheme, self.names)
        return InferenceResult(TypedIdentifier(expr.name, location=expr.location, type=typ))

    def _infer_abstraction(self, expr: Abstraction, env: TypeEnvironment) -> InferenceResult:
        argument_type = self.names.fresh_variable()
        body = self.infer(expr.body, {**env, expr.parameter: monomorphic(argument_type)})
        typ = FunctionType(apply_substitution(argument_type, body.substitution), body.type)
        return InferenceResult(
            TypedAbstraction(expr.parameter, body.expression, location=expr.location, type=typ),
            body.substitution,
        )

    def _infer_application(self, expr: Application, env: TypeEnvironment) -> InferenceResult:
        callee = self.infer(expr.callee, env)
        argument = self.infer(
            expr.argument, environment_apply_substitution(env, callee.substitution)
        )
        return_type = self.names.fresh_variable()
        _, unifier = unify(
            apply_substitution(callee.type, argument.substitution),
            FunctionType(argument.type, return_type),
            expr.location,
        )
        substitution = compose_all([callee.substitution, argument.substitution, unifier])
        typ = apply_substitution(return_type, unifier)
        return InferenceResult(
            TypedApplication(callee.expression, argument.expression, location=expr.location, type=typ),
            substitution,
        )

    def _infer_let(self, expr: Let, env: TypeEnvironment) -> InferenceResult:
        value = self.infer(expr.value, env)
        env = environment_apply_substitution(env, value.substitution)
        scheme = generalize(env, apply_substitution(value.type, value.substitution))
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("let %s : %s", expr.name, type_to_str(scheme))

        body = self.infer(expr.body, {**env, expr.name: scheme})
        substitution = compose_substitutions(body.substitution, value.substitution)
        return InferenceResult(
            TypedLet(expr.name, value.expression, body.expression,
                     location=expr.location, type=body.type),
            substitution,
        )

    def _infer_recursive_let(self, expr: RecursiveLet, env: TypeEnvironment) -> InferenceResult:
        # monomorphic while its own definition is checked
        placeholder = self.names.fresh_variable()
        value = self.infer(expr.value, {**env, expr.name: monomorphic(placeholder)})
        value_type, unifier = unify(
            value.type, apply_substitution(placeholder, value.substitution), expr.location
        )
        value_substitution = compose_substitutions(unifier, value.substitution)
        value_expression = apply_substitution_to_expression(value.expression, unifier)

        env = environment_apply_substitution(env, value_substitution)
        scheme = generalize(env, value_type)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("let rec %s : %s", expr.name, type_to_str(scheme))

        body = self.infer(expr.body, {**env, expr.name: scheme})
        substitution = compose_substitutions(body.substitution, value_substitution)
        return InferenceResult(
            TypedRecursiveLet(expr.name, value_expression, body.expression,
                              location=expr.location, type=body.type),
            substitution,
        )

    def _infer_binary_op(self, expr: BinaryOp, env: TypeEnvironment) -> InferenceResult:
        left = self.infer(expr.left, env)
        _, left_unifier = unify(left.type, INT, expr.left.location or expr.location)
        substitution = compose_substitutions(left_unifier, left.substitution)

        right = self.infer(expr.right, environment_apply_substitution(env, substitution))
        _, right_unifier = unify(right.type, INT, expr.right.location or expr.location)
        substitution = compose_substitutions(
            right_unifier, compose_substitutions(right.substitution, substitution)
        )

        typ = BOOL if expr.op == "<" else INT
        return InferenceResult(
            TypedBinaryOp(expr.op, left.expression, right.expression,
                          location=expr.location, type=typ),
            substitution,
        )

    def _infer_if_else(self, expr: IfElse, env: TypeEnvironment) -> InferenceResult:
        condition = self.infer(expr.condition, env)
        _, condition_unifier = unify(condition.type, BOOL, expr.condition.location or expr.location)
        substitution = compose_substitutions(condition_unifier, condition.substitution)

        then = self.infer(expr.then, environment_apply_substitution(env, substitution))
        substitution = compose_substitutions(then.substitution, substitution)

        otherwise = self.infer(expr.otherwise, environment_apply_substitution(env, substitution))
        substitution = compose_substitutions(otherwise.substitution, substitution)

        typ, branch_unifier = unify(
            apply_substitution(then.type, otherwise.substitution),
            otherwise.type,
            expr.location,
        )
        substitution = compose_substitutions(branch_unifier, substitution)
        return InferenceResult(
            TypedIfElse(condition.expression, then.expression, otherwise.expression,
                        location=expr.location, type=typ),
            substitution,
        )


def infer(
    expr: Expr,
    environment: Optional[TypeEnvironment] = None,
    names: Optional[NameSupply] = None,
) -> InferenceResult:
    """Infer ``expr`` against ``environment``; the tree is not yet fully substituted."""
    result = TypeInferrer(names).infer(expr, dict(environment or {}))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("inferred %s with %s", type_to_str(result.type),
                     substitution_to_str(result.substitution))
    return result


def infer_types(
    expr: Expr,
    environment: Optional[TypeEnvironment] = None,
    names: Optional[NameSupply] = None,
) -> TypedExpr:
    """Infer ``expr`` and apply the final substitution to every annotation."""
    result = infer(expr, environment, names)
    return apply_substitution_to_expression(result.expression, result.substitution)
