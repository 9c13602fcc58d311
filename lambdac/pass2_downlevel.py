"""lambdac Pass 2: Down-level.

Rewrites the fully-typed tree into the shape the IR generator accepts:

  - function-valued lets are never materialised; the bound name is replaced
    by the (down-levelled) function at every use site
  - applications whose callee is a known abstraction are beta-reduced
  - ``let x = (let y = v in b) in r`` rotates to ``let y' = v in let x = b in r``
  - ``let x = v in (p -> b)`` reassociates to ``p' -> let x = v in b``

Every binder introduced while a substituted expression mentions the same
name is alpha-renamed first, so no identifier changes the binder it refers to.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Mapping, Optional

from lambdac.ast_nodes import expression_to_source, free_identifiers
from lambdac.typed_ast import (
    TypedAbstraction, TypedApplication, TypedExpr, TypedIdentifier, TypedLet,
    TypedRecursiveLet, children,
)
from lambdac.types import FunctionType, NameSupply, default_supply

logger = logging.getLogger(__name__)

Environment = Mapping[str, TypedExpr]


def rename_variable(expr: TypedExpr, old: str, new: str) -> TypedExpr:
    """Rename the free occurrences of ``old`` in ``expr``, stopping at binders that shadow it."""
    if isinstance(expr, TypedIdentifier):
        return dataclasses.replace(expr, name=new) if expr.name == old else expr
    if isinstance(expr, TypedAbstraction):
        if expr.parameter == old:
            return expr
        return dataclasses.replace(expr, body=rename_variable(expr.body, old, new))
    if isinstance(expr, TypedRecursiveLet):
        if expr.name == old:
            return expr
        return dataclasses.replace(
            expr,
            value=rename_variable(expr.value, old, new),
            body=rename_variable(expr.body, old, new),
        )
    if isinstance(expr, TypedLet):
        value = rename_variable(expr.value, old, new)
        body = expr.body if expr.name == old else rename_variable(expr.body, old, new)
        return dataclasses.replace(expr, value=value, body=body)
    updates = {name: rename_variable(getattr(expr, name), old, new) for name in children(expr)}
    return dataclasses.replace(expr, **updates) if updates else expr


class DownLeveler:
    """Closure elimination by inlining, with capture-avoiding renaming."""

    def __init__(self, names: Optional[NameSupply] = None) -> None:
        self.names = names or default_supply()

    def down_level(self, expr: TypedExpr, env: Environment) -> TypedExpr:
        if isinstance(expr, TypedIdentifier):
            return env.get(expr.name, expr)
        if isinstance(expr, TypedAbstraction):
            parameter, (body,), inner = self._bind(env, expr.parameter, [expr.body])
            return dataclasses.replace(expr, parameter=parameter, body=self.down_level(body, inner))
        if isinstance(expr, TypedApplication):
            return self._down_level_application(expr, env)
        if isinstance(expr, TypedRecursiveLet):
            name, (value, body), inner = self._bind(env, expr.name, [expr.value, expr.body])
            return dataclasses.replace(
                expr,
                name=name,
                value=self.down_level(value, inner),
                body=self.down_level(body, inner),
            )
        if isinstance(expr, TypedLet):
            return self._down_level_let(expr, env)

        updates = {name: self.down_level(getattr(expr, name), env) for name in children(expr)}
        return dataclasses.replace(expr, **updates) if updates else expr

    def _down_level_application(self, expr: TypedApplication, env: Environment) -> TypedExpr:
        callee = self.down_level(expr.callee, env)
        argument = self.down_level(expr.argument, env)
        if not isinstance(callee, TypedAbstraction):
            return dataclasses.replace(expr, callee=callee, argument=argument)

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("inline %s with %s := %s", expression_to_source(callee),
                         callee.parameter, expression_to_source(argument))
        _, (body,), inner = self._bind(env, callee.parameter, [callee.body], value=argument)
        return self.down_level(body, inner)

    def _down_level_let(self, expr: TypedLet, env: Environment) -> TypedExpr:
        if isinstance(expr.value, TypedLet):
            return self.down_level(self._rotate(expr), env)

        value = self.down_level(expr.value, env)

        if isinstance(value.type, FunctionType):
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("eliminate let %s = %s", expr.name, expression_to_source(value))
            _, (body,), inner = self._bind(env, expr.name, [expr.body], value=value)
            return self.down_level(body, inner)

        name, (body,), inner = self._bind(env, expr.name, [expr.body])
        body = self.down_level(body, inner)
        return self._let_over(expr, name, value, body)

    def _rotate(self, expr: TypedLet) -> TypedLet:
        """let x = (let y = v in b) in r  =>  let y' = v in let x = b[y:=y'] in r"""
        nested = expr.value
        renamed = self.names.fresh(nested.name)
        logger.debug("rotate let %s: rename %s to %s", expr.name, nested.name, renamed)
        outer = dataclasses.replace(
            expr, value=rename_variable(nested.body, nested.name, renamed)
        )
        return dataclasses.replace(nested, name=renamed, body=outer, type=expr.type)

    def _let_over(self, expr: TypedLet, name: str, value: TypedExpr, body: TypedExpr) -> TypedExpr:
        """Rebuild ``let name = value in body``, hoisting abstractions in ``body`` above the let."""
        if not isinstance(body, TypedAbstraction):
            return dataclasses.replace(expr, name=name, value=value, body=body, type=body.type)

        parameter = self.names.fresh(body.parameter)
        logger.debug("reassociate let %s over %s (renamed %s)", name, body.parameter, parameter)
        inner = rename_variable(body.body, body.parameter, parameter)
        return dataclasses.replace(
            body, parameter=parameter, body=self._let_over(expr, name, value, inner)
        )

    def _bind(
        self,
        env: Environment,
        name: str,
        scopes: list[TypedExpr],
        value: Optional[TypedExpr] = None,
    ) -> tuple[str, list[TypedExpr], dict[str, TypedExpr]]:
        """Enter a binder for ``name`` over ``scopes``.

        The binder shadows any existing entry. It is renamed inside ``scopes``
        when an expression that may be substituted there mentions ``name``.
        """
        inner = {key: bound for key, bound in env.items() if key != name}
        substituted = list(inner.values())
        if value is not None:
            substituted.append(value)
        if any(name in free_identifiers(e) for e in substituted):
            renamed = self.names.fresh(name)
            logger.debug("alpha-rename %s to %s", name, renamed)
            scopes = [rename_variable(scope, name, renamed) for scope in scopes]
            name = renamed
        if value is not None:
            inner[name] = value
        return name, scopes, inner


def down_level(
    expr: TypedExpr,
    environment: Optional[Environment] = None,
    names: Optional[NameSupply] = None,
) -> TypedExpr:
    """Run Pass 2 over a fully-substituted annotated tree."""
    return DownLeveler(names).down_level(expr, dict(environment or {}))
