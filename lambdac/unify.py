"""lambdac Unification: Robinson unification with occurs check.

  unify(a, tau)        = [a -> tau]          if a not in FV(tau)
  unify(t1 -> t2, t3 -> t4)
                       = let S1 = unify(t1, t3)
                             S2 = unify(S1 t2, S1 t4)
                         in S2 . S1
  unify(C, C)          = []
  unify(C1, C2)        = FAIL (type mismatch)

Both sides are plain types: schemes are instantiated before they ever
reach the unifier.
"""

from __future__ import annotations

import logging
from typing import Optional

from lambdac.errors import CompileError, SourceLocation, infinite_type, type_mismatch
from lambdac.types import (
    BoolType, FunctionType, IntType, Substitution, Type, TypeScheme, TypeVariable,
    apply_substitution, compose_substitutions, occurs_in, type_to_str,
)

logger = logging.getLogger(__name__)


def unify(
    a: Type,
    b: Type,
    location: Optional[SourceLocation] = None,
) -> tuple[Type, Substitution]:
    """Unify ``a`` (actual) with ``b`` (expected).

    Returns the unified type and the most general substitution making the two
    equal. Raises CompileError on a head-constructor mismatch or when the
    occurs check fails.
    """
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("unify %s ~ %s", type_to_str(a), type_to_str(b))

    if isinstance(a, TypeScheme) or isinstance(b, TypeScheme):
        raise RuntimeError(
            f"Type schemes must be instantiated before unification: "
            f"{type_to_str(a)} ~ {type_to_str(b)}"
        )

    if isinstance(a, TypeVariable):
        return _bind(a, b, location)
    if isinstance(b, TypeVariable):
        return _bind(b, a, location)

    if isinstance(a, (BoolType, IntType)):
        if type(a) is type(b):
            return a, {}
        raise CompileError(type_mismatch(b, a, location))

    if isinstance(a, FunctionType):
        if not isinstance(b, FunctionType):
            raise CompileError(type_mismatch(b, a, location))
        _, s1 = unify(a.argument, b.argument, location)
        _, s2 = unify(
            apply_substitution(a.result, s1),
            apply_substitution(b.result, s1),
            location,
        )
        substitution = compose_substitutions(s2, s1)
        return apply_substitution(a, substitution), substitution

    raise TypeError(f"Not a type: {a!r}")


def _bind(
    variable: TypeVariable,
    typ: Type,
    location: Optional[SourceLocation],
) -> tuple[Type, Substitution]:
    if isinstance(typ, TypeVariable) and typ.name == variable.name:
        return variable, {}
    if occurs_in(variable, typ):
        raise CompileError(infinite_type(variable, typ, location))
    return typ, {variable.name: typ}
