"""lambdac Type Model.

Types: bool, int, functions, type variables and type schemes.
Substitutions map type-variable names to types and are combined by pure
functions; nothing here mutates its inputs.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Type:
    """Base type."""

    def __str__(self) -> str:
        return type_to_str(self)


@dataclass(frozen=True)
class BoolType(Type):
    pass


@dataclass(frozen=True)
class IntType(Type):
    pass


@dataclass(frozen=True)
class FunctionType(Type):
    argument: Type
    result: Type


@dataclass(frozen=True)
class TypeVariable(Type):
    name: str


@dataclass(frozen=True)
class TypeScheme(Type):
    """A type quantified over ``bound``. Only ever stored in an environment."""
    bound: frozenset[str]
    body: Type


Substitution = Mapping[str, Type]
TypeEnvironment = Mapping[str, TypeScheme]

BOOL = BoolType()
INT = IntType()


def monomorphic(typ: Type) -> TypeScheme:
    return TypeScheme(frozenset(), typ)


def function_of(*types: Type) -> Type:
    """function_of(a, b, c) is a -> b -> c."""
    result = types[-1]
    for argument in reversed(types[:-1]):
        result = FunctionType(argument, result)
    return result


# ---------------------------------------------------------------------------
# Fresh names
# ---------------------------------------------------------------------------

class NameSupply:
    """Monotonic, collision-free name generator.

    ``next()`` on an ``itertools.count`` is atomic under the GIL, so a single
    supply can be shared between threads.
    """

    def __init__(self, prefix: str = "t", start: int = 0) -> None:
        self.prefix = prefix
        self._counter = itertools.count(start)

    def fresh(self, base: Optional[str] = None) -> str:
        n = next(self._counter)
        if base is None:
            return f"{self.prefix}{n}"
        # '$' never appears in parsed identifiers
        return f"{base.split('$', 1)[0]}${n}"

    def fresh_variable(self) -> TypeVariable:
        return TypeVariable(self.fresh())


_default_supply = NameSupply()


def default_supply() -> NameSupply:
    return _default_supply


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def type_to_str(typ: Type) -> str:
    if isinstance(typ, BoolType):
        return "bool"
    if isinstance(typ, IntType):
        return "int"
    if isinstance(typ, TypeVariable):
        return typ.name
    if isinstance(typ, FunctionType):
        argument = type_to_str(typ.argument)
        if isinstance(typ.argument, FunctionType):
            argument = f"({argument})"
        return f"{argument} -> {type_to_str(typ.result)}"
    if isinstance(typ, TypeScheme):
        if not typ.bound:
            return type_to_str(typ.body)
        return f"forall {' '.join(sorted(typ.bound))}. {type_to_str(typ.body)}"
    raise TypeError(f"Not a type: {typ!r}")


def substitution_to_str(substitution: Substitution) -> str:
    entries = ", ".join(f"{name}: {type_to_str(t)}" for name, t in substitution.items())
    return f"{{{entries}}}"


# ---------------------------------------------------------------------------
# Substitution
# ---------------------------------------------------------------------------

def apply_substitution(typ: Type, substitution: Substitution) -> Type:
    if not substitution:
        return typ
    if isinstance(typ, TypeVariable):
        return substitution.get(typ.name, typ)
    if isinstance(typ, FunctionType):
        return FunctionType(
            apply_substitution(typ.argument, substitution),
            apply_substitution(typ.result, substitution),
        )
    if isinstance(typ, TypeScheme):
        return scheme_apply_substitution(typ, substitution)
    return typ


def free_variables(typ: Type, out: Optional[set[str]] = None) -> set[str]:
    """Collect the free type-variable names of ``typ`` into ``out``."""
    if out is None:
        out = set()
    if isinstance(typ, TypeVariable):
        out.add(typ.name)
    elif isinstance(typ, FunctionType):
        free_variables(typ.argument, out)
        free_variables(typ.result, out)
    elif isinstance(typ, TypeScheme):
        out.update(free_variables(typ.body) - typ.bound)
    return out


def occurs_in(variable: TypeVariable, typ: Type) -> bool:
    return variable.name in free_variables(typ)


def scheme_apply_substitution(scheme: TypeScheme, substitution: Substitution) -> TypeScheme:
    restricted = {name: t for name, t in substitution.items() if name not in scheme.bound}
    return TypeScheme(scheme.bound, apply_substitution(scheme.body, restricted))


def environment_apply_substitution(
    environment: TypeEnvironment, substitution: Substitution
) -> dict[str, TypeScheme]:
    if not substitution:
        return dict(environment)
    return {
        name: scheme_apply_substitution(scheme, substitution)
        for name, scheme in environment.items()
    }


def environment_free_variables(environment: TypeEnvironment) -> set[str]:
    out: set[str] = set()
    for scheme in environment.values():
        free_variables(scheme, out)
    return out


def compose_substitutions(newer: Substitution, older: Substitution) -> dict[str, Type]:
    """Fold ``newer`` into ``older``: apply it to older's range, then add its own bindings."""
    result = {name: apply_substitution(t, newer) for name, t in older.items()}
    for name, t in newer.items():
        result.setdefault(name, t)
    if newer and older and logger.isEnabledFor(logging.DEBUG):
        logger.debug("compose %s into %s = %s",
                     substitution_to_str(newer), substitution_to_str(older),
                     substitution_to_str(result))
    return result


def compose_all(substitutions: Iterable[Substitution]) -> dict[str, Type]:
    """Compose substitutions given in evaluation order (oldest first)."""
    result: dict[str, Type] = {}
    for substitution in substitutions:
        result = compose_substitutions(substitution, result)
    return result


# ---------------------------------------------------------------------------
# Generalization / instantiation
# ---------------------------------------------------------------------------

def generalize(environment: TypeEnvironment, typ: Type) -> TypeScheme:
    bound = free_variables(typ) - environment_free_variables(environment)
    scheme = TypeScheme(frozenset(bound), typ)
    if bound and logger.isEnabledFor(logging.DEBUG):
        logger.debug("generalized %s", type_to_str(scheme))
    return scheme


def instantiate(scheme: TypeScheme, names: Optional[NameSupply] = None) -> Type:
    if not scheme.bound:
        return scheme.body
    names = names or _default_supply
    fresh = {name: names.fresh_variable() for name in sorted(scheme.bound)}
    return apply_substitution(scheme.body, fresh)


# ---------------------------------------------------------------------------
# Built-in environment
# ---------------------------------------------------------------------------

BUILTINS: dict[str, TypeScheme] = {
    "add": monomorphic(function_of(INT, INT, INT)),
}


def builtin_environment(names: Iterable[str] = ("add",)) -> dict[str, TypeScheme]:
    environment = {}
    for name in names:
        if name not in BUILTINS:
            raise KeyError(f"Unknown built-in '{name}'")
        environment[name] = BUILTINS[name]
    return environment
