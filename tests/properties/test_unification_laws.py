"""Property-based tests for unification and substitution composition.

Laws checked:

  1. A unifier makes both sides equal:   S(a) == S(b)
  2. Unification is symmetric up to variable renaming
  3. Unifying a type with itself solves nothing
  4. Composition agrees with sequential application:
       (S2 . S1)(t) == S2(S1(t))
"""

from __future__ import annotations

import pytest

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st
    HAS_HYPOTHESIS = True
except ImportError:
    HAS_HYPOTHESIS = False
    given = settings = st = None  # type: ignore

from lambdac.errors import CompileError
from lambdac.types import (
    BOOL, INT, FunctionType, Type, TypeVariable, apply_substitution,
    compose_substitutions,
)
from lambdac.unify import unify


VARIABLES = ["a", "b", "c", "d"]

if HAS_HYPOTHESIS:
    leaves = st.one_of(
        st.just(INT),
        st.just(BOOL),
        st.sampled_from(VARIABLES).map(TypeVariable),
    )
    types = st.recursive(
        leaves,
        lambda inner: st.builds(FunctionType, inner, inner),
        max_leaves=8,
    )
    substitutions = st.dictionaries(st.sampled_from(VARIABLES), types, max_size=3)


def canonical(typ: Type, names: dict[str, str] | None = None) -> Type:
    """Rename variables in order of first occurrence."""
    names = {} if names is None else names
    if isinstance(typ, TypeVariable):
        names.setdefault(typ.name, f"v{len(names)}")
        return TypeVariable(names[typ.name])
    if isinstance(typ, FunctionType):
        argument = canonical(typ.argument, names)
        return FunctionType(argument, canonical(typ.result, names))
    return typ


def try_unify(a: Type, b: Type):
    try:
        return unify(a, b)
    except CompileError:
        return None


@pytest.mark.skipif(not HAS_HYPOTHESIS, reason="hypothesis not installed")
class TestUnifierLaws:

    @given(types, types)
    @settings(max_examples=300)
    def test_unifier_equates_sides(self, a: Type, b: Type):
        result = try_unify(a, b)
        if result is None:
            return
        typ, substitution = result
        assert apply_substitution(a, substitution) == apply_substitution(b, substitution)
        assert typ == apply_substitution(a, substitution)

    @given(types, types)
    @settings(max_examples=300)
    def test_symmetric(self, a: Type, b: Type):
        forward = try_unify(a, b)
        backward = try_unify(b, a)
        assert (forward is None) == (backward is None)
        if forward is not None:
            assert canonical(forward[0]) == canonical(backward[0])

    @given(types)
    @settings(max_examples=200)
    def test_reflexive(self, a: Type):
        typ, substitution = unify(a, a)
        assert typ == a
        assert apply_substitution(a, substitution) == a


@pytest.mark.skipif(not HAS_HYPOTHESIS, reason="hypothesis not installed")
class TestCompositionLaws:

    @given(substitutions, substitutions, types)
    @settings(max_examples=300)
    def test_composition_is_sequential_application(self, older, newer, t: Type):
        sequential = apply_substitution(apply_substitution(t, older), newer)
        assert apply_substitution(t, compose_substitutions(newer, older)) == sequential

    @given(substitutions, types)
    @settings(max_examples=200)
    def test_empty_is_identity(self, substitution, t: Type):
        assert compose_substitutions({}, substitution) == dict(substitution)
        expected = apply_substitution(t, substitution)
        assert apply_substitution(t, compose_substitutions(substitution, {})) == expected
