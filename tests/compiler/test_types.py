"""Type model tests: substitution, free variables, schemes, composition."""

import pytest

from lambdac.types import (
    BOOL, INT, FunctionType, NameSupply, TypeScheme, TypeVariable,
    apply_substitution, builtin_environment, compose_all, compose_substitutions,
    environment_apply_substitution, free_variables, function_of, generalize,
    instantiate, monomorphic, scheme_apply_substitution, substitution_to_str,
    type_to_str,
)

a = TypeVariable("a")
b = TypeVariable("b")
c = TypeVariable("c")


class TestApplySubstitution:

    def test_replaces_variable_leaves(self):
        assert apply_substitution(a, {"a": INT}) == INT

    def test_leaves_unmapped_variables(self):
        assert apply_substitution(b, {"a": INT}) == b

    def test_recurses_into_functions(self):
        t = FunctionType(a, FunctionType(b, a))
        assert apply_substitution(t, {"a": BOOL}) == FunctionType(BOOL, FunctionType(b, BOOL))

    def test_constants_unchanged(self):
        assert apply_substitution(INT, {"a": BOOL}) == INT
        assert apply_substitution(BOOL, {}) == BOOL


class TestFreeVariables:

    def test_collects_into_given_set(self):
        out = {"z"}
        free_variables(FunctionType(a, FunctionType(b, INT)), out)
        assert out == {"z", "a", "b"}

    def test_scheme_excludes_bound(self):
        scheme = TypeScheme(frozenset({"a"}), FunctionType(a, b))
        assert free_variables(scheme) == {"b"}


class TestSchemes:

    def test_bound_variables_are_not_substituted(self):
        scheme = TypeScheme(frozenset({"a"}), FunctionType(a, b))
        result = scheme_apply_substitution(scheme, {"a": INT, "b": BOOL})
        assert result == TypeScheme(frozenset({"a"}), FunctionType(a, BOOL))

    def test_environment_is_not_mutated(self):
        env = {"x": monomorphic(a), "id": TypeScheme(frozenset({"a"}), FunctionType(a, a))}
        updated = environment_apply_substitution(env, {"a": INT})
        assert updated["x"] == monomorphic(INT)
        assert updated["id"] == env["id"]
        assert env["x"] == monomorphic(a)

    def test_generalize_skips_environment_variables(self):
        env = {"x": monomorphic(a)}
        scheme = generalize(env, FunctionType(a, b))
        assert scheme.bound == frozenset({"b"})

    def test_instantiate_uses_fresh_names(self):
        scheme = TypeScheme(frozenset({"a", "b"}), FunctionType(a, FunctionType(b, c)))
        t = instantiate(scheme, NameSupply("u"))
        assert t == FunctionType(TypeVariable("u0"), FunctionType(TypeVariable("u1"), c))

    def test_instantiate_monomorphic_is_identity(self):
        assert instantiate(monomorphic(a), NameSupply()) == a


class TestCompose:

    def test_newer_applied_to_older_range(self):
        composed = compose_substitutions({"b": INT}, {"a": FunctionType(b, b)})
        assert composed == {"a": FunctionType(INT, INT), "b": INT}

    def test_matches_sequential_application(self):
        older = {"a": FunctionType(b, c)}
        newer = {"b": INT, "c": a}
        t = FunctionType(a, b)
        sequential = apply_substitution(apply_substitution(t, older), newer)
        assert apply_substitution(t, compose_substitutions(newer, older)) == sequential

    def test_compose_all_in_evaluation_order(self):
        composed = compose_all([{"a": b}, {"b": c}, {"c": INT}])
        assert composed == {"a": INT, "b": INT, "c": INT}


class TestRendering:

    def test_arrows_associate_right(self):
        assert type_to_str(function_of(INT, INT, INT)) == "int -> int -> int"

    def test_function_argument_parenthesised(self):
        assert type_to_str(FunctionType(FunctionType(INT, INT), BOOL)) == "(int -> int) -> bool"

    def test_scheme(self):
        scheme = TypeScheme(frozenset({"b", "a"}), FunctionType(a, b))
        assert type_to_str(scheme) == "forall a b. a -> b"
        assert str(FunctionType(a, BOOL)) == "a -> bool"

    def test_substitution(self):
        assert substitution_to_str({"a": INT, "b": FunctionType(a, a)}) == "{a: int, b: a -> a}"


class TestNameSupply:

    def test_monotonic(self):
        names = NameSupply("t")
        assert [names.fresh() for _ in range(3)] == ["t0", "t1", "t2"]

    def test_renamed_identifiers_keep_their_stem(self):
        names = NameSupply(start=7)
        assert names.fresh("x") == "x$7"
        assert names.fresh("x$7") == "x$8"


class TestBuiltins:

    def test_add_is_closed(self):
        env = builtin_environment()
        assert env["add"] == monomorphic(function_of(INT, INT, INT))
        assert free_variables(env["add"]) == set()

    def test_unknown_builtin(self):
        with pytest.raises(KeyError):
            builtin_environment(["mul"])
