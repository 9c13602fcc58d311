"""Unification engine tests."""

import json

import pytest

from lambdac.errors import CompileError, ErrorKind
from lambdac.types import BOOL, INT, FunctionType, TypeScheme, TypeVariable, apply_substitution
from lambdac.unify import unify

t = TypeVariable("t")
u = TypeVariable("u")


class TestVariables:

    def test_same_variable_is_identity(self):
        assert unify(t, t) == (t, {})

    def test_variable_binds_left(self):
        assert unify(t, INT) == (INT, {"t": INT})

    def test_variable_binds_right(self):
        assert unify(BOOL, t) == (BOOL, {"t": BOOL})

    def test_two_variables(self):
        typ, substitution = unify(t, u)
        assert apply_substitution(t, substitution) == apply_substitution(u, substitution) == typ


class TestConstructors:

    def test_equal_constants(self):
        assert unify(INT, INT) == (INT, {})

    def test_constant_mismatch(self):
        with pytest.raises(CompileError) as exc:
            unify(INT, BOOL)
        assert exc.value.kind == ErrorKind.TYPE_MISMATCH
        details = exc.value.errors[0].details
        assert details["expected_type"] == "bool"
        assert details["actual_type"] == "int"

    def test_function_against_constant(self):
        with pytest.raises(CompileError) as exc:
            unify(FunctionType(INT, INT), BOOL)
        assert exc.value.kind == ErrorKind.TYPE_MISMATCH

    def test_function_resolves_both_sides(self):
        typ, substitution = unify(FunctionType(t, t), FunctionType(INT, u))
        assert typ == FunctionType(INT, INT)
        assert substitution == {"t": INT, "u": INT}

    def test_argument_solution_visible_to_result(self):
        with pytest.raises(CompileError) as exc:
            unify(FunctionType(t, t), FunctionType(INT, BOOL))
        assert exc.value.kind == ErrorKind.TYPE_MISMATCH

    def test_error_is_valid_json(self):
        with pytest.raises(CompileError) as exc:
            unify(FunctionType(INT, BOOL), FunctionType(INT, INT))
        parsed = json.loads(exc.value.to_json())
        assert parsed[0]["kind"] == "type_mismatch"


class TestOccursCheck:

    def test_variable_in_function(self):
        with pytest.raises(CompileError) as exc:
            unify(t, FunctionType(t, INT))
        assert exc.value.kind == ErrorKind.INFINITE_TYPE
        assert exc.value.errors[0].details == {"variable": "t", "type": "t -> int"}

    def test_symmetric(self):
        with pytest.raises(CompileError) as exc:
            unify(FunctionType(INT, t), t)
        assert exc.value.kind == ErrorKind.INFINITE_TYPE

    def test_nested(self):
        with pytest.raises(CompileError) as exc:
            unify(FunctionType(t, u), FunctionType(u, FunctionType(t, INT)))
        assert exc.value.kind == ErrorKind.INFINITE_TYPE


class TestSchemes:

    def test_schemes_are_rejected(self):
        scheme = TypeScheme(frozenset({"t"}), FunctionType(t, t))
        with pytest.raises(RuntimeError):
            unify(scheme, scheme)
