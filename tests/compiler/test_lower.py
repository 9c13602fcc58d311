"""Pass 3 (Lower) tests: typed tree -> IR."""

import json

import pytest

from lambdac.ast_nodes import (
    Abstraction, Application, BinaryOp, BoolLiteral, Identifier, IfElse,
    IntLiteral, Let,
)
from lambdac.errors import CompileError, ErrorKind
from lambdac.ir import IRAdd, IRBlock, IRConst, IRGetLocal, IRModule, IRSetLocal, IRType
from lambdac.pass1_infer import infer_types
from lambdac.pass3_lower import FunctionState, generate_ir
from lambdac.types import builtin_environment


def var(name):
    return Identifier(name)


def app(callee, *arguments):
    for argument in arguments:
        callee = Application(callee, argument)
    return callee


def lower(expr, **kwargs):
    return generate_ir(infer_types(expr, builtin_environment()), **kwargs)


class TestFunctionState:

    def test_allocation_follows_params(self):
        state = FunctionState(param_types=(IRType.I32,))
        state, first = state.allocate(IRType.I32)
        state, second = state.allocate(IRType.I64)
        assert (first, second) == (1, 2)
        assert state.locals == (IRType.I32, IRType.I64)

    def test_allocation_is_persistent(self):
        original = FunctionState()
        original.allocate(IRType.I32)
        assert original.locals == ()


class TestModuleShape:

    def test_single_exported_entry(self):
        module = lower(IntLiteral(42))
        assert isinstance(module, IRModule)
        assert len(module.functions) == 1
        entry = module.functions[0]
        assert entry.name == "main"
        assert entry.export
        assert entry.param_types == []
        assert entry.body == IRBlock((IRConst(42),))
        assert module.exports == [entry]

    def test_entry_name_and_export(self):
        module = lower(IntLiteral(1), entry_name="entry", export=False)
        assert module.get_function("entry").export is False
        assert module.exports == []

    def test_wide_slots(self):
        module = lower(Let("a", IntLiteral(1), var("a")), slot_type=IRType.I64)
        entry = module.functions[0]
        assert entry.return_type == IRType.I64
        assert entry.locals == [IRType.I64]

    def test_json_dump(self):
        data = json.loads(lower(IntLiteral(7)).to_json())
        assert data["module"] == "main"
        assert data["functions"][0]["body"] == {
            "op": "block", "children": [{"op": "const", "value": 7}],
        }


class TestLets:

    def test_sequential_lets_get_sequential_slots(self):
        module = lower(Let("a", IntLiteral(1), Let("b", IntLiteral(2), var("b"))))
        entry = module.functions[0]
        assert entry.locals == [IRType.I32, IRType.I32]
        assert entry.body == IRBlock((
            IRBlock((
                IRSetLocal(0, IRConst(1)),
                IRBlock((IRSetLocal(1, IRConst(2)), IRGetLocal(1))),
            )),
        ))

    def test_shadowing_gets_new_slot(self):
        module = lower(Let("a", IntLiteral(1), Let("a", BinaryOp("+", var("a"), IntLiteral(1)), var("a"))))
        inner = module.functions[0].body.children[0].children[1]
        assert inner == IRBlock((IRSetLocal(1, IRAdd(IRGetLocal(0), IRConst(1))), IRGetLocal(1)))

    def test_booleans_are_zero_or_one(self):
        module = lower(Let("t", BoolLiteral(True), Let("f", BoolLiteral(False), IntLiteral(0))))
        outer = module.functions[0].body.children[0]
        assert outer.children[0] == IRSetLocal(0, IRConst(1))
        assert outer.children[1].children[0] == IRSetLocal(1, IRConst(0))


class TestEntryParameter:

    def test_parameter_is_slot_zero(self):
        module = lower(Abstraction("x", Let("y", BinaryOp("+", var("x"), IntLiteral(1)), var("y"))))
        entry = module.functions[0]
        assert entry.param_types == [IRType.I32]
        assert entry.locals == [IRType.I32]
        assert entry.slot_types == [IRType.I32, IRType.I32]
        assert entry.body == IRBlock((
            IRBlock((IRSetLocal(1, IRAdd(IRGetLocal(0), IRConst(1))), IRGetLocal(1))),
        ))

    def test_polymorphic_entry_accepted(self):
        module = lower(Abstraction("x", var("x")))
        assert module.functions[0].body == IRBlock((IRGetLocal(0),))

    def test_entry_must_return_int(self):
        with pytest.raises(CompileError) as exc:
            lower(Abstraction("x", BinaryOp("<", var("x"), IntLiteral(1))))
        assert exc.value.kind == ErrorKind.TYPE_MISMATCH

    def test_entry_must_be_int(self):
        with pytest.raises(CompileError) as exc:
            lower(BoolLiteral(True))
        assert exc.value.kind == ErrorKind.TYPE_MISMATCH


class TestAddition:

    def test_binary_plus(self):
        module = lower(BinaryOp("+", IntLiteral(1), IntLiteral(2)))
        assert module.functions[0].body == IRBlock((IRAdd(IRConst(1), IRConst(2)),))

    def test_builtin_add(self):
        module = lower(app(var("add"), IntLiteral(1), IntLiteral(41)))
        assert module.functions[0].body == IRBlock((IRAdd(IRConst(1), IRConst(41)),))


class TestRejected:

    def test_subtraction(self):
        with pytest.raises(CompileError) as exc:
            lower(BinaryOp("-", IntLiteral(3), IntLiteral(1)))
        assert exc.value.kind == ErrorKind.UNSUPPORTED_CONSTRUCT
        assert exc.value.errors[0].details["source"] == "3 - 1"

    def test_conditional(self):
        with pytest.raises(CompileError) as exc:
            lower(IfElse(BoolLiteral(True), IntLiteral(1), IntLiteral(2)))
        assert exc.value.kind == ErrorKind.UNSUPPORTED_CONSTRUCT
        assert exc.value.errors[0].details["node"] == "TypedIfElse"

    def test_unapplied_function_is_missing(self):
        with pytest.raises(CompileError) as exc:
            lower(Let("f", var("add"), IntLiteral(1)))
        assert exc.value.kind == ErrorKind.MISSING_VARIABLE
        assert exc.value.errors[0].details == {"name": "add"}
