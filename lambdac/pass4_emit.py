"""lambdac Pass 4: Emit.

IR -> LLVM IR via llvmlite, and JIT execution of the result. All
optimisation is left to LLVM's backend. Every local slot becomes an
``alloca`` in the entry block; mem2reg promotes them.
"""

from __future__ import annotations

import ctypes
from typing import Any, Optional

from lambdac.ir import IRAdd, IRBlock, IRConst, IRExpr, IRFunction, IRGetLocal, IRModule, IRSetLocal, IRType

try:
    from llvmlite import ir as llvm_ir
    from llvmlite import binding as llvm_binding
    HAS_LLVMLITE = True
except ImportError:
    HAS_LLVMLITE = False


def _require_llvmlite() -> None:
    if not HAS_LLVMLITE:
        raise RuntimeError("llvmlite is required for Pass 4 (Emit). Install with: pip install llvmlite")


def _get_llvm_type(typ: IRType) -> Any:
    return llvm_ir.IntType(typ.width)


def _get_ctype(typ: IRType) -> Any:
    return ctypes.c_int32 if typ is IRType.I32 else ctypes.c_int64


class LLVMEmitter:
    """Emits LLVM IR from lambdac IR."""

    def __init__(self):
        _require_llvmlite()
        self.module: Optional[Any] = None
        self._builder: Optional[Any] = None
        self._slots: list[Any] = []
        self._value_type: Optional[Any] = None

    def emit_module(self, ir_module: IRModule) -> str:
        """Emit LLVM IR for an entire module. Returns LLVM IR string."""
        self.module = llvm_ir.Module(name=ir_module.name)
        self.module.triple = llvm_binding.get_default_triple()

        for func in ir_module.functions:
            self._emit_function(func)

        return str(self.module)

    def _emit_function(self, func: IRFunction) -> None:
        param_types = [_get_llvm_type(t) for t in func.param_types]
        ret_type = _get_llvm_type(func.return_type)
        self._value_type = ret_type
        fn_type = llvm_ir.FunctionType(ret_type, param_types)

        llvm_func = llvm_ir.Function(self.module, fn_type, name=func.name)
        if not func.export:
            llvm_func.linkage = "internal"

        block = llvm_func.append_basic_block(name="entry")
        self._builder = llvm_ir.IRBuilder(block)

        self._slots = []
        for index, slot_type in enumerate(func.slot_types):
            self._slots.append(self._builder.alloca(_get_llvm_type(slot_type), name=f"slot.{index}"))
        for index, arg in enumerate(llvm_func.args):
            arg.name = f"arg.{index}"
            self._builder.store(arg, self._slots[index])

        result = self._emit_expr(func.body)
        if result is None:
            result = llvm_ir.Constant(ret_type, 0)
        self._builder.ret(result)

    def _emit_expr(self, expr: IRExpr) -> Optional[Any]:
        """Emit ``expr``; returns its value, or None for statements like set_local."""
        if isinstance(expr, IRConst):
            return llvm_ir.Constant(self._value_type, expr.value)

        if isinstance(expr, IRGetLocal):
            return self._builder.load(self._slots[expr.index], name=f"get.{expr.index}")

        if isinstance(expr, IRSetLocal):
            value = self._emit_expr(expr.value)
            self._builder.store(value, self._slots[expr.index])
            return None

        if isinstance(expr, IRBlock):
            result = None
            for child in expr.children:
                result = self._emit_expr(child)
            return result

        if isinstance(expr, IRAdd):
            left = self._emit_expr(expr.left)
            right = self._emit_expr(expr.right)
            return self._builder.add(left, right, name="add")

        raise TypeError(f"Unknown IR node: {expr!r}")


# ---------------------------------------------------------------------------
# Compilation and execution
# ---------------------------------------------------------------------------

def _initialize_llvm() -> None:
    """Initialize LLVM target machinery."""
    _require_llvmlite()
    llvm_binding.initialize_native_target()
    llvm_binding.initialize_native_asmprinter()


def compile_to_object(llvm_ir_str: str) -> bytes:
    """Compile LLVM IR string to native object code."""
    _initialize_llvm()
    mod = llvm_binding.parse_assembly(llvm_ir_str)
    mod.verify()

    target = llvm_binding.Target.from_default_triple()
    target_machine = target.create_target_machine(opt=2)
    return target_machine.emit_object(mod)


def execute(ir_module: IRModule, *args: int, name: Optional[str] = None) -> int:
    """JIT-compile ``ir_module`` and call one of its exported functions."""
    func = ir_module.get_function(name) if name else ir_module.exports[0]
    if len(args) != len(func.param_types):
        raise TypeError(f"{func.name}() takes {len(func.param_types)} argument(s), got {len(args)}")

    _initialize_llvm()
    mod = llvm_binding.parse_assembly(emit(ir_module))
    mod.verify()

    target_machine = llvm_binding.Target.from_default_triple().create_target_machine()
    engine = llvm_binding.create_mcjit_compiler(mod, target_machine)
    engine.finalize_object()

    address = engine.get_function_address(func.name)
    prototype = ctypes.CFUNCTYPE(
        _get_ctype(func.return_type), *[_get_ctype(t) for t in func.param_types]
    )
    return prototype(address)(*args)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def emit(ir_module: IRModule) -> str:
    """Run Pass 4: emit LLVM IR from lambdac IR. Returns LLVM IR string."""
    emitter = LLVMEmitter()
    return emitter.emit_module(ir_module)
