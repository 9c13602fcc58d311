"""lambdac compiler pipeline.

untyped tree -> infer -> fully substituted tree -> down-level -> IR -> LLVM.

Each compilation is independent; an error in any phase propagates as a
CompileError and no IR is returned.
"""

from __future__ import annotations

import logging
from typing import Optional

from lambdac.ast_nodes import Expr, expression_to_source
from lambdac.config import CompilerConfig
from lambdac.errors import CompileError
from lambdac.ir import IRModule
from lambdac.pass1_infer import infer_types
from lambdac.pass2_downlevel import down_level
from lambdac.pass3_lower import generate_ir
from lambdac.pass4_emit import emit, execute
from lambdac.typed_ast import TypedExpr, expression_to_typed_str, strip_types
from lambdac.types import NameSupply, TypeEnvironment, type_to_str

logger = logging.getLogger(__name__)


def lower_to_typed(
    expression: Expr,
    environment: Optional[TypeEnvironment] = None,
    config: Optional[CompilerConfig] = None,
    names: Optional[NameSupply] = None,
) -> TypedExpr:
    """Infer, down-level and re-annotate ``expression``.

    Inlining copies polymorphic bodies to each use site, so the down-levelled
    tree is inferred again to give every copy its monomorphic annotations.
    """
    config = config or CompilerConfig()
    config.validate()
    if environment is None:
        environment = config.environment()

    typed = infer_types(expression, environment, names)
    logger.info("inferred %s", type_to_str(typed.type))
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("annotated tree:\n%s", expression_to_typed_str(typed))

    downleveled = down_level(typed, names=names)
    if logger.isEnabledFor(logging.INFO):
        logger.info("down-levelled to %s", expression_to_source(downleveled))

    return infer_types(strip_types(downleveled), environment, names)


def compile_expression(
    expression: Expr,
    environment: Optional[TypeEnvironment] = None,
    config: Optional[CompilerConfig] = None,
    names: Optional[NameSupply] = None,
) -> IRModule:
    """Compile one expression tree to an IR module."""
    config = config or CompilerConfig()
    try:
        lowered = lower_to_typed(expression, environment, config, names)
        module = generate_ir(
            lowered,
            slot_type=config.slot_type,
            entry_name=config.entry_name,
            export=config.export_entry,
        )
    except CompileError as e:
        logger.info("compilation failed: %s", e)
        raise
    logger.info("generated IR module with %d function(s)", len(module.functions))
    return module


def compile_to_llvm(
    expression: Expr,
    environment: Optional[TypeEnvironment] = None,
    config: Optional[CompilerConfig] = None,
    names: Optional[NameSupply] = None,
) -> str:
    """Compile one expression tree to LLVM IR text."""
    return emit(compile_expression(expression, environment, config, names))


def run(
    expression: Expr,
    *args: int,
    environment: Optional[TypeEnvironment] = None,
    config: Optional[CompilerConfig] = None,
    names: Optional[NameSupply] = None,
) -> int:
    """Compile and JIT-execute the entry function with ``args``."""
    module = compile_expression(expression, environment, config, names)
    return execute(module, *args)
