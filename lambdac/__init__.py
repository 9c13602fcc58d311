"""lambdac: a let-polymorphic functional-language compiler back end."""

__version__ = "0.1.0"

from lambdac.ast_nodes import (
    Abstraction, Application, BinaryOp, BoolLiteral, Expr, Identifier, IfElse,
    IntLiteral, Let, RecursiveLet, expression_to_source,
)
from lambdac.errors import CompileError, CompilerError, ErrorKind, SourceLocation
from lambdac.types import (
    BOOL, INT, BoolType, FunctionType, IntType, NameSupply, TypeScheme, TypeVariable,
    builtin_environment,
)
from lambdac.pass1_infer import infer, infer_types
from lambdac.pass2_downlevel import down_level
from lambdac.pass3_lower import generate_ir
from lambdac.pass4_emit import HAS_LLVMLITE, emit, execute
from lambdac.pipeline import compile_expression, compile_to_llvm, run
