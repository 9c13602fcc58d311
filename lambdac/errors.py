"""Structured error objects for the lambdac compiler.

Every error is machine-readable. Each error kind carries enough detail
(the names and rendered types involved) for a caller to report it without
re-inspecting the tree that produced it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    UNDEFINED_VARIABLE = "undefined_variable"
    TYPE_MISMATCH = "type_mismatch"
    INFINITE_TYPE = "infinite_type"
    UNSUPPORTED_CONSTRUCT = "unsupported_construct"
    MISSING_VARIABLE = "missing_variable"
    CONFIG_ERROR = "config_error"


@dataclass(frozen=True)
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class CompilerError:
    kind: ErrorKind
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}]{loc}: {self.message}"


def undefined_variable(
    name: str,
    location: Optional[SourceLocation] = None,
) -> CompilerError:
    return CompilerError(
        kind=ErrorKind.UNDEFINED_VARIABLE,
        message=f"Undefined variable '{name}'",
        location=location,
        details={"name": name},
    )


def type_mismatch(expected, actual, location: Optional[SourceLocation] = None) -> CompilerError:
    from lambdac.types import type_to_str

    expected_type = type_to_str(expected)
    actual_type = type_to_str(actual)
    return CompilerError(
        kind=ErrorKind.TYPE_MISMATCH,
        message=f"Cannot unify '{actual_type}' with '{expected_type}'",
        location=location,
        details={
            "expected_type": expected_type,
            "actual_type": actual_type,
        },
    )


def infinite_type(variable, typ, location: Optional[SourceLocation] = None) -> CompilerError:
    from lambdac.types import type_to_str

    rendered = type_to_str(typ)
    return CompilerError(
        kind=ErrorKind.INFINITE_TYPE,
        message=f"Infinite type: '{variable.name}' occurs in '{rendered}'",
        location=location,
        details={
            "variable": variable.name,
            "type": rendered,
        },
    )


def unsupported_construct(node) -> CompilerError:
    from lambdac.ast_nodes import expression_to_source

    return CompilerError(
        kind=ErrorKind.UNSUPPORTED_CONSTRUCT,
        message=f"Cannot generate IR for {type(node).__name__}: {expression_to_source(node)}",
        location=getattr(node, "location", None),
        details={
            "node": type(node).__name__,
            "source": expression_to_source(node),
        },
    )


def missing_variable(name: str, location: Optional[SourceLocation] = None) -> CompilerError:
    return CompilerError(
        kind=ErrorKind.MISSING_VARIABLE,
        message=f"No local slot bound to '{name}'",
        location=location,
        details={"name": name},
    )


def config_error(key: str, message: str) -> CompilerError:
    return CompilerError(
        kind=ErrorKind.CONFIG_ERROR,
        message=f"Invalid configuration value for '{key}': {message}",
        details={"key": key},
    )


class CompileError(Exception):
    """Exception wrapping one or more CompilerErrors."""

    def __init__(self, errors: list[CompilerError] | CompilerError):
        if isinstance(errors, CompilerError):
            errors = [errors]
        self.errors = errors
        super().__init__(self._format())

    @property
    def kind(self) -> ErrorKind:
        return self.errors[0].kind

    def _format(self) -> str:
        return "\n".join(str(e) for e in self.errors)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps([e.to_dict() for e in self.errors], indent=indent)
