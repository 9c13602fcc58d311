"""lambdac IR: function-oriented, locally-indexed expression trees.

Locals are addressed purely by their index into the function's flat slot
array (parameters first, then declared locals). There is no lookup by name
at this layer. JSON-serializable for inspection.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class IRType(Enum):
    I32 = "i32"
    I64 = "i64"

    @property
    def width(self) -> int:
        return 32 if self is IRType.I32 else 64


@dataclass(frozen=True)
class IRConst:
    value: int

    def to_dict(self) -> dict[str, Any]:
        return {"op": "const", "value": self.value}


@dataclass(frozen=True)
class IRGetLocal:
    index: int

    def to_dict(self) -> dict[str, Any]:
        return {"op": "get_local", "index": self.index}


@dataclass(frozen=True)
class IRSetLocal:
    index: int
    value: IRExpr

    def to_dict(self) -> dict[str, Any]:
        return {"op": "set_local", "index": self.index, "value": self.value.to_dict()}


@dataclass(frozen=True)
class IRBlock:
    children: tuple[IRExpr, ...] = ()
    label: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "op": "block",
            "children": [c.to_dict() for c in self.children],
        }
        if self.label:
            d["label"] = self.label
        return d


@dataclass(frozen=True)
class IRAdd:
    left: IRExpr
    right: IRExpr

    def to_dict(self) -> dict[str, Any]:
        return {"op": "add", "left": self.left.to_dict(), "right": self.right.to_dict()}


IRExpr = Union[IRConst, IRGetLocal, IRSetLocal, IRBlock, IRAdd]


@dataclass
class IRFunction:
    """A function in IR form."""
    name: str
    param_types: list[IRType] = field(default_factory=list)
    return_type: IRType = IRType.I32
    locals: list[IRType] = field(default_factory=list)
    body: IRExpr = field(default_factory=IRBlock)
    export: bool = False

    @property
    def slot_types(self) -> list[IRType]:
        return [*self.param_types, *self.locals]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "params": [t.value for t in self.param_types],
            "return_type": self.return_type.value,
            "locals": [t.value for t in self.locals],
            "export": self.export,
            "body": self.body.to_dict(),
        }


@dataclass
class IRModule:
    """Top-level IR module: an ordered list of functions."""
    name: str = "main"
    functions: list[IRFunction] = field(default_factory=list)

    def get_function(self, name: str) -> IRFunction:
        for func in self.functions:
            if func.name == name:
                return func
        raise KeyError(name)

    @property
    def exports(self) -> list[IRFunction]:
        return [f for f in self.functions if f.export]

    def to_dict(self) -> dict[str, Any]:
        return {
            "module": self.name,
            "functions": [f.to_dict() for f in self.functions],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
