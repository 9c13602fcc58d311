"""lambdac Configuration: project-level .lambdacrc support.

Loads configuration from .lambdacrc.json (or .lambdacrc.yml, .lambdacrc.yaml)
found in the working directory or any parent. Allows a project to configure:
  - the name of the generated entry function and whether it is exported
  - the integer width of IR slots
  - which built-ins seed the type environment
  - the log level applied by configure_logging()

Example .lambdacrc.yml:
    entry_name: main
    int_width: 32
    export_entry: true
    builtins:
      - add
    log_level: INFO
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from lambdac.errors import CompileError, config_error
from lambdac.ir import IRType
from lambdac.types import BUILTINS, TypeScheme, builtin_environment


@dataclass
class CompilerConfig:
    """Project-level lambdac configuration."""
    entry_name: str = "main"
    # 32 or 64
    int_width: int = 32
    export_entry: bool = True
    builtins: List[str] = field(default_factory=lambda: ["add"])
    log_level: str = "WARNING"

    @property
    def slot_type(self) -> IRType:
        return IRType.I64 if self.int_width == 64 else IRType.I32

    def environment(self) -> Dict[str, TypeScheme]:
        return builtin_environment(self.builtins)

    def validate(self) -> None:
        if self.int_width not in (32, 64):
            raise CompileError(config_error("int_width", f"expected 32 or 64, got {self.int_width}"))
        for name in self.builtins:
            if name not in BUILTINS:
                raise CompileError(config_error("builtins", f"unknown built-in '{name}'"))
        if not self.entry_name:
            raise CompileError(config_error("entry_name", "must not be empty"))
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise CompileError(config_error("log_level", f"unknown level '{self.log_level}'"))


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".lambdacrc.json",
    ".lambdacrc.yml",
    ".lambdacrc.yaml",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> CompilerConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return CompilerConfig()

    with open(path, "r") as f:
        content = f.read()

    if path.endswith(".json"):
        try:
            data = json.loads(content) if content.strip() else {}
        except json.JSONDecodeError as e:
            raise CompileError(config_error(path, f"malformed JSON: {e}")) from e
    else:
        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise CompileError(config_error(path, f"malformed YAML: {e}")) from e

    if not isinstance(data, dict):
        raise CompileError(config_error(path, "top level must be a mapping"))

    config = _dict_to_config(data)
    config.validate()
    return config


def _dict_to_config(data: Dict[str, Any]) -> CompilerConfig:
    """Convert a parsed dict to CompilerConfig. Unknown keys are ignored."""
    config = CompilerConfig()

    if "entry_name" in data:
        config.entry_name = str(data["entry_name"])
    if "int_width" in data:
        try:
            config.int_width = int(data["int_width"])
        except (TypeError, ValueError):
            raise CompileError(config_error("int_width", f"not an integer: {data['int_width']!r}")) from None
    if "export_entry" in data:
        config.export_entry = bool(data["export_entry"])
    if "builtins" in data:
        if not isinstance(data["builtins"], list):
            raise CompileError(config_error("builtins", f"expected a list, got {data['builtins']!r}"))
        config.builtins = [str(b) for b in data["builtins"]]
    if "log_level" in data:
        config.log_level = str(data["log_level"])

    return config


def configure_logging(config: CompilerConfig) -> None:
    """Apply ``config.log_level`` to the lambdac logger hierarchy."""
    logging.getLogger("lambdac").setLevel(config.log_level.upper())
