"""
External collaborators: the object parser and the diff engine.

objctl does not parse object files or compute diffs itself. Callers pass
callables, or name them in the config as "package.module:attr".
"""
from __future__ import annotations

import importlib
from pathlib import Path
from typing import Any, Protocol

from .errors import ConfigError


class ObjectParser(Protocol):
    def __call__(self, path: Path) -> Any:
        """Load an object file; raise on structurally invalid input."""
        ...


class DiffEngine(Protocol):
    def __call__(self, first: Any, second: Any) -> None:
        """Annotate both objects in place with match information."""
        ...


def load_callable(spec: str) -> Any:
    """
    Resolve "package.module:attr" (attr may be dotted) to an object.

    Raises:
        ConfigError: If the import string is malformed or cannot be imported
    """
    module_name, sep, attr_path = spec.partition(":")
    if not sep or not module_name or not attr_path:
        raise ConfigError(f"Invalid import string '{spec}' (expected 'module:attr')")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"Cannot import module '{module_name}': {e}") from e
    for part in attr_path.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as e:
            raise ConfigError(f"'{module_name}' has no attribute '{attr_path}'") from e
    if not callable(obj):
        raise ConfigError(f"'{spec}' is not callable")
    return obj
