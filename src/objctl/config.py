"""
Configuration: the persisted AppConfig model and its shared, lock-guarded holder.

Workers never hold the lock across a blocking call: they take a snapshot
(read lock, deep copy) and work from it, so edits made mid-build do not
reach a build that already started.
"""
from __future__ import annotations

import logging
import os
from enum import StrEnum
from pathlib import Path
from typing import Any, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ConfigError, ConfigValidationError
from .rwlock import RWLock

logger = logging.getLogger(__name__)


class DiffKind(StrEnum):
    SPLIT_OBJ = "SPLIT_OBJ"
    WHOLE_BINARY = "WHOLE_BINARY"


class AppConfig(BaseModel):
    """Build-relevant paths and settings."""
    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    # Split obj
    project_dir: Optional[Path] = None
    build_asm_dir: Optional[Path] = None
    build_src_dir: Optional[Path] = None
    build_obj: Optional[str] = None
    # Whole binary
    left_obj: Optional[Path] = None
    right_obj: Optional[Path] = None

    diff_kind: DiffKind = DiffKind.SPLIT_OBJ
    build_command: str = "make"
    parser: Optional[str] = None
    diff_engine: Optional[str] = None

    project_dir_change: bool = Field(default=False, exclude=True)

    @field_validator("build_obj", "parser", "diff_engine")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @field_validator("build_command")
    @classmethod
    def _command_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("build_command must not be empty")
        return v


def load_config(path: Path) -> AppConfig:
    """
    Load AppConfig from YAML.

    A missing file yields defaults. A loaded project_dir marks the root as
    changed so the first controller tick installs a watcher and rebuilds.

    Raises:
        ConfigValidationError: If YAML is malformed or fails validation
    """
    if not path.exists():
        logger.info("No config at %s, using defaults", path)
        return AppConfig()

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Config root must be a mapping: {path}")

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(f"Invalid config in {path}: {e}") from e

    if config.project_dir is not None:
        config.project_dir_change = True
    return config


def save_config(config: AppConfig, path: Path) -> None:
    """Write AppConfig to YAML atomically (project_dir_change is not persisted)."""
    data = config.model_dump(mode="json")
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


class SharedConfig:
    """One AppConfig shared by the control surface, the controller and every worker."""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config if config is not None else AppConfig()
        self._lock = RWLock()

    def snapshot(self) -> AppConfig:
        """Consistent private copy; safe to use after the lock is released."""
        with self._lock.read():
            return self._config.model_copy(deep=True)

    def update(self, **fields: Any) -> AppConfig:
        """
        Replace the given fields under the write lock.

        Changing project_dir raises the root-changed flag.

        Raises:
            ConfigValidationError: If the new values fail validation
        """
        with self._lock.write():
            current = self._config
            data = current.model_dump()
            data.update(fields)
            try:
                new = AppConfig.model_validate(data)
            except ValidationError as e:
                raise ConfigValidationError(str(e)) from e
            new.project_dir_change = current.project_dir_change or (
                "project_dir" in fields and new.project_dir != current.project_dir
            )
            self._config = new
            return new.model_copy(deep=True)

    def set_project_dir(self, project_dir: Optional[Path]) -> None:
        """
        Set the watched root; always raises the root-changed flag.

        Raises:
            ConfigValidationError: If project_dir fails validation
        """
        with self._lock.write():
            try:
                self._config.project_dir = project_dir
            except ValidationError as e:
                raise ConfigValidationError(str(e)) from e
            self._config.project_dir_change = True

    def take_project_dir_change(self) -> Tuple[bool, Optional[Path]]:
        """
        Observe and clear the root-changed flag in one write-locked step.

        Returns:
            (changed, project_dir). The flag is cleared only when a root is
            configured; with no root it stays raised and project_dir is None.
        """
        with self._lock.write():
            if not self._config.project_dir_change:
                return False, None
            project_dir = self._config.project_dir
            if project_dir is not None:
                self._config.project_dir_change = False
            return True, project_dir
