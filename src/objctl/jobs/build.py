"""
BUILD job: rebuild one object under both build roots, load both, diff them.

Stages (total=5):
  0  build asm side          always
  1  build src side          always, regardless of stage 0
  2  load asm artifact       only if the asm build succeeded
  3  load src artifact       only if the src build succeeded
  4  diff                    only if both sides loaded
  5  "Complete"
"""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Any, Optional

from objctl.collaborators import DiffEngine, ObjectParser
from objctl.config import AppConfig, SharedConfig
from objctl.errors import ConfigurationError, DiffError, ParseError
from .models import BuildResult, BuildStatus, JobType
from .registry import Job, JobRegistry
from .status import JobContext

logger = logging.getLogger(__name__)

BUILD_STEPS = 5


@dataclass(frozen=True)
class BuildPaths:
    project_dir: Path
    asm_path: Path
    src_path: Path
    asm_rel: Path
    src_rel: Path


def resolve_build_paths(config: AppConfig, obj_path: str) -> BuildPaths:
    """
    Resolve the target under both build roots, relative to the project root.

    Relative build roots are taken relative to the project root.

    Raises:
        ConfigurationError: If a directory is unset or a target falls outside the project
    """
    if config.project_dir is None:
        raise ConfigurationError("Missing project dir")
    if config.build_asm_dir is None:
        raise ConfigurationError("Missing build asm dir")
    if config.build_src_dir is None:
        raise ConfigurationError("Missing build src dir")

    project_dir = config.project_dir
    asm_path = project_dir / config.build_asm_dir / obj_path
    src_path = project_dir / config.build_src_dir / obj_path
    try:
        asm_rel = asm_path.relative_to(project_dir)
    except ValueError as e:
        raise ConfigurationError(f"Failed to create relative asm obj path: {e}") from e
    try:
        src_rel = src_path.relative_to(project_dir)
    except ValueError as e:
        raise ConfigurationError(f"Failed to create relative src obj path: {e}") from e
    return BuildPaths(project_dir, asm_path, src_path, asm_rel, src_rel)


def run_build_tool(cwd: Path, target: Path, command: str = "make") -> BuildStatus:
    """
    Run `<command> <target>` in cwd and capture its output.

    Never raises: a launch failure or undecodable output is a failed
    BuildStatus whose log explains why.
    """
    logger.debug("Running %s %s in %s", command, target, cwd)
    try:
        result = subprocess.run(
            [command, str(target)],
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
            capture_output=True,
        )
    except OSError as e:
        return BuildStatus(success=False, log=f"Failed to execute build: {e}")

    try:
        stdout = (result.stdout or b"").decode("utf-8")
    except UnicodeDecodeError as e:
        return BuildStatus(success=False, log=f"Failed to process stdout: {e}")
    try:
        stderr = (result.stderr or b"").decode("utf-8")
    except UnicodeDecodeError as e:
        return BuildStatus(success=False, log=f"Failed to process stderr: {e}")

    return BuildStatus(success=result.returncode == 0, log=f"{stdout}\n{stderr}")


def load_object(parser: ObjectParser, path: Path) -> Any:
    """Load a built artifact; its build succeeded, so failure is fatal."""
    try:
        return parser(path)
    except Exception as e:
        raise ParseError(f"Loading {path}: {e}") from e


def diff_objects(diff_engine: DiffEngine, first: Any, second: Any) -> None:
    try:
        diff_engine(first, second)
    except Exception as e:
        raise DiffError(f"Diff failed: {e}") from e


def run_build(
    ctx: JobContext,
    obj_path: str,
    config: SharedConfig,
    parser: ObjectParser,
    diff_engine: DiffEngine,
) -> BuildResult:
    """Execute the build-diff pipeline against one config snapshot."""
    snapshot = config.snapshot()
    paths = resolve_build_paths(snapshot, obj_path)
    command = snapshot.build_command

    ctx.update_status(f"Building asm {obj_path}", 0, BUILD_STEPS)
    first_status = run_build_tool(paths.project_dir, paths.asm_rel, command)

    ctx.update_status(f"Building src {obj_path}", 1, BUILD_STEPS)
    second_status = run_build_tool(paths.project_dir, paths.src_rel, command)

    first_obj: Optional[Any] = None
    if first_status.success:
        ctx.update_status(f"Loading asm {obj_path}", 2, BUILD_STEPS)
        first_obj = load_object(parser, paths.asm_path)

    second_obj: Optional[Any] = None
    if second_status.success:
        ctx.update_status(f"Loading src {obj_path}", 3, BUILD_STEPS)
        second_obj = load_object(parser, paths.src_path)

    if first_obj is not None and second_obj is not None:
        ctx.update_status("Performing diff", 4, BUILD_STEPS)
        diff_objects(diff_engine, first_obj, second_obj)

    ctx.update_status("Complete", BUILD_STEPS, BUILD_STEPS)
    return BuildResult(
        first_status=first_status,
        second_status=second_status,
        first_obj=first_obj,
        second_obj=second_obj,
    )


def queue_build(
    registry: JobRegistry,
    obj_path: str,
    config: SharedConfig,
    parser: ObjectParser,
    diff_engine: DiffEngine,
) -> Job:
    return registry.enqueue(
        JobType.BUILD,
        partial(run_build, obj_path=obj_path, config=config, parser=parser, diff_engine=diff_engine),
        key=obj_path,
    )
