"""BIN_DIFF job: load two prebuilt binaries and diff them, no build step."""
from __future__ import annotations

from functools import partial

from objctl.collaborators import DiffEngine, ObjectParser
from objctl.config import SharedConfig
from objctl.errors import ConfigurationError
from .build import diff_objects, load_object
from .models import BinDiffResult, JobType
from .registry import Job, JobRegistry
from .status import JobContext

BIN_DIFF_STEPS = 3


def run_bin_diff(
    ctx: JobContext,
    config: SharedConfig,
    parser: ObjectParser,
    diff_engine: DiffEngine,
) -> BinDiffResult:
    snapshot = config.snapshot()
    if snapshot.left_obj is None:
        raise ConfigurationError("Missing target object")
    if snapshot.right_obj is None:
        raise ConfigurationError("Missing base object")

    ctx.update_status("Loading target", 0, BIN_DIFF_STEPS)
    first_obj = load_object(parser, snapshot.left_obj)

    ctx.update_status("Loading base", 1, BIN_DIFF_STEPS)
    second_obj = load_object(parser, snapshot.right_obj)

    ctx.update_status("Performing diff", 2, BIN_DIFF_STEPS)
    diff_objects(diff_engine, first_obj, second_obj)

    ctx.update_status("Complete", BIN_DIFF_STEPS, BIN_DIFF_STEPS)
    return BinDiffResult(first_obj=first_obj, second_obj=second_obj)


def queue_bin_diff(
    registry: JobRegistry,
    config: SharedConfig,
    parser: ObjectParser,
    diff_engine: DiffEngine,
) -> Job:
    return registry.enqueue(
        JobType.BIN_DIFF,
        partial(run_bin_diff, config=config, parser=parser, diff_engine=diff_engine),
    )
