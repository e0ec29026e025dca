"""
Background jobs: registry, status reporting and the job kinds.
"""
from __future__ import annotations

from .models import BinDiffResult, BuildResult, BuildStatus, JobOutcome, JobType
from .registry import Job, JobRegistry
from .status import JobContext, Status, StatusSnapshot, update_status
from .build import queue_build, run_build
from .bin_diff import queue_bin_diff, run_bin_diff

__all__ = [
    "BinDiffResult",
    "BuildResult",
    "BuildStatus",
    "Job",
    "JobContext",
    "JobOutcome",
    "JobRegistry",
    "JobType",
    "Status",
    "StatusSnapshot",
    "queue_bin_diff",
    "queue_build",
    "run_bin_diff",
    "run_build",
    "update_status",
]
