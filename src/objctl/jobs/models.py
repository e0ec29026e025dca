from __future__ import annotations

import itertools
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel


# Canonical Job Kinds
# ===================

class JobType(StrEnum):
    """Canonical job kinds."""
    BUILD = "BUILD"
    BIN_DIFF = "BIN_DIFF"


_job_ids = itertools.count(1)


def new_job_id() -> int:
    """Return a process-unique job id."""
    return next(_job_ids)


class BuildStatus(BaseModel):
    """Outcome of one build tool invocation."""
    success: bool
    log: str = ""


@dataclass
class BuildResult:
    """
    Result of one BUILD job.

    Contract:
      - first_obj is set only if first_status.success
      - second_obj is set only if second_status.success
      - when both objs are set the diff engine has annotated them in place
    """
    first_status: BuildStatus
    second_status: BuildStatus
    first_obj: Optional[Any] = None
    second_obj: Optional[Any] = None


@dataclass
class BinDiffResult:
    """Result of one BIN_DIFF job; both objects are always loaded and diffed."""
    first_obj: Any
    second_obj: Any

    def as_build_result(self) -> BuildResult:
        return BuildResult(
            first_status=BuildStatus(success=True, log=""),
            second_status=BuildStatus(success=True, log=""),
            first_obj=self.first_obj,
            second_obj=self.second_obj,
        )


@dataclass(frozen=True)
class JobOutcome:
    """
    Terminal outcome of a worker, consumed exactly once by poll_finished().

    Exactly one of these holds:
      - result is set (success)
      - error is set (pipeline-fatal or worker crash)
      - cancelled is True (quiet removal, no result, no error)
    """
    result: Any = None
    error: Optional[BaseException] = None
    cancelled: bool = False
