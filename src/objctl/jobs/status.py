"""
Job progress record and the cancellation checkpoint.

A worker is the only writer of its Status. Every write swaps in a new
immutable StatusSnapshot, so readers on other threads never take a lock
and always see a consistent {step, total, message, error}.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from objctl.errors import JobCancelled


@dataclass(frozen=True)
class StatusSnapshot:
    step: int = 0
    total: int = 0
    message: str = ""
    error: Optional[str] = None

    @property
    def progress(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.step / self.total


class Status:
    """Concurrently readable progress record for one job."""

    def __init__(self) -> None:
        self._snapshot = StatusSnapshot()

    def read(self) -> StatusSnapshot:
        return self._snapshot

    def write(self, message: str, step: int, total: int) -> None:
        self._snapshot = StatusSnapshot(
            step=step, total=total, message=message, error=self._snapshot.error
        )

    def set_error(self, error: str) -> None:
        """Terminal write: keep the last step/total, attach the error."""
        current = self._snapshot
        self._snapshot = StatusSnapshot(
            step=current.step,
            total=current.total,
            message=current.message,
            error=error,
        )


def update_status(
    status: Status,
    message: str,
    step: int,
    total: int,
    cancel: threading.Event,
) -> None:
    """
    Overwrite the status, then check for cancellation.

    This is the only cancellation checkpoint; callers invoke it at stage
    boundaries, never inside a blocking call.

    Raises:
        JobCancelled: if cancellation was requested
    """
    status.write(message, step, total)
    if cancel.is_set():
        raise JobCancelled(message)


class JobContext:
    """
    Runtime context handed to a job's work function.

    IMPORTANT: work functions only touch their own status through
    ctx.update_status(); they never reach into the registry.
    """

    def __init__(self, job_id: int, status: Status, cancel: threading.Event):
        self.job_id = job_id
        self.status = status
        self._cancel = cancel

    def update_status(self, message: str, step: int, total: int) -> None:
        update_status(self.status, message, step, total, self._cancel)

    def is_cancel_requested(self) -> bool:
        return self._cancel.is_set()
