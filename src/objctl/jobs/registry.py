"""
Job registry: thread-per-job execution with completion polling.

The registry is driven from the controller tick. It never joins a thread
that is still alive, so no call here blocks on a worker.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Tuple

from objctl.errors import JobCancelled, WorkerCrashed
from .models import JobOutcome, JobType, new_job_id
from .status import JobContext, Status

logger = logging.getLogger(__name__)

WorkFn = Callable[[JobContext], Any]


@dataclass(eq=False)
class Job:
    """One background unit of work."""
    job_id: int
    job_type: JobType
    key: Optional[str] = None
    status: Status = field(default_factory=Status)
    cancel_event: threading.Event = field(default_factory=threading.Event)
    should_remove: bool = False
    _thread: Optional[threading.Thread] = field(default=None, repr=False)
    _future: Future = field(default_factory=Future, repr=False)

    @property
    def in_flight(self) -> bool:
        """True until the outcome has been consumed by poll_finished()."""
        return self._thread is not None

    @property
    def is_finished(self) -> bool:
        return self._thread is None or not self._thread.is_alive()


def _run_job(job: Job, work: WorkFn) -> None:
    ctx = JobContext(job.job_id, job.status, job.cancel_event)
    try:
        result = work(ctx)
    except JobCancelled:
        logger.debug("Job %s cancelled", job.job_id)
        job._future.set_result(JobOutcome(cancelled=True))
    except Exception as e:
        job.status.set_error(f"{type(e).__name__}: {e}")
        job._future.set_result(JobOutcome(error=e))
    else:
        job._future.set_result(JobOutcome(result=result))


class JobRegistry:
    """Owns in-flight and finished-but-unpruned jobs."""

    def __init__(self) -> None:
        self._jobs: List[Job] = []
        self._lock = threading.Lock()

    @property
    def jobs(self) -> List[Job]:
        with self._lock:
            return list(self._jobs)

    def get(self, job_id: int) -> Optional[Job]:
        with self._lock:
            for job in self._jobs:
                if job.job_id == job_id:
                    return job
        return None

    def enqueue(self, job_type: JobType, work: WorkFn, key: Optional[str] = None) -> Job:
        """Spawn `work` on its own thread and return immediately."""
        job = Job(job_id=new_job_id(), job_type=job_type, key=key)
        thread = threading.Thread(
            target=_run_job,
            args=(job, work),
            name=f"objctl-job-{job.job_id}",
            daemon=True,
        )
        job._thread = thread
        with self._lock:
            self._jobs.append(job)
        thread.start()
        logger.info("Queued %s job %s%s", job_type, job.job_id, f" ({key})" if key else "")
        return job

    def in_flight(self, job_type: JobType, key: Optional[str] = None) -> bool:
        """Plain scan; key=None matches any key."""
        with self._lock:
            return any(
                j.job_type == job_type and j.in_flight and (key is None or j.key == key)
                for j in self._jobs
            )

    def poll_finished(self) -> List[Tuple[Job, JobOutcome]]:
        """
        Join every worker that has exited and return its outcome.

        Each outcome is returned exactly once; the job is then marked
        removable. A worker that died without reporting an outcome yields
        a WorkerCrashed error instead of propagating anything here.
        """
        finished: List[Tuple[Job, JobOutcome]] = []
        for job in self.jobs:
            thread = job._thread
            if thread is None or thread.is_alive():
                continue
            thread.join()
            job._thread = None
            if job._future.done():
                outcome = job._future.result()
            else:
                error = WorkerCrashed(f"Job {job.job_id} worker exited without an outcome")
                job.status.set_error(f"{type(error).__name__}: {error}")
                outcome = JobOutcome(error=error)
            job.should_remove = True
            finished.append((job, outcome))
        return finished

    def cancel(self, job_id: int) -> bool:
        """Send the one-shot cancellation token. No effect once finished."""
        job = self.get(job_id)
        if job is None or job.is_finished:
            return False
        job.cancel_event.set()
        logger.debug("Cancellation requested for job %s", job_id)
        return True

    def cancel_all(self) -> None:
        for job in self.jobs:
            if not job.is_finished:
                job.cancel_event.set()

    def prune(self) -> int:
        """Drop removable jobs whose outcome was consumed. Returns count removed."""
        with self._lock:
            keep = [j for j in self._jobs if not (j.should_remove and j._thread is None)]
            removed = len(self._jobs) - len(keep)
            self._jobs = keep
        return removed
