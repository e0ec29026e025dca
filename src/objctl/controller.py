from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from .collaborators import DiffEngine, ObjectParser
from .config import SharedConfig, save_config
from .jobs.bin_diff import queue_bin_diff
from .jobs.build import queue_build
from .jobs.models import BinDiffResult, BuildResult, JobOutcome
from .jobs.registry import Job, JobRegistry
from .scheduler import RebuildScheduler
from .watcher import Watcher, create_watcher

logger = logging.getLogger(__name__)


def _log_build_result(build: BuildResult) -> None:
    for label, status, obj in (
        ("asm", build.first_status, build.first_obj),
        ("src", build.second_status, build.second_obj),
    ):
        if status.success:
            logger.info("%s build succeeded (loaded=%s)", label, obj is not None)
            logger.debug("%s build log:\n%s", label, status.log)
        else:
            logger.warning("%s build failed:\n%s", label, status.log)


class Controller:
    """
    Single-threaded tick loop coordinating jobs, the watcher and rebuilds.

    tick() never blocks on a worker; all blocking work happens in job threads.
    """

    def __init__(
        self,
        config: SharedConfig,
        parser: ObjectParser,
        diff_engine: DiffEngine,
        config_path: Optional[Path] = None,
        registry: Optional[JobRegistry] = None,
    ):
        self.config = config
        self.parser = parser
        self.diff_engine = diff_engine
        self.config_path = config_path
        self.registry = registry or JobRegistry()
        self.dirty = threading.Event()
        self.watcher: Optional[Watcher] = None
        self.build: Optional[BuildResult] = None
        self.scheduler = RebuildScheduler(
            self.registry, self.config, self.dirty, self.parser, self.diff_engine
        )
        self.running = False

    def handle_finished(self) -> List[Tuple[Job, JobOutcome]]:
        """Consume every finished job's outcome exactly once."""
        finished = self.registry.poll_finished()
        for job, outcome in finished:
            if outcome.cancelled:
                logger.debug("Job %s cancelled", job.job_id)
                continue
            if outcome.error is not None:
                logger.error("Job %s failed: %s", job.job_id, job.status.read().error)
                continue
            logger.info("Job %s finished", job.job_id)
            if isinstance(outcome.result, BuildResult):
                self.build = outcome.result
                _log_build_result(self.build)
            elif isinstance(outcome.result, BinDiffResult):
                self.build = outcome.result.as_build_result()
        return finished

    def handle_project_dir_change(self) -> None:
        """Replace the watcher when the project root changed, then force a rebuild."""
        changed, project_dir = self.config.take_project_dir_change()
        if not changed:
            return
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
        if project_dir is None:
            return
        try:
            self.watcher = create_watcher(self.dirty, project_dir)
        except OSError as e:
            logger.error("Failed to create watcher for %s: %s", project_dir, e)
        self.dirty.set()

    def tick(self) -> Optional[Job]:
        """
        Perform one controller tick.

        Returns:
            The BUILD job enqueued this tick, if any.
        """
        # 1. Reap finished jobs
        self.handle_finished()

        # 2. Drop consumed entries
        self.registry.prune()

        # 3. Project root change
        self.handle_project_dir_change()

        # 4. Rebuild on source change
        return self.scheduler.poll()

    def request_build(self) -> Optional[Job]:
        """Enqueue a BUILD for the configured target right away."""
        build_obj = self.config.snapshot().build_obj
        if build_obj is None:
            logger.warning("No target object configured")
            return None
        return queue_build(self.registry, build_obj, self.config, self.parser, self.diff_engine)

    def request_bin_diff(self) -> Job:
        return queue_bin_diff(self.registry, self.config, self.parser, self.diff_engine)

    def cancel(self, job_id: int) -> bool:
        return self.registry.cancel(job_id)

    def run_forever(self, tick_interval: float = 0.1) -> None:
        """Run the tick loop until interrupted."""
        self.running = True
        logger.info("Controller started (tick_interval=%s)", tick_interval)
        try:
            while self.running:
                self.tick()
                time.sleep(tick_interval)
        except KeyboardInterrupt:
            logger.info("Controller shutting down...")
        finally:
            self.shutdown()

    def shutdown(self) -> None:
        """Cancel all jobs, stop the watcher and persist the config."""
        self.running = False
        self.registry.cancel_all()
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
        if self.config_path is not None:
            save_config(self.config.snapshot(), self.config_path)
        logger.info("Controller shutdown complete")
