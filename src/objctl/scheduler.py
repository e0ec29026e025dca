from __future__ import annotations

import logging
import threading
from typing import Optional

from .collaborators import DiffEngine, ObjectParser
from .config import SharedConfig
from .jobs.build import queue_build
from .jobs.models import JobType
from .jobs.registry import Job, JobRegistry

logger = logging.getLogger(__name__)


class RebuildScheduler:
    """
    Per-tick rebuild trigger.

    Enqueues a BUILD job when the dirty flag is set, a target is configured
    and no BUILD for that target is still in flight. The flag is cleared
    before enqueueing, so a change landing in between still leaves it set
    for the next tick. While a build is in flight the flag is left alone.
    """

    def __init__(
        self,
        registry: JobRegistry,
        config: SharedConfig,
        dirty: threading.Event,
        parser: ObjectParser,
        diff_engine: DiffEngine,
    ):
        self.registry = registry
        self.config = config
        self.dirty = dirty
        self.parser = parser
        self.diff_engine = diff_engine

    def poll(self) -> Optional[Job]:
        if not self.dirty.is_set():
            return None
        build_obj = self.config.snapshot().build_obj
        if build_obj is None:
            return None
        if self.registry.in_flight(JobType.BUILD, build_obj):
            return None
        self.dirty.clear()
        return queue_build(self.registry, build_obj, self.config, self.parser, self.diff_engine)
