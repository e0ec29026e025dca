"""
Test job registry and status checkpoint contract.
"""
from __future__ import annotations

import threading

import pytest

from objctl.errors import JobCancelled, WorkerCrashed
from objctl.jobs.models import JobType
from objctl.jobs.registry import JobRegistry
from objctl.jobs.status import JobContext, Status, update_status


def test_update_status_overwrites_then_checks_cancel():
    status = Status()
    cancel = threading.Event()

    update_status(status, "Building asm foo.o", 0, 5, cancel)
    snap = status.read()
    assert (snap.step, snap.total, snap.message) == (0, 5, "Building asm foo.o")
    assert snap.error is None

    cancel.set()
    with pytest.raises(JobCancelled):
        update_status(status, "Building src foo.o", 1, 5, cancel)
    # The write still happened before the check
    assert status.read().step == 1


def test_status_snapshot_is_immutable_copy():
    status = Status()
    status.write("a", 1, 4)
    before = status.read()
    status.write("b", 2, 4)
    assert before.message == "a"
    assert status.read().progress == 0.5


def test_enqueue_returns_before_work_finishes(wait_until):
    registry = JobRegistry()
    gate = threading.Event()

    job = registry.enqueue(JobType.BUILD, lambda ctx: gate.wait(5.0), key="foo.o")
    assert job.in_flight
    assert registry.in_flight(JobType.BUILD, "foo.o")
    assert not registry.in_flight(JobType.BUILD, "bar.o")
    assert registry.poll_finished() == []

    gate.set()
    wait_until(lambda: job.is_finished)
    finished = registry.poll_finished()
    assert [j for j, _ in finished] == [job]
    assert finished[0][1].result is True
    assert not registry.in_flight(JobType.BUILD)


def test_outcome_consumed_exactly_once(wait_until):
    registry = JobRegistry()
    job = registry.enqueue(JobType.BUILD, lambda ctx: "done")
    wait_until(lambda: job.is_finished)

    assert len(registry.poll_finished()) == 1
    assert registry.poll_finished() == []
    assert job.should_remove is True


def test_prune_keeps_unobserved_jobs(wait_until):
    registry = JobRegistry()
    job = registry.enqueue(JobType.BUILD, lambda ctx: None)
    wait_until(lambda: job.is_finished)

    # Finished but not yet polled: must survive prune
    assert registry.prune() == 0
    assert registry.get(job.job_id) is job

    registry.poll_finished()
    assert registry.prune() == 1
    assert registry.jobs == []


def test_worker_error_captured_in_status_and_outcome(wait_until):
    registry = JobRegistry()

    def work(ctx: JobContext):
        ctx.update_status("Building asm foo.o", 0, 5)
        raise RuntimeError("boom")

    job = registry.enqueue(JobType.BUILD, work)
    wait_until(lambda: job.is_finished)
    [(_, outcome)] = registry.poll_finished()

    assert isinstance(outcome.error, RuntimeError)
    assert outcome.result is None
    assert job.status.read().error == "RuntimeError: boom"


def test_worker_crash_reported_as_registry_error(monkeypatch, wait_until):
    # Simulate a worker thread that dies before reporting anything
    monkeypatch.setattr("objctl.jobs.registry._run_job", lambda job, work: None)
    registry = JobRegistry()

    job = registry.enqueue(JobType.BUILD, lambda ctx: "unreachable")
    wait_until(lambda: job.is_finished)
    [(_, outcome)] = registry.poll_finished()

    assert isinstance(outcome.error, WorkerCrashed)
    assert job.status.read().error


def test_cancel_before_first_checkpoint_is_quiet(wait_until):
    registry = JobRegistry()
    gate = threading.Event()

    def work(ctx: JobContext):
        gate.wait(5.0)
        ctx.update_status("Building asm foo.o", 0, 5)
        return "should not be returned"

    job = registry.enqueue(JobType.BUILD, work)
    assert registry.cancel(job.job_id) is True
    gate.set()
    wait_until(lambda: job.is_finished)

    [(_, outcome)] = registry.poll_finished()
    assert outcome.cancelled is True
    assert outcome.result is None
    assert outcome.error is None
    assert job.status.read().error is None

    registry.prune()
    assert registry.get(job.job_id) is None


def test_cancel_after_completion_has_no_effect(wait_until):
    registry = JobRegistry()
    job = registry.enqueue(JobType.BUILD, lambda ctx: 42)
    wait_until(lambda: job.is_finished)

    assert registry.cancel(job.job_id) is False
    [(_, outcome)] = registry.poll_finished()
    assert outcome.result == 42
    assert registry.cancel(12345678) is False
