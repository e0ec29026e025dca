"""
Pytest configuration and fixtures for objctl tests.

The build tool is faked by patching subprocess.run; the object parser and
diff engine are plain recording callables.
"""

from __future__ import annotations

import subprocess
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

from objctl.config import AppConfig, SharedConfig


class FakeObject:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.match_percent: Optional[float] = None


class FakeParser:
    def __init__(self) -> None:
        self.calls: List[Path] = []
        self.fail_on: set[Path] = set()

    def __call__(self, path: Path) -> FakeObject:
        self.calls.append(Path(path))
        if Path(path) in self.fail_on:
            raise ValueError("not an ELF file")
        return FakeObject(path)


class FakeDiffEngine:
    def __init__(self) -> None:
        self.calls: List[Tuple[FakeObject, FakeObject]] = []
        self.error: Optional[Exception] = None

    def __call__(self, first: FakeObject, second: FakeObject) -> None:
        self.calls.append((first, second))
        if self.error is not None:
            raise self.error
        first.match_percent = 100.0
        second.match_percent = 100.0


class FakeMake:
    """Stands in for subprocess.run; results are keyed by the target argument."""

    def __init__(self) -> None:
        self.results: Dict[str, Tuple[int, bytes, bytes]] = {}
        self.calls: List[Tuple[List[str], Optional[str]]] = []
        self.gate: Optional[threading.Event] = None
        self.launch_error: Optional[OSError] = None

    def __call__(self, args, cwd=None, **kwargs):
        self.calls.append((list(args), cwd))
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.launch_error is not None:
            raise self.launch_error
        rc, out, err = self.results.get(str(args[1]), (0, b"", b""))
        return subprocess.CompletedProcess(args, rc, out, err)


@pytest.fixture
def fake_parser() -> FakeParser:
    return FakeParser()


@pytest.fixture
def fake_diff() -> FakeDiffEngine:
    return FakeDiffEngine()


@pytest.fixture
def fake_make(monkeypatch: pytest.MonkeyPatch) -> FakeMake:
    fake = FakeMake()
    monkeypatch.setattr("objctl.jobs.build.subprocess.run", fake)
    return fake


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    proj = tmp_path / "proj"
    (proj / "asm").mkdir(parents=True)
    (proj / "src").mkdir(parents=True)
    return proj


@pytest.fixture
def app_config(project_dir: Path) -> AppConfig:
    return AppConfig(
        project_dir=project_dir,
        build_asm_dir=project_dir / "asm",
        build_src_dir=project_dir / "src",
        build_obj="foo.o",
    )


@pytest.fixture
def shared_config(app_config: AppConfig) -> SharedConfig:
    return SharedConfig(app_config)


@pytest.fixture
def wait_until() -> Callable[..., None]:
    def _wait(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> None:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return
            time.sleep(interval)
        raise AssertionError(f"Condition not met within {timeout}s")
    return _wait
