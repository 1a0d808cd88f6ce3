"""Shared fakes for process-spawning tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from vphone.config import VPhoneConfig


class FakeProc:
    """Stand-in for ``subprocess.Popen`` that never forks."""

    _next_pid = 4000

    def __init__(
        self,
        args,
        kwargs=None,
        *,
        exit_code: int = 0,
        exit_after_polls: int | None = None,
        ignores_term: bool = False,
        wait_raises: BaseException | None = None,
    ):
        FakeProc._next_pid += 1
        self.pid = FakeProc._next_pid
        self.args = list(args)
        self.kwargs = dict(kwargs or {})
        self.exit_code = exit_code
        self.exit_after_polls = exit_after_polls
        self.ignores_term = ignores_term
        self.wait_raises = wait_raises
        self.returncode = None
        self.polls = 0
        self.signals: list[str] = []

    def poll(self):
        self.polls += 1
        if (
            self.returncode is None
            and self.exit_after_polls is not None
            and self.polls >= self.exit_after_polls
        ):
            self.returncode = self.exit_code
        return self.returncode

    def wait(self):
        if self.wait_raises is not None:
            raise self.wait_raises
        if self.returncode is None:
            self.returncode = self.exit_code
        return self.returncode

    def terminate(self):
        self.signals.append('TERM')
        if not self.ignores_term and self.returncode is None:
            self.returncode = -15

    def kill(self):
        self.signals.append('KILL')
        if self.returncode is None:
            self.returncode = -9


class FakePopen:
    """Callable replacing ``subprocess.Popen``; behavior keyed by program name."""

    def __init__(self):
        self.procs: list[FakeProc] = []
        self.behaviors: dict[str, dict] = {}

    def __call__(self, cmd, **kwargs):
        opts = self.behaviors.get(Path(cmd[0]).name, {})
        proc = FakeProc(cmd, kwargs, **opts)
        self.procs.append(proc)
        return proc

    @property
    def commands(self) -> list[list[str]]:
        return [p.args for p in self.procs]


class SleepRecorder:
    def __init__(self):
        self.calls: list[float] = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def fake_popen() -> FakePopen:
    return FakePopen()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def cfg(tmp_path: Path) -> VPhoneConfig:
    c = VPhoneConfig()
    c.paths.base_dir = str(tmp_path)
    return c
