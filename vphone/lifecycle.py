"""Tracked child processes and the signal-driven two-phase shutdown."""

from __future__ import annotations

import signal
import subprocess
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from loguru import logger

from .errors import ShutdownRequested

log = logger

ROLES = ('boot', 'ssh_tunnel', 'vnc_tunnel')

RUNNING = 'running'
SHUTTING_DOWN = 'shutting_down'
TERMINATED = 'terminated'


@dataclass
class ProcessHandle:
    role: str
    proc: subprocess.Popen

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self.proc.returncode

    def is_alive(self) -> bool:
        return self.proc.poll() is None

    def terminate(self) -> None:
        self.proc.terminate()

    def kill(self) -> None:
        self.proc.kill()


@dataclass
class ProcessSet:
    boot: Optional[ProcessHandle] = None
    ssh_tunnel: Optional[ProcessHandle] = None
    vnc_tunnel: Optional[ProcessHandle] = None

    def handles(self) -> list[ProcessHandle]:
        """Tracked handles in shutdown order (boot, ssh, vnc)."""
        found = [getattr(self, role) for role in ROLES]
        return [h for h in found if h is not None]

    def clear(self) -> None:
        for role in ROLES:
            setattr(self, role, None)


class LifecycleController:
    """Owns the launcher's child processes and tears them down on exit.

    Use it as a context manager: entering installs SIGINT/SIGTERM handlers
    that raise :class:`ShutdownRequested` so any blocking wait unwinds, and
    leaving (by return, exception or signal) runs :meth:`shutdown` and
    restores the previous handlers.
    """

    def __init__(
        self,
        *,
        grace_s: float = 2,
        sleep: Callable[[float], None] = time.sleep,
        signals: Sequence[int] = (signal.SIGINT, signal.SIGTERM),
    ):
        self.procs = ProcessSet()
        self.state = RUNNING
        self.grace_s = grace_s
        self.sleep = sleep
        self.signals = tuple(signals)
        self._previous: dict[int, object] = {}
        self._deferring = False
        self._pending: Optional[int] = None

    def track(self, handle: Optional[ProcessHandle]) -> None:
        if handle is None:
            return
        if handle.role not in ROLES:
            raise ValueError(f'Unknown process role: {handle.role}')
        log.debug('Tracking {} pid={}', handle.role, handle.pid)
        setattr(self.procs, handle.role, handle)

    @contextmanager
    def deferring_signals(self) -> Iterator[None]:
        """Hold back a shutdown signal until the block completes.

        Wrap a spawn together with its :meth:`track` call so a child is
        always in the record before the signal unwinds the launch.
        """
        self._deferring = True
        try:
            yield
        finally:
            self._deferring = False
        if self._pending is not None:
            signum, self._pending = self._pending, None
            raise ShutdownRequested(signum)

    def spawn_tracked(
        self, spawn: Callable[[], Optional[ProcessHandle]]
    ) -> Optional[ProcessHandle]:
        with self.deferring_signals():
            handle = spawn()
            self.track(handle)
        return handle

    def _on_signal(self, signum, frame) -> None:
        if self.state != RUNNING:
            log.debug('Ignoring signal {} during {}', signum, self.state)
            return
        if self._deferring:
            log.debug('Deferring signal {} until spawn is tracked', signum)
            self._pending = signum
            return
        log.debug('Received signal {}; shutting down', signum)
        raise ShutdownRequested(signum)

    def install(self) -> None:
        for sig in self.signals:
            self._previous[sig] = signal.signal(sig, self._on_signal)

    def restore(self) -> None:
        for sig, prev in self._previous.items():
            signal.signal(sig, prev)
        self._previous.clear()

    def __enter__(self) -> 'LifecycleController':
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # A signal landing before the state flips still falls through to
        # shutdown; later ones are ignored by the handler.
        try:
            self.state = SHUTTING_DOWN
        finally:
            try:
                self.shutdown()
            finally:
                self.restore()

    def wait_boot(self) -> int:
        """Block until the boot process exits and return its exit code."""
        boot = self.procs.boot
        if boot is None:
            return 0
        code = boot.proc.wait()
        log.info('Boot process pid={} exited with code={}', boot.pid, code)
        return code

    def shutdown(self) -> None:
        """SIGTERM every live child, wait ``grace_s``, then SIGKILL survivors.

        Safe to call repeatedly: the record is cleared afterwards, so later
        calls find nothing to signal.
        """
        if self.state == TERMINATED:
            return
        self.state = SHUTTING_DOWN
        handles = self.procs.handles()
        print('')
        print('==========================================')
        print('  Shutting down vPhone...')
        print('==========================================')
        if handles:
            for h in handles:
                if h.is_alive():
                    log.debug('SIGTERM {} pid={}', h.role, h.pid)
                    h.terminate()
            self.sleep(self.grace_s)
            for h in handles:
                if h.is_alive():
                    log.warning(
                        '{} pid={} still alive after {}s; sending SIGKILL',
                        h.role,
                        h.pid,
                        self.grace_s,
                    )
                    h.kill()
        self.procs.clear()
        self.state = TERMINATED
        print('')
        print('  All processes stopped. Goodbye!')
        print('==========================================')
