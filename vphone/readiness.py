"""Poll the VM's SSH port until it accepts connections or time runs out."""

from __future__ import annotations

import socket
import time
from typing import Callable

from loguru import logger

from .config import VPhoneConfig
from .errors import BootProcessExitedError
from .lifecycle import ProcessHandle

log = logger


def port_open(host: str, port: int, *, timeout_s: float = 2) -> bool:
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except OSError:
        return False


def _print_progress(elapsed: int, max_wait: int) -> None:
    print(f'\r       Waiting... {elapsed}s / {max_wait}s', end='', flush=True)


def wait_for_ready(
    cfg: VPhoneConfig,
    boot: ProcessHandle,
    *,
    probe: Callable[..., bool] = port_open,
    sleep: Callable[[float], None] = time.sleep,
    on_progress: Callable[[int, int], None] = _print_progress,
) -> bool:
    """Return True once ``readiness.host:port`` accepts a TCP connection.

    Elapsed time is counted in ``interval_s`` steps of the injected ``sleep``
    rather than wall clock, so the loop ends after at most
    ``max_wait_s / interval_s`` sleeps. Timing out is not an error; a boot
    process that has already exited is.
    """
    r = cfg.readiness
    if r.interval_s <= 0:
        raise ValueError(f'readiness.interval_s must be positive (got {r.interval_s})')
    elapsed = 0
    while elapsed < r.max_wait_s:
        if not boot.is_alive():
            log.error(
                'Boot process pid={} exited with code={}',
                boot.pid,
                boot.returncode,
            )
            raise BootProcessExitedError(boot.returncode)
        if probe(r.host, r.port, timeout_s=r.connect_timeout_s):
            log.info('VM reachable at {}:{} after {}s', r.host, r.port, elapsed)
            return True
        sleep(r.interval_s)
        elapsed += r.interval_s
        on_progress(elapsed, r.max_wait_s)
    log.warning(
        'Timed out after {}s waiting for {}:{}', r.max_wait_s, r.host, r.port
    )
    return False
