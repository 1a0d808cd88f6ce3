"""End-to-end launch: prepare, boot, wait, tunnel, then supervise."""

from __future__ import annotations

import subprocess
import sys
import time
from typing import Callable, Optional

from loguru import logger

from .archive import prepare_project
from .boot import launch_boot
from .config import VPhoneConfig
from .errors import MissingPrerequisiteError, ShutdownRequested, VPhoneError
from .host import check_commands, describe_missing
from .lifecycle import LifecycleController
from .readiness import port_open, wait_for_ready
from .runtime import shell_ssh, vnc_url
from .tunnels import start_tunnels
from .util import CmdError

log = logger

RULE = '=========================================='


def _wait_label(seconds: int) -> str:
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f'{minutes} minute{"s" if minutes != 1 else ""}'
    return f'{seconds}s'


def print_header() -> None:
    print(RULE)
    print('  vPhone - All-in-one Launcher')
    print(RULE)
    print('')


def print_ready_banner(cfg: VPhoneConfig) -> None:
    print('')
    print(RULE)
    print('')
    print('  vPhone is READY!')
    print('')
    print(f'  Connect via VNC : {vnc_url(cfg)}')
    print(f'  Connect via SSH : {shell_ssh(cfg)}')
    print('')
    print('  Press Ctrl+C to stop everything.')
    print('')
    print(RULE)


def report_error(ex: BaseException) -> None:
    if isinstance(ex, MissingPrerequisiteError):
        print('ERROR: Missing required tools:', file=sys.stderr)
        for item in ex.missing:
            print(f'  - {item}', file=sys.stderr)
    else:
        print(f'ERROR: {ex}', file=sys.stderr)
    log.debug('Launch aborted: {!r}', ex)


def preflight(cfg: VPhoneConfig) -> None:
    missing, _ = check_commands(cfg)
    if missing:
        raise MissingPrerequisiteError([describe_missing(c) for c in missing])


def run_stages(
    cfg: VPhoneConfig,
    ctl: LifecycleController,
    *,
    dry_run: bool = False,
    popen=subprocess.Popen,
    probe: Callable[..., bool] = port_open,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    preflight(cfg)
    prepare_project(cfg, dry_run=dry_run)
    print('')
    if dry_run:
        log.info('DRYRUN: would run {} in {}', cfg.boot.script, cfg.project_dir)
        return 0

    print('[3/5] Building and booting the VM ...')
    print('')
    ctl.spawn_tracked(lambda: launch_boot(cfg, popen=popen))

    print('')
    label = _wait_label(cfg.readiness.max_wait_s)
    print(f'[4/5] Waiting for VM to boot (up to {label}) ...')
    ready = wait_for_ready(cfg, ctl.procs.boot, probe=probe, sleep=sleep)
    print('')
    if ready:
        print('       VM is up!')
    else:
        print('       WARNING: Timed out, starting tunnels anyway.')

    print('')
    print(f'[5/5] Starting {cfg.tunnels.command} tunnels ...')
    start_tunnels(cfg, ctl, popen=popen)

    print_ready_banner(cfg)
    return ctl.wait_boot()


def launch(
    cfg: VPhoneConfig,
    *,
    dry_run: bool = False,
    controller: Optional[LifecycleController] = None,
    popen=subprocess.Popen,
    probe: Callable[..., bool] = port_open,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run the full launch and return the process exit code.

    0 after a signal-driven shutdown, 1 for launch failures, otherwise the
    boot process's own exit code.
    """
    print_header()
    ctl = controller or LifecycleController(
        grace_s=cfg.shutdown.grace_s, sleep=sleep
    )
    try:
        with ctl:
            try:
                return run_stages(
                    cfg,
                    ctl,
                    dry_run=dry_run,
                    popen=popen,
                    probe=probe,
                    sleep=sleep,
                )
            except (VPhoneError, CmdError) as ex:
                report_error(ex)
                return 1
    except ShutdownRequested as ex:
        log.debug('Shutdown requested by signal {}', ex.signum)
        return 0
