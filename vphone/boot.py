"""Start the VM boot script as a background child."""

from __future__ import annotations

import subprocess

from loguru import logger

from .config import VPhoneConfig
from .errors import VPhoneError
from .lifecycle import ProcessHandle
from .runtime import boot_cmd
from .util import shell_join

log = logger


def launch_boot(cfg: VPhoneConfig, *, popen=subprocess.Popen) -> ProcessHandle:
    project = cfg.project_dir
    cmd = boot_cmd(cfg)
    log.debug('Starting boot process in {}: {}', project, shell_join(cmd))
    try:
        proc = popen(cmd, cwd=str(project))
    except OSError as ex:
        raise VPhoneError(
            f'Could not start {cfg.boot.script} in {project}: {ex}'
        ) from ex
    handle = ProcessHandle('boot', proc)
    log.info('Boot process started pid={}', handle.pid)
    return handle
