"""Shared utility helpers for subprocess execution, paths, and command formatting."""

from __future__ import annotations

import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger

log = logger


@dataclass(frozen=True)
class CmdResult:
    code: int
    stdout: str
    stderr: str


class CmdError(RuntimeError):
    def __init__(self, cmd: Sequence[str] | str, result: CmdResult):
        self.cmd = cmd
        self.result = result
        super().__init__(
            f'Command failed (code={result.code}): {cmd}\n{result.stderr}'.strip()
        )


def shell_join(cmd: Sequence[str]) -> str:
    return ' '.join(shlex.quote(c) for c in cmd)


def run_cmd(
    cmd: Sequence[str],
    *,
    check: bool = True,
    capture: bool = True,
    text: bool = True,
    cwd: Optional[Path] = None,
    env: Optional[dict[str, str]] = None,
) -> CmdResult:
    log.opt(depth=1).debug('RUN: {}', shell_join(cmd))
    p = subprocess.run(
        cmd,
        capture_output=capture,
        text=text,
        cwd=cwd,
        env=env,
    )
    res = CmdResult(p.returncode, p.stdout or '', p.stderr or '')
    if check and p.returncode != 0:
        log.opt(depth=1).error(
            'Command failed code={} cmd={} stderr={} stdout={}',
            p.returncode,
            shell_join(cmd),
            res.stderr.strip(),
            res.stdout.strip(),
        )
        raise CmdError(cmd, res)
    if p.returncode == 0:
        log.opt(depth=1).debug('Command ok code=0 cmd={}', shell_join(cmd))
    return res


def run_pipeline(
    producer: Sequence[str],
    consumer: Sequence[str],
    *,
    cwd: Optional[Path] = None,
) -> CmdResult:
    """Run ``producer | consumer`` and fail if either side exits non-zero."""
    desc = f'{shell_join(producer)} | {shell_join(consumer)}'
    log.opt(depth=1).debug('RUN: {}', desc)
    p1 = subprocess.Popen(producer, stdout=subprocess.PIPE, cwd=cwd)
    try:
        p2 = subprocess.run(
            consumer,
            stdin=p1.stdout,
            stderr=subprocess.PIPE,
            text=True,
            cwd=cwd,
        )
    finally:
        # Let the producer see SIGPIPE if the consumer exits early.
        if p1.stdout is not None:
            p1.stdout.close()
        p1.wait()
    code = p1.returncode or p2.returncode
    res = CmdResult(code, '', p2.stderr or '')
    if code != 0:
        log.opt(depth=1).error(
            'Pipeline failed producer_code={} consumer_code={} cmd={} stderr={}',
            p1.returncode,
            p2.returncode,
            desc,
            res.stderr.strip(),
        )
        raise CmdError(desc, res)
    log.opt(depth=1).debug('Pipeline ok cmd={}', desc)
    return res


def which(cmd: str) -> Optional[str]:
    from shutil import which as _which

    return _which(cmd)


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def expand(path: str) -> str:
    return os.path.expandvars(os.path.expanduser(path))


def human_size(num_bytes: int) -> str:
    """Render a byte count the way ``du -h`` does (e.g. ``3.2G``)."""
    size = float(num_bytes)
    for unit in ('B', 'K', 'M', 'G', 'T'):
        if size < 1024 or unit == 'T':
            if unit == 'B':
                return f'{int(size)}{unit}'
            return f'{size:.1f}{unit}'
        size /= 1024
    return f'{size:.1f}T'
