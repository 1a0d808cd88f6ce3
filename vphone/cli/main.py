"""Top-level modal CLI wiring, argv normalization, and logging setup."""

from __future__ import annotations

import os
import sys

import scriptconfig as scfg
from loguru import logger

from ._common import _load_cfg, log
from .config import ConfigModalCLI
from .host import DoctorCLI, StatusCLI
from .launch import ExtractCLI, UpCLI


class VPhoneModalCLI(scfg.ModalCLI):
    """All-in-one vPhone launcher: extract, boot, tunnel, and supervise."""

    up = UpCLI
    extract = ExtractCLI
    doctor = DoctorCLI
    status = StatusCLI
    config = ConfigModalCLI


def main(argv: list[str] | None = None) -> None:
    argv = _normalize_argv(sys.argv[1:] if argv is None else list(argv))
    _setup_logging(_log_level(argv))
    try:
        rc = VPhoneModalCLI.main(argv=argv, _noexit=True)
    except Exception as ex:
        print(f'ERROR: {ex}', file=sys.stderr)
        log.error('Unhandled vphone error: {}', ex)
        sys.exit(2)
    if '-h' in argv or '--help' in argv or not isinstance(rc, int):
        sys.exit(0)
    sys.exit(rc)


def _config_opt(argv: list[str]) -> str | None:
    """Value of ``--config PATH`` or ``--config=PATH`` if present."""
    for idx, item in enumerate(argv):
        if item.startswith('--config='):
            return item.split('=', 1)[1]
        if item == '--config' and idx + 1 < len(argv):
            return argv[idx + 1]
    return None


def _log_level(argv: list[str]) -> str:
    """-v flags win; otherwise the config's verbosity (default 1) applies."""
    verbosity = _count_verbose(argv)
    if verbosity == 0:
        try:
            verbosity = _load_cfg(_config_opt(argv)).verbosity
        except Exception:
            # Broken configs are reported by the command itself.
            verbosity = 1
    return {0: 'WARNING', 1: 'INFO'}.get(verbosity, 'DEBUG')


def _setup_logging(level: str) -> None:
    logger.remove()
    colorize = sys.stderr.isatty() and os.getenv('NO_COLOR') is None
    # Launcher progress is printed on stdout; keep log lines short beside it.
    fmt = '<level>{level: <8}</level> | <level>{message}</level>'
    if level == 'DEBUG':
        fmt = (
            '<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | '
            '<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>'
        )
    logger.add(sys.stderr, level=level, colorize=colorize, format=fmt)
    log.debug('Logging configured at {} (colorize={})', level, colorize)


def _normalize_argv(argv: list[str]) -> list[str]:
    """Default to `up` and accept a few alternate command spellings."""
    if not argv:
        return ['up']
    if argv[0] in {'launch', 'run', 'start'}:
        return ['up', *argv[1:]]
    if argv[0].startswith('-') and argv[0] not in {'-h', '--help'}:
        return ['up', *argv]
    return argv


def _count_verbose(argv: list[str]) -> int:
    short = [a[1:] for a in argv if a.startswith('-') and not a.startswith('--')]
    return argv.count('--verbose') + sum(
        len(s) for s in short if s and set(s) == {'v'}
    )
