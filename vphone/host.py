"""Host prerequisite checks for the launcher and its extraction step."""

from __future__ import annotations

import platform

from loguru import logger

from .config import VPhoneConfig
from .util import run_cmd, which

log = logger

INSTALL_HINTS = {
    'swift': 'Xcode',
    'iproxy': 'brew install libimobiledevice',
    'zstd': 'brew install zstd',
}


def describe_missing(cmd: str) -> str:
    hint = INSTALL_HINTS.get(cmd)
    return f'{cmd} ({hint})' if hint else cmd


def required_commands(cfg: VPhoneConfig) -> list[str]:
    return [cfg.boot.build_tool, cfg.tunnels.command]


def extract_commands(cfg: VPhoneConfig) -> list[str]:
    return [cfg.archive.decompressor, 'tar']


def check_commands(cfg: VPhoneConfig) -> tuple[list[str], list[str]]:
    """Return (missing required tools, missing extraction tools)."""
    missing = [c for c in required_commands(cfg) if which(c) is None]
    missing_extract = [c for c in extract_commands(cfg) if which(c) is None]
    return missing, missing_extract


def host_is_macos() -> bool:
    return platform.system() == 'Darwin'


def amfi_bypass_enabled() -> bool | None:
    """Best-effort check for ``amfi_get_out_of_my_way=1`` in boot-args.

    Returns None when the answer cannot be determined (no nvram, not macOS).
    """
    if not host_is_macos() or which('nvram') is None:
        return None
    res = run_cmd(['nvram', 'boot-args'], check=False, capture=True)
    if res.code != 0:
        log.debug('nvram boot-args unavailable: {}', res.stderr.strip())
        return None
    return 'amfi_get_out_of_my_way=1' in res.stdout
