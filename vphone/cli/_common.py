from __future__ import annotations

from pathlib import Path

import scriptconfig as scfg
from loguru import logger

from ..config import VPhoneConfig, load, resolve_config_path

log = logger


class _BaseCommand(scfg.DataConfig):
    """Base options shared by all commands."""

    config = scfg.Value(
        None,
        help='Path to config TOML (default: .vphone.toml, then the user config).',
    )
    verbose = scfg.Value(
        0,
        short_alias=['v'],
        isflag='counter',
        help='Increase verbosity (-v, -vv).',
    )
    base_dir = scfg.Value(
        None,
        help='Directory holding the archive and project (overrides paths.base_dir).',
    )


def _load_cfg_with_path(
    config_opt: str | None, *, base_dir: str | None = None
) -> tuple[VPhoneConfig, Path | None]:
    path = resolve_config_path(config_opt)
    if config_opt is not None and path is not None and not path.exists():
        raise FileNotFoundError(
            f'Config not found: {path}. '
            f'Run: vphone-aio config init --config {path}'
        )
    cfg = load(path) if path is not None else VPhoneConfig()
    if base_dir:
        cfg.paths.base_dir = str(base_dir)
    log.debug('Resolved config from {}', path or '(built-in defaults)')
    return cfg.expanded_paths(), path


def _load_cfg(config_opt: str | None) -> VPhoneConfig:
    cfg, _ = _load_cfg_with_path(config_opt)
    return cfg
