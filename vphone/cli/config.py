from __future__ import annotations

import sys
from pathlib import Path

import scriptconfig as scfg

from ..config import (
    DEFAULT_CONFIG_NAME,
    VPhoneConfig,
    dump_toml,
    save,
    user_config_path,
)
from ..util import ensure_dir
from ._common import _BaseCommand, _load_cfg_with_path


class InitCLI(_BaseCommand):
    """Write a config file populated with the default settings."""

    force = scfg.Value(
        False, isflag=True, help='Overwrite an existing config file.'
    )
    user = scfg.Value(
        False,
        isflag=True,
        help='Write the per-user config instead of ./.vphone.toml.',
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        if args.config:
            path = Path(args.config).expanduser().resolve()
        elif args.user:
            path = user_config_path()
        else:
            path = Path(DEFAULT_CONFIG_NAME).resolve()
        if path.exists() and not args.force:
            print(f'Config already exists: {path}', file=sys.stderr)
            print('Use --force to overwrite it.', file=sys.stderr)
            return 2
        cfg = VPhoneConfig()
        if args.base_dir:
            cfg.paths.base_dir = str(args.base_dir)
        ensure_dir(path.parent)
        save(path, cfg)
        print(f'Wrote config: {path}')
        return 0


class ConfigShowCLI(_BaseCommand):
    """Show the resolved config."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, path = _load_cfg_with_path(args.config, base_dir=args.base_dir)
        print(f'# Config: {path or "(built-in defaults)"}')
        print(dump_toml(cfg), end='')
        return 0


class ConfigModalCLI(scfg.ModalCLI):
    """Config file management."""

    init = InitCLI
    show = ConfigShowCLI
