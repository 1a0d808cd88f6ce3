from __future__ import annotations

from ..status import render_doctor, render_status
from ._common import _BaseCommand, _load_cfg_with_path


class DoctorCLI(_BaseCommand):
    """Check host prerequisites and list missing required tools."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, _ = _load_cfg_with_path(args.config, base_dir=args.base_dir)
        text, ok = render_doctor(cfg)
        print(text)
        return 0 if ok else 1


class StatusCLI(_BaseCommand):
    """Report project extraction, VM reachability, and tunnel state."""

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, path = _load_cfg_with_path(args.config, base_dir=args.base_dir)
        print(render_status(cfg))
        print('')
        print(f'Config: {path or "(built-in defaults)"}')
        return 0
