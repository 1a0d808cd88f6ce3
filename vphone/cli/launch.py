from __future__ import annotations

import scriptconfig as scfg

from ..archive import prepare_project
from ..errors import VPhoneError
from ..launcher import launch, report_error
from ..util import CmdError
from ._common import _BaseCommand, _load_cfg_with_path, log


class UpCLI(_BaseCommand):
    """Extract if needed, boot the VM, start tunnels, and wait for Ctrl+C."""

    dry_run = scfg.Value(
        False, isflag=True, help='Print actions without running.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, _ = _load_cfg_with_path(args.config, base_dir=args.base_dir)
        log.debug('Launching from base_dir={}', cfg.base_dir)
        return launch(cfg, dry_run=bool(args.dry_run))


class ExtractCLI(_BaseCommand):
    """Merge split parts and extract the project directory only."""

    dry_run = scfg.Value(
        False, isflag=True, help='Print actions without running.'
    )

    @classmethod
    def main(cls, argv=True, **kwargs):
        args = cls.cli(argv=argv, data=kwargs)
        cfg, _ = _load_cfg_with_path(args.config, base_dir=args.base_dir)
        try:
            result = prepare_project(cfg, dry_run=bool(args.dry_run))
        except (VPhoneError, CmdError) as ex:
            report_error(ex)
            return 1
        log.debug('Prepare result: {}', result.as_dict())
        return 0
