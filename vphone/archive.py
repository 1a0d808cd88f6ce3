"""Merge split archive parts and unpack the VM project directory."""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger

from .config import VPhoneConfig
from .errors import MissingArchiveError, MissingPrerequisiteError
from .host import describe_missing, extract_commands
from .results import PrepareResult
from .util import human_size, run_pipeline, shell_join, which

log = logger


def find_parts(cfg: VPhoneConfig) -> list[Path]:
    """Split parts next to the archive, in lexicographic file name order."""
    base = cfg.base_dir
    prefix = cfg.paths.archive_name + cfg.archive.part_suffix
    if not base.is_dir():
        return []
    parts = [
        p for p in base.iterdir() if p.name.startswith(prefix) and p.is_file()
    ]
    return sorted(parts, key=lambda p: p.name)


def merge_parts(parts: list[Path], dest: Path) -> Path:
    log.debug('Merging {} parts into {}', len(parts), dest)
    with dest.open('wb') as out:
        for part in parts:
            with part.open('rb') as src:
                shutil.copyfileobj(src, out)
    return dest


def extract_archive(cfg: VPhoneConfig, archive: Path) -> None:
    producer = [cfg.archive.decompressor, '-dc', str(archive)]
    consumer = ['tar', 'xf', '-', '-C', str(cfg.base_dir)]
    run_pipeline(producer, consumer)


def _should_remove(mode: str, merged: bool) -> bool:
    if mode == 'never':
        return False
    if mode == 'merged':
        return merged
    return True


def prepare_project(
    cfg: VPhoneConfig, *, dry_run: bool = False
) -> PrepareResult:
    """Ensure the project directory exists, extracting the archive if needed.

    A present project directory short-circuits everything, so repeated calls
    never touch the filesystem. Otherwise the archive (merged from its split
    parts when absent) is unpacked into the base directory and then removed
    according to ``archive.cleanup``. A failed extraction leaves whatever was
    partially unpacked in place.
    """
    project = cfg.project_dir
    archive = cfg.archive_path
    result = PrepareResult(project_dir=str(project))
    if project.is_dir():
        print(f'[1/5] {project.name}/ already exists, skipping merge & extraction.')
        result.skipped = True
        return result

    missing = [c for c in extract_commands(cfg) if which(c) is None]
    if missing:
        raise MissingPrerequisiteError([describe_missing(c) for c in missing])

    merged = False
    if not archive.is_file():
        parts = find_parts(cfg)
        if not parts:
            raise MissingArchiveError(
                f'No {archive.name} or split parts found in {cfg.base_dir}. '
                f'Make sure {archive.name}{cfg.archive.part_suffix}* files '
                'are in the base directory.'
            )
        print(f'[1/5] Merging {len(parts)} split parts into {archive.name} ...')
        result.merged_parts = [p.name for p in parts]
        if dry_run:
            log.info(
                'DRYRUN: cat {} > {}', ' '.join(result.merged_parts), archive
            )
        else:
            merge_parts(parts, archive)
            print(f'       Done. ({human_size(archive.stat().st_size)})')
        merged = True
    else:
        print(f'[1/5] {archive.name} already exists, skipping merge.')
    print('')
    print(f'[2/5] Extracting {archive.name} ...')

    if dry_run:
        log.info(
            'DRYRUN: {} -dc {} | tar xf - -C {}',
            cfg.archive.decompressor,
            shell_join([str(archive)]),
            cfg.base_dir,
        )
        return result

    extract_archive(cfg, archive)
    print('       Done.')
    if _should_remove(cfg.archive.cleanup, merged):
        archive.unlink(missing_ok=True)
        result.archive_removed = True
        print('       Cleaned up archive to save space.')
    else:
        log.info(
            'Keeping archive {} (archive.cleanup={})',
            archive,
            cfg.archive.cleanup,
        )
    return result
