"""Probe and rendering logic for launcher status reporting."""

from __future__ import annotations

from dataclasses import dataclass

from .archive import find_parts
from .config import VPhoneConfig
from .host import amfi_bypass_enabled, check_commands, describe_missing, host_is_macos
from .readiness import port_open
from .runtime import LOCALHOST


@dataclass(frozen=True)
class ProbeOutcome:
    ok: bool | None
    detail: str


def status_line(ok: bool | None, label: str, detail: str = '') -> str:
    icon = '✅' if ok is True else ('➖' if ok is None else '❌')
    suffix = f' - {detail}' if detail else ''
    return f'{icon} {label}{suffix}'


def probe_host_tools(cfg: VPhoneConfig) -> ProbeOutcome:
    missing, missing_extract = check_commands(cfg)
    if missing:
        return ProbeOutcome(
            False, 'missing: ' + ', '.join(describe_missing(c) for c in missing)
        )
    if missing_extract:
        return ProbeOutcome(
            None,
            'extraction tools missing: '
            + ', '.join(describe_missing(c) for c in missing_extract),
        )
    return ProbeOutcome(True, 'required tools present')


def probe_project(cfg: VPhoneConfig) -> ProbeOutcome:
    project = cfg.project_dir
    if project.is_dir():
        return ProbeOutcome(True, str(project))
    if cfg.archive_path.is_file():
        return ProbeOutcome(None, f'not extracted yet; archive at {cfg.archive_path}')
    parts = find_parts(cfg)
    if parts:
        return ProbeOutcome(
            None, f'not extracted yet; {len(parts)} split parts in {cfg.base_dir}'
        )
    return ProbeOutcome(False, f'no project, archive or split parts in {cfg.base_dir}')


def probe_port(host: str, port: int, *, timeout_s: float = 2) -> ProbeOutcome:
    if port_open(host, port, timeout_s=timeout_s):
        return ProbeOutcome(True, f'{host}:{port} reachable')
    return ProbeOutcome(False, f'{host}:{port} not reachable')


def render_status(cfg: VPhoneConfig) -> str:
    r = cfg.readiness
    t = cfg.tunnels
    timeout = r.connect_timeout_s
    rows = [
        ('Host tools', probe_host_tools(cfg)),
        ('Project', probe_project(cfg)),
        ('VM SSH', probe_port(r.host, r.port, timeout_s=timeout)),
        ('SSH tunnel', probe_port(LOCALHOST, t.ssh_local_port, timeout_s=timeout)),
        ('VNC tunnel', probe_port(LOCALHOST, t.vnc_local_port, timeout_s=timeout)),
    ]
    return '\n'.join(status_line(p.ok, label, p.detail) for label, p in rows)


def render_doctor(cfg: VPhoneConfig) -> tuple[str, bool]:
    """Doctor report text and whether all required tools are present."""
    missing, missing_extract = check_commands(cfg)
    lines = []
    if missing:
        lines.append(
            status_line(
                False,
                'Missing required commands',
                ', '.join(describe_missing(c) for c in missing),
            )
        )
    else:
        lines.append(status_line(True, 'Required host commands are present'))
    if missing_extract:
        lines.append(
            status_line(
                None,
                'Missing extraction commands (needed only before first launch)',
                ', '.join(describe_missing(c) for c in missing_extract),
            )
        )
    if not host_is_macos():
        lines.append(
            status_line(
                None, 'Host is not macOS', 'the VM boot script expects macOS'
            )
        )
    amfi = amfi_bypass_enabled()
    if amfi is not None:
        lines.append(
            status_line(
                True if amfi else None,
                'AMFI bypass boot-arg',
                'amfi_get_out_of_my_way=1' if amfi else 'not set in nvram boot-args',
            )
        )
    return '\n'.join(lines), not missing
