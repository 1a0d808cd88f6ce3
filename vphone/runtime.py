"""Runtime helpers for constructing tunnel and client command arguments."""

from __future__ import annotations

from .config import VPhoneConfig

LOCALHOST = '127.0.0.1'


def tunnel_cmd(cfg: VPhoneConfig, local_port: int, device_port: int) -> list[str]:
    return [cfg.tunnels.command, str(local_port), str(device_port)]


def boot_cmd(cfg: VPhoneConfig) -> list[str]:
    return [cfg.boot.script]


def ssh_cmd(cfg: VPhoneConfig) -> list[str]:
    t = cfg.tunnels
    return ['ssh', '-p', str(t.ssh_local_port), f'{t.ssh_user}@{LOCALHOST}']


def vnc_url(cfg: VPhoneConfig) -> str:
    return f'vnc://{LOCALHOST}:{cfg.tunnels.vnc_local_port}'


def shell_ssh(cfg: VPhoneConfig) -> str:
    return ' '.join(ssh_cmd(cfg))
