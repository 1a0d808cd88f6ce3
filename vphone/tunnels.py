"""Start the SSH and VNC port-forwarding tunnels."""

from __future__ import annotations

import subprocess
from typing import Optional

from loguru import logger

from .config import VPhoneConfig
from .lifecycle import LifecycleController, ProcessHandle
from .runtime import tunnel_cmd
from .util import shell_join

log = logger


def start_tunnel(
    cfg: VPhoneConfig,
    role: str,
    local_port: int,
    device_port: int,
    *,
    popen=subprocess.Popen,
) -> Optional[ProcessHandle]:
    cmd = tunnel_cmd(cfg, local_port, device_port)
    log.debug('Starting {}: {}', role, shell_join(cmd))
    try:
        proc = popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as ex:
        # Tunnels are best effort; the launch continues without this one.
        log.warning('Failed to start {} ({}): {}', role, shell_join(cmd), ex)
        return None
    return ProcessHandle(role, proc)


def start_tunnels(
    cfg: VPhoneConfig,
    ctl: LifecycleController,
    *,
    popen=subprocess.Popen,
) -> tuple[Optional[ProcessHandle], Optional[ProcessHandle]]:
    """Start the SSH then the VNC tunnel, each tracked as soon as it exists."""
    t = cfg.tunnels
    ssh = ctl.spawn_tracked(
        lambda: start_tunnel(
            cfg, 'ssh_tunnel', t.ssh_local_port, t.ssh_device_port, popen=popen
        )
    )
    print(f'       SSH : localhost:{t.ssh_local_port} -> device:{t.ssh_device_port}')
    vnc = ctl.spawn_tracked(
        lambda: start_tunnel(
            cfg, 'vnc_tunnel', t.vnc_local_port, t.vnc_device_port, popen=popen
        )
    )
    print(f'       VNC : localhost:{t.vnc_local_port}  -> device:{t.vnc_device_port}')
    return ssh, vnc
