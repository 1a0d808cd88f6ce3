"""End-to-end launch scenarios with fake processes and an injected clock."""

from __future__ import annotations

from pathlib import Path

import pytest

from vphone.errors import ShutdownRequested
from vphone.launcher import launch
from vphone.lifecycle import LifecycleController, TERMINATED
from vphone.util import CmdError, CmdResult


class RecordingController(LifecycleController):
    def __init__(self, sleeper):
        super().__init__(grace_s=2, sleep=sleeper, signals=())
        self.tracked = []

    def track(self, handle):
        if handle is not None:
            self.tracked.append((handle.role, handle.pid))
        super().track(handle)


@pytest.fixture
def tools_present(monkeypatch):
    monkeypatch.setattr('vphone.launcher.check_commands', lambda cfg: ([], []))
    monkeypatch.setattr('vphone.archive.which', lambda cmd: f'/usr/bin/{cmd}')


def _make_project(base: Path) -> Path:
    project = base / 'vphone-cli'
    project.mkdir()
    (project / 'boot.sh').write_text('#!/bin/sh\n')
    return project


def _launch(cfg, ctl, fake_popen, sleeper, probe):
    return launch(cfg, controller=ctl, popen=fake_popen, probe=probe, sleep=sleeper)


def test_scenario_existing_project_reaches_ready(
    cfg, tmp_path, tools_present, fake_popen, sleeper, capsys
) -> None:
    project = _make_project(tmp_path)
    ctl = RecordingController(sleeper)
    attempts = []

    def probe(host, port, *, timeout_s):
        attempts.append(1)
        return len(attempts) >= 3

    rc = _launch(cfg, ctl, fake_popen, sleeper, probe)
    assert rc == 0
    assert fake_popen.commands == [
        ['./boot.sh'],
        ['iproxy', '22222', '22222'],
        ['iproxy', '5901', '5901'],
    ]
    boot, ssh, vnc = fake_popen.procs
    assert boot.kwargs['cwd'] == str(project)
    assert 'stdout' in ssh.kwargs and 'stderr' in vnc.kwargs
    assert [role for role, _ in ctl.tracked] == ['boot', 'ssh_tunnel', 'vnc_tunnel']
    assert len({pid for _, pid in ctl.tracked}) == 3
    # Two 5s polls before the port answered, then the 2s grace pause.
    assert sleeper.calls == [5, 5, 2]
    assert ssh.signals == ['TERM'] and vnc.signals == ['TERM']
    assert ctl.state == TERMINATED
    out = capsys.readouterr().out
    assert 'already exists, skipping merge & extraction' in out
    assert 'VM is up!' in out
    assert 'vnc://127.0.0.1:5901' in out
    assert 'ssh -p 22222 root@127.0.0.1' in out


def test_scenario_missing_archive_exits_1_without_children(
    cfg, tools_present, fake_popen, sleeper, capsys
) -> None:
    ctl = RecordingController(sleeper)
    rc = _launch(cfg, ctl, fake_popen, sleeper, lambda *a, **k: True)
    assert rc == 1
    assert fake_popen.procs == []
    assert ctl.tracked == []
    assert 'No vphone-cli.tar.zst or split parts found' in capsys.readouterr().err


def test_scenario_boot_exits_during_polling(
    cfg, tmp_path, tools_present, fake_popen, sleeper, capsys
) -> None:
    _make_project(tmp_path)
    fake_popen.behaviors['boot.sh'] = {'exit_after_polls': 2, 'exit_code': 3}
    ctl = RecordingController(sleeper)
    rc = _launch(cfg, ctl, fake_popen, sleeper, lambda *a, **k: False)
    assert rc == 1
    assert fake_popen.commands == [['./boot.sh']]
    assert 'VM process exited unexpectedly' in capsys.readouterr().err


def test_scenario_timeout_still_starts_tunnels(
    cfg, tmp_path, tools_present, fake_popen, sleeper, capsys
) -> None:
    _make_project(tmp_path)
    fake_popen.behaviors['boot.sh'] = {'exit_code': 7}
    ctl = RecordingController(sleeper)
    rc = _launch(cfg, ctl, fake_popen, sleeper, lambda *a, **k: False)
    assert rc == 7
    assert len(fake_popen.procs) == 3
    assert sum(sleeper.calls[:-1]) == cfg.readiness.max_wait_s
    out = capsys.readouterr().out
    assert 'WARNING: Timed out, starting tunnels anyway.' in out
    assert 'vPhone is READY!' in out


def test_missing_prerequisites_reported_as_list(
    cfg, monkeypatch, fake_popen, sleeper, capsys
) -> None:
    monkeypatch.setattr(
        'vphone.launcher.check_commands', lambda cfg: (['swift', 'iproxy'], [])
    )
    rc = _launch(cfg, RecordingController(sleeper), fake_popen, sleeper, None)
    assert rc == 1
    assert fake_popen.procs == []
    err = capsys.readouterr().err
    assert '  - swift (Xcode)' in err
    assert '  - iproxy (brew install libimobiledevice)' in err


def test_signal_during_wait_shuts_down_cleanly(
    cfg, tmp_path, tools_present, fake_popen, sleeper
) -> None:
    _make_project(tmp_path)
    fake_popen.behaviors['boot.sh'] = {'wait_raises': ShutdownRequested(2)}
    ctl = RecordingController(sleeper)
    rc = _launch(cfg, ctl, fake_popen, sleeper, lambda *a, **k: True)
    assert rc == 0
    assert all(p.signals == ['TERM'] for p in fake_popen.procs)
    assert ctl.state == TERMINATED


def test_missing_boot_script_is_fatal(
    cfg, tmp_path, tools_present, sleeper, capsys
) -> None:
    _make_project(tmp_path)

    def popen(cmd, **kwargs):
        raise FileNotFoundError(2, 'No such file or directory', cmd[0])

    rc = launch(
        cfg, controller=RecordingController(sleeper), popen=popen, sleep=sleeper
    )
    assert rc == 1
    assert 'Could not start ./boot.sh' in capsys.readouterr().err


def test_dry_run_spawns_nothing(
    cfg, tmp_path, tools_present, fake_popen, sleeper
) -> None:
    (tmp_path / 'vphone-cli.tar.zst').write_bytes(b'x')
    rc = launch(
        cfg,
        dry_run=True,
        controller=RecordingController(sleeper),
        popen=fake_popen,
        sleep=sleeper,
    )
    assert rc == 0
    assert fake_popen.procs == []
    assert (tmp_path / 'vphone-cli.tar.zst').exists()


def test_signal_between_tunnel_spawns_still_stops_first_tunnel(
    cfg, tmp_path, tools_present, fake_popen, sleeper
) -> None:
    _make_project(tmp_path)

    def popen(cmd, **kwargs):
        if cmd[-1] == '5901':
            raise ShutdownRequested(2)
        return fake_popen(cmd, **kwargs)

    ctl = RecordingController(sleeper)
    rc = launch(
        cfg, controller=ctl, popen=popen, probe=lambda *a, **k: True, sleep=sleeper
    )
    assert rc == 0
    boot, ssh = fake_popen.procs
    assert [role for role, _ in ctl.tracked] == ['boot', 'ssh_tunnel']
    assert boot.signals == ['TERM']
    assert ssh.signals == ['TERM']
    assert ctl.state == TERMINATED


def test_extraction_failure_exits_1_and_keeps_archive(
    cfg, tmp_path, tools_present, monkeypatch, fake_popen, sleeper, capsys
) -> None:
    archive = tmp_path / 'vphone-cli.tar.zst'
    archive.write_bytes(b'broken')

    def fail_extract(cfg_, path):
        result = CmdResult(1, '', 'zstd: corrupted block')
        raise CmdError('zstd -dc | tar xf -', result)

    monkeypatch.setattr('vphone.archive.extract_archive', fail_extract)
    rc = _launch(cfg, RecordingController(sleeper), fake_popen, sleeper, None)
    assert rc == 1
    assert fake_popen.procs == []
    assert archive.exists()
    assert 'zstd: corrupted block' in capsys.readouterr().err


def test_tunnel_spawn_failure_is_not_fatal(
    cfg, tmp_path, tools_present, fake_popen, sleeper, capsys
) -> None:
    _make_project(tmp_path)
    fake_popen.behaviors['boot.sh'] = {'exit_code': 4}

    def popen(cmd, **kwargs):
        if cmd[0] == 'iproxy':
            raise FileNotFoundError(2, 'No such file or directory', 'iproxy')
        return fake_popen(cmd, **kwargs)

    ctl = RecordingController(sleeper)
    rc = launch(
        cfg, controller=ctl, popen=popen, probe=lambda *a, **k: True, sleep=sleeper
    )
    assert rc == 4
    assert [role for role, _ in ctl.tracked] == ['boot']
    out = capsys.readouterr().out
    assert 'SSH : localhost:22222' in out
    assert 'vPhone is READY!' in out
