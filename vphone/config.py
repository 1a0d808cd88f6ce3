"""Launcher configuration dataclasses and their TOML persistence."""

from __future__ import annotations

import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path

import ubelt as ub

from .util import expand

DEFAULT_CONFIG_NAME = '.vphone.toml'
CLEANUP_MODES = ('always', 'merged', 'never')


@dataclass
class PathsConfig:
    base_dir: str = '.'
    archive_name: str = 'vphone-cli.tar.zst'
    project_name: str = 'vphone-cli'


@dataclass
class ArchiveConfig:
    part_suffix: str = '.part_'
    decompressor: str = 'zstd'
    # always: delete after extraction, even if the archive was user supplied.
    cleanup: str = 'always'


@dataclass
class BootConfig:
    script: str = './boot.sh'
    build_tool: str = 'swift'


@dataclass
class ReadinessConfig:
    host: str = '192.168.65.32'
    port: int = 22222
    max_wait_s: int = 180
    interval_s: int = 5
    connect_timeout_s: int = 2


@dataclass
class TunnelConfig:
    command: str = 'iproxy'
    ssh_local_port: int = 22222
    ssh_device_port: int = 22222
    vnc_local_port: int = 5901
    vnc_device_port: int = 5901
    ssh_user: str = 'root'


@dataclass
class ShutdownConfig:
    grace_s: int = 2


@dataclass
class VPhoneConfig:
    paths: PathsConfig = field(default_factory=PathsConfig)
    archive: ArchiveConfig = field(default_factory=ArchiveConfig)
    boot: BootConfig = field(default_factory=BootConfig)
    readiness: ReadinessConfig = field(default_factory=ReadinessConfig)
    tunnels: TunnelConfig = field(default_factory=TunnelConfig)
    shutdown: ShutdownConfig = field(default_factory=ShutdownConfig)
    verbosity: int = 1

    def expanded_paths(self) -> 'VPhoneConfig':
        self.paths.base_dir = expand(self.paths.base_dir)
        return self

    @property
    def base_dir(self) -> Path:
        return Path(expand(self.paths.base_dir)).resolve()

    @property
    def archive_path(self) -> Path:
        return self.base_dir / self.paths.archive_name

    @property
    def project_dir(self) -> Path:
        return self.base_dir / self.paths.project_name


SECTIONS = ('paths', 'archive', 'boot', 'readiness', 'tunnels', 'shutdown')


def _toml_escape(s: str) -> str:
    return s.replace('\\', '\\\\').replace('"', '\\"')


def dump_toml(cfg: VPhoneConfig) -> str:
    d = asdict(cfg)
    lines: list[str] = []
    for section, body in d.items():
        if isinstance(body, dict):
            lines.append(f'[{section}]')
            for k, v in body.items():
                if isinstance(v, bool):
                    lines.append(f"{k} = {'true' if v else 'false'}")
                elif isinstance(v, int):
                    lines.append(f'{k} = {v}')
                elif isinstance(v, list):
                    parts = [f'"{_toml_escape(str(item))}"' for item in v]
                    lines.append(f"{k} = [{', '.join(parts)}]")
                else:
                    lines.append(f'{k} = "{_toml_escape(str(v))}"')
            lines.append('')
        elif section == 'verbosity' and body != 1:
            lines.append(f'{section} = {body}')
            lines.append('')
    return '\n'.join(lines).rstrip() + '\n'


def _coerce(name: str, default, value):
    """Match ``value`` to the type of the field's default value."""
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ValueError(f'{name} must be true or false (got {value!r})')
    if isinstance(default, int):
        if isinstance(value, bool) or (
            isinstance(value, float) and not value.is_integer()
        ):
            raise ValueError(f'{name} must be an integer (got {value!r})')
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(
                f'{name} must be an integer (got {value!r})'
            ) from None
    if isinstance(default, str) and not isinstance(value, str):
        raise ValueError(f'{name} must be a string (got {value!r})')
    return value


def loads(text: str) -> VPhoneConfig:
    raw = tomllib.loads(text)
    cfg = VPhoneConfig()
    for section in SECTIONS:
        if section in raw and isinstance(raw[section], dict):
            obj = getattr(cfg, section)
            for k, v in raw[section].items():
                if hasattr(obj, k):
                    setattr(obj, k, _coerce(f'{section}.{k}', getattr(obj, k), v))
    if 'verbosity' in raw:
        cfg.verbosity = _coerce('verbosity', cfg.verbosity, raw['verbosity'])
    if cfg.archive.cleanup not in CLEANUP_MODES:
        raise ValueError(
            f'archive.cleanup must be one of: {", ".join(CLEANUP_MODES)} '
            f'(got {cfg.archive.cleanup!r})'
        )
    return cfg


def load(path: Path) -> VPhoneConfig:
    return loads(path.read_text(encoding='utf-8'))


def save(path: Path, cfg: VPhoneConfig) -> None:
    path.write_text(dump_toml(cfg), encoding='utf-8')


def user_config_path() -> Path:
    return Path(ub.Path.appdir('vphone', type='config').ensuredir()) / 'config.toml'


def resolve_config_path(config_opt: str | None) -> Path | None:
    """Pick the config file to use, or ``None`` to fall back to defaults."""
    if config_opt:
        return Path(config_opt).expanduser().resolve()
    local = Path(DEFAULT_CONFIG_NAME).resolve()
    if local.exists():
        return local
    user = user_config_path()
    if user.exists():
        return user
    return None
