"""Parse ~/.keyhop/config.yml and build the per-run settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from keyhop.deploy import DeployStrategy

KNOWN_FIELDS = {'ssh_dir', 'log_dir', 'host_key_checking', 'connect_timeout'}
HOST_KEY_POLICIES = ('no', 'accept-new', 'yes')
DEFAULT_CONNECT_TIMEOUT = 10


@dataclass
class KeyhopConfig:
    """User configuration from config.yml. Every field is optional."""
    ssh_dir: Optional[str] = None
    log_dir: Optional[str] = None
    host_key_checking: str = 'no'
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT

    @classmethod
    def load(cls, config_dir: Path) -> 'KeyhopConfig':
        """Load config.yml from config_dir. Returns defaults if not present."""
        config_file = config_dir / 'config.yml'
        if not config_file.exists():
            return cls()

        with open(config_file, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"{config_file} must contain a mapping")

        unknown = set(data.keys()) - KNOWN_FIELDS
        if unknown:
            raise ValueError(f"Unknown config.yml field(s): {', '.join(sorted(unknown))}")

        # YAML reads a bare `no` as False
        policy = data.get('host_key_checking', 'no')
        if policy is False:
            policy = 'no'
        elif policy is True:
            policy = 'yes'
        if policy not in HOST_KEY_POLICIES:
            raise ValueError(
                f"host_key_checking must be one of {', '.join(HOST_KEY_POLICIES)}, got {policy!r}"
            )

        timeout = data.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout < 1:
            raise ValueError(f"connect_timeout must be a positive integer, got {timeout!r}")

        for field in ('ssh_dir', 'log_dir'):
            value = data.get(field)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"{field} must be a path string, got {value!r}")

        return cls(
            ssh_dir=data.get('ssh_dir'),
            log_dir=data.get('log_dir'),
            host_key_checking=policy,
            connect_timeout=timeout,
        )


@dataclass(frozen=True)
class RunSettings:
    """Immutable configuration for one setup run, built once at startup."""
    ssh_dir: Path
    log_file: Path
    strategy: DeployStrategy
    host_key_checking: str = 'no'
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT

    @classmethod
    def build(cls, config: KeyhopConfig, home: Path, log_file: Path,
              strategy: DeployStrategy) -> 'RunSettings':
        ssh_dir = Path(config.ssh_dir).expanduser() if config.ssh_dir else home / '.ssh'
        return cls(
            ssh_dir=ssh_dir,
            log_file=log_file,
            strategy=strategy,
            host_key_checking=config.host_key_checking,
            connect_timeout=config.connect_timeout,
        )


def default_log_dir(config: KeyhopConfig, home: Path) -> Path:
    if config.log_dir:
        return Path(config.log_dir).expanduser()
    return home / '.keyhop' / 'logs'
