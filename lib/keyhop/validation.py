"""Validation of interactively supplied connection parameters."""

import re
from dataclasses import dataclass
from pathlib import Path

KEY_TYPES = ('ed25519', 'rsa', 'ecdsa')
DEFAULT_KEY_TYPE = 'ed25519'
DEFAULT_PORT = 22

_LABEL = r'[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?'
HOSTNAME_RE = re.compile(rf'^{_LABEL}(?:\.{_LABEL})*$')
IPV4_RE = re.compile(r'^[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}$')
USERNAME_RE = re.compile(r'^[a-z_][a-z0-9_-]*$')
PORT_RE = re.compile(r'^[0-9]+$')
ALIAS_FORBIDDEN = set('/\\*?!,#"')


@dataclass(frozen=True)
class SessionParams:
    """Connection parameters accepted for a single run."""
    hostname: str
    username: str
    port: int
    key_type: str
    alias: str

    @property
    def target(self) -> str:
        return f'{self.username}@{self.hostname}'

    def key_path(self, ssh_dir: Path) -> Path:
        """Private key location: <ssh_dir>/id_<type>_<alias>."""
        return ssh_dir / f'id_{self.key_type}_{self.alias}'


def is_valid_hostname(hostname: str) -> bool:
    """Check for a dotted-label DNS name or a dotted-quad address."""
    if not hostname or len(hostname) > 253:
        return False
    return bool(HOSTNAME_RE.match(hostname) or IPV4_RE.match(hostname))


def is_valid_username(username: str) -> bool:
    return bool(username) and bool(USERNAME_RE.match(username))


def is_valid_port(port: str) -> bool:
    if not PORT_RE.match(port):
        return False
    return 1 <= int(port) <= 65535


def validate_hostname(hostname: str) -> str:
    hostname = hostname.strip()
    if not is_valid_hostname(hostname):
        raise ValueError(f"Invalid hostname/IP address: '{hostname}'")
    return hostname


def validate_username(username: str) -> str:
    username = username.strip()
    if not is_valid_username(username):
        raise ValueError(f"Invalid username: '{username}'")
    return username


def validate_port(port: str) -> int:
    """Parse a port answer. Blank means the default port."""
    port = port.strip() or str(DEFAULT_PORT)
    if not is_valid_port(port):
        raise ValueError(f"Invalid port number: '{port}' (expected 1-65535)")
    return int(port)


def validate_key_type(key_type: str) -> str:
    key_type = key_type.strip().lower() or DEFAULT_KEY_TYPE
    if key_type not in KEY_TYPES:
        raise ValueError(
            f"Unsupported key type: '{key_type}' (choose from {', '.join(KEY_TYPES)})"
        )
    return key_type


def validate_alias(alias: str, hostname: str) -> str:
    """Blank alias falls back to the hostname.

    The alias ends up in a file name and on a ``Host`` line, so whitespace,
    path separators and ssh_config pattern or quoting characters are rejected.
    """
    alias = alias.strip() or hostname
    if any(ch.isspace() or ch in ALIAS_FORBIDDEN for ch in alias):
        raise ValueError(f"Invalid alias: '{alias}'")
    return alias
