"""Passwordless login self-test."""

import subprocess
from pathlib import Path

from keyhop.config import DEFAULT_CONNECT_TIMEOUT

TROUBLESHOOTING_HINTS = [
    'Remote server allows key-based authentication',
    '~/.ssh/authorized_keys has correct permissions (600)',
    '~/.ssh directory has correct permissions (700)',
    'SELinux/AppArmor is not blocking SSH key authentication',
]


def build_probe_command(key_path: Path, target: str, port: int,
                        timeout: int = DEFAULT_CONNECT_TIMEOUT) -> list[str]:
    return [
        'ssh',
        '-o', 'BatchMode=yes',  # never fall back to a password prompt
        '-o', f'ConnectTimeout={timeout}',
        '-o', 'StrictHostKeyChecking=no',
        '-o', 'IdentitiesOnly=yes',
        '-i', str(key_path),
        '-p', str(port),
        target,
        "echo 'SSH connection successful'",
    ]


def verify_connection(key_path: Path, target: str, port: int,
                      timeout: int = DEFAULT_CONNECT_TIMEOUT) -> bool:
    """Return True if a non-interactive session with key_path succeeds."""
    try:
        result = subprocess.run(
            build_probe_command(key_path, target, port, timeout),
            capture_output=True, text=True, check=False,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0
