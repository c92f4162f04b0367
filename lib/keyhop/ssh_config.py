"""Host alias registration in the SSH client config file."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from keyhop.validation import SessionParams

CONFIG_MODE = 0o600


def config_path(ssh_dir: Path) -> Path:
    return ssh_dir / 'config'


def _host_patterns(line: str) -> list[str]:
    """Patterns declared by a `Host` line, or [] for any other line."""
    stripped = line.strip()
    if not stripped or stripped.startswith('#'):
        return []
    parts = stripped.replace('=', ' ', 1).split(None, 1)
    if len(parts) < 2 or parts[0].lower() != 'host':
        return []
    return [p.strip('"') for p in parts[1].split()]


def has_alias(config_file: Path, alias: str) -> bool:
    """Check if any Host block in config_file already declares alias."""
    if not config_file.exists():
        return False
    # Foreign comments may use another encoding; only ASCII keywords matter
    with open(config_file, encoding='utf-8', errors='replace') as f:
        return any(alias in _host_patterns(line) for line in f)


def render_host_block(params: SessionParams, key_path: Path,
                      host_key_checking: str = 'no',
                      now: Optional[datetime] = None) -> str:
    """Render the config block for params, preceded by a generation comment.

    With host_key_checking 'no' the block also sends known hosts to
    /dev/null, so the remote host identity is never recorded or checked.
    """
    now = now or datetime.now()
    lines = [
        '',
        f'# Added by keyhop on {now:%a %b %d %H:%M:%S %Y}',
        f'Host {params.alias}',
        f'    HostName {params.hostname}',
        f'    User {params.username}',
        f'    Port {params.port}',
        f'    IdentityFile {key_path}',
        '    IdentitiesOnly yes',
        f'    StrictHostKeyChecking {host_key_checking}',
    ]
    if host_key_checking == 'no':
        lines.append('    UserKnownHostsFile /dev/null')
    lines.append('')
    return '\n'.join(lines) + '\n'


def register_alias(ssh_dir: Path, params: SessionParams, key_path: Path,
                   host_key_checking: str = 'no') -> bool:
    """Append a Host block for params.alias unless one already exists.

    Returns:
        True if a block was written, False if the alias was already present
    """
    config_file = config_path(ssh_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.touch(exist_ok=True)
    config_file.chmod(CONFIG_MODE)

    if has_alias(config_file, params.alias):
        return False

    block = render_host_block(params, key_path, host_key_checking)
    with open(config_file, 'a', encoding='utf-8') as f:
        f.write(block)
    return True
