"""SSH key pair generation for passwordless login."""

import getpass
import shutil
import socket
import subprocess
from datetime import date
from pathlib import Path
from typing import Optional

import click

from keyhop.runlog import RunLog

# Extra ssh-keygen arguments per key type; ed25519 has a fixed size
KEY_TYPE_ARGS = {
    'ed25519': [],
    'rsa': ['-b', '4096'],
    'ecdsa': ['-b', '521'],
}

PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


def public_key_path(key_path: Path) -> Path:
    return Path(f"{key_path}.pub")


def backup_path(path: Path) -> Path:
    return Path(f"{path}.bak")


def build_key_comment(alias: str, today: Optional[date] = None) -> str:
    """Key label in the form <user>@<local-host>_<alias>_<YYYYMMDD>."""
    today = today or date.today()
    return f'{getpass.getuser()}@{socket.gethostname()}_{alias}_{today:%Y%m%d}'


def prepare_ssh_dir(ssh_dir: Path) -> None:
    """Create the SSH directory if needed and restrict it to the owner."""
    ssh_dir.mkdir(parents=True, exist_ok=True)
    ssh_dir.chmod(0o700)


def backup_key_pair(key_path: Path) -> None:
    """Copy the existing pair to .bak siblings and remove the originals."""
    pub_path = public_key_path(key_path)
    shutil.copy2(key_path, backup_path(key_path))
    if pub_path.exists():
        shutil.copy2(pub_path, backup_path(pub_path))
        pub_path.unlink()
    key_path.unlink()


def restore_key_pair(key_path: Path) -> None:
    """Move the .bak copies made by backup_key_pair back into place."""
    for path in (key_path, public_key_path(key_path)):
        backup = backup_path(path)
        if backup.exists():
            backup.replace(path)


def generate_key_pair(key_path: Path, key_type: str, comment: str) -> None:
    """Generate an unencrypted key pair with ssh-keygen.

    Args:
        key_path: Path where private key will be saved (public key gets .pub suffix)
        key_type: One of 'ed25519', 'rsa', 'ecdsa'
        comment: Label embedded in the public key

    Raises:
        RuntimeError: If the key type is unknown or ssh-keygen fails
    """
    if key_type not in KEY_TYPE_ARGS:
        raise RuntimeError(f"Unsupported key type: {key_type}")

    key_path.parent.mkdir(parents=True, exist_ok=True)

    cmd = ['ssh-keygen', '-t', key_type, *KEY_TYPE_ARGS[key_type],
           '-C', comment,
           '-f', str(key_path),
           '-N', '']  # No passphrase
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or '').strip() or f'exit code {e.returncode}'
        raise RuntimeError(f"Failed to generate SSH key pair: {detail}") from e
    except FileNotFoundError:
        raise RuntimeError("ssh-keygen command not found.") from None

    if not key_path.exists():
        raise RuntimeError(f"Failed to generate SSH key pair: {key_path} was not created")

    key_path.chmod(PRIVATE_KEY_MODE)
    public_key_path(key_path).chmod(PUBLIC_KEY_MODE)


def provision_key(key_path: Path, key_type: str, alias: str, log: RunLog) -> bool:
    """Make sure a usable key pair exists at key_path.

    An existing pair is reused unless the user agrees to overwrite it, in
    which case it is backed up first.

    Returns:
        True if a new pair was generated, False if the existing one is reused
    """
    log.info(f'Generating {key_type} SSH key pair...')

    if key_path.exists():
        log.warning(f'Key file already exists: {key_path}')
        if not click.confirm('Do you want to overwrite it?', default=False):
            log.info('Using existing key file')
            return False
        log.warning(f"Backing up existing key to {backup_path(key_path)}")
        backup_key_pair(key_path)
        try:
            generate_key_pair(key_path, key_type, build_key_comment(alias))
        except (RuntimeError, OSError):
            restore_key_pair(key_path)
            log.warning(f"Restored previous key pair at {key_path}")
            raise
    else:
        generate_key_pair(key_path, key_type, build_key_comment(alias))

    log.success('SSH key pair generated successfully')
    log.info(f'Private key: {key_path}')
    log.info(f'Public key: {public_key_path(key_path)}')
    return True


def get_public_key(key_path: Path) -> str:
    """Read public key content.

    Args:
        key_path: Path to private key (will append .pub)

    Returns:
        Public key content as string
    """
    return public_key_path(key_path).read_text().strip()
