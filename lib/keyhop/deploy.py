"""Public key deployment to a remote authorized_keys list."""

import enum
import shlex
import shutil
import subprocess
from pathlib import Path

from keyhop.ssh_keys import get_public_key, public_key_path

REQUIRED_TOOLS = ('ssh', 'ssh-keygen')

REMOTE_INSTALL_TEMPLATE = (
    'mkdir -p ~/.ssh && chmod 700 ~/.ssh && '
    'echo {key} >> ~/.ssh/authorized_keys && chmod 600 ~/.ssh/authorized_keys'
)


class DeployStrategy(enum.Enum):
    """How the public key reaches the remote host."""
    COPY_ID = 'ssh-copy-id'
    MANUAL = 'manual'


def check_required_tools() -> None:
    """Raise RuntimeError if the OpenSSH client tools are missing."""
    for tool in REQUIRED_TOOLS:
        if not shutil.which(tool):
            raise RuntimeError(
                f"{tool} is not installed. Please install OpenSSH client."
            )


def detect_strategy() -> DeployStrategy:
    """Prefer ssh-copy-id when it is available, else copy manually over ssh."""
    if shutil.which('ssh-copy-id'):
        return DeployStrategy.COPY_ID
    return DeployStrategy.MANUAL


def build_deploy_command(strategy: DeployStrategy, key_path: Path,
                         target: str, port: int) -> list[str]:
    if strategy is DeployStrategy.COPY_ID:
        return ['ssh-copy-id', '-i', str(public_key_path(key_path)),
                '-p', str(port), target]
    remote_cmd = REMOTE_INSTALL_TEMPLATE.format(key=shlex.quote(get_public_key(key_path)))
    return ['ssh', '-p', str(port), target, remote_cmd]


def deploy_key(strategy: DeployStrategy, key_path: Path, target: str, port: int) -> None:
    """Install the public key on the remote host.

    Runs attached to the terminal so the user can answer the password prompt.

    Raises:
        RuntimeError: If the chosen strategy fails; the other one is not tried
    """
    cmd = build_deploy_command(strategy, key_path, target, port)
    try:
        subprocess.run(cmd, check=True)
    except subprocess.CalledProcessError as e:
        raise RuntimeError(
            f"Failed to copy SSH key to {target} ({strategy.value}, exit code {e.returncode})"
        ) from e
    except FileNotFoundError:
        raise RuntimeError(f"{cmd[0]} command not found.") from None
