import stat
import subprocess
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
from click.testing import CliRunner

from keyhop.cli import main

SCENARIO_INPUT = '10.0.0.5\nadmin\n22\ned25519\nmyhost\n'


def _fake_run(verify_rc=0, deploy_error=False, calls=None):
    """Dispatch fake results for ssh-keygen, ssh-copy-id and ssh."""
    def run(cmd, **kwargs):
        if calls is not None:
            calls.append(cmd)
        if cmd[0] == 'ssh-keygen':
            key_path = Path(cmd[cmd.index('-f') + 1])
            key_path.write_text('PRIVATE\n')
            Path(f'{key_path}.pub').write_text('ssh-ed25519 AAAA admin@box\n')
            return MagicMock(returncode=0)
        if 'BatchMode=yes' in cmd:
            return MagicMock(returncode=verify_rc, stdout='', stderr='')
        if deploy_error:
            raise subprocess.CalledProcessError(1, cmd)
        return MagicMock(returncode=0)
    return run


def _which_all(tool):
    return f'/usr/bin/{tool}'


def _which_no_copy_id(tool):
    return None if tool == 'ssh-copy-id' else f'/usr/bin/{tool}'


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setattr('getpass.getuser', lambda: 'tester')
    monkeypatch.setattr('socket.gethostname', lambda: 'box')
    with patch('keyhop.cli.Path.home', return_value=tmp_path):
        yield tmp_path


def _invoke(args, input, run=None, which=_which_all):
    runner = CliRunner()
    with patch('shutil.which', side_effect=which):
        with patch('subprocess.run', side_effect=run or _fake_run()):
            return runner.invoke(main, args, input=input)


def test_cli_shows_help():
    result = CliRunner().invoke(main, ['-h'])
    assert result.exit_code == 0
    assert '--log-file' in result.output
    assert 'passwordless' in result.output.lower()


def test_cli_shows_version():
    result = CliRunner().invoke(main, ['--version'])
    assert result.exit_code == 0
    assert 'keyhop' in result.output


def test_cli_unknown_option_exits_1():
    result = CliRunner().invoke(main, ['--bogus'])
    assert result.exit_code == 1
    assert 'Usage' in result.output


def test_end_to_end_scenario(home):
    """Full run creates the key pair and a Host block for the alias."""
    result = _invoke([], SCENARIO_INPUT + 'y\ny\n')

    assert result.exit_code == 0, result.output
    key_path = home / '.ssh' / 'id_ed25519_myhost'
    assert stat.S_IMODE(key_path.stat().st_mode) == 0o600
    assert stat.S_IMODE(Path(f'{key_path}.pub').stat().st_mode) == 0o644

    config = (home / '.ssh' / 'config').read_text()
    assert 'Host myhost\n' in config
    assert 'HostName 10.0.0.5\n' in config
    assert 'User admin\n' in config
    assert 'Port 22\n' in config
    assert 'Passwordless SSH login is working!' in result.output
    assert 'ssh myhost' in result.output

    logs = list((home / '.keyhop' / 'logs').glob('ssh_setup_*.log'))
    assert len(logs) == 1
    assert 'SSH Passwordless Login Setup Complete!' in logs[0].read_text()


def test_uses_ssh_copy_id_when_available(home):
    calls = []
    result = _invoke([], SCENARIO_INPUT + 'y\nn\n', run=_fake_run(calls=calls))

    assert result.exit_code == 0, result.output
    assert any(cmd[0] == 'ssh-copy-id' for cmd in calls)


def test_manual_copy_without_ssh_copy_id(home):
    calls = []
    result = _invoke([], SCENARIO_INPUT + 'y\nn\n', run=_fake_run(calls=calls),
                     which=_which_no_copy_id)

    assert result.exit_code == 0, result.output
    assert 'manual key copy method' in result.output
    manual = [cmd for cmd in calls if cmd[0] == 'ssh' and 'BatchMode=yes' not in cmd]
    assert len(manual) == 1
    assert 'authorized_keys' in manual[0][-1]


def test_verification_failure_is_not_fatal(home):
    """A failed connection test warns and still offers config registration."""
    result = _invoke([], SCENARIO_INPUT + 'y\ny\n', run=_fake_run(verify_rc=255))

    assert result.exit_code == 0, result.output
    assert 'Passwordless SSH login test failed' in result.output
    assert 'SELinux/AppArmor' in result.output
    assert 'Add entry to SSH config file?' in result.output
    assert 'Host myhost' in (home / '.ssh' / 'config').read_text()


def test_invalid_hostname_aborts_before_changes(home):
    result = _invoke([], 'bad_host!\n')

    assert result.exit_code == 1
    assert 'Invalid hostname' in result.output
    assert 'Check log file' in result.output
    assert not (home / '.ssh').exists()


def test_invalid_port_aborts(home):
    result = _invoke([], '10.0.0.5\nadmin\n70000\n')
    assert result.exit_code == 1
    assert 'Invalid port number' in result.output


def test_cancelled_run_exits_0(home):
    result = _invoke([], SCENARIO_INPUT + 'n\n')

    assert result.exit_code == 0
    assert 'Setup cancelled by user' in result.output
    assert not (home / '.ssh' / 'id_ed25519_myhost').exists()


def test_deploy_failure_is_fatal(home):
    result = _invoke([], SCENARIO_INPUT + 'y\n', run=_fake_run(deploy_error=True))

    assert result.exit_code == 1
    assert 'Failed to copy SSH key to remote server' in result.output
    assert 'Testing SSH connection' not in result.output
    assert not (home / '.ssh' / 'config').exists()


def test_missing_ssh_keygen_is_fatal(home):
    result = _invoke([], SCENARIO_INPUT,
                     which=lambda tool: None if tool == 'ssh-keygen' else f'/usr/bin/{tool}')

    assert result.exit_code == 1
    assert 'ssh-keygen is not installed' in result.output


def test_second_run_keeps_single_host_block(home):
    """Re-running with the same alias reuses the key and skips the config."""
    first = _invoke([], SCENARIO_INPUT + 'y\ny\n')
    assert first.exit_code == 0, first.output
    key_path = home / '.ssh' / 'id_ed25519_myhost'
    original = key_path.read_text()

    # proceed, keep existing key, add config
    second = _invoke([], SCENARIO_INPUT + 'y\nn\ny\n')

    assert second.exit_code == 0, second.output
    assert "Entry for 'myhost' already exists" in second.output
    assert key_path.read_text() == original
    config = (home / '.ssh' / 'config').read_text()
    assert config.count('Host myhost\n') == 1


def test_custom_log_file(home):
    log_file = home / 'custom' / 'setup.log'
    result = _invoke(['--log-file', str(log_file)], SCENARIO_INPUT + 'n\n')

    assert result.exit_code == 0
    assert 'Setup cancelled by user' in log_file.read_text()


def test_invalid_config_file_exits_1(home):
    (home / '.keyhop').mkdir()
    (home / '.keyhop' / 'config.yml').write_text('typo: 1\n')

    result = _invoke([], '')

    assert result.exit_code == 1
    assert 'Invalid configuration' in result.output


def test_host_key_policy_from_config(home):
    (home / '.keyhop').mkdir()
    (home / '.keyhop' / 'config.yml').write_text('host_key_checking: accept-new\n')

    result = _invoke([], SCENARIO_INPUT + 'y\ny\n')

    assert result.exit_code == 0, result.output
    config = (home / '.ssh' / 'config').read_text()
    assert 'StrictHostKeyChecking accept-new' in config
    assert '/dev/null' not in config


def test_non_utf8_ssh_config_is_handled(home):
    ssh_dir = home / '.ssh'
    ssh_dir.mkdir()
    (ssh_dir / 'config').write_bytes(b'# Jos\xe9\n')

    result = _invoke([], SCENARIO_INPUT + 'y\ny\n')

    assert result.exit_code == 0, result.output
    assert b'Host myhost\n' in (ssh_dir / 'config').read_bytes()


def test_unwritable_ssh_config_fails_with_log_reminder(home):
    with patch('keyhop.cli.register_alias', side_effect=PermissionError('read-only')):
        result = _invoke([], SCENARIO_INPUT + 'y\ny\n')

    assert result.exit_code == 1
    assert 'Failed to update SSH config file' in result.output
    assert 'Check log file' in result.output


def test_regeneration_failure_keeps_previous_key(home):
    """A failed ssh-keygen run puts the original pair back."""
    first = _invoke([], SCENARIO_INPUT + 'y\nn\n')
    assert first.exit_code == 0, first.output
    key_path = home / '.ssh' / 'id_ed25519_myhost'
    original = key_path.read_text()

    def failing_keygen(cmd, **kwargs):
        if cmd[0] == 'ssh-keygen':
            raise subprocess.CalledProcessError(1, cmd, stderr='boom')
        return MagicMock(returncode=0)

    result = _invoke([], SCENARIO_INPUT + 'y\ny\n', run=failing_keygen)

    assert result.exit_code == 1
    assert 'boom' in result.output
    assert key_path.read_text() == original
    assert Path(f'{key_path}.pub').exists()


def test_invalid_ssh_dir_type_in_config(home):
    (home / '.keyhop').mkdir()
    (home / '.keyhop' / 'config.yml').write_text('ssh_dir: 5\n')

    result = _invoke([], '')

    assert result.exit_code == 1
    assert 'Invalid configuration' in result.output


def test_summary_reports_custom_log_file(home):
    log_file = home / 'custom' / 'full.log'
    result = _invoke(['-l', str(log_file)], SCENARIO_INPUT + 'y\nn\n')

    assert result.exit_code == 0, result.output
    assert f'Log file saved to: {log_file}' in result.output
    assert 'SSH key copied successfully (ssh-copy-id)' in result.output
