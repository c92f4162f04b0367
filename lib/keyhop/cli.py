#!/usr/bin/env python3
"""keyhop CLI - Passwordless SSH login setup."""

import sys
import click
import yaml
from pathlib import Path
from typing import Optional
from keyhop.config import KeyhopConfig, RunSettings, default_log_dir
from keyhop.deploy import DeployStrategy, check_required_tools, deploy_key, detect_strategy
from keyhop.prompts import collect_session_params
from keyhop.runlog import RunLog, failure_report
from keyhop.ssh_config import config_path, register_alias
from keyhop.ssh_keys import prepare_ssh_dir, provision_key, public_key_path
from keyhop.validation import SessionParams
from keyhop.verify import TROUBLESHOOTING_HINTS, verify_connection


class SetupCommand(click.Command):
    """Report usage errors with exit status 1 rather than click's 2."""

    def parse_args(self, ctx, args):
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as e:
            e.exit_code = 1
            raise


def _log_summary(log: RunLog, params: SessionParams, key_path: Path) -> None:
    click.echo("")
    log.info("Configuration Summary:")
    log.info(f"  Remote Host: {params.hostname}")
    log.info(f"  Remote User: {params.username}")
    log.info(f"  SSH Port: {params.port}")
    log.info(f"  Key Type: {params.key_type}")
    log.info(f"  Key File: {key_path}")
    log.info(f"  SSH Alias: {params.alias}")
    click.echo("")


def _register_alias(log: RunLog, settings: RunSettings, params: SessionParams,
                    key_path: Path) -> bool:
    log.info("Adding configuration to SSH config file...")
    try:
        added = register_alias(settings.ssh_dir, params, key_path, settings.host_key_checking)
    except (OSError, UnicodeError) as e:
        log.fail(f"Failed to update SSH config file: {e}")
    if not added:
        log.warning(f"Entry for '{params.alias}' already exists in SSH config")
        return False
    log.success(f"SSH config entry added for alias: {params.alias}")
    if settings.host_key_checking == 'no':
        log.warning("Host key checking is disabled for this alias "
                    f"(see {config_path(settings.ssh_dir)})")
    log.info(f"You can now connect using: ssh {params.alias}")
    return True


def run_setup(config: KeyhopConfig, home: Path, log: RunLog) -> None:
    """Collect parameters, then provision, deploy, verify and register a key."""
    log.info("Starting SSH passwordless login setup...")
    log.info(f"Log file: {log.path}")

    try:
        check_required_tools()
    except RuntimeError as e:
        log.fail(str(e))

    settings = RunSettings.build(config, home, log.path, detect_strategy())
    if settings.strategy is DeployStrategy.MANUAL:
        log.warning("ssh-copy-id is not installed. Will use manual key copy method.")

    try:
        params = collect_session_params()
    except ValueError as e:
        log.fail(str(e))

    key_path = params.key_path(settings.ssh_dir)
    _log_summary(log, params, key_path)

    if not click.confirm("Proceed with setup?", default=False):
        log.info("Setup cancelled by user")
        return

    try:
        prepare_ssh_dir(settings.ssh_dir)
        provision_key(key_path, params.key_type, params.alias, log)
    except (RuntimeError, OSError) as e:
        log.fail(str(e))

    click.echo("")
    log.info("You will be prompted for the remote server password")
    if settings.strategy is DeployStrategy.COPY_ID:
        log.info("Copying SSH public key to remote server using ssh-copy-id...")
    else:
        log.info("Copying SSH public key to remote server manually...")

    try:
        deploy_key(settings.strategy, key_path, params.target, params.port)
    except (RuntimeError, OSError) as e:
        log.error(str(e))
        log.fail("Failed to copy SSH key to remote server")
    log.success(f"SSH key copied successfully ({settings.strategy.value})")

    click.echo("")
    log.info("Testing SSH connection...")
    if verify_connection(key_path, params.target, params.port, settings.connect_timeout):
        log.success("Passwordless SSH login is working!")
    else:
        log.error("Passwordless SSH login test failed")
        log.warning("SSH connection test failed. Please check:")
        for i, hint in enumerate(TROUBLESHOOTING_HINTS, 1):
            log.warning(f"  {i}. {hint}")

    click.echo("")
    alias_added = False
    if click.confirm("Add entry to SSH config file?", default=False):
        alias_added = _register_alias(log, settings, params, key_path)

    click.echo("\n" + "=" * 44)
    log.success("SSH Passwordless Login Setup Complete!")
    click.echo("=" * 44)
    log.info("You can now connect using:")
    log.info(f"  ssh -i {key_path} -p {params.port} {params.target}")
    if alias_added:
        log.info(f"Or simply: ssh {params.alias}")
    log.info(f"Public key: {public_key_path(key_path)}")
    click.echo("")
    log.info(f"Log file saved to: {settings.log_file}")


@click.command(cls=SetupCommand, context_settings={'help_option_names': ['-h', '--help']})
@click.version_option(None, '-v', '--version', package_name='keyhop',
                      message='keyhop %(version)s')
@click.option('--log-file', '-l', type=click.Path(dir_okay=False, path_type=Path),
              help='Write the run log to this file instead of ~/.keyhop/logs')
def main(log_file: Optional[Path]) -> None:
    """Set up SSH key-based (passwordless) login to a remote server.

    Generates a key pair (ed25519, rsa or ecdsa), copies the public key to
    the remote server, tests the passwordless connection and optionally adds
    a Host alias to ~/.ssh/config.

    Settings are read from ~/.keyhop/config.yml when present.
    """
    home = Path.home()
    try:
        config = KeyhopConfig.load(home / '.keyhop')
    except (ValueError, yaml.YAMLError) as e:
        click.secho(f"❌ Invalid configuration: {e}", fg='red', err=True)
        sys.exit(1)

    if log_file:
        log = RunLog.at(log_file)
    else:
        log = RunLog.start(default_log_dir(config, home))

    with failure_report(log):
        run_setup(config, home, log)


if __name__ == '__main__':
    main()
