"""Interactive collection of connection parameters."""

import click

from keyhop.validation import (
    DEFAULT_KEY_TYPE,
    DEFAULT_PORT,
    KEY_TYPES,
    SessionParams,
    validate_alias,
    validate_hostname,
    validate_key_type,
    validate_port,
    validate_username,
)


def _ask(text: str) -> str:
    # Blank answers are allowed here; defaults are applied by the validators
    return click.prompt(text, default='', show_default=False)


def collect_session_params() -> SessionParams:
    """Prompt for each parameter in turn.

    There is no re-prompt: the first invalid answer raises ValueError.
    """
    click.echo('')
    hostname = validate_hostname(_ask('Enter remote server hostname/IP'))
    username = validate_username(_ask('Enter remote username'))
    port = validate_port(_ask(f'Enter SSH port (default: {DEFAULT_PORT})'))
    key_type = validate_key_type(
        _ask(f"Enter key type ({'/'.join(KEY_TYPES)}) [default: {DEFAULT_KEY_TYPE}]")
    )
    alias = validate_alias(_ask(f'Enter SSH alias for config (default: {hostname})'),
                           hostname)
    return SessionParams(
        hostname=hostname,
        username=username,
        port=port,
        key_type=key_type,
        alias=alias,
    )
