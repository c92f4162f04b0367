"""Run logging: console status lines mirrored into a timestamped log file."""

import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, NoReturn

import click

LEVEL_STYLES = {
    'INFO': 'blue',
    'SUCCESS': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
}


class RunLog:
    """Append-only record of every status message produced during a run.

    Example:
        log = RunLog.start(Path.home() / '.keyhop' / 'logs')
        log.info('Generating key...')
        log.success('Done')
    """

    def __init__(self, path: Path):
        self.path = path

    @classmethod
    def start(cls, log_dir: Path) -> 'RunLog':
        """Create a log named after the current time inside log_dir."""
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        return cls.at(log_dir / f'ssh_setup_{timestamp}.log')

    @classmethod
    def at(cls, path: Path) -> 'RunLog':
        path = path.expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            print(f"Warning: Cannot create log directory {path.parent}: {e}", file=sys.stderr)
        return cls(path)

    def log_event(self, message: str, level: str = 'INFO') -> None:
        """Print a status line and append it to the log file."""
        click.secho(f'[{level}]', fg=LEVEL_STYLES.get(level), nl=False)
        click.echo(f' {message}')

        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        entry = f'[{timestamp}] {level}: {message}\n'
        try:
            with open(self.path, 'a') as f:
                f.write(entry)
        except (IOError, OSError) as e:
            print(f"Warning: Failed to log event: {e}", file=sys.stderr)

    def info(self, message: str) -> None:
        self.log_event(message, 'INFO')

    def success(self, message: str) -> None:
        self.log_event(message, 'SUCCESS')

    def warning(self, message: str) -> None:
        self.log_event(message, 'WARNING')

    def error(self, message: str) -> None:
        self.log_event(message, 'ERROR')

    def fail(self, message: str, code: int = 1) -> NoReturn:
        """Log a fatal error and terminate the run."""
        self.error(message)
        sys.exit(code)


@contextmanager
def failure_report(log: RunLog) -> Iterator[RunLog]:
    """Point the user at the log file whenever the run exits non-zero."""
    try:
        yield log
    except SystemExit as e:
        code = e.code if isinstance(e.code, int) else (0 if e.code is None else 1)
        if code != 0:
            log.error(f'Setup failed with exit code: {code}')
            log.info(f'Check log file: {log.path}')
        raise
    except click.Abort:
        log.error('Setup aborted')
        log.info(f'Check log file: {log.path}')
        raise
    except Exception as e:
        log.error(f'Unexpected error: {e}')
        log.info(f'Check log file: {log.path}')
        raise
