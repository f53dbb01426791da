"""
Command Line Interface for knocker-monitor.

This module provides a CLI for launching the status panel, printing the
current Knocker state, following events live, controlling knocker.service
and managing configuration.
"""

import click
import sys
import yaml
from pathlib import Path
from typing import List, Optional
import os

from .main import run_app
from .__version__ import __version__
from .config.config import Config
from .core.commands.config_cmd import run_config_commands
from .core.commands.service_cmd import SERVICE_ACTIONS, run_service
from .core.commands.status import run_status
from .core.commands.watch import run_watch
from .core.events import EventKind


def _set_verbosity(verbose: int) -> None:
    if verbose == 1:
        os.environ['KNOCKER_MONITOR_LOG_LEVEL'] = 'INFO'
    elif verbose >= 2:
        os.environ['KNOCKER_MONITOR_LOG_LEVEL'] = 'DEBUG'


journal_options = [
    click.option('--unit', '-u', type=str, default=None,
                 help='systemd unit to monitor (default: knocker.service)'),
    click.option('--journal-file', '-f', type=click.Path(exists=True, path_type=Path), default=None,
                 help='Read a JSON-lines journal export instead of journalctl'),
    click.option('--backlog', '-n', type=click.IntRange(min=0), default=None,
                 help='Number of recent journal records used to seed the state'),
]


def with_journal_options(func):
    for option in reversed(journal_options):
        func = option(func)
    return func


@click.group(invoke_without_command=True, help="knocker-monitor - status monitor for the Knocker port-knocking service.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--version', '-v', is_flag=True, help='Show version and exit')
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@with_journal_options
@click.pass_context
def cli(ctx: click.Context, config: Optional[Path], version: bool, verbose: int,
        unit: Optional[str], journal_file: Optional[Path], backlog: Optional[int]) -> None:
    """
    knocker-monitor - status monitor for the Knocker port-knocking service.

    Without a subcommand the interactive status panel is launched.

    Usage Examples:
      knocker-monitor                         # Launch the status panel
      knocker-monitor status                  # Print the current state
      knocker-monitor watch --format json     # Stream events as JSON lines
      knocker-monitor service knock           # Trigger a manual knock
      knocker-monitor config --list           # List configuration
    """
    if version:
        click.echo(f"knocker-monitor v{__version__}")
        return

    _set_verbosity(verbose)

    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['cli_options'] = {'unit': unit, 'journal_file': journal_file, 'backlog': backlog}

    if ctx.invoked_subcommand is None:
        exit_code = run_app(config_path=config, cli_options=ctx.obj['cli_options'])
        sys.exit(exit_code)


def _merge_options(ctx: click.Context, **options) -> dict:
    merged = dict(ctx.obj.get('cli_options') or {})
    for key, value in options.items():
        if value is not None:
            merged[key] = value
    return merged


@cli.command(help="Print the current Knocker state derived from the journal.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--format', type=click.Choice(['text', 'json', 'yaml']),
              default='text', help='Output format (default: text)')
@click.option('--output', '-o', type=click.Path(path_type=Path),
              help='Write the status to a file')
@with_journal_options
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@click.pass_context
def status(ctx, config: Optional[Path], format: str, output: Optional[Path],
           unit: Optional[str], journal_file: Optional[Path], backlog: Optional[int], verbose: int) -> None:
    """
    Print the current Knocker state.

    The state is rebuilt from the most recent journal records: service
    state, whitelisted address and expiry, and the next scheduled knock.

    Examples:
      knocker-monitor status
      knocker-monitor status --format json
      knocker-monitor status -f knocker.jsonl -n 500
    """
    _set_verbosity(verbose)
    config = config or ctx.obj.get('config_path')
    options = _merge_options(ctx, unit=unit, journal_file=journal_file, backlog=backlog)

    exit_code = run_status(config_path=config, output_format=format,
                           output_path=output, cli_options=options)
    sys.exit(exit_code)


@cli.command(help="Follow the journal and print Knocker events as they happen.")
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--format', type=click.Choice(['text', 'json']),
              default='text', help='Output format (default: text)')
@click.option('--event', '-e', 'events', multiple=True,
              type=click.Choice([kind.value for kind in EventKind]),
              help='Only show these event kinds (repeatable)')
@click.option('--duration', type=float, default=None,
              help='Stop after this many seconds (default: run until interrupted)')
@with_journal_options
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@click.pass_context
def watch(ctx, config: Optional[Path], format: str, events: List[str], duration: Optional[float],
          unit: Optional[str], journal_file: Optional[Path], backlog: Optional[int], verbose: int) -> None:
    """
    Follow the journal and print Knocker events as they happen.

    The current state is printed first, then one line per event until
    interrupted with Ctrl-C.

    Examples:
      knocker-monitor watch
      knocker-monitor watch -e Error -e WhitelistApplied
      knocker-monitor watch --format json
    """
    _set_verbosity(verbose)
    config = config or ctx.obj.get('config_path')
    options = _merge_options(ctx, unit=unit, journal_file=journal_file, backlog=backlog)

    exit_code = run_watch(config_path=config, output_format=format, kinds=list(events),
                          duration=duration, cli_options=options)
    sys.exit(exit_code)


@cli.command(help="Control knocker.service (start, stop, status, knock).")
@click.argument('action', type=click.Choice(SERVICE_ACTIONS))
@click.option('--config', '-c', type=click.Path(exists=True, path_type=Path),
              help='Path to configuration file')
@click.option('--unit', '-u', type=str, default=None,
              help='systemd unit to control (default: knocker.service)')
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@click.pass_context
def service(ctx, action: str, config: Optional[Path], unit: Optional[str], verbose: int) -> None:
    """
    Control knocker.service.

    Examples:
      knocker-monitor service start
      knocker-monitor service status
      knocker-monitor service knock
    """
    _set_verbosity(verbose)
    config = config or ctx.obj.get('config_path')
    unit = unit or (ctx.obj.get('cli_options') or {}).get('unit')

    exit_code = run_service(action, config_path=config, unit=unit)
    sys.exit(exit_code)


@cli.command('config', help="Manage configuration settings.")
@click.option('--config', '-c', type=click.Path(path_type=Path),
              help='Path to configuration file (default: ~/.config/knocker-monitor/config.yaml)')
@click.option('--set', 'set_options', multiple=True, nargs=2, metavar='KEY VALUE',
              help='Set configuration option (e.g., --set journal.backlog_size 200)')
@click.option('--get', 'get_option', type=str,
              help='Get specific configuration option')
@click.option('--list', 'list_config', is_flag=True,
              help='List all configuration options')
@click.option('--validate', 'validate_config', is_flag=True,
              help='Validate configuration file')
@click.option('--reset', 'reset_config', is_flag=True,
              help='Reset to default configuration')
@click.option('--verbose', '-V', count=True, help='Increase verbosity (use -VV for debug)')
@click.pass_context
def config_cmd(ctx, config: Optional[Path], set_options: List[tuple],
               get_option: str, list_config: bool, validate_config: bool,
               reset_config: bool, verbose: int) -> None:
    """
    Manage configuration settings.

    Configuration options follow the format 'section.option', such as:
    - journal.unit
    - journal.backlog_size
    - monitor.reconnect_delay
    - notifications.on_error
    - logging.level

    Examples:
      knocker-monitor config --list
      knocker-monitor config --get journal.unit
      knocker-monitor config --set notifications.on_knock false
      knocker-monitor config --validate
    """
    _set_verbosity(verbose)
    config = config or ctx.obj.get('config_path')

    exit_code = run_config_commands(config_path=config, set_options=list(set_options),
                                    get_option=get_option, list_config=list_config,
                                    validate_config=validate_config,
                                    reset_config=reset_config)
    sys.exit(exit_code)


@cli.command(help="Initialize a new configuration file.")
@click.argument('path', required=False, type=click.Path(path_type=Path))
def init(path: Optional[Path]) -> None:
    """
    Initialize a new configuration file.

    Writes the default configuration to PATH, or to
    ~/.config/knocker-monitor/config.yaml when PATH is omitted.

    Example:
      knocker-monitor init
    """
    config_path = path or Config.default_path()
    if config_path.exists():
        click.echo(f"Configuration file already exists: {config_path}", err=True)
        sys.exit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, 'w') as f:
        yaml.dump(Config.get_default_config_dict(), f, default_flow_style=False)

    click.echo(f"Created default configuration file: {config_path}")


def main() -> None:
    """Main CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
