"""
Main CLI entry point for the Migration Control plane.

This module provides the command-line interface using Click with Rich
formatting: ``serve`` runs the control-plane server and the lifecycle
commands (``start``, ``status``, ``pause``, ``resume``, ``finalize``) talk
to a running server over HTTP.
"""

import json
import sys
from typing import Callable, Optional, Tuple

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from migration_control import __version__
from migration_control.cli.client import ControlPlaneClient
from migration_control.core.exceptions import (
    ConfigurationError,
    ControlPlaneConnectionError,
)
from migration_control.models.config import DEFAULT_HOST, DEFAULT_PORT
from migration_control.models.protocol import CommandResponse
from migration_control.utils.helpers import split_namespace_list

console = Console()

STATE_STYLES = {
    "idle": "dim",
    "running": "green",
    "paused": "yellow",
    "finalizing": "cyan",
    "finalized": "bold green",
    "failed": "bold red",
}


def connection_options(func: Callable) -> Callable:
    """Add the ``--host``/``--port`` options shared by client commands."""
    func = click.option('--port', '-p', type=int, default=DEFAULT_PORT, show_default=True,
                        help='Control-plane server port')(func)
    func = click.option('--host', default=DEFAULT_HOST, show_default=True,
                        help='Control-plane server host')(func)
    return func


def _client(ctx: click.Context, host: str, port: int) -> ControlPlaneClient:
    factory = ctx.obj.get('client_factory') or ControlPlaneClient
    return factory(host=host, port=port)


def _report(command: str, response: CommandResponse) -> None:
    if not response.ok:
        code = f" ({response.error_code})" if response.error_code else ""
        console.print(f"[red]✗ {command} rejected{code}: {escape(response.error or '')}[/red]")
        sys.exit(1)

    console.print(f"[green]✓ {command} accepted[/green]")
    if response.signal_error:
        console.print(
            f"[yellow]⚠️  Transition committed but the apply engine was not signalled: "
            f"{escape(response.signal_error)}[/yellow]"
        )
    if response.superseded:
        console.print(
            f"[yellow]⚠️  Command completed its signal but was overtaken by an engine report: "
            f"{escape(response.superseded)}[/yellow]"
        )


def _send(ctx: click.Context, host: str, port: int, command: str, call: Callable) -> None:
    if ctx.obj.get('verbose', False):
        console.print(f"[dim]Server: {host}:{port}[/dim]")
    try:
        with _client(ctx, host, port) as client:
            response = call(client)
    except ControlPlaneConnectionError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)
    _report(command, response)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def main(ctx: click.Context, version: bool, verbose: bool):
    """
    Migration Control

    Drive a live database migration: start replication for a set of
    namespaces, check its status, pause, resume and finalize the cutover.
    """
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose

    if version:
        console.print(f"Migration Control version {__version__}")
        sys.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.option('--host', default=None, help=f'Bind host [default: {DEFAULT_HOST}]')
@click.option('--port', '-p', type=int, default=None, help=f'Bind port [default: {DEFAULT_PORT}]')
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file (YAML or JSON)')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                                               case_sensitive=False),
              default=None, help='Logging level')
@click.option('--log-file', type=click.Path(), default=None, help='Write logs to this file')
@click.option('--audit-log', type=click.Path(), default=None, help='Write the transition audit trail to this file')
@click.option('--structured-logs', is_flag=True, default=None, help='Emit JSON log lines')
@click.option('--engine', default=None,
              help='Apply engine class as package.module:ClassName [default: log signals only]')
def serve(host: Optional[str], port: Optional[int], config: Optional[str],
          log_level: Optional[str], log_file: Optional[str], audit_log: Optional[str],
          structured_logs: Optional[bool], engine: Optional[str]):
    """Run the control-plane server."""
    from migration_control.models.config import load_config

    try:
        settings = load_config(config, overrides={
            'host': host,
            'port': port,
            'log_level': log_level,
            'log_file': log_file,
            'audit_log_file': audit_log,
            'structured_logging': structured_logs or None,
            'engine': engine,
        })
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        sys.exit(1)

    import uvicorn
    from migration_control.api.main import create_app
    from migration_control.engine.base import load_engine
    from migration_control.lifecycle.controller import MigrationController
    from migration_control.utils.logging import AuditLogger, setup_logging

    setup_logging(
        level=settings.log_level,
        log_file=settings.log_file,
        structured_logging=settings.structured_logging,
    )

    try:
        apply_engine = load_engine(settings.engine)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error: {escape(e.message)}[/red]")
        sys.exit(1)

    controller = MigrationController(
        engine=apply_engine,
        audit_logger=AuditLogger(settings.audit_log_file)
    )

    console.print(f"[green]Starting Migration Control server on {settings.host}:{settings.port}[/green]")
    uvicorn.run(
        create_app(controller),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


@main.command()
@connection_options
@click.option('--include-namespaces', multiple=True,
              help='Namespaces to include in the replication (e.g. db1.collection1,db2.collection2)')
@click.option('--exclude-namespaces', multiple=True,
              help='Namespaces to exclude from the replication (e.g. db3.collection3,db4.*)')
@click.pass_context
def start(ctx: click.Context, host: str, port: int,
          include_namespaces: Tuple[str, ...], exclude_namespaces: Tuple[str, ...]):
    """Start replication."""
    include = split_namespace_list(include_namespaces)
    exclude = split_namespace_list(exclude_namespaces)

    if ctx.obj.get('verbose', False):
        console.print(f"[dim]Include: {escape(', '.join(include)) or 'all'}[/dim]")
        console.print(f"[dim]Exclude: {escape(', '.join(exclude)) or 'none'}[/dim]")

    _send(ctx, host, port, "start", lambda client: client.start(include, exclude))


@main.command()
@connection_options
@click.option('--format', '-f', type=click.Choice(['table', 'json']),
              default='table', help='Output format')
@click.pass_context
def status(ctx: click.Context, host: str, port: int, format: str):
    """Show the migration state."""
    try:
        with _client(ctx, host, port) as client:
            response = client.status()
    except ControlPlaneConnectionError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)

    if format == 'json':
        click.echo(json.dumps(response.to_wire(), indent=2))
        return

    state = response.state.value
    table = Table(title="Migration Status", box=box.ROUNDED, show_header=False)
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")
    table.add_row("State", f"[{STATE_STYLES.get(state, 'white')}]{state}[/]")
    table.add_row("Include", ", ".join(response.include_namespaces) or "all")
    table.add_row("Exclude", ", ".join(response.exclude_namespaces) or "none")
    table.add_row("History lost", "[red]yes[/red]" if response.history_lost else "no")
    if response.error:
        table.add_row("Error", f"[red]{escape(response.error)}[/red]")
    if response.updated_at:
        table.add_row("Updated", response.updated_at.isoformat())
    console.print(table)


@main.command()
@connection_options
@click.pass_context
def pause(ctx: click.Context, host: str, port: int):
    """Pause replication."""
    _send(ctx, host, port, "pause", lambda client: client.pause())


@main.command()
@connection_options
@click.option('--from-failure', is_flag=True, help='Resume a migration that failed')
@click.pass_context
def resume(ctx: click.Context, host: str, port: int, from_failure: bool):
    """Resume a paused (or, with --from-failure, a failed) migration."""
    _send(ctx, host, port, "resume", lambda client: client.resume(from_failure=from_failure))


@main.command()
@connection_options
@click.option('--ignore-history-lost', is_flag=True, help='Finalize even if source history was lost')
@click.pass_context
def finalize(ctx: click.Context, host: str, port: int, ignore_history_lost: bool):
    """Finalize the migration and cut over to the target."""
    _send(ctx, host, port, "finalize",
          lambda client: client.finalize(ignore_history_lost=ignore_history_lost))


if __name__ == '__main__':
    main()
