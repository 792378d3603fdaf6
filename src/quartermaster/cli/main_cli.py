"""
Top-level quartermaster CLI: connect to an agent and manage its applications.
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from quartermaster import __version__
from quartermaster.archive.builder import build_archive
from quartermaster.client.agent_client import AgentClient
from quartermaster.core.config import Settings, get_settings
from quartermaster.core.connection import load_connection, make_record, save_connection
from quartermaster.core.exceptions import QuartermasterError
from quartermaster.schemas.app import App, load_manifest

logger = logging.getLogger(__name__)
console = Console()

main_app = typer.Typer(help="The Agent Quartermaster.", no_args_is_help=True)


def _version_callback(value: bool):
    if value:
        typer.echo(f"quartermaster {__version__}")
        raise typer.Exit()


@main_app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version."
    ),
):
    """Connect to an agent and manage its applications."""
    settings = get_settings()
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s - %(message)s")
    logging.getLogger().setLevel(level)
    ctx.obj = settings


def _fail(error: Exception):
    console.print(f"[bold red]Error:[/bold red] {escape(str(error))}")
    raise typer.Exit(1)


def _client(ctx: typer.Context) -> AgentClient:
    settings: Settings = ctx.obj
    connection = load_connection(settings.connection_file)
    return AgentClient(
        connection,
        timeout=settings.request_timeout,
        keyring_service=settings.keyring_service,
    )


def _print_result(result: Any):
    console.print()
    console.print(result)
    console.print()


def _format_list(values: List[str]) -> str:
    return ", ".join(values) if values else "-"


@main_app.command()
def connect(
    ctx: typer.Context,
    service: str = typer.Argument(..., help="Agent URL"),
    username: Optional[str] = typer.Option(None, "-u", "--username", help="Username"),
    password: Optional[str] = typer.Option(None, "-p", "--password", help="Password"),
    use_keyring: bool = typer.Option(
        False, "--keyring", help="Keep the password in the system keyring instead of the connection file"
    ),
):
    """Store the agent URL and credentials for later commands."""
    settings: Settings = ctx.obj
    try:
        record = make_record(
            service,
            username=username,
            password=password,
            use_keyring=use_keyring,
            keyring_service=settings.keyring_service,
        )
        path = save_connection(record, settings.connection_file)
    except QuartermasterError as e:
        _fail(e)
    console.print(f"Connected to [bold]{service}[/bold] (saved to {path})")


@main_app.command("list")
def list_apps(ctx: typer.Context):
    """List applications."""
    try:
        apps = _client(ctx).get_apps()
    except QuartermasterError as e:
        _fail(e)

    table = Table()
    table.add_column("Id", style="cyan")
    table.add_column("Name")
    table.add_column("Description")
    table.add_column("Workers", style="magenta", justify="right")
    for app in apps:
        table.add_row(app.id or "", app.name, app.description, str(len(app.workers)))
    console.print(table)


def _render_app(app: App):
    table = Table(show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", max_width=100)
    table.add_row("Id", app.id or "")
    table.add_row("Name", app.name)
    table.add_row("Description", app.description)
    table.add_row("Capacity", str(app.capacity))
    table.add_row("Paths", _format_list(app.paths))
    table.add_row("Domains", _format_list(app.domains))
    console.print(table)

    if app.versions:
        table = Table()
        table.add_column("Version", style="cyan")
        table.add_column("Filename")
        table.add_column("Created", style="green")
        for v in app.versions:
            created = v.created.strftime("%Y-%m-%d %H:%M:%S") if v.created else ""
            table.add_row(v.version, v.filename, created)
        console.print(table)

    if app.workers:
        table = Table()
        table.add_column("Container", style="cyan")
        table.add_column("Host")
        table.add_column("Port", justify="right")
        table.add_column("Version", style="yellow")
        for w in app.workers:
            table.add_row(w.container, w.host, str(w.port), w.version)
        console.print(table)


@main_app.command()
def show(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
):
    """Show an application with its versions and workers."""
    try:
        app = _client(ctx).get_app(app_id)
    except QuartermasterError as e:
        _fail(e)
    _render_app(app)


@main_app.command()
def create(
    ctx: typer.Context,
    app_name: Path = typer.Argument(..., metavar="APPNAME", help="Directory containing app.yaml"),
):
    """Create an application from APPNAME/app.yaml."""
    try:
        client = _client(ctx)
        app = load_manifest(app_name)
        console.print(app.to_request())
        result = client.create_app(app)
    except QuartermasterError as e:
        _fail(e)
    _print_result(result)


def _default_archive_path(app: App, app_id: str) -> Path:
    """Archive name in the working directory; the app name comes from the server."""
    name = Path(app.name).name if app.name else ""
    if name in ("", ".", ".."):
        name = Path(app_id).name or "app"
    return Path(f"{name}.zip")


@main_app.command()
def upload(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
    source: Optional[Path] = typer.Option(
        None, "--source", "-s", help="Directory to package (defaults to APPID)"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Archive to write (defaults to <app name>.zip)"
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", "-x", help="Additional glob pattern to leave out of the archive"
    ),
):
    """Package a directory and upload it as a new application version."""
    settings: Settings = ctx.obj
    source = source or Path(app_id)
    rules = list(settings.archive_exclude) + list(exclude or [])
    try:
        client = _client(ctx)
        app = client.get_app(app_id)
        archive_path = output or _default_archive_path(app, app_id)
        if archive_path.exists():
            os.remove(archive_path)
        archive = build_archive(source, archive_path, exclude=rules)
        console.print(f"Packaged {len(archive.entries)} files into {archive_path}")
        result = client.create_app_version(app_id, archive_path.read_bytes())
    except (OSError, QuartermasterError) as e:
        _fail(e)
    _print_result(result)


@main_app.command()
def start(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
    version_id: Optional[str] = typer.Argument(None, metavar="[VERSIONID]", help="Version identifier"),
):
    """Start an application, or one of its versions."""
    try:
        client = _client(ctx)
        if version_id:
            result = client.start_app_version(app_id, version_id)
        else:
            result = client.start_app(app_id)
    except QuartermasterError as e:
        _fail(e)
    _print_result(result)


@main_app.command()
def stop(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
    version_id: Optional[str] = typer.Argument(None, metavar="[VERSIONID]", help="Version identifier"),
):
    """Stop an application, or one of its versions."""
    try:
        client = _client(ctx)
        if version_id:
            result = client.stop_app_version(app_id, version_id)
        else:
            result = client.stop_app(app_id)
    except QuartermasterError as e:
        _fail(e)
    _print_result(result)


@main_app.command()
def restart(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
    version_id: Optional[str] = typer.Argument(None, metavar="[VERSIONID]", help="Version identifier"),
):
    """Stop then start an application, or one of its versions."""
    try:
        client = _client(ctx)
        if version_id:
            _print_result(client.stop_app_version(app_id, version_id))
            _print_result(client.start_app_version(app_id, version_id))
        else:
            _print_result(client.stop_app(app_id))
            _print_result(client.start_app(app_id))
    except QuartermasterError as e:
        _fail(e)


@main_app.command()
def delete(
    ctx: typer.Context,
    app_id: str = typer.Argument(..., metavar="APPID", help="App identifier"),
    version_id: Optional[str] = typer.Argument(None, metavar="[VERSIONID]", help="Version identifier"),
):
    """Delete an application, or one of its versions."""
    try:
        client = _client(ctx)
        if version_id:
            result = client.delete_app_version(app_id, version_id)
        else:
            result = client.delete_app(app_id)
    except QuartermasterError as e:
        _fail(e)
    _print_result(result)


def main():
    main_app()


if __name__ == "__main__":
    main()
