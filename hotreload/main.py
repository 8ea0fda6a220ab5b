"""hotreload CLI - inspect how a configured resolver answers lookups."""

import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.markup import escape
from rich.table import Table

from .console import console
from .exceptions import HotReloadError
from .intercept import InterceptingResolver
from .logging_setup import init_json_logging
from .naming import to_module_path
from .settings import create_resolver
from .settings import load_settings

logger = logging.getLogger(__name__)


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}")
    sys.exit(1)


def _build_resolver(ctx: click.Context) -> InterceptingResolver:
    try:
        settings = load_settings(ctx.obj.get("settings_path"))
        return create_resolver(settings)
    except HotReloadError as e:
        _fail(str(e))


@click.group()
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Settings file (default: HOTRELOAD_SETTINGS, then .hotreload/settings.yaml scopes)",
)
@click.option("--log-file", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Write JSONL logs here")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level for --log-file",
)
@click.pass_context
def cli(ctx: click.Context, settings_path: Path | None, log_file: Path | None, log_level: str | None):
    """Resolve modules and resources through a hot-reload resolver."""
    if log_file is not None:
        init_json_logging(log_file, log_level)
    ctx.ensure_object(dict)
    ctx.obj["settings_path"] = settings_path


@cli.command()
@click.argument("path")
@click.option("--module", "is_module", is_flag=True, help="Treat PATH as a dotted module name")
@click.pass_context
def check(ctx: click.Context, path: str, is_module: bool):
    """Show whether PATH would be intercepted."""
    resolver = _build_resolver(ctx)
    if is_module:
        path = to_module_path(path)
    path_filter = resolver.path_filter
    if path_filter.is_reserved(path):
        console.print(f"[yellow]rejected[/yellow] {escape(path)} (reserved prefix)")
    elif path_filter.accepts(path):
        console.print(f"[green]intercepted[/green] {escape(path)}")
    else:
        console.print(f"[yellow]rejected[/yellow] {escape(path)} (does not match {escape(path_filter.include.pattern)})")


@cli.command()
@click.argument("name")
@click.option("--call", "attribute", default=None, help="Call this zero-argument attribute and print the result")
@click.pass_context
def resolve(ctx: click.Context, name: str, attribute: str | None):
    """Resolve module NAME and report where it came from."""
    resolver = _build_resolver(ctx)
    try:
        module = resolver.resolve_module(name)
    except HotReloadError as e:
        _fail(str(e))

    origin = "local" if resolver.is_defined_here(name) else "parent"
    logger.debug(f"[cli] {name} resolved ({origin})")
    table = Table(title=f"Module {name}", show_header=True, header_style="bold cyan")
    table.add_column("Field", style="green")
    table.add_column("Value", style="magenta")
    table.add_row("Defined by", origin)
    table.add_row("File", escape(str(getattr(module, "__file__", None) or "(built-in)")))
    console.print(table)

    if attribute is not None:
        target = getattr(module, attribute, None)
        if not callable(target):
            _fail(f"'{name}' has no callable attribute '{attribute}'")
        console.print(escape(str(target())))


@cli.command()
@click.argument("path")
@click.pass_context
def resources(ctx: click.Context, path: str):
    """List every location of resource PATH, local locations first."""
    resolver = _build_resolver(ctx)
    locations = resolver.resolve_all_resource_locations(path)
    if not locations:
        console.print(f"[yellow]No locations for {escape(path)}[/yellow]")
        return

    table = Table(title=f"Locations for {path}", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Location", style="magenta")
    for index, location in enumerate(locations, start=1):
        table.add_row(str(index), escape(location))
    console.print(table)


@cli.command()
@click.argument("path")
@click.pass_context
def cat(ctx: click.Context, path: str):
    """Print the content of resource PATH."""
    resolver = _build_resolver(ctx)
    stream = resolver.resolve_resource_stream(path)
    if stream is None:
        _fail(f"Resource not found: {path}")
    with stream:
        data = stream.read()
    click.echo(data.decode("utf-8", errors="replace"), nl=False)


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
