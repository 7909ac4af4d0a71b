"""hotserve CLI entry point."""

import logging
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from hotserve import __version__
from hotserve.config import (
    DEFAULT_ADDR,
    DEFAULT_RELOAD_PATH,
    DEFAULT_TRIGGER_PORT,
    DEFAULT_WS_PORT,
    ConfigError,
    ServerConfig,
)

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


@click.group()
@click.version_option(__version__, prog_name="hotserve")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """hotserve - static file server with live reload."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument(
    "root",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    envvar="HOTSERVE_ROOT",
)
@click.option("--addr", "-a", default=DEFAULT_ADDR, envvar="HOTSERVE_ADDR", help="HOST:PORT to serve files on")
@click.option(
    "--ws-port", default=DEFAULT_WS_PORT, envvar="HOTSERVE_WS_PORT", help="Port for the live-reload websocket"
)
@click.option(
    "--trigger-port",
    default=DEFAULT_TRIGGER_PORT,
    envvar="HOTSERVE_TRIGGER_PORT",
    help="Local port that external watchers call to trigger a reload",
)
@click.option("--watch", "-w", is_flag=True, envvar="HOTSERVE_WATCH", help="Watch ROOT and reload on changes")
@click.option("--poll-interval", default=0.5, envvar="HOTSERVE_POLL_INTERVAL", help="Watch mode scan interval in seconds")
@click.option("--reload-path", default=DEFAULT_RELOAD_PATH, envvar="HOTSERVE_RELOAD_PATH", help="Live-reload websocket path")
@click.option("--no-inject", is_flag=True, help="Do not inject the live-reload script into HTML pages")
def serve(
    root: Path,
    addr: str,
    ws_port: int,
    trigger_port: int,
    watch: bool,
    poll_interval: float,
    reload_path: str,
    no_inject: bool,
) -> None:
    """Serve ROOT over HTTP with live reload."""
    from hotserve.server import StartupError, run

    try:
        config = ServerConfig.build(
            addr,
            root_dir=root,
            ws_port=ws_port,
            trigger_port=trigger_port,
            watch=watch,
            poll_interval=poll_interval,
            reload_path=reload_path,
            inject_client=not no_inject,
        )
    except ConfigError as e:
        console.print(f"[red]Invalid configuration: {escape(str(e))}[/red]")
        raise SystemExit(1) from e

    console.print(f"[bold green]hotserve {__version__}[/bold green]")
    console.print(f"  addr:         {config.url}")
    console.print(f"  root dir:     {config.root_dir}")
    console.print(f"  live reload:  ws port {config.ws_port}, path {config.reload_path}")
    console.print(f"  trigger:      POST http://127.0.0.1:{config.trigger_port}/reload")
    if config.watch:
        console.print("  watching root for changes")

    try:
        run(config)
    except StartupError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1) from e

    console.print("\n[yellow]Server stopped[/yellow]")


@cli.command()
@click.option(
    "--port", "-p", default=DEFAULT_TRIGGER_PORT, envvar="HOTSERVE_TRIGGER_PORT", help="Trigger listener port"
)
@click.option("--timeout", default=5.0, help="Request timeout in seconds")
def trigger(port: int, timeout: float) -> None:
    """Ask a running server to reload its clients.

    Meant to be called by an external file watcher, e.g.
    ``watchexec -- hotserve trigger``.
    """
    url = f"http://127.0.0.1:{port}/reload"
    try:
        response = httpx.post(url, timeout=timeout, trust_env=False)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Reload trigger failed: {escape(str(e))}[/red]")
        raise SystemExit(1) from e

    data = response.json()
    console.print(f"[green]Reloaded {data['delivered']} client(s)[/green]")


if __name__ == "__main__":
    cli()
