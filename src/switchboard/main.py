"""CLI entry point for Switchboard."""

import asyncio
import json
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from switchboard import __version__

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Switchboard - hook dispatch and realtime service routing."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to listen on")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(),
    help="YAML config file",
)
def run(host: str | None, port: int | None, config_path: str | None) -> None:
    """Run the Switchboard server."""
    from switchboard.config import load_config
    from switchboard.server import create_server

    config = load_config(config_path)
    if host:
        config.host = host
    if port:
        config.port = port

    console.print(f"[bold blue]Switchboard[/bold blue] v{__version__}")
    console.print(f"System ID: {config.system_id}")
    console.print(f"Listening on: http://{config.host}:{config.port}")
    console.print(f"Realtime: ws://{config.host}:{config.port}{config.socket_prefix}/{{service}}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop[/dim]")
    console.print()

    server = create_server(config)

    try:
        server.run()
    except KeyboardInterrupt:
        console.print("\n[yellow]Shutting down...[/yellow]")


@cli.command()
@click.option(
    "--server",
    default="http://localhost:8420",
    help="Server URL",
)
def status(server: str) -> None:
    """Check server status."""
    import httpx

    try:
        response = httpx.get(f"{server}/health", timeout=5)
        data = response.json()

        console.print(f"[bold green]Server Status: {data['status']}[/bold green]")
        console.print(f"Hooks: {data['hooks']}")
        console.print(f"Services: {data['services']}")
        console.print(f"Open connections: {data['connections']}")

    except httpx.ConnectError:
        console.print(f"[bold red]Cannot connect to server at {server}[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(),
    help="YAML config file",
)
def hooks(config_path: str | None) -> None:
    """List configured hooks."""
    from switchboard.config import load_config
    from switchboard.hooks import HookError, HookRegistry

    config = load_config(config_path)
    try:
        registry = HookRegistry(config.hook_options())
    except HookError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)

    registered = registry.list_hooks()
    if not registered:
        console.print("[dim]No hooks configured[/dim]")
        return

    table = Table(title="Configured Hooks")
    table.add_column("Hook", style="cyan")
    table.add_column("Kind", style="green")
    table.add_column("Target")

    for hook in registered:
        table.add_row(hook["name"], hook["kind"], hook["target"])

    console.print(table)


@cli.command()
@click.argument("hook")
@click.option("--data", "data_json", default="{}", help="JSON payload")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(),
    help="YAML config file",
)
@click.option(
    "--timeout-ms",
    default=None,
    type=click.IntRange(min=1),
    help="Remote hook timeout",
)
def invoke(hook: str, data_json: str, config_path: str | None, timeout_ms: int | None) -> None:
    """Invoke a configured hook once and print its result."""
    from switchboard.config import load_config
    from switchboard.hooks import HookError, HookInvoker, HookRegistry

    try:
        data = json.loads(data_json)
    except ValueError as e:
        console.print(f"[red]Invalid JSON payload: {e}[/red]")
        sys.exit(1)

    config = load_config(config_path)

    async def call():
        registry = HookRegistry(config.hook_options())
        async with HookInvoker(registry, timeout_ms=timeout_ms or config.hook_timeout_ms) as invoker:
            return await invoker.invoke(hook, data)

    try:
        result = asyncio.run(call())
    except HookError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        sys.exit(1)

    click.echo(json.dumps(result, indent=2))


@cli.command()
@click.argument("service")
@click.option(
    "--server",
    default="http://localhost:8420",
    help="Server URL",
)
@click.option("--prefix", default="/socket", help="Realtime path prefix")
def connect(service: str, server: str, prefix: str) -> None:
    """Interactive session with a realtime service.

    Each input line is a method name optionally followed by a JSON payload,
    e.g. ``ping {"n": 1}``.
    """
    import websockets

    ws_url = server.replace("http://", "ws://").replace("https://", "wss://")

    async def session_loop():
        try:
            async with websockets.connect(f"{ws_url}{prefix}/{service}") as ws:
                console.print(f"[green]Connected to service {service}[/green]")
                console.print("[dim]Type 'quit' to exit[/dim]\n")

                while True:
                    try:
                        line = console.input("[bold cyan]>[/bold cyan] ")
                    except (KeyboardInterrupt, EOFError):
                        break

                    if line.strip().lower() in ("quit", "exit", "q"):
                        break
                    if not line.strip():
                        continue

                    method, _, payload = line.strip().partition(" ")
                    try:
                        data = json.loads(payload) if payload else {}
                    except ValueError as e:
                        console.print(f"[red]Invalid JSON payload: {e}[/red]")
                        continue

                    await ws.send(json.dumps({"method": method, "data": data}))

                    try:
                        frame = json.loads(await asyncio.wait_for(ws.recv(), timeout=5))
                    except asyncio.TimeoutError:
                        console.print("[dim]No reply[/dim]")
                        continue

                    style = "red" if frame.get("method") == "error" else "green"
                    console.print(f"[{style}]{frame.get('method')}[/{style}] {json.dumps(frame.get('data'))}")

        except Exception as e:
            console.print(f"[red]Connection error: {e}[/red]")

    asyncio.run(session_loop())


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
