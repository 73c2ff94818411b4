"""Main CLI application for the PRC client."""

import json
from typing import Annotated, Any

import typer
from rich.table import Table

from prc_client import __version__
from prc_client.api import PRCClient
from prc_client.cli import watch as watch_cmd
from prc_client.cli.common import JsonOption, ServerKeyOption, console, run_async_command
from prc_client.config import get_settings
from prc_client.logging import setup_logging

app = typer.Typer(
    name="prc",
    help="Query and watch a PRC private server.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"prc version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """PRC client - query and watch a private server."""
    setup_logging(get_settings(), verbose=verbose, quiet=quiet)


def _status_style(status: str) -> str:
    match status:
        case "healthy":
            return "green"
        case "warning":
            return "yellow"
        case "critical" | "exhausted":
            return "red"
        case _:
            return "white"


@app.command()
def status(server_key: ServerKeyOption = None) -> None:
    """Show server info and client diagnostics.

    Examples:
        prc status
        prc status --server-key abc123
    """

    async def _status() -> tuple[Any, dict[str, Any]]:
        async with PRCClient(server_key) as client:
            server = await client.get_server()
            return server, await client.get_status()

    server, diagnostics = run_async_command(_status(), error_prefix="Status failed")

    console.print(f"[bold]{server.name}[/bold]")
    console.print(f"  Players: {server.current_players}/{server.max_players}")
    console.print(f"  Join key: {server.join_key}")
    console.print(f"  Owner: {server.owner_id}")

    buckets = diagnostics["rate_limits"]["buckets"]
    if buckets:
        table = Table(title="Rate Limits")
        table.add_column("Bucket", style="cyan")
        table.add_column("Remaining", justify="right")
        table.add_column("Limit", justify="right")
        table.add_column("Resets In", justify="right")
        table.add_column("Status")

        for name, bucket in buckets.items():
            style = _status_style(bucket["status"])
            table.add_row(
                name,
                str(bucket["remaining"]),
                str(bucket["limit"]) if bucket["limit"] is not None else "-",
                f"{bucket['seconds_until_reset']:.1f}s",
                f"[{style}]{bucket['status']}[/{style}]",
            )
        console.print(table)

    cache = diagnostics["cache"]
    if cache["enabled"]:
        console.print(
            f"  Cache: {cache['size']} entries "
            f"({cache['hits']} hits, {cache['misses']} misses)"
        )


@app.command()
def players(server_key: ServerKeyOption = None, as_json: JsonOption = False) -> None:
    """List players currently in the server.

    Examples:
        prc players
        prc players --json
    """

    async def _players() -> list[Any]:
        async with PRCClient(server_key) as client:
            return await client.get_players()

    result = run_async_command(_players(), error_prefix="Fetching players failed")

    if as_json:
        console.print_json(json.dumps([p.model_dump(by_alias=True) for p in result]))
        return

    if not result:
        console.print("[dim]No players in the server.[/dim]")
        return

    table = Table(title=f"Players ({len(result)})")
    table.add_column("Name", style="cyan")
    table.add_column("User ID", justify="right")
    table.add_column("Team")
    table.add_column("Callsign")
    table.add_column("Permission")

    for player in result:
        table.add_row(
            player.name,
            str(player.user_id) if player.user_id is not None else "-",
            player.team or "-",
            player.callsign or "-",
            player.permission,
        )
    console.print(table)


@app.command()
def command(
    text: Annotated[str, typer.Argument(help='Command to run, e.g. ":h Hello"')],
    server_key: ServerKeyOption = None,
) -> None:
    """Run a command in the server.

    Examples:
        prc command ":h Server restart in 5 minutes"
    """

    async def _command() -> None:
        async with PRCClient(server_key) as client:
            await client.execute_command(text)

    run_async_command(_command(), error_prefix="Command failed")
    console.print(f"[green]Sent:[/green] {text}")


# Register subcommands
app.command(name="watch")(watch_cmd.watch)


if __name__ == "__main__":
    app()
