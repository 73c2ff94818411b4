"""Common CLI option factories and helpers.

It provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- Shared option type aliases for commands that talk to the API
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from prc_client.api import PRCAPIError

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _status() -> ServerStatus:
            async with PRCClient() as client:
                return await client.get_server()

        server = run_async_command(_status(), error_prefix="Status failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except PRCAPIError as e:
        console.print(f"[red]{error_prefix}:[/red] {e.message} [dim](code {int(e.code)})[/dim]")
        raise typer.Exit(1) from None
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

ServerKeyOption = Annotated[
    str | None,
    typer.Option(
        "--server-key",
        "-k",
        envvar="PRC_SERVER_KEY",
        help="Private server key (defaults to PRC_SERVER_KEY)",
        show_default=False,
    ),
]
"""Server key override option.

Usage:
    def status(server_key: ServerKeyOption = None) -> None:
"""

JsonOption = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Print raw JSON instead of a table",
    ),
]
"""JSON output toggle.

Usage:
    def players(as_json: JsonOption = False) -> None:
"""
