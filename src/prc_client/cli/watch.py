"""Live event watching command."""

import asyncio
from typing import Annotated, Any

import typer

from prc_client.api import EntityType, EventType, PRCClient, SubscriptionConfig, SubscriptionEvent
from prc_client.cli.common import ServerKeyOption, console, run_async_command

_EVENT_STYLES: dict[EventType, str] = {
    EventType.PLAYER_JOIN: "green",
    EventType.PLAYER_LEAVE: "red",
    EventType.PLAYER_UPDATE: "yellow",
    EventType.VEHICLE_SPAWN: "green",
    EventType.VEHICLE_DESPAWN: "red",
    EventType.VEHICLE_UPDATE: "yellow",
    EventType.KILL: "magenta",
    EventType.MOD_CALL: "bold red",
    EventType.COMMAND: "cyan",
    EventType.JOIN_LOG: "blue",
    EventType.INITIAL_STATE: "dim",
}


def describe(event: SubscriptionEvent) -> str:
    """One-line human readable summary of an event."""
    data: Any = event.data
    if event.type == EventType.INITIAL_STATE:
        return f"{event.entity_type.value}: {len(data)} record(s)"
    if not isinstance(data, dict):
        return str(data)

    match event.type:
        case EventType.PLAYER_JOIN | EventType.PLAYER_LEAVE:
            return f"{data.get('Player')} ({data.get('Team') or 'no team'})"
        case EventType.PLAYER_UPDATE:
            changed = sorted(k for k in data if (event.previous or {}).get(k) != data.get(k))
            return f"{data.get('Player')} changed {', '.join(changed)}"
        case EventType.VEHICLE_SPAWN | EventType.VEHICLE_DESPAWN | EventType.VEHICLE_UPDATE:
            return f"{data.get('Name')} owned by {data.get('Owner')}"
        case EventType.KILL:
            return f"{data.get('Killer')} killed {data.get('Killed')}"
        case EventType.COMMAND:
            return f"{data.get('Player')}: {data.get('Command')}"
        case EventType.MOD_CALL:
            return f"{data.get('Caller')} called a moderator"
        case EventType.JOIN_LOG:
            action = "joined" if data.get("Join") else "left"
            return f"{data.get('Player')} {action}"
        case _:
            return str(data)


def print_event(event: SubscriptionEvent) -> None:
    style = _EVENT_STYLES.get(event.type, "white")
    stamp = event.observed_at.strftime("%H:%M:%S")
    console.print(
        f"[dim]{stamp}[/dim] [{style}]{event.type.value:<16}[/{style}] {describe(event)}"
    )


def watch(
    entity: Annotated[
        list[EntityType] | None,
        typer.Option(
            "--entity",
            "-e",
            help="Entity type to watch (repeatable). Defaults to players.",
        ),
    ] = None,
    interval: Annotated[
        int,
        typer.Option(
            "--interval",
            "-i",
            min=100,
            help="Poll interval in milliseconds",
        ),
    ] = 5000,
    initial: Annotated[
        bool,
        typer.Option(
            "--initial",
            help="Print the current state before changes",
        ),
    ] = False,
    duration: Annotated[
        float | None,
        typer.Option(
            "--duration",
            help="Stop after this many seconds (default: until interrupted)",
        ),
    ] = None,
    server_key: ServerKeyOption = None,
) -> None:
    """Watch server activity and print events as they happen.

    Examples:
        prc watch
        prc watch -e players -e kills --interval 2000
        prc watch -e commands --initial
    """
    entity_types = entity or [EntityType.PLAYERS]
    config = SubscriptionConfig(
        poll_interval_ms=interval,
        retry_interval_ms=max(interval * 2, 1000),
        include_initial_state=initial,
        error_handler=lambda error, _sub: console.print(f"[red]Poll failed:[/red] {error}"),
    )

    async def _watch() -> None:
        async with PRCClient(server_key) as client:
            subscription = client.subscribe(entity_types, config)
            subscription.on(EventType.ANY, print_event)
            await subscription.start()
            console.print(
                f"[bold]Watching {', '.join(e.value for e in entity_types)}[/bold] "
                f"[dim](every {interval}ms, Ctrl+C to stop)[/dim]"
            )
            try:
                if duration is None:
                    await asyncio.Event().wait()
                else:
                    await asyncio.sleep(duration)
            finally:
                await subscription.close()

    try:
        run_async_command(_watch(), error_prefix="Watch failed")
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped.[/dim]")
