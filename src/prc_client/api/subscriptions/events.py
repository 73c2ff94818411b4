"""Event and entity types for polling subscriptions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from prc_client.schemas import CommandLog, JoinLog, KillLog, ModCall, Player, SchemaBase, Vehicle


class EntityType(str, Enum):
    """Collections a subscription can poll."""

    PLAYERS = "players"
    COMMANDS = "commands"
    KILLS = "kills"
    MOD_CALLS = "mod_calls"
    JOINS = "joins"
    VEHICLES = "vehicles"

    @property
    def route(self) -> str:
        return _ROUTES[self]

    @property
    def schema(self) -> type[SchemaBase]:
        return _SCHEMAS[self]

    @property
    def is_log(self) -> bool:
        """True for append-only log collections (diffed by timestamp)."""
        return self not in (EntityType.PLAYERS, EntityType.VEHICLES)


_ROUTES: dict[EntityType, str] = {
    EntityType.PLAYERS: "/server/players",
    EntityType.COMMANDS: "/server/commandlogs",
    EntityType.KILLS: "/server/killlogs",
    EntityType.MOD_CALLS: "/server/modcalls",
    EntityType.JOINS: "/server/joinlogs",
    EntityType.VEHICLES: "/server/vehicles",
}

_SCHEMAS: dict[EntityType, type[SchemaBase]] = {
    EntityType.PLAYERS: Player,
    EntityType.COMMANDS: CommandLog,
    EntityType.KILLS: KillLog,
    EntityType.MOD_CALLS: ModCall,
    EntityType.JOINS: JoinLog,
    EntityType.VEHICLES: Vehicle,
}


class EventType(str, Enum):
    """Events dispatched to subscription handlers."""

    PLAYER_JOIN = "player_join"
    PLAYER_LEAVE = "player_leave"
    PLAYER_UPDATE = "player_update"
    VEHICLE_SPAWN = "vehicle_spawn"
    VEHICLE_DESPAWN = "vehicle_despawn"
    VEHICLE_UPDATE = "vehicle_update"
    COMMAND = "command"
    KILL = "kill"
    MOD_CALL = "mod_call"
    JOIN_LOG = "join_log"
    INITIAL_STATE = "initial_state"
    # Wildcard: handlers registered here receive every event
    ANY = "*"


# Event emitted for a new entry in each append-only log
LOG_EVENTS: dict[EntityType, EventType] = {
    EntityType.COMMANDS: EventType.COMMAND,
    EntityType.KILLS: EventType.KILL,
    EntityType.MOD_CALLS: EventType.MOD_CALL,
    EntityType.JOINS: EventType.JOIN_LOG,
}


@dataclass
class SubscriptionEvent:
    """A single change observed by a subscription.

    ``data`` is the raw API record (or the full collection for
    ``INITIAL_STATE``); ``previous`` holds the old record for update events.
    """

    type: EventType
    entity_type: EntityType
    data: Any
    previous: Any = None
    observed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def parse(self) -> SchemaBase | list[SchemaBase] | None:
        """Validate ``data`` into the entity's response model.

        Returns:
            A model instance, a list of models for ``INITIAL_STATE``, or None
            if the record does not match the schema
        """
        schema = self.entity_type.schema
        if isinstance(self.data, list):
            return schema.from_api_list(self.data)
        if isinstance(self.data, dict):
            try:
                return schema.from_api(self.data)
            except ValueError:
                return None
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "entity_type": self.entity_type.value,
            "data": self.data,
            "previous": self.previous,
            "observed_at": self.observed_at.isoformat(),
        }
