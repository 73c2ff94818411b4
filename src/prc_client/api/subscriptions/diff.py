"""Snapshot diffing for polled collections.

Two strategies:

- Keyed collections (players, vehicles) are compared record by record:
  new keys are joins/spawns, missing keys are leaves/despawns, and keys
  whose record changed are updates.
- Append-only logs (commands, kills, mod calls, joins) track the newest
  ``Timestamp`` seen. Entries newer than it are new; entries sharing the
  newest timestamp are told apart by the fields that never change once
  the entry is written. Fields filled in later (a mod call's
  ``Moderator``) do not make an entry new again.

Functions here are pure: they take the previous snapshot and the freshly
polled records and return the next snapshot plus the events to dispatch.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .events import LOG_EVENTS, EntityType, EventType, SubscriptionEvent

# (added, removed, updated) event types per keyed collection
_KEYED_EVENTS: dict[EntityType, tuple[EventType, EventType, EventType]] = {
    EntityType.PLAYERS: (EventType.PLAYER_JOIN, EventType.PLAYER_LEAVE, EventType.PLAYER_UPDATE),
    EntityType.VEHICLES: (
        EventType.VEHICLE_SPAWN,
        EventType.VEHICLE_DESPAWN,
        EventType.VEHICLE_UPDATE,
    ),
}

# Fields fixed when a log entry is written
_LOG_IDENTITY: dict[EntityType, tuple[str, ...]] = {
    EntityType.COMMANDS: ("Player", "Command", "Timestamp"),
    EntityType.KILLS: ("Killer", "Killed", "Timestamp"),
    EntityType.MOD_CALLS: ("Caller", "Timestamp"),
    EntityType.JOINS: ("Player", "Join", "Timestamp"),
}


@dataclass
class KeyedSnapshot:
    """Last observed records of a keyed collection, by identity key."""

    records: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class LogSnapshot:
    """High-water mark of an append-only log."""

    max_timestamp: int | None = None
    fingerprints: set[str] = field(default_factory=set)
    """Fingerprints of the entries stamped exactly ``max_timestamp``."""


Snapshot = KeyedSnapshot | LogSnapshot


def record_key(entity_type: EntityType, record: dict[str, Any]) -> str | None:
    """Identity key of a keyed record, or None if the record has none."""
    if entity_type == EntityType.PLAYERS:
        player = record.get("Player")
        return str(player) if player else None
    if entity_type == EntityType.VEHICLES:
        owner, name = record.get("Owner"), record.get("Name")
        if owner is None or name is None:
            return None
        return f"{owner}:{name}"
    raise ValueError(f"{entity_type.value} is not a keyed collection")


def fingerprint(entity_type: EntityType, record: dict[str, Any]) -> str:
    """Identity of a log entry, built from its write-once fields."""
    fields = _LOG_IDENTITY.get(entity_type)
    if fields is None:
        return json.dumps(record, sort_keys=True, default=str)
    return json.dumps([record.get(name) for name in fields], default=str)


def _timestamp(record: dict[str, Any]) -> int | None:
    value = record.get("Timestamp")
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _records(items: Any) -> list[dict[str, Any]]:
    if items is None:
        return []
    if not isinstance(items, list):
        raise TypeError(f"Expected a list of records, got {type(items).__name__}")
    return [item for item in items if isinstance(item, dict)]


# -----------------------------------------------------------------------------
# Baselines
# -----------------------------------------------------------------------------
def build_snapshot(entity_type: EntityType, items: Any) -> Snapshot:
    """Build the baseline snapshot from a first poll (no events)."""
    records = _records(items)
    if entity_type.is_log:
        return _log_snapshot(entity_type, records, LogSnapshot())

    keyed = KeyedSnapshot()
    occurrences: dict[str, int] = {}
    for record in records:
        key = record_key(entity_type, record)
        if key is None:
            continue
        # Identical keys (one owner, two of the same car) are tracked by position
        occurrences[key] = occurrences.get(key, 0) + 1
        if occurrences[key] > 1:
            key = f"{key}#{occurrences[key]}"
        keyed.records[key] = record
    return keyed


def _log_snapshot(
    entity_type: EntityType,
    records: list[dict[str, Any]],
    previous: LogSnapshot,
) -> LogSnapshot:
    max_ts = previous.max_timestamp
    for record in records:
        ts = _timestamp(record)
        if ts is not None and (max_ts is None or ts > max_ts):
            max_ts = ts

    if max_ts is None:
        return LogSnapshot()

    prints = set(previous.fingerprints) if max_ts == previous.max_timestamp else set()
    prints.update(fingerprint(entity_type, r) for r in records if _timestamp(r) == max_ts)
    return LogSnapshot(max_timestamp=max_ts, fingerprints=prints)


# -----------------------------------------------------------------------------
# Diffs
# -----------------------------------------------------------------------------
def diff_keyed(
    entity_type: EntityType,
    previous: KeyedSnapshot,
    items: Any,
) -> tuple[KeyedSnapshot, list[SubscriptionEvent]]:
    """Diff a keyed collection against its previous snapshot.

    Returns:
        Tuple of (next snapshot, events); joins first, then updates, then leaves
    """
    added_type, removed_type, updated_type = _KEYED_EVENTS[entity_type]
    current = build_snapshot(entity_type, items)
    assert isinstance(current, KeyedSnapshot)

    added: list[SubscriptionEvent] = []
    updated: list[SubscriptionEvent] = []
    for key, record in current.records.items():
        old = previous.records.get(key)
        if old is None:
            added.append(SubscriptionEvent(added_type, entity_type, record))
        elif old != record:
            updated.append(SubscriptionEvent(updated_type, entity_type, record, previous=old))

    removed = [
        SubscriptionEvent(removed_type, entity_type, record)
        for key, record in previous.records.items()
        if key not in current.records
    ]
    return current, added + updated + removed


def diff_log(
    entity_type: EntityType,
    previous: LogSnapshot,
    items: Any,
) -> tuple[LogSnapshot, list[SubscriptionEvent]]:
    """Diff an append-only log against its high-water mark.

    Returns:
        Tuple of (next snapshot, events ordered by timestamp)
    """
    event_type = LOG_EVENTS[entity_type]
    records = _records(items)

    fresh: list[tuple[int, dict[str, Any]]] = []
    seen: set[str] = set()
    for record in records:
        ts = _timestamp(record)
        if ts is None:
            continue
        fp = fingerprint(entity_type, record)
        if fp in seen:
            continue
        if previous.max_timestamp is None or ts > previous.max_timestamp:
            fresh.append((ts, record))
        elif ts == previous.max_timestamp and fp not in previous.fingerprints:
            fresh.append((ts, record))
        else:
            continue
        seen.add(fp)

    fresh.sort(key=lambda item: item[0])
    events = [SubscriptionEvent(event_type, entity_type, record) for _, record in fresh]
    return _log_snapshot(entity_type, records, previous), events


def diff(
    entity_type: EntityType,
    previous: Snapshot,
    items: Any,
) -> tuple[Snapshot, list[SubscriptionEvent]]:
    """Dispatch to the diff strategy for ``entity_type``."""
    if isinstance(previous, LogSnapshot):
        return diff_log(entity_type, previous, items)
    return diff_keyed(entity_type, previous, items)
