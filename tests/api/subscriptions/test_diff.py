"""Unit tests for snapshot diffing."""

import pytest

from prc_client.api.subscriptions import (
    EntityType,
    EventType,
    KeyedSnapshot,
    LogSnapshot,
    build_snapshot,
    diff,
    diff_keyed,
    diff_log,
)
from prc_client.api.subscriptions.diff import record_key
from tests.fixtures.prc_responses import make_command, make_kill, make_player


def players(*records):
    return build_snapshot(EntityType.PLAYERS, list(records))


class TestRecordKey:
    """Tests for identity keys of keyed collections."""

    def test_player_key(self) -> None:
        assert record_key(EntityType.PLAYERS, make_player("Alice", 1001)) == "Alice:1001"

    def test_vehicle_key(self) -> None:
        record = {"Name": "Falcon", "Owner": "Alice"}
        assert record_key(EntityType.VEHICLES, record) == "Alice:Falcon"

    def test_missing_identity(self) -> None:
        assert record_key(EntityType.PLAYERS, {"Team": "Police"}) is None
        assert record_key(EntityType.VEHICLES, {"Name": "Falcon"}) is None

    def test_log_types_have_no_key(self) -> None:
        with pytest.raises(ValueError):
            record_key(EntityType.KILLS, {})


class TestBuildSnapshot:
    """Tests for baseline snapshots."""

    def test_keyed_baseline(self) -> None:
        snapshot = players(make_player("Alice", 1001), make_player("Bob", 1002))

        assert isinstance(snapshot, KeyedSnapshot)
        assert set(snapshot.records) == {"Alice:1001", "Bob:1002"}

    def test_log_baseline_tracks_newest_timestamp(self) -> None:
        snapshot = build_snapshot(
            EntityType.KILLS,
            [make_kill("A:1", "B:2", 100), make_kill("C:3", "D:4", 200)],
        )

        assert isinstance(snapshot, LogSnapshot)
        assert snapshot.max_timestamp == 200
        assert len(snapshot.fingerprints) == 1

    def test_empty_and_none(self) -> None:
        assert build_snapshot(EntityType.PLAYERS, None) == KeyedSnapshot()
        assert build_snapshot(EntityType.KILLS, []) == LogSnapshot()

    def test_non_list_rejected(self) -> None:
        with pytest.raises(TypeError):
            build_snapshot(EntityType.PLAYERS, {"Player": "Alice:1001"})

    def test_entries_without_timestamp_ignored(self) -> None:
        snapshot = build_snapshot(
            EntityType.COMMANDS,
            [{"Player": "A:1", "Command": ":h", "Timestamp": "soon"}],
        )
        assert snapshot.max_timestamp is None


class TestDiffKeyed:
    """Tests for keyed collection diffs."""

    def test_join_and_leave(self) -> None:
        previous = players(make_player("Alice", 1001), make_player("Bob", 1002))

        _, events = diff_keyed(
            EntityType.PLAYERS,
            previous,
            [make_player("Alice", 1001), make_player("Carol", 1003)],
        )

        assert [(e.type, e.data["Player"]) for e in events] == [
            (EventType.PLAYER_JOIN, "Carol:1003"),
            (EventType.PLAYER_LEAVE, "Bob:1002"),
        ]

    def test_update_carries_previous(self) -> None:
        previous = players(make_player("Alice", 1001, team="Civilian"))

        snapshot, events = diff_keyed(
            EntityType.PLAYERS,
            previous,
            [make_player("Alice", 1001, team="Police")],
        )

        assert len(events) == 1
        assert events[0].type == EventType.PLAYER_UPDATE
        assert events[0].data["Team"] == "Police"
        assert events[0].previous["Team"] == "Civilian"
        assert snapshot.records["Alice:1001"]["Team"] == "Police"

    def test_order_is_added_updated_removed(self) -> None:
        previous = players(make_player("Alice", 1001), make_player("Bob", 1002))

        _, events = diff_keyed(
            EntityType.PLAYERS,
            previous,
            [make_player("Alice", 1001, team="Fire"), make_player("Carol", 1003)],
        )

        assert [e.type for e in events] == [
            EventType.PLAYER_JOIN,
            EventType.PLAYER_UPDATE,
            EventType.PLAYER_LEAVE,
        ]

    def test_unchanged_collection_is_quiet(self) -> None:
        previous = players(make_player("Alice", 1001))
        _, events = diff_keyed(EntityType.PLAYERS, previous, [make_player("Alice", 1001)])
        assert events == []

    def test_vehicles(self) -> None:
        previous = build_snapshot(
            EntityType.VEHICLES,
            [{"Name": "Falcon", "Owner": "Alice", "Texture": "Standard"}],
        )

        _, events = diff_keyed(
            EntityType.VEHICLES,
            previous,
            [
                {"Name": "Falcon", "Owner": "Alice", "Texture": "Undercover"},
                {"Name": "Bullhorn", "Owner": "Bob", "Texture": None},
            ],
        )

        assert [e.type for e in events] == [EventType.VEHICLE_SPAWN, EventType.VEHICLE_UPDATE]

    def test_identical_vehicles_tracked_separately(self) -> None:
        falcon = {"Name": "Falcon", "Owner": "Alice", "Texture": "Standard"}
        previous = build_snapshot(EntityType.VEHICLES, [falcon, dict(falcon)])
        assert len(previous.records) == 2

        snapshot, events = diff_keyed(EntityType.VEHICLES, previous, [dict(falcon)])

        assert [e.type for e in events] == [EventType.VEHICLE_DESPAWN]
        assert list(snapshot.records) == ["Alice:Falcon"]

    def test_empty_poll_removes_everyone(self) -> None:
        previous = players(make_player("Alice", 1001), make_player("Bob", 1002))
        snapshot, events = diff_keyed(EntityType.PLAYERS, previous, [])

        assert {e.type for e in events} == {EventType.PLAYER_LEAVE}
        assert snapshot.records == {}


class TestDiffLog:
    """Tests for append-only log diffs."""

    def test_new_entries_after_high_water_mark(self) -> None:
        previous = build_snapshot(EntityType.KILLS, [make_kill("A:1", "B:2", 100)])

        snapshot, events = diff_log(
            EntityType.KILLS,
            previous,
            [make_kill("A:1", "B:2", 100), make_kill("C:3", "D:4", 150)],
        )

        assert [e.data["Timestamp"] for e in events] == [150]
        assert events[0].type == EventType.KILL
        assert snapshot.max_timestamp == 150

    def test_same_timestamp_told_apart_by_content(self) -> None:
        previous = build_snapshot(EntityType.COMMANDS, [make_command("A:1", ":h one", 100)])

        _, events = diff_log(
            EntityType.COMMANDS,
            previous,
            [make_command("A:1", ":h one", 100), make_command("B:2", ":h two", 100)],
        )

        assert [e.data["Command"] for e in events] == [":h two"]

    def test_same_timestamp_seen_entries_not_repeated(self) -> None:
        first = build_snapshot(EntityType.COMMANDS, [make_command("A:1", ":h one", 100)])
        second, _ = diff_log(
            EntityType.COMMANDS,
            first,
            [make_command("A:1", ":h one", 100), make_command("B:2", ":h two", 100)],
        )

        _, events = diff_log(
            EntityType.COMMANDS,
            second,
            [make_command("A:1", ":h one", 100), make_command("B:2", ":h two", 100)],
        )

        assert events == []

    def test_older_entries_ignored(self) -> None:
        previous = build_snapshot(EntityType.KILLS, [make_kill("A:1", "B:2", 200)])
        _, events = diff_log(EntityType.KILLS, previous, [make_kill("C:3", "D:4", 150)])
        assert events == []

    def test_events_sorted_by_timestamp(self) -> None:
        previous = build_snapshot(EntityType.KILLS, [make_kill("A:1", "B:2", 100)])

        _, events = diff_log(
            EntityType.KILLS,
            previous,
            [make_kill("E:5", "F:6", 300), make_kill("C:3", "D:4", 200)],
        )

        assert [e.data["Timestamp"] for e in events] == [200, 300]

    def test_duplicates_within_poll_reported_once(self) -> None:
        previous = build_snapshot(EntityType.KILLS, [make_kill("A:1", "B:2", 100)])
        kill = make_kill("C:3", "D:4", 200)

        _, events = diff_log(EntityType.KILLS, previous, [kill, dict(kill)])

        assert len(events) == 1

    def test_empty_log_baseline_then_entries(self) -> None:
        previous = build_snapshot(EntityType.MOD_CALLS, [])
        record = {"Caller": "A:1", "Moderator": None, "Timestamp": 50}

        _, events = diff_log(EntityType.MOD_CALLS, previous, [record])

        assert [e.type for e in events] == [EventType.MOD_CALL]

    def test_answered_mod_call_not_reported_again(self) -> None:
        call = {"Caller": "A:1", "Moderator": None, "Timestamp": 300}
        previous = build_snapshot(EntityType.MOD_CALLS, [call])

        snapshot, events = diff_log(
            EntityType.MOD_CALLS, previous, [{**call, "Moderator": "M:9"}]
        )

        assert events == []
        assert snapshot == previous

    def test_answered_older_mod_call_not_reported(self) -> None:
        older = {"Caller": "A:1", "Moderator": None, "Timestamp": 200}
        newest = {"Caller": "B:2", "Moderator": None, "Timestamp": 300}
        previous = build_snapshot(EntityType.MOD_CALLS, [older, newest])

        _, events = diff_log(
            EntityType.MOD_CALLS,
            previous,
            [{**older, "Moderator": "M:9"}, {**newest, "Moderator": "M:9"}],
        )

        assert events == []

    def test_log_trimmed_by_server_keeps_high_water_mark(self) -> None:
        previous = build_snapshot(EntityType.KILLS, [make_kill("A:1", "B:2", 100)])
        snapshot, events = diff_log(EntityType.KILLS, previous, [])

        assert events == []
        assert snapshot.max_timestamp == 100


class TestDiffDispatch:
    def test_dispatches_on_snapshot_type(self) -> None:
        keyed = players(make_player("Alice", 1001))
        log = build_snapshot(EntityType.JOINS, [])

        _, keyed_events = diff(EntityType.PLAYERS, keyed, [])
        _, log_events = diff(
            EntityType.JOINS,
            log,
            [{"Join": False, "Timestamp": 10, "Player": "Alice:1001"}],
        )

        assert keyed_events[0].type == EventType.PLAYER_LEAVE
        assert log_events[0].type == EventType.JOIN_LOG

    def test_event_parse_uses_entity_schema(self) -> None:
        previous = players()
        _, events = diff(EntityType.PLAYERS, previous, [make_player("Alice", 1001)])

        parsed = events[0].parse()
        assert parsed.name == "Alice"
        assert parsed.user_id == 1001
