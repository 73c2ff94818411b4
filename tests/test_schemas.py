"""Tests for PRC API response schemas."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from prc_client.schemas import (
    CommandLog,
    JoinLog,
    KillLog,
    ModCall,
    Player,
    ServerStatus,
    Vehicle,
    split_player,
)
from tests.fixtures import (
    COMMAND_LOGS_RESPONSE,
    JOIN_LOGS_RESPONSE,
    KILL_LOGS_RESPONSE,
    MOD_CALLS_RESPONSE,
    PLAYERS_RESPONSE,
    SERVER_RESPONSE,
    VEHICLES_RESPONSE,
)


class TestSplitPlayer:
    """Tests for the Name:UserId helper."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Alice:1001", ("Alice", 1001)),
            ("Alice", ("Alice", None)),
            ("Alice:abc", ("Alice:abc", None)),
            ("weird:name:42", ("weird:name", 42)),
        ],
    )
    def test_split(self, value: str, expected: tuple[str, int | None]) -> None:
        assert split_player(value) == expected


class TestServerStatus:
    def test_parse(self) -> None:
        server = ServerStatus.from_api(SERVER_RESPONSE)

        assert server.name == "Liberty County Roleplay"
        assert server.owner_id == 1234567
        assert server.current_players == 2
        assert server.team_balance is True

    def test_dump_by_alias_round_trips_wire_keys(self) -> None:
        server = ServerStatus.from_api(SERVER_RESPONSE)
        assert server.model_dump(by_alias=True)["JoinKey"] == "LCRP"

    def test_missing_required_field(self) -> None:
        with pytest.raises(ValidationError):
            ServerStatus.from_api({"OwnerId": 1})

    def test_unknown_fields_ignored(self) -> None:
        server = ServerStatus.from_api({**SERVER_RESPONSE, "NewField": 1})
        assert not hasattr(server, "NewField")


class TestPlayer:
    def test_parse(self) -> None:
        alice, bob = Player.from_api_list(PLAYERS_RESPONSE)

        assert alice.name == "Alice"
        assert alice.user_id == 1001
        assert alice.team == "Police"
        assert alice.callsign == "1A-01"
        assert bob.callsign is None

    def test_populate_by_name(self) -> None:
        player = Player(player="Carol:3", team="Fire")
        assert player.user_id == 3


class TestLogs:
    def test_join_log(self) -> None:
        entry = JoinLog.from_api(JOIN_LOGS_RESPONSE[0])

        assert entry.join is True
        assert entry.name == "Alice"
        assert entry.occurred_at == datetime.fromtimestamp(1704880000, tz=UTC)

    def test_kill_log(self) -> None:
        entry = KillLog.from_api(KILL_LOGS_RESPONSE[0])
        assert entry.killed == "Bob:1002"

    def test_command_log(self) -> None:
        entry = CommandLog.from_api(COMMAND_LOGS_RESPONSE[0])
        assert entry.user_id == 1001
        assert entry.command == ":h Welcome!"

    def test_mod_call_unanswered(self) -> None:
        entry = ModCall.from_api(MOD_CALLS_RESPONSE[0])
        assert entry.caller == "Bob:1002"
        assert entry.moderator is None

    def test_vehicle(self) -> None:
        vehicle = Vehicle.from_api(VEHICLES_RESPONSE[0])
        assert vehicle.name == "Falcon Stallion 350"
        assert vehicle.texture == "Standard"


class TestFromApiList:
    def test_skips_invalid_entries(self) -> None:
        items = [
            *KILL_LOGS_RESPONSE,
            {"Killer": "X:1"},
            {"Killed": "Y:2", "Killer": "Z:3", "Timestamp": 5},
        ]

        kills = KillLog.from_api_list(items)

        assert len(kills) == 2

    def test_none_is_empty(self) -> None:
        assert Player.from_api_list(None) == []
