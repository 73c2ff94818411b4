"""Tests for the prc CLI commands."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from prc_client import __version__
from prc_client.api import EntityType, ErrorCode, EventType, PRCAuthenticationError
from prc_client.api.subscriptions import SubscriptionEvent
from prc_client.cli.app import app
from prc_client.cli.watch import describe
from prc_client.schemas import Player, ServerStatus
from tests.fixtures import PLAYERS_RESPONSE, SERVER_RESPONSE

runner = CliRunner()


def mock_client() -> MagicMock:
    """A PRCClient stand-in usable as ``async with PRCClient(...) as client``."""
    client = MagicMock()
    client.__aenter__.return_value = client
    client.__aexit__.return_value = None
    return client


@pytest.fixture
def client():
    client = mock_client()
    with patch("prc_client.cli.app.PRCClient", return_value=client) as client_class:
        client.client_class = client_class
        yield client


class TestGlobalFlags:
    """Tests for global CLI flags (--verbose, --quiet, --version)."""

    def test_global_help_shows_verbose_flag(self):
        """Main help text shows --verbose and -v flags."""
        result = runner.invoke(app, ["--help"])
        assert "-v" in result.stdout
        assert "--verbose" in result.stdout

    def test_global_help_shows_quiet_flag(self):
        """Main help text shows --quiet and -q flags."""
        result = runner.invoke(app, ["--help"])
        assert "-q" in result.stdout
        assert "--quiet" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    @pytest.mark.parametrize("name", ["status", "players", "command", "watch"])
    def test_commands_registered(self, name: str):
        result = runner.invoke(app, [name, "--help"])
        assert result.exit_code == 0
        assert "--server-key" in result.stdout


class TestPlayersCommand:
    """Tests for 'prc players'."""

    def test_table_output(self, client: MagicMock):
        client.get_players = AsyncMock(return_value=Player.from_api_list(PLAYERS_RESPONSE))

        result = runner.invoke(app, ["players"])

        assert result.exit_code == 0
        assert "Alice" in result.stdout
        assert "1A-01" in result.stdout

    def test_json_output(self, client: MagicMock):
        client.get_players = AsyncMock(return_value=Player.from_api_list(PLAYERS_RESPONSE))

        result = runner.invoke(app, ["players", "--json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data[0]["Player"] == "Alice:1001"

    def test_empty_server(self, client: MagicMock):
        client.get_players = AsyncMock(return_value=[])

        result = runner.invoke(app, ["players"])

        assert result.exit_code == 0
        assert "No players" in result.stdout

    def test_server_key_passed_through(self, client: MagicMock):
        client.get_players = AsyncMock(return_value=[])

        runner.invoke(app, ["players", "--server-key", "abc123"])

        client.client_class.assert_called_once_with("abc123")

    def test_api_error_exits_with_code(self, client: MagicMock):
        client.get_players = AsyncMock(
            side_effect=PRCAuthenticationError(
                "Invalid server-key", code=ErrorCode.INVALID_SERVER_KEY, status=403
            )
        )

        result = runner.invoke(app, ["players"])

        assert result.exit_code == 1
        assert "Invalid server-key" in result.stdout
        assert str(int(ErrorCode.INVALID_SERVER_KEY)) in result.stdout


class TestStatusCommand:
    """Tests for 'prc status'."""

    def test_shows_server_and_limits(self, client: MagicMock):
        client.get_server = AsyncMock(return_value=ServerStatus.from_api(SERVER_RESPONSE))
        client.get_status = AsyncMock(
            return_value={
                "rate_limits": {
                    "buckets": {
                        "global": {
                            "limit": 35,
                            "remaining": 3,
                            "remaining_percent": 8.57,
                            "reset_at": "2024-01-15T10:01:00+00:00",
                            "seconds_until_reset": 12.5,
                            "status": "critical",
                        }
                    },
                    "routes": {},
                },
                "queue": {"enabled": False},
                "cache": {"enabled": True, "size": 1, "hits": 4, "misses": 1},
                "inflight": 0,
                "subscriptions": 0,
            }
        )

        result = runner.invoke(app, ["status"])

        assert result.exit_code == 0
        assert "Liberty County Roleplay" in result.stdout
        assert "Rate Limits" in result.stdout
        assert "critical" in result.stdout
        assert "4 hits" in result.stdout


class TestCommandCommand:
    """Tests for 'prc command'."""

    def test_sends_command(self, client: MagicMock):
        client.execute_command = AsyncMock()

        result = runner.invoke(app, ["command", ":h Hello"])

        assert result.exit_code == 0
        client.execute_command.assert_awaited_once_with(":h Hello")
        assert "Sent:" in result.stdout


class TestWatchCommand:
    """Tests for 'prc watch'."""

    def test_watch_for_duration(self):
        subscription = MagicMock()
        subscription.start = AsyncMock()
        subscription.close = AsyncMock()
        client = mock_client()
        client.subscribe.return_value = subscription

        with patch("prc_client.cli.watch.PRCClient", return_value=client):
            result = runner.invoke(
                app, ["watch", "-e", "players", "-e", "kills", "-i", "1000", "--duration", "0"]
            )

        assert result.exit_code == 0
        entity_types, config = client.subscribe.call_args.args
        assert entity_types == [EntityType.PLAYERS, EntityType.KILLS]
        assert config.poll_interval_ms == 1000
        subscription.on.assert_called_once()
        assert subscription.on.call_args.args[0] == EventType.ANY
        subscription.close.assert_awaited_once()
        assert "Watching players, kills" in result.stdout

    def test_interval_lower_bound(self):
        result = runner.invoke(app, ["watch", "-i", "10"])
        assert result.exit_code != 0


class TestDescribe:
    """Tests for event summaries printed by watch."""

    def test_kill(self):
        event = SubscriptionEvent(
            EventType.KILL,
            EntityType.KILLS,
            {"Killer": "Alice:1001", "Killed": "Bob:1002", "Timestamp": 1},
        )
        assert describe(event) == "Alice:1001 killed Bob:1002"

    def test_player_update_lists_changed_fields(self):
        event = SubscriptionEvent(
            EventType.PLAYER_UPDATE,
            EntityType.PLAYERS,
            {"Player": "Alice:1001", "Team": "Police", "Callsign": "1A"},
            previous={"Player": "Alice:1001", "Team": "Civilian", "Callsign": None},
        )
        assert describe(event) == "Alice:1001 changed Callsign, Team"

    def test_initial_state(self):
        event = SubscriptionEvent(EventType.INITIAL_STATE, EntityType.PLAYERS, [{}, {}])
        assert describe(event) == "players: 2 record(s)"
