"""Pydantic schemas for parsing PRC API responses.

These schemas map directly to the private server API response structure
(``/v1/server`` and its sub-resources).
"""

from datetime import UTC, datetime

from pydantic import Field

from .base import SchemaBase


def split_player(value: str) -> tuple[str, int | None]:
    """Split the API's ``"Name:UserId"`` player format.

    Returns:
        Tuple of (name, user_id); user_id is None if absent or malformed
    """
    name, sep, raw_id = value.rpartition(":")
    if not sep:
        return value, None
    try:
        return name, int(raw_id)
    except ValueError:
        return value, None


class _PlayerRef(SchemaBase):
    """Mixin for models whose ``player`` field uses the ``Name:Id`` format."""

    player: str = Field(alias="Player", description="Player as Name:UserId")

    @property
    def name(self) -> str:
        return split_player(self.player)[0]

    @property
    def user_id(self) -> int | None:
        return split_player(self.player)[1]


class _Timestamped(SchemaBase):
    timestamp: int = Field(alias="Timestamp", description="Unix timestamp (seconds)")

    @property
    def occurred_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=UTC)


class ServerStatus(SchemaBase):
    """Private server summary.

    Maps to: GET /server
    """

    name: str = Field(alias="Name", description="Server name")
    owner_id: int = Field(alias="OwnerId", description="Roblox user ID of the owner")
    co_owner_ids: list[int] = Field(default_factory=list, alias="CoOwnerIds")
    current_players: int = Field(default=0, alias="CurrentPlayers")
    max_players: int = Field(default=0, alias="MaxPlayers")
    join_key: str = Field(default="", alias="JoinKey", description="Code used to join")
    acc_verified_req: str = Field(
        default="Disabled",
        alias="AccVerifiedReq",
        description="Account verification requirement",
    )
    team_balance: bool = Field(default=False, alias="TeamBalance")


class Player(_PlayerRef):
    """A player currently in the server.

    Maps to: GET /server/players
    """

    permission: str = Field(default="Normal", alias="Permission")
    callsign: str | None = Field(default=None, alias="Callsign")
    team: str | None = Field(default=None, alias="Team")


class JoinLog(_PlayerRef, _Timestamped):
    """A join or leave entry.

    Maps to: GET /server/joinlogs
    """

    join: bool = Field(alias="Join", description="True for a join, False for a leave")


class KillLog(_Timestamped):
    """A kill entry.

    Maps to: GET /server/killlogs
    """

    killed: str = Field(alias="Killed", description="Victim as Name:UserId")
    killer: str = Field(alias="Killer", description="Killer as Name:UserId")


class CommandLog(_PlayerRef, _Timestamped):
    """A command run in the server.

    Maps to: GET /server/commandlogs
    """

    command: str = Field(alias="Command")


class ModCall(_Timestamped):
    """A moderator call.

    Maps to: GET /server/modcalls
    """

    caller: str = Field(alias="Caller", description="Caller as Name:UserId")
    moderator: str | None = Field(
        default=None,
        alias="Moderator",
        description="Responding moderator (None while unanswered)",
    )


class Vehicle(SchemaBase):
    """A spawned vehicle.

    Maps to: GET /server/vehicles
    """

    name: str = Field(alias="Name", description="Vehicle model name")
    owner: str = Field(alias="Owner", description="Owner's player name")
    texture: str | None = Field(default=None, alias="Texture")
