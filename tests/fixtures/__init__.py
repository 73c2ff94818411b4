"""Test fixtures for the PRC client."""

from .prc_responses import (
    BANS_RESPONSE,
    COMMAND_LOGS_RESPONSE,
    JOIN_LOGS_RESPONSE,
    KILL_LOGS_RESPONSE,
    MOD_CALLS_RESPONSE,
    PLAYERS_RESPONSE,
    QUEUE_RESPONSE,
    SERVER_RESPONSE,
    VEHICLES_RESPONSE,
)

__all__ = [
    # Mock PRC API responses
    "BANS_RESPONSE",
    "COMMAND_LOGS_RESPONSE",
    "JOIN_LOGS_RESPONSE",
    "KILL_LOGS_RESPONSE",
    "MOD_CALLS_RESPONSE",
    "PLAYERS_RESPONSE",
    "QUEUE_RESPONSE",
    "SERVER_RESPONSE",
    "VEHICLES_RESPONSE",
]
