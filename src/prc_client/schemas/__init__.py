"""Pydantic schemas for PRC API payloads."""

from .base import SchemaBase
from .prc_api import (
    CommandLog,
    JoinLog,
    KillLog,
    ModCall,
    Player,
    ServerStatus,
    Vehicle,
    split_player,
)

__all__ = [
    "CommandLog",
    "JoinLog",
    "KillLog",
    "ModCall",
    "Player",
    "SchemaBase",
    "ServerStatus",
    "Vehicle",
    "split_player",
]
