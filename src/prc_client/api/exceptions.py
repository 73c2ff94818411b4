"""PRC client exceptions and the API error-code taxonomy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Error codes returned in PRC API error bodies.

    Codes 1xxx are server communication failures, 2xxx authentication,
    3xxx command/server state, 4xxx rate limits and restrictions,
    and 999x access/module problems.
    """

    UNKNOWN = 0
    SERVER_COMMUNICATION = 1001
    INTERNAL_ERROR = 1002
    MISSING_SERVER_KEY = 2000
    INVALID_SERVER_KEY_FORMAT = 2001
    INVALID_SERVER_KEY = 2002
    INVALID_GLOBAL_KEY = 2003
    BANNED_SERVER_KEY = 2004
    INVALID_COMMAND = 3001
    SERVER_OFFLINE = 3002
    RATE_LIMITED = 4001
    RESTRICTED_COMMAND = 4002
    PROHIBITED_MESSAGE = 4003
    RESTRICTED_RESOURCE = 9998
    MODULE_OUTDATED = 9999

    @classmethod
    def parse(cls, value: Any) -> ErrorCode:
        """Coerce a raw code from a response body, falling back to UNKNOWN."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            return cls.UNKNOWN

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS: dict[ErrorCode, str] = {
    ErrorCode.UNKNOWN: "Unknown error",
    ErrorCode.SERVER_COMMUNICATION: "Error communicating with the game server",
    ErrorCode.INTERNAL_ERROR: "Internal API error",
    ErrorCode.MISSING_SERVER_KEY: "No server key provided",
    ErrorCode.INVALID_SERVER_KEY_FORMAT: "Server key has an invalid format",
    ErrorCode.INVALID_SERVER_KEY: "Server key is invalid or expired",
    ErrorCode.INVALID_GLOBAL_KEY: "Global API key is invalid",
    ErrorCode.BANNED_SERVER_KEY: "Server key is banned",
    ErrorCode.INVALID_COMMAND: "Invalid command",
    ErrorCode.SERVER_OFFLINE: "Server is offline (no players in game)",
    ErrorCode.RATE_LIMITED: "Rate limited",
    ErrorCode.RESTRICTED_COMMAND: "Command is restricted",
    ErrorCode.PROHIBITED_MESSAGE: "Message contains prohibited content",
    ErrorCode.RESTRICTED_RESOURCE: "Resource is restricted",
    ErrorCode.MODULE_OUTDATED: "In-game module is out of date",
}

AUTH_CODES = frozenset(
    {
        ErrorCode.MISSING_SERVER_KEY,
        ErrorCode.INVALID_SERVER_KEY_FORMAT,
        ErrorCode.INVALID_SERVER_KEY,
        ErrorCode.INVALID_GLOBAL_KEY,
        ErrorCode.BANNED_SERVER_KEY,
    }
)
COMMAND_CODES = frozenset(
    {
        ErrorCode.INVALID_COMMAND,
        ErrorCode.SERVER_OFFLINE,
        ErrorCode.RESTRICTED_COMMAND,
        ErrorCode.PROHIBITED_MESSAGE,
    }
)
SERVER_CODES = frozenset({ErrorCode.SERVER_COMMUNICATION, ErrorCode.INTERNAL_ERROR})


@dataclass(frozen=True)
class RequestContext:
    """Where a failed request was headed and how far it got."""

    method: str
    route: str
    params: dict[str, Any] = field(default_factory=dict)
    attempt: int = 0
    bucket: str | None = None


class PRCClientError(Exception):
    """Base exception for PRC client errors."""

    pass


class PRCConfigurationError(PRCClientError):
    """Raised at construction time for invalid or unsatisfiable configuration."""

    pass


class QueueFullError(PRCClientError):
    """Raised when a bounded request queue cannot accept another task."""

    pass


class SubscriptionClosedError(PRCClientError):
    """Raised when starting a subscription that has already been closed."""

    pass


class PRCAPIError(PRCClientError):
    """Structured error for a failed API call.

    Attributes are fixed at construction; assigning to them afterwards
    raises AttributeError.
    """

    _FIELDS = frozenset(
        {"code", "status", "message", "retry_after", "is_rate_limit", "request_context"}
    )

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | int = ErrorCode.UNKNOWN,
        status: int | None = None,
        retry_after: float | None = None,
        is_rate_limit: bool = False,
        request_context: RequestContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = ErrorCode.parse(code)
        self.status = status
        self.retry_after = retry_after
        self.is_rate_limit = is_rate_limit
        self.request_context = request_context
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._FIELDS and getattr(self, "_frozen", False):
            raise AttributeError(f"{type(self).__name__}.{name} is read-only")
        super().__setattr__(name, value)

    @property
    def is_retryable(self) -> bool:
        """Whether the failure class is worth another attempt."""
        if self.is_rate_limit:
            return True
        if self.status is None:
            return self.code in (ErrorCode.UNKNOWN, *SERVER_CODES)
        return self.status >= 500

    def with_context(self, request_context: RequestContext) -> PRCAPIError:
        """Return a copy of this error carrying a different request context."""
        clone = type(self)(
            self.message,
            code=self.code,
            status=self.status,
            retry_after=self.retry_after,
            is_rate_limit=self.is_rate_limit,
            request_context=request_context,
        )
        clone.__cause__ = self.__cause__
        return clone

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        ctx = self.request_context
        return {
            "error_type": type(self).__name__,
            "code": int(self.code),
            "status": self.status,
            "message": self.message,
            "retry_after": self.retry_after,
            "is_rate_limit": self.is_rate_limit,
            "method": ctx.method if ctx else None,
            "route": ctx.route if ctx else None,
            "attempt": ctx.attempt if ctx else None,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={int(self.code)}, status={self.status}, "
            f"message={self.message!r})"
        )


class PRCAuthenticationError(PRCAPIError):
    """Raised for missing, malformed, invalid or banned keys (2000-2004)."""

    pass


class PRCRateLimitError(PRCAPIError):
    """Raised when the API rejects a call as rate limited (429 / 4001)."""

    pass


class PRCServerError(PRCAPIError):
    """Raised for 5xx responses and server communication failures."""

    pass


class PRCNetworkError(PRCAPIError):
    """Raised when the request never produced an HTTP response."""

    pass


class PRCCommandError(PRCAPIError):
    """Raised when a command is invalid, restricted or the server is offline."""

    pass
