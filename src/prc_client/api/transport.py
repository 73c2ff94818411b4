"""HTTP transport for the PRC API.

One call to :meth:`HTTPTransport.send` is one network attempt: it applies
the per-attempt timeout, decodes JSON, and either returns the response or
raises :class:`PRCNetworkError`. Mapping a non-success status to a
structured error is done by :func:`error_from_response`.
"""

from __future__ import annotations

import asyncio
import json as jsonlib
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from prc_client.config import Settings

from .exceptions import (
    AUTH_CODES,
    COMMAND_CODES,
    SERVER_CODES,
    ErrorCode,
    PRCAPIError,
    PRCAuthenticationError,
    PRCCommandError,
    PRCNetworkError,
    PRCRateLimitError,
    PRCServerError,
    RequestContext,
)

logger = logging.getLogger(__name__)

USER_AGENT = "prc-client"


@dataclass(frozen=True)
class TransportResponse:
    """Decoded HTTP response."""

    status: int
    headers: httpx.Headers
    data: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HTTPTransport:
    """Thin wrapper over ``httpx.AsyncClient`` with PRC authentication headers."""

    def __init__(
        self,
        settings: Settings,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            settings: Client settings (keys, base URL, timeout, keep-alive)
            client: Pre-built httpx client (takes ownership)
            transport: Custom httpx transport (e.g. ``httpx.MockTransport`` in tests)
        """
        self._timeout = settings.timeout_ms / 1000
        headers = {
            "Server-Key": settings.server_key,
            "Accept": "application/json",
            "User-Agent": USER_AGENT,
        }
        if settings.global_key:
            headers["Authorization"] = settings.global_key

        if client is None:
            limits = (
                httpx.Limits()
                if settings.keep_alive
                else httpx.Limits(max_keepalive_connections=0)
            )
            client = httpx.AsyncClient(
                base_url=settings.base_url,
                headers=headers,
                timeout=httpx.Timeout(self._timeout),
                limits=limits,
                transport=transport,
            )
        else:
            client.headers.update(headers)
        self._client = client

    async def send(
        self,
        method: str,
        route: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> TransportResponse:
        """Perform one HTTP attempt.

        Raises:
            PRCNetworkError: On connection failures and timeouts
        """
        logger.debug("%s %s", method, route)
        try:
            async with asyncio.timeout(self._timeout):
                response = await self._client.request(method, route, params=params, json=json)
        except (httpx.TransportError, TimeoutError) as e:
            raise PRCNetworkError(
                f"Request to {route} failed: {str(e) or type(e).__name__}",
                code=ErrorCode.UNKNOWN,
            ) from e

        return TransportResponse(
            status=response.status_code,
            headers=response.headers,
            data=_decode(response),
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except (jsonlib.JSONDecodeError, UnicodeDecodeError):
        return response.text


def _retry_after(response: TransportResponse) -> float | None:
    """Server retry hint in seconds, from the body or the Retry-After header."""
    candidates: list[Any] = []
    if isinstance(response.data, dict):
        candidates.append(response.data.get("retry_after"))
    candidates.append(response.headers.get("retry-after"))
    for value in candidates:
        if value is None:
            continue
        try:
            seconds = float(value)
        except (TypeError, ValueError):
            continue
        if seconds > 1e9:
            # Epoch timestamp rather than a duration
            continue
        return max(0.0, seconds)
    return None


def is_rate_limited(response: TransportResponse) -> bool:
    if response.status == 429:
        return True
    return (
        isinstance(response.data, dict)
        and ErrorCode.parse(response.data.get("code")) == ErrorCode.RATE_LIMITED
    )


def error_from_response(
    response: TransportResponse,
    context: RequestContext | None = None,
) -> PRCAPIError:
    """Convert a non-success response into the matching structured error."""
    body = response.data if isinstance(response.data, dict) else {}
    code = ErrorCode.parse(body.get("code"))
    message = str(body.get("message") or "")
    status = response.status

    if is_rate_limited(response):
        return PRCRateLimitError(
            message or "Rate limited",
            code=ErrorCode.RATE_LIMITED,
            status=status,
            retry_after=_retry_after(response),
            is_rate_limit=True,
            request_context=context,
        )

    error_cls: type[PRCAPIError]
    if code in AUTH_CODES or (status in (401, 403) and code == ErrorCode.UNKNOWN):
        error_cls = PRCAuthenticationError
    elif code in COMMAND_CODES:
        error_cls = PRCCommandError
    elif status >= 500 or code in SERVER_CODES:
        error_cls = PRCServerError
    else:
        error_cls = PRCAPIError

    if not message:
        message = f"PRC API error ({status}): {code.description}"

    return error_cls(message, code=code, status=status, request_context=context)
