from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple

import structlog

from agrisync.exceptions import AuthenticationError

log = structlog.get_logger(__name__)

LoginFn = Callable[[], Awaitable[Dict[str, Any]]]


class TokenProvider(Protocol):
    async def get_token(self) -> str: ...

    async def refresh_token(self) -> str: ...

    def is_token_valid(self) -> bool: ...


def parse_login_response(payload: Any) -> Tuple[str, Optional[int]]:
    """
    Returns (token, lifetime_seconds) from any login shape the outsource API
    is known to return. lifetime is None when the response does not say.
    """
    if not isinstance(payload, dict):
        raise AuthenticationError("Invalid token response", {"details": repr(payload)[:200]})

    user_info = payload.get("userInfo")
    if isinstance(user_info, dict) and user_info.get("token"):
        return user_info["token"], None
    if payload.get("accessToken"):
        return payload["accessToken"], payload.get("expiresIn")
    if payload.get("access_token"):
        return payload["access_token"], payload.get("expires_in")
    if payload.get("token"):
        return payload["token"], payload.get("expiresIn") or payload.get("expires_in")

    raise AuthenticationError(
        "Invalid token response - check login API response structure",
        {"details": f"keys={sorted(payload)}"},
    )


class TokenManager:
    """
    Caches the outsource bearer token and renews it shortly before expiry.

    The token is treated as valid while ``now <= expiry - refresh_buffer``.
    Errors raised by ``login`` propagate unchanged; the API client is the
    layer that retries (once, on a 401).
    """

    def __init__(
        self,
        login: LoginFn,
        refresh_buffer: int = 60,
        default_ttl: int = 3600,
        clock: Callable[[], float] = time.time,
        initial_token: Optional[str] = None,
    ):
        self._login = login
        self._refresh_buffer = refresh_buffer
        self._default_ttl = default_ttl
        self._clock = clock
        self._lock = asyncio.Lock()
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        if initial_token:
            self._store(initial_token, None)

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def _store(self, token: str, lifetime: Optional[int]) -> None:
        ttl = int(lifetime) if lifetime else self._default_ttl
        self._token = token
        self._expires_at = self._clock() + ttl

    def is_token_valid(self) -> bool:
        return bool(self._token) and self._clock() <= self._expires_at - self._refresh_buffer

    def clear(self) -> None:
        self._token = None
        self._expires_at = 0.0

    async def _fetch_token(self) -> str:
        log.info("token.fetching")
        payload = await self._login()
        token, lifetime = parse_login_response(payload)
        self._store(token, lifetime)
        log.info("token.fetched", expires_in=int(self._expires_at - self._clock()))
        return token

    async def get_token(self) -> str:
        if self.is_token_valid():
            return self._token
        async with self._lock:
            # Another caller may have logged in while we waited.
            if self.is_token_valid():
                return self._token
            return await self._fetch_token()

    async def refresh_token(self) -> str:
        async with self._lock:
            self.clear()
            return await self._fetch_token()
