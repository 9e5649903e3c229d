from __future__ import annotations

import asyncio
import functools
import time
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
import structlog
from tenacity import (
    AsyncRetrying, RetryCallState, RetryError,
    retry_if_exception, stop_after_attempt,
)

from agrisync.auth import TokenProvider
from agrisync.exceptions import FetchError, RetryExhaustedError

log = structlog.get_logger(__name__)

LOGIN_PATH = "/api/JWT/Login"

T = TypeVar("T")
SleepFn = Callable[[float], Awaitable[None]]


async def login(http: httpx.AsyncClient, username: str, password: str) -> Dict[str, Any]:
    """POST credentials to the login endpoint. No Authorization header is sent."""
    resp = await http.post(
        LOGIN_PATH,
        json={"username": username, "password": password},
        headers={"Content-Type": "application/json"},
    )
    resp.raise_for_status()
    return resp.json()


class OutsourceClient:
    """
    Thin wrapper over an ``httpx.AsyncClient`` pointed at the reporting API.

    Every request carries ``Authorization: Bearer <token>`` except the login
    call itself. A 401 triggers exactly one token refresh and one repeat of
    the request; any other error status propagates as ``HTTPStatusError``.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        tokens: TokenProvider,
        max_retries: int = 3,
        default_retry_after: int = 60,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.http = http
        self.tokens = tokens
        self.max_retries = max_retries
        self.default_retry_after = default_retry_after
        self.sleep = sleep

    async def _send(self, path: str, body: Dict[str, Any], token: Optional[str]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if token and path != LOGIN_PATH:
            headers["Authorization"] = f"Bearer {token}"
        return await self.http.post(path, json=body, headers=headers)

    async def post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        t0 = time.monotonic()
        token = None if path == LOGIN_PATH else await self.tokens.get_token()
        resp = await self._send(path, body, token)

        if resp.status_code == 401 and path != LOGIN_PATH:
            log.warning("api.unauthorized.refreshing", path=path)
            token = await self.tokens.refresh_token()
            resp = await self._send(path, body, token)

        resp.raise_for_status()
        payload = resp.json()
        log.debug(
            "api.ok", path=path, status=resp.status_code,
            ms=int((time.monotonic() - t0) * 1000),
        )

        if isinstance(payload, dict) and payload.get("success") is False:
            raise FetchError(
                payload.get("errorMessage") or f"{path} reported failure",
                {"details": path},
            )
        return payload


# ── 429 handling ──────────────────────────────────────────────────────────────
# Applied per data-fetch function, not inside OutsourceClient.post.

def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429


def retry_after_seconds(response: httpx.Response, default: int) -> float:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return float(default)
    try:
        return max(0.0, float(int(raw.strip())))
    except ValueError:
        return float(default)


async def call_with_retry_after(
    call: Callable[[], Awaitable[T]],
    *,
    name: str,
    max_attempts: int = 3,
    default_retry_after: int = 60,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    def _wait(state: RetryCallState) -> float:
        exc = state.outcome.exception()
        return retry_after_seconds(exc.response, default_retry_after)

    def _log_wait(state: RetryCallState) -> None:
        log.warning(
            "api.rate_limited",
            call=name,
            attempt=state.attempt_number,
            wait_seconds=state.next_action.sleep if state.next_action else None,
        )

    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(_is_rate_limited),
            stop=stop_after_attempt(max_attempts),
            wait=_wait,
            sleep=sleep,
            before_sleep=_log_wait,
        ):
            with attempt:
                return await call()
    except RetryError as exc:
        log.error("api.rate_limit.exhausted", call=name, attempts=max_attempts)
        raise RetryExhaustedError(
            f"Max retries exceeded for {name}",
            {"details": f"HTTP 429 after {max_attempts} attempts"},
        ) from exc


def rate_limited(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Retry ``func(client, ...)`` on HTTP 429, honouring Retry-After."""

    @functools.wraps(func)
    async def wrapper(client: OutsourceClient, *args: Any, **kwargs: Any) -> T:
        return await call_with_retry_after(
            lambda: func(client, *args, **kwargs),
            name=func.__name__,
            max_attempts=client.max_retries,
            default_retry_after=client.default_retry_after,
            sleep=client.sleep,
        )

    return wrapper
