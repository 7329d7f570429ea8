"""Service API key auth and simple in-memory per-caller rate limiting middleware."""
from __future__ import annotations

import time
from typing import Callable, Dict, Optional, Tuple

from starlette.datastructures import Headers
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send


def _authorization(headers: Headers) -> Optional[Tuple[str, str]]:
    """(scheme, credentials) from the Authorization header, or None if absent or malformed."""
    value = headers.get("authorization")
    if not value or " " not in value:
        return None
    scheme, credentials = value.split(" ", 1)
    return scheme.lower(), credentials


def _guarded(scope: Scope) -> bool:
    # /api routes only; health, webhook and CORS preflight pass untouched
    return (
        scope.get("type") == "http"
        and scope.get("path", "").startswith("/api")
        and scope.get("method") != "OPTIONS"
    )


async def _error(scope: Scope, receive: Receive, send: Send, status_code: int, body: dict, **kwargs) -> None:
    await JSONResponse(body, status_code=status_code, **kwargs)(scope, receive, send)


class ApiKeyMiddleware:
    """Requires `Authorization: Bearer <api_key>` on /api routes when a key is configured."""

    def __init__(self, app: ASGIApp, api_key: Optional[str]):
        self.app = app
        self.api_key = api_key

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self.api_key or not _guarded(scope):
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if "authorization" not in headers:
            await _error(scope, receive, send, 401, {"detail": "Missing Authorization header", "error": "unauthorized"})
            return
        auth = _authorization(headers)
        if auth is None:
            await _error(
                scope, receive, send, 401,
                {"detail": "Authorization header must be 'Bearer <key>'", "error": "unauthorized"},
            )
            return
        if auth != ("bearer", self.api_key):
            await _error(scope, receive, send, 403, {"detail": "Invalid API key", "error": "forbidden"})
            return

        await self.app(scope, receive, send)


class RateLimitMiddleware:
    """Fixed-window limiter keyed by (service key, X-User-Id).

    Only callers presenting the right key are counted; rejecting the others is
    ApiKeyMiddleware's job. State is per process; windows that have run out
    are dropped at most once per window length.
    """

    def __init__(
        self,
        app: ASGIApp,
        api_key: Optional[str],
        max_requests: int,
        window_seconds: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.app = app
        self.api_key = api_key
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[Tuple[str, str], Tuple[float, int]] = {}
        self._last_prune = clock()

    @property
    def enabled(self) -> bool:
        return bool(self.api_key) and self.max_requests > 0 and self.window_seconds > 0

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if not self.enabled or not _guarded(scope):
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        if _authorization(headers) != ("bearer", self.api_key):
            await self.app(scope, receive, send)
            return

        key = (self.api_key, headers.get("x-user-id", ""))
        now = self._clock()
        if now - self._last_prune >= self.window_seconds:
            self._prune(now)
        started, used = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, used = now, 0

        if used >= self.max_requests:
            retry_after = max(1, int(self.window_seconds - (now - started)))
            await _error(
                scope, receive, send, 429,
                {
                    "detail": "Rate limit exceeded",
                    "error": "rate_limited",
                    "limit": self.max_requests,
                    "window_seconds": self.window_seconds,
                },
                headers={"Retry-After": str(retry_after)},
            )
            return

        self._windows[key] = (started, used + 1)
        await self.app(scope, receive, send)

    def _prune(self, now: float) -> None:
        self._windows = {
            key: window for key, window in self._windows.items()
            if now - window[0] < self.window_seconds
        }
        self._last_prune = now
