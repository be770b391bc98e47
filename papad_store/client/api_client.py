"""Async HTTP client for the Papad Store API.

Keeps the short-lived access token in a ``TokenStore`` and lets the refresh
cookie ride in the httpx cookie jar. A 401 on an authenticated call triggers a
single refresh shared by every request that is waiting on it.
"""
import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

logger = logging.getLogger(__name__)

SessionExpiredCallback = Callable[[str], Union[None, Awaitable[None]]]


class SessionExpiredError(Exception):
    """Raised when the refresh token is gone and the user has to log in again."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(message)


class TokenStore:
    """In-memory holder for the current access token."""

    def __init__(self, access_token: Optional[str] = None):
        self._access_token = access_token

    def get(self) -> Optional[str]:
        return self._access_token

    def set(self, access_token: str) -> None:
        self._access_token = access_token

    def clear(self) -> None:
        self._access_token = None


class ApiClient:
    """
    Wrapper around ``httpx.AsyncClient`` that keeps the session alive.

    Pass ``http_client`` to reuse an existing client (tests hand in one built
    on ``httpx.MockTransport``); otherwise one is created for ``base_url`` and
    closed by :meth:`aclose`.
    """

    def __init__(
        self,
        base_url: str = "",
        token_store: Optional[TokenStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        on_session_expired: Optional[SessionExpiredCallback] = None,
        refresh_path: str = "/api/v1/auth/refresh",
        logout_path: str = "/api/v1/auth/logout",
        login_path: str = "/login",
        timeout: float = 30,
    ):
        self.token_store = token_store or TokenStore()
        self.on_session_expired = on_session_expired
        self.refresh_path = refresh_path
        self.logout_path = logout_path
        self.login_path = login_path

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._refresh_task: Optional[asyncio.Task] = None

    # ── lifecycle ─────────────────────────────────────────────────────────────

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # ── requests ──────────────────────────────────────────────────────────────

    async def _send(self, method: str, url: str, token: Optional[str], **kwargs: Any) -> httpx.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return await self._client.request(method, url, headers=headers, **kwargs)

    async def make_request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request with the cached bearer token.

        A 401 on a request that carried a token refreshes the session and
        retries exactly once. Raises :class:`SessionExpiredError` when the
        refresh fails.
        """
        token = self.token_store.get()
        response = await self._send(method, url, token, **kwargs)

        if response.status_code != 401 or not token:
            return response

        # Another request may already have rotated the token while this one was in flight
        current = self.token_store.get()
        if current and current != token:
            return await self._send(method, url, current, **kwargs)

        if await self.refresh_token():
            return await self._send(method, url, self.token_store.get(), **kwargs)

        raise SessionExpiredError()

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.make_request("GET", url, **kwargs)

    async def post(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        return await self.make_request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any = None, **kwargs: Any) -> httpx.Response:
        return await self.make_request("PUT", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.make_request("DELETE", url, **kwargs)

    # ── refresh ───────────────────────────────────────────────────────────────

    async def refresh_token(self) -> bool:
        """
        Refresh the access token; concurrent callers share one in-flight call.

        Returns True when a new access token was stored. On failure the session
        is expired once for all waiters (token cleared, logout posted,
        ``on_session_expired`` called). A waiter being cancelled does not
        cancel the shared call.
        """
        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> bool:
        try:
            refreshed = await self._perform_refresh()
            if not refreshed:
                await self._expire_session()
            return refreshed
        finally:
            self._refresh_task = None

    async def _perform_refresh(self) -> bool:
        try:
            response = await self._client.post(self.refresh_path)
        except httpx.HTTPError as exc:
            logger.warning(f"[ApiClient] Refresh request failed: {exc}")
            return False

        if not response.is_success:
            logger.info(f"[ApiClient] Refresh rejected with HTTP {response.status_code}")
            return False

        try:
            access_token = response.json().get("accessToken")
        except ValueError:
            access_token = None
        if not access_token:
            logger.warning("[ApiClient] Refresh response did not contain an access token")
            return False

        self.token_store.set(access_token)
        return True

    async def _expire_session(self) -> None:
        self.token_store.clear()
        try:
            await self._client.post(self.logout_path)
        except httpx.HTTPError as exc:
            logger.info(f"[ApiClient] Logout after expired session failed: {exc}")

        if self.on_session_expired is not None:
            result = self.on_session_expired(self.login_path)
            if inspect.isawaitable(result):
                await result
