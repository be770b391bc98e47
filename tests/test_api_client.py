"""ApiClient against an ``httpx.MockTransport`` standing in for the API."""
import asyncio
import json

import httpx
import pytest

from papad_store.client import ApiClient, SessionExpiredError, TokenStore

REFRESH = "/api/v1/auth/refresh"
LOGOUT = "/api/v1/auth/logout"


class FakeApi:
    """Accepts one current access token; the refresh endpoint swaps it."""

    def __init__(self, token: str = "fresh", refresh_ok: bool = True, delay: float = 0.01):
        self.token = token
        self.refresh_ok = refresh_ok
        self.delay = delay
        self.calls = []

    def count(self, path: str) -> int:
        return sum(1 for method, p, _ in self.calls if p == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("Authorization")
        self.calls.append((request.method, request.url.path, auth))
        await asyncio.sleep(self.delay)

        if request.url.path == REFRESH:
            if not self.refresh_ok:
                return httpx.Response(401, json={"error": "Invalid refresh token"})
            return httpx.Response(200, json={"message": "Token refreshed successfully", "accessToken": self.token})

        if request.url.path == LOGOUT:
            return httpx.Response(200, json={"message": "Logged out successfully"})

        if auth != f"Bearer {self.token}":
            return httpx.Response(401, json={"error": "Invalid or expired token"})

        body = json.loads(request.content) if request.content else None
        return httpx.Response(200, json={"path": request.url.path, "body": body})


def _client(api: FakeApi, token: str = "stale", **kwargs) -> ApiClient:
    http_client = httpx.AsyncClient(base_url="http://testserver", transport=httpx.MockTransport(api.handler))
    return ApiClient(token_store=TokenStore(token), http_client=http_client, **kwargs)


def test_request_with_valid_token_does_not_refresh():
    api = FakeApi(token="good")

    async def scenario():
        client = _client(api, token="good")
        response = await client.get("/api/v1/users/me")
        await client._client.aclose()
        return response

    response = asyncio.run(scenario())
    assert response.status_code == 200
    assert api.count(REFRESH) == 0
    assert api.calls[0][2] == "Bearer good"


def test_401_refreshes_and_retries_once():
    api = FakeApi(token="fresh")

    async def scenario():
        client = _client(api)
        response = await client.put("/api/v1/users/me", json={"name": "New"})
        await client._client.aclose()
        return client, response

    client, response = asyncio.run(scenario())
    assert response.status_code == 200
    assert response.json()["body"] == {"name": "New"}
    assert client.token_store.get() == "fresh"
    assert [path for _, path, _ in api.calls] == ["/api/v1/users/me", REFRESH, "/api/v1/users/me"]
    assert api.calls[-1][2] == "Bearer fresh"


def test_concurrent_401s_share_one_refresh():
    api = FakeApi(token="fresh")

    async def scenario():
        client = _client(api)
        responses = await asyncio.gather(
            client.get("/api/v1/users/me"),
            client.get("/api/v1/users/1"),
        )
        await client._client.aclose()
        return responses

    responses = asyncio.run(scenario())
    assert [r.status_code for r in responses] == [200, 200]
    assert api.count(REFRESH) == 1


def test_cancelled_caller_does_not_cancel_shared_refresh():
    api = FakeApi(token="fresh", delay=0.05)

    async def scenario():
        client = _client(api)
        a = asyncio.create_task(client.get("/a"))
        b = asyncio.create_task(client.get("/b"))
        while api.count(REFRESH) == 0:
            await asyncio.sleep(0.005)
        a.cancel()

        response = await b
        with pytest.raises(asyncio.CancelledError):
            await a
        await client._client.aclose()
        return client, response

    client, response = asyncio.run(scenario())
    assert response.status_code == 200
    assert response.json()["path"] == "/b"
    assert api.count(REFRESH) == 1
    assert client.token_store.get() == "fresh"


def test_concurrent_failed_refresh_expires_session_once():
    api = FakeApi(refresh_ok=False)
    redirects = []

    async def scenario():
        client = _client(api, on_session_expired=redirects.append)
        results = await asyncio.gather(
            client.get("/api/v1/users/me"),
            client.get("/api/v1/users/1"),
            return_exceptions=True,
        )
        await client._client.aclose()
        return results

    results = asyncio.run(scenario())
    assert all(isinstance(r, SessionExpiredError) for r in results)
    assert api.count(REFRESH) == 1
    assert api.count(LOGOUT) == 1
    assert redirects == ["/login"]


def test_refresh_task_is_released_after_completion():
    api = FakeApi(token="fresh")

    async def scenario():
        client = _client(api)
        assert await client.refresh_token() is True
        assert client._refresh_task is None
        assert await client.refresh_token() is True
        await client._client.aclose()

    asyncio.run(scenario())
    assert api.count(REFRESH) == 2


def test_failed_refresh_expires_session():
    api = FakeApi(refresh_ok=False)
    redirects = []

    async def scenario():
        client = _client(api, on_session_expired=redirects.append)
        with pytest.raises(SessionExpiredError, match="Session expired"):
            await client.get("/api/v1/users/me")
        await client._client.aclose()
        return client

    client = asyncio.run(scenario())
    assert client.token_store.get() is None
    assert redirects == ["/login"]
    assert api.count(LOGOUT) == 1
    assert api.count("/api/v1/users/me") == 1


def test_async_session_expired_callback():
    api = FakeApi(refresh_ok=False, delay=0)
    redirects = []

    async def on_expired(login_path):
        redirects.append(login_path)

    async def scenario():
        client = _client(api, on_session_expired=on_expired, login_path="/signin")
        with pytest.raises(SessionExpiredError):
            await client.delete("/api/v1/users/me")
        await client._client.aclose()

    asyncio.run(scenario())
    assert redirects == ["/signin"]


def test_401_without_token_is_returned_as_is():
    api = FakeApi()

    async def scenario():
        client = _client(api, token=None)
        response = await client.post("/api/v1/users/me", json={})
        await client._client.aclose()
        return response

    response = asyncio.run(scenario())
    assert response.status_code == 401
    assert api.count(REFRESH) == 0


def test_refresh_network_error_counts_as_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == REFRESH:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(401, json={"error": "Invalid or expired token"})

    async def scenario():
        http_client = httpx.AsyncClient(base_url="http://testserver", transport=httpx.MockTransport(handler))
        async with ApiClient(token_store=TokenStore("stale"), http_client=http_client) as client:
            refreshed = await client.refresh_token()
        await http_client.aclose()
        return refreshed

    assert asyncio.run(scenario()) is False
