"""
Unit test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env file
during unit tests. Tests control config exclusively through monkeypatch.setenv().

Also provides two API doubles:
- FakeApi:    a stand-in for ShortenerApiClient whose click-history calls
               can be held open and resolved in any order.
- FakeServer: an in-memory REST API served through httpx.MockTransport,
               for tests that exercise the real HTTP client end to end.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from config import ClientSettings
from errors import AuthError
from infrastructure.api_client import ShortenerApiClient
from infrastructure.chart.text import TextChartRenderer
from infrastructure.http_client import HttpClient
from schemas.models.session import Identity
from services.session_store import SessionStore


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all unit tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


# ── FakeApi ──────────────────────────────────────────────────────────────────


class FakeApi:
    """Async double of ShortenerApiClient.

    With ``hold = True`` every list_redirects call parks on a future that the
    test resolves (or fails) explicitly through ``pending``.
    """

    def __init__(self) -> None:
        self.tokens: Dict[str, str] = {"pw": "tok-1"}
        self.clicks: Dict[str, List[datetime]] = {}
        self.error: Optional[Exception] = None
        self.hold = False
        self.pending: List[asyncio.Future] = []
        self.redirect_calls: List[tuple] = []

    async def login(self, request) -> str:
        if request.password not in self.tokens:
            raise AuthError("Authentication failed")
        return self.tokens[request.password]

    async def me(self, token: str) -> Identity:
        return Identity(username="ana", display_name="Ana")

    async def list_redirects(self, token: str, code: str) -> List[datetime]:
        self.redirect_calls.append((token, code))
        if self.hold:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            return await future
        if self.error is not None:
            raise self.error
        return list(self.clicks.get(code, []))


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
async def session(fake_api) -> SessionStore:
    store = SessionStore(fake_api)
    await store.login("ana", "pw")
    return store


@pytest.fixture
def renderer() -> TextChartRenderer:
    return TextChartRenderer()


# ── FakeServer ───────────────────────────────────────────────────────────────


class FakeServer:
    """In-memory version of the shortener REST API under /api."""

    def __init__(self) -> None:
        self.users: Dict[str, Dict[str, str]] = {
            "ana": {"password": "pw", "full_name": "Ana Lopez"}
        }
        self.links: Dict[str, List[Dict[str, Any]]] = {
            "ana": [{"short": "abc", "url": "https://example.com", "redirects": 2}]
        }
        self.redirects: Dict[str, List[Any]] = {
            "abc": ["2026-10-19T10:00:05Z", "2026-10-19T11:30:00Z"]
        }
        self.failing: set = set()
        self.revoked: set = set()
        self.requests: List[httpx.Request] = []

    def _user(self, request: httpx.Request) -> Optional[str]:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        if not token.startswith("tok-") or token in self.revoked:
            return None
        username = token.removeprefix("tok-")
        return username if username in self.users else None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")
        if path in self.failing:
            return httpx.Response(500, json={"detail": "boom"})

        if request.method == "POST" and path == "/login":
            form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
            user = self.users.get(form.get("username", ""))
            if user is None or user["password"] != form.get("password"):
                return httpx.Response(401, json={"detail": "Incorrect credentials"})
            return httpx.Response(
                200,
                json={
                    "access_token": f"tok-{form['username']}",
                    "token_type": "bearer",
                },
            )

        if request.method == "POST" and path == "/register":
            body = json.loads(request.content)
            if body["username"] in self.users:
                return httpx.Response(400, json={"detail": "Username taken"})
            self.users[body["username"]] = {
                "password": body["password"],
                "full_name": body.get("full_name") or "",
            }
            self.links[body["username"]] = []
            return httpx.Response(200, json={"username": body["username"]})

        username = self._user(request)
        if username is None:
            return httpx.Response(401, json={"detail": "Not authenticated"})

        if request.method == "GET" and path == "/me":
            return httpx.Response(
                200,
                json={
                    "username": username,
                    "full_name": self.users[username]["full_name"],
                },
            )
        if request.method == "GET" and path == "/me/urls":
            return httpx.Response(200, json=self.links[username])
        if request.method == "POST" and path == "/me/urls":
            body = json.loads(request.content)
            link = {
                "short": f"c{len(self.redirects) + 1}",
                "url": body["url"],
                "redirects": 0,
            }
            self.links[username].append(link)
            self.redirects[link["short"]] = []
            return httpx.Response(200, json=link)
        if request.method == "GET" and path.startswith("/me/links/"):
            code = path.split("/")[3]
            if code not in self.redirects:
                return httpx.Response(404, json={"detail": "Not found"})
            return httpx.Response(200, json=self.redirects[code])
        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def transport(fake_server) -> httpx.MockTransport:
    return httpx.MockTransport(fake_server.handler)


@pytest.fixture
async def api_client(transport):
    http = HttpClient(base_url="http://api.test/api", transport=transport)
    yield ShortenerApiClient(http)
    await http.aclose()


@pytest.fixture
def settings() -> ClientSettings:
    return ClientSettings(
        api_base_url="http://api.test/api",
        redirect_base_url="http://sho.rt",
        display_timezone="UTC",
        open_link_refresh_delay=0,
    )
