"""
Shared fixtures for the Slack authentication tests
"""

from typing import Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from starlette.requests import Request

from slack_auth.config import SlackAuthOptions
from slack_auth.handler import SlackAuthenticationHandler
from slack_auth.provider import SlackAuthenticationProvider
from slack_auth.session_manager import SessionManager
from slack_auth.state import StateDataFormat


class FakeSlack:
    """Stands in for slack.com behind an httpx.MockTransport"""

    def __init__(self):
        self.token_payload: Dict = {
            "ok": True,
            "access_token": "xoxb-1",
            "bot_user_id": "B1",
            "authed_user": {"id": "U1", "access_token": "xoxp-1", "scope": "identify"},
            "team": {"id": "T1", "name": "Acme"}
        }
        self.token_status = 200
        self.user_payload: Dict = {"ok": True, "user": {"id": "U1", "name": "alice"}}
        self.user_status = 200
        self.raise_on: Optional[str] = None
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_on and request.url.path.endswith(self.raise_on):
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path == "/api/oauth.v2.access":
            return httpx.Response(self.token_status, json=self.token_payload)
        if request.url.path == "/api/users.info":
            return httpx.Response(self.user_status, json=self.user_payload)
        return httpx.Response(404)

    def calls_to(self, method: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == f"/api/{method}"]

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def make_request(
    path: str = "/",
    query_string: str = "",
    cookies: Optional[Dict[str, str]] = None,
    host: str = "app.example.com"
) -> Request:
    headers = [(b"host", host.encode())]
    if cookies:
        cookie_header = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie_header.encode()))

    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "server": (host, 443),
        "path": path,
        "root_path": "",
        "query_string": query_string.encode(),
        "headers": headers,
    }
    return Request(scope)


def query_of(url: str) -> Dict[str, List[str]]:
    return parse_qs(urlparse(url).query)


@pytest.fixture
def fake_slack():
    return FakeSlack()


@pytest.fixture
def options():
    return SlackAuthOptions(
        client_id="client-123",
        client_secret="secret-456",
        scopes=("users:read",),
        state_secret="test-state-secret"
    )


@pytest.fixture
def state_format(options):
    return StateDataFormat(options.state_secret)


@pytest.fixture
def provider():
    return SlackAuthenticationProvider()


@pytest.fixture
def session_manager():
    return SessionManager(session_timeout=3600)


@pytest.fixture
def http_client(fake_slack):
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_slack))


@pytest.fixture
def handler(options, state_format, provider, session_manager, http_client):
    return SlackAuthenticationHandler(
        options=options,
        state_format=state_format,
        provider=provider,
        session_manager=session_manager,
        http_client=http_client
    )
