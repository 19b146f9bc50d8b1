"""
End-to-end tests through the middleware and auth router on a FastAPI app
"""

import httpx
import pytest
from fastapi import FastAPI, Request, Response
from fastapi.testclient import TestClient

from conftest import query_of
from slack_auth.auth_manager import SlackAuthManager
from slack_auth.handler import AUTHORIZE_ENDPOINT
from slack_auth.middleware import challenge
from slack_auth.properties import AuthProperties
from slack_auth.session_manager import SESSION_COOKIE_NAME


def build_app(options, fake_slack):
    app = FastAPI()

    @app.get("/private")
    async def private(request: Request):
        if request.state.user is None:
            return challenge(request)
        return {"name": request.state.user.identity.name}

    @app.get("/explicit")
    async def explicit(request: Request):
        properties = AuthProperties(items={"team": "T77"})
        properties.redirect_uri = "https://testserver/landing"
        return challenge(request, properties)

    @app.get("/other-scheme")
    async def other_scheme(request: Request):
        return challenge(request, authentication_type="Google")

    manager = SlackAuthManager()
    manager.initialize(
        options=options,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_slack))
    )
    manager.install(app)
    return app, manager


def login(client, path="/private"):
    response = client.get(path, follow_redirects=False)
    assert response.status_code == 302
    state = query_of(response.headers["location"])["state"][0]
    return client.get(
        "/signin-slack",
        params={"code": "auth-code", "state": state},
        follow_redirects=False
    )


class TestSlackAuthMiddleware:

    @pytest.fixture
    def client(self, options, fake_slack):
        app, _ = build_app(options, fake_slack)
        return TestClient(app, base_url="https://testserver")

    def test_unauthenticated_request_is_challenged(self, client):
        response = client.get("/private", follow_redirects=False)

        assert response.status_code == 302
        location = response.headers["location"]
        assert location.startswith(AUTHORIZE_ENDPOINT)
        assert query_of(location)["redirect_uri"] == ["https://testserver/signin-slack"]
        assert ".SlackAuth.Correlation.Slack" in response.headers["set-cookie"]

    def test_full_login_round_trip(self, client, fake_slack):
        response = login(client)

        assert response.status_code == 302
        assert response.headers["location"] == "https://testserver/private"
        assert client.cookies.get(SESSION_COOKIE_NAME)
        assert len(fake_slack.calls_to("oauth.v2.access")) == 1

        response = client.get("/private", follow_redirects=False)
        assert response.status_code == 200
        assert response.json() == {"name": "B1"}

    def test_replayed_callback_fails_csrf(self, client, fake_slack):
        response = client.get("/private", follow_redirects=False)
        state = query_of(response.headers["location"])["state"][0]
        params = {"code": "auth-code", "state": state}

        first = client.get("/signin-slack", params=params, follow_redirects=False)
        assert first.headers["location"] == "https://testserver/private"

        second = client.get("/signin-slack", params=params, follow_redirects=False)
        assert second.headers["location"] == "https://testserver/private?error=access_denied"
        assert len(fake_slack.calls_to("oauth.v2.access")) == 1

    def test_denied_consent_redirects_with_error(self, client, fake_slack):
        response = client.get("/private", follow_redirects=False)
        state = query_of(response.headers["location"])["state"][0]

        response = client.get(
            "/signin-slack",
            params={"error": "access_denied", "state": state},
            follow_redirects=False
        )

        assert response.status_code == 302
        assert response.headers["location"] == "https://testserver/private?error=access_denied"
        assert fake_slack.requests == []

    def test_callback_without_state_is_server_error(self, client):
        response = client.get("/signin-slack?code=abc", follow_redirects=False)
        assert response.status_code == 500

    def test_explicit_challenge_properties(self, client):
        response = client.get("/explicit", follow_redirects=False)

        query = query_of(response.headers["location"])
        assert query["team"] == ["T77"]

        response = client.get(
            "/signin-slack",
            params={"code": "auth-code", "state": query["state"][0]},
            follow_redirects=False
        )
        assert response.headers["location"] == "https://testserver/landing"

    def test_challenge_for_other_scheme_is_left_alone(self, client):
        response = client.get("/other-scheme", follow_redirects=False)
        assert response.status_code == 401

    def test_passive_mode_ignores_bare_401(self, options, fake_slack):
        app, _ = build_app(options.with_overrides(authentication_mode="passive"), fake_slack)

        @app.get("/bare")
        async def bare():
            return Response(status_code=401)

        client = TestClient(app, base_url="https://testserver")

        assert client.get("/bare", follow_redirects=False).status_code == 401
        assert client.get("/private", follow_redirects=False).status_code == 302


class TestAuthRouter:

    @pytest.fixture
    def client(self, options, fake_slack):
        app, _ = build_app(options, fake_slack)
        return TestClient(app, base_url="https://testserver")

    def test_login_endpoint_uses_return_url(self, client, options):
        response = client.get("/auth/login", params={"return_url": "/reports?id=3"}, follow_redirects=False)

        assert response.status_code == 302
        state = query_of(response.headers["location"])["state"][0]

        response = client.get(
            "/signin-slack",
            params={"code": "auth-code", "state": state},
            follow_redirects=False
        )
        assert response.headers["location"] == "https://testserver/reports?id=3"

    def test_login_endpoint_rejects_absolute_return_url(self, client):
        response = client.get(
            "/auth/login",
            params={"return_url": "https://evil.example/"},
            follow_redirects=False
        )
        assert response.status_code == 400

    def test_user_endpoint(self, client):
        assert client.get("/auth/user", follow_redirects=False).status_code == 302

        login(client)

        data = client.get("/auth/user").json()
        assert data["authentication_type"] == "Cookies"
        assert data["name"] == "B1"
        assert data["authenticated"] is True
        assert {"type": "urn:slack:teamid", "value": "T1", "issuer": "Slack"} in data["claims"]

    def test_logout(self, client):
        login(client)
        assert client.get("/auth/user").status_code == 200

        response = client.post("/auth/logout")
        assert response.json()["success"] is True

        assert client.get("/auth/user", follow_redirects=False).status_code == 302

    def test_health(self, client):
        data = client.get("/auth/health").json()

        assert data["status"] == "healthy"
        assert data["slack"]["callback_path"] == "/signin-slack"
        assert data["slack"]["scopes"] == ["users:read", "identify"]
        assert data["session_manager"]["storage_type"] == "memory"


class TestSlackAuthManager:

    def test_install_requires_initialize(self):
        with pytest.raises(RuntimeError, match="not initialized"):
            SlackAuthManager().install(FastAPI())

    def test_initialize_rejects_invalid_options(self, options):
        with pytest.raises(RuntimeError, match="initialization failed"):
            SlackAuthManager().initialize(options=options.with_overrides(client_id=""))

    def test_initialize_rejects_missing_config(self):
        with pytest.raises(RuntimeError, match="requires auth-config.yaml"):
            SlackAuthManager().initialize(config_path="/nonexistent/auth-config.yaml")

    @pytest.mark.asyncio
    async def test_cleanup_closes_owned_client(self, options):
        manager = SlackAuthManager()
        manager.initialize(options=options)

        await manager.cleanup()

        assert manager.handler._http_client.is_closed
