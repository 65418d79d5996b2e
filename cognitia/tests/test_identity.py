"""Unit tests for GoogleIdentityBridge and the sign-in state machine.

The identity provider is simulated with httpx.MockTransport.
"""

import asyncio
import pytest
from urllib.parse import parse_qs, urlsplit

import httpx

from cognitia.core.auth import GoogleIdentityBridge, SignInAttempt, SignInState
from cognitia.core.auth.google_oauth import TOKEN_URL, USERINFO_URL
from cognitia.core.db import DatabaseManager
from cognitia.core.errors import AuthExchangeError, ConfigurationError
from cognitia.core.reports import ReportStore
from cognitia.setting import Settings


PROFILE = {
    "id": "u1",
    "name": "Ada",
    "email": "ada@example.com",
    "picture": "https://lh3.example/ada.png",
}


# ── Fixtures ──────────────────────────────────────────────────────────────


def _settings(**overrides):
    values = dict(
        app_url="https://cognitia.run.app",
        google_client_id="client-123",
        google_client_secret="secret-456",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def store(tmp_path):
    db = DatabaseManager(f"sqlite:///{tmp_path / 'auth.db'}")
    db.init_db()
    yield ReportStore(db)
    db.dispose()


def _provider(token_status=200, profile_status=200, profile=None, seen=None):
    """Build a MockTransport that plays the Google token and userinfo endpoints."""
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if str(request.url) == TOKEN_URL:
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "tok-abc", "token_type": "Bearer"})
        if str(request.url) == USERINFO_URL:
            if profile_status != 200:
                return httpx.Response(profile_status, json={"error": "unauthorized"})
            return httpx.Response(200, json=profile or PROFILE)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


# ── Tests: State machine ──────────────────────────────────────────────────


class TestSignInAttempt:

    def test_happy_path_transitions(self):
        attempt = SignInAttempt()
        for state in (
            SignInState.AUTHORIZATION_REQUESTED,
            SignInState.CODE_RECEIVED,
            SignInState.TOKEN_EXCHANGED,
            SignInState.PROFILE_RESOLVED,
            SignInState.USER_UPSERTED,
            SignInState.COMPLETE,
        ):
            attempt.advance(state)
        assert attempt.state == SignInState.COMPLETE
        assert attempt.history[0] == SignInState.UNAUTHENTICATED

    def test_skipping_a_state_rejected(self):
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)
        with pytest.raises(ValueError):
            attempt.advance(SignInState.PROFILE_RESOLVED)

    @pytest.mark.parametrize("state", [
        SignInState.AUTHORIZATION_REQUESTED,
        SignInState.CODE_RECEIVED,
        SignInState.TOKEN_EXCHANGED,
        SignInState.PROFILE_RESOLVED,
        SignInState.USER_UPSERTED,
    ])
    def test_fail_reachable_from_non_initial(self, state):
        attempt = SignInAttempt(state=state)
        attempt.fail("boom")
        assert attempt.state == SignInState.FAILED
        assert attempt.failure == "boom"

    def test_fail_not_allowed_from_initial(self):
        with pytest.raises(ValueError):
            SignInAttempt().fail("boom")

    def test_failed_is_terminal(self):
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)
        attempt.fail("boom")
        with pytest.raises(ValueError):
            attempt.advance(SignInState.TOKEN_EXCHANGED)


# ── Tests: Authorization URL ──────────────────────────────────────────────


class TestAuthorizationUrl:

    def test_url_parameters(self, store):
        bridge = GoogleIdentityBridge(_settings(), store)
        url = bridge.build_authorization_url()

        parts = urlsplit(url)
        params = {k: v[0] for k, v in parse_qs(parts.query).items()}
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://accounts.google.com/o/oauth2/v2/auth"
        assert params["client_id"] == "client-123"
        assert params["redirect_uri"] == "https://cognitia.run.app/auth/google/callback"
        assert params["response_type"] == "code"
        assert params["access_type"] == "offline"
        assert params["prompt"] == "consent"
        assert "userinfo.email" in params["scope"] and "userinfo.profile" in params["scope"]

    def test_advances_attempt(self, store):
        attempt = SignInAttempt()
        GoogleIdentityBridge(_settings(), store).build_authorization_url(attempt)
        assert attempt.state == SignInState.AUTHORIZATION_REQUESTED

    @pytest.mark.parametrize("overrides", [{"app_url": None}, {"google_client_id": None}])
    def test_missing_config(self, store, overrides):
        bridge = GoogleIdentityBridge(_settings(**overrides), store)
        with pytest.raises(ConfigurationError):
            bridge.build_authorization_url()


# ── Tests: Code exchange ──────────────────────────────────────────────────


class TestCompleteExchange:

    def test_success_upserts_user(self, store):
        seen = []
        bridge = GoogleIdentityBridge(_settings(), store, transport=_provider(seen=seen))
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)

        user = asyncio.run(bridge.complete_exchange("code-xyz", attempt))

        assert user == {"id": "u1", "name": "Ada", "email": "ada@example.com",
                        "avatar": "https://lh3.example/ada.png"}
        assert store.get_user("u1") == user
        assert attempt.state == SignInState.COMPLETE

        token_request, profile_request = seen
        form = parse_qs(token_request.content.decode())
        assert form["code"] == ["code-xyz"]
        assert form["grant_type"] == ["authorization_code"]
        assert form["redirect_uri"] == ["https://cognitia.run.app/auth/google/callback"]
        assert profile_request.headers["Authorization"] == "Bearer tok-abc"

    def test_repeat_sign_in_last_write_wins(self, store):
        first = GoogleIdentityBridge(_settings(), store, transport=_provider())
        asyncio.run(first.complete_exchange("c1"))

        renamed = dict(PROFILE, name="Ada L.")
        second = GoogleIdentityBridge(_settings(), store, transport=_provider(profile=renamed))
        asyncio.run(second.complete_exchange("c2"))

        assert store.get_user("u1")["name"] == "Ada L."

    def test_token_rejected(self, store):
        seen = []
        bridge = GoogleIdentityBridge(_settings(), store, transport=_provider(token_status=400, seen=seen))
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)

        with pytest.raises(AuthExchangeError):
            asyncio.run(bridge.complete_exchange("used-code", attempt))

        assert attempt.state == SignInState.FAILED
        assert len(seen) == 1  # no retry, no profile fetch
        assert store.get_user("u1") is None

    def test_profile_fetch_failed(self, store):
        bridge = GoogleIdentityBridge(_settings(), store, transport=_provider(profile_status=401))
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)

        with pytest.raises(AuthExchangeError):
            asyncio.run(bridge.complete_exchange("code", attempt))

        assert attempt.state == SignInState.FAILED
        assert attempt.history[-1] == SignInState.TOKEN_EXCHANGED

    def test_transport_error_wrapped(self, store):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        bridge = GoogleIdentityBridge(_settings(), store, transport=httpx.MockTransport(handler))
        with pytest.raises(AuthExchangeError):
            asyncio.run(bridge.complete_exchange("code"))

    def test_missing_config(self, store):
        bridge = GoogleIdentityBridge(_settings(app_url=None), store, transport=_provider())
        with pytest.raises(ConfigurationError):
            asyncio.run(bridge.complete_exchange("code"))

    @pytest.mark.parametrize("token_body,profile_body", [
        (["tok-abc"], PROFILE),
        ({"access_token": "tok-abc"}, ["u1", "Ada"]),
        ({"access_token": "tok-abc"}, "u1"),
    ])
    def test_non_object_json_rejected(self, store, token_body, profile_body):
        def handler(request):
            if str(request.url) == TOKEN_URL:
                return httpx.Response(200, json=token_body)
            return httpx.Response(200, json=profile_body)

        bridge = GoogleIdentityBridge(_settings(), store, transport=httpx.MockTransport(handler))
        attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)

        with pytest.raises(AuthExchangeError):
            asyncio.run(bridge.complete_exchange("code", attempt))

        assert attempt.state == SignInState.FAILED
        assert store.get_user("u1") is None
