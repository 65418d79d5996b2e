"""Google sign-in bridge.

Completes an OAuth2 authorization-code exchange, resolves the profile and
upserts the local user record keyed by Google's subject id.

Authorization codes are single-use, so nothing here retries: any failure
during token exchange or profile fetch ends the attempt in FAILED.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlencode

import httpx

from ...setting import Settings
from ..errors import AuthExchangeError, CognitiaError, ConfigurationError
from ..reports import ReportStore

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = (
    "https://www.googleapis.com/auth/userinfo.profile",
    "https://www.googleapis.com/auth/userinfo.email",
)


class SignInState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION_REQUESTED = "authorization_requested"
    CODE_RECEIVED = "code_received"
    TOKEN_EXCHANGED = "token_exchanged"
    PROFILE_RESOLVED = "profile_resolved"
    USER_UPSERTED = "user_upserted"
    COMPLETE = "complete"
    FAILED = "failed"


_NEXT_STATE = {
    SignInState.UNAUTHENTICATED: SignInState.AUTHORIZATION_REQUESTED,
    SignInState.AUTHORIZATION_REQUESTED: SignInState.CODE_RECEIVED,
    SignInState.CODE_RECEIVED: SignInState.TOKEN_EXCHANGED,
    SignInState.TOKEN_EXCHANGED: SignInState.PROFILE_RESOLVED,
    SignInState.PROFILE_RESOLVED: SignInState.USER_UPSERTED,
    SignInState.USER_UPSERTED: SignInState.COMPLETE,
}


@dataclass
class SignInAttempt:
    """State of one sign-in attempt."""

    state: SignInState = SignInState.UNAUTHENTICATED
    history: List[SignInState] = field(default_factory=list)
    failure: Optional[str] = None

    def advance(self, to: SignInState) -> None:
        if _NEXT_STATE.get(self.state) != to:
            raise ValueError(f"Invalid sign-in transition {self.state.value} -> {to.value}")
        self.history.append(self.state)
        self.state = to

    def fail(self, reason: str) -> None:
        if self.state in (SignInState.UNAUTHENTICATED, SignInState.COMPLETE, SignInState.FAILED):
            raise ValueError(f"Cannot fail a sign-in attempt in state {self.state.value}")
        self.history.append(self.state)
        self.state = SignInState.FAILED
        self.failure = reason


class GoogleIdentityBridge:
    """OAuth2 code exchange against Google plus the local user upsert."""

    def __init__(
        self,
        settings: Settings,
        store: ReportStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 15.0,
    ):
        self.settings = settings
        self.store = store
        self._transport = transport
        self._timeout = timeout

    def _require_config(self) -> str:
        if not self.settings.app_url:
            raise ConfigurationError("APP_URL environment variable is not set.")
        if not self.settings.google_client_id:
            raise ConfigurationError("GOOGLE_CLIENT_ID environment variable is not set.")
        return self.settings.redirect_uri

    def build_authorization_url(self, attempt: Optional[SignInAttempt] = None) -> str:
        """Google consent URL for this application.

        Raises:
            ConfigurationError: APP_URL or GOOGLE_CLIENT_ID is missing
        """
        redirect_uri = self._require_config()
        params = {
            "redirect_uri": redirect_uri,
            "client_id": self.settings.google_client_id,
            "access_type": "offline",
            "response_type": "code",
            "prompt": "consent",
            "scope": " ".join(SCOPES),
        }
        if attempt is not None:
            attempt.advance(SignInState.AUTHORIZATION_REQUESTED)
        logger.info(f"Initiating Google OAuth with redirect_uri: {redirect_uri}")
        return f"{AUTHORIZE_URL}?{urlencode(params)}"

    async def complete_exchange(self, code: str, attempt: Optional[SignInAttempt] = None) -> Dict:
        """Exchange ``code`` for a token, resolve the profile and upsert the user.

        The callback arrives on a fresh request, so a new attempt starts in
        CODE_RECEIVED.

        Raises:
            ConfigurationError: APP_URL or GOOGLE_CLIENT_ID is missing
            AuthExchangeError: token exchange, profile fetch or upsert failed
        """
        redirect_uri = self._require_config()
        if attempt is None:
            attempt = SignInAttempt(state=SignInState.CODE_RECEIVED)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                access_token = await self._exchange_code(client, code, redirect_uri)
                attempt.advance(SignInState.TOKEN_EXCHANGED)

                profile = await self._fetch_profile(client, access_token)
                attempt.advance(SignInState.PROFILE_RESOLVED)

            user = self.store.upsert_user(
                user_id=str(profile["id"]),
                name=profile.get("name"),
                email=profile.get("email"),
                avatar=profile.get("picture"),
            )
            attempt.advance(SignInState.USER_UPSERTED)
        except (CognitiaError, httpx.HTTPError, ValueError) as e:
            attempt.fail(str(e))
            logger.error(f"Google Auth Error: {e}")
            if isinstance(e, AuthExchangeError):
                raise
            raise AuthExchangeError(f"Authentication failed: {e}") from e

        attempt.advance(SignInState.COMPLETE)
        logger.info(f"Google sign-in complete for user {user['id']}")
        return user

    async def _exchange_code(self, client: httpx.AsyncClient, code: str, redirect_uri: str) -> str:
        response = await client.post(TOKEN_URL, data={
            "code": code,
            "client_id": self.settings.google_client_id,
            "client_secret": self.settings.google_client_secret or "",
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        })
        if response.status_code != 200:
            raise AuthExchangeError(
                f"Token exchange rejected ({response.status_code}): {response.text[:200]}"
            )
        body = response.json()
        if not isinstance(body, dict):
            raise AuthExchangeError("Token response was not a JSON object")
        access_token = body.get("access_token")
        if not access_token:
            raise AuthExchangeError("Token response did not include an access_token")
        return access_token

    async def _fetch_profile(self, client: httpx.AsyncClient, access_token: str) -> Dict:
        response = await client.get(
            USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"}
        )
        if response.status_code != 200:
            raise AuthExchangeError(
                f"Profile fetch failed ({response.status_code}): {response.text[:200]}"
            )
        profile = response.json()
        if not isinstance(profile, dict) or not profile.get("id"):
            raise AuthExchangeError("Profile response did not include a user id")
        return profile
