"""Process-wide Firebase Admin handle.

Initialised lazily, exactly once, from the FIREBASE_SERVICE_ACCOUNT JSON.
A missing or unparseable service account leaves the handle UNCONFIGURED for
the lifetime of the process; it is never retried.
"""

import json
import logging
import threading
from enum import Enum
from typing import Any, Optional

import firebase_admin
from firebase_admin import credentials

logger = logging.getLogger(__name__)

APP_NAME = "cognitia"
_init_lock = threading.Lock()


class FirebaseState(str, Enum):
    PENDING = "pending"
    UNCONFIGURED = "unconfigured"
    READY = "ready"


def parse_service_account(raw: str) -> dict:
    """Parse a service-account JSON string.

    Tolerates values wrapped in an extra pair of double quotes with escaped
    inner quotes, which some secret stores produce.
    """
    text = raw.strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1].replace('\\"', '"')
    return json.loads(text)


def _registered_app() -> Optional[Any]:
    """The process-wide firebase app, if one was already initialised."""
    try:
        return firebase_admin.get_app(APP_NAME)
    except ValueError:
        return None


class FirebaseAdmin:
    """Initialization-on-first-use guarded handle.

    Every handle in a process shares the single firebase app registered
    under APP_NAME; only the first successful initialisation creates it.
    """

    def __init__(self, service_account_json: Optional[str]):
        self._service_account_json = service_account_json
        self._state = FirebaseState.PENDING
        self._app: Optional[Any] = None
        self.error: Optional[str] = None

    @property
    def state(self) -> FirebaseState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == FirebaseState.READY

    def get_app(self) -> Optional[Any]:
        """Return the firebase app, initialising on first call.

        Returns None when unconfigured.
        """
        if self._state == FirebaseState.PENDING:
            with _init_lock:
                if self._state == FirebaseState.PENDING:
                    self._initialize()
        return self._app

    def _initialize(self) -> None:
        if not self._service_account_json:
            logger.warning("FIREBASE_SERVICE_ACCOUNT not found. Firebase features will be disabled.")
            self._state = FirebaseState.UNCONFIGURED
            return

        existing = _registered_app()
        if existing is not None:
            # Another handle in this process already initialised the app
            self._app = existing
            self._state = FirebaseState.READY
            logger.info("Reusing existing Firebase Admin app")
            return

        try:
            service_account = parse_service_account(self._service_account_json)
            cert = credentials.Certificate(service_account)
            self._app = firebase_admin.initialize_app(cert, name=APP_NAME)
        except (ValueError, TypeError) as e:
            # json.JSONDecodeError is a ValueError; so are invalid credentials
            self.error = str(e)
            self._state = FirebaseState.UNCONFIGURED
            logger.error(f"Failed to initialise Firebase Admin from FIREBASE_SERVICE_ACCOUNT: {e}")
            return

        self._state = FirebaseState.READY
        logger.info("Firebase Admin initialized successfully")
