"""Authentication module.

Provides:
- GoogleIdentityBridge: OAuth2 code exchange and local user upsert
- HandoffChannel / OriginAllowlist: origin-checked popup-to-opener handoff
- FirebaseAdmin: lazily initialised Firebase Admin handle
"""

from .firebase import FirebaseAdmin, FirebaseState
from .google_oauth import GoogleIdentityBridge, SignInAttempt, SignInState
from .handoff import HandoffChannel, OriginAllowlist, MESSAGE_TYPE

__all__ = [
    "FirebaseAdmin",
    "FirebaseState",
    "GoogleIdentityBridge",
    "SignInAttempt",
    "SignInState",
    "HandoffChannel",
    "OriginAllowlist",
    "MESSAGE_TYPE",
]
