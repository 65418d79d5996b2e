"""Error taxonomy for the intelligence engine.

Every domain failure derives from CognitiaError and carries the HTTP status
the API layer reports it with.
"""

from typing import Optional


class CognitiaError(Exception):
    """Base class for all domain errors."""

    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(CognitiaError):
    """A required deployment setting is missing."""

    http_status = 500


class UpstreamError(CognitiaError):
    """The external reasoning service failed.

    ``status`` is the provider's HTTP status when one was reported.
    """

    http_status = 500

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    def __repr__(self):
        return f"UpstreamError(status={self.status!r}, message={self.message!r})"


class MalformedResponseError(CognitiaError):
    """The reasoning service returned empty or unparseable content."""

    http_status = 500


class DuplicateIdError(CognitiaError):
    """A report with the same identifier already exists."""

    http_status = 409


class StoreUnavailableError(CognitiaError):
    """The persistence layer could not complete an operation."""

    http_status = 503


class AuthExchangeError(CognitiaError):
    """The identity provider rejected the code or the profile fetch failed."""

    http_status = 500
