"""Reasoning gateway — one Gemini call wrapped in bounded exponential backoff.

The invoker classifies every upstream failure as transient or terminal.
Transient failures (rate limiting, overload) are retried with a fixed,
unjittered schedule; terminal failures propagate after the first attempt.

Schedule with the defaults: 5 attempts, waits of 2s, 4s, 8s and 16s.
No per-attempt timeout is applied beyond the transport default.
"""

import logging
import time
from typing import Any, Optional, Protocol

import backoff
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from .errors import UpstreamError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 5
BASE_DELAY_SECONDS = 2.0

TRANSIENT_STATUSES = frozenset({429, 503})
TRANSIENT_MARKERS = ("503", "429", "demand", "rate exceeded", "quota")


def is_transient(error: BaseException) -> bool:
    """Return True when an upstream failure should be retried.

    Transient iff the status is 429/503 or the message mentions one of
    TRANSIENT_MARKERS (case-insensitive).
    """
    status = getattr(error, "status", None)
    if status in TRANSIENT_STATUSES:
        return True
    message = (getattr(error, "message", None) or str(error) or "").lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def _status_of(exc: BaseException) -> Optional[int]:
    """Pull an HTTP status out of an SDK or transport exception."""
    for attr in ("code", "status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


class ReasoningClient(Protocol):
    """Anything that can perform a single reasoning call."""

    async def generate(self, system_instruction: str, prompt: str) -> str:
        ...


class GeminiReasoningClient:
    """Single-shot Gemini call returning JSON text.

    SDK failures are converted to UpstreamError with status and message
    preserved so the invoker can classify them.
    """

    def __init__(self, api_key: str, model: str, client: Optional[Any] = None):
        self.model = model
        self._client = client or genai.Client(api_key=api_key)

    async def generate(self, system_instruction: str, prompt: str) -> str:
        config = genai_types.GenerateContentConfig(
            system_instruction=system_instruction,
            response_mime_type="application/json",
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=config,
            )
        except genai_errors.APIError as e:
            raise UpstreamError(e.message or str(e), status=e.code) from e
        except Exception as e:
            raise UpstreamError(str(e), status=_status_of(e)) from e

        return response.text or ""


class RetryingInvoker:
    """Drive one reasoning call under the retry policy.

    Usage:
        invoker = RetryingInvoker(GeminiReasoningClient(key, model))
        raw = await invoker.invoke(SYSTEM_INSTRUCTION, prompt)
    """

    def __init__(
        self,
        client: ReasoningClient,
        max_attempts: int = MAX_ATTEMPTS,
        base_delay: float = BASE_DELAY_SECONDS,
    ):
        self.client = client
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        logger.info(
            f"RetryingInvoker initialized — wrapping {type(client).__name__}"
            f" (model={getattr(client, 'model', 'unknown')})"
        )

    async def invoke(self, system_instruction: str, prompt: str) -> str:
        """Call the reasoning service, retrying transient failures.

        Raises:
            UpstreamError: terminal failure, or the last transient failure
                once all attempts are used.
        """
        t0 = time.time()

        @backoff.on_exception(
            backoff.expo,
            UpstreamError,
            max_tries=self.max_attempts,
            giveup=lambda e: not is_transient(e),
            on_backoff=self._on_retry,
            on_giveup=self._on_giveup,
            jitter=None,
            logger=None,
            factor=self.base_delay,
        )
        async def _do_call():
            return await self.client.generate(system_instruction, prompt)

        text = await _do_call()
        logger.debug(f"Reasoning call succeeded in {(time.time() - t0) * 1000:.0f}ms")
        return text

    def _on_retry(self, details: dict):
        delay_ms = int(details["wait"] * 1000)
        logger.warning(
            f"Reasoning service busy or rate limited "
            f"(attempt {details['tries']}/{self.max_attempts}). Retrying in {delay_ms}ms..."
        )

    def _on_giveup(self, details: dict):
        exc = details.get("exception")
        logger.error(
            f"Reasoning call failed after {details['tries']} attempt(s): "
            f"status={getattr(exc, 'status', None)} {exc}"
        )
