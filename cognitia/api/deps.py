"""FastAPI dependencies for Cognitia.

Provides shared dependencies (settings, store, services) via FastAPI's
Depends() injection system.
"""

import logging
from typing import Optional

from fastapi import Request

from cognitia.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


async def get_settings(request: Request):
    """Get Settings from app state."""
    return request.app.state.settings


async def get_report_store(request: Request):
    """Get ReportStore from app state."""
    return request.app.state.report_store


async def get_identity_bridge(request: Request):
    """Get GoogleIdentityBridge from app state."""
    return request.app.state.identity_bridge


async def get_handoff_channel(request: Request):
    """Get HandoffChannel from app state."""
    return request.app.state.handoff_channel


async def get_firebase(request: Request):
    """Get FirebaseAdmin handle from app state."""
    return request.app.state.firebase


async def get_analysis_engine(request: Request):
    """Get or create AnalysisEngine from app state.

    Built on first use so a missing Gemini key only fails analysis requests.
    """
    if getattr(request.app.state, "analysis_engine", None) is None:
        settings = request.app.state.settings
        if not settings.gemini_key_configured:
            raise ConfigurationError(
                "Gemini API key is not configured. Please set COGAPI3 or "
                "GEMINI_API_KEY in the environment variables."
            )

        from cognitia.core.analysis import AnalysisEngine
        from cognitia.core.gateway import GeminiReasoningClient, RetryingInvoker

        client = GeminiReasoningClient(settings.gemini_api_key, settings.gemini_model)
        request.app.state.analysis_engine = AnalysisEngine(
            RetryingInvoker(client),
            request.app.state.report_store,
        )
    return request.app.state.analysis_engine


async def get_optional_user(request: Request) -> Optional[dict]:
    """Signed-in user from the session, or None."""
    user_id = request.session.get("user_id")
    if not user_id:
        return None
    return {"user_id": user_id, "name": request.session.get("name")}
