"""Analysis route — the Intelligence Engine's public entry point."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from cognitia.core.analysis import AnalysisRequest
from cognitia.core.errors import MalformedResponseError, UpstreamError
from cognitia.core.gateway import is_transient
from ..deps import get_analysis_engine, get_optional_user, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analysis"])

HIGH_DEMAND_MESSAGE = (
    "The Intelligence Engine is currently experiencing high demand. "
    "Please wait a few moments and try again."
)


class AnalyzeRequest(BaseModel):
    dataset: Optional[List[Dict[str, Any]]] = None
    query: Optional[str] = None
    context: Optional[str] = None
    totalRows: Optional[int] = None


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def upstream_error_response(error: UpstreamError, key_name: str) -> JSONResponse:
    """Map a reasoning-service failure onto the API's status contract."""
    message = (error.message or "").lower()

    if error.status == 400 and "api key not valid" in message:
        source = key_name if key_name != "NONE" else "Unknown"
        return _error(
            400,
            f"The Gemini API key is invalid. Current key source: {source}. "
            f"Please update your environment variables.",
        )

    if is_transient(error):
        return _error(429, HIGH_DEMAND_MESSAGE)

    return _error(500, error.message or "Failed to analyze data")


@router.post("/analyze")
async def analyze(
    data: AnalyzeRequest,
    request: Request,
    user: Optional[dict] = Depends(get_optional_user),
    settings=Depends(get_settings),
):
    """Run a full intelligence analysis over a dataset sample."""
    if data.dataset is None:
        return _error(400, "Dataset is required")

    engine = await get_analysis_engine(request)

    analysis = AnalysisRequest(
        dataset=data.dataset,
        query=data.query,
        context=data.context,
        total_rows=data.totalRows,
    )
    try:
        result = await engine.analyze(analysis, user_id=user["user_id"] if user else None)
    except UpstreamError as e:
        logger.error(f"Analysis Error: {e!r}")
        return upstream_error_response(e, settings.gemini_key_name)
    except MalformedResponseError as e:
        logger.error(f"Analysis Error: {e}")
        return _error(500, e.message)

    return result
