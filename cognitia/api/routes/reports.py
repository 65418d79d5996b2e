"""Report history routes."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..deps import get_report_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


class ReportCreateRequest(BaseModel):
    id: str
    userId: str
    query: Optional[str] = None
    context: Optional[str] = None
    result: Dict[str, Any]


@router.get("")
async def list_reports(userId: Optional[str] = None, store=Depends(get_report_store)):
    """Latest reports for a user, newest first."""
    if not userId:
        raise HTTPException(status_code=400, detail="userId required")
    return store.list_by_user(userId)


@router.post("")
async def create_report(data: ReportCreateRequest, store=Depends(get_report_store)):
    """Store a report. 409 on duplicate id."""
    store.append(
        report_id=data.id,
        user_id=data.userId,
        query=data.query,
        context=data.context,
        result=data.result,
    )
    return {"success": True}
