"""Session router - FastAPI endpoints for treatment sessions"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session as DbSession

from ...auth import CurrentUser, get_current_user, require_admin
from ...cache import get_cache
from ...database import get_db
from .completion import auto_complete_sessions
from .schemas import (
    AutoCompleteRequest,
    AutoCompleteResult,
    SessionBulkCreate,
    SessionResponse,
)
from .service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sessions"])


def get_session_service(db: DbSession = Depends(get_db), cache=Depends(get_cache)) -> SessionService:
    """Dependency injection for SessionService"""
    return SessionService(db, cache)


@router.get("/orders/{order_id}/sessions", response_model=list[SessionResponse])
async def list_sessions(
    order_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """All sessions of an order, by session number"""
    return service.list_sessions(order_id, current_user)


@router.post("/orders/{order_id}/sessions", response_model=list[SessionResponse])
async def create_sessions(
    order_id: str,
    data: SessionBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """Bulk create sessions for an order"""
    return service.create_sessions(order_id, data.sessions, current_user)


@router.patch("/orders/{order_id}/sessions", response_model=SessionResponse)
async def patch_session(
    order_id: str,
    payload: dict = Body(...),
    override: bool = Query(False),
    current_user: CurrentUser = Depends(get_current_user),
    service: SessionService = Depends(get_session_service),
):
    """
    Update a single session (pass sessionId in body).
    Only scheduled_date, scheduled_time, status, attended_date, notes and
    expires_at are applied; other keys are ignored.
    """
    return service.patch_session(order_id, payload, current_user, override=override)


@router.post("/api/admin/sessions/auto-complete", response_model=AutoCompleteResult)
async def run_auto_complete(
    data: Optional[AutoCompleteRequest] = None,
    admin: CurrentUser = Depends(require_admin),
    db: DbSession = Depends(get_db),
    cache=Depends(get_cache),
):
    """
    Manually trigger session auto-completion
    (In production this runs from the arq worker's daily cron)
    """
    data = data or AutoCompleteRequest()
    logger.info(f"🔧 Auto-complete triggered by {admin.email} (dry_run={data.dryRun})")
    kwargs = {"dry_run": data.dryRun, "cache": cache}
    if data.maxAgeDays is not None:
        kwargs["max_age_days"] = data.maxAgeDays
    return AutoCompleteResult(**auto_complete_sessions(db, **kwargs))
