"""
Auto-completion of overdue sessions

Marks past scheduled/pending sessions as completed. Runs daily from the arq
worker and can be triggered manually (CLI or admin endpoint).

- Only sessions with scheduled_date in [today - max_age_days, today)
- Already completed/cancelled/expired/missed sessions are never selected,
  so a second run over the same data updates nothing
- One bulk update, falling back to per-row updates if the bulk write fails
"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from ...cache import SESSIONS_PREFIX, invalidate_namespaces
from ...config import AUTO_COMPLETE_MAX_AGE_DAYS, CLINIC_TIMEZONE
from .repository import SessionRepository

logger = logging.getLogger(__name__)


def facility_today() -> date:
    """Today's date on the clinic's wall clock"""
    return datetime.now(ZoneInfo(CLINIC_TIMEZONE)).date()


def auto_complete_sessions(
    db: DbSession,
    dry_run: bool = False,
    max_age_days: int = AUTO_COMPLETE_MAX_AGE_DAYS,
    today: Optional[date] = None,
    cache=None,
) -> dict:
    """
    Complete overdue sessions.

    Returns:
        dict: {"updated": int, "skipped": int, "errors": list[str]}

    Raises:
        SQLAlchemyError: if the candidate fetch fails. Write failures never
        raise; they are reported per session in "errors".
    """
    repo = SessionRepository()
    today = today or facility_today()
    cutoff = today - timedelta(days=max_age_days)

    logger.info(f"🔄 Auto-complete: checking sessions before {today} (cutoff: {cutoff})")

    try:
        sessions = repo.fetch_completion_candidates(db, today, cutoff)
    except SQLAlchemyError as e:
        logger.error(f"❌ Auto-complete fetch failed: {e}")
        raise

    if not sessions:
        logger.info("ℹ️ Auto-complete: no sessions to complete")
        return {"updated": 0, "skipped": 0, "errors": []}

    # Snapshot before any write so failed commits cannot expire these attributes
    candidates = [(s.id, s.scheduled_date, s.status) for s in sessions]

    if dry_run:
        logger.info(f"[DRY RUN] Would complete {len(candidates)} sessions:")
        for session_id, scheduled_date, status in candidates:
            logger.info(f"  - ID {session_id} | {scheduled_date} | {status}")
        return {"updated": 0, "skipped": len(candidates), "errors": []}

    errors: list[str] = []
    try:
        updated = repo.bulk_complete(db, [c[0] for c in candidates], today, today, cutoff)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"⚠️ Auto-complete bulk update failed, falling back to per-row updates: {e}")
        updated = 0
        for session_id, scheduled_date, _status in candidates:
            try:
                updated += repo.complete_one(
                    db, session_id, scheduled_date or today, today, cutoff
                )
            except SQLAlchemyError as row_error:
                db.rollback()
                errors.append(f"Session {session_id}: {row_error}")

    if updated and cache is not None:
        invalidate_namespaces(cache, SESSIONS_PREFIX)

    logger.info(f"✅ Auto-complete done: {updated} updated, {len(errors)} errors")
    return {"updated": updated, "skipped": len(candidates) - updated, "errors": errors}
