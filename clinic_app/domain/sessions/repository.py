"""Session repository - Database operations for treatment sessions"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session as DbSession

from ...models import Order, Session
from .lifecycle import ACTIVE_STATUSES


class SessionRepository:
    """Repository for session database operations"""

    @staticmethod
    def get_order(db: DbSession, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def list_for_order(db: DbSession, order_id: str) -> list[Session]:
        return (
            db.query(Session)
            .filter(Session.order_id == order_id)
            .order_by(Session.session_number.asc())
            .all()
        )

    @staticmethod
    def session_numbers(db: DbSession, order_id: str) -> list[int]:
        rows = db.query(Session.session_number).filter(Session.order_id == order_id).all()
        return [row[0] for row in rows]

    @staticmethod
    def create_many(db: DbSession, order_id: str, drafts: list[dict]) -> list[Session]:
        rows = [Session(**draft, order_id=order_id) for draft in drafts]
        db.add_all(rows)
        db.commit()
        for row in rows:
            db.refresh(row)
        return rows

    @staticmethod
    def get_for_order(db: DbSession, session_id: str, order_id: str) -> Optional[Session]:
        """Scoped by owning order so one order's id cannot reach another order's session"""
        return (
            db.query(Session)
            .filter(Session.id == session_id, Session.order_id == order_id)
            .first()
        )

    @staticmethod
    def update(db: DbSession, session: Session, **updates) -> Session:
        for key, value in updates.items():
            setattr(session, key, value)
        db.commit()
        db.refresh(session)
        return session

    # Auto-completion

    @staticmethod
    def fetch_completion_candidates(db: DbSession, today: date, cutoff: date) -> list[Session]:
        return (
            db.query(Session)
            .filter(
                Session.status.in_(ACTIVE_STATUSES),
                Session.scheduled_date < today,
                Session.scheduled_date >= cutoff,
            )
            .order_by(Session.scheduled_date.asc())
            .all()
        )

    @staticmethod
    def bulk_complete(
        db: DbSession, session_ids: list[str], attended_date: date, today: date, cutoff: date
    ) -> int:
        """
        Mark sessions completed in one statement. The eligibility predicate is
        repeated so rows rescheduled or closed since the fetch are left alone.
        """
        updated = (
            db.query(Session)
            .filter(
                Session.id.in_(session_ids),
                Session.status.in_(ACTIVE_STATUSES),
                Session.scheduled_date < today,
                Session.scheduled_date >= cutoff,
            )
            .update(
                {Session.status: "completed", Session.attended_date: attended_date},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated

    @staticmethod
    def complete_one(
        db: DbSession, session_id: str, attended_date: date, today: date, cutoff: date
    ) -> int:
        updated = (
            db.query(Session)
            .filter(
                Session.id == session_id,
                Session.status.in_(ACTIVE_STATUSES),
                Session.scheduled_date < today,
                Session.scheduled_date >= cutoff,
            )
            .update(
                {Session.status: "completed", Session.attended_date: attended_date},
                synchronize_session=False,
            )
        )
        db.commit()
        return updated
