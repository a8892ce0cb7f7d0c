"""Session service - Business logic for treatment session operations"""

import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from ...auth import CurrentUser
from ...cache import ORDERS_PREFIX, SESSIONS_PREFIX, invalidate_namespaces
from ...errors import BadRequest, Conflict, Forbidden, NotFound, StoreFailure
from ...models import Order, Session
from .lifecycle import PATCHABLE_FIELDS, RESCHEDULE_FIELDS, can_transition, is_terminal
from .repository import SessionRepository
from .schemas import SessionDraft, SessionFieldsUpdate

logger = logging.getLogger(__name__)


def pick_whitelisted(payload: dict) -> dict:
    """Keep only patchable session fields; anything else is dropped"""
    return {key: payload[key] for key in PATCHABLE_FIELDS if key in payload}


class SessionService:
    """Service layer for session business logic"""

    def __init__(self, db: DbSession, cache=None):
        self.db = db
        self.cache = cache
        self.repo = SessionRepository()

    def _invalidate(self):
        if self.cache is not None:
            invalidate_namespaces(self.cache, SESSIONS_PREFIX, ORDERS_PREFIX)

    def get_order(self, order_id: str, user: CurrentUser) -> Order:
        try:
            order = self.repo.get_order(self.db, order_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e
        if not order:
            raise NotFound("Order not found")
        if not user.is_admin and order.customer_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to access sessions of order {order_id}")
            raise Forbidden("Not allowed to access this order")
        return order

    def list_sessions(self, order_id: str, user: CurrentUser) -> list[Session]:
        self.get_order(order_id, user)
        try:
            return self.repo.list_for_order(self.db, order_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to list sessions for order {order_id}: {e}")
            raise StoreFailure(str(e)) from e

    def create_sessions(
        self, order_id: str, drafts: Optional[list[SessionDraft]], user: CurrentUser
    ) -> list[Session]:
        """
        Bulk insert sessions for an order, numbering any drafts without a number.

        Numbers across the order must stay unique and contiguous from 1.
        """
        if not drafts:
            raise BadRequest("No sessions provided")
        self.get_order(order_id, user)

        try:
            existing = self.repo.session_numbers(self.db, order_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e

        next_number = max(existing, default=0) + 1
        records = []
        for draft in drafts:
            data = draft.model_dump(exclude_none=True)
            if "session_number" not in data:
                data["session_number"] = next_number
            next_number = max(next_number, data["session_number"]) + 1
            records.append(data)

        numbers = [r["session_number"] for r in records]
        if len(numbers) != len(set(numbers)):
            raise BadRequest("Duplicate session_number in request")
        if set(numbers) & set(existing):
            raise Conflict("Session number already exists for this order")
        combined = sorted(existing + numbers)
        if combined != list(range(1, len(combined) + 1)):
            raise BadRequest("Session numbers must be contiguous from 1")

        try:
            created = self.repo.create_many(self.db, order_id, records)
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict("Session number already exists for this order") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create sessions for order {order_id}: {e}")
            raise StoreFailure(str(e)) from e

        logger.info(f"✅ Created {len(created)} sessions for order {order_id}")
        self._invalidate()
        return created

    def patch_session(
        self, order_id: str, payload: dict, user: CurrentUser, override: bool = False
    ) -> Session:
        """
        Update one session from a whitelisted subset of the payload.

        Terminal sessions cannot be rescheduled or moved to another status
        unless an admin passes override.
        """
        session_id = payload.get("sessionId")
        if not session_id:
            raise BadRequest("sessionId is required")

        safe_update = pick_whitelisted(payload)
        if not safe_update:
            raise BadRequest("No valid fields to update")

        try:
            updates = SessionFieldsUpdate.model_validate(safe_update).model_dump(exclude_unset=True)
        except ValidationError as e:
            raise BadRequest(f"Invalid session fields: {e.errors()[0]['msg']}") from e

        if override and not user.is_admin:
            raise Forbidden("Only admins can override session lifecycle rules")

        self.get_order(order_id, user)
        try:
            session = self.repo.get_for_order(self.db, session_id, order_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e
        if not session:
            raise NotFound("Session not found")

        if not override:
            if is_terminal(session.status) and any(f in updates for f in RESCHEDULE_FIELDS):
                raise Conflict(f"Cannot reschedule a {session.status} session")
            if "status" in updates and not can_transition(session.status, updates["status"]):
                raise Conflict(
                    f"Invalid status transition: {session.status} → {updates['status']}"
                )

        try:
            updated = self.repo.update(self.db, session, **updates)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update session {session_id}: {e}")
            raise StoreFailure(str(e)) from e

        logger.info(f"✅ Session {session_id} updated: {sorted(updates)}")
        self._invalidate()
        return updated
