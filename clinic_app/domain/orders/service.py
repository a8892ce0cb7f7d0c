"""Order service - Booking commit and order status changes"""

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session as DbSession

from ...auth import CurrentUser
from ...cache import AVAILABILITY_PREFIX, ORDERS_PREFIX, SESSIONS_PREFIX, invalidate_namespaces
from ...config import DEFAULT_SERVICE_DURATION
from ...errors import BadRequest, Conflict, Forbidden, NotFound, StoreFailure
from ...models import ACTIVE_ORDER_STATUSES, Order, Session
from ..scheduling.intervals import any_overlap
from ..scheduling.service import CLOSING, OPENING, AvailabilityService
from ..scheduling.timeclock import parse_clock
from .repository import OrderRepository
from .schemas import OrderCreate

logger = logging.getLogger(__name__)

SLOT_TAKEN = "Selected time slot is no longer available. Please choose another time."


class OrderService:
    """Service layer for order business logic"""

    def __init__(self, db: DbSession, cache=None):
        self.db = db
        self.cache = cache
        self.repo = OrderRepository()
        self.availability = AvailabilityService(db)

    def _invalidate(self):
        if self.cache is not None:
            invalidate_namespaces(self.cache, ORDERS_PREFIX, AVAILABILITY_PREFIX, SESSIONS_PREFIX)

    def _ensure_slot_free(self, order_like, duration: int, exclude_order_id=None):
        """Re-check the slot against committed bookings inside the write transaction"""
        start = parse_clock(order_like.booking_time).minutes
        reserved = self.availability.get_reserved(
            order_like.doctor_id, order_like.booking_date, duration, exclude_order_id
        )
        if any_overlap(start, start + duration, reserved):
            logger.warning(
                f"⚠️ Slot conflict for doctor {order_like.doctor_id} on "
                f"{order_like.booking_date} at {order_like.booking_time}"
            )
            raise Conflict(SLOT_TAKEN)

    def get_order(self, order_id: str, user: CurrentUser) -> Order:
        try:
            order = self.repo.get_order(self.db, order_id)
        except SQLAlchemyError as e:
            raise StoreFailure(str(e)) from e
        if not order:
            raise NotFound("Order not found")
        if not user.is_admin and order.customer_id != user.id:
            raise Forbidden("Not allowed to access this order")
        return order

    def create_order(self, data: OrderCreate, user: CurrentUser) -> Order:
        """
        Book a slot and create its sessions.

        The availability read and this insert are not atomic, so the slot is
        verified again here and the store's unique index catches a concurrent
        commit of the same start time. Either way the loser gets 409.
        """
        customer_id = data.customer_id if (user.is_admin and data.customer_id) else user.id
        duration = self.availability.get_service_duration(data.service_id)

        start = parse_clock(data.booking_time).minutes
        if start < OPENING.minutes or start + duration > CLOSING.minutes:
            raise BadRequest("Selected time is outside opening hours")

        self._ensure_slot_free(data, duration)

        order = Order(
            customer_id=customer_id,
            service_id=data.service_id,
            doctor_id=data.doctor_id,
            booking_date=data.booking_date,
            booking_time=data.booking_time,
            session_count=data.session_count,
            status="pending",
            notes=data.notes,
        )
        # First session is booked; the rest are placeholders until rescheduled
        sessions = [
            Session(
                session_number=n,
                scheduled_date=data.booking_date,
                scheduled_time=data.booking_time,
                status="scheduled" if n == 1 else "pending",
            )
            for n in range(1, data.session_count + 1)
        ]

        try:
            order = self.repo.add_order_with_sessions(self.db, order, sessions)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot taken at commit for doctor {data.doctor_id}: {e.orig}")
            raise Conflict(SLOT_TAKEN) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to create order: {e}")
            raise StoreFailure(str(e)) from e

        logger.info(
            f"✅ Order {order.id} booked: doctor {order.doctor_id} on {order.booking_date} "
            f"at {order.booking_time} ({order.session_count} sessions)"
        )
        self._invalidate()
        return order

    def update_status(self, order_id: str, status: str, user: CurrentUser) -> Order:
        order = self.get_order(order_id, user)
        if order.status == status:
            return order

        reactivating = status in ACTIVE_ORDER_STATUSES and order.status not in ACTIVE_ORDER_STATUSES
        if reactivating:
            duration = (
                self.availability.get_service_duration(order.service_id, bookable_only=False)
                if order.service_id
                else DEFAULT_SERVICE_DURATION
            )
            self._ensure_slot_free(order, duration, exclude_order_id=order.id)

        try:
            order = self.repo.update_status(self.db, order, status)
        except IntegrityError as e:
            self.db.rollback()
            raise Conflict(SLOT_TAKEN) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Failed to update order {order_id}: {e}")
            raise StoreFailure(str(e)) from e

        logger.info(f"✅ Order {order_id} status → {status}")
        self._invalidate()
        return order

    def cancel_order(self, order_id: str, user: CurrentUser) -> Order:
        """Soft delete: orders are cancelled, never removed"""
        return self.update_status(order_id, "cancelled", user)
