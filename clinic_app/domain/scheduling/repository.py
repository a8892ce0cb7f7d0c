"""Scheduling repository - Database reads for availability"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from ...models import ACTIVE_ORDER_STATUSES, Order, Service


class SchedulingRepository:
    """Repository for availability queries"""

    @staticmethod
    def get_service(db: Session, service_id: str) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_bookings(
        db: Session,
        doctor_id: str,
        booking_date: date,
        exclude_order_id: Optional[str] = None,
    ) -> list[tuple[str, Optional[int]]]:
        """(start label, own service duration) of every active booking for a doctor on a date"""
        query = (
            db.query(Order.booking_time, Service.duration_minutes)
            .outerjoin(Service, Order.service_id == Service.id)
            .filter(
                Order.doctor_id == doctor_id,
                Order.booking_date == booking_date,
                Order.status.in_(ACTIVE_ORDER_STATUSES),
            )
        )
        if exclude_order_id:
            query = query.filter(Order.id != exclude_order_id)
        return [(row[0], row[1]) for row in query.all()]
