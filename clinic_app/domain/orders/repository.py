"""Order repository - Database operations for orders"""

from typing import Optional

from sqlalchemy.orm import Session as DbSession

from ...models import Order, Session


class OrderRepository:
    """Repository for order database operations"""

    @staticmethod
    def get_order(db: DbSession, order_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.id == order_id).first()

    @staticmethod
    def add_order_with_sessions(db: DbSession, order: Order, sessions: list[Session]) -> Order:
        """Insert an order and its sessions in one transaction"""
        db.add(order)
        db.flush()  # assigns order.id
        for session in sessions:
            session.order_id = order.id
        db.add_all(sessions)
        db.commit()
        db.refresh(order)
        return order

    @staticmethod
    def update_status(db: DbSession, order: Order, status: str) -> Order:
        order.status = status
        db.commit()
        db.refresh(order)
        return order
