import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


ORDER_STATUSES = ("pending", "confirmed", "completed", "cancelled")
# Orders in these statuses hold their slot on the doctor's calendar
ACTIVE_ORDER_STATUSES = ("pending", "confirmed")


class Service(Base):
    """Bookable treatment. Catalog CRUD lives elsewhere; only duration matters here."""

    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=True)  # null -> default duration
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        # Store-level guard against two active bookings committing the same start slot.
        # Cancelled and completed orders release the slot.
        Index(
            "uq_orders_active_doctor_slot",
            "doctor_id",
            "booking_date",
            "booking_time",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_id = Column(String(36), nullable=False, index=True)
    # Service deletion nulls the reference instead of cascading
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    doctor_id = Column(String(36), nullable=True, index=True)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(16), nullable=False)  # "h:mm am/pm"
    session_count = Column(Integer, default=1, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, completed, cancelled
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    service = relationship("Service")
    sessions = relationship(
        "Session", back_populates="order", order_by="Session.session_number"
    )


class Session(Base):
    """One occurrence of a multi-session treatment order"""

    __tablename__ = "sessions"
    __table_args__ = (
        UniqueConstraint("order_id", "session_number", name="uq_sessions_order_number"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    session_number = Column(Integer, nullable=False)
    scheduled_date = Column(Date, nullable=True, index=True)
    scheduled_time = Column(String(16), nullable=True)
    # scheduled, pending, completed, cancelled, expired, missed
    status = Column(String(20), default="scheduled", nullable=False, index=True)
    attended_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    order = relationship("Order", back_populates="sessions")
