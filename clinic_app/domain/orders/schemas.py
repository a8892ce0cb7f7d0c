"""Order domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...models import ORDER_STATUSES
from ..scheduling.timeclock import format_clock, parse_clock


class OrderCreate(BaseModel):
    """Booking request for a service slot picked from /availability"""

    customer_id: Optional[str] = None  # admins may book on behalf of a customer
    service_id: str
    doctor_id: str
    booking_date: date
    booking_time: str
    session_count: int = Field(default=1, ge=1, le=52)
    notes: Optional[str] = None

    @field_validator("booking_time")
    @classmethod
    def normalize_booking_time(cls, v):
        # Canonical label so the store's slot uniqueness sees "10:00 am" and "10:00" as one slot
        return format_clock(parse_clock(v))


class OrderStatusUpdate(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v not in ORDER_STATUSES:
            raise ValueError(f"status must be one of {', '.join(ORDER_STATUSES)}")
        return v


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    service_id: Optional[str] = None
    doctor_id: Optional[str] = None
    booking_date: date
    booking_time: str
    session_count: int
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
