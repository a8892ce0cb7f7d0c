"""Scheduling domain schemas - Pydantic models for validation"""

from pydantic import BaseModel


class AvailabilityResponse(BaseModel):
    """Bookable start times as 12-hour labels"""

    slots: list[str]
