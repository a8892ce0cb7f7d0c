"""Scheduling router - Availability endpoint"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...cache import get_cache
from ...database import get_db
from ...errors import BadRequest
from .schemas import AvailabilityResponse
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_availability_service(
    db: Session = Depends(get_db), cache=Depends(get_cache)
) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db, cache)


def parse_booking_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise BadRequest("Invalid date format. Expected YYYY-MM-DD") from None


@router.get("/availability", response_model=AvailabilityResponse)
@router.get("/available-timeslots", response_model=AvailabilityResponse, include_in_schema=False)
async def get_availability(
    date_param: Optional[str] = Query(None, alias="date"),
    doctor_id: Optional[str] = Query(None, alias="doctorId"),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Free start times for a doctor/service on a date (09:00-18:00, 15-minute grid)"""
    if not date_param or not doctor_id or not service_id:
        raise BadRequest("Missing required params")

    day = parse_booking_date(date_param)
    return AvailabilityResponse(slots=service.get_available_slots(day, doctor_id, service_id))
