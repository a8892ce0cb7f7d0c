"""Availability service - Bookable slot grid for a doctor, service and date"""

import logging
from datetime import date
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...cache import AVAILABILITY_PREFIX
from ...config import (
    AVAILABILITY_CACHE_TTL,
    CLINIC_CLOSING_TIME,
    CLINIC_OPENING_TIME,
    DEFAULT_SERVICE_DURATION,
    SLOT_STEP_MINUTES,
)
from ...errors import NotFound, StoreFailure
from .intervals import ReservedInterval, any_overlap
from .repository import SchedulingRepository
from .timeclock import ClockTime, format_clock, parse_clock

logger = logging.getLogger(__name__)

OPENING = parse_clock(CLINIC_OPENING_TIME)
CLOSING = parse_clock(CLINIC_CLOSING_TIME)


def resolve_duration(raw, default: int = DEFAULT_SERVICE_DURATION) -> int:
    """Service duration in minutes; absent, zero or non-numeric falls back to default"""
    try:
        duration = int(raw)
    except (TypeError, ValueError):
        return default
    return duration if duration > 0 else default


def candidate_starts(
    duration: int,
    opening: ClockTime = OPENING,
    closing: ClockTime = CLOSING,
    step: int = SLOT_STEP_MINUTES,
) -> list[ClockTime]:
    """Every step boundary from opening whose appointment ends by closing"""
    last_start = closing.minutes - duration
    return [ClockTime(m) for m in range(opening.minutes, last_start + 1, step)]


def reserved_intervals(
    bookings: Iterable[tuple[str, Optional[int]]], duration: int
) -> list[ReservedInterval]:
    """
    Project bookings onto [start, start + length). A booking whose service
    has no usable duration blocks the requested duration.
    """
    reserved = []
    for label, own_duration in bookings:
        try:
            start = parse_clock(label)
        except ValueError:
            logger.warning(f"⚠️ Skipping booking with unparseable time: {label!r}")
            continue
        reserved.append(
            ReservedInterval.from_booking(start.minutes, resolve_duration(own_duration, duration))
        )
    return reserved


def free_slots(
    duration: int,
    reserved: list[ReservedInterval],
    opening: ClockTime = OPENING,
    closing: ClockTime = CLOSING,
    step: int = SLOT_STEP_MINUTES,
) -> list[ClockTime]:
    return [
        s
        for s in candidate_starts(duration, opening, closing, step)
        if not any_overlap(s.minutes, s.minutes + duration, reserved)
    ]


def availability_cache_key(doctor_id: str, day: date, service_id: str) -> str:
    return f"{AVAILABILITY_PREFIX}{doctor_id}:{day.isoformat()}:{service_id}"


class AvailabilityService:
    """Service layer for the availability grid"""

    def __init__(self, db: Session, cache=None):
        self.db = db
        self.cache = cache
        self.repo = SchedulingRepository()

    def get_service_duration(self, service_id: str, bookable_only: bool = True) -> int:
        """Duration of a service; retired services are not bookable"""
        try:
            service = self.repo.get_service(self.db, service_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to fetch service {service_id}: {e}")
            raise StoreFailure(f"Failed to fetch service: {e}") from e
        if not service or (bookable_only and not service.is_active):
            raise NotFound("Service not found")
        return resolve_duration(service.duration_minutes)

    def get_reserved(
        self, doctor_id: str, day: date, duration: int, exclude_order_id: Optional[str] = None
    ) -> list[ReservedInterval]:
        try:
            booked = self.repo.get_bookings(self.db, doctor_id, day, exclude_order_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Failed to fetch bookings for doctor {doctor_id} on {day}: {e}")
            raise StoreFailure(f"Failed to fetch bookings: {e}") from e
        return reserved_intervals(booked, duration)

    def get_available_slots(self, day: date, doctor_id: str, service_id: str) -> list[str]:
        cache_key = availability_cache_key(doctor_id, day, service_id)
        cached: Optional[list] = self.cache.get(cache_key) if self.cache is not None else None
        if cached is not None:
            return cached

        duration = self.get_service_duration(service_id)
        reserved = self.get_reserved(doctor_id, day, duration)
        slots = [format_clock(s) for s in free_slots(duration, reserved)]

        logger.debug(
            f"📅 {len(slots)} slots for doctor {doctor_id} on {day} "
            f"({duration} min, {len(reserved)} reserved)"
        )
        if self.cache is not None:
            self.cache.set(cache_key, slots, AVAILABILITY_CACHE_TTL)
        return slots
