"""
Scheduling Domain

Conflict-free appointment slots for a doctor, service and date.

- intervals.py: half-open overlap test and reserved intervals
- timeclock.py: minutes-since-midnight value type with 12-hour parse/format
- service.py: slot grid generation filtered against existing bookings
- router.py: GET /availability
"""

from .router import router

__all__ = ["router"]
