"""
Orders Domain

Booking commit (order plus its sessions, re-verified against concurrent
bookings) and order status changes. Orders are cancelled, never deleted.
"""

from .router import router

__all__ = ["router"]
