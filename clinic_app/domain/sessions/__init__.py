"""
Sessions Domain

Per-order treatment sessions: listing, bulk creation, whitelisted single-row
patches governed by the status lifecycle, and the overdue-session
auto-completion job.
"""

from .router import router

__all__ = ["router"]
