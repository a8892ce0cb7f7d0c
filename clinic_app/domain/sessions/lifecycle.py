"""
Session status lifecycle

    scheduled ─┐
               ├─> completed | cancelled | expired | missed
    pending ───┘

Terminal statuses have no outgoing transitions; an administrator may
override that explicitly. Only non-terminal sessions can be rescheduled.
"""

ACTIVE_STATUSES = ("scheduled", "pending")
TERMINAL_STATUSES = ("completed", "cancelled", "expired", "missed")
SESSION_STATUSES = ACTIVE_STATUSES + TERMINAL_STATUSES

# Fields a caller may change on a single session
PATCHABLE_FIELDS = (
    "scheduled_date",
    "scheduled_time",
    "status",
    "attended_date",
    "notes",
    "expires_at",
)
RESCHEDULE_FIELDS = ("scheduled_date", "scheduled_time")


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, new: str, override: bool = False) -> bool:
    """Whether a session may move from current to new status"""
    if new not in SESSION_STATUSES:
        return False
    if current == new or override:
        return True
    return not is_terminal(current)
