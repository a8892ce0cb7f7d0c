"""Half-open interval overlap checks over minutes since midnight"""

from dataclasses import dataclass
from typing import Iterable


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """True iff [a_start, a_end) and [b_start, b_end) share any minute.

    Touching intervals (a_end == b_start) do not overlap.
    """
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class ReservedInterval:
    """Time blocked by an existing booking. Derived, never persisted."""

    start: int
    end: int

    @classmethod
    def from_booking(cls, start: int, duration: int) -> "ReservedInterval":
        return cls(start=start, end=start + duration)


def any_overlap(start: int, end: int, reserved: Iterable[ReservedInterval]) -> bool:
    return any(overlaps(start, end, r.start, r.end) for r in reserved)
