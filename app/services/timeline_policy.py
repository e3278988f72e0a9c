"""
Deadline policy for module timelines.

Everything here is a pure function of a timeline's settings, a student's
completion timestamp and the current time, so it can be evaluated for any
clock value without touching the database.

Status progression per (student, timeline):

    IN_PROGRESS -> OVERDUE -> MISSED_DEADLINE
         \\            \\
          `------------`------> COMPLETED

COMPLETED and MISSED_DEADLINE are terminal.
"""

import enum
import math
from datetime import datetime, timedelta, timezone
from typing import Iterable

END_OF_TIME = datetime.max.replace(tzinfo=timezone.utc)


class StudentModuleStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"
    IN_PROGRESS = "IN_PROGRESS"
    OVERDUE = "OVERDUE"
    MISSED_DEADLINE = "MISSED_DEADLINE"


def as_utc(value: datetime) -> datetime:
    # SQLite often returns naive datetimes; treat as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def grace_deadline(deadline: datetime, grace_period_hours: float) -> datetime:
    """End of the grace period; a grace period running past year 9999 never ends."""
    try:
        return as_utc(deadline) + timedelta(hours=grace_period_hours)
    except OverflowError:
        return END_OF_TIME


def hours_until(deadline: datetime, now: datetime) -> float:
    """Hours left before the deadline; negative once it has passed."""
    return (as_utc(deadline) - as_utc(now)).total_seconds() / 3600


def derive_status(
    deadline: datetime,
    grace_period_hours: float,
    completed_at: datetime | None,
    now: datetime,
) -> StudentModuleStatus:
    if completed_at is not None:
        return StudentModuleStatus.COMPLETED

    now = as_utc(now)
    if now < as_utc(deadline):
        return StudentModuleStatus.IN_PROGRESS
    if now < grace_deadline(deadline, grace_period_hours):
        return StudentModuleStatus.OVERDUE
    return StudentModuleStatus.MISSED_DEADLINE


def normalize_warning_periods(periods: Iterable[float]) -> list[int]:
    """
    Deduplicate and sort warning thresholds, largest first.

    Raises ValueError for non-positive or non-integral hours.
    """
    normalized: set[int] = set()
    for p in periods:
        if isinstance(p, bool):
            raise ValueError("warning periods must be numbers of hours")
        hours = float(p)
        if hours <= 0:
            raise ValueError("warning periods must be positive")
        if not hours.is_integer():
            raise ValueError("warning periods must be whole hours")
        normalized.add(int(hours))
    return sorted(normalized, reverse=True)


def due_warning_periods(
    warning_periods: Iterable[int],
    hours_remaining: float,
    already_sent: Iterable[int] = (),
) -> list[int]:
    """
    Thresholds crossed (hours_remaining <= w) and not yet notified.

    Returned smallest first; the first entry is the threshold a warning
    should be tagged with. Nothing is due once the deadline has passed.
    """
    if hours_remaining <= 0:
        return []
    sent = set(already_sent)
    return sorted(w for w in set(warning_periods) if hours_remaining <= w and w not in sent)


def warning_message(module_title: str, hours_remaining: float) -> str:
    hours_left = max(1, math.ceil(hours_remaining))
    return (
        f'Reminder: You have {hours_left} hours left to complete "{module_title}" '
        "before the deadline."
    )


def overdue_message(module_title: str, deadline: datetime, grace_period_hours: float) -> str:
    cutoff = grace_deadline(deadline, grace_period_hours)
    return (
        f'The deadline for "{module_title}" has passed. Complete it before '
        f"{cutoff.strftime('%Y-%m-%d %H:%M UTC')} to avoid being moved back."
    )


def demotion_message(module_title: str, previous_module_title: str) -> str:
    return (
        f'You have been moved back to "{previous_module_title}" due to missing '
        f'the deadline for "{module_title}".'
    )
