"""Day eligibility: may a session be planned on this date?

Checks run in a fixed order and the first failure wins:

  1. weekend            Saturday and Sunday are never schedulable
  2. wrong-subject-day  the principal's rota puts another subject on that weekday
  3. window-inactive    no active remedial window right now
     outside-window     the date (taken at midday) is outside the window

The reason codes are part of the contract; the messages are for display.
"""

from collections.abc import Iterable
from datetime import date, datetime, time

from src.remedial.models import Eligibility, SchedulingWindow, WeeklySubjectSchedule, WindowStatus
from src.remedial.subjects import derive_allowed_subjects, find_allowed
from src.remedial.window import format_long_date, window_label, window_status

MIDDAY = time(12, 0)


def _as_date(day: date | datetime) -> date:
    return day.date() if isinstance(day, datetime) else day


def is_weekend(day: date | datetime) -> bool:
    return _as_date(day).weekday() >= 5


def is_within_window(day: date | datetime, window: SchedulingWindow | None, now: datetime) -> bool:
    """True when the window is active and contains the date.

    The date is pinned to 12:00 so that whatever time-of-day the caller
    passed cannot push it across a day boundary.
    """
    if window is None or window_status(window, now) is not WindowStatus.ACTIVE:
        return False
    candidate = datetime.combine(_as_date(day), MIDDAY)
    return window.starts_at <= candidate <= window.ends_at


def rota_allows(
    day: date | datetime,
    weekly_subjects: WeeklySubjectSchedule | None,
    allowed_subjects: Iterable[str],
) -> bool:
    """Whether the rota's subject for this weekday is one the coordinator handles.

    Always True when no rota is configured or the coordinator has no subjects.
    """
    allowed = list(allowed_subjects)
    if weekly_subjects is None or not weekly_subjects.is_configured or not allowed:
        return True
    rota_subject = weekly_subjects.subject_for(_as_date(day).strftime("%A"))
    if not rota_subject:
        return False
    candidates = derive_allowed_subjects(rota_subject) or [rota_subject]
    return any(find_allowed(candidate, allowed) for candidate in candidates)


def check_day(
    day: date | datetime,
    window: SchedulingWindow | None,
    weekly_subjects: WeeklySubjectSchedule | None,
    allowed_subjects: Iterable[str],
    now: datetime,
) -> Eligibility:
    """Run the eligibility checks for one date."""
    target = _as_date(day)
    weekday = target.strftime("%A")
    allowed = list(allowed_subjects)

    if is_weekend(target):
        return Eligibility(
            eligible=False,
            reason="weekend",
            message=f"{format_long_date(target)} is a {weekday}; remedial sessions run Monday to Friday.",
        )

    if not rota_allows(target, weekly_subjects, allowed):
        rota_subject = weekly_subjects.subject_for(weekday) if weekly_subjects else None
        scheduled = f"{rota_subject} is scheduled on {weekday}s" if rota_subject else f"No subject is scheduled on {weekday}s"
        return Eligibility(
            eligible=False,
            reason="wrong-subject-day",
            message=f"{scheduled}, which is not one of your assigned subjects ({', '.join(allowed)}).",
        )

    status = window_status(window, now)
    if status is not WindowStatus.ACTIVE:
        return Eligibility(
            eligible=False,
            reason="window-inactive",
            message="The principal has not enabled an active remedial window.",
        )

    if not is_within_window(target, window, now):
        return Eligibility(
            eligible=False,
            reason="outside-window",
            message=f"Remedial window runs from {window_label(window)}. Choose a date within this range.",
        )

    return Eligibility(eligible=True)
