"""Conflict detection against approved sessions.

Approved sessions are authoritative: a new session may not land on the same
day as an approved one for the same subject and grade. A subject or grade that
is missing on either side acts as a wildcard, so sparse records still block.
"""

from collections.abc import Iterable
from datetime import date, datetime

from src.remedial.models import Activity
from src.remedial.status import is_locked
from src.remedial.subjects import grades_match


def _subjects_match(left: str | None, right: str | None) -> bool:
    if not left or not right:
        return True
    return left.strip().lower() == right.strip().lower()


def find_conflict(
    start: datetime | date,
    subject: str | None,
    grade_level: str | None,
    activities: Iterable[Activity],
    *,
    exclude_id: int | None = None,
) -> Activity | None:
    """Return the first approved activity that clashes with the candidate."""
    day = start.date() if isinstance(start, datetime) else start
    for activity in activities:
        if exclude_id is not None and activity.id == exclude_id:
            continue
        if activity.start.date() != day:
            continue
        if not is_locked(activity):
            continue
        if _subjects_match(activity.subject, subject) and grades_match(activity.grade_level, grade_level):
            return activity
    return None


def has_conflict(
    start: datetime | date,
    subject: str | None,
    grade_level: str | None,
    activities: Iterable[Activity],
    *,
    exclude_id: int | None = None,
) -> bool:
    return find_conflict(start, subject, grade_level, activities, exclude_id=exclude_id) is not None


def conflict_message(clash: Activity) -> str:
    when = clash.start.strftime("%A, %B ") + f"{clash.start.day}"
    label = clash.subject or clash.title
    return f"An approved {label} session already exists on {when}. Pick another date."
