"""Read-only views over an activity collection for the calendar screens."""

from collections.abc import Iterable
from datetime import date, timedelta

from pydantic import BaseModel

from src.remedial.models import Activity
from src.remedial.status import is_locked


class WeekGroup(BaseModel):
    label: str  # "Week 2 - 2025"
    week_start: date  # Monday
    activities: tuple[Activity, ...]

    @property
    def locked_count(self) -> int:
        return sum(1 for a in self.activities if is_locked(a))


def week_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())


def group_by_week(activities: Iterable[Activity]) -> list[WeekGroup]:
    """Group activities by ISO week, weeks and activities in chronological order."""
    buckets: dict[date, list[Activity]] = {}
    for activity in activities:
        buckets.setdefault(week_monday(activity.start.date()), []).append(activity)

    groups = []
    for monday in sorted(buckets):
        year, week, _ = monday.isocalendar()
        groups.append(
            WeekGroup(
                label=f"Week {week} - {year}",
                week_start=monday,
                activities=tuple(sorted(buckets[monday], key=lambda a: (a.start, a.id))),
            )
        )
    return groups


def activities_on(activities: Iterable[Activity], day: date) -> tuple[Activity, ...]:
    return tuple(sorted((a for a in activities if a.start.date() == day), key=lambda a: a.start))
