"""Scheduling window resolution.

The principal configures the remedial period in one of two shapes:

  explicit record   {"quarter": "1st Quarter", "startDate": "2025-01-06",
                     "endDate": "2025-01-10", "active": true}
  quarter table     {"schoolYear": "2024-2025",
                     "quarters": {"1st Quarter": {"startMonth": 6, "endMonth": 8}, ...}}

Both resolve to a single SchedulingWindow. For the quarter table, months from
June onwards belong to the first calendar year of the school year and earlier
months to the second. The quarter containing "now" wins; otherwise the
nearest upcoming quarter; otherwise the most recently ended one.
"""

import calendar
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError

from src.remedial.logging import get_logger
from src.remedial.models import QuarterRange, QuarterSchedule, SchedulingWindow, WindowStatus

log = get_logger(__name__)

ACTIVE_TRUE_VALUES: frozenset[str] = frozenset({"1", "true", "active", "enabled", "yes"})

# School year rolls over in June
SCHOOL_YEAR_START_MONTH = 6


def _first(payload: dict, *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def interpret_active(value: object) -> bool:
    """Interpret the many spellings of an "active" flag (1, "true", "enabled", ...)."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value == 1
    return str(value).strip().lower() in ACTIVE_TRUE_VALUES


def parse_iso_date(value: object) -> date | None:
    """Accept a date, datetime or ISO string (``YYYY-MM-DD`` or full instant)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def sanitize_month(value: object) -> int | None:
    """Coerce a stored month to 1-12; zero-based 0-11 values are shifted up."""
    if value is None or isinstance(value, bool):
        return None
    try:
        month = int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if 1 <= month <= 12:
        return month
    if 0 <= month <= 11:
        return month + 1
    return None


def resolve_school_year(now: datetime | date) -> str:
    year = now.year
    if now.month >= SCHOOL_YEAR_START_MONTH:
        return f"{year}-{year + 1}"
    return f"{year - 1}-{year}"


def parse_window_record(payload: dict | None) -> SchedulingWindow | None:
    """Build a window from an explicit start/end record, or None if unusable."""
    if not payload:
        return None
    start = parse_iso_date(_first(payload, "startDate", "start_date", "start"))
    end = parse_iso_date(_first(payload, "endDate", "end_date", "end"))
    if start is None or end is None:
        return None
    if end < start:
        log.warning("window_record_inverted", start=start.isoformat(), end=end.isoformat())
        return None

    raw_active = _first(payload, "active", "is_active", "status", "enabled")
    active = True if raw_active is None else interpret_active(raw_active)
    quarter = _first(payload, "quarter", "remedial_quarter", "term")
    return SchedulingWindow(
        start_date=start,
        end_date=end,
        active=active,
        quarter=str(quarter).strip() if quarter else None,
    )


def parse_quarter_schedule(payload: dict | None, now: datetime | None = None) -> QuarterSchedule | None:
    """Build a quarter table, dropping quarters whose months cannot be used."""
    if not payload:
        return None
    raw_quarters = _first(payload, "quarters")
    if not isinstance(raw_quarters, dict):
        return None

    school_year = _first(payload, "schoolYear", "school_year")
    if not school_year:
        school_year = resolve_school_year(now or datetime.now())

    quarters: dict[str, QuarterRange] = {}
    for label, months in raw_quarters.items():
        if not isinstance(months, dict):
            continue
        start_month = sanitize_month(_first(months, "startMonth", "start_month"))
        end_month = sanitize_month(_first(months, "endMonth", "end_month"))
        quarters[str(label)] = QuarterRange(start_month=start_month, end_month=end_month)

    try:
        return QuarterSchedule(school_year=str(school_year), quarters=quarters)
    except ValidationError as e:
        log.warning("quarter_schedule_invalid", school_year=school_year, error=str(e))
        return None


def _year_for_month(school_year: str, month: int) -> int:
    start_year, end_year = (int(part) for part in school_year.split("-"))
    return start_year if month >= SCHOOL_YEAR_START_MONTH else end_year


def quarter_range(school_year: str, start_month: int, end_month: int) -> tuple[date, date]:
    """Concrete first/last day of a quarter inside a school year."""
    start_year = _year_for_month(school_year, start_month)
    end_year = _year_for_month(school_year, end_month)
    last_day = calendar.monthrange(end_year, end_month)[1]
    return date(start_year, start_month, 1), date(end_year, end_month, last_day)


def resolve_quarter_window(schedule: QuarterSchedule, now: datetime) -> SchedulingWindow | None:
    """Pick the current, else nearest upcoming, else most recently ended quarter."""
    candidates: list[SchedulingWindow] = []
    for label, months in schedule.quarters.items():
        if months.start_month is None or months.end_month is None:
            continue
        start, end = quarter_range(schedule.school_year, months.start_month, months.end_month)
        if end < start:
            log.debug("quarter_skipped", quarter=label, reason="end_before_start")
            continue
        candidates.append(SchedulingWindow(start_date=start, end_date=end, active=True, quarter=label))

    if not candidates:
        return None

    current = [w for w in candidates if w.starts_at <= now <= w.ends_at]
    if current:
        return min(current, key=lambda w: w.start_date)

    upcoming = [w for w in candidates if w.starts_at > now]
    if upcoming:
        return min(upcoming, key=lambda w: w.start_date)

    return max(candidates, key=lambda w: w.end_date)


def resolve_window(payload: dict | None, now: datetime) -> SchedulingWindow | None:
    """Resolve either configuration shape to one window (None if nothing usable)."""
    if not payload or not isinstance(payload, dict):
        return None
    if "schedule" in payload:
        # API envelope: {"success": true, "schedule": {...} | null}
        return resolve_window(payload["schedule"], now)

    if "quarters" in payload:
        schedule = parse_quarter_schedule(payload, now)
        window = resolve_quarter_window(schedule, now) if schedule else None
    else:
        window = parse_window_record(payload)

    if window is None:
        log.info("window_unresolved")
    else:
        log.info(
            "window_resolved",
            quarter=window.quarter,
            start=window.start_date.isoformat(),
            end=window.end_date.isoformat(),
            active=window.active,
        )
    return window


def window_status(window: SchedulingWindow | None, now: datetime) -> WindowStatus:
    if window is None or not window.active:
        return WindowStatus.INACTIVE
    if now < window.starts_at:
        return WindowStatus.UPCOMING
    if now > window.ends_at:
        return WindowStatus.COMPLETED
    return WindowStatus.ACTIVE


def format_long_date(value: date) -> str:
    """``January 6, 2025`` regardless of platform strftime quirks."""
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def window_label(window: SchedulingWindow | None) -> str | None:
    if window is None:
        return None
    return f"{format_long_date(window.start_date)} – {format_long_date(window.end_date)}"


def blocking_reason(window: SchedulingWindow | None, now: datetime) -> str | None:
    """Explain why planning is closed, or None when the window is active."""
    status = window_status(window, now)
    if status is WindowStatus.ACTIVE:
        return None
    if window is None:
        return "Waiting for the principal to enable a remedial period."
    if status is WindowStatus.UPCOMING:
        return f"Remedial window starts on {format_long_date(window.start_date)}."
    if status is WindowStatus.COMPLETED:
        return f"The last remedial window ended on {format_long_date(window.end_date)}."
    return "The configured remedial window is not active."
