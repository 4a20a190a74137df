"""Pydantic models for remedial scheduling data.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Activities are frozen: every change produces a new instance via model_copy(),
and collections are passed around as tuples.
"""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

WEEKDAYS: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday")

Weekday = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_time_of_day(value: str) -> time:
    """Parse a 24-hour ``HH:MM`` string.

    Raises:
        ValueError: If the value is not a valid 24-hour time.
    """
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM (24-hour)")
    return time(int(match.group(1)), int(match.group(2)))


class StatusKind(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    DECLINED = "declined"
    UNKNOWN = "unknown"


class ApprovalStatus(BaseModel):
    """Approval state of an activity.

    ``kind`` is the closed variant the engine reasons about; ``label`` is what
    gets shown. Unrecognised statuses keep their (title-cased) label under
    ``StatusKind.UNKNOWN`` so new server-side states survive a round trip.
    """

    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    label: str

    @classmethod
    def approved(cls) -> "ApprovalStatus":
        return cls(kind=StatusKind.APPROVED, label="Approved")

    @classmethod
    def pending(cls) -> "ApprovalStatus":
        return cls(kind=StatusKind.PENDING, label="Pending")

    @classmethod
    def declined(cls) -> "ApprovalStatus":
        return cls(kind=StatusKind.DECLINED, label="Declined")

    @property
    def is_approved(self) -> bool:
        return self.kind is StatusKind.APPROVED


class Activity(BaseModel):
    """A scheduled remediation session in a coordinator's calendar."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    start: datetime
    end: datetime
    grade_level: str | None = None  # normalized, e.g. "Grade 3"
    subject: str | None = None  # member of the allowed subjects, or None if unconstrained
    type: str = "class"
    room_no: str | None = None
    description: str | None = None
    status: ApprovalStatus | None = None  # None = not yet sent
    is_weekly_template: bool = False
    week_ref: str | None = None  # "<grade>-<monday>", shared by one weekly batch

    # Provenance, filled in by the approval workflow or the stored record
    requested_by: str | None = None
    requested_at: datetime | None = None
    approved_at: datetime | None = None
    approved_by: str | None = None
    source: str | None = None  # "manual", "weekly", "import", "server"

    @model_validator(mode="after")
    def _end_after_start(self) -> "Activity":
        if self.end <= self.start:
            raise ValueError("Activity end must be later than its start")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def day(self) -> str:
        """Weekday label derived from the start instant."""
        return self.start.strftime("%A")


class WindowStatus(str, Enum):
    INACTIVE = "inactive"
    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class SchedulingWindow(BaseModel):
    """Date range in which remedial sessions may be planned (inclusive)."""

    model_config = ConfigDict(frozen=True)

    start_date: date
    end_date: date
    active: bool = True
    quarter: str | None = None

    @model_validator(mode="after")
    def _ordered(self) -> "SchedulingWindow":
        if self.end_date < self.start_date:
            raise ValueError("Window end date precedes its start date")
        return self

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.start_date, time.min)

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.end_date, time.max)


class QuarterRange(BaseModel):
    start_month: int | None = Field(default=None, ge=1, le=12)
    end_month: int | None = Field(default=None, ge=1, le=12)


class QuarterSchedule(BaseModel):
    """Principal's quarter-month table for one school year (e.g. "2024-2025")."""

    school_year: str
    quarters: dict[str, QuarterRange] = Field(default_factory=dict)

    @field_validator("school_year")
    @classmethod
    def _school_year_format(cls, value: str) -> str:
        value = value.strip()
        if not re.match(r"^\d{4}\s*-\s*\d{4}$", value):
            raise ValueError(f"School year {value!r} must look like YYYY-YYYY")
        return re.sub(r"\s+", "", value)


class WeeklySubjectSchedule(BaseModel):
    """Principal's Monday-Friday subject rota with one shared time slot."""

    subjects: dict[Weekday, str] = Field(default_factory=dict)
    start_time: str | None = None  # "HH:MM"
    end_time: str | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        parse_time_of_day(value)
        return value.strip()

    def subject_for(self, day_name: str) -> str | None:
        subject = self.subjects.get(day_name)  # type: ignore[call-overload]
        if subject is None or not subject.strip():
            return None
        return subject.strip()

    @property
    def is_configured(self) -> bool:
        return any(self.subject_for(day) for day in WEEKDAYS)


class WeeklyScheduleFormData(BaseModel):
    """Weekly template: one Monday plus a subject per weekday and a time slot."""

    week_start: date
    start_time: str
    end_time: str
    subjects: dict[Weekday, str] = Field(default_factory=dict)

    @field_validator("week_start")
    @classmethod
    def _monday(cls, value: date) -> date:
        if value.weekday() != 0:
            raise ValueError(f"Week start {value.isoformat()} is not a Monday")
        return value

    @field_validator("start_time", "end_time")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        parse_time_of_day(value)
        return value.strip()

    @model_validator(mode="after")
    def _end_after_start(self) -> "WeeklyScheduleFormData":
        if parse_time_of_day(self.end_time) <= parse_time_of_day(self.start_time):
            raise ValueError("End time must be later than start time")
        return self


class PlanningContext(BaseModel):
    """Snapshot of everything a planning decision depends on.

    Passed explicitly into the eligibility, builder and import functions so
    they never read ambient state.
    """

    model_config = ConfigDict(frozen=True)

    now: datetime
    grade_level: str | None = None
    fallback_grade_level: str = "Grade 3"
    allowed_subjects: tuple[str, ...] = ()
    window: SchedulingWindow | None = None
    weekly_subjects: WeeklySubjectSchedule | None = None
    saved_template: WeeklyScheduleFormData | None = None
    default_start_time: str = "09:00"
    default_end_time: str = "10:00"
    last_issued_id: int = 0  # highest id ever handed out; deleted ids are not reused

    @property
    def grade_label(self) -> str:
        return self.grade_level or self.fallback_grade_level


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------
class Eligibility(BaseModel):
    model_config = ConfigDict(frozen=True)

    eligible: bool
    reason: Literal["weekend", "wrong-subject-day", "outside-window", "window-inactive"] | None = None
    message: str | None = None


class BuildResult(BaseModel):
    """Outcome of a single-session or weekly-batch build.

    ``activities`` is always the full collection to adopt: the new one on
    success, the untouched input on rejection.
    """

    ok: bool
    activities: tuple[Activity, ...] = ()
    created: tuple[Activity, ...] = ()
    errors: dict[str, str] = Field(default_factory=dict)  # field -> message
    conflict: bool = False
    guard_message: str | None = None


class SkippedRow(BaseModel):
    row: int  # 1-based spreadsheet row number, header included
    title: str | None = None
    reason: str


class ImportResult(BaseModel):
    added: int = 0
    skipped: int = 0
    created: tuple[Activity, ...] = ()
    activities: tuple[Activity, ...] = ()
    skipped_rows: list[SkippedRow] = Field(default_factory=list)
    error: str | None = None


class SendResult(BaseModel):
    sent: int = 0
    inserted: int = 0
    skipped: list[dict] = Field(default_factory=list)  # [{title, reason}] from the server
    activities: tuple[Activity, ...] = ()
    message: str | None = None
    error: str | None = None


class MutationResult(BaseModel):
    ok: bool
    activities: tuple[Activity, ...] = ()
    message: str | None = None
