"""Coordinator context loading: grade, allowed subjects and stored activities.

Profile payloads come from more than one endpoint and each names its fields
differently (``coordinatorSubject`` vs ``subjectsHandled`` vs ``subject``,
``startDate`` vs ``start_time`` ...). Everything is normalized here so the
rest of the engine sees a single shape.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel, ValidationError

from src.remedial.logging import get_logger
from src.remedial.models import WEEKDAYS, Activity, WeeklySubjectSchedule
from src.remedial.status import parse_status
from src.remedial.subjects import (
    default_room_label,
    derive_allowed_subjects,
    extract_subject_text,
    find_allowed,
    merge_subjects,
    normalize_grade_label,
    sanitize_subject,
)

log = get_logger(__name__)

START_KEYS = ("startDate", "start", "date", "start_time", "startTime")
END_KEYS = ("endDate", "end", "finish", "end_time", "endTime")
STATUS_KEYS = ("status", "request_status", "approval_status", "approvalStatus")
DEFAULT_DURATION = timedelta(hours=1)


class CoordinatorProfile(BaseModel):
    coordinator_id: str | None = None
    name: str | None = None
    grade_level: str | None = None
    allowed_subjects: tuple[str, ...] = ()
    subject_text: str | None = None  # raw subject text, shown when nothing could be derived


def _first(payload: dict, keys: Iterable[str]) -> Any:
    for key in keys:
        value = payload.get(key)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None


def _text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_instant(value: object) -> datetime | None:
    """Parse an ISO instant to local wall-clock time (naive)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_coordinator(payload: dict | None, fallback: dict | None = None) -> CoordinatorProfile:
    """Derive grade and allowed subjects from the coordinator record.

    ``fallback`` is the plain master-teacher profile, consulted only when the
    coordinator record lacks a grade or subjects.
    """
    coordinator = (payload or {}).get("coordinator") or payload or {}
    grade = normalize_grade_label(_first(coordinator, ("gradeLevel", "grade")))
    subject_text = extract_subject_text(
        _first(coordinator, ("coordinatorSubject", "subjectsHandled", "subject"))
    )
    subjects = derive_allowed_subjects(subject_text)

    if fallback and (grade is None or not subjects):
        grade = grade or normalize_grade_label(fallback.get("grade"))
        fallback_text = extract_subject_text(
            _first(fallback, ("subjectHandled", "subject", "subjects", "coordinatorSubject"))
        )
        subjects = merge_subjects(subjects, derive_allowed_subjects(fallback_text))
        subject_text = subject_text or fallback_text

    return CoordinatorProfile(
        coordinator_id=_text(_first(coordinator, ("userId", "id", "coordinatorId"))),
        name=_text(_first(coordinator, ("name", "fullName", "coordinatorName"))),
        grade_level=grade,
        allowed_subjects=tuple(subjects),
        subject_text=", ".join(subjects) if subjects else subject_text,
    )


def parse_activity_record(
    item: dict,
    index: int,
    profile: CoordinatorProfile,
    fallback_grade: str = "Grade 3",
) -> Activity | None:
    """Build an Activity from a stored record, or None if it cannot be placed."""
    start = parse_instant(_first(item, START_KEYS))
    if start is None:
        return None
    end = parse_instant(_first(item, END_KEYS))
    if end is None or end <= start:
        end = start + DEFAULT_DURATION

    grade = normalize_grade_label(_first(item, ("gradeLevel", "grade"))) or profile.grade_level or fallback_grade
    raw_subject = extract_subject_text(item.get("subject")) or extract_subject_text(item.get("title")) or profile.subject_text
    if profile.allowed_subjects:
        subject = sanitize_subject(raw_subject, profile.allowed_subjects)
    else:
        subject = raw_subject

    try:
        activity_id = int(item.get("id"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        activity_id = index + 1

    try:
        return Activity(
            id=activity_id,
            title=_text(item.get("title")) or subject or "Remediation Session",
            start=start,
            end=end,
            grade_level=grade,
            subject=subject,
            type=_text(item.get("type")) or "class",
            room_no=_text(_first(item, ("roomNo", "room"))) or default_room_label(profile.grade_level, fallback_grade),
            description=_text(item.get("description")),
            status=parse_status(_first(item, STATUS_KEYS)),
            is_weekly_template=bool(item.get("isWeeklyTemplate") or item.get("is_template")),
            week_ref=_text(_first(item, ("weekRef", "week_ref"))),
            requested_by=_text(_first(item, ("requestedBy", "requested_by"))),
            requested_at=parse_instant(_first(item, ("requestedAt", "requested_at"))),
            approved_by=_text(_first(item, ("approvedBy", "approved_by"))),
            approved_at=parse_instant(_first(item, ("approvedAt", "approved_at"))),
            source=_text(item.get("source")) or "server",
        )
    except ValidationError as e:
        log.warning("activity_record_invalid", index=index, error=str(e))
        return None


def parse_activities(
    records: Sequence[dict] | None,
    profile: CoordinatorProfile,
    fallback_grade: str = "Grade 3",
) -> tuple[Activity, ...]:
    """Parse stored activities, keeping only those for this grade and subject set."""
    if not records:
        return ()

    activities: list[Activity] = []
    dropped = 0
    for index, item in enumerate(records):
        if not isinstance(item, dict):
            dropped += 1
            continue
        activity = parse_activity_record(item, index, profile, fallback_grade)
        if activity is None:
            dropped += 1
            continue
        if profile.grade_level and activity.grade_level and activity.grade_level != profile.grade_level:
            dropped += 1
            continue
        if profile.allowed_subjects and not find_allowed(activity.subject, profile.allowed_subjects):
            dropped += 1
            continue
        activities.append(activity)

    if dropped:
        log.info("activity_records_dropped", dropped=dropped, kept=len(activities))
    return tuple(activities)


def parse_weekly_subjects(payload: dict | None) -> WeeklySubjectSchedule | None:
    """Read the principal's rota (``{"Monday": "English", ..., "startTime", "endTime"}``)."""
    if not payload:
        return None
    schedule = payload.get("schedule") if isinstance(payload.get("schedule"), dict) else payload
    subjects = {day: str(schedule[day]).strip() for day in WEEKDAYS if _text(schedule.get(day))}
    try:
        return WeeklySubjectSchedule(
            subjects=subjects,
            start_time=_text(_first(schedule, ("startTime", "start_time")) or _first(payload, ("startTime", "start_time"))),
            end_time=_text(_first(schedule, ("endTime", "end_time")) or _first(payload, ("endTime", "end_time"))),
        )
    except ValidationError as e:
        log.warning("weekly_subjects_invalid", error=str(e))
        return None
