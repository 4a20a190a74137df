"""Session builder: single sessions and five-day weekly batches.

Both builders take the current collection plus a PlanningContext and return
a BuildResult whose ``activities`` is the collection to adopt. Rejections
return the input collection unchanged, so a weekly batch is all-or-nothing.
"""

from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel

from src.remedial.conflicts import conflict_message, find_conflict
from src.remedial.eligibility import check_day
from src.remedial.logging import get_logger
from src.remedial.models import (
    WEEKDAYS,
    Activity,
    BuildResult,
    MutationResult,
    PlanningContext,
    WeeklyScheduleFormData,
    parse_time_of_day,
)
from src.remedial.status import is_locked
from src.remedial.subjects import default_room_label, normalize_subject, sanitize_subject
from src.remedial.window import window_label

log = get_logger(__name__)

SUBJECT_NOT_ALLOWED = "You can only schedule activities for your assigned subject."

FALLBACK_START = time(9, 0)
FALLBACK_END = time(10, 0)


class SingleSessionRequest(BaseModel):
    """What the "add schedule" form submits."""

    session_date: date | None = None
    title: str = ""
    subject: str | None = None
    room_no: str | None = None
    description: str | None = None


def next_activity_id(activities: Sequence[Activity], last_issued: int = 0) -> int:
    return max(max((activity.id for activity in activities), default=0), last_issued) + 1


def build_week_ref(grade_label: str, week_start: date) -> str:
    return f"{grade_label}-{week_start.isoformat()}"


def session_times(ctx: PlanningContext) -> tuple[time, time]:
    """Time slot for new sessions.

    The last saved weekly template wins, then the principal's rota, then the
    configured defaults. An inverted default pair falls back to 09:00-10:00.
    """
    if ctx.saved_template is not None:
        return (
            parse_time_of_day(ctx.saved_template.start_time),
            parse_time_of_day(ctx.saved_template.end_time),
        )
    rota = ctx.weekly_subjects
    if rota is not None and rota.start_time and rota.end_time:
        start, end = parse_time_of_day(rota.start_time), parse_time_of_day(rota.end_time)
        if end > start:
            return start, end
    start, end = parse_time_of_day(ctx.default_start_time), parse_time_of_day(ctx.default_end_time)
    if end <= start:
        log.warning("default_slot_inverted", start=ctx.default_start_time, end=ctx.default_end_time)
        return FALLBACK_START, FALLBACK_END
    return start, end


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def build_single_session(
    activities: Sequence[Activity],
    ctx: PlanningContext,
    request: SingleSessionRequest,
) -> BuildResult:
    """Validate and add one session on the requested date."""
    current = tuple(activities)

    if request.session_date is None:
        return BuildResult(ok=False, activities=current, errors={"date": "Date is required."})

    subject = sanitize_subject(request.subject, ctx.allowed_subjects)
    if subject is None:
        return BuildResult(ok=False, activities=current, errors={"subject": SUBJECT_NOT_ALLOWED})

    eligibility = check_day(request.session_date, ctx.window, ctx.weekly_subjects, ctx.allowed_subjects, ctx.now)
    if not eligibility.eligible:
        log.info("single_session_rejected", date=request.session_date.isoformat(), reason=eligibility.reason)
        return BuildResult(
            ok=False,
            activities=current,
            errors={"date": eligibility.message or "Date is not available for remediation."},
            guard_message=eligibility.message,
        )

    start_time, end_time = session_times(ctx)
    start = datetime.combine(request.session_date, start_time)
    end = datetime.combine(request.session_date, end_time)
    grade = ctx.grade_label

    clash = find_conflict(start, subject, grade, current)
    if clash is not None:
        message = conflict_message(clash)
        log.info("single_session_conflict", date=request.session_date.isoformat(), clash_id=clash.id)
        return BuildResult(
            ok=False,
            activities=current,
            errors={"date": message},
            conflict=True,
            guard_message=message,
        )

    activity = Activity(
        id=next_activity_id(current, ctx.last_issued_id),
        title=_clean(request.title) or f"{subject} Remediation",
        start=start,
        end=end,
        grade_level=grade,
        subject=subject,
        room_no=_clean(request.room_no) or default_room_label(ctx.grade_level, ctx.fallback_grade_level),
        description=_clean(request.description) or f"{subject} remediation for {grade}",
        source="manual",
    )
    log.info("single_session_added", activity_id=activity.id, date=request.session_date.isoformat(), subject=subject)
    return BuildResult(ok=True, activities=current + (activity,), created=(activity,))


def _outside_message(weekday: str, ctx: PlanningContext, reason: str | None, message: str | None) -> str:
    if reason in ("outside-window", "window-inactive"):
        label = window_label(ctx.window)
        if label:
            return f"{weekday} falls outside the active remedial window ({label})."
        return f"{weekday} is outside the active remedial window."
    return f"{weekday}: {message}"


def build_weekly_batch(
    activities: Sequence[Activity],
    ctx: PlanningContext,
    form: WeeklyScheduleFormData,
) -> BuildResult:
    """Expand a weekly template into Monday-Friday sessions.

    Every weekday must be eligible and conflict-free, otherwise nothing is
    applied. On success all activities under the same week ref are replaced.
    """
    current = tuple(activities)
    grade = ctx.grade_label
    week_ref = build_week_ref(grade, form.week_start)
    days = [form.week_start + timedelta(days=offset) for offset in range(len(WEEKDAYS))]

    for weekday, day in zip(WEEKDAYS, days):
        eligibility = check_day(day, ctx.window, ctx.weekly_subjects, ctx.allowed_subjects, ctx.now)
        if not eligibility.eligible:
            message = _outside_message(weekday, ctx, eligibility.reason, eligibility.message)
            log.info("weekly_batch_rejected", week_ref=week_ref, weekday=weekday, reason=eligibility.reason)
            return BuildResult(
                ok=False,
                activities=current,
                errors={"week_start": message},
                guard_message=message,
            )

    locked = [a for a in current if a.week_ref == week_ref and is_locked(a)]
    if locked:
        message = "This week already has approved sessions and can no longer be replaced."
        log.info("weekly_batch_rejected", week_ref=week_ref, reason="locked", locked=len(locked))
        return BuildResult(ok=False, activities=current, errors={"week_start": message}, guard_message=message)

    start_time = parse_time_of_day(form.start_time)
    end_time = parse_time_of_day(form.end_time)
    room = default_room_label(ctx.grade_level, ctx.fallback_grade_level)
    base_id = next_activity_id(current, ctx.last_issued_id)

    created: list[Activity] = []
    for index, (weekday, day) in enumerate(zip(WEEKDAYS, days)):
        requested = form.subjects.get(weekday)  # type: ignore[call-overload]
        if ctx.allowed_subjects:
            subject = sanitize_subject(requested, ctx.allowed_subjects)
        else:
            subject = normalize_subject(requested)
        start = datetime.combine(day, start_time)

        clash = find_conflict(start, subject, grade, current)
        if clash is not None:
            message = f"{weekday}: {conflict_message(clash)}"
            log.info("weekly_batch_conflict", week_ref=week_ref, weekday=weekday, clash_id=clash.id)
            return BuildResult(
                ok=False,
                activities=current,
                errors={"week_start": message},
                conflict=True,
                guard_message=message,
            )

        created.append(
            Activity(
                id=base_id + index,
                title=f"{subject} Remediation Session" if subject else "Remediation Session",
                start=start,
                end=datetime.combine(day, end_time),
                grade_level=grade,
                subject=subject,
                room_no=room,
                description=f"{subject} remediation for {grade}" if subject else f"Remediation for {grade}",
                is_weekly_template=True,
                week_ref=week_ref,
                source="weekly",
            )
        )

    kept = tuple(a for a in current if a.week_ref != week_ref)
    log.info(
        "weekly_batch_applied",
        week_ref=week_ref,
        created=len(created),
        replaced=len(current) - len(kept),
    )
    return BuildResult(ok=True, activities=kept + tuple(created), created=tuple(created))


def clear_week(activities: Sequence[Activity], grade_label: str, week_start: date) -> MutationResult:
    """Drop a week's template sessions; approved ones stay."""
    week_ref = build_week_ref(grade_label, week_start)
    current = tuple(activities)
    kept = tuple(a for a in current if a.week_ref != week_ref or is_locked(a))
    removed = len(current) - len(kept)
    if removed == 0:
        return MutationResult(ok=False, activities=current, message="No unapproved sessions found for that week.")
    log.info("week_cleared", week_ref=week_ref, removed=removed)
    return MutationResult(ok=True, activities=kept, message=f"Removed {removed} session(s).")
