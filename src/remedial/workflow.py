"""Approval workflow: view-only lock, edits, send-for-approval, decline-import.

The engine never decides approvals. It only guards approved sessions against
change, submits everything else, and marks what it submitted as Pending. The
authoritative Approved/Declined state comes back from the portal on the next
load.
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from src.remedial.conflicts import conflict_message, find_conflict
from src.remedial.eligibility import check_day
from src.remedial.errors import RemedialAPIError
from src.remedial.logging import get_logger
from src.remedial.models import Activity, ApprovalStatus, MutationResult, PlanningContext, SendResult
from src.remedial.status import is_locked, parse_status
from src.remedial.subjects import sanitize_subject

__all__ = [
    "activity_payload",
    "decline_import",
    "delete_activity",
    "edit_activity",
    "is_locked",
    "parse_status",
    "send_for_approval",
    "sendable_activities",
]

log = get_logger(__name__)

VIEW_ONLY_MESSAGE = "Approved activities are view-only and cannot be changed."

# Fields a coordinator may change on an unlocked activity
EDITABLE_FIELDS: frozenset[str] = frozenset({"title", "start", "end", "subject", "room_no", "description", "type"})

SubmitFn = Callable[[list[dict[str, Any]]], dict[str, Any]]


def _find(activities: Sequence[Activity], activity_id: int) -> Activity | None:
    return next((a for a in activities if a.id == activity_id), None)


def delete_activity(activities: Sequence[Activity], activity_id: int) -> MutationResult:
    current = tuple(activities)
    target = _find(current, activity_id)
    if target is None:
        return MutationResult(ok=False, activities=current, message=f"Activity {activity_id} was not found.")
    if is_locked(target):
        log.info("delete_blocked", activity_id=activity_id, reason="locked")
        return MutationResult(ok=False, activities=current, message=VIEW_ONLY_MESSAGE)

    log.info("activity_deleted", activity_id=activity_id)
    return MutationResult(ok=True, activities=tuple(a for a in current if a.id != activity_id))


def edit_activity(
    activities: Sequence[Activity],
    activity_id: int,
    changes: dict[str, Any],
    ctx: PlanningContext,
) -> MutationResult:
    """Apply field changes to an unlocked activity.

    A moved session is re-checked for eligibility and approved conflicts, and
    a changed subject is forced into the allowed set.
    """
    current = tuple(activities)
    target = _find(current, activity_id)
    if target is None:
        return MutationResult(ok=False, activities=current, message=f"Activity {activity_id} was not found.")
    if is_locked(target):
        log.info("edit_blocked", activity_id=activity_id, reason="locked")
        return MutationResult(ok=False, activities=current, message=VIEW_ONLY_MESSAGE)

    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        return MutationResult(
            ok=False,
            activities=current,
            message=f"Cannot edit field(s): {', '.join(sorted(unknown))}.",
        )

    update = dict(changes)
    if "subject" in update and ctx.allowed_subjects:
        update["subject"] = sanitize_subject(update["subject"], ctx.allowed_subjects)

    try:
        edited = Activity.model_validate({**target.model_dump(exclude={"day"}), **update})
    except ValidationError as e:
        message = "; ".join(err["msg"] for err in e.errors())
        return MutationResult(ok=False, activities=current, message=message)

    if edited.start.date() != target.start.date():
        eligibility = check_day(edited.start, ctx.window, ctx.weekly_subjects, ctx.allowed_subjects, ctx.now)
        if not eligibility.eligible:
            return MutationResult(ok=False, activities=current, message=eligibility.message)

    clash = find_conflict(edited.start, edited.subject, edited.grade_level, current, exclude_id=activity_id)
    if clash is not None:
        return MutationResult(ok=False, activities=current, message=conflict_message(clash))

    log.info("activity_edited", activity_id=activity_id, fields=sorted(changes))
    return MutationResult(ok=True, activities=tuple(edited if a.id == activity_id else a for a in current))


def sendable_activities(activities: Iterable[Activity]) -> tuple[Activity, ...]:
    return tuple(a for a in activities if not is_locked(a))


def activity_payload(activity: Activity) -> dict[str, Any]:
    """Wire shape expected by the portal's send endpoint."""
    return {
        "title": activity.title,
        "subject": activity.subject,
        "gradeLevel": activity.grade_level,
        "description": activity.description,
        "date": activity.start.isoformat(),
        "end": activity.end.isoformat(),
        "day": activity.day,
        "weekRef": activity.week_ref,
    }


def send_for_approval(
    activities: Sequence[Activity],
    submit: SubmitFn,
    *,
    now: datetime | None = None,
    requested_by: str | None = None,
) -> SendResult:
    """Submit every unlocked activity and mark the submitted ones Pending.

    ``submit`` receives the payload list and returns the portal response
    (``{"inserted": n, "skipped": [{"title", "reason"}]}``). API failures
    leave the collection untouched and come back as ``error``.
    """
    current = tuple(activities)
    sendable = sendable_activities(current)
    if not sendable:
        return SendResult(activities=current, message="Nothing to send: all activities are already approved.")

    payload = [activity_payload(a) for a in sendable]
    try:
        response = submit(payload)
    except RemedialAPIError as e:
        log.error("send_failed", count=len(payload), error=str(e), type=type(e).__name__)
        return SendResult(activities=current, error=f"Unable to send activities for approval: {e}")

    sent_ids = {a.id for a in sendable}
    requested_at = now or datetime.now()
    pending = ApprovalStatus.pending()
    updated = tuple(
        a.model_copy(
            update={
                "status": pending,
                "requested_at": requested_at,
                "requested_by": requested_by or a.requested_by,
            }
        )
        if a.id in sent_ids
        else a
        for a in current
    )

    inserted = int(response.get("inserted") or 0)
    skipped = [item for item in response.get("skipped") or [] if isinstance(item, dict)]
    log.info("activities_sent", sent=len(payload), inserted=inserted, skipped=len(skipped))
    return SendResult(
        sent=len(payload),
        inserted=inserted,
        skipped=skipped,
        activities=updated,
        message=response.get("message"),
    )


def decline_import(activities: Sequence[Activity], activity_ids: Iterable[int]) -> MutationResult:
    """Discard imported activities that have not been sent yet; anything else is kept."""
    current = tuple(activities)
    ids = set(activity_ids)
    removable = {a.id for a in current if a.id in ids and a.status is None and a.source == "import"}
    kept_back = ids - removable

    if not removable:
        return MutationResult(ok=False, activities=current, message="No unsent imported activities matched the selection.")

    remaining = tuple(a for a in current if a.id not in removable)
    log.info("import_declined", removed=len(removable), kept=len(kept_back))
    message = f"Discarded {len(removable)} imported activit{'y' if len(removable) == 1 else 'ies'}."
    if kept_back:
        noun = "activity was" if len(kept_back) == 1 else "activities were"
        message += f" {len(kept_back)} already sent, hand-built or unknown {noun} kept."
    return MutationResult(ok=True, activities=remaining, message=message)
