"""Approval status parsing and the view-only lock rule.

Status values arrive from several tables and screens with different
spellings. parse_status() is the single boundary where they become an
ApprovalStatus; the rest of the engine only looks at ``kind``.
"""

from src.remedial.models import Activity, ApprovalStatus, StatusKind

APPROVED_TOKENS: frozenset[str] = frozenset({"approved", "approve", "accepted", "granted", "true", "yes", "1"})
PENDING_TOKENS: frozenset[str] = frozenset({"pending", "awaiting", "submitted", "waiting", "0"})
DECLINED_TOKENS: frozenset[str] = frozenset(
    {"declined", "decline", "rejected", "denied", "cancelled", "canceled", "void"}
)


def parse_status(raw: object) -> ApprovalStatus | None:
    """Map a raw status value to an ApprovalStatus.

    Unknown tokens are kept, title-cased, as StatusKind.UNKNOWN. Blank input
    means "no status" and returns None.
    """
    if raw is None:
        return None
    if isinstance(raw, ApprovalStatus):
        return raw
    if isinstance(raw, bool):
        return ApprovalStatus.approved() if raw else ApprovalStatus.pending()

    text = " ".join(str(raw).split())
    if not text:
        return None
    token = text.lower()
    if token in APPROVED_TOKENS:
        return ApprovalStatus.approved()
    if token in PENDING_TOKENS:
        return ApprovalStatus.pending()
    if token in DECLINED_TOKENS:
        return ApprovalStatus.declined()
    return ApprovalStatus(kind=StatusKind.UNKNOWN, label=text.title())


def is_locked(activity: Activity) -> bool:
    """Approved activities are view-only.

    An unrecognised label that still mentions approval ("Approved by
    principal") is treated as approved too.
    """
    status = activity.status
    if status is None:
        return False
    if status.is_approved:
        return True
    return status.kind is StatusKind.UNKNOWN and "approve" in status.label.lower()
