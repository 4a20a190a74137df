"""Bulk import of remedial sessions from a spreadsheet or CSV file.

The first row holds headers; only a date-like and a title-like column are
required and both are found by fuzzy name matching. Every data row is run
through the same gates as a hand-built session (eligibility, subject,
duplicate signature, approved-session conflict) and either becomes a new
activity or is reported as skipped with a reason. Import is purely additive:
existing activities are never modified or removed.
"""

import csv
import re
import zipfile
from collections.abc import Sequence
from datetime import date, datetime, timedelta
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from src.remedial.builder import next_activity_id, session_times
from src.remedial.conflicts import conflict_message, find_conflict
from src.remedial.eligibility import check_day
from src.remedial.errors import ImportFileError
from src.remedial.logging import get_logger
from src.remedial.models import Activity, ImportResult, PlanningContext, SkippedRow
from src.remedial.subjects import default_room_label, sanitize_subject

log = get_logger(__name__)

SPREADSHEET_SUFFIXES: frozenset[str] = frozenset({".xlsx", ".xlsm"})
TEXT_SUFFIXES: frozenset[str] = frozenset({".csv", ".txt"})

# Column -> accepted header spellings, most specific first
HEADER_SYNONYMS: dict[str, tuple[str, ...]] = {
    "date": ("date", "schedule date", "scheduled date", "activity date", "session date", "day", "when"),
    "title": ("title", "activity title", "session title", "activity", "session", "name", "topic"),
    "subject": ("subject", "subject area", "focus subject"),
    "description": ("description", "details", "notes", "remarks"),
    "room": ("room", "room no", "room number", "venue"),
}
REQUIRED_COLUMNS = ("date", "title")

# Excel's 1900 date system, including its phantom 1900-02-29
EXCEL_EPOCH = date(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465  # 9999-12-31

TEXT_DATE_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%A, %B %d, %Y",
    "%a, %b %d, %Y",
)


# ---------------------------------------------------------------------------
# File reading
# ---------------------------------------------------------------------------
def read_table(path: str | Path) -> list[list[object]]:
    """Read the first sheet of an XLSX file, or a CSV file, into rows of cells.

    Raises:
        ImportFileError: If the file is missing, unsupported or unreadable.
    """
    source = Path(path)
    suffix = source.suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES | TEXT_SUFFIXES:
        raise ImportFileError(f"Unsupported import file type {suffix or '(none)'!r}; use .xlsx or .csv")

    try:
        if suffix in SPREADSHEET_SUFFIXES:
            workbook = load_workbook(source, data_only=True, read_only=True)
            try:
                sheet = workbook.worksheets[0]
                rows = [list(row) for row in sheet.iter_rows(values_only=True)]
            finally:
                workbook.close()
        else:
            with open(source, newline="", encoding="utf-8-sig") as f:
                rows = [list(row) for row in csv.reader(f)]
    except (OSError, InvalidFileException, zipfile.BadZipFile, KeyError, IndexError) as e:
        raise ImportFileError(f"Unable to read {source.name}: {e}") from e
    except (UnicodeDecodeError, csv.Error) as e:
        raise ImportFileError(f"{source.name} is not a readable CSV file: {e}") from e

    log.info("import_file_read", file=source.name, rows=len(rows))
    return rows


def _normalize_header(value: object) -> str:
    text = "" if value is None else str(value)
    text = re.sub(r"[_\-.:#]+", " ", text.lower())
    return re.sub(r"\s+", " ", text).strip()


def match_headers(headers: Sequence[object]) -> dict[str, int]:
    """Map logical columns to header positions.

    Exact (normalized) synonym matches are preferred; otherwise a header
    containing a synonym matches ("Remedial Session Date" -> date).
    """
    normalized = [_normalize_header(h) for h in headers]
    mapping: dict[str, int] = {}
    taken: set[int] = set()

    for column, synonyms in HEADER_SYNONYMS.items():
        for synonym in synonyms:
            if synonym in normalized and normalized.index(synonym) not in taken:
                mapping[column] = normalized.index(synonym)
                break
        if column in mapping:
            taken.add(mapping[column])

    for column, synonyms in HEADER_SYNONYMS.items():
        if column in mapping:
            continue
        for index, header in enumerate(normalized):
            if index in taken or not header:
                continue
            if any(re.search(rf"\b{re.escape(s)}\b", header) for s in synonyms):
                mapping[column] = index
                taken.add(index)
                break
    return mapping


# ---------------------------------------------------------------------------
# Cell parsing
# ---------------------------------------------------------------------------
def _from_serial(serial: float) -> date | None:
    if not 1 <= serial <= MAX_EXCEL_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def parse_date_cell(value: object) -> date | None:
    """Parse a native date, an Excel serial number, or a date string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    text = " ".join(str(value).split())
    if not text:
        return None
    if re.fullmatch(r"\d+(\.\d+)?", text):
        return _from_serial(float(text))

    # Full ISO instants ("2025-01-06T09:00:00Z") keep only their date part
    iso = re.match(r"^(\d{4}-\d{2}-\d{2})[T ]", text)
    if iso:
        text = iso.group(1)

    cleaned = re.sub(r"(\d)(st|nd|rd|th)\b", r"\1", text, flags=re.IGNORECASE)
    for fmt in TEXT_DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue
    return None


def _cell_text(row: Sequence[object], index: int | None) -> str | None:
    if index is None or index >= len(row) or row[index] is None:
        return None
    text = str(row[index]).strip()
    return text or None


def _signature(activity: Activity) -> tuple[datetime, str, str]:
    return activity.start, activity.title.strip().lower(), (activity.subject or "").strip().lower()


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------
def reconcile_rows(
    rows: Sequence[Sequence[object]],
    activities: Sequence[Activity],
    ctx: PlanningContext,
) -> ImportResult:
    """Turn table rows into new activities, skipping anything that fails a gate."""
    current = tuple(activities)
    if not rows:
        return ImportResult(activities=current, error="The import file is empty.")

    columns = match_headers(rows[0])
    missing = [column for column in REQUIRED_COLUMNS if column not in columns]
    if missing:
        message = f"Import file is missing a {' and a '.join(missing)} column."
        log.warning("import_headers_missing", missing=missing, headers=[str(h) for h in rows[0]])
        return ImportResult(activities=current, error=message)

    start_time, end_time = session_times(ctx)
    grade = ctx.grade_label
    room = default_room_label(ctx.grade_level, ctx.fallback_grade_level)
    signatures = {_signature(activity) for activity in current}
    next_id = next_activity_id(current, ctx.last_issued_id)

    created: list[Activity] = []
    skipped: list[SkippedRow] = []

    def skip(row_number: int, title: str | None, reason: str) -> None:
        skipped.append(SkippedRow(row=row_number, title=title, reason=reason))
        log.debug("import_row_skipped", row=row_number, title=title, reason=reason)

    for offset, row in enumerate(rows[1:]):
        row_number = offset + 2
        if all(cell is None or str(cell).strip() == "" for cell in row):
            continue

        title = _cell_text(row, columns["title"])
        if not title:
            skip(row_number, None, "Missing title.")
            continue

        day = parse_date_cell(row[columns["date"]] if columns["date"] < len(row) else None)
        if day is None:
            skip(row_number, title, "Invalid or missing date.")
            continue

        eligibility = check_day(day, ctx.window, ctx.weekly_subjects, ctx.allowed_subjects, ctx.now)
        if not eligibility.eligible:
            skip(row_number, title, eligibility.message or f"Date is not schedulable ({eligibility.reason}).")
            continue

        subject = sanitize_subject(_cell_text(row, columns.get("subject")), ctx.allowed_subjects)
        if subject is None:
            skip(row_number, title, "No assigned subject to schedule this activity under.")
            continue

        candidate = Activity(
            id=next_id,
            title=title,
            start=datetime.combine(day, start_time),
            end=datetime.combine(day, end_time),
            grade_level=grade,
            subject=subject,
            room_no=_cell_text(row, columns.get("room")) or room,
            description=_cell_text(row, columns.get("description")) or f"{subject} remediation for {grade}",
            source="import",
        )

        signature = _signature(candidate)
        if signature in signatures:
            skip(row_number, title, "Duplicate of an existing activity.")
            continue

        clash = find_conflict(candidate.start, subject, grade, current)
        if clash is not None:
            skip(row_number, title, conflict_message(clash))
            continue

        signatures.add(signature)
        created.append(candidate)
        next_id += 1

    log.info("import_reconciled", added=len(created), skipped=len(skipped))
    return ImportResult(
        added=len(created),
        skipped=len(skipped),
        created=tuple(created),
        activities=current + tuple(created),
        skipped_rows=skipped,
    )


def import_file(path: str | Path, activities: Sequence[Activity], ctx: PlanningContext) -> ImportResult:
    """Read and reconcile an import file; read failures leave the collection untouched."""
    try:
        rows = read_table(path)
    except ImportFileError as e:
        log.warning("import_file_failed", file=str(path), error=str(e))
        return ImportResult(activities=tuple(activities), error=str(e))
    return reconcile_rows(rows, activities, ctx)
