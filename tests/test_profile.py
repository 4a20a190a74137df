"""Tests for coordinator profile and stored-activity parsing."""

from datetime import datetime, timezone

from src.remedial.models import StatusKind
from src.remedial.profile import (
    CoordinatorProfile,
    parse_activities,
    parse_coordinator,
    parse_instant,
    parse_weekly_subjects,
)

PROFILE = CoordinatorProfile(coordinator_id="7", grade_level="Grade 3", allowed_subjects=("English",))


def test_parse_coordinator() -> None:
    profile = parse_coordinator(
        {
            "coordinator": {
                "userId": 7,
                "name": "Ana Santos",
                "gradeLevel": "grade three",
                "coordinatorSubject": "English and Math Coordinator",
            }
        }
    )
    assert profile.coordinator_id == "7"
    assert profile.name == "Ana Santos"
    assert profile.grade_level == "Grade 3"
    assert profile.allowed_subjects == ("English", "Math")
    assert profile.subject_text == "English, Math"


def test_parse_coordinator_uses_fallback_profile() -> None:
    profile = parse_coordinator(
        {"coordinator": {"userId": "9", "subjectsHandled": ""}},
        fallback={"grade": "4", "subjectHandled": ["Filipino"]},
    )
    assert profile.grade_level == "Grade 4"
    assert profile.allowed_subjects == ("Filipino",)


def test_parse_coordinator_without_subjects_keeps_raw_text() -> None:
    profile = parse_coordinator({"coordinator": {"subject": "   "}})
    assert profile.allowed_subjects == ()
    assert profile.subject_text is None


def test_parse_instant_converts_aware_values_to_local_wall_clock() -> None:
    expected = datetime(2025, 1, 7, 9, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
    assert parse_instant("2025-01-07T09:00:00Z") == expected
    assert parse_instant("2025-01-07T09:00:00") == datetime(2025, 1, 7, 9, 0)
    assert parse_instant("garbage") is None
    assert parse_instant("") is None


def test_parse_activities_normalizes_records() -> None:
    records = [
        {
            "id": "3",
            "title": "Phonics",
            "start_time": "2025-01-07T09:00:00",
            "end_time": "2025-01-07T10:00:00",
            "subject": "english",
            "gradeLevel": "3",
            "approval_status": "Approved",
        },
        {"title": "Fluency", "date": "2025-01-08T13:00:00", "gradeLevel": "Grade 3", "weekRef": "Grade 3-2025-01-06"},
        {"title": "Other grade", "startDate": "2025-01-09T09:00:00", "gradeLevel": "Grade 5"},
        {"title": "No start"},
        "not a record",
    ]

    phonics, fluency = parse_activities(records, PROFILE)

    assert phonics.id == 3
    assert phonics.subject == "English"
    assert phonics.grade_level == "Grade 3"
    assert phonics.status.kind is StatusKind.APPROVED
    assert phonics.source == "server"
    assert phonics.room_no == "Grade 3 Classroom"

    assert fluency.id == 2
    assert fluency.end == datetime(2025, 1, 8, 14, 0)
    assert fluency.status is None
    assert fluency.week_ref == "Grade 3-2025-01-06"


def test_parse_activities_empty() -> None:
    assert parse_activities(None, PROFILE) == ()
    assert parse_activities([], PROFILE) == ()


def test_parse_weekly_subjects() -> None:
    rota = parse_weekly_subjects(
        {"success": True, "schedule": {"Monday": "English", "Tuesday": "", "startTime": "13:00", "endTime": "14:00"}}
    )
    assert rota is not None
    assert rota.subjects == {"Monday": "English"}
    assert (rota.start_time, rota.end_time) == ("13:00", "14:00")
    assert rota.subject_for("Tuesday") is None


def test_parse_weekly_subjects_invalid_or_missing() -> None:
    assert parse_weekly_subjects(None) is None
    assert parse_weekly_subjects({"Monday": "English", "startTime": "25:00"}) is None
