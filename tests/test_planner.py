"""Tests for CoordinatorPlanner wired to a fake portal client."""

import csv
from datetime import date, datetime

import pytest

from src.remedial.errors import PermanentError, TransientError
from src.remedial.models import ApprovalStatus, WeeklyScheduleFormData, WindowStatus
from src.remedial.planner import CoordinatorPlanner

NOW = datetime(2025, 1, 6, 8, 0)

PROFILE_PAYLOAD = {
    "coordinator": {
        "userId": "7",
        "name": "Ana Santos",
        "gradeLevel": "Grade 3",
        "coordinatorSubject": "English",
    },
    "activities": [
        {
            "id": 1,
            "title": "Phonics",
            "startDate": "2025-01-08T09:00:00",
            "endDate": "2025-01-08T10:00:00",
            "subject": "English",
            "gradeLevel": "Grade 3",
            "status": "Approved",
        },
        {
            "id": 2,
            "title": "Fluency",
            "startDate": "2025-01-09T09:00:00",
            "endDate": "2025-01-09T10:00:00",
            "subject": "English",
            "gradeLevel": "Grade 3",
        },
    ],
}


class FakePortal:
    """Duck-typed stand-in for RemedialClient."""

    def __init__(self, window=None, quarters=None, rota=None, profile=None, fail_on=None):
        self.window = window
        self.quarters = quarters
        self.rota = rota
        self.profile = profile if profile is not None else PROFILE_PAYLOAD
        self.fail_on = fail_on or {}
        self.calls = []
        self.submitted = []

    def _maybe_fail(self, name):
        self.calls.append(name)
        if name in self.fail_on:
            raise self.fail_on[name]

    def fetch_profile(self, user_id):
        self._maybe_fail("fetch_profile")
        return self.profile

    def fetch_window_config(self):
        self._maybe_fail("fetch_window_config")
        return self.window

    def fetch_quarter_schedule(self, school_year):
        self._maybe_fail("fetch_quarter_schedule")
        self.calls.append(school_year)
        return self.quarters

    def fetch_weekly_subjects(self):
        self._maybe_fail("fetch_weekly_subjects")
        return self.rota

    def submit_activities(self, activities, **kwargs):
        self._maybe_fail("submit_activities")
        self.submitted.append((activities, kwargs))
        return {"inserted": len(activities), "skipped": []}


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal(window={"startDate": "2025-01-06", "endDate": "2025-01-31", "quarter": "3rd Quarter"})


@pytest.fixture
def planner(config, portal) -> CoordinatorPlanner:
    planner = CoordinatorPlanner(config)
    assert planner.load(portal, "7", now=NOW)
    return planner


def test_load(planner) -> None:
    assert planner.error is None
    assert planner.profile.grade_level == "Grade 3"
    assert planner.profile.allowed_subjects == ("English",)
    assert planner.window.quarter == "3rd Quarter"
    assert [a.id for a in planner.activities] == [1, 2]
    assert planner.window_status(NOW) is WindowStatus.ACTIVE
    assert planner.blocking_reason(NOW) is None


def test_load_falls_back_to_quarter_table(config) -> None:
    portal = FakePortal(
        window=None,
        quarters={"schoolYear": "2024-2025", "quarters": {"3rd Quarter": {"startMonth": 12, "endMonth": 2}}},
    )
    planner = CoordinatorPlanner(config)

    assert planner.load(portal, "7", now=NOW)
    assert "2024-2025" in portal.calls
    assert (planner.window.start_date, planner.window.end_date) == (date(2024, 12, 1), date(2025, 2, 28))


def test_load_failure_keeps_previous_state(config) -> None:
    portal = FakePortal(fail_on={"fetch_window_config": TransientError("GET failed: HTTP 503")})
    planner = CoordinatorPlanner(config)

    assert not planner.load(portal, "7", now=NOW)
    assert planner.error == "Unable to load the remedial calendar: GET failed: HTTP 503"
    assert planner.activities == ()
    assert planner.window is None


def test_add_session_adopts_only_successes(planner) -> None:
    added = planner.add_session(date(2025, 1, 7), title="Sight Words", now=NOW)
    assert added.ok
    assert planner.activities[-1].title == "Sight Words"

    before = planner.activities
    clash = planner.add_session(date(2025, 1, 8), now=NOW)
    assert clash.conflict
    assert planner.activities == before


def test_saved_week_times_become_the_default_slot(planner) -> None:
    form = WeeklyScheduleFormData(
        week_start=date(2025, 1, 13),
        start_time="14:00",
        end_time="15:00",
        subjects={"Monday": "English", "Tuesday": "English"},
    )
    assert planner.save_week(form, now=NOW).ok
    assert planner.saved_template == form

    result = planner.add_session(date(2025, 1, 20), now=NOW)
    assert result.created[0].start == datetime(2025, 1, 20, 14, 0)

    cleared = planner.clear_week(date(2025, 1, 13))
    assert cleared.ok
    assert not [a for a in planner.activities if a.week_ref == "Grade 3-2025-01-13"]


def test_locked_activity_is_view_only(planner) -> None:
    before = planner.activities
    assert not planner.delete(1).ok
    assert not planner.edit(1, {"title": "Renamed"}, now=NOW).ok
    assert planner.activities == before

    assert planner.edit(2, {"title": "Fluency Drill"}, now=NOW).ok
    assert planner.delete(2).ok
    assert [a.id for a in planner.activities] == [1]


def test_import_then_decline(planner, tmp_path) -> None:
    path = tmp_path / "sessions.csv"
    with open(path, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows([["Date", "Title"], ["2025-01-14", "Reading Log"], ["2025-01-15", "Spelling"]])

    result = planner.import_file(path, now=NOW)
    assert result.added == 2
    imported = [a.id for a in result.created]

    declined = planner.decline_import(imported)
    assert declined.ok
    assert [a.id for a in planner.activities] == [1, 2]


def test_send_marks_unapproved_pending(planner, portal) -> None:
    result = planner.send(portal, now=NOW)

    assert result.error is None
    payload, kwargs = portal.submitted[0]
    assert [item["title"] for item in payload] == ["Fluency"]
    assert kwargs == {
        "grade_level": "Grade 3",
        "coordinator_id": "7",
        "coordinator_name": "Ana Santos",
        "subject_fallback": "English",
    }
    approved, sent = planner.activities
    assert approved.status == ApprovalStatus.approved()
    assert sent.status == ApprovalStatus.pending()
    assert sent.requested_at == NOW


def test_send_failure_sets_error(planner, portal) -> None:
    portal.fail_on["submit_activities"] = PermanentError("Coordinator not found")
    before = planner.activities

    result = planner.send(portal, now=NOW)

    assert result.error.endswith("Coordinator not found")
    assert planner.error == result.error
    assert planner.activities == before


def test_deleted_top_id_is_not_reused(planner) -> None:
    added = planner.add_session(date(2025, 1, 7), now=NOW)
    top = added.created[0].id
    assert planner.delete(top).ok

    again = planner.add_session(date(2025, 1, 10), now=NOW)
    assert again.created[0].id == top + 1
