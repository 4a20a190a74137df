"""Pytest configuration and fixtures."""

import os
import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add repo root to path (for 'src.remedial.*' imports)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from src.remedial.config import RemedialConfig, reset_config  # noqa: E402
from src.remedial.models import Activity, ApprovalStatus, PlanningContext, SchedulingWindow  # noqa: E402


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    """Keep the config singleton and REMEDIAL_* variables from leaking between tests."""
    for key in list(os.environ):
        if key.startswith("REMEDIAL_"):
            monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def config() -> RemedialConfig:
    return RemedialConfig(_env_file=None)


@pytest.fixture
def now() -> datetime:
    """Monday morning, first day of the test window."""
    return datetime(2025, 1, 6, 8, 0)


@pytest.fixture
def window() -> SchedulingWindow:
    return SchedulingWindow(
        start_date=date(2025, 1, 6),
        end_date=date(2025, 1, 31),
        active=True,
        quarter="3rd Quarter",
    )


@pytest.fixture
def ctx(now, window) -> PlanningContext:
    return PlanningContext(
        now=now,
        grade_level="Grade 3",
        allowed_subjects=("English",),
        window=window,
    )


@pytest.fixture
def make_activity():
    """Factory for activities on a given day (09:00-10:00 unless told otherwise)."""

    def _make(
        activity_id: int,
        day: date,
        *,
        subject: str | None = "English",
        grade_level: str | None = "Grade 3",
        status: ApprovalStatus | None = None,
        title: str | None = None,
        hour: int = 9,
        **extra,
    ) -> Activity:
        return Activity(
            id=activity_id,
            title=title or f"{subject or 'Reading'} Remediation",
            start=datetime(day.year, day.month, day.day, hour, 0),
            end=datetime(day.year, day.month, day.day, hour + 1, 0),
            grade_level=grade_level,
            subject=subject,
            status=status,
            **extra,
        )

    return _make
