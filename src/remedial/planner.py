"""CoordinatorPlanner: the stateful shell around the pure planning functions.

The planner owns one coordinator's activity collection and the configuration
snapshot it was loaded with. Each operation builds a PlanningContext, calls
the matching pure function, and adopts the returned collection only when the
operation succeeded. Portal failures are caught here and kept in ``error``.
"""

from collections.abc import Iterable
from datetime import date, datetime
from functools import partial
from pathlib import Path
from typing import Any

from src.remedial import builder, importer, workflow
from src.remedial.builder import SingleSessionRequest
from src.remedial.client import RemedialClient
from src.remedial.config import RemedialConfig, get_config
from src.remedial.errors import RemedialAPIError
from src.remedial.logging import bind_coordinator, get_logger
from src.remedial.models import (
    Activity,
    BuildResult,
    ImportResult,
    MutationResult,
    PlanningContext,
    SchedulingWindow,
    SendResult,
    WeeklyScheduleFormData,
    WeeklySubjectSchedule,
    WindowStatus,
)
from src.remedial.profile import CoordinatorProfile, parse_activities, parse_coordinator, parse_weekly_subjects
from src.remedial.window import blocking_reason, resolve_school_year, resolve_window, window_status

logger = get_logger(__name__)


class CoordinatorPlanner:
    """Single-writer holder of a coordinator's remedial calendar."""

    def __init__(
        self,
        config: RemedialConfig | None = None,
        profile: CoordinatorProfile | None = None,
        activities: Iterable[Activity] = (),
        window: SchedulingWindow | None = None,
        weekly_subjects: WeeklySubjectSchedule | None = None,
    ) -> None:
        """Initialize CoordinatorPlanner.

        Args:
            config: Engine configuration (defaults to the env-loaded singleton).
            profile: Coordinator grade and subjects, if already known.
            activities: Initial collection.
            window: Resolved scheduling window, if already known.
            weekly_subjects: Principal's rota, if configured.
        """
        self.config = config or get_config()
        self.profile = profile or CoordinatorProfile()
        self.activities: tuple[Activity, ...] = tuple(activities)
        self.window = window
        self.weekly_subjects = weekly_subjects
        self.saved_template: WeeklyScheduleFormData | None = None
        self.error: str | None = None
        self.last_issued_id = max((a.id for a in self.activities), default=0)
        bind_coordinator(self.profile.coordinator_id, self.profile.grade_level)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------
    def context(self, now: datetime | None = None) -> PlanningContext:
        return PlanningContext(
            now=now or datetime.now(),
            grade_level=self.profile.grade_level,
            fallback_grade_level=self.config.fallback_grade_level,
            allowed_subjects=self.profile.allowed_subjects,
            window=self.window,
            weekly_subjects=self.weekly_subjects,
            saved_template=self.saved_template,
            default_start_time=self.config.default_start_time,
            default_end_time=self.config.default_end_time,
            last_issued_id=self.last_issued_id,
        )

    def window_status(self, now: datetime | None = None) -> WindowStatus:
        return window_status(self.window, now or datetime.now())

    def blocking_reason(self, now: datetime | None = None) -> str | None:
        return blocking_reason(self.window, now or datetime.now())

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def load(
        self,
        client: RemedialClient,
        user_id: str,
        now: datetime | None = None,
        fallback_profile: dict[str, Any] | None = None,
    ) -> bool:
        """Load profile, window, rota and stored activities from the portal.

        Nothing is replaced unless every request succeeds.

        Returns:
            True on success; on failure ``self.error`` holds the reason.
        """
        now = now or datetime.now()
        try:
            payload = client.fetch_profile(user_id)
            window_payload = client.fetch_window_config()
            window = resolve_window(window_payload, now)
            if window is None:
                quarter_payload = client.fetch_quarter_schedule(resolve_school_year(now))
                window = resolve_window(quarter_payload, now)
            rota_payload = client.fetch_weekly_subjects()
        except RemedialAPIError as e:
            self.error = f"Unable to load the remedial calendar: {e}"
            logger.error("planner_load_failed", user_id=user_id, error=str(e), type=type(e).__name__)
            return False

        profile = parse_coordinator(payload, fallback_profile)
        self.profile = profile
        self.window = window
        self.weekly_subjects = parse_weekly_subjects(rota_payload)
        self.activities = parse_activities(
            payload.get("activities"), profile, self.config.fallback_grade_level
        )
        self.last_issued_id = max((a.id for a in self.activities), default=0)
        self.error = None
        bind_coordinator(profile.coordinator_id, profile.grade_level)

        logger.info(
            "planner_loaded",
            activities=len(self.activities),
            subjects=list(profile.allowed_subjects),
            window=window.quarter if window else None,
            rota=self.weekly_subjects is not None,
        )
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _adopt(self, ok: bool, activities: tuple[Activity, ...]) -> None:
        if ok:
            self.activities = activities
            self.last_issued_id = max(self.last_issued_id, max((a.id for a in activities), default=0))

    def add_session(
        self,
        session_date: date | None,
        title: str = "",
        subject: str | None = None,
        room_no: str | None = None,
        description: str | None = None,
        now: datetime | None = None,
    ) -> BuildResult:
        request = SingleSessionRequest(
            session_date=session_date,
            title=title,
            subject=subject,
            room_no=room_no,
            description=description,
        )
        result = builder.build_single_session(self.activities, self.context(now), request)
        self._adopt(result.ok, result.activities)
        return result

    def save_week(self, form: WeeklyScheduleFormData, now: datetime | None = None) -> BuildResult:
        """Apply a weekly template; the template's times become the new default slot."""
        result = builder.build_weekly_batch(self.activities, self.context(now), form)
        self._adopt(result.ok, result.activities)
        if result.ok:
            self.saved_template = form
        return result

    def clear_week(self, week_start: date) -> MutationResult:
        result = builder.clear_week(self.activities, self.context().grade_label, week_start)
        self._adopt(result.ok, result.activities)
        return result

    def import_file(self, path: str | Path, now: datetime | None = None) -> ImportResult:
        result = importer.import_file(path, self.activities, self.context(now))
        self._adopt(result.error is None, result.activities)
        return result

    def edit(self, activity_id: int, changes: dict[str, Any], now: datetime | None = None) -> MutationResult:
        result = workflow.edit_activity(self.activities, activity_id, changes, self.context(now))
        self._adopt(result.ok, result.activities)
        return result

    def delete(self, activity_id: int) -> MutationResult:
        result = workflow.delete_activity(self.activities, activity_id)
        self._adopt(result.ok, result.activities)
        return result

    def decline_import(self, activity_ids: Iterable[int]) -> MutationResult:
        result = workflow.decline_import(self.activities, activity_ids)
        self._adopt(result.ok, result.activities)
        return result

    def send(self, client: RemedialClient, now: datetime | None = None) -> SendResult:
        """Submit every unlocked activity for approval."""
        submit = partial(
            client.submit_activities,
            grade_level=self.context(now).grade_label,
            coordinator_id=self.profile.coordinator_id,
            coordinator_name=self.profile.name,
            subject_fallback=self.profile.subject_text,
        )
        result = workflow.send_for_approval(
            self.activities,
            submit,
            now=now,
            requested_by=self.profile.coordinator_id,
        )
        if result.error:
            self.error = result.error
        else:
            self.activities = result.activities
            self.error = None
        return result
