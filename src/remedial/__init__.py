"""Remedial-session scheduling engine for reading-program coordinators.

Resolves the principal's remedial window, decides which days are schedulable,
builds single sessions and weekly batches, imports sessions from spreadsheets,
and drives the send-for-approval workflow against the school portal.
"""

from src.remedial.client import RemedialClient
from src.remedial.models import Activity, ApprovalStatus, PlanningContext, SchedulingWindow, WeeklyScheduleFormData
from src.remedial.planner import CoordinatorPlanner

__all__ = [
    "Activity",
    "ApprovalStatus",
    "CoordinatorPlanner",
    "PlanningContext",
    "RemedialClient",
    "SchedulingWindow",
    "WeeklyScheduleFormData",
]
