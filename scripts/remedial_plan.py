"""Plan a coordinator's remedial sessions against the school portal.

Loads the coordinator's profile, remedial window, weekly subject rota and
stored activities, then runs one planning command. Nothing is submitted for
approval unless --execute is given.

Usage:
    python scripts/remedial_plan.py --user-id 42 status
    python scripts/remedial_plan.py --user-id 42 import data/sessions.xlsx
    python scripts/remedial_plan.py --user-id 42 import data/sessions.xlsx --send --execute
    python scripts/remedial_plan.py --user-id 42 week 2025-01-06
    python scripts/remedial_plan.py --user-id 42 send              # dry-run (default)
    python scripts/remedial_plan.py --user-id 42 send --execute

Environment:
    REMEDIAL_API_BASE_URL, REMEDIAL_API_TOKEN and the other REMEDIAL_*
    settings are read from the environment or .env.

Exit codes:
  0 = success
  1 = portal unreachable, bad input, or the operation was rejected
"""

import argparse
import os
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.remedial.agenda import group_by_week  # noqa: E402
from src.remedial.client import RemedialClient  # noqa: E402
from src.remedial.config import get_config  # noqa: E402
from src.remedial.logging import setup_logging  # noqa: E402
from src.remedial.models import WEEKDAYS, Activity, WeeklyScheduleFormData  # noqa: E402
from src.remedial.planner import CoordinatorPlanner  # noqa: E402
from src.remedial.status import is_locked  # noqa: E402
from src.remedial.window import window_label  # noqa: E402
from src.remedial.workflow import sendable_activities  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Plan remedial sessions for a reading-program coordinator.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--user-id",
        default=os.getenv("REMEDIAL_USER_ID", ""),
        help="Coordinator user id (default: $REMEDIAL_USER_ID).",
    )
    parser.add_argument(
        "--execute",
        action="store_true",
        help="Actually submit activities for approval (default is dry-run).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("status", help="Show the remedial window and why planning is closed, if it is.")

    import_cmd = sub.add_parser("import", help="Import sessions from an .xlsx or .csv file.")
    import_cmd.add_argument("file", help="Spreadsheet with a date and a title column.")
    import_cmd.add_argument("--send", action="store_true", help="Send for approval after importing.")

    week_cmd = sub.add_parser("week", help="Generate a Monday-Friday batch from the weekly rota.")
    week_cmd.add_argument("monday", type=date.fromisoformat, help="Week start (YYYY-MM-DD, a Monday).")
    week_cmd.add_argument("--start", default=None, help="Start time HH:MM (default: rota or config).")
    week_cmd.add_argument("--end", default=None, help="End time HH:MM (default: rota or config).")

    sub.add_parser("send", help="Send every unapproved activity for principal approval.")
    return parser.parse_args()


def _format_activity(activity: Activity) -> str:
    status = activity.status.label if activity.status else "Not sent"
    lock = " [view-only]" if is_locked(activity) else ""
    return (
        f"  #{activity.id:<4} {activity.start:%a %Y-%m-%d %H:%M}-{activity.end:%H:%M}  "
        f"{activity.subject or '-':<10} {activity.title}  ({status}){lock}"
    )


def _print_agenda(activities: tuple[Activity, ...]) -> None:
    if not activities:
        print("  (no activities)")
        return
    for group in group_by_week(activities):
        print(f"{group.label} (from {group.week_start.isoformat()}, {group.locked_count} approved)")
        for activity in group.activities:
            print(_format_activity(activity))


def cmd_status(planner: CoordinatorPlanner) -> int:
    label = window_label(planner.window) or "not configured"
    quarter = planner.window.quarter if planner.window and planner.window.quarter else "-"
    print(f"Window:   {label} (quarter: {quarter}, status: {planner.window_status().value})")
    print(f"Grade:    {planner.context().grade_label}")
    print(f"Subjects: {', '.join(planner.profile.allowed_subjects) or planner.profile.subject_text or '-'}")
    reason = planner.blocking_reason()
    if reason:
        print(f"Planning closed: {reason}")
    print()
    _print_agenda(planner.activities)
    return 0


def cmd_send(planner: CoordinatorPlanner, client: RemedialClient, execute: bool) -> int:
    pending = sendable_activities(planner.activities)
    print(f"Activities to send: {len(pending)}")
    for activity in pending:
        print(_format_activity(activity))

    if not execute:
        print("\n--- DRY RUN -- nothing submitted. Run with --execute to send. ---")
        return 0

    result = planner.send(client)
    if result.error:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return 1
    if result.message and not result.sent:
        print(result.message)
        return 0
    print(f"\nSent {result.sent}, inserted {result.inserted}, skipped {len(result.skipped)}")
    for item in result.skipped:
        print(f"  skipped: {item.get('title')}: {item.get('reason')}")
    return 0


def cmd_import(planner: CoordinatorPlanner, client: RemedialClient, args: argparse.Namespace) -> int:
    result = planner.import_file(args.file)
    if result.error:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return 1

    print(f"Imported {result.added} row(s), skipped {result.skipped}")
    for activity in result.created:
        print(_format_activity(activity))
    for row in result.skipped_rows:
        print(f"  row {row.row}: {row.title or '(no title)'}: {row.reason}")

    if args.send:
        print()
        return cmd_send(planner, client, args.execute)
    return 0


def cmd_week(planner: CoordinatorPlanner, args: argparse.Namespace) -> int:
    rota = planner.weekly_subjects
    ctx = planner.context()
    subjects = {day: rota.subject_for(day) for day in WEEKDAYS} if rota else {}
    subjects = {day: subject for day, subject in subjects.items() if subject}
    if not subjects and ctx.allowed_subjects:
        subjects = {day: ctx.allowed_subjects[0] for day in WEEKDAYS}

    start = args.start or (rota.start_time if rota and rota.start_time else ctx.default_start_time)
    end = args.end or (rota.end_time if rota and rota.end_time else ctx.default_end_time)
    try:
        form = WeeklyScheduleFormData(week_start=args.monday, start_time=start, end_time=end, subjects=subjects)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    result = planner.save_week(form)
    if not result.ok:
        print(f"Rejected: {result.guard_message or '; '.join(result.errors.values())}", file=sys.stderr)
        return 1

    print(f"Week of {args.monday.isoformat()}: {len(result.created)} session(s)")
    for activity in result.created:
        print(_format_activity(activity))
    return 0


def main(args: argparse.Namespace) -> int:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    if not args.user_id:
        print("ERROR: no coordinator user id (pass --user-id or set REMEDIAL_USER_ID)", file=sys.stderr)
        return 1

    with RemedialClient(config) as client:
        planner = CoordinatorPlanner(config)
        if not planner.load(client, args.user_id):
            print(f"ERROR: {planner.error}", file=sys.stderr)
            return 1

        if args.command == "status":
            return cmd_status(planner)
        if args.command == "import":
            return cmd_import(planner, client, args)
        if args.command == "week":
            return cmd_week(planner, args)
        return cmd_send(planner, client, args.execute)


if __name__ == "__main__":
    sys.exit(main(_parse_args()))
