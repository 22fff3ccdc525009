#!/usr/bin/env python3
"""Command-line access to the Markdown day tracker.

Examples:
    python manage_tasks.py show
    python manage_tasks.py show --view weekly
    python manage_tasks.py add "write spec" --status inProgress
    python manage_tasks.py move 1718000000000 done --index 0
    python manage_tasks.py edit 1718000000000 --text "write the spec" --flag
    python manage_tasks.py delete 1718000000000
    python manage_tasks.py history --date 2024-06-09
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from core.errors import TaskTrackerError
from core.task_tracker import TaskTracker
from integrations.config import get_config


def _print_json(data: Any) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage Markdown day-tracker tasks.")
    parser.add_argument("--view", type=str, default="daily", help="daily, weekly, achieved or history")
    parser.add_argument("--date", type=str, help="ISO date, default today")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print the board for the view/date")

    add = sub.add_parser("add", help="Add a task")
    add.add_argument("text", type=str)
    add.add_argument("--status", type=str, default="backlog", help="backlog, inProgress or done")

    move = sub.add_parser("move", help="Move or reorder a task")
    move.add_argument("task_id", type=str)
    move.add_argument("status", type=str, help="Target section")
    move.add_argument("--index", type=int, help="Position in the target section")

    edit = sub.add_parser("edit", help="Edit task text or flag")
    edit.add_argument("task_id", type=str)
    edit.add_argument("--text", type=str)
    flag = edit.add_mutually_exclusive_group()
    flag.add_argument("--flag", dest="flagged", action="store_true", default=None)
    flag.add_argument("--unflag", dest="flagged", action="store_false")

    delete = sub.add_parser("delete", help="Delete a task")
    delete.add_argument("task_id", type=str)

    sub.add_parser("history", help="List archived dates, or show one with --date")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, tracker: TaskTracker) -> Dict[str, Any]:
    if args.command == "show":
        return tracker.get_board(args.view, args.date)
    if args.command == "add":
        task = tracker.add_task(args.text, args.status, view=args.view, date=args.date)
        return {"task": task.to_dict()}
    if args.command == "move":
        changes = {"role": args.status, "index": args.index}
        task = tracker.update_task(args.task_id, changes, view=args.view, date=args.date)
        return {"task": task.to_dict()}
    if args.command == "edit":
        changes = {"text": args.text, "flagged": args.flagged}
        task = tracker.update_task(args.task_id, changes, view=args.view, date=args.date)
        return {"task": task.to_dict()}
    if args.command == "delete":
        task = tracker.delete_task(args.task_id, view=args.view, date=args.date)
        return {"deleted": task.to_dict()}
    if args.date:
        return tracker.get_archived_day(args.date)
    return {"dates": tracker.list_archived_dates()}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=str(get_config().get("log_level", "WARNING")).upper())
    try:
        result = run(args, TaskTracker())
    except TaskTrackerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    _print_json(result)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
