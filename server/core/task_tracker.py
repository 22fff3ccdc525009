"""Operation surface used by the HTTP adapter and the CLI.

Every method re-reads the backing document, so nothing is cached between
calls and a failed write leaves no stale state behind. Mutations of one
document are serialized by a per-path lock; separate processes still race
and the last write wins.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from integrations.task_files import TaskPaths, read_document, safe_write_text

from . import plan_bridge, task_store
from .date_resolver import DayRole, Resolution, Source, parse_date, require_writable, resolve
from .errors import InvalidOperation, NotFound, TaskNotFound
from .task_grammar import (
    DAY_TRACK_SCHEMA,
    WEEKLY_PLAN_SCHEMA,
    IdFactory,
    Role,
    Task,
    TaskBoard,
    default_id_factory,
    generate,
    has_untagged_tasks,
    parse_list,
)

logger = logging.getLogger(__name__)

DateLike = Union[str, dt.date, None]


class View(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    ACHIEVED = "achieved"
    HISTORY = "history"


def _parse_view(value: Union[str, View, None]) -> View:
    if value is None or value == "":
        return View.DAILY
    try:
        return View(value)
    except ValueError as exc:
        raise InvalidOperation(f"Unknown view: {value}") from exc


def _parse_role(value: Union[str, Role, None], default: Optional[Role] = None) -> Optional[Role]:
    if value is None or value == "":
        return default
    try:
        return Role.parse(value)
    except ValueError as exc:
        raise InvalidOperation(str(exc)) from exc


def _parse_index(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidOperation(f"Invalid index: {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidOperation(f"Invalid index: {value!r}") from exc


class TaskTracker:
    def __init__(
        self,
        paths: Optional[TaskPaths] = None,
        today: Callable[[], dt.date] = dt.date.today,
        id_factory: Optional[IdFactory] = None,
    ):
        self.paths = paths or TaskPaths.from_config()
        self._today = today
        self._id_factory = id_factory or default_id_factory
        self._locks: Dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(path, threading.Lock())

    def _date(self, value: DateLike) -> dt.date:
        if value is None or value == "":
            return self._today()
        if isinstance(value, dt.date):
            return value
        return parse_date(value)

    def _write(self, path: Path, text: str) -> Optional[Path]:
        return safe_write_text(path, text, self.paths.tasks_root, self.paths.backup_root)

    # Reads

    def get_board(self, view: Union[str, View, None] = None, date: DateLike = None) -> Dict[str, Any]:
        view = _parse_view(view)
        if view is View.WEEKLY:
            return self._weekly_board()
        if view is View.ACHIEVED:
            return {
                "view": view.value,
                "tasks": plan_bridge.collect_achieved(self.paths.archived_dir, self._id_factory),
            }
        if view is View.HISTORY:
            if date:
                return {"view": view.value, **self.get_archived_day(date)}
            return {"view": view.value, "dates": self.list_archived_dates()}
        return self._daily_board(self._date(date))

    def _daily_board(self, queried: dt.date) -> Dict[str, Any]:
        resolution = resolve(queried, self._today(), self.paths, self._id_factory)
        if resolution.writable and has_untagged_tasks(resolution.text or ""):
            resolution = self._persist_ids(queried)
        result: Dict[str, Any] = {
            "view": View.DAILY.value,
            "date": queried.isoformat(),
            "classification": resolution.classification.value,
            "source": resolution.source.value,
            "writable": resolution.writable,
            "tasks": resolution.board.to_dict(),
        }
        if resolution.message:
            result["message"] = resolution.message
        if resolution.classification is DayRole.TODAY:
            night_check = self.paths.night_check_dir
            result["botTasks"] = [t.to_dict() for t in plan_bridge.load_overnight_tasks(night_check, self._id_factory)]
            result["tomorrowTasks"] = [t.to_dict() for t in plan_bridge.load_tomorrow_plan(night_check, self._id_factory)]
        return result

    def _persist_ids(self, queried: dt.date) -> Resolution:
        with self._lock_for(self.paths.day_track_file(queried)):
            resolution = resolve(queried, self._today(), self.paths, self._id_factory)
            if has_untagged_tasks(resolution.text or ""):
                self._save(resolution, resolution.board)
                logger.info("assigned ids to untagged tasks in %s", resolution.path)
        return resolution

    def _weekly_board(self) -> Dict[str, Any]:
        path = self.paths.weekly_plan_file
        text = read_document(path)
        tasks = parse_list(text, WEEKLY_PLAN_SCHEMA, self._id_factory) if text is not None else []
        return {
            "view": View.WEEKLY.value,
            "source": (Source.WEEKLY_PLAN if text is not None else Source.NONE).value,
            "tasks": [t.to_dict() for t in tasks],
        }

    def list_archived_dates(self) -> List[str]:
        return plan_bridge.list_archived_dates(self.paths.archived_dir)

    def get_archived_day(self, date: DateLike) -> Dict[str, Any]:
        if date is None or date == "":
            raise InvalidOperation("date is required")
        return plan_bridge.load_archived_day(self.paths.archived_dir, self._date(date), self._id_factory)

    # Mutations

    def _open_today(self, queried: dt.date) -> Resolution:
        today = self._today()
        require_writable(queried, today)
        return resolve(queried, today, self.paths, self._id_factory)

    def _save(self, resolution: Resolution, board: TaskBoard) -> None:
        text = generate(resolution.text or "", board, DAY_TRACK_SCHEMA)
        backup = self._write(resolution.path, text)
        if backup:
            logger.info("backup of %s saved to %s", resolution.path, backup)

    def add_task(
        self,
        text: str,
        role: Union[str, Role, None] = None,
        view: Union[str, View, None] = None,
        date: DateLike = None,
    ) -> Task:
        if not text or not text.strip():
            raise InvalidOperation("Task text is required")
        view = _parse_view(view)
        if view is View.WEEKLY:
            return self._add_weekly(text)
        self._require_daily(view)
        target = _parse_role(role, Role.BACKLOG)
        queried = self._date(date)
        with self._lock_for(self.paths.day_track_file(queried)):
            resolution = self._open_today(queried)
            task = task_store.add_task(resolution.board, target, text, self._id_factory)
            self._save(resolution, resolution.board)
        logger.info("added task %s to %s", task.id, target.value)
        return task

    def update_task(
        self,
        task_id: str,
        changes: Mapping[str, Any],
        view: Union[str, View, None] = None,
        date: DateLike = None,
    ) -> Task:
        view = _parse_view(view)
        role = _parse_role(changes.get("role", changes.get("status")))
        text = changes.get("text")
        flagged = changes.get("flagged")
        index = _parse_index(changes.get("index", changes.get("newIndex")))
        if view is View.WEEKLY:
            return self._update_weekly(task_id, role is not None or flagged is not None, text)
        self._require_daily(view)
        queried = self._date(date)
        with self._lock_for(self.paths.day_track_file(queried)):
            resolution = self._open_today(queried)
            task = task_store.update_task(
                resolution.board, task_id, role=role, text=text, flagged=flagged, index=index
            )
            self._save(resolution, resolution.board)
        return task

    def delete_task(
        self, task_id: str, view: Union[str, View, None] = None, date: DateLike = None
    ) -> Task:
        view = _parse_view(view)
        if view is View.WEEKLY:
            return self._delete_weekly(task_id)
        self._require_daily(view)
        queried = self._date(date)
        with self._lock_for(self.paths.day_track_file(queried)):
            resolution = self._open_today(queried)
            task = task_store.remove_task(resolution.board, task_id)
            self._save(resolution, resolution.board)
        logger.info("deleted task %s", task_id)
        return task

    def _require_daily(self, view: View) -> None:
        if view is not View.DAILY:
            raise InvalidOperation(f"The {view.value} view is read-only")

    # Weekly plan: flat list edited line by line

    def _add_weekly(self, text: str) -> Task:
        path = self.paths.weekly_plan_file
        task = task_store.new_list_task(text, self._id_factory)
        with self._lock_for(path):
            content = read_document(path)
            if content and content.strip():
                updated = task_store.append_to_list(content, WEEKLY_PLAN_SCHEMA, task)
            else:
                updated = task_store.new_weekly_plan(task)
            self._write(path, updated)
        logger.info("added weekly task %s", task.id)
        return task

    def _weekly_text(self) -> str:
        content = read_document(self.paths.weekly_plan_file)
        if content is None:
            raise NotFound("Weekly plan not found")
        return content

    def _find_weekly(self, content: str, task_id: str) -> Task:
        for task in parse_list(content, WEEKLY_PLAN_SCHEMA, self._id_factory):
            if task.id == task_id:
                return task
        raise TaskNotFound(task_id)

    def _update_weekly(self, task_id: str, toggle: bool, text: Optional[str]) -> Task:
        """Weekly lines carry no role or flag, so a status or flag change toggles the checkbox."""
        path = self.paths.weekly_plan_file
        with self._lock_for(path):
            content = self._weekly_text()
            updated = content
            if toggle:
                updated = task_store.toggle_by_id(updated, task_id)
            if text is not None:
                updated = task_store.edit_text_by_id(updated, task_id, text)
            task = self._find_weekly(updated, task_id)
            self._write(path, updated)
        return task

    def _delete_weekly(self, task_id: str) -> Task:
        path = self.paths.weekly_plan_file
        with self._lock_for(path):
            content = self._weekly_text()
            task = self._find_weekly(content, task_id)
            self._write(path, task_store.remove_by_id(content, task_id))
        return task
