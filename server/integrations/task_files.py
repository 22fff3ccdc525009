from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from core.errors import IOFailure
from .config import get_config

logger = logging.getLogger(__name__)

DEFAULT_TASKS_ROOT = Path.home() / ".openclaw" / "workspace" / "tasks"
ARCHIVED_DAY_FILE = "day_track.md"
OVERNIGHT_FILE = "bot_overnight.md"
PLAN_FILE = "plan.md"


@dataclass
class TaskPaths:
    tasks_root: Path
    day_track_dir: Path
    archived_dir: Path
    night_check_dir: Path
    weekly_plan_file: Path
    backup_root: Optional[Path] = None

    @classmethod
    def from_root(cls, tasks_root: Path, backup_root: Optional[Path] = None) -> "TaskPaths":
        daily = tasks_root / "daily"
        return cls(
            tasks_root=tasks_root,
            day_track_dir=daily / "day_track",
            archived_dir=daily / "archived",
            night_check_dir=daily / "night_check",
            weekly_plan_file=tasks_root / "weekly" / PLAN_FILE,
            backup_root=backup_root,
        )

    @classmethod
    def from_config(cls) -> "TaskPaths":
        cfg = get_config()
        root_value = cfg.get("tasks_root")
        tasks_root = Path(str(root_value)).expanduser() if root_value else DEFAULT_TASKS_ROOT
        backup_value = cfg.get("backup_root")
        backup_root = Path(str(backup_value)).expanduser() if backup_value else None
        paths = cls.from_root(tasks_root, backup_root)
        for key in ("day_track_dir", "archived_dir", "night_check_dir", "weekly_plan_file"):
            value = cfg.get(key)
            if value:
                setattr(paths, key, Path(str(value)).expanduser())
        return paths

    def day_track_file(self, date: dt.date) -> Path:
        return self.day_track_dir / f"{date.isoformat()}.md"

    def archived_day_dir(self, date: dt.date) -> Path:
        return self.archived_dir / date.isoformat()


def day_track_template(date: dt.date) -> str:
    return (
        f"# {date.isoformat()} Task Tracker\n"
        "\n"
        "## 📋 Backlog\n"
        "\n"
        "## 🚀 In Progress\n"
        "\n"
        "## ✅ Done\n"
        "\n"
        "## 💤 Sleep Background Tasks\n"
    )


def _is_relative_to(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
        return True
    except ValueError:
        return False


def ensure_write_allowed(path: Path, write_root: Path) -> None:
    if not _is_relative_to(path, write_root):
        raise IOFailure(f"Write blocked: {path} not under {write_root}", path)


def _backup_path_for(path: Path, backup_root: Path) -> Path:
    ts = dt.datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    name = path.name.replace(" ", "_")
    return backup_root / f"{ts}__{name}"


def read_document(path: Path) -> Optional[str]:
    """Return the file's text, or None when it does not exist."""
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        raise IOFailure(f"Failed to read {path}: {exc}", path) from exc


def safe_write_text(
    path: Path, text: str, write_root: Path, backup_root: Optional[Path] = None
) -> Optional[Path]:
    ensure_write_allowed(path, write_root)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        backup_path = None
        if path.exists():
            current = path.read_text(encoding="utf-8")
            if current == text:
                return None
            if backup_root is not None:
                backup_root.mkdir(parents=True, exist_ok=True)
                backup_path = _backup_path_for(path, backup_root)
                backup_path.write_text(current, encoding="utf-8")
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise IOFailure(f"Failed to write {path}: {exc}", path) from exc
    logger.info("wrote %s", path)
    return backup_path


def ensure_day_track_file(date: dt.date, paths: Optional[TaskPaths] = None) -> Path:
    """Create the day-tracker file for ``date`` from the template if missing."""
    task_paths = paths or TaskPaths.from_config()
    path = task_paths.day_track_file(date)
    if path.exists():
        return path
    safe_write_text(path, day_track_template(date), task_paths.tasks_root, task_paths.backup_root)
    logger.info("created day tracker %s", path)
    return path
