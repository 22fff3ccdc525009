from __future__ import annotations

import datetime as dt
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from integrations.task_files import ARCHIVED_DAY_FILE, OVERNIGHT_FILE, PLAN_FILE, read_document

from .errors import IOFailure, NotFound
from .task_grammar import (
    DAY_TRACK_SCHEMA,
    OVERNIGHT_SCHEMA,
    TOMORROW_PLAN_SCHEMA,
    WEEKLY_PLAN_SCHEMA,
    IdFactory,
    SectionSchema,
    Task,
    parse,
    parse_list,
)

ARCHIVE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _load_list(path: Path, schema: SectionSchema, id_factory: Optional[IdFactory] = None) -> List[Task]:
    text = read_document(path)
    if text is None:
        return []
    return parse_list(text, schema, id_factory)


def load_overnight_tasks(night_check_dir: Path, id_factory: Optional[IdFactory] = None) -> List[Task]:
    return _load_list(night_check_dir / OVERNIGHT_FILE, OVERNIGHT_SCHEMA, id_factory)


def load_tomorrow_plan(night_check_dir: Path, id_factory: Optional[IdFactory] = None) -> List[Task]:
    return _load_list(night_check_dir / PLAN_FILE, TOMORROW_PLAN_SCHEMA, id_factory)


def load_weekly_plan(path: Path, id_factory: Optional[IdFactory] = None) -> List[Task]:
    return _load_list(path, WEEKLY_PLAN_SCHEMA, id_factory)


def list_archived_dates(archived_dir: Path) -> List[str]:
    """Archived day folders, most recent first."""
    try:
        entries = list(archived_dir.iterdir())
    except FileNotFoundError:
        return []
    except OSError as exc:
        raise IOFailure(f"Failed to list {archived_dir}: {exc}", archived_dir) from exc
    names = [p.name for p in entries if p.is_dir() and ARCHIVE_DATE_RE.match(p.name)]
    return sorted(names, reverse=True)


def load_archived_day(
    archived_dir: Path, date: dt.date, id_factory: Optional[IdFactory] = None
) -> Dict[str, Any]:
    day_dir = archived_dir / date.isoformat()
    text = read_document(day_dir / ARCHIVED_DAY_FILE)
    if text is None:
        raise NotFound(f"Date not found: {date.isoformat()}")
    return {
        "date": date.isoformat(),
        "tasks": parse(text, DAY_TRACK_SCHEMA, id_factory).to_dict(),
        "botTasks": [t.to_dict() for t in load_overnight_tasks(day_dir, id_factory)],
        "plan": [t.to_dict() for t in _load_list(day_dir / PLAN_FILE, TOMORROW_PLAN_SCHEMA, id_factory)],
    }


def collect_achieved(archived_dir: Path, id_factory: Optional[IdFactory] = None) -> List[Dict[str, Any]]:
    achieved = []
    for name in list_archived_dates(archived_dir):
        text = read_document(archived_dir / name / ARCHIVED_DAY_FILE)
        if text is None:
            continue
        done = parse(text, DAY_TRACK_SCHEMA, id_factory).done
        if done:
            achieved.append({"date": name, "tasks": [t.to_dict() for t in done]})
    return achieved
