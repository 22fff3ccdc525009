"""Map a queried calendar date to the document that backs it.

Each classification owns an ordered tuple of strategies. A strategy returns a
``Resolution`` or ``None`` to let the next one try; the last strategy of every
chain always answers.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from integrations.task_files import (
    ARCHIVED_DAY_FILE,
    PLAN_FILE,
    TaskPaths,
    ensure_day_track_file,
    read_document,
)

from .errors import InvalidOperation
from .task_grammar import DAY_TRACK_SCHEMA, TOMORROW_PLAN_SCHEMA, IdFactory, TaskBoard, parse, parse_list

logger = logging.getLogger(__name__)


class DayRole(str, Enum):
    TODAY = "today"
    PAST = "past"
    TOMORROW = "tomorrow"
    FAR_FUTURE = "far-future"


class Source(str, Enum):
    DAY_TRACK = "day_track"
    ARCHIVED = "archived"
    PLAN_PREVIEW = "plan_preview"
    WEEKLY_PLAN = "weekly_plan"
    NONE = "none"


NO_RECORDS_MESSAGE = "No task records"


@dataclass(frozen=True)
class DateContext:
    queried: dt.date
    today: dt.date

    def classify(self) -> DayRole:
        return classify(self.queried, self.today)


@dataclass
class Resolution:
    classification: DayRole
    source: Source
    board: TaskBoard = field(default_factory=TaskBoard)
    path: Optional[Path] = None
    text: Optional[str] = None
    message: Optional[str] = None

    @property
    def writable(self) -> bool:
        return self.classification is DayRole.TODAY and self.path is not None


Strategy = Callable[[DateContext, TaskPaths, Optional[IdFactory]], Optional[Resolution]]


def classify(queried: dt.date, today: dt.date) -> DayRole:
    if queried == today:
        return DayRole.TODAY
    if queried < today:
        return DayRole.PAST
    if queried == today + dt.timedelta(days=1):
        return DayRole.TOMORROW
    return DayRole.FAR_FUTURE


def parse_date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise InvalidOperation(f"Invalid date: {value!r}") from exc


def _today_day_track(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    path = ensure_day_track_file(ctx.queried, paths)
    text = read_document(path) or ""
    return Resolution(
        DayRole.TODAY, Source.DAY_TRACK, parse(text, DAY_TRACK_SCHEMA, id_factory), path=path, text=text
    )


def _existing_day_track(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    path = paths.day_track_file(ctx.queried)
    text = read_document(path)
    if text is None:
        return None
    return Resolution(
        ctx.classify(), Source.DAY_TRACK, parse(text, DAY_TRACK_SCHEMA, id_factory), path=path, text=text
    )


def _archived_snapshot(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    path = paths.archived_day_dir(ctx.queried) / ARCHIVED_DAY_FILE
    text = read_document(path)
    if text is None:
        return None
    return Resolution(
        ctx.classify(), Source.ARCHIVED, parse(text, DAY_TRACK_SCHEMA, id_factory), path=path, text=text
    )


def _plan_preview(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    path = paths.night_check_dir / PLAN_FILE
    text = read_document(path)
    if text is None:
        return None
    board = TaskBoard(backlog=parse_list(text, TOMORROW_PLAN_SCHEMA, id_factory))
    return Resolution(ctx.classify(), Source.PLAN_PREVIEW, board, path=path, text=text)


def _no_records(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    return Resolution(ctx.classify(), Source.NONE, message=NO_RECORDS_MESSAGE)


def _empty(ctx: DateContext, paths: TaskPaths, id_factory: Optional[IdFactory]) -> Optional[Resolution]:
    return Resolution(ctx.classify(), Source.NONE)


STRATEGIES: Dict[DayRole, Tuple[Strategy, ...]] = {
    DayRole.TODAY: (_today_day_track,),
    DayRole.PAST: (_existing_day_track, _archived_snapshot, _no_records),
    DayRole.TOMORROW: (_plan_preview, _empty),
    DayRole.FAR_FUTURE: (_empty,),
}


def resolve(
    queried: dt.date,
    today: dt.date,
    paths: TaskPaths,
    id_factory: Optional[IdFactory] = None,
) -> Resolution:
    ctx = DateContext(queried, today)
    for strategy in STRATEGIES[ctx.classify()]:
        resolution = strategy(ctx, paths, id_factory)
        if resolution is not None:
            logger.debug("resolved %s as %s from %s", queried, resolution.classification.value, resolution.source.value)
            return resolution
    raise AssertionError(f"no strategy answered for {queried}")


def require_writable(queried: dt.date, today: dt.date) -> None:
    """Raise unless ``queried`` resolves to today's day tracker. Touches no file."""
    classification = classify(queried, today)
    if classification is not DayRole.TODAY:
        logger.warning("rejected mutation for %s (%s)", queried, classification.value)
        raise InvalidOperation(f"Can only modify tasks for today, not {queried.isoformat()}")
