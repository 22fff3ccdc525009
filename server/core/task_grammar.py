"""Parse and regenerate the Markdown task documents.

A document is read as a sequence of typed line records. Section headers set
the active role, checkbox lines under an active header become tasks, and
everything else is opaque and copied through untouched on regeneration.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

IdFactory = Callable[[], str]

FLAG_GLYPH = "🚩 "
NOTICE_MARKERS = ("*(This file", "*(此文件")

TASK_LINE_RE = re.compile(r"^- \[([ xX])\](?: (.*))?$")
ID_TAG_RE = re.compile(r"^\[#([A-Za-z0-9_-]+)\]\s?(.*)$")
HEADING_RE = re.compile(r"^#{1,6}\s")


class Role(str, Enum):
    BACKLOG = "backlog"
    IN_PROGRESS = "inProgress"
    DONE = "done"

    @classmethod
    def parse(cls, value: Union[str, "Role"]) -> "Role":
        if isinstance(value, Role):
            return value
        for role in cls:
            if role.value == value:
                return role
        raise ValueError(f"Unknown role: {value}")


ROLE_ORDER: Tuple[Role, ...] = (Role.BACKLOG, Role.IN_PROGRESS, Role.DONE)


class ClockIdFactory:
    """Millisecond clock ids, strictly increasing within the process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            value = int(self._clock() * 1000)
            if value <= self._last:
                value = self._last + 1
            self._last = value
            return str(value)


default_id_factory = ClockIdFactory()


@dataclass
class Task:
    id: str
    text: str
    done: bool = False
    flagged: bool = False

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass
class TaskBoard:
    backlog: List[Task] = field(default_factory=list)
    in_progress: List[Task] = field(default_factory=list)
    done: List[Task] = field(default_factory=list)

    def tasks(self, role: Role) -> List[Task]:
        if role is Role.BACKLOG:
            return self.backlog
        if role is Role.IN_PROGRESS:
            return self.in_progress
        return self.done

    def all_tasks(self) -> Iterable[Tuple[Role, Task]]:
        for role in ROLE_ORDER:
            for task in self.tasks(role):
                yield role, task

    def to_dict(self) -> Dict[str, List[Dict[str, object]]]:
        return {role.value: [t.to_dict() for t in self.tasks(role)] for role in ROLE_ORDER}


@dataclass(frozen=True)
class SectionSchema:
    """Header prefixes that open task sections, and how their lines are written."""

    sections: Tuple[Tuple[str, Role], ...]
    parse_flags: bool = False
    checkbox_from_role: bool = False

    def role_for(self, line: str) -> Optional[Role]:
        for prefix, role in self.sections:
            if line.startswith(prefix):
                return role
        return None

    @property
    def roles(self) -> Tuple[Role, ...]:
        return tuple(role for _, role in self.sections)


DAY_TRACK_SCHEMA = SectionSchema(
    sections=(
        ("## 📋 Backlog", Role.BACKLOG),
        ("## 🚀 In Progress", Role.IN_PROGRESS),
        ("## ✅ Done", Role.DONE),
    ),
    parse_flags=True,
    checkbox_from_role=True,
)


def list_schema(header_prefix: str) -> SectionSchema:
    return SectionSchema(sections=((header_prefix, Role.BACKLOG),))


WEEKLY_PLAN_SCHEMA = list_schema("# 📅 Weekly Plan")
TOMORROW_PLAN_SCHEMA = list_schema("# 📋 Tomorrow's Plan")
OVERNIGHT_SCHEMA = list_schema("# 💤 Sleep Tasks")


class LineKind(Enum):
    HEADER = "header"
    HEADING = "heading"
    TASK = "task"
    BLANK = "blank"
    OPAQUE = "opaque"


@dataclass
class LineRecord:
    kind: LineKind
    text: str
    role: Optional[Role] = None
    task: Optional[Task] = None


def split_flag(text: str) -> Tuple[bool, str]:
    """Separate a leading flag glyph from task text."""
    if text.startswith(FLAG_GLYPH):
        return True, text[len(FLAG_GLYPH):].strip()
    if text == FLAG_GLYPH.strip():
        return True, ""
    return False, text


def parse_task_line(
    line: str, parse_flags: bool = False, id_factory: Optional[IdFactory] = None
) -> Optional[Task]:
    """Return the task on a checkbox line, or None if the line is not one."""
    if any(marker in line for marker in NOTICE_MARKERS):
        return None
    match = TASK_LINE_RE.match(line)
    if not match:
        return None
    checked, body = match.group(1), (match.group(2) or "").strip()
    id_match = ID_TAG_RE.match(body)
    if id_match:
        task_id, text = id_match.group(1), id_match.group(2).strip()
    else:
        task_id, text = (id_factory or default_id_factory)(), body
        logger.debug("task line without id tag, assigned %s: %r", task_id, line)
    flagged = False
    if parse_flags:
        flagged, text = split_flag(text)
    return Task(id=task_id, text=text, done=checked in "xX", flagged=flagged)


def classify_lines(
    text: str, schema: SectionSchema, id_factory: Optional[IdFactory] = None
) -> List[LineRecord]:
    records: List[LineRecord] = []
    current: Optional[Role] = None
    seen: set = set()
    for line in text.split("\n"):
        role = schema.role_for(line)
        if role is not None and role not in seen:
            seen.add(role)
            current = role
            records.append(LineRecord(LineKind.HEADER, line, role=role))
            continue
        if role is not None or HEADING_RE.match(line):
            current = None
            records.append(LineRecord(LineKind.HEADING, line))
            continue
        if not line.strip():
            records.append(LineRecord(LineKind.BLANK, line))
            continue
        if current is not None:
            task = parse_task_line(line, schema.parse_flags, id_factory)
            if task is not None:
                records.append(LineRecord(LineKind.TASK, line, role=current, task=task))
                continue
        records.append(LineRecord(LineKind.OPAQUE, line))
    return records


def parse(
    text: str, schema: SectionSchema = DAY_TRACK_SCHEMA, id_factory: Optional[IdFactory] = None
) -> TaskBoard:
    board = TaskBoard()
    for record in classify_lines(text, schema, id_factory):
        if record.kind is LineKind.TASK:
            board.tasks(record.role).append(record.task)
    return board


def parse_list(text: str, schema: SectionSchema, id_factory: Optional[IdFactory] = None) -> List[Task]:
    return parse(text, schema, id_factory).backlog


def has_untagged_tasks(text: str, schema: SectionSchema = DAY_TRACK_SCHEMA) -> bool:
    """True when a task line inside a section carries no ``[#id]`` tag."""
    for record in classify_lines(text, schema, id_factory=lambda: ""):
        if record.kind is LineKind.TASK:
            body = (TASK_LINE_RE.match(record.text).group(2) or "").strip()
            if not ID_TAG_RE.match(body):
                return True
    return False


def format_task_line(task: Task, role: Role, schema: SectionSchema = DAY_TRACK_SCHEMA) -> str:
    checked = role is Role.DONE if schema.checkbox_from_role else task.done
    flag = FLAG_GLYPH if schema.parse_flags and task.flagged else ""
    return f"- [{'x' if checked else ' '}] [#{task.id}] {flag}{task.text}".rstrip()


def _block_end(records: List[LineRecord], start: int) -> int:
    """Index of the first record after the task block that begins at ``start``.

    The block is the separator blank plus everything up to the last task line
    of the blank/task run following a header. A lone trailing blank that only
    carries the final newline is never consumed.
    """
    last_task = None
    k = start
    while k < len(records) and records[k].kind in (LineKind.BLANK, LineKind.TASK):
        if records[k].kind is LineKind.TASK:
            last_task = k
        k += 1
    if last_task is not None:
        return last_task + 1
    if start < len(records) - 1 and records[start].kind is LineKind.BLANK:
        return start + 1
    return start


def generate(
    original_text: str,
    board: Union[TaskBoard, List[Task]],
    schema: SectionSchema = DAY_TRACK_SCHEMA,
) -> str:
    if isinstance(board, list):
        board = TaskBoard(backlog=board)
    records = classify_lines(original_text, schema, id_factory=lambda: "")
    output: List[str] = []
    i = 0
    while i < len(records):
        record = records[i]
        if record.kind is LineKind.HEADER:
            output.append(record.text)
            output.append("")
            output.extend(format_task_line(t, record.role, schema) for t in board.tasks(record.role))
            i = _block_end(records, i + 1)
            continue
        if record.kind is not LineKind.TASK:
            output.append(record.text)
        i += 1
    return "\n".join(output)
