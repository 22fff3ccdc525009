"""Mutations over a parsed board, and line-level edits for flat task lists."""

from __future__ import annotations

import re
from typing import Optional, Tuple

from .errors import TaskNotFound
from .task_grammar import (
    HEADING_RE,
    ROLE_ORDER,
    WEEKLY_PLAN_SCHEMA,
    IdFactory,
    Role,
    SectionSchema,
    Task,
    TaskBoard,
    default_id_factory,
    format_task_line,
    parse_task_line,
    split_flag,
)

WEEKLY_PLAN_NOTICE = "*(This file is automatically generated by Weekly Check)*"
CHECKBOX_RE = re.compile(r"^- \[([ xX])\]")


def clean_text(text: str) -> str:
    return text.replace("\r", " ").replace("\n", " ").strip()


def find_task(board: TaskBoard, task_id: str) -> Tuple[Role, int, Task]:
    for role in ROLE_ORDER:
        for index, task in enumerate(board.tasks(role)):
            if task.id == task_id:
                return role, index, task
    raise TaskNotFound(task_id)


def add_task(
    board: TaskBoard, role: Role, text: str, id_factory: Optional[IdFactory] = None
) -> Task:
    flagged, text = split_flag(clean_text(text))
    task = Task(
        id=(id_factory or default_id_factory)(), text=text, done=role is Role.DONE, flagged=flagged
    )
    board.tasks(role).append(task)
    return task


def move_task(
    board: TaskBoard, task_id: str, target_role: Role, target_index: Optional[int] = None
) -> Task:
    source_role, source_index, task = find_task(board, task_id)
    board.tasks(source_role).pop(source_index)
    target = board.tasks(target_role)
    if target_index is None:
        target.append(task)
    else:
        target.insert(max(0, min(target_index, len(target))), task)
    task.done = target_role is Role.DONE
    return task


def edit_task(
    board: TaskBoard, task_id: str, text: Optional[str] = None, flagged: Optional[bool] = None
) -> Task:
    """Edit in place. A leading flag glyph in ``text`` flags the task unless
    ``flagged`` says otherwise."""
    _, _, task = find_task(board, task_id)
    if text is not None:
        glyph, task.text = split_flag(clean_text(text))
        if glyph and flagged is None:
            flagged = True
    if flagged is not None:
        task.flagged = bool(flagged)
    return task


def remove_task(board: TaskBoard, task_id: str) -> Task:
    role, index, _ = find_task(board, task_id)
    return board.tasks(role).pop(index)


def update_task(
    board: TaskBoard,
    task_id: str,
    role: Optional[Role] = None,
    text: Optional[str] = None,
    flagged: Optional[bool] = None,
    index: Optional[int] = None,
) -> Task:
    """Edit fields, then move when the role changes or an index is given."""
    task = edit_task(board, task_id, text=text, flagged=flagged)
    current_role, _, _ = find_task(board, task_id)
    if index is not None or (role is not None and role is not current_role):
        move_task(board, task_id, role or current_role, index)
    return task


# Flat lists (weekly plan): no roles, edits are applied line by line.


def _tag(task_id: str) -> str:
    return f"[#{task_id}]"


def toggle_by_id(text: str, task_id: str) -> str:
    lines = text.split("\n")
    tag = _tag(task_id)
    for i, line in enumerate(lines):
        match = CHECKBOX_RE.match(line)
        if match and tag in line:
            mark = " " if match.group(1) in "xX" else "x"
            lines[i] = f"- [{mark}]" + line[len("- [ ]"):]
            return "\n".join(lines)
    raise TaskNotFound(task_id)


def edit_text_by_id(text: str, task_id: str, new_text: str) -> str:
    lines = text.split("\n")
    tag = _tag(task_id)
    for i, line in enumerate(lines):
        head, sep, _ = line.partition(f"{tag} ")
        if sep:
            lines[i] = f"{head}{tag} {clean_text(new_text)}"
            return "\n".join(lines)
        if line.endswith(tag):
            lines[i] = f"{line} {clean_text(new_text)}"
            return "\n".join(lines)
    raise TaskNotFound(task_id)


def remove_by_id(text: str, task_id: str) -> str:
    tag = _tag(task_id)
    lines = text.split("\n")
    kept = [line for line in lines if tag not in line]
    if len(kept) == len(lines):
        raise TaskNotFound(task_id)
    return "\n".join(kept)


def _list_line(task: Task) -> str:
    return format_task_line(task, Role.BACKLOG, WEEKLY_PLAN_SCHEMA)


def append_to_list(text: str, schema: SectionSchema, task: Task) -> str:
    """Insert ``task`` at the end of the single list section of ``text``."""
    lines = text.split("\n")
    start = next((i for i, line in enumerate(lines) if schema.role_for(line)), None)
    if start is None:
        header = schema.sections[0][0]
        return f"{text.rstrip()}\n\n{header}\n\n{_list_line(task)}\n".lstrip("\n")
    end = start + 1
    while end < len(lines) and not HEADING_RE.match(lines[end]):
        end += 1
    last_task = None
    last_content = start
    for i in range(start + 1, end):
        if parse_task_line(lines[i], id_factory=lambda: ""):
            last_task = i
        if lines[i].strip():
            last_content = i
    if last_task is not None:
        lines.insert(last_task + 1, _list_line(task))
    else:
        lines[last_content + 1:last_content + 1] = ["", _list_line(task)]
        if last_content + 3 >= len(lines) or lines[last_content + 3].strip():
            lines.insert(last_content + 3, "")
    return "\n".join(lines)


def new_weekly_plan(task: Task) -> str:
    return f"{WEEKLY_PLAN_SCHEMA.sections[0][0]}\n\n{WEEKLY_PLAN_NOTICE}\n\n{_list_line(task)}\n"


def new_list_task(text: str, id_factory: Optional[IdFactory] = None) -> Task:
    return Task(id=(id_factory or default_id_factory)(), text=clean_text(text))
