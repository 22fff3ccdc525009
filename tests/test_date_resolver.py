"""Tests for date classification and document resolution."""

import datetime as dt

import pytest

from core.date_resolver import DayRole, Source, classify, parse_date, require_writable, resolve
from core.errors import InvalidOperation
from integrations.task_files import day_track_template

TODAY = dt.date(2024, 6, 10)


@pytest.mark.parametrize(
    "queried,expected",
    [
        (dt.date(2024, 6, 9), DayRole.PAST),
        (dt.date(2024, 6, 10), DayRole.TODAY),
        (dt.date(2024, 6, 11), DayRole.TOMORROW),
        (dt.date(2024, 6, 12), DayRole.FAR_FUTURE),
        (dt.date(2023, 12, 31), DayRole.PAST),
    ],
)
def test_classify(queried, expected):
    assert classify(queried, TODAY) is expected


def test_classify_across_month_end():
    assert classify(dt.date(2024, 7, 1), dt.date(2024, 6, 30)) is DayRole.TOMORROW


def test_parse_date_rejects_garbage():
    assert parse_date("2024-06-10") == TODAY
    with pytest.raises(InvalidOperation):
        parse_date("10/06/2024")


def test_today_creates_day_tracker(paths):
    resolution = resolve(TODAY, TODAY, paths)
    path = paths.day_track_file(TODAY)
    assert path.read_text(encoding="utf-8") == day_track_template(TODAY)
    assert resolution.source is Source.DAY_TRACK
    assert resolution.classification is DayRole.TODAY
    assert resolution.writable
    assert resolution.path == path


def test_today_uses_existing_file(paths):
    path = paths.day_track_file(TODAY)
    path.parent.mkdir(parents=True)
    path.write_text("## 📋 Backlog\n- [ ] [#a] existing\n", encoding="utf-8")
    resolution = resolve(TODAY, TODAY, paths)
    assert [t.id for t in resolution.board.backlog] == ["a"]


def test_past_prefers_day_tracker_over_archive(paths):
    past = dt.date(2024, 6, 9)
    day_file = paths.day_track_file(past)
    day_file.parent.mkdir(parents=True)
    day_file.write_text("## ✅ Done\n- [x] [#live] from day track\n", encoding="utf-8")
    archived = paths.archived_day_dir(past) / "day_track.md"
    archived.parent.mkdir(parents=True)
    archived.write_text("## ✅ Done\n- [x] [#old] from archive\n", encoding="utf-8")

    resolution = resolve(past, TODAY, paths)
    assert resolution.source is Source.DAY_TRACK
    assert [t.id for t in resolution.board.done] == ["live"]
    assert not resolution.writable


def test_past_falls_back_to_archive(paths):
    past = dt.date(2024, 6, 1)
    archived = paths.archived_day_dir(past) / "day_track.md"
    archived.parent.mkdir(parents=True)
    archived.write_text("## ✅ Done\n- [x] [#old] from archive\n", encoding="utf-8")

    resolution = resolve(past, TODAY, paths)
    assert resolution.source is Source.ARCHIVED
    assert resolution.classification is DayRole.PAST
    assert [t.text for t in resolution.board.done] == ["from archive"]


def test_past_without_records(paths):
    resolution = resolve(dt.date(2024, 5, 1), TODAY, paths)
    assert resolution.source is Source.NONE
    assert resolution.message == "No task records"
    assert resolution.board.backlog == []
    assert not paths.day_track_file(dt.date(2024, 5, 1)).exists()


def test_tomorrow_reads_plan_preview(paths):
    plan = paths.night_check_dir / "plan.md"
    plan.parent.mkdir(parents=True)
    plan.write_text(
        "# 📋 Tomorrow's Plan\n"
        "\n"
        "*(此文件由 Night Check 自动生成)*\n"
        "\n"
        "- [ ] [#p1] plan one\n"
        "- [ ] [#p2] plan two\n",
        encoding="utf-8",
    )
    resolution = resolve(dt.date(2024, 6, 11), TODAY, paths)
    assert resolution.source is Source.PLAN_PREVIEW
    assert [t.id for t in resolution.board.backlog] == ["p1", "p2"]
    assert resolution.board.in_progress == [] and resolution.board.done == []
    assert not resolution.writable


def test_tomorrow_without_plan_is_empty(paths):
    resolution = resolve(dt.date(2024, 6, 11), TODAY, paths)
    assert resolution.source is Source.NONE
    assert resolution.message is None


def test_far_future_is_empty_and_creates_nothing(paths):
    resolution = resolve(dt.date(2024, 6, 20), TODAY, paths)
    assert resolution.classification is DayRole.FAR_FUTURE
    assert resolution.source is Source.NONE
    assert not paths.tasks_root.exists()


def test_require_writable():
    require_writable(TODAY, TODAY)
    for queried in (dt.date(2024, 6, 9), dt.date(2024, 6, 11), dt.date(2025, 1, 1)):
        with pytest.raises(InvalidOperation):
            require_writable(queried, TODAY)
