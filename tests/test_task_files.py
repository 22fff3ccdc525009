"""Tests for configuration loading and guarded document writes."""

import datetime as dt
from pathlib import Path

import pytest

from core.errors import IOFailure
from integrations import config
from integrations.task_files import (
    TaskPaths,
    ensure_day_track_file,
    read_document,
    safe_write_text,
)


def test_missing_default_config_is_empty(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "_default_config_path", lambda: tmp_path / "missing.yaml")
    assert config.load_config() == {}


def test_explicit_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_config(tmp_path / "missing.yaml")


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        config.load_config(path)


def test_paths_from_config(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"tasks_root: {tmp_path / 'root'}\n"
        f"weekly_plan_file: {tmp_path / 'elsewhere' / 'week.md'}\n"
        f"backup_root: {tmp_path / 'backups'}\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("DAYTRACK_CONFIG", str(path))
    paths = TaskPaths.from_config()
    assert paths.tasks_root == tmp_path / "root"
    assert paths.day_track_dir == tmp_path / "root" / "daily" / "day_track"
    assert paths.archived_dir == tmp_path / "root" / "daily" / "archived"
    assert paths.night_check_dir == tmp_path / "root" / "daily" / "night_check"
    assert paths.weekly_plan_file == tmp_path / "elsewhere" / "week.md"
    assert paths.backup_root == tmp_path / "backups"
    assert paths.day_track_file(dt.date(2024, 6, 10)) == paths.day_track_dir / "2024-06-10.md"


def test_write_outside_root_is_blocked(tmp_path):
    with pytest.raises(IOFailure):
        safe_write_text(tmp_path / "outside.md", "x", tmp_path / "root")
    assert not (tmp_path / "outside.md").exists()


def test_identical_write_is_skipped(tmp_path):
    target = tmp_path / "doc.md"
    backups = tmp_path / "backups"
    safe_write_text(target, "same\n", tmp_path, backups)
    assert safe_write_text(target, "same\n", tmp_path, backups) is None
    assert not backups.exists()


def test_overwrite_keeps_backup(tmp_path):
    target = tmp_path / "doc.md"
    target.write_text("old\n", encoding="utf-8")
    backup = safe_write_text(target, "new\n", tmp_path, tmp_path / "backups")
    assert isinstance(backup, Path)
    assert backup.read_text(encoding="utf-8") == "old\n"
    assert backup.name.endswith("__doc.md")
    assert read_document(target) == "new\n"


def test_read_missing_document(tmp_path):
    assert read_document(tmp_path / "nope.md") is None


def test_ensure_day_track_file_does_not_overwrite(paths):
    date = dt.date(2024, 6, 10)
    path = ensure_day_track_file(date, paths)
    path.write_text("custom\n", encoding="utf-8")
    assert ensure_day_track_file(date, paths) == path
    assert path.read_text(encoding="utf-8") == "custom\n"
