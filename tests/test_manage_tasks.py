import json

import manage_tasks


def _run(tracker, *argv):
    return manage_tasks.run(manage_tasks.parse_args(list(argv)), tracker)


def test_add_show_and_move(tracker):
    added = _run(tracker, "add", "write spec", "--status", "inProgress")
    assert added["task"]["id"] == "t1"
    moved = _run(tracker, "move", "t1", "done")
    assert moved["task"]["done"] is True
    board = _run(tracker, "show")
    assert [t["id"] for t in board["tasks"]["done"]] == ["t1"]


def test_edit_flag_and_delete(tracker):
    _run(tracker, "add", "one")
    edited = _run(tracker, "edit", "t1", "--text", "one edited", "--flag")
    assert edited["task"] == {"id": "t1", "text": "one edited", "done": False, "flagged": True}
    unflagged = _run(tracker, "edit", "t1", "--unflag")
    assert unflagged["task"]["flagged"] is False
    assert _run(tracker, "delete", "t1")["deleted"]["id"] == "t1"


def test_weekly_view_flag(tracker):
    _run(tracker, "--view", "weekly", "add", "groceries")
    shown = _run(tracker, "--view", "weekly", "show")
    assert [t["text"] for t in shown["tasks"]] == ["groceries"]


def test_history_without_archive(tracker):
    assert _run(tracker, "history") == {"dates": []}


def test_main_reports_errors(monkeypatch, capsys, tracker):
    monkeypatch.setattr(manage_tasks, "TaskTracker", lambda: tracker)
    assert manage_tasks.main(["--date", "2024-06-09", "add", "late"]) == 1
    assert "error: Can only modify tasks for today" in capsys.readouterr().err

    assert manage_tasks.main(["add", "fresh"]) == 0
    printed = json.loads(capsys.readouterr().out)
    assert printed["task"]["text"] == "fresh"
