from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import uvicorn
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.errors import InvalidOperation, IOFailure, NotFound, TaskTrackerError
from core.task_tracker import TaskTracker
from integrations.config import get_config

logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

_TRACKER: Optional[TaskTracker] = None


def get_tracker() -> TaskTracker:
    global _TRACKER
    if _TRACKER is None:
        _TRACKER = TaskTracker()
    return _TRACKER


def _api_token() -> Optional[str]:
    value = os.environ.get("DAYTRACK_API_TOKEN") or get_config().get("api_token")
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _authorized(request: Request) -> bool:
    expected = _api_token()
    if not expected:
        return True
    provided = request.headers.get("X-API-Key") or request.query_params.get("token")
    return bool(provided) and provided.strip() == expected


class _Unauthorized(Exception):
    pass


def require_token(request: Request) -> None:
    if not _authorized(request):
        raise _Unauthorized()


class AddTaskPayload(BaseModel):
    text: str
    status: str = "backlog"
    view: Optional[str] = None
    date: Optional[str] = None


class UpdateTaskPayload(BaseModel):
    taskId: str
    status: Optional[str] = None
    text: Optional[str] = None
    flagged: Optional[bool] = None
    newIndex: Optional[int] = None
    view: Optional[str] = None
    date: Optional[str] = None


_STATUS_BY_ERROR = (
    (NotFound, 404),
    (InvalidOperation, 400),
    (IOFailure, 500),
)


def _error(status: int, message: str, kind: str = "error") -> JSONResponse:
    return JSONResponse(status_code=status, content={"success": False, "error": message, "kind": kind})


@app.exception_handler(TaskTrackerError)
async def task_tracker_error(request: Request, exc: TaskTrackerError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return _error(status, str(exc), exc.kind)


@app.exception_handler(_Unauthorized)
async def unauthorized(request: Request, exc: _Unauthorized) -> JSONResponse:
    return _error(401, "unauthorized", "unauthorized")


@app.get("/api/tasks", dependencies=[Depends(require_token)])
def get_tasks(
    view: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    tracker: TaskTracker = Depends(get_tracker),
) -> dict[str, Any]:
    return {"success": True, **tracker.get_board(view, date)}


@app.post("/api/tasks", dependencies=[Depends(require_token)])
def add_task(payload: AddTaskPayload, tracker: TaskTracker = Depends(get_tracker)) -> dict[str, Any]:
    task = tracker.add_task(payload.text, payload.status, view=payload.view, date=payload.date)
    return {"success": True, "task": task.to_dict()}


@app.put("/api/tasks", dependencies=[Depends(require_token)])
def update_task(payload: UpdateTaskPayload, tracker: TaskTracker = Depends(get_tracker)) -> dict[str, Any]:
    changes = {
        "role": payload.status,
        "text": payload.text,
        "flagged": payload.flagged,
        "index": payload.newIndex,
    }
    changes = {key: value for key, value in changes.items() if value is not None}
    task = tracker.update_task(payload.taskId, changes, view=payload.view, date=payload.date)
    return {"success": True, "task": task.to_dict()}


@app.delete("/api/tasks", dependencies=[Depends(require_token)])
def delete_task(
    taskId: str = Query(...),
    view: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    tracker: TaskTracker = Depends(get_tracker),
) -> dict[str, Any]:
    tracker.delete_task(taskId, view=view, date=date)
    return {"success": True}


@app.get("/api/history", dependencies=[Depends(require_token)])
def history(
    date: Optional[str] = Query(None),
    tracker: TaskTracker = Depends(get_tracker),
) -> dict[str, Any]:
    if date:
        return {"success": True, **tracker.get_archived_day(date)}
    return {"success": True, "dates": tracker.list_archived_dates()}


def parse_args(argv):
    parser = argparse.ArgumentParser(description="HTTP API for the Markdown day tracker.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3000)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=str(get_config().get("log_level", "INFO")).upper())
    print(f"Local access: http://{args.host}:{args.port}")
    if _api_token():
        print("API token enabled")
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
