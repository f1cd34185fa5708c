"""REST API routes for task operations."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from notetasks.errors import StaleTaskError
from notetasks.tools.task_tools import (
    handle_cache_refresh,
    handle_cache_status,
    handle_scan_text,
    handle_task_get,
    handle_task_list,
    handle_task_set_state,
)


class TaskStateBody(BaseModel):
    state: Optional[str] = None
    keep_priority: bool = True


class ScanBody(BaseModel):
    text: str
    path: str = ""


class RefreshBody(BaseModel):
    file_path: Optional[str] = None


def register_task_routes(app_router: APIRouter, cache) -> None:
    """Attach task REST routes that use the shared cache."""

    @app_router.get("/tasks")
    def list_tasks(
        state: Optional[str] = Query(None),
        bucket: Optional[str] = Query(None),
        completed: Optional[bool] = Query(None),
        priority: Optional[str] = Query(None),
        scheduled_before: Optional[str] = Query(None),
        deadline_before: Optional[str] = Query(None),
        file_path: Optional[str] = Query(None),
        limit: int = Query(200),
    ):
        return handle_task_list(
            cache,
            state=state,
            bucket=bucket,
            completed=completed,
            priority=priority,
            scheduled_before=scheduled_before,
            deadline_before=deadline_before,
            file_path=file_path,
            limit=limit,
        )

    # Refs contain "/" for notes in subfolders
    @app_router.get("/tasks/{ref:path}")
    def get_task(ref: str):
        result = handle_task_get(cache, ref=ref)
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app_router.patch("/tasks/{ref:path}")
    def set_task_state(ref: str, body: TaskStateBody):
        try:
            result = handle_task_set_state(cache, ref=ref, **body.model_dump())
        except StaleTaskError as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if "error" in result:
            raise HTTPException(status_code=404, detail=result["error"])
        return result

    @app_router.post("/scan")
    def scan_text(body: ScanBody):
        return handle_scan_text(cache, text=body.text, path=body.path)

    @app_router.post("/cache/refresh")
    def refresh_cache(body: Optional[RefreshBody] = None):
        result = handle_cache_refresh(cache, file_path=body.file_path if body else None)
        if "error" in result:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.get("/cache/status")
    def get_cache_status():
        return handle_cache_status(cache)
