"""
Task tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_task_tools() serialize to JSON strings.
"""

import json
import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from notetasks.errors import StaleTaskError, TaskNotFoundError

log = logging.getLogger(__name__)


def task_to_dict(task) -> dict:
    """Serialize a Task to a JSON-serializable dict."""
    return {
        "ref": task.ref,
        "path": task.path,
        "line": task.line,
        "state": task.state,
        "text": task.text,
        "completed": task.completed,
        "priority": task.priority,
        "scheduled": task.scheduled_date.isoformat() if task.scheduled_date else None,
        "deadline": task.deadline_date.isoformat() if task.deadline_date else None,
        "list_marker": task.list_marker,
        "comment_prefix": task.comment_prefix,
        "callout_type": task.callout_type,
        "callout_collapsible": task.callout_collapsible,
        "raw_text": task.raw_text,
    }


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_task_list(
    cache,
    *,
    state: Optional[str] = None,
    bucket: Optional[str] = None,
    completed: Optional[bool] = None,
    priority: Optional[str] = None,
    scheduled_before: Optional[str] = None,
    deadline_before: Optional[str] = None,
    file_path: Optional[str] = None,
    limit: int = 200,
) -> list[dict]:
    tasks = cache.query_tasks(
        state=state,
        bucket=bucket,
        completed=completed,
        priority=priority,
        scheduled_before=scheduled_before,
        deadline_before=deadline_before,
        file_path=file_path,
        limit=limit,
    )
    return [task_to_dict(t) for t in tasks]


def handle_task_get(cache, *, ref: str) -> dict:
    entry = cache.get_task(ref)
    if not entry:
        return {"error": f"Task '{ref}' not found"}
    task, _ = entry
    return task_to_dict(task)


def handle_task_set_state(
    cache,
    *,
    ref: str,
    state: Optional[str] = None,
    keep_priority: bool = True,
) -> dict:
    try:
        task = cache.set_task_state(ref, state, keep_priority=keep_priority)
    except TaskNotFoundError as e:
        return {"error": str(e)}
    return task_to_dict(task)


def handle_scan_text(cache, *, text: str, path: str = "") -> list[dict]:
    return [task_to_dict(t) for t in cache.scan_text(text, path)]


def handle_cache_refresh(cache, *, file_path: Optional[str] = None) -> dict:
    if file_path:
        try:
            cache.refresh_file(Path(file_path))
        except ValueError as e:
            return {"error": str(e)}
    else:
        cache.refresh_all()
    return cache.status()


def handle_cache_status(cache) -> dict:
    return cache.status()


# ---------------------------------------------------------------------------
# MCP registration
# ---------------------------------------------------------------------------


def register_task_tools(mcp: FastMCP, cache) -> None:
    """Register all task tools on the given FastMCP server."""

    @mcp.tool()
    def task_list(
        state: Optional[str] = None,
        bucket: Optional[str] = None,
        completed: Optional[bool] = None,
        priority: Optional[str] = None,
        scheduled_before: Optional[str] = None,
        deadline_before: Optional[str] = None,
        file_path: Optional[str] = None,
        limit: int = 200,
    ) -> str:
        """
        List keyword tasks found in the vault.

        Args:
            state: Comma-separated state keywords (e.g. "TODO,DOING")
            bucket: "pending", "active" or "completed"
            completed: True for completed tasks only, False for open ones
            priority: Comma-separated priorities: "high", "med", "low"
            scheduled_before: ISO date; tasks scheduled on or before it
            deadline_before: ISO date; tasks with a deadline on or before it
            file_path: Restrict to one note (path relative to the vault)
            limit: Max results (default 200)

        Returns:
            JSON array of tasks, each with a "ref" usable by task_get/task_set_state
        """
        return json.dumps(
            handle_task_list(
                cache,
                state=state,
                bucket=bucket,
                completed=completed,
                priority=priority,
                scheduled_before=scheduled_before,
                deadline_before=deadline_before,
                file_path=file_path,
                limit=limit,
            ),
            indent=2,
        )

    @mcp.tool()
    def task_get(ref: str) -> str:
        """
        Get a single task by reference.

        Args:
            ref: Task reference "<note path>:<line>"

        Returns:
            JSON object with the task, or an error
        """
        return json.dumps(handle_task_get(cache, ref=ref), indent=2)

    @mcp.tool()
    def task_set_state(ref: str, state: Optional[str] = None, keep_priority: bool = True) -> str:
        """
        Change a task's state keyword and rewrite its line in the note.

        Args:
            ref: Task reference "<note path>:<line>"
            state: New keyword (e.g. "DONE"); omit to advance to the next state
            keep_priority: Keep the [#A]/[#B]/[#C] token (default True)

        Returns:
            Updated task JSON or error message
        """
        try:
            return json.dumps(
                handle_task_set_state(cache, ref=ref, state=state, keep_priority=keep_priority),
                indent=2,
            )
        except (StaleTaskError, ValueError) as e:
            return json.dumps({"error": str(e)})

    @mcp.tool()
    def task_scan_text(text: str, path: str = "") -> str:
        """
        Extract tasks from Markdown text that is not stored in the vault.

        Args:
            text: Markdown document text
            path: Optional name recorded on each task

        Returns:
            JSON array of tasks
        """
        return json.dumps(handle_scan_text(cache, text=text, path=path), indent=2)

    @mcp.tool()
    def cache_refresh(file_path: Optional[str] = None) -> str:
        """
        Re-scan notes that changed on disk.

        Args:
            file_path: One note to refresh (relative to the vault); omit for all

        Returns:
            JSON with cache statistics after the refresh
        """
        return json.dumps(handle_cache_refresh(cache, file_path=file_path), indent=2)

    @mcp.tool()
    def cache_status() -> str:
        """
        Show vault cache statistics.

        Returns:
            JSON with file count, task count, last scan time and keywords
        """
        return json.dumps(handle_cache_status(cache), indent=2)
