"""
Task line regeneration.

This module is the inverse of the scanner: given a scanned Task and a new
state keyword it rebuilds the line, changing only what the new state
implies. Every literal piece (indent, quote prefix, comment prefix, list
marker, trailing comment end) comes from what the scanner captured on the
original line, so the result scans back to the same text and priority.

Layout of a regenerated line:

    <indent><quote prefix><comment prefix><list marker><STATE>[ [#P]][ text]<comment end>
"""

import re
from typing import NamedTuple, Optional

from notetasks.models.task import Task
from notetasks.parsers.keywords import KeywordSet

_CHECKBOX_GLYPH = re.compile(r"\[[ xX]\]")


class FormattedLine(NamedTuple):
    new_line: str
    completed: bool


def render_checkbox(list_marker: str, completed: bool) -> str:
    """Set the glyph of a checkbox marker, keeping its bullet and spacing."""
    return _CHECKBOX_GLYPH.sub("[x]" if completed else "[ ]", list_marker, count=1)


def render_task_line(
    task: Task,
    new_state: str,
    completed: bool,
    keep_priority: bool = True,
) -> str:
    """Build the line text for task with new_state. Pure string assembly."""
    marker = task.list_marker
    if task.is_checkbox:
        marker = render_checkbox(marker, completed)

    body = ""
    token = task.priority_token if keep_priority else None
    if token:
        body += f" {token}"
    if task.text:
        body += f" {task.text}"
    if not body:
        # The keyword must be followed by whitespace to stay a task
        body = " "

    return (
        f"{task.indent}{task.quote_prefix}{task.comment_prefix}{marker}"
        f"{new_state}{body}{task.trailing_comment_end}"
    )


class LineFormatter:
    """Regenerates task lines for one keyword configuration."""

    def __init__(self, keywords: Optional[KeywordSet] = None) -> None:
        self.keywords = keywords or KeywordSet()

    def format(self, task: Task, new_state: str, keep_priority: bool = True) -> FormattedLine:
        """
        Return (new_line, completed) for task moved to new_state.

        completed depends only on whether new_state is a completed keyword;
        a checkbox marker is switched to match it.
        """
        completed = self.keywords.is_completed(new_state)
        return FormattedLine(render_task_line(task, new_state, completed, keep_priority), completed)

    def next_line(self, task: Task, keep_priority: bool = True) -> FormattedLine:
        """Format task with its default successor state."""
        return self.format(task, self.keywords.next_state(task.state), keep_priority)
