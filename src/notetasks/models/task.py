"""
Core task data models.

A Task records one keyword task line exactly as it was found. Besides the
semantic fields (state, priority, dates) it keeps the literal pieces of the
line (indent, quote prefix, comment prefix, list marker, trailing comment
end) so utils.formatting can rebuild the line with only the state changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Literal, Optional

Priority = Literal["high", "med", "low"]

# Priority letter inside a "[#A]" token → priority level
PRIORITY_BY_LETTER: Dict[str, Priority] = {
    "A": "high",
    "B": "med",
    "C": "low",
}

LETTER_BY_PRIORITY: Dict[str, str] = {v: k for k, v in PRIORITY_BY_LETTER.items()}


@dataclass(frozen=True)
class Task:
    """
    A single keyword task parsed from a document line.

    Instances are never mutated after a scan; callers that change a task
    build a replacement with dataclasses.replace().
    """

    path: str
    line: int
    raw_text: str
    state: str
    text: str = ""
    indent: str = ""
    list_marker: str = ""
    comment_prefix: str = ""
    trailing_comment_end: str = ""
    quote_prefix: str = ""
    callout_type: Optional[str] = None
    callout_collapsible: bool = False
    completed: bool = False
    priority: Optional[Priority] = None
    scheduled_date: Optional[datetime] = None
    deadline_date: Optional[datetime] = None

    @property
    def ref(self) -> str:
        """Task reference in 'path:line' format."""
        return f"{self.path}:{self.line}"

    @property
    def is_checkbox(self) -> bool:
        """True if the list marker is a Markdown checkbox ("- [ ]", "- [x]")."""
        return "[" in self.list_marker

    @property
    def in_callout(self) -> bool:
        return bool(self.quote_prefix)

    @property
    def priority_token(self) -> Optional[str]:
        """The "[#A]" style token for this task's priority, or None."""
        if self.priority is None:
            return None
        return f"[#{LETTER_BY_PRIORITY[self.priority]}]"


@dataclass
class CachedFile:
    """A scanned document held in the vault cache."""

    file_path: Path
    tasks: List[Task] = field(default_factory=list)
    mtime: float = 0.0
