"""
SCHEDULED:/DEADLINE: date line parsing.

Pure functions, no external dependencies. Timestamps are naive datetimes in
local time; a literal without a time means midnight.

Supported literals, tried most specific first:
    <2024-01-15 Mon 09:30>
    <2024-01-15 Mon>
    <2024-01-15 09:30>
    <2024-01-15>
"""

import logging
import re
from datetime import datetime
from typing import Dict, Literal, NamedTuple, Optional, Sequence

log = logging.getLogger(__name__)

DateKind = Literal["scheduled", "deadline"]

_DOW = r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)"

# (regex, strptime format for the captured groups joined by a space)
DATE_FORMATS = [
    (re.compile(rf"^<(\d{{4}}-\d{{2}}-\d{{2}})\s+{_DOW}\s+(\d{{2}}:\d{{2}})>"), "%Y-%m-%d %H:%M"),
    (re.compile(rf"^<(\d{{4}}-\d{{2}}-\d{{2}})\s+{_DOW}>"), "%Y-%m-%d"),
    (re.compile(r"^<(\d{4}-\d{2}-\d{2})\s+(\d{2}:\d{2})>"), "%Y-%m-%d %H:%M"),
    (re.compile(r"^<(\d{4}-\d{2}-\d{2})>"), "%Y-%m-%d"),
]

_DATE_LINE = re.compile(r"^(?P<indent>[ \t]*)(?P<quote>>[ \t>]*)?(?P<kind>SCHEDULED|DEADLINE):\s*(?P<value>.*)$")


class TaskDates(NamedTuple):
    scheduled: Optional[datetime]
    deadline: Optional[datetime]


def parse_date(content: str) -> Optional[datetime]:
    """
    Parse a date literal at the start of content.

    Returns None when no supported literal is present or the literal names
    an impossible date ("<2024-02-30>").
    """
    content = content.strip()
    for pattern, fmt in DATE_FORMATS:
        m = pattern.match(content)
        if not m:
            continue
        try:
            return datetime.strptime(" ".join(m.groups()), fmt)
        except ValueError:
            return None
    return None


def date_line_kind(line: str, task_indent: str, in_callout: bool) -> Optional[DateKind]:
    """
    Classify a line as a SCHEDULED:/DEADLINE: line belonging to a task.

    Callout tasks only own date lines that stay inside the quote; other
    tasks own date lines indented at least as deep as the task itself.
    """
    m = _DATE_LINE.match(line)
    if not m:
        return None
    if in_callout:
        if not m.group("quote"):
            return None
    else:
        if m.group("quote") or not m.group("indent").startswith(task_indent):
            return None
    return "scheduled" if m.group("kind") == "SCHEDULED" else "deadline"


def extract_task_dates(
    lines: Sequence[str],
    start: int,
    task_indent: str,
    in_callout: bool = False,
) -> TaskDates:
    """
    Look ahead from lines[start] for the task's date lines.

    Blank lines are skipped. The first valid SCHEDULED and the first valid
    DEADLINE win; later duplicates are passed over. Lookahead stops at the
    first other non-blank line, at the first line leaving the callout, or
    once both dates are known. A malformed literal is logged and does not
    fill its field.
    """
    found: Dict[str, Optional[datetime]] = {"scheduled": None, "deadline": None}

    for i in range(start, len(lines)):
        line = lines[i]
        if not line.strip():
            continue
        if in_callout and not line.lstrip().startswith(">"):
            break

        kind = date_line_kind(line, task_indent, in_callout)
        if kind is None:
            break
        if found[kind] is not None:
            continue

        parsed = parse_date(_DATE_LINE.match(line).group("value"))
        if parsed is None:
            log.warning("Invalid %s date at line %d: %r", kind, i + 1, line.strip())
            continue
        found[kind] = parsed

        if found["scheduled"] is not None and found["deadline"] is not None:
            break

    return TaskDates(scheduled=found["scheduled"], deadline=found["deadline"])
