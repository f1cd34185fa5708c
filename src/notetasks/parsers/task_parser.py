"""
Keyword task scanner for Markdown documents.

Main API:
    DocumentScanner(settings).scan(content, path)  → List[Task]
    scan_content(content, path, settings)          → List[Task]
    scan_file(path, settings)                      → List[Task]

The scanner walks a document once, top to bottom, tracking a small state:
the open fence (code or math, and the code block's language), whether the
current code line sits inside a block comment, and whether the line is part
of a block quote / callout. Each line is tested with the cheap pattern for
its context and only captured when the test matches.

All per-document state lives in a ScanState created inside scan(), so one
DocumentScanner can scan many documents, including from several threads.
"""

import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Pattern, Tuple

from notetasks.models.settings import ScanSettings
from notetasks.models.task import PRIORITY_BY_LETTER, Priority, Task
from notetasks.parsers.keywords import KeywordSet
from notetasks.parsers.languages import LanguageDefinition, LanguageRegistry
from notetasks.parsers.patterns import (
    CALLOUT,
    CHECKBOX_PATTERN,
    LANGUAGE,
    PLAIN,
    PRIORITY_PATTERN,
    PatternPair,
    RegexComposer,
)
from notetasks.utils.dates import extract_task_dates

# ``` / ~~~ (three or more) or $$, then an optional language tag
FENCE_PATTERN = re.compile(r"^[ \t]*(`{3,}|~{3,}|\$\$)[ \t]*([^\s`{]*)")

# Callout header line: "> [!note]-" (type optional for plain quotes)
CALLOUT_HEADER_PATTERN = re.compile(r"^[ \t]*>[ \t>]*\[![ \t]*([^\]]+?)[ \t]*\]([-+])?")


# ---------------------------------------------------------------------------
# Scan state
# ---------------------------------------------------------------------------

class Fence(NamedTuple):
    kind: str  # "code" or "math"
    marker: str  # "`", "~" or "$"
    language: Optional[LanguageDefinition] = None


class Callout(NamedTuple):
    type: str  # "quote" for a plain block quote
    collapsible: bool = False


@dataclass
class ScanState:
    """Transient state for a single scan() call."""

    fence: Optional[Fence] = None
    in_comment: bool = False
    callout: Optional[Callout] = None

    def close_fence(self) -> None:
        self.fence = None
        self.in_comment = False


# ---------------------------------------------------------------------------
# Field extraction helpers
# ---------------------------------------------------------------------------

def split_lines(content: str) -> List[str]:
    """Split on "\\n" only, dropping a trailing "\\r" from each line."""
    return [line[:-1] if line.endswith("\r") else line for line in content.split("\n")]


def extract_priority(text: str) -> Tuple[Optional[Priority], str]:
    """
    Remove the first "[#A]"/"[#B]"/"[#C]" token from text.

    The token and the whitespace around it collapse to one space and the
    result is trimmed, so "fix [#A]  now" becomes ("high", "fix now").
    """
    m = PRIORITY_PATTERN.search(text)
    if not m:
        return None, text
    cleaned = (text[: m.start()] + " " + text[m.end():]).strip()
    return PRIORITY_BY_LETTER[m.group(1)], cleaned


# ---------------------------------------------------------------------------
# DocumentScanner
# ---------------------------------------------------------------------------

class DocumentScanner:
    """
    Extracts Task records from document text.

    Every pattern the scanner can need is composed in __init__: plain,
    callout, and one language pair per allowed registered language.
    """

    def __init__(
        self,
        settings: Optional[ScanSettings] = None,
        *,
        keywords: Optional[KeywordSet] = None,
        registry: Optional[LanguageRegistry] = None,
        composer: Optional[RegexComposer] = None,
    ) -> None:
        self.settings = settings or ScanSettings()
        self.keywords = keywords or KeywordSet.with_additional(self.settings.additional_keywords)
        self.registry = registry or LanguageRegistry.default()
        self.composer = composer or RegexComposer()

        self._plain = self.composer.compose(self.keywords, None, PLAIN)
        self._callout = self.composer.compose(self.keywords, None, CALLOUT)

        # language name → (patterns, block comment opener, block comment closer)
        self._languages: Dict[str, Tuple[PatternPair, Optional[Pattern[str]], Optional[Pattern[str]]]] = {}
        support = self.settings.language_comment_support
        if support.enabled:
            allowed = None
            if support.languages is not None:
                allowed = set()
                for identifier in support.languages:
                    language = self.registry.resolve(identifier)
                    if language is not None:
                        allowed.add(language.name)
            for name in self.registry.names():
                if allowed is not None and name not in allowed:
                    continue
                language = self.registry.resolve(name)
                pair = self.composer.compose(self.keywords, language, LANGUAGE)
                opener = closer = None
                if language.patterns.has_multi_line:
                    opener = re.compile(language.patterns.multi_line_start)
                    closer = re.compile(language.patterns.multi_line_end)
                self._languages[name] = (pair, opener, closer)

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    def _comment_aware(self, state: ScanState) -> bool:
        fence = state.fence
        return (
            fence is not None
            and fence.kind == "code"
            and fence.language is not None
            and fence.language.name in self._languages
        )

    def _update_fence(self, state: ScanState, line: str) -> bool:
        """Open or close a fence. Returns True if line is a fence delimiter."""
        m = FENCE_PATTERN.match(line)
        if not m:
            return False
        marker = m.group(1)[0]

        if state.fence is None:
            if marker == "$":
                state.fence = Fence("math", marker)
            else:
                state.fence = Fence("code", marker, self.registry.resolve(m.group(2)))
            state.in_comment = False
            return True

        if state.fence.marker == marker:
            state.close_fence()
            return True

        # A different marker inside an open fence is ordinary text
        return False

    def _update_comment(self, state: ScanState, line: str) -> None:
        _, opener, closer = self._languages[state.fence.language.name]
        if opener is None:
            return
        if not state.in_comment:
            m = opener.search(line)
            # A greedy opener can swallow the start of its own closer ("/**/").
            # Openers are at least two characters, so "/*/" stays open.
            if m and not closer.search(line, m.start() + 2):
                state.in_comment = True
        elif closer.search(line):
            state.in_comment = False

    def _update_callout(self, state: ScanState, line: str) -> None:
        if not line.lstrip().startswith(">"):
            state.callout = None
            return
        header = CALLOUT_HEADER_PATTERN.match(line)
        if header:
            state.callout = Callout(header.group(1).strip(), header.group(2) is not None)
        elif state.callout is None:
            state.callout = Callout("quote")

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(self, content: str, path: str = "") -> List[Task]:
        """Return every task in content, in line order."""
        lines = split_lines(content)
        state = ScanState()
        tasks: List[Task] = []

        for index, line in enumerate(lines):
            if self._update_fence(state, line):
                continue
            if state.fence is not None and state.fence.kind == "math":
                continue

            comment_aware = self._comment_aware(state)
            in_comment = False
            if comment_aware:
                was_in_comment = state.in_comment
                self._update_comment(state, line)
                in_comment = was_in_comment or state.in_comment

            self._update_callout(state, line)

            if state.callout is not None and not self.settings.include_callout_blocks:
                continue
            if state.fence is not None and not self.settings.include_code_blocks:
                continue

            task = self._parse_line(line, index, path, state, comment_aware, in_comment)
            if task is None:
                continue

            dates = extract_task_dates(lines, index + 1, task.indent, task.in_callout)
            if dates.scheduled or dates.deadline:
                task = replace(task, scheduled_date=dates.scheduled, deadline_date=dates.deadline)
            tasks.append(task)

        return tasks

    def _parse_line(
        self,
        line: str,
        index: int,
        path: str,
        state: ScanState,
        comment_aware: bool,
        in_comment: bool,
    ) -> Optional[Task]:
        if state.callout is not None:
            context, pair = CALLOUT, self._callout
        elif comment_aware:
            context, pair = LANGUAGE, self._languages[state.fence.language.name][0]
        else:
            context, pair = PLAIN, self._plain

        if not pair.test.match(line):
            return None
        m = pair.capture.match(line)
        if m is None:
            return None
        groups = m.groupdict()

        # A bare keyword in code only counts inside a block comment
        if context == LANGUAGE and groups.get("cont") is not None and not in_comment:
            return None

        if context == LANGUAGE:
            text = groups["text"].strip()
            trailing = groups.get("tail") or ""
        else:
            text = line[m.end():].strip()
            trailing = ""

        priority, text = extract_priority(text)

        state_keyword = groups["state"]
        marker = groups["marker"] or ""
        checkbox = CHECKBOX_PATTERN.match(marker)
        if checkbox:
            completed = checkbox.group(1) in "xX"
        else:
            completed = self.keywords.is_completed(state_keyword)

        callout_type = None
        collapsible = False
        if context == CALLOUT:
            callout_type = (groups.get("callout") or "").strip() or state.callout.type
            collapsible = state.callout.collapsible

        return Task(
            path=path,
            line=index,
            raw_text=line,
            state=state_keyword,
            text=text,
            indent=groups["indent"],
            list_marker=marker,
            comment_prefix=groups.get("comment") or "",
            trailing_comment_end=trailing,
            quote_prefix=groups.get("quote") or "",
            callout_type=callout_type,
            callout_collapsible=collapsible,
            completed=completed,
            priority=priority,
        )


def scan_content(content: str, path: str = "", settings: Optional[ScanSettings] = None) -> List[Task]:
    """Scan content with a one-off scanner. Prefer a shared DocumentScanner for many documents."""
    return DocumentScanner(settings).scan(content, path)


def scan_file(file_path: Path, settings: Optional[ScanSettings] = None) -> List[Task]:
    """Scan a Markdown file into tasks."""
    return scan_content(file_path.read_text(encoding="utf-8"), file_path.as_posix(), settings)
