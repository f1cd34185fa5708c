"""
Task state keywords.

A KeywordSet sorts keywords into three buckets (pending, active, completed)
and knows the default "next state" transitions. Matching is case-sensitive:
"TODO" is a keyword, "todo" is prose.
"""

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from notetasks.errors import ConfigurationError

DEFAULT_PENDING = ("TODO", "LATER", "WAIT", "WAITING")
DEFAULT_ACTIVE = ("DOING", "NOW", "IN-PROGRESS")
DEFAULT_COMPLETED = ("DONE", "CANCELED", "CANCELLED")

NEXT_STATE: Dict[str, str] = {
    "TODO": "DOING",
    "DOING": "DONE",
    "DONE": "TODO",
    "LATER": "NOW",
    "NOW": "DONE",
    "WAIT": "IN-PROGRESS",
    "WAITING": "IN-PROGRESS",
    "IN-PROGRESS": "DONE",
    "CANCELED": "TODO",
    "CANCELLED": "TODO",
}

_WHITESPACE = re.compile(r"\s")


def _check_keyword(keyword: str) -> None:
    if not keyword:
        raise ConfigurationError("Task keyword must not be empty")
    if _WHITESPACE.search(keyword):
        raise ConfigurationError(f"Task keyword must not contain whitespace: {keyword!r}")


@dataclass(frozen=True)
class KeywordSet:
    """
    Immutable keyword classification.

    additional keywords are caller-supplied and belong to the pending
    bucket; they are kept separately so the alternation order stays
    pending, active, additional, completed.
    """

    pending: Tuple[str, ...] = DEFAULT_PENDING
    active: Tuple[str, ...] = DEFAULT_ACTIVE
    completed: Tuple[str, ...] = DEFAULT_COMPLETED
    additional: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        seen: Dict[str, str] = {}
        for bucket, keywords in (
            ("pending", self.pending),
            ("active", self.active),
            ("completed", self.completed),
        ):
            for keyword in keywords:
                _check_keyword(keyword)
                if keyword in seen and seen[keyword] != bucket:
                    raise ConfigurationError(
                        f"Keyword {keyword!r} is in both {seen[keyword]} and {bucket}"
                    )
                seen[keyword] = bucket
        for keyword in self.additional:
            _check_keyword(keyword)

    @classmethod
    def with_additional(cls, additional: Iterable[str]) -> "KeywordSet":
        """
        Default buckets plus caller-supplied keywords.

        Additional keywords that are already built in are dropped, so the
        buckets stay disjoint.
        """
        builtin = set(DEFAULT_PENDING) | set(DEFAULT_ACTIVE) | set(DEFAULT_COMPLETED)
        extra = []
        for keyword in additional:
            keyword = keyword.strip()
            if keyword and keyword not in builtin and keyword not in extra:
                extra.append(keyword)
        return cls(additional=tuple(extra))

    @property
    def all_keywords(self) -> Tuple[str, ...]:
        """Every keyword in alternation order, duplicates removed."""
        ordered = []
        for keyword in self.pending + self.active + self.additional + self.completed:
            if keyword not in ordered:
                ordered.append(keyword)
        return tuple(ordered)

    @property
    def signature(self) -> Tuple[Tuple[str, ...], ...]:
        """Hashable identity used to key compiled patterns."""
        return (self.pending, self.active, self.additional, self.completed)

    def bucket(self, keyword: str) -> Optional[str]:
        """Return "pending", "active" or "completed" for a keyword, else None."""
        if keyword in self.completed:
            return "completed"
        if keyword in self.active:
            return "active"
        if keyword in self.pending or keyword in self.additional:
            return "pending"
        return None

    def is_completed(self, keyword: str) -> bool:
        return keyword in self.completed

    def is_known(self, keyword: str) -> bool:
        return self.bucket(keyword) is not None

    def next_state(self, keyword: str) -> str:
        """
        Deterministic successor of a state keyword.

        Built-in keywords follow NEXT_STATE; additional keywords move to
        DONE; anything unknown restarts at TODO.
        """
        if keyword in NEXT_STATE:
            return NEXT_STATE[keyword]
        if keyword in self.additional:
            return "DONE"
        return "TODO"
