"""
Scanner configuration.

ScanSettings is the configuration object handed to DocumentScanner. It is a
pydantic model so the same shape can be validated when it arrives from the
environment, an MCP tool call or a REST body.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


def _split_list(raw: str) -> List[str]:
    """Parse a comma-separated environment value into a list."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


class LanguageCommentSupport(BaseModel):
    """Controls comment-aware task matching inside fenced code blocks."""

    enabled: bool = True
    # None means every registered language is allowed
    languages: Optional[List[str]] = None

    @field_validator("languages")
    @classmethod
    def _normalize_languages(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return [v.strip().lower() for v in value if v and v.strip()]


class ScanSettings(BaseModel):
    """
    Options that shape which lines count as tasks.

    additional_keywords are merged into the pending bucket once, when the
    scanner is built, and never recomputed per document.
    """

    additional_keywords: List[str] = Field(default_factory=list)
    include_code_blocks: bool = True
    include_callout_blocks: bool = True
    language_comment_support: LanguageCommentSupport = Field(
        default_factory=LanguageCommentSupport
    )

    @field_validator("additional_keywords")
    @classmethod
    def _normalize_keywords(cls, value: List[str]) -> List[str]:
        seen: List[str] = []
        for keyword in value:
            keyword = keyword.strip()
            if keyword and keyword not in seen:
                seen.append(keyword)
        return seen

    @classmethod
    def from_env(cls) -> "ScanSettings":
        """
        Build settings from environment variables.

        TASK_KEYWORDS           comma-separated additional keywords
        INCLUDE_CODE_BLOCKS     true/false (default true)
        INCLUDE_CALLOUT_BLOCKS  true/false (default true)
        LANGUAGE_COMMENTS       true/false (default true)
        COMMENT_LANGUAGES       comma-separated allow-list (default: all)
        """
        languages_raw = os.environ.get("COMMENT_LANGUAGES", "")
        return cls(
            additional_keywords=_split_list(os.environ.get("TASK_KEYWORDS", "")),
            include_code_blocks=_env_flag("INCLUDE_CODE_BLOCKS", True),
            include_callout_blocks=_env_flag("INCLUDE_CALLOUT_BLOCKS", True),
            language_comment_support=LanguageCommentSupport(
                enabled=_env_flag("LANGUAGE_COMMENTS", True),
                languages=_split_list(languages_raw) if languages_raw.strip() else None,
            ),
        )
