from .task import Task, CachedFile, Priority, PRIORITY_BY_LETTER, LETTER_BY_PRIORITY
from .settings import ScanSettings, LanguageCommentSupport

__all__ = [
    "Task",
    "CachedFile",
    "Priority",
    "PRIORITY_BY_LETTER",
    "LETTER_BY_PRIORITY",
    "ScanSettings",
    "LanguageCommentSupport",
]
