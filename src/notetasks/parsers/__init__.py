from .keywords import KeywordSet, NEXT_STATE
from .languages import LanguageCommentPatterns, LanguageDefinition, LanguageRegistry, DEFAULT_LANGUAGES
from .patterns import RegexComposer, PatternPair
from .task_parser import DocumentScanner, scan_content, scan_file

__all__ = [
    "KeywordSet",
    "NEXT_STATE",
    "LanguageCommentPatterns",
    "LanguageDefinition",
    "LanguageRegistry",
    "DEFAULT_LANGUAGES",
    "RegexComposer",
    "PatternPair",
    "DocumentScanner",
    "scan_content",
    "scan_file",
]
