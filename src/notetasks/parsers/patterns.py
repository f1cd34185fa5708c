"""
Regex composition for task lines.

For a KeywordSet and a syntactic context this module builds a pair of
compiled patterns:

    test     cheap detector: does this line start a task?
    capture  field extractor with named groups

Contexts:

    plain     ^ indent [list marker] KEYWORD \\s
    callout   ^ indent > [> ...] [[!type]] [list marker] KEYWORD \\s
    language  ^ indent COMMENT-PREFIX [list marker] KEYWORD \\s text [comment end] $

Capture groups (where the context has them): indent, quote, callout,
comment, single, open, inline, cont, marker, state, text, tail.

Compilation is the expensive part, so RegexComposer memoizes every pair by
(keyword-set signature, language, context). Build one composer per
configuration and share it.
"""

import logging
import re
import threading
from typing import Dict, Literal, NamedTuple, Optional, Pattern, Tuple

from notetasks.errors import ConfigurationError
from notetasks.parsers.keywords import KeywordSet
from notetasks.parsers.languages import LanguageDefinition

log = logging.getLogger(__name__)

Context = Literal["plain", "callout", "language"]

PLAIN: Context = "plain"
CALLOUT: Context = "callout"
LANGUAGE: Context = "language"

# Checkbox first so "- [ ]" is never split into a "-" bullet plus text.
LIST_MARKER = (
    r"(?:[-*+][ \t]*\[[ xX]\][ \t]*"
    r"|(?:[-*+]|\d+[.)]|[A-Za-z][.)]|\([A-Za-z0-9]+\))[ \t]*)"
)

# Secondary checks applied after a capture
CHECKBOX_PATTERN = re.compile(r"^[-*+][ \t]*\[([ xX])\]")
PRIORITY_PATTERN = re.compile(r"[ \t]*\[#([ABC])\][ \t]*")

# Quote run and optional "[!type]" header, optionally foldable with - or +
_QUOTE = r"(?:>[ \t]*)+"
_CALLOUT_HEADER = r"\[![ \t]*{type}[ \t]*\][-+]?[ \t]*"


class PatternPair(NamedTuple):
    test: Pattern[str]
    capture: Pattern[str]


def keyword_alternation(keywords: KeywordSet) -> str:
    """
    Escaped keywords joined in declaration order.

    The first alternative that is followed by whitespace wins, so earlier
    keywords take precedence over later ones sharing a prefix.
    """
    return "|".join(re.escape(k) for k in keywords.all_keywords)


def _compile(source: str, what: str) -> Pattern[str]:
    try:
        return re.compile(source)
    except re.error as e:
        raise ConfigurationError(f"Could not compile {what} pattern: {e}") from e


def _plain_sources(escaped: str) -> Tuple[str, str]:
    test = rf"^[ \t]*(?:{LIST_MARKER})?(?:{escaped})\s+"
    capture = rf"^(?P<indent>[ \t]*)(?P<marker>{LIST_MARKER})?(?P<state>{escaped})\s+"
    return test, capture


def _callout_sources(escaped: str) -> Tuple[str, str]:
    header_test = _CALLOUT_HEADER.format(type=r"[^\]]+?")
    header_capture = _CALLOUT_HEADER.format(type=r"(?P<callout>[^\]]+?)")
    test = rf"^[ \t]*{_QUOTE}(?:{header_test})?(?:{LIST_MARKER})?(?:{escaped})\s+"
    capture = (
        rf"^(?P<indent>[ \t]*)(?P<quote>{_QUOTE}(?:{header_capture})?)"
        rf"(?P<marker>{LIST_MARKER})?(?P<state>{escaped})\s+"
    )
    return test, capture


def _comment_alternatives(language: LanguageDefinition, named: bool) -> str:
    """
    One alternation over the language's comment openers.

    Order matters: line, block-open and inline openers are tried before the
    block-continuation gutter, which may match the empty string.
    """
    patterns = language.patterns

    def group(name: str, body: str) -> str:
        return f"(?P<{name}>{body})" if named else f"(?:{body})"

    alternatives = []
    if patterns.single_line:
        alternatives.append(group("single", rf"(?:{patterns.single_line})[ \t]*"))
    if patterns.multi_line_start:
        alternatives.append(group("open", rf"(?:{patterns.multi_line_start})[ \t]*"))
    if patterns.inline:
        alternatives.append(group("inline", rf"\S.*?[ \t](?:{patterns.inline})[ \t]*"))
    if patterns.has_multi_line:
        gutter = rf"(?:{patterns.continuation})?[ \t]*" if patterns.continuation else ""
        alternatives.append(group("cont", gutter))

    if not alternatives:
        raise ConfigurationError(f"Language {language.name!r} defines no comment markers")
    return "|".join(alternatives)


def _language_sources(escaped: str, language: LanguageDefinition) -> Tuple[str, str]:
    test_comments = _comment_alternatives(language, named=False)
    capture_comments = _comment_alternatives(language, named=True)

    end = language.patterns.multi_line_end
    tail = rf"(?P<tail>[ \t]*(?:{end})[ \t]*)?" if language.patterns.has_multi_line else ""

    test = rf"^[ \t]*(?:{test_comments})(?:{LIST_MARKER})?(?:{escaped})\s+"
    capture = (
        rf"^(?P<indent>[ \t]*)(?P<comment>{capture_comments})"
        rf"(?P<marker>{LIST_MARKER})?(?P<state>{escaped})\s+"
        rf"(?P<text>.*?){tail}$"
    )
    return test, capture


class RegexComposer:
    """
    Builds and memoizes PatternPairs.

    compose() is safe to call from several threads; each distinct
    (keywords, language, context) combination is compiled exactly once.
    """

    def __init__(self) -> None:
        self._cache: Dict[tuple, PatternPair] = {}
        self._lock = threading.Lock()

    def compose(
        self,
        keywords: KeywordSet,
        language: Optional[LanguageDefinition],
        context: Context,
    ) -> PatternPair:
        """
        Return the test/capture pair for a context.

        language is required for the "language" context and ignored for the
        others. Raises ConfigurationError if the patterns cannot be built.
        """
        if context == LANGUAGE and language is None:
            raise ConfigurationError("The language context needs a language definition")
        if context not in (PLAIN, CALLOUT, LANGUAGE):
            raise ConfigurationError(f"Unknown pattern context: {context!r}")

        key = (keywords.signature, language if context == LANGUAGE else None, context)
        with self._lock:
            pair = self._cache.get(key)
            if pair is not None:
                return pair

            escaped = keyword_alternation(keywords)
            if not escaped:
                raise ConfigurationError("At least one task keyword is required")

            if context == PLAIN:
                test_src, capture_src = _plain_sources(escaped)
            elif context == CALLOUT:
                test_src, capture_src = _callout_sources(escaped)
            else:
                test_src, capture_src = _language_sources(escaped, language)

            label = f"{context}" + (f"/{language.name}" if context == LANGUAGE else "")
            pair = PatternPair(
                test=_compile(test_src, f"{label} test"),
                capture=_compile(capture_src, f"{label} capture"),
            )
            log.debug("Compiled %s task patterns", label)
            self._cache[key] = pair
            return pair

    def __len__(self) -> int:
        return len(self._cache)
