"""
Comment syntax catalog for fenced code blocks.

Each language describes its comment markers as regex fragments. Fragments
are not line matchers: they match only the marker itself ("//", "/*",
"#") and carry no anchors or capture groups. parsers.patterns composes
them into full test/capture expressions.

Lookups are case-insensitive and accept aliases, so a fence tagged ```js
or ```YML still gets comment-aware scanning.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Optional, Tuple

from notetasks.errors import ConfigurationError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LanguageCommentPatterns:
    """
    Comment marker fragments for one language.

    single_line       opener of a line comment            "//", "#"
    multi_line_start  opener of a block comment           "/\\*+"
    multi_line_end    closer of a block comment           "\\*/"
    continuation      gutter of a block comment body line "\\*"
    inline            opener of a comment after code      "//|/\\*"
    """

    single_line: Optional[str] = None
    multi_line_start: Optional[str] = None
    multi_line_end: Optional[str] = None
    continuation: Optional[str] = None
    inline: Optional[str] = None

    @property
    def has_multi_line(self) -> bool:
        return bool(self.multi_line_start and self.multi_line_end)

    def fragments(self) -> Iterator[Tuple[str, str]]:
        """Yield (field name, fragment) for every fragment that is set."""
        for name in ("single_line", "multi_line_start", "multi_line_end", "continuation", "inline"):
            value = getattr(self, name)
            if value:
                yield name, value


@dataclass(frozen=True)
class LanguageDefinition:
    """A language name, its aliases and its comment markers."""

    name: str
    patterns: LanguageCommentPatterns
    aliases: Tuple[str, ...] = field(default_factory=tuple)


C_STYLE = LanguageCommentPatterns(
    single_line=r"//",
    multi_line_start=r"/\*+",
    multi_line_end=r"\*/",
    continuation=r"\*",
    inline=r"//|/\*+",
)

HASH_STYLE = LanguageCommentPatterns(
    single_line=r"#",
    inline=r"#",
)

DEFAULT_LANGUAGES: Tuple[LanguageDefinition, ...] = (
    LanguageDefinition("c", C_STYLE),
    LanguageDefinition("cpp", C_STYLE, ("c++", "cc", "cxx")),
    LanguageDefinition(
        "csharp",
        LanguageCommentPatterns(
            single_line=r"///?",
            multi_line_start=r"/\*+",
            multi_line_end=r"\*/",
            continuation=r"\*",
            inline=r"//|/\*+",
        ),
        ("cs", "c#"),
    ),
    LanguageDefinition("dockerfile", HASH_STYLE, ("docker",)),
    LanguageDefinition("go", C_STYLE, ("golang",)),
    LanguageDefinition(
        "ini",
        LanguageCommentPatterns(single_line=r"[;#]", inline=r"[;#]"),
    ),
    LanguageDefinition("java", C_STYLE),
    LanguageDefinition("javascript", C_STYLE, ("js", "jsx", "mjs")),
    LanguageDefinition("kotlin", C_STYLE, ("kt",)),
    LanguageDefinition(
        "powershell",
        LanguageCommentPatterns(
            single_line=r"#",
            multi_line_start=r"<#",
            multi_line_end=r"#>",
            inline=r"#",
        ),
        ("ps1", "pwsh"),
    ),
    LanguageDefinition(
        "python",
        LanguageCommentPatterns(
            single_line=r"#",
            multi_line_start=r"'''|\"\"\"",
            multi_line_end=r"'''|\"\"\"",
            inline=r"#",
        ),
        ("py",),
    ),
    LanguageDefinition("r", HASH_STYLE),
    LanguageDefinition(
        "ruby",
        LanguageCommentPatterns(
            single_line=r"#",
            multi_line_start=r"=begin",
            multi_line_end=r"=end",
            inline=r"#",
        ),
        ("rb",),
    ),
    LanguageDefinition(
        "rust",
        LanguageCommentPatterns(
            single_line=r"//[/!]?",
            multi_line_start=r"/\*[*!]?",
            multi_line_end=r"\*/",
            continuation=r"\*",
            inline=r"//|/\*",
        ),
        ("rs",),
    ),
    LanguageDefinition("shell", HASH_STYLE, ("sh", "bash", "zsh")),
    LanguageDefinition(
        "sql",
        LanguageCommentPatterns(
            single_line=r"--|#",
            multi_line_start=r"/\*+",
            multi_line_end=r"\*/",
            continuation=r"\*",
            inline=r"--|/\*",
        ),
    ),
    LanguageDefinition(
        "swift",
        LanguageCommentPatterns(
            single_line=r"///?",
            multi_line_start=r"/\*+",
            multi_line_end=r"\*/",
            continuation=r"\*",
            inline=r"//|/\*+",
        ),
    ),
    LanguageDefinition("toml", HASH_STYLE),
    LanguageDefinition("typescript", C_STYLE, ("ts", "tsx")),
    LanguageDefinition("yaml", HASH_STYLE, ("yml",)),
)


class LanguageRegistry:
    """
    Lookup table from language name or alias to its LanguageDefinition.

    Build it once (register everything up front), then share it: resolve()
    never mutates.
    """

    def __init__(self, languages: Iterable[LanguageDefinition] = ()) -> None:
        self._languages: Dict[str, LanguageDefinition] = {}
        self._aliases: Dict[str, LanguageDefinition] = {}
        for language in languages:
            self.register(language)

    @classmethod
    def default(cls) -> "LanguageRegistry":
        """Registry preloaded with DEFAULT_LANGUAGES."""
        return cls(DEFAULT_LANGUAGES)

    def register(self, language: LanguageDefinition) -> None:
        """
        Add a language. Every fragment is compiled once here so a broken
        fragment fails at configuration time instead of silently matching
        nothing later.
        """
        for name, fragment in language.patterns.fragments():
            try:
                re.compile(fragment)
            except re.error as e:
                raise ConfigurationError(
                    f"Invalid {name} pattern for language {language.name!r}: {fragment!r} ({e})"
                ) from e

        self._languages[language.name.lower()] = language
        for alias in language.aliases:
            self._aliases[alias.lower()] = language

    def resolve(self, identifier: Optional[str]) -> Optional[LanguageDefinition]:
        """Return the language for a name or alias (case-insensitive), else None."""
        if not identifier:
            return None
        key = identifier.strip().lower()
        language = self._languages.get(key) or self._aliases.get(key)
        if language is None:
            log.debug("No comment patterns registered for language %r", identifier)
        return language

    def names(self) -> Tuple[str, ...]:
        return tuple(sorted(self._languages))

    def __contains__(self, identifier: str) -> bool:
        key = identifier.strip().lower()
        return key in self._languages or key in self._aliases

    def __len__(self) -> int:
        return len(self._languages)
