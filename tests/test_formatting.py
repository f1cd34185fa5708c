"""
Tests for utils/formatting.py.

Covers:
- Line regeneration for plain, checkbox, callout and comment lines
- Priority handling
- Round-trip: scan → format → scan keeps state, text and priority,
  including task lines inside code fences and block comments
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from notetasks.parsers.keywords import KeywordSet
from notetasks.parsers.task_parser import DocumentScanner
from notetasks.utils.formatting import LineFormatter, render_checkbox


@pytest.fixture(scope="module")
def scanner():
    return DocumentScanner()


@pytest.fixture(scope="module")
def formatter():
    return LineFormatter(KeywordSet())


def _only(scanner, text):
    tasks = scanner.scan(text)
    assert len(tasks) == 1
    return tasks[0]


class TestRenderCheckbox:
    def test_check(self):
        assert render_checkbox("- [ ] ", True) == "- [x] "

    def test_uncheck_capital(self):
        assert render_checkbox("*  [X]\t", False) == "*  [ ]\t"


class TestFormat:
    def test_plain(self, scanner, formatter):
        t = _only(scanner, "TODO write tests")
        assert formatter.format(t, "DOING") == ("DOING write tests", False)

    def test_completed_flag_from_state(self, scanner, formatter):
        t = _only(scanner, "- DOING x")
        new_line, completed = formatter.format(t, "CANCELED")
        assert new_line == "- CANCELED x"
        assert completed is True

    def test_checkbox_glyph_follows_state(self, scanner, formatter):
        t = _only(scanner, "  - [ ] TODO [#A] write tests")
        assert formatter.format(t, "DONE").new_line == "  - [x] DONE [#A] write tests"
        t = _only(scanner, "- [x] DONE y")
        assert formatter.format(t, "TODO").new_line == "- [ ] TODO y"

    def test_drop_priority(self, scanner, formatter):
        t = _only(scanner, "TODO [#C] later")
        assert formatter.format(t, "DONE", keep_priority=False).new_line == "DONE later"

    def test_priority_moved_before_text(self, scanner, formatter):
        t = _only(scanner, "TODO fix it [#A]")
        assert formatter.format(t, "DOING").new_line == "DOING [#A] fix it"

    def test_empty_body_keeps_separator(self, scanner, formatter):
        t = _only(scanner, "TODO ")
        assert formatter.format(t, "DONE").new_line == "DONE "

    def test_callout_header_preserved(self, scanner, formatter):
        t = _only(scanner, "> [!todo]- - [ ] TODO x")
        assert formatter.format(t, "DONE").new_line == "> [!todo]- - [x] DONE x"

    def test_comment_prefix_and_tail(self, scanner, formatter):
        t = _only(scanner, "```c\n  /*  TODO free it */\n```")
        assert formatter.format(t, "DONE").new_line == "  /*  DONE free it */"

    def test_inline_comment(self, scanner, formatter):
        t = _only(scanner, "```python\nx = 1  # TODO rename\n```")
        assert formatter.format(t, "DONE").new_line == "x = 1  # DONE rename"

    def test_next_line(self, scanner, formatter):
        t = _only(scanner, "LATER read")
        assert formatter.next_line(t) == ("NOW read", False)

    def test_additional_keyword_is_not_completed(self, scanner):
        formatter = LineFormatter(KeywordSet.with_additional(["FIXME"]))
        t = _only(scanner, "TODO x")
        assert formatter.format(t, "FIXME") == ("FIXME x", False)


class TestRoundTrip:
    LINES = [
        "TODO write tests",
        "TODO [#B] ship it",
        "  - [ ] WAITING on [#A] review",
        "1) DOING number one",
        "- [x] DONE TODO twice",
        "> TODO quoted",
        "> [!note] - LATER noted [#C]",
        "TODO ",
    ]

    @pytest.mark.parametrize("line", LINES)
    def test_every_state_round_trips(self, scanner, formatter, line):
        original = _only(scanner, line)
        for state in KeywordSet().all_keywords:
            new_line, completed = formatter.format(original, state)
            rescanned = _only(scanner, new_line)
            assert rescanned.state == state
            assert rescanned.text == original.text
            assert rescanned.priority == original.priority
            assert rescanned.completed == completed

    # (text before the line, task line, text after the line)
    FENCED = [
        ("```js\n", "// TODO x [#A]", "\n```"),
        ("```c\n", "int x; /* TODO y */", "\n```"),
        ("```java\n/**\n", " * - [ ] TODO z", "\n */\n```"),
        ("```python\n'''\n", "TODO w [#C]", "\n'''\n```"),
    ]

    @pytest.mark.parametrize("before, line, after", FENCED)
    def test_fenced_line_round_trips(self, scanner, formatter, before, line, after):
        original = _only(scanner, before + line + after)
        assert original.line == before.count("\n")
        for state in KeywordSet().all_keywords:
            new_line, completed = formatter.format(original, state)
            rescanned = _only(scanner, before + new_line + after)
            assert rescanned.state == state
            assert rescanned.text == original.text
            assert rescanned.priority == original.priority
            assert rescanned.completed == completed
            assert rescanned.comment_prefix == original.comment_prefix
            assert rescanned.trailing_comment_end == original.trailing_comment_end
