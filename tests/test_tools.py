"""
Tests for tools/task_tools.py.

Uses a real VaultCache backed by a temporary vault on disk.
Exercises the MCP tool functions directly (bypasses transport).
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from notetasks.cache.vault_cache import VaultCache
from notetasks.parsers.task_parser import scan_content
from notetasks.tools.task_tools import register_task_tools, task_to_dict


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()

    (vault / "today.md").write_text(
        "## Today\n\n"
        "- [ ] TODO [#B] call dentist\n"
        "  DEADLINE: <2026-02-28 Sat 09:00>\n"
        "- DOING review PR\n"
        "- [x] DONE file taxes\n",
        encoding="utf-8",
    )

    project = vault / "projects"
    project.mkdir()
    (project / "site.md").write_text(
        "```js\n"
        "// LATER drop jquery\n"
        "```\n",
        encoding="utf-8",
    )

    return vault


class _FakeMCP:
    """Minimal fake to capture tool registrations."""

    def __init__(self):
        self._tools = {}

    def tool(self, *args, **kwargs):
        """Decorator that records functions by name."""
        def decorator(fn):
            self._tools[fn.__name__] = fn
            return fn
        return decorator

    def get(self, name: str):
        return self._tools[name]


@pytest.fixture
def setup(tmp_path):
    vault = _make_vault(tmp_path)
    cache = VaultCache()
    cache.initialize(vault, set())

    mcp = _FakeMCP()
    register_task_tools(mcp, cache)

    return mcp, cache, vault


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

class TestTaskToDict:
    def test_fields(self):
        task = scan_content("- [ ] TODO [#A] x\nSCHEDULED: <2026-01-05>", "a.md")[0]
        d = task_to_dict(task)
        assert d["ref"] == "a.md:0"
        assert d["state"] == "TODO"
        assert d["priority"] == "high"
        assert d["scheduled"] == "2026-01-05T00:00:00"
        assert d["deadline"] is None
        assert d["list_marker"] == "- [ ] "
        assert d["callout_collapsible"] is False
        json.dumps(d)


# ---------------------------------------------------------------------------
# Task tools
# ---------------------------------------------------------------------------

class TestToolRegistration:
    def test_all_tools_registered(self, setup):
        mcp, cache, vault = setup
        assert set(mcp._tools) == {
            "task_list",
            "task_get",
            "task_set_state",
            "task_scan_text",
            "cache_refresh",
            "cache_status",
        }


class TestTaskList:
    def test_list_all(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_list")())
        assert [t["ref"] for t in data] == [
            "projects/site.md:1",
            "today.md:2",
            "today.md:4",
            "today.md:5",
        ]

    def test_list_open(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_list")(completed=False))
        assert {t["state"] for t in data} == {"TODO", "DOING", "LATER"}

    def test_list_by_deadline(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_list")(deadline_before="2026-02-28"))
        assert [t["text"] for t in data] == ["call dentist"]
        assert data[0]["deadline"] == "2026-02-28T09:00:00"

    def test_list_by_priority(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_list")(priority="med"))
        assert len(data) == 1


class TestTaskGet:
    def test_get_existing(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_get")(ref="projects/site.md:1"))
        assert data["state"] == "LATER"
        assert data["comment_prefix"] == "// "

    def test_get_nonexistent(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_get")(ref="today.md:0"))
        assert "error" in data


class TestTaskSetState:
    def test_set_state(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_set_state")(ref="today.md:4", state="DONE"))
        assert data["state"] == "DONE"
        assert data["completed"] is True
        assert "- DONE review PR" in (vault / "today.md").read_text(encoding="utf-8")

    def test_advance_state(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_set_state")(ref="today.md:2"))
        assert data["state"] == "DOING"
        assert data["priority"] == "med"

    def test_unknown_state(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_set_state")(ref="today.md:2", state="NOPE"))
        assert "error" in data

    def test_missing_ref(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_set_state")(ref="missing.md:0", state="DONE"))
        assert "error" in data

    def test_stale(self, setup):
        mcp, cache, vault = setup
        (vault / "today.md").write_text("nothing here\n", encoding="utf-8")
        data = json.loads(mcp.get("task_set_state")(ref="today.md:2", state="DONE"))
        assert "error" in data


class TestScanText:
    def test_scan_text(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("task_scan_text")(text="x\n> NOW ping\n", path="clip"))
        assert len(data) == 1
        assert data[0]["ref"] == "clip:1"
        assert data[0]["callout_type"] == "quote"


class TestCacheTools:
    def test_cache_status(self, setup):
        mcp, cache, vault = setup
        data = json.loads(mcp.get("cache_status")())
        assert data["files_indexed"] == 2
        assert data["tasks_indexed"] == 4

    def test_cache_refresh_all(self, setup):
        mcp, cache, vault = setup
        (vault / "later.md").write_text("WAIT on vendor\n", encoding="utf-8")
        data = json.loads(mcp.get("cache_refresh")())
        assert data["tasks_indexed"] == 5

    def test_cache_refresh_one_file(self, setup):
        mcp, cache, vault = setup
        (vault / "later.md").write_text("WAIT on vendor\n", encoding="utf-8")
        data = json.loads(mcp.get("cache_refresh")(file_path="later.md"))
        assert data["files_indexed"] == 3

    def test_cache_refresh_outside_vault(self, setup, tmp_path):
        mcp, cache, vault = setup
        (tmp_path / "outside.md").write_text("TODO not mine\n", encoding="utf-8")
        data = json.loads(mcp.get("cache_refresh")(file_path="../outside.md"))
        assert "error" in data
        assert cache.status()["files_indexed"] == 2
