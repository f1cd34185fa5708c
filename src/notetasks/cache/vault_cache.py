"""
Thread-safe in-memory task index for a vault of Markdown notes.

Design:
    Primary store    Dict[Path, CachedFile]        (tasks per file, for write-back)
    Ref index        Dict[str, Tuple[Task, Path]]  (O(1) lookup by "path:line")
    SQLite :memory:  tasks table                   (filtered queries)

One DocumentScanner (and so one set of compiled patterns) is shared by
every file. All mutations acquire _lock (threading.RLock).

Task references are "<path relative to the vault root>:<0-based line>".
"""

import logging
import sqlite3
import threading
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set, Tuple

from notetasks.errors import StaleTaskError, TaskNotFoundError
from notetasks.models.settings import ScanSettings
from notetasks.models.task import CachedFile, Task
from notetasks.parsers.task_parser import DocumentScanner
from notetasks.utils.formatting import LineFormatter

log = logging.getLogger(__name__)

NOTE_SUFFIXES = frozenset({".md", ".markdown"})

# ---------------------------------------------------------------------------
# SQLite schema
# ---------------------------------------------------------------------------

_CREATE_TASKS_TABLE = """
CREATE TABLE IF NOT EXISTS tasks (
    ref TEXT PRIMARY KEY,
    file_path TEXT NOT NULL,
    line INTEGER NOT NULL,
    state TEXT NOT NULL,
    bucket TEXT,
    completed INTEGER NOT NULL DEFAULT 0,
    priority TEXT,
    scheduled_date TEXT,
    deadline_date TEXT,
    in_code INTEGER NOT NULL DEFAULT 0,
    in_callout INTEGER NOT NULL DEFAULT 0
);
"""

_CREATE_TASKS_INDEX = """
CREATE INDEX IF NOT EXISTS idx_tasks_state ON tasks (state, completed);
"""


def read_note(path: Path) -> str:
    """Read a note without newline translation so line numbers match the file."""
    with open(path, "r", encoding="utf-8", newline="") as fh:
        return fh.read()


def write_note(path: Path, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(content)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# VaultCache
# ---------------------------------------------------------------------------

class VaultCache:
    """
    Thread-safe in-memory vault task index.

    Call initialize() once to scan the whole vault; refresh_file() re-scans a
    single note when the caller knows it changed.
    """

    def __init__(self, settings: Optional[ScanSettings] = None) -> None:
        self._lock = threading.RLock()
        self._scanner = DocumentScanner(settings)
        self._formatter = LineFormatter(self._scanner.keywords)
        self._files: Dict[Path, CachedFile] = {}
        self._tasks_by_ref: Dict[str, Tuple[Task, Path]] = {}
        self._vault_root: Optional[Path] = None
        self._exclude_dirs: Set[str] = set()
        self._db: sqlite3.Connection = sqlite3.connect(":memory:", check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.executescript(_CREATE_TASKS_TABLE + _CREATE_TASKS_INDEX)
        self._last_full_scan: Optional[datetime] = None

    @property
    def scanner(self) -> DocumentScanner:
        return self._scanner

    @property
    def vault_root(self) -> Optional[Path]:
        return self._vault_root

    # ------------------------------------------------------------------
    # Initialisation
    # ------------------------------------------------------------------

    def initialize(self, vault_root: Path, exclude_dirs: Set[str]) -> None:
        """Full vault scan. Blocks until complete."""
        self._vault_root = vault_root
        self._exclude_dirs = exclude_dirs
        log.info("Starting vault scan: %s", vault_root)
        with self._lock:
            for path in self._walk_notes(vault_root):
                self._load_file(path)
            self._last_full_scan = datetime.now()
        log.info(
            "Vault scan complete: %d files, %d tasks",
            len(self._files),
            len(self._tasks_by_ref),
        )

    # ------------------------------------------------------------------
    # Internal scanning
    # ------------------------------------------------------------------

    def _walk_notes(self, root: Path) -> Iterator[Path]:
        """Yield every note under root, respecting exclusions."""
        for path in sorted(root.rglob("*")):
            if path.suffix.lower() not in NOTE_SUFFIXES or not path.is_file():
                continue
            rel = path.relative_to(root)
            if any(part in self._exclude_dirs for part in rel.parts[:-1]):
                continue
            yield path

    def _rel(self, path: Path) -> str:
        assert self._vault_root is not None
        return path.relative_to(self._vault_root).as_posix()

    def _load_file(self, path: Path) -> None:
        """Scan a note and index it (caller holds _lock or is single-threaded)."""
        try:
            mtime = path.stat().st_mtime
            tasks = self._scanner.scan(read_note(path), self._rel(path))
        except (OSError, UnicodeDecodeError):
            log.exception("Failed to read %s", path)
            return
        self._upsert_file(CachedFile(file_path=path, tasks=tasks, mtime=mtime))

    def _drop_file_entries(self, path: Path) -> Optional[CachedFile]:
        old = self._files.pop(path, None)
        if old:
            for task in old.tasks:
                self._tasks_by_ref.pop(task.ref, None)
            self._db.execute("DELETE FROM tasks WHERE file_path = ?", (self._rel(path),))
        return old

    def _upsert_file(self, cached: CachedFile) -> None:
        path = cached.file_path
        self._drop_file_entries(path)
        self._files[path] = cached

        cursor = self._db.cursor()
        for task in cached.tasks:
            self._tasks_by_ref[task.ref] = (task, path)
            cursor.execute(
                """
                INSERT OR REPLACE INTO tasks
                (ref, file_path, line, state, bucket, completed, priority,
                 scheduled_date, deadline_date, in_code, in_callout)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.ref,
                    task.path,
                    task.line,
                    task.state,
                    self._scanner.keywords.bucket(task.state),
                    1 if task.completed else 0,
                    task.priority,
                    _iso(task.scheduled_date),
                    _iso(task.deadline_date),
                    1 if task.comment_prefix else 0,
                    1 if task.in_callout else 0,
                ),
            )
        self._db.commit()

    # ------------------------------------------------------------------
    # Public refresh
    # ------------------------------------------------------------------

    def _note_path(self, path: Path) -> Path:
        """
        Map a caller-supplied path to the indexed key for a vault note.

        Relative paths are taken from the vault root. The resolved path must
        sit inside the vault, carry a note suffix and avoid excluded folders.

        Raises:
            ValueError: the path is not a note of this vault
        """
        if self._vault_root is None:
            raise ValueError("Vault is not initialized")
        candidate = path if path.is_absolute() else self._vault_root / path
        try:
            rel = candidate.resolve().relative_to(self._vault_root.resolve())
        except ValueError:
            raise ValueError(f"'{path}' is outside the vault") from None
        if rel.suffix.lower() not in NOTE_SUFFIXES:
            raise ValueError(f"'{path}' is not a note ({', '.join(sorted(NOTE_SUFFIXES))})")
        if any(part in self._exclude_dirs for part in rel.parts[:-1]):
            raise ValueError(f"'{path}' is in an excluded folder")
        return self._vault_root / rel

    def refresh_file(self, path: Path) -> None:
        """
        Re-scan a single note if it changed since it was indexed.
        A note that no longer exists is dropped from the index.

        Raises:
            ValueError: path does not name a note inside the vault
        """
        path = self._note_path(path)
        with self._lock:
            self._refresh(path)

    def _refresh(self, path: Path) -> None:
        if not path.exists():
            if self._drop_file_entries(path):
                self._db.commit()
                log.debug("Removed deleted note %s", path)
            return

        try:
            mtime = path.stat().st_mtime
        except OSError:
            return
        existing = self._files.get(path)
        if existing and existing.mtime >= mtime:
            return
        log.debug("Refreshing %s", path)
        self._load_file(path)

    def refresh_all(self) -> None:
        """Pick up new, changed and deleted notes across the vault."""
        if self._vault_root is None:
            return
        with self._lock:
            known = set(self._files)
            for path in self._walk_notes(self._vault_root):
                known.discard(path)
                self._refresh(path)
            for path in known:
                self._refresh(path)

    # ------------------------------------------------------------------
    # Task queries
    # ------------------------------------------------------------------

    def query_tasks(
        self,
        *,
        state: Optional[str] = None,
        bucket: Optional[str] = None,
        completed: Optional[bool] = None,
        priority: Optional[str] = None,
        scheduled_before: Optional[str] = None,
        deadline_before: Optional[str] = None,
        file_path: Optional[str] = None,
        limit: int = 500,
    ) -> List[Task]:
        """
        Query tasks using the SQLite index; resolve Task objects from memory.

        Args:
            state: Comma-separated state keywords e.g. "TODO,DOING"
            bucket: "pending", "active" or "completed"
            completed: Filter on the completed flag
            priority: Comma-separated priorities e.g. "high,med"
            scheduled_before: ISO date; tasks scheduled on or before it
            deadline_before: ISO date; tasks due on or before it
            file_path: Vault-relative note path
            limit: Max results

        Returns:
            Tasks ordered by file path, then line
        """
        clauses = []
        params: list = []

        if state:
            states = [s.strip() for s in state.split(",") if s.strip()]
            clauses.append(f"state IN ({','.join('?' * len(states))})")
            params.extend(states)

        if bucket:
            clauses.append("bucket = ?")
            params.append(bucket)

        if completed is not None:
            clauses.append("completed = ?")
            params.append(1 if completed else 0)

        if priority:
            priorities = [p.strip() for p in priority.split(",") if p.strip()]
            clauses.append(f"priority IN ({','.join('?' * len(priorities))})")
            params.extend(priorities)

        # Stored values are full ISO timestamps; compare against the end of the day
        if scheduled_before:
            clauses.append("scheduled_date IS NOT NULL AND scheduled_date <= ?")
            params.append(f"{scheduled_before}T23:59:59")

        if deadline_before:
            clauses.append("deadline_date IS NOT NULL AND deadline_date <= ?")
            params.append(f"{deadline_before}T23:59:59")

        if file_path:
            clauses.append("file_path = ?")
            params.append(file_path)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = f"SELECT ref FROM tasks {where} ORDER BY file_path, line LIMIT ?"
        params.append(limit)

        with self._lock:
            rows = self._db.execute(sql, params).fetchall()
            tasks = []
            for row in rows:
                entry = self._tasks_by_ref.get(row["ref"])
                if entry:
                    tasks.append(entry[0])
            return tasks

    def get_task(self, ref: str) -> Optional[Tuple[Task, Path]]:
        """Return (Task, file_path) or None."""
        with self._lock:
            return self._tasks_by_ref.get(ref)

    def scan_text(self, text: str, path: str = "") -> List[Task]:
        """Scan text that is not part of the vault with the shared scanner."""
        return self._scanner.scan(text, path)

    # ------------------------------------------------------------------
    # Task mutations (write-through to disk)
    # ------------------------------------------------------------------

    def set_task_state(
        self,
        ref: str,
        new_state: Optional[str] = None,
        *,
        keep_priority: bool = True,
    ) -> Task:
        """
        Change a task's state keyword and write the line back to disk.

        new_state=None moves the task to its default next state. Only the
        task's own line is rewritten; the note is then re-scanned.

        Raises:
            TaskNotFoundError: ref is not indexed
            ValueError: new_state is not a configured keyword
            StaleTaskError: the line on disk changed since it was scanned
        """
        with self._lock:
            entry = self._tasks_by_ref.get(ref)
            if not entry:
                raise TaskNotFoundError(f"Task '{ref}' not found")
            task, file_path = entry

            keywords = self._scanner.keywords
            if new_state is None:
                new_state = keywords.next_state(task.state)
            if not keywords.is_known(new_state):
                raise ValueError(f"Unknown task state '{new_state}'")

            new_line, _ = self._formatter.format(task, new_state, keep_priority)

            lines = read_note(file_path).split("\n")
            if task.line >= len(lines):
                raise StaleTaskError(f"Task '{ref}' is past the end of {task.path}")
            current = lines[task.line]
            ending = "\r" if current.endswith("\r") else ""
            if current[: len(current) - len(ending)] != task.raw_text:
                raise StaleTaskError(f"Task '{ref}' changed on disk; refresh and retry")

            lines[task.line] = new_line + ending
            write_note(file_path, "\n".join(lines))
            self._load_file(file_path)

            refreshed = self._tasks_by_ref.get(ref)
            if refreshed:
                return refreshed[0]
            return replace(task, raw_text=new_line, state=new_state)

    # ------------------------------------------------------------------
    # Status / diagnostics
    # ------------------------------------------------------------------

    def status(self) -> dict:
        with self._lock:
            return {
                "files_indexed": len(self._files),
                "tasks_indexed": len(self._tasks_by_ref),
                "last_full_scan": self._last_full_scan.isoformat() if self._last_full_scan else None,
                "vault_root": str(self._vault_root) if self._vault_root else None,
                "exclude_dirs": sorted(self._exclude_dirs),
                "keywords": list(self._scanner.keywords.all_keywords),
            }
