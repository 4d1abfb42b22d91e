"""
Key-value State Store for certprep.

Provides portable persistence for:
- Session history (most recent first)
- Per-domain and per-question performance
- Bookmarked and missed question ids
- Learner preferences (dark mode, exam date, study plan)

Backends:
- MemoryBackend: process-local dict, for tests and ephemeral runs
- JsonFileBackend: one JSON document, e.g. ~/.certprep/performance.json
- SqliteBackend: key/value table, e.g. ~/.certprep/performance.db

Values are JSON-encodable structures. ``set_many`` is atomic on every
backend so one aggregate update is never half-visible after a restart.
"""

from __future__ import annotations

import json
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import date
from pathlib import Path
from typing import Any, TypeVar

from loguru import logger

from certprep.core.models import (
    AggregatePerformance,
    DomainTally,
    QuestionStat,
    SessionResult,
    deserialize_ids,
    serialize_ids,
)

T = TypeVar("T")

# Keys (prefixed by the store)
SESSION_HISTORY_KEY = "sessionHistory"
DOMAIN_PERFORMANCE_KEY = "domainPerformance"
QUESTION_STATS_KEY = "questionStats"
BOOKMARKED_KEY = "bookmarked"
INCORRECT_KEY = "incorrect"
DARK_MODE_KEY = "darkMode"
EXAM_DATE_KEY = "examDate"
STUDY_PLAN_KEY = "studyPlan"


# =============================================================================
# Backends
# =============================================================================


class KeyValueBackend(ABC):
    """Durable key-value storage for JSON-encodable values."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value, or ``default`` when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store one value."""

    @abstractmethod
    def set_many(self, items: Mapping[str, Any]) -> None:
        """Store several values in one atomic write."""


class MemoryBackend(KeyValueBackend):
    """In-memory map. Values are JSON round-tripped to match durable backends."""

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return json.loads(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def set_many(self, items: Mapping[str, Any]) -> None:
        encoded = {key: json.dumps(value) for key, value in items.items()}
        self._data.update(encoded)

    def put_raw(self, key: str, text: str) -> None:
        """Store an already-encoded value verbatim."""
        self._data[key] = text


class JsonFileBackend(KeyValueBackend):
    """
    All keys in a single JSON document.

    The document is cached after the first read. Writes go to a temporary
    file in the same directory followed by ``os.replace``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._cache: dict[str, Any] | None = None

    def _read(self) -> dict[str, Any]:
        if self._cache is not None:
            return self._cache

        data: dict[str, Any] = {}
        if self.path.exists():
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                if isinstance(loaded, dict):
                    data = loaded
                else:
                    logger.warning(f"Ignoring {self.path}: top level is not an object")
            except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read {self.path}, starting empty: {e}")

        self._cache = data
        return data

    def _write(self, data: dict[str, Any]) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        updated = dict(self._read())
        updated.update(items)
        self._write(updated)
        self._cache = updated


class SqliteBackend(KeyValueBackend):
    """Key/value table in a SQLite database, values stored as JSON text."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        try:
            self._init_schema()
        except sqlite3.DatabaseError as e:
            self._set_aside(e)
            self._init_schema()

    def _set_aside(self, error: sqlite3.DatabaseError) -> None:
        """Move an unreadable database out of the way and start a new one."""
        self.close()
        corrupt_path = self.db_path.with_name(f"{self.db_path.name}.corrupt")
        logger.warning(
            f"Could not open {self.db_path} ({error}), moving it to {corrupt_path} "
            f"and starting empty"
        )
        os.replace(self.db_path, corrupt_path)

    @property
    def conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
        return self._conn

    def _init_schema(self) -> None:
        with self.conn:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

    def get(self, key: str, default: Any = None) -> Any:
        row = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: Mapping[str, Any]) -> None:
        rows = [(key, json.dumps(value)) for key, value in items.items()]
        with self.conn:
            self.conn.executemany(
                "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
                rows,
            )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None


# =============================================================================
# Performance Store
# =============================================================================


class PerformanceStore:
    """
    Owner of AggregatePerformance.

    ``load()`` reads every key once at startup; a value that cannot be
    read or decoded falls back to its default with a warning, so a
    corrupt store never blocks startup. History and stats entries are
    decoded one at a time, so a bad entry costs only itself and the next
    flush keeps the rest. ``flush()`` writes all aggregate
    keys in one atomic ``set_many``.
    """

    def __init__(self, backend: KeyValueBackend, key_prefix: str = "certprep_"):
        self.backend = backend
        self.key_prefix = key_prefix
        self.performance = AggregatePerformance()

    def _key(self, name: str) -> str:
        return f"{self.key_prefix}{name}"

    def _read(self, name: str, decode: Callable[[Any], T], default: Callable[[], T]) -> T:
        key = self._key(name)
        try:
            raw = self.backend.get(key)
        except (OSError, sqlite3.Error, json.JSONDecodeError) as e:
            logger.warning(f"Could not read '{key}', using default: {e}")
            return default()
        if raw is None:
            return default()
        try:
            return decode(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Stored value for '{key}' is corrupt, using default: {e}")
            return default()

    def _decode_items(self, name: str, raw: Any, decode_item: Callable[[Any], T]) -> list[T]:
        """Decode a stored list item by item, dropping entries that do not decode."""
        if not isinstance(raw, list):
            raise TypeError(f"expected a list, got {type(raw).__name__}")
        items = []
        for position, item in enumerate(raw):
            try:
                items.append(decode_item(item))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping corrupt entry #{position} of '{self._key(name)}': {e}")
        return items

    def _decode_entries(
        self,
        name: str,
        raw: Any,
        decode_key: Callable[[Any], Any],
        decode_value: Callable[[Any], T],
    ) -> dict[Any, T]:
        """Decode a stored object entry by entry, dropping entries that do not decode."""
        if not isinstance(raw, dict):
            raise TypeError(f"expected an object, got {type(raw).__name__}")
        entries = {}
        for key, value in raw.items():
            try:
                entries[decode_key(key)] = decode_value(value)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping corrupt entry {key!r} of '{self._key(name)}': {e}")
        return entries

    def load(self) -> AggregatePerformance:
        """Load aggregate performance from the backend."""
        self.performance = AggregatePerformance(
            session_history=self._read(
                SESSION_HISTORY_KEY,
                lambda raw: self._decode_items(SESSION_HISTORY_KEY, raw, SessionResult.from_dict),
                list,
            ),
            domain_stats=self._read(
                DOMAIN_PERFORMANCE_KEY,
                lambda raw: self._decode_entries(
                    DOMAIN_PERFORMANCE_KEY, raw, str, DomainTally.from_dict
                ),
                dict,
            ),
            question_stats=self._read(
                QUESTION_STATS_KEY,
                lambda raw: self._decode_entries(
                    QUESTION_STATS_KEY, raw, int, QuestionStat.from_dict
                ),
                dict,
            ),
            bookmarked_ids=self._read(BOOKMARKED_KEY, deserialize_ids, set),
            missed_ids=self._read(INCORRECT_KEY, deserialize_ids, set),
        )
        logger.info(
            f"Loaded performance: {len(self.performance.session_history)} sessions, "
            f"{len(self.performance.bookmarked_ids)} bookmarks, "
            f"{len(self.performance.missed_ids)} missed"
        )
        return self.performance

    def encode(self) -> dict[str, Any]:
        """Encode the aggregate as backend values, keyed with the prefix."""
        perf = self.performance
        return {
            self._key(SESSION_HISTORY_KEY): [r.to_dict() for r in perf.session_history],
            self._key(DOMAIN_PERFORMANCE_KEY): {
                d: t.to_dict() for d, t in perf.domain_stats.items()
            },
            self._key(QUESTION_STATS_KEY): {
                str(q): s.to_dict() for q, s in perf.question_stats.items()
            },
            self._key(BOOKMARKED_KEY): serialize_ids(perf.bookmarked_ids),
            self._key(INCORRECT_KEY): serialize_ids(perf.missed_ids),
        }

    def flush(self) -> bool:
        """
        Persist the aggregate.

        Returns:
            True if the write succeeded. Failures are logged; in-memory
            state stays authoritative for the rest of the process.
        """
        try:
            self.backend.set_many(self.encode())
            return True
        except (OSError, sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Could not persist performance data: {e}")
            return False

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    def _set_preference(self, name: str, value: Any) -> None:
        try:
            self.backend.set(self._key(name), value)
        except (OSError, sqlite3.Error, TypeError, ValueError) as e:
            logger.error(f"Could not persist preference '{name}': {e}")

    @property
    def dark_mode(self) -> bool:
        return self._read(DARK_MODE_KEY, _decode_bool, lambda: False)

    @dark_mode.setter
    def dark_mode(self, enabled: bool) -> None:
        self._set_preference(DARK_MODE_KEY, bool(enabled))

    @property
    def exam_date(self) -> date | None:
        return self._read(EXAM_DATE_KEY, _decode_date, lambda: None)

    @exam_date.setter
    def exam_date(self, value: date | None) -> None:
        self._set_preference(EXAM_DATE_KEY, value.isoformat() if value else None)

    @property
    def study_plan(self) -> dict[str, Any]:
        return self._read(STUDY_PLAN_KEY, _decode_mapping, dict)

    @study_plan.setter
    def study_plan(self, plan: Mapping[str, Any]) -> None:
        self._set_preference(STUDY_PLAN_KEY, dict(plan))


def _decode_bool(raw: Any) -> bool:
    if not isinstance(raw, bool):
        raise TypeError(f"expected a boolean, got {type(raw).__name__}")
    return raw


def _decode_date(raw: Any) -> date:
    return date.fromisoformat(raw)


def _decode_mapping(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise TypeError(f"expected an object, got {type(raw).__name__}")
    return raw


def create_backend(kind: str, path: Path | None = None) -> KeyValueBackend:
    """Build a backend by name ('memory', 'json' or 'sqlite')."""
    if kind == "memory":
        return MemoryBackend()
    if path is None:
        raise ValueError(f"Backend '{kind}' needs a storage path")
    if kind == "json":
        return JsonFileBackend(path)
    if kind == "sqlite":
        return SqliteBackend(path)
    raise ValueError(f"Unknown storage backend: {kind}")
