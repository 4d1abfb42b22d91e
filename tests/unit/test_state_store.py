"""
Unit tests for the key-value backends and PerformanceStore.
"""

import json
import sqlite3
from datetime import date
from unittest.mock import MagicMock

import pytest

from certprep.core.models import DomainTally, QuestionStat, SessionResult
from certprep.core.modes import SessionMode
from certprep.delivery.state_store import (
    BOOKMARKED_KEY,
    DOMAIN_PERFORMANCE_KEY,
    INCORRECT_KEY,
    QUESTION_STATS_KEY,
    SESSION_HISTORY_KEY,
    JsonFileBackend,
    MemoryBackend,
    PerformanceStore,
    SqliteBackend,
    create_backend,
)


@pytest.fixture
def sample_result():
    return SessionResult(
        id=1_700_000_000_000,
        timestamp="2026-03-01T10:00:00",
        mode=SessionMode.PRACTICE_INCORRECT,
        total_questions=3,
        correct_count=1,
        percentage=33,
        domain_breakdown={"Alpha": DomainTally(1, 2), "Beta": DomainTally(0, 1)},
        total_elapsed_minutes=4,
        per_question_elapsed={1: 60, 2: 90, 3: 80},
        answers={1: 0, 2: 3},
        outcomes={1: True, 2: False},
    )


def populate(store, result):
    perf = store.performance
    perf.session_history.append(result)
    perf.domain_stats["Alpha"] = DomainTally(5, 8)
    perf.question_stats[2] = QuestionStat(1, 3, False)
    perf.bookmarked_ids.update({4, 2})
    perf.missed_ids.add(2)


def assert_same_performance(loaded, result):
    assert loaded.session_history == [result]
    assert loaded.domain_stats == {"Alpha": DomainTally(5, 8)}
    assert loaded.question_stats == {2: QuestionStat(1, 3, False)}
    assert loaded.bookmarked_ids == {2, 4}
    assert loaded.missed_ids == {2}


class TestRoundTrip:
    def test_memory_backend(self, sample_result):
        backend = MemoryBackend()
        store = PerformanceStore(backend)
        populate(store, sample_result)
        assert store.flush()

        assert_same_performance(PerformanceStore(backend).load(), sample_result)

    def test_json_backend(self, tmp_path, sample_result):
        path = tmp_path / "data" / "performance.json"
        store = PerformanceStore(JsonFileBackend(path))
        populate(store, sample_result)
        assert store.flush()

        reopened = PerformanceStore(JsonFileBackend(path))
        assert_same_performance(reopened.load(), sample_result)

    def test_sqlite_backend(self, tmp_path, sample_result):
        path = tmp_path / "performance.db"
        backend = SqliteBackend(path)
        store = PerformanceStore(backend)
        populate(store, sample_result)
        assert store.flush()
        backend.close()

        reopened = SqliteBackend(path)
        assert_same_performance(PerformanceStore(reopened).load(), sample_result)
        reopened.close()

    def test_keys_are_prefixed(self, sample_result):
        backend = MemoryBackend()
        store = PerformanceStore(backend, key_prefix="cisa_")
        populate(store, sample_result)
        store.flush()

        assert backend.get(f"cisa_{BOOKMARKED_KEY}") == [2, 4]
        assert backend.get(f"certprep_{BOOKMARKED_KEY}") is None


class TestCorruptData:
    def test_empty_backend_loads_defaults(self):
        perf = PerformanceStore(MemoryBackend()).load()

        assert perf.session_history == []
        assert perf.domain_stats == {}
        assert perf.bookmarked_ids == set()

    def test_undecodable_text_falls_back_per_key(self):
        backend = MemoryBackend({f"certprep_{INCORRECT_KEY}": [3, 1]})
        backend.put_raw(f"certprep_{SESSION_HISTORY_KEY}", "{not json")

        perf = PerformanceStore(backend).load()

        assert perf.session_history == []
        assert perf.missed_ids == {1, 3}

    def test_wrong_shape_falls_back(self):
        backend = MemoryBackend(
            {
                f"certprep_{DOMAIN_PERFORMANCE_KEY}": {"Alpha": {"right": 1}},
                f"certprep_{QUESTION_STATS_KEY}": ["not", "a", "map"],
                f"certprep_{BOOKMARKED_KEY}": ["x"],
            }
        )

        perf = PerformanceStore(backend).load()

        assert perf.domain_stats == {}
        assert perf.question_stats == {}
        assert perf.bookmarked_ids == set()

    def test_unknown_mode_in_history_falls_back(self, sample_result):
        entry = sample_result.to_dict()
        entry["mode"] = "speed-round"
        backend = MemoryBackend({f"certprep_{SESSION_HISTORY_KEY}": [entry]})

        assert PerformanceStore(backend).load().session_history == []

    def test_corrupt_json_file_starts_empty(self, tmp_path):
        path = tmp_path / "performance.json"
        path.write_text("[[[", encoding="utf-8")

        perf = PerformanceStore(JsonFileBackend(path)).load()

        assert perf.session_history == []

    def test_backend_read_error_falls_back(self):
        backend = MagicMock()
        backend.get.side_effect = sqlite3.OperationalError("disk I/O error")

        perf = PerformanceStore(backend).load()

        assert perf.missed_ids == set()


class TestPartiallyCorruptData:
    """One bad entry must not cost the learner the rest of a key."""

    def test_bad_history_entry_keeps_good_ones(self, sample_result):
        bad = sample_result.to_dict()
        bad["mode"] = "bogus"
        missing_field = sample_result.to_dict()
        del missing_field["totalQuestions"]
        backend = MemoryBackend(
            {f"certprep_{SESSION_HISTORY_KEY}": [sample_result.to_dict(), bad, missing_field]}
        )

        perf = PerformanceStore(backend).load()

        assert perf.session_history == [sample_result]

    def test_good_history_survives_next_flush(self, sample_result):
        bad = sample_result.to_dict()
        bad["mode"] = "bogus"
        backend = MemoryBackend({f"certprep_{SESSION_HISTORY_KEY}": [sample_result.to_dict(), bad]})
        store = PerformanceStore(backend)
        store.load()

        store.flush()

        assert PerformanceStore(backend).load().session_history == [sample_result]

    def test_bad_domain_entry_keeps_good_ones(self):
        backend = MemoryBackend(
            {
                f"certprep_{DOMAIN_PERFORMANCE_KEY}": {
                    "Alpha": {"correct": 3, "total": 4},
                    "Beta": {"right": 1},
                }
            }
        )

        perf = PerformanceStore(backend).load()

        assert perf.domain_stats == {"Alpha": DomainTally(3, 4)}

    def test_bad_question_stat_entry_keeps_good_ones(self):
        backend = MemoryBackend(
            {
                f"certprep_{QUESTION_STATS_KEY}": {
                    "7": {"correctCount": 1, "totalCount": 2, "lastOutcomeCorrect": True},
                    "eight": {"correctCount": 0, "totalCount": 1},
                    "9": {"totalCount": 1},
                }
            }
        )

        perf = PerformanceStore(backend).load()

        assert perf.question_stats == {7: QuestionStat(1, 2, True)}

    def test_id_set_stored_as_string_falls_back(self):
        backend = MemoryBackend({f"certprep_{BOOKMARKED_KEY}": "12"})

        perf = PerformanceStore(backend).load()

        assert perf.bookmarked_ids == set()


class TestUnreadableSqliteFile:
    def test_garbage_file_is_moved_aside(self, tmp_path):
        path = tmp_path / "performance.db"
        path.write_bytes(b"this is not an sqlite database\n" * 64)

        backend = SqliteBackend(path)
        perf = PerformanceStore(backend).load()

        assert perf.session_history == []
        assert (tmp_path / "performance.db.corrupt").exists()

        backend.set("certprep_darkMode", True)
        assert backend.get("certprep_darkMode") is True
        backend.close()


class TestFlush:
    def test_write_failure_is_reported_not_raised(self):
        backend = MagicMock()
        backend.set_many.side_effect = OSError("read-only file system")
        store = PerformanceStore(backend)
        store.performance.missed_ids.add(1)

        assert store.flush() is False
        # In-memory state survives a failed write
        assert store.performance.missed_ids == {1}

    def test_json_write_replaces_file_atomically(self, tmp_path):
        path = tmp_path / "performance.json"
        backend = JsonFileBackend(path)
        backend.set_many({"a": 1, "b": [1, 2]})

        assert json.loads(path.read_text(encoding="utf-8")) == {"a": 1, "b": [1, 2]}
        assert [p.name for p in tmp_path.iterdir()] == ["performance.json"]


class TestPreferences:
    def test_defaults(self, memory_store):
        assert memory_store.dark_mode is False
        assert memory_store.exam_date is None
        assert memory_store.study_plan == {}

    def test_dark_mode(self, memory_store):
        memory_store.dark_mode = True
        assert memory_store.dark_mode is True

    def test_exam_date_stored_as_iso(self, memory_store):
        memory_store.exam_date = date(2026, 12, 5)

        assert memory_store.exam_date == date(2026, 12, 5)
        assert memory_store.backend.get("certprep_examDate") == "2026-12-05"

    def test_exam_date_can_be_cleared(self, memory_store):
        memory_store.exam_date = date(2026, 12, 5)
        memory_store.exam_date = None
        assert memory_store.exam_date is None

    def test_study_plan(self, memory_store):
        memory_store.study_plan = {"hoursPerWeek": 6}
        assert memory_store.study_plan == {"hoursPerWeek": 6}

    def test_corrupt_preference_uses_default(self):
        backend = MemoryBackend({"certprep_darkMode": "yes", "certprep_examDate": "soon"})
        store = PerformanceStore(backend)

        assert store.dark_mode is False
        assert store.exam_date is None


class TestCreateBackend:
    def test_memory(self):
        assert isinstance(create_backend("memory"), MemoryBackend)

    def test_json(self, tmp_path):
        assert isinstance(create_backend("json", tmp_path / "p.json"), JsonFileBackend)

    def test_sqlite(self, tmp_path):
        backend = create_backend("sqlite", tmp_path / "p.db")
        assert isinstance(backend, SqliteBackend)
        backend.close()

    def test_durable_backend_needs_path(self):
        with pytest.raises(ValueError, match="storage path"):
            create_backend("json")

    def test_unknown_kind(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_backend("redis", tmp_path / "x")
