"""Tests for the registry store — proves commits are all-or-nothing."""

import hashlib
from pathlib import Path

import pytest

from priority_registry.errors import (
    AlreadyFiledError,
    ConsistencyFault,
    PersistenceError,
)
from priority_registry.models.filing import FilingRecord
from priority_registry.persistence.filing_log import FilingLog
from priority_registry.registry.locks import KeyedLocks
from priority_registry.registry.store import RegistryStore


def _record(seed: str, inventor: str = "alice") -> FilingRecord:
    return FilingRecord(
        digest=hashlib.sha256(seed.encode()).digest(),
        inventor=inventor,
        filing_date=1000,
        priority_block=50,
        summary=seed,
    )


class TestCommit:
    def test_commit_updates_all_tables(self) -> None:
        store = RegistryStore()
        record = _record("a")
        store.commit(record, 1)
        assert store.archive.get(record.digest) == record
        assert store.index.lookup("alice", 1) == record.digest
        assert store.index.count("alice") == 1
        assert store.total == 1
        assert store.check_integrity() == []

    def test_duplicate_changes_nothing(self) -> None:
        store = RegistryStore()
        store.commit(_record("a", "alice"), 1)
        with pytest.raises(AlreadyFiledError):
            store.commit(_record("a", "bob"), 1)
        assert store.total == 1
        assert store.index.count("bob") == 0

    def test_bad_filing_id_rolls_back_archive(self) -> None:
        store = RegistryStore()
        record = _record("a")
        with pytest.raises(ConsistencyFault):
            store.commit(record, 5)
        assert not store.archive.exists(record.digest)
        assert store.total == 0
        assert store.index.count("alice") == 0
        assert store.check_integrity() == []

    def test_index_failure_rolls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        store = RegistryStore()

        def boom(inventor: str) -> None:
            raise MemoryError("simulated")

        monkeypatch.setattr(store.index, "advance_counter", boom)
        record = _record("a")
        with pytest.raises(ConsistencyFault, match="Partial commit aborted"):
            store.commit(record, 1)
        assert not store.archive.exists(record.digest)
        assert store.index.filings("alice") == []
        assert store.total == 0

    def test_journal_failure_changes_nothing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        journal = FilingLog()

        def fail(record: FilingRecord, filing_id: int) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(journal, "append", fail)
        store = RegistryStore(journal=journal)
        record = _record("a")
        with pytest.raises(PersistenceError, match="disk full"):
            store.commit(record, 1)
        assert not store.archive.exists(record.digest)
        assert store.total == 0


class _PartialWriter:
    """File handle that writes a fragment of the line, then fails."""

    def __init__(self, handle) -> None:
        self._handle = handle

    def __enter__(self) -> "_PartialWriter":
        return self

    def __exit__(self, *exc: object) -> bool:
        self._handle.close()
        return False

    def write(self, text: str) -> int:
        self._handle.write(text[:20])
        self._handle.flush()
        raise OSError(28, "No space left on device")

    def flush(self) -> None:
        self._handle.flush()


class TestJournalRollback:
    def test_partial_write_truncated(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        path = tmp_path / "filings.jsonl"
        store = RegistryStore(journal=FilingLog(path))
        store.commit(_record("a1"), 1)
        size_before = path.stat().st_size

        real_open = Path.open

        def failing_open(self: Path, mode: str = "r", *args, **kwargs):
            handle = real_open(self, mode, *args, **kwargs)
            return _PartialWriter(handle) if mode == "a" else handle

        with monkeypatch.context() as m:
            m.setattr(Path, "open", failing_open)
            with pytest.raises(PersistenceError, match="No space left"):
                store.commit(_record("a2"), 2)

        assert path.stat().st_size == size_before
        assert store.total == 1
        store.commit(_record("a2"), 2)

        restored = RegistryStore(journal=FilingLog(path))
        assert restored.total == 2
        assert restored.index.lookup("alice", 2) == _record("a2").digest
        assert restored.check_integrity() == []

    def test_aborted_apply_withdraws_entry(self, tmp_path: Path) -> None:
        path = tmp_path / "filings.jsonl"
        journal = FilingLog(path)
        store = RegistryStore(journal=journal)
        store.commit(_record("a1"), 1)
        size_before = path.stat().st_size

        with pytest.raises(ConsistencyFault):
            store.commit(_record("b1", "bob"), 7)

        assert journal.count == 1
        assert path.stat().st_size == size_before
        store.commit(_record("b1", "bob"), 1)

        restored = RegistryStore(journal=FilingLog(path))
        assert restored.total == 2
        assert restored.index.count("bob") == 1
        assert restored.check_integrity() == []


class TestReplay:
    def test_replay_from_journal(self, tmp_path: Path) -> None:
        path = tmp_path / "filings.jsonl"
        store = RegistryStore(journal=FilingLog(path))
        store.commit(_record("a1", "alice"), 1)
        store.commit(_record("b1", "bob"), 1)
        store.commit(_record("a2", "alice"), 2)

        restored = RegistryStore(journal=FilingLog(path))
        assert restored.total == 3
        assert restored.index.count("alice") == 2
        assert restored.index.lookup("alice", 2) == _record("a2").digest
        assert restored.archive.get(_record("b1").digest).inventor == "bob"
        assert restored.check_integrity() == []


class TestIntegrity:
    def test_detects_missing_archive_row(self) -> None:
        store = RegistryStore()
        record = _record("a")
        store.commit(record, 1)
        store.archive._records.pop(record.digest)
        errors = store.check_integrity()
        assert any("missing from archive" in e for e in errors)
        assert any("archive rows" in e for e in errors)

    def test_detects_owner_mismatch(self) -> None:
        store = RegistryStore()
        store.commit(_record("a", "alice"), 1)
        digest = _record("a").digest
        store.archive._records[digest] = _record("a", "mallory")
        errors = store.check_integrity()
        assert any("archived under mallory" in e for e in errors)


class TestKeyedLocks:
    def test_released_keys_dropped(self) -> None:
        locks = KeyedLocks()
        with locks.hold("alice"):
            assert len(locks) == 1
            with locks.hold("bob"):
                assert len(locks) == 2
        assert len(locks) == 0

    def test_released_on_error(self) -> None:
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("alice"):
                raise RuntimeError("boom")
        with locks.hold("alice"):
            pass
        assert len(locks) == 0
