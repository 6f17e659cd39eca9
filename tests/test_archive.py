"""Tests for the invention archive — proves digests are unique and records immutable."""

import dataclasses
import hashlib
import threading

import pytest

from priority_registry.errors import AlreadyFiledError, NotFoundError
from priority_registry.models.filing import FilingRecord
from priority_registry.registry.archive import InventionArchive


def _record(seed: str, inventor: str = "alice") -> FilingRecord:
    return FilingRecord(
        digest=hashlib.sha256(seed.encode()).digest(),
        inventor=inventor,
        filing_date=1000,
        priority_block=50,
        summary=f"invention {seed}",
    )


@pytest.fixture
def archive() -> InventionArchive:
    return InventionArchive()


class TestArchive:
    def test_empty(self, archive: InventionArchive) -> None:
        assert len(archive) == 0
        assert not archive.exists(bytes(32))

    def test_insert_and_get(self, archive: InventionArchive) -> None:
        record = _record("a")
        archive.insert(record)
        assert archive.exists(record.digest)
        assert archive.get(record.digest) == record
        assert len(archive) == 1

    def test_duplicate_rejected(self, archive: InventionArchive) -> None:
        archive.insert(_record("a", "alice"))
        with pytest.raises(AlreadyFiledError):
            archive.insert(_record("a", "bob"))
        assert archive.get(_record("a").digest).inventor == "alice"

    def test_get_missing(self, archive: InventionArchive) -> None:
        with pytest.raises(NotFoundError):
            archive.get(bytes(32))

    def test_record_is_frozen(self, archive: InventionArchive) -> None:
        record = _record("a")
        archive.insert(record)
        with pytest.raises(dataclasses.FrozenInstanceError):
            archive.get(record.digest).summary = "changed"  # type: ignore[misc]

    def test_undo_insert(self, archive: InventionArchive) -> None:
        record = _record("a")
        archive.insert(record)
        archive.undo_insert(record)
        assert not archive.exists(record.digest)
        assert len(archive) == 0

    def test_undo_insert_keeps_other_record(self, archive: InventionArchive) -> None:
        archive.insert(_record("a", "alice"))
        archive.undo_insert(_record("a", "bob"))
        assert archive.get(_record("a").digest).inventor == "alice"

    def test_digests_lists_all(self, archive: InventionArchive) -> None:
        for seed in "abc":
            archive.insert(_record(seed))
        assert set(archive.digests()) == {_record(s).digest for s in "abc"}

    def test_racing_inserts_one_winner(self, archive: InventionArchive) -> None:
        barrier = threading.Barrier(8)
        outcomes: list[str] = []
        lock = threading.Lock()

        def insert(i: int) -> None:
            barrier.wait()
            try:
                archive.insert(_record("same", f"inventor-{i}"))
                outcome = "ok"
            except AlreadyFiledError:
                outcome = "dup"
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=insert, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == 7


class TestFilingRecord:
    def test_to_dict_hex_digest(self) -> None:
        record = _record("a")
        data = record.to_dict()
        assert data["digest"] == record.digest.hex()
        assert record.digest_hex == data["digest"]
        assert data["priority_block"] == 50
