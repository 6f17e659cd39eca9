"""Append-only filing journal — the durable record of every filing.

Each successful filing is appended as one JSON line before it is applied
to the in-memory tables. On start-up the journal is replayed to rebuild
the archive, inventor index and counters, so registry state survives a
process restart.

Entries are hash-chained: entry_hash is the SHA-256 of the entry's
canonical JSON including previous_hash. Loading is fail-closed:
a tampered line, a broken chain, a repeated digest or a non-sequential
filing id aborts recovery with JournalIntegrityError.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from priority_registry.errors import JournalIntegrityError
from priority_registry.models.filing import FilingRecord

logger = logging.getLogger(__name__)

JOURNAL_ROOT_HASH = "sha256:" + "0" * 64


def _entry_hash(fields: dict[str, Any]) -> str:
    canonical = json.dumps(
        fields, sort_keys=True, ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class JournalEntry:
    """One journaled filing."""
    sequence: int
    record: FilingRecord
    filing_id: int
    previous_hash: str
    entry_hash: str

    @staticmethod
    def create(
        sequence: int,
        record: FilingRecord,
        filing_id: int,
        previous_hash: str,
    ) -> JournalEntry:
        """Create a new entry with computed hash."""
        entry = JournalEntry(
            sequence=sequence,
            record=record,
            filing_id=filing_id,
            previous_hash=previous_hash,
            entry_hash="",
        )
        return JournalEntry(
            sequence=sequence,
            record=record,
            filing_id=filing_id,
            previous_hash=previous_hash,
            entry_hash=_entry_hash(entry.hashed_fields()),
        )

    def hashed_fields(self) -> dict[str, Any]:
        fields = self.record.to_dict()
        fields.update({
            "sequence": self.sequence,
            "filing_id": self.filing_id,
            "previous_hash": self.previous_hash,
        })
        return fields

    def to_json(self) -> str:
        data = self.hashed_fields()
        data["entry_hash"] = self.entry_hash
        return json.dumps(data, sort_keys=True, ensure_ascii=False)


class FilingLog:
    """Append-only filing journal with optional file persistence.

    Without a storage path the journal is kept in memory only, which is
    what tests and throwaway registries use.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._entries: list[JournalEntry] = []
        self._storage_path = storage_path
        self._digests: set[bytes] = set()
        self._counts: dict[str, int] = {}
        self._last_offset: Optional[int] = None

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    @property
    def storage_path(self) -> Optional[Path]:
        return self._storage_path

    @property
    def count(self) -> int:
        return len(self._entries)

    @property
    def head_hash(self) -> str:
        return self._entries[-1].entry_hash if self._entries else JOURNAL_ROOT_HASH

    def entries(self) -> list[JournalEntry]:
        return list(self._entries)

    def append(self, record: FilingRecord, filing_id: int) -> JournalEntry:
        """Journal a filing. The file write happens before any in-memory change.

        Raises:
            ValueError: If the digest is already journaled.
            OSError: If the journal file cannot be written.
        """
        if record.digest in self._digests:
            raise ValueError(f"Digest already journaled: {record.digest.hex()}")

        entry = JournalEntry.create(
            sequence=self.count + 1,
            record=record,
            filing_id=filing_id,
            previous_hash=self.head_hash,
        )
        if self._storage_path:
            self._last_offset = self._append_to_file(entry)
        self._remember(entry)
        return entry

    def discard_last(self, entry: JournalEntry) -> None:
        """Withdraw the most recent entry after its commit was aborted.

        Raises:
            ValueError: If entry is not the journal's last entry.
            OSError: If the journal file cannot be truncated.
        """
        if not self._entries or self._entries[-1] != entry:
            raise ValueError(
                f"Only the last journal entry can be discarded: {entry.sequence}"
            )
        if self._storage_path and self._last_offset is not None:
            os.truncate(self._storage_path, self._last_offset)
        self._last_offset = None
        self._entries.pop()
        self._digests.discard(entry.record.digest)
        inventor = entry.record.inventor
        previous = max(
            (e.filing_id for e in self._entries if e.record.inventor == inventor),
            default=0,
        )
        if previous:
            self._counts[inventor] = previous
        else:
            self._counts.pop(inventor, None)

    def _remember(self, entry: JournalEntry) -> None:
        self._entries.append(entry)
        self._digests.add(entry.record.digest)
        self._counts[entry.record.inventor] = entry.filing_id

    def _append_to_file(self, entry: JournalEntry) -> int:
        """Write one line. Returns the file size before the write.

        A failed write is truncated back to that size so no partial
        line is left behind.
        """
        path = self._storage_path
        path.parent.mkdir(parents=True, exist_ok=True)
        start = path.stat().st_size if path.exists() else 0
        try:
            with path.open("a", encoding="utf-8") as f:
                f.write(entry.to_json() + "\n")
                f.flush()
        except OSError:
            self._truncate_after_failure(start)
            raise
        return start

    def _truncate_after_failure(self, size: int) -> None:
        try:
            os.truncate(self._storage_path, size)
        except OSError as e:
            logger.critical(
                "Could not truncate %s to %d bytes after failed write: %s",
                self._storage_path, size, e,
            )

    def _load_from_file(self, path: Path) -> None:
        """Load and verify every journal line."""
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                    record = FilingRecord(
                        digest=bytes.fromhex(data["digest"]),
                        inventor=data["inventor"],
                        filing_date=int(data["filing_date"]),
                        priority_block=int(data["priority_block"]),
                        summary=data["summary"],
                    )
                    entry = JournalEntry(
                        sequence=int(data["sequence"]),
                        record=record,
                        filing_id=int(data["filing_id"]),
                        previous_hash=data["previous_hash"],
                        entry_hash=data["entry_hash"],
                    )
                except (KeyError, TypeError, ValueError) as e:
                    raise JournalIntegrityError(
                        f"Malformed journal entry (line {line_num}): {e}"
                    ) from e
                self._verify(entry, line_num)
                self._remember(entry)
        logger.info("Loaded %d journal entries from %s", self.count, path)

    def _verify(self, entry: JournalEntry, line_num: int) -> None:
        expected_hash = _entry_hash(entry.hashed_fields())
        if entry.entry_hash != expected_hash:
            raise JournalIntegrityError(
                f"Integrity check failed (line {line_num}): stored hash "
                f"{entry.entry_hash} != computed {expected_hash}"
            )
        if entry.sequence != self.count + 1:
            raise JournalIntegrityError(
                f"Sequence gap (line {line_num}): expected {self.count + 1}, "
                f"got {entry.sequence}"
            )
        if entry.previous_hash != self.head_hash:
            raise JournalIntegrityError(
                f"Broken hash chain (line {line_num}): previous_hash "
                f"{entry.previous_hash} != {self.head_hash}"
            )
        if entry.record.digest in self._digests:
            raise JournalIntegrityError(
                f"Duplicate digest on recovery (line {line_num}): "
                f"{entry.record.digest.hex()}"
            )
        expected_id = self._counts.get(entry.record.inventor, 0) + 1
        if entry.filing_id != expected_id:
            raise JournalIntegrityError(
                f"Non-sequential filing id (line {line_num}) for "
                f"{entry.record.inventor}: expected {expected_id}, "
                f"got {entry.filing_id}"
            )
