"""Invention archive — the content-addressed table of filings.

digest -> FilingRecord. The archive owns uniqueness: a digest can be
inserted once and its record never changes afterwards. There is no
update and no delete.

The existence check and the insert run under one lock, so two racing
inserts of the same digest produce exactly one success and one
AlreadyFiledError. Reads take no lock.
"""

from __future__ import annotations

import threading
from typing import Iterator

from priority_registry.errors import AlreadyFiledError, NotFoundError
from priority_registry.models.filing import FilingRecord


class InventionArchive:
    """Append-only digest -> record table."""

    def __init__(self) -> None:
        self._records: dict[bytes, FilingRecord] = {}
        self._lock = threading.Lock()

    def exists(self, digest: bytes) -> bool:
        return digest in self._records

    def insert(self, record: FilingRecord) -> None:
        """Store a new record.

        Raises:
            AlreadyFiledError: If the digest is already archived.
        """
        with self._lock:
            if record.digest in self._records:
                raise AlreadyFiledError(
                    f"Digest already filed: {record.digest.hex()}"
                )
            self._records[record.digest] = record

    def undo_insert(self, record: FilingRecord) -> None:
        """Remove a just-inserted row while its commit is being aborted.

        Only the store's commit rollback calls this. The row must still
        be the exact record that was inserted.
        """
        with self._lock:
            if self._records.get(record.digest) is record:
                del self._records[record.digest]

    def get(self, digest: bytes) -> FilingRecord:
        record = self._records.get(digest)
        if record is None:
            raise NotFoundError(f"Digest not filed: {digest.hex()}")
        return record

    def digests(self) -> Iterator[bytes]:
        return iter(list(self._records))

    def __len__(self) -> int:
        return len(self._records)
