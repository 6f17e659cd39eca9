"""Registry store — the explicit owner of all four registry tables.

- InventionArchive: digest -> FilingRecord
- InventorIndex: (inventor, filing_id) -> digest, inventor -> count
- global counter: total filings ever created

commit() is the single write path. Under one short store-wide lock it
journals the filing (when a journal is attached) and then applies the
archive insert, index append + counter advance, and global increment.
Either every table changes or none does; a failure half-way through is
rolled back, its journal entry withdrawn, and raised as a
ConsistencyFault.

The archive is written before the index, so any digest a reader
resolves through the index is already present in the archive.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from priority_registry.errors import (
    AlreadyFiledError,
    ConsistencyFault,
    PersistenceError,
)
from priority_registry.models.filing import FilingRecord
from priority_registry.persistence.filing_log import FilingLog, JournalEntry
from priority_registry.registry.archive import InventionArchive
from priority_registry.registry.inventor_index import InventorIndex

logger = logging.getLogger(__name__)


class RegistryStore:
    """Archive, inventor index and global counter behind one commit path."""

    def __init__(self, journal: Optional[FilingLog] = None) -> None:
        self.archive = InventionArchive()
        self.index = InventorIndex()
        self._total = 0
        self._journal = journal
        self._commit_lock = threading.Lock()

        if journal is not None and journal.count:
            self.replay(journal.entries())

    @property
    def total(self) -> int:
        return self._total

    @property
    def journal(self) -> Optional[FilingLog]:
        return self._journal

    def commit(self, record: FilingRecord, filing_id: int) -> None:
        """Commit one filing to every table, or to none.

        Raises:
            AlreadyFiledError: The digest was filed first by someone else.
            PersistenceError: The journal write failed; nothing changed.
            ConsistencyFault: The in-memory apply failed part-way.
        """
        with self._commit_lock:
            if self.archive.exists(record.digest):
                raise AlreadyFiledError(
                    f"Digest already filed: {record.digest.hex()}"
                )
            entry = None
            if self._journal is not None:
                try:
                    entry = self._journal.append(record, filing_id)
                except OSError as e:
                    logger.error(
                        "Journal write failed for %s: %s", record.digest.hex(), e
                    )
                    raise PersistenceError(f"Journal write failed: {e}") from e
            try:
                self._apply(record, filing_id)
            except ConsistencyFault:
                if entry is not None:
                    self._journal.discard_last(entry)
                raise

    def replay(self, entries: Iterable[JournalEntry]) -> int:
        """Rebuild state from journal entries. Returns the number applied."""
        applied = 0
        with self._commit_lock:
            for entry in entries:
                self._apply(entry.record, entry.filing_id)
                applied += 1
        logger.info("Replayed %d filings from journal", applied)
        return applied

    def _apply(self, record: FilingRecord, filing_id: int) -> None:
        self.archive.insert(record)
        try:
            self.index.record(record.inventor, filing_id, record.digest)
        except Exception as e:
            self.archive.undo_insert(record)
            logger.critical(
                "Partial commit aborted for %s (inventor %s, filing %d): %s",
                record.digest.hex(), record.inventor, filing_id, e,
            )
            if isinstance(e, ConsistencyFault):
                raise
            raise ConsistencyFault(f"Partial commit aborted: {e}") from e
        self._total += 1

    def check_integrity(self) -> list[str]:
        """Verify the cross-table invariants. Returns list of errors."""
        errors: list[str] = []
        with self._commit_lock:
            archived = len(self.archive)
            indexed = self.index.total()
            if self._total != archived:
                errors.append(
                    f"global counter {self._total} != archive rows {archived}"
                )
            if self._total != indexed:
                errors.append(
                    f"global counter {self._total} != sum of inventor counts {indexed}"
                )
            seen: set[bytes] = set()
            for inventor in self.index.inventors():
                digests = self.index.filings(inventor)
                if len(digests) != self.index.count(inventor):
                    errors.append(
                        f"{inventor}: {len(digests)} index rows, "
                        f"counter {self.index.count(inventor)}"
                    )
                for filing_id, digest in enumerate(digests, 1):
                    if digest in seen:
                        errors.append(
                            f"{inventor}[{filing_id}]: digest {digest.hex()} indexed twice"
                        )
                    seen.add(digest)
                    if not self.archive.exists(digest):
                        errors.append(
                            f"{inventor}[{filing_id}]: digest {digest.hex()} missing from archive"
                        )
                        continue
                    owner = self.archive.get(digest).inventor
                    if owner != inventor:
                        errors.append(
                            f"{inventor}[{filing_id}]: digest {digest.hex()} "
                            f"archived under {owner}"
                        )
        return errors
