"""Registry service — unified facade for the priority registry.

This is the primary interface for programmatic access to the registry.
It orchestrates:
- Validation (digest shape, summary bounds, batch size)
- Filing (uniqueness check, filing id assignment, atomic commit)
- Reads (by digest, by inventor and filing id, batch, ownership)
- Office access (fixed administrative identity, permission-gated read)
- Persistence (optional append-only journal, replayed on construction)

Identity, timestamp and ordering marker are explicit parameters to
file(); the service never reads a clock or a ledger itself.

All caller-facing failures are returned as RegistryResult values with
an error kind. Nothing is retried. A ConsistencyFault (index points at
a digest the archive lacks, or a commit failed part-way) is logged and
raised, never returned as a normal error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from priority_registry.config import RegistryConfig
from priority_registry.engine.validator import DigestValidator
from priority_registry.errors import (
    AlreadyFiledError,
    ConsistencyFault,
    NotFoundError,
    PermissionDeniedError,
    RegistryError,
)
from priority_registry.models.filing import (
    FilingReceipt,
    FilingRecord,
    OfficeStats,
    RegistryErrorKind,
)
from priority_registry.persistence.filing_log import FilingLog
from priority_registry.registry.locks import KeyedLocks
from priority_registry.registry.store import RegistryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryResult:
    """Result of a registry operation."""
    success: bool
    error: Optional[RegistryErrorKind] = None
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def record(self) -> Optional[FilingRecord]:
        return self.data.get("record")


def _failure(exc: RegistryError) -> RegistryResult:
    return RegistryResult(success=False, error=exc.kind, errors=[str(exc)])


class RegistryService:
    """Priority registry facade.

    Usage:
        service = RegistryService(office_identity="office")

        result = service.file(digest, "Solar panel improvement",
                              inventor="alice", timestamp=1000,
                              ordering_marker=50)
        if result.success:
            filing_id = result.data["filing_id"]

        service.lookup(digest)
        service.lookup_by_inventor_and_id("alice", 1)
        service.batch_lookup([d1, d2, d3])

    Persistence (optional):
        service = RegistryService("office", journal=FilingLog(path))
        # Every filing is journaled; the journal is replayed on construction.
    """

    def __init__(
        self,
        office_identity: str,
        journal: Optional[FilingLog] = None,
    ) -> None:
        if not office_identity or not office_identity.strip():
            raise ValueError("Office identity cannot be empty")
        self._office_identity = office_identity
        self._validator = DigestValidator()
        self._store = RegistryStore(journal=journal)
        self._inventor_locks = KeyedLocks()
        self._digest_locks = KeyedLocks()

    @classmethod
    def from_config(cls, config: RegistryConfig) -> RegistryService:
        """Create a service with the journal the config points at."""
        path = config.journal_path
        journal = FilingLog(storage_path=path) if path is not None else None
        return cls(config.office_identity, journal=journal)

    @property
    def office_identity(self) -> str:
        return self._office_identity

    # ------------------------------------------------------------------
    # Filing
    # ------------------------------------------------------------------

    def file(
        self,
        digest: bytes,
        summary: str,
        inventor: str,
        timestamp: int,
        ordering_marker: int,
    ) -> RegistryResult:
        """File a digest for an inventor.

        On success data holds the record, its filing id and a receipt.
        The inventor lock is always taken before the digest lock.
        """
        try:
            digest = self._validator.validate_digest(digest)
            summary = self._validator.validate_summary(summary)
            timestamp = self._validator.validate_marker(timestamp, "timestamp")
            ordering_marker = self._validator.validate_marker(
                ordering_marker, "ordering_marker"
            )
        except RegistryError as e:
            logger.debug("Filing rejected by validation: %s", e)
            return _failure(e)

        with self._inventor_locks.hold(inventor), self._digest_locks.hold(digest):
            try:
                if self._store.archive.exists(digest):
                    raise AlreadyFiledError(f"Digest already filed: {digest.hex()}")
                filing_id = self._store.index.next_filing_id(inventor)
                record = FilingRecord(
                    digest=digest,
                    inventor=inventor,
                    filing_date=timestamp,
                    priority_block=ordering_marker,
                    summary=summary,
                )
                self._store.commit(record, filing_id)
            except RegistryError as e:
                logger.info("Filing rejected for %s: %s", inventor, e)
                return _failure(e)

        logger.info(
            "Filed %s for %s (filing %d, block %d)",
            digest.hex(), inventor, filing_id, ordering_marker,
        )
        return RegistryResult(
            success=True,
            data={
                "record": record,
                "filing_id": filing_id,
                "receipt": FilingReceipt(record=record, filing_id=filing_id),
            },
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, digest: bytes) -> RegistryResult:
        """Look up the filing for a digest."""
        try:
            digest = self._validator.validate_digest(digest)
            record = self._store.archive.get(digest)
        except RegistryError as e:
            return _failure(e)
        return RegistryResult(success=True, data={"record": record})

    def lookup_by_inventor_and_id(
        self,
        inventor: str,
        filing_id: int,
    ) -> RegistryResult:
        """Look up an inventor's filing by its sequential id (1-based)."""
        if isinstance(filing_id, bool) or not isinstance(filing_id, int):
            return _failure(NotFoundError(f"Invalid filing id: {filing_id!r}"))
        try:
            digest = self._store.index.lookup(inventor, filing_id)
        except NotFoundError as e:
            return _failure(e)
        record = self._resolve_indexed(inventor, filing_id, digest)
        return RegistryResult(
            success=True,
            data={"record": record, "filing_id": filing_id},
        )

    def batch_lookup(self, digests: Sequence[bytes]) -> RegistryResult:
        """Look up up to 10 digests independently.

        data["results"] has one RegistryResult per input, in input order.
        A failed element does not fail the batch.
        """
        try:
            self._validator.validate_batch(digests)
        except RegistryError as e:
            return _failure(e)
        return RegistryResult(
            success=True,
            data={"results": [self.lookup(d) for d in digests]},
        )

    def is_inventor(self, digest: bytes, candidate: str) -> bool:
        """True iff digest is filed and belongs to candidate."""
        result = self.lookup(digest)
        return result.success and result.record.inventor == candidate

    def inventor_filing_count(self, inventor: str) -> int:
        return self._store.index.count(inventor)

    def total_inventions(self) -> int:
        return self._store.total

    def inventor_filings(self, inventor: str) -> RegistryResult:
        """All of an inventor's filings in filing order."""
        filings = [
            FilingReceipt(
                record=self._resolve_indexed(inventor, filing_id, digest),
                filing_id=filing_id,
            )
            for filing_id, digest in enumerate(
                self._store.index.filings(inventor), 1
            )
        ]
        return RegistryResult(
            success=True,
            data={"inventor": inventor, "filings": filings},
        )

    # ------------------------------------------------------------------
    # Office
    # ------------------------------------------------------------------

    def office_stats(self) -> OfficeStats:
        return OfficeStats(
            total=self._store.total,
            office_identity=self._office_identity,
        )

    def office_get_invention_details(
        self,
        digest: bytes,
        caller_identity: str,
    ) -> RegistryResult:
        """Permission-gated lookup for the office identity.

        Unauthorised callers get PERMISSION_DENIED before the digest is
        examined, so the result says nothing about whether it exists.
        """
        if caller_identity != self._office_identity:
            logger.info("Office lookup denied for %s", caller_identity)
            return _failure(PermissionDeniedError(
                f"{caller_identity} is not the office identity"
            ))
        return self.lookup(digest)

    # ------------------------------------------------------------------
    # Integrity and status
    # ------------------------------------------------------------------

    def verify_integrity(self) -> RegistryResult:
        """Check counters, index contiguity and archive references."""
        errors = self._store.check_integrity()
        if errors:
            for err in errors:
                logger.critical("Integrity violation: %s", err)
            return RegistryResult(success=False, errors=errors)
        return RegistryResult(
            success=True,
            data={"total": self._store.total},
        )

    def status(self) -> dict[str, Any]:
        journal = self._store.journal
        return {
            "office_identity": self._office_identity,
            "total_inventions": self._store.total,
            "inventors": sum(1 for _ in self._store.index.inventors()),
            "journal": (
                str(journal.storage_path)
                if journal is not None and journal.storage_path is not None
                else None
            ),
            "journal_head": journal.head_hash if journal is not None else None,
        }

    def _resolve_indexed(
        self,
        inventor: str,
        filing_id: int,
        digest: bytes,
    ) -> FilingRecord:
        """Archive read for a digest found via the index.

        A miss here breaks referential integrity and is fatal.
        """
        try:
            return self._store.archive.get(digest)
        except NotFoundError as e:
            logger.critical(
                "Index entry %s[%d] -> %s missing from archive",
                inventor, filing_id, digest.hex(),
            )
            raise ConsistencyFault(
                f"Indexed digest missing from archive: {digest.hex()}"
            ) from e
