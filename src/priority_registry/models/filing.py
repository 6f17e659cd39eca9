"""Filing record models.

A filing binds a 32-byte content digest to the inventor who submitted it,
the time-oracle timestamp and the ordering marker (block height) captured
at the moment of filing. Records are append-only: once a digest is filed
its record is never updated or deleted.

The per-inventor filing id is index metadata, not part of the record.
It is returned alongside the record in a FilingReceipt.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


# Protocol constants
DIGEST_LENGTH = 32
MAX_SUMMARY_LENGTH = 256
MAX_BATCH_SIZE = 10


class RegistryErrorKind(str, enum.Enum):
    """Caller-facing failure kinds.

    Each is a request problem, never a transient fault, and is
    surfaced immediately without retry.
    """
    PERMISSION_DENIED = "permission_denied"
    ALREADY_FILED = "already_filed"
    NOT_FOUND = "not_found"
    INVALID_DIGEST = "invalid_digest"
    INVALID_SUMMARY = "invalid_summary"
    INVALID_MARKER = "invalid_marker"


@dataclass(frozen=True)
class FilingRecord:
    """A single immutable filing in the invention archive."""
    digest: bytes
    inventor: str
    filing_date: int  # seconds since epoch, from the time oracle
    priority_block: int  # ordering marker, e.g. ledger block height
    summary: str

    @property
    def digest_hex(self) -> str:
        return self.digest.hex()

    def to_dict(self) -> dict[str, Any]:
        """Serialisable form. The digest is hex encoded."""
        return {
            "digest": self.digest.hex(),
            "inventor": self.inventor,
            "filing_date": self.filing_date,
            "priority_block": self.priority_block,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class FilingReceipt:
    """Response to a successful filing: the record plus its inventor-scoped id."""
    record: FilingRecord
    filing_id: int

    def to_dict(self) -> dict[str, Any]:
        data = self.record.to_dict()
        data["filing_id"] = self.filing_id
        return data


@dataclass(frozen=True)
class OfficeStats:
    """Registry-wide totals and the fixed office identity."""
    total: int
    office_identity: str

    def to_dict(self) -> dict[str, Any]:
        return {"total": self.total, "office_identity": self.office_identity}
