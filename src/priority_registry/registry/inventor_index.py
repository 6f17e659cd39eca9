"""Inventor index — per-inventor filing sequence and counter.

(inventor, filing_id) -> digest, plus inventor -> filing count.

Sequencing is per inventor. For a fixed inventor the filing ids are
exactly 1..N with no gaps or repeats, where N is the counter. The next
filing always receives N + 1. An inventor that has never filed has a
count of 0; that default is explicit in count(), never implied by a
missing key elsewhere.

The index does not serialise callers itself. The service holds the
inventor's lock across next_filing_id() and record(), so two filings
by the same inventor can never compute the same id.
"""

from __future__ import annotations

from typing import Iterator

from priority_registry.errors import ConsistencyFault, NotFoundError


class InventorIndex:
    """Ordered per-inventor digest lists with counters."""

    def __init__(self) -> None:
        self._entries: dict[str, list[bytes]] = {}
        self._counters: dict[str, int] = {}

    def count(self, inventor: str) -> int:
        return self._counters.get(inventor, 0)

    def next_filing_id(self, inventor: str) -> int:
        return self.count(inventor) + 1

    def append(self, inventor: str, filing_id: int, digest: bytes) -> None:
        """Record the mapping for the inventor's next filing.

        Raises:
            ConsistencyFault: If filing_id is not exactly count + 1.
        """
        expected = self.next_filing_id(inventor)
        if filing_id != expected:
            raise ConsistencyFault(
                f"Non-sequential filing id for {inventor}: "
                f"expected {expected}, got {filing_id}"
            )
        entries = self._entries.setdefault(inventor, [])
        if len(entries) != filing_id - 1:
            raise ConsistencyFault(
                f"Index rows for {inventor} out of step with counter: "
                f"{len(entries)} rows, counter {filing_id - 1}"
            )
        entries.append(digest)

    def advance_counter(self, inventor: str) -> None:
        self._counters[inventor] = self.count(inventor) + 1

    def record(self, inventor: str, filing_id: int, digest: bytes) -> None:
        """append() and advance_counter() as one step.

        If advancing the counter fails the appended row is removed again,
        leaving the index as it was.
        """
        self.append(inventor, filing_id, digest)
        try:
            self.advance_counter(inventor)
        except Exception:
            self._entries[inventor].pop()
            raise

    def lookup(self, inventor: str, filing_id: int) -> bytes:
        entries = self._entries.get(inventor, [])
        if filing_id < 1 or filing_id > self.count(inventor):
            raise NotFoundError(
                f"No filing {filing_id} for inventor {inventor}"
            )
        return entries[filing_id - 1]

    def filings(self, inventor: str) -> list[bytes]:
        """The inventor's digests in filing order (ids 1..N)."""
        return list(self._entries.get(inventor, [])[: self.count(inventor)])

    def inventors(self) -> Iterator[str]:
        return iter(list(self._counters))

    def total(self) -> int:
        """Sum of all inventor counters."""
        return sum(self._counters.values())
