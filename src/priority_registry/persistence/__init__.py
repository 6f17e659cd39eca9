"""Durable filing journal."""

from priority_registry.persistence.filing_log import FilingLog, JournalEntry

__all__ = ["FilingLog", "JournalEntry"]
