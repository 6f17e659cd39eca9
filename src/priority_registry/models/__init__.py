"""Core data models for the priority registry."""

from priority_registry.models.filing import (
    DIGEST_LENGTH,
    MAX_BATCH_SIZE,
    MAX_SUMMARY_LENGTH,
    FilingReceipt,
    FilingRecord,
    OfficeStats,
    RegistryErrorKind,
)

__all__ = [
    "DIGEST_LENGTH",
    "MAX_BATCH_SIZE",
    "MAX_SUMMARY_LENGTH",
    "FilingReceipt",
    "FilingRecord",
    "OfficeStats",
    "RegistryErrorKind",
]
