"""Digest validator — shape checks applied before a filing is accepted.

A digest is valid iff it is exactly 32 bytes long. Content is never
inspected; collision risk is accepted rather than validated.

Summaries are bounded ASCII text of at most 256 characters. Timestamps
and ordering markers are non-negative integers. Batch reads
accept at most 10 digests.
"""

from __future__ import annotations

import re
from typing import Any, Sequence

from priority_registry.errors import (
    InvalidDigestError,
    InvalidMarkerError,
    InvalidSummaryError,
)
from priority_registry.models.filing import (
    DIGEST_LENGTH,
    MAX_BATCH_SIZE,
    MAX_SUMMARY_LENGTH,
)


_HEX_PATTERN = re.compile(r"^[0-9a-fA-F]*$")
_HEX_PREFIXES = ("0x", "sha256:")


class DigestValidator:
    """Stateless guard for digests, summaries and batch inputs."""

    def validate_digest(self, digest: Any) -> bytes:
        """Return the digest as bytes, or raise InvalidDigestError."""
        if not isinstance(digest, (bytes, bytearray, memoryview)):
            raise InvalidDigestError(
                f"digest must be bytes, got {type(digest).__name__}"
            )
        value = bytes(digest)
        if len(value) != DIGEST_LENGTH:
            raise InvalidDigestError(
                f"digest must be exactly {DIGEST_LENGTH} bytes, got {len(value)}"
            )
        return value

    def validate_summary(self, summary: Any) -> str:
        if not isinstance(summary, str):
            raise InvalidSummaryError(
                f"summary must be a string, got {type(summary).__name__}"
            )
        if len(summary) > MAX_SUMMARY_LENGTH:
            raise InvalidSummaryError(
                f"summary exceeds {MAX_SUMMARY_LENGTH} characters: {len(summary)}"
            )
        if not summary.isascii():
            raise InvalidSummaryError("summary must be ASCII text")
        return summary

    def validate_marker(self, value: Any, name: str) -> int:
        """Timestamps and ordering markers are non-negative ints (not bool)."""
        if isinstance(value, bool) or not isinstance(value, int):
            raise InvalidMarkerError(
                f"{name} must be an integer, got {type(value).__name__}"
            )
        if value < 0:
            raise InvalidMarkerError(f"{name} must be non-negative, got {value}")
        return value

    def validate_batch(self, digests: Sequence[Any]) -> None:
        """Reject oversize batches. Element shape is checked per lookup."""
        if len(digests) > MAX_BATCH_SIZE:
            raise InvalidDigestError(
                f"batch lookup accepts at most {MAX_BATCH_SIZE} digests, "
                f"got {len(digests)}"
            )


def digest_from_hex(text: str) -> bytes:
    """Parse a hex digest, optionally prefixed with ``0x`` or ``sha256:``."""
    value = text.strip()
    for prefix in _HEX_PREFIXES:
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break
    if len(value) % 2 or not _HEX_PATTERN.match(value):
        raise InvalidDigestError(f"digest is not valid hex: {text[:40]}")
    return DigestValidator().validate_digest(bytes.fromhex(value))
