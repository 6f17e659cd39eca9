"""Exception types raised by registry components.

Caller-facing conditions derive from RegistryError (a ValueError) and
carry the RegistryErrorKind the service reports back in its result.
ConsistencyFault and PersistenceError are fatal: the service never
converts them into a normal result.
"""

from __future__ import annotations

from priority_registry.models.filing import RegistryErrorKind


class RegistryError(ValueError):
    """Base class for request-level failures."""
    kind: RegistryErrorKind


class InvalidDigestError(RegistryError):
    kind = RegistryErrorKind.INVALID_DIGEST


class InvalidSummaryError(RegistryError):
    kind = RegistryErrorKind.INVALID_SUMMARY


class InvalidMarkerError(RegistryError):
    kind = RegistryErrorKind.INVALID_MARKER


class AlreadyFiledError(RegistryError):
    kind = RegistryErrorKind.ALREADY_FILED


class NotFoundError(RegistryError):
    kind = RegistryErrorKind.NOT_FOUND


class PermissionDeniedError(RegistryError):
    kind = RegistryErrorKind.PERMISSION_DENIED


class ConsistencyFault(RuntimeError):
    """Internal invariant broken: partial commit, index/archive mismatch,
    or non-sequential filing id. Never returned to callers."""


class PersistenceError(RuntimeError):
    """The filing journal could not be written. Nothing was committed."""


class JournalIntegrityError(ValueError):
    """A stored journal failed verification on load."""
