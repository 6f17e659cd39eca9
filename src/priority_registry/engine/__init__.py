"""Request validation for the registry."""

from priority_registry.engine.validator import DigestValidator, digest_from_hex

__all__ = ["DigestValidator", "digest_from_hex"]
