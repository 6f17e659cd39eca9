"""Registry configuration loaded from the environment.

Values come from process environment variables, optionally seeded from
a ``.env`` file:

    PRIORITY_REGISTRY_OFFICE      office identity (administrator)
    PRIORITY_REGISTRY_DATA_DIR    directory holding the filing journal
    PRIORITY_REGISTRY_JOURNAL     journal file name (default filings.jsonl)
    PRIORITY_REGISTRY_LOG_LEVEL   logging level name (default WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values


DEFAULT_OFFICE = "office"
DEFAULT_DATA_DIR = Path("data")
DEFAULT_JOURNAL = "filings.jsonl"
DEFAULT_LOG_LEVEL = "WARNING"

_ENV_PREFIX = "PRIORITY_REGISTRY_"


@dataclass(frozen=True)
class RegistryConfig:
    """Settings for one registry instance."""
    office_identity: str = DEFAULT_OFFICE
    data_dir: Optional[Path] = None
    journal_name: str = DEFAULT_JOURNAL
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def journal_path(self) -> Optional[Path]:
        """Journal location, or None for an in-memory registry."""
        if self.data_dir is None:
            return None
        return self.data_dir / self.journal_name

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> RegistryConfig:
        """Build a config from a .env file overlaid by the environment.

        Process environment wins over the file.
        """
        values: dict[str, Optional[str]] = {}
        if env_file is not None and env_file.exists():
            values.update(dotenv_values(env_file))
        values.update(os.environ if environ is None else environ)

        def _get(name: str) -> Optional[str]:
            value = values.get(_ENV_PREFIX + name)
            return value.strip() if value and value.strip() else None

        office = _get("OFFICE") or DEFAULT_OFFICE
        data_dir = _get("DATA_DIR")
        log_level = (_get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown log level: {log_level}")

        return cls(
            office_identity=office,
            data_dir=Path(data_dir) if data_dir else DEFAULT_DATA_DIR,
            journal_name=_get("JOURNAL") or DEFAULT_JOURNAL,
            log_level=log_level,
        )


def configure_logging(level: str = DEFAULT_LOG_LEVEL) -> None:
    """Basic stderr logging for command-line use."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
