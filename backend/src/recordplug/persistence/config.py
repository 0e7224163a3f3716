"""Host configuration and record service factory."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from recordplug.persistence.sqlite import SQLiteServiceFactory, connect


@dataclass
class HostConfig:
    """Configuration for the local host.

    Only sqlite:/// URLs are supported.
    """

    url: str
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> HostConfig:
        """Create config from environment variables.

        Resolution order:
        1. DATABASE_URL env var
        2. RECORDPLUG_DB_PATH env var (converted to sqlite:/// URL)
        3. Default: sqlite:///recordplug.db
        """
        log_level = os.environ.get("RECORDPLUG_LOG_LEVEL", "INFO").upper()

        url = os.environ.get("DATABASE_URL")
        if url:
            return cls(url=url, log_level=log_level)

        db_path = os.environ.get("RECORDPLUG_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}", log_level=log_level)

        return cls(url="sqlite:///recordplug.db", log_level=log_level)

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def db_path(self) -> str:
        """Filesystem path from a sqlite:/// URL (":memory:" if empty)."""
        if not self.is_sqlite:
            raise ValueError(f"Unsupported database URL scheme: {self.url}")
        return self.url.replace("sqlite:///", "", 1) or ":memory:"

    @property
    def logging_level(self) -> int:
        level = logging.getLevelName(self.log_level)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {self.log_level}")
        return level


def create_service_factory(config: HostConfig) -> SQLiteServiceFactory:
    """Open the configured database and return a factory over it.

    Raises:
        ValueError: For unsupported URL schemes.
    """
    return SQLiteServiceFactory(connect(config.db_path))
