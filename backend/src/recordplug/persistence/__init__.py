"""Persistence layer - record service used by the local host."""

from recordplug.persistence.config import HostConfig, create_service_factory
from recordplug.persistence.sqlite import SQLiteOrganizationService, SQLiteServiceFactory

__all__ = [
    "HostConfig",
    "SQLiteOrganizationService",
    "SQLiteServiceFactory",
    "create_service_factory",
]
