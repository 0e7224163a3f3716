"""Unit-of-work session over an OrganizationService."""

import logging

from recordplug.core.types import Entity
from recordplug.plugins.types import OrganizationService

logger = logging.getLogger(__name__)


class OrganizationServiceContext:
    """Tracks records changed by a handler and writes them on save_changes().

    Opened by LocalPluginContext for each invocation and closed when the
    context exits. A closed session rejects further use.
    """

    def __init__(self, service: OrganizationService):
        self.service = service
        self._pending: dict[tuple[str, str], Entity] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def update_object(self, entity: Entity) -> None:
        """Mark a record for update on the next save_changes()."""
        self._check_open()
        if entity.id is None:
            raise ValueError(f"Cannot track {entity.logical_name} record without an id")
        self._pending[(entity.logical_name, entity.id)] = entity

    def save_changes(self) -> int:
        """Write every tracked record. Returns the number of updates issued."""
        self._check_open()
        pending = list(self._pending.values())
        for entity in pending:
            self.service.update(entity)
        self._pending.clear()
        return len(pending)

    def close(self) -> None:
        if self._closed:
            return
        if self._pending:
            logger.warning(
                "Session closed with %d unsaved change(s); discarding",
                len(self._pending),
            )
            self._pending.clear()
        self._closed = True

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("OrganizationServiceContext is closed")
