"""recordplug plugin core.

Registers a plugin's interest in (stage, message, entity) combinations and
dispatches platform calls to the matching handlers:
- PreValidation: before the platform validates the operation
- PreOperation: inside the transaction, before the record is written
- PostOperation: inside the transaction, after the record is written

Usage:
    from recordplug.plugins import BasePlugin, LocalPluginContext, Stage

    class ContactPostCreate(BasePlugin):
        def register_events(self) -> None:
            self.register_event(Stage.POST_OPERATION, "Create", "contact", self.on_create)

        def on_create(self, service_provider) -> None:
            with LocalPluginContext(service_provider) as ctx:
                ctx.trace(f"created {ctx.target_entity.id}")
"""

from recordplug.plugins.base import BasePlugin
from recordplug.plugins.context import LocalPluginContext
from recordplug.plugins.registry import EventRegistry
from recordplug.plugins.session import OrganizationServiceContext
from recordplug.plugins.tracing import LoggingTracingService
from recordplug.plugins.types import (
    ExecutionContext,
    OrganizationService,
    OrganizationServiceFactory,
    PluginAction,
    PluginEvent,
    ServiceProvider,
    Stage,
    TracingService,
)

__all__ = [
    "BasePlugin",
    "EventRegistry",
    "ExecutionContext",
    "LocalPluginContext",
    "LoggingTracingService",
    "OrganizationService",
    "OrganizationServiceContext",
    "OrganizationServiceFactory",
    "PluginAction",
    "PluginEvent",
    "ServiceProvider",
    "Stage",
    "TracingService",
]
