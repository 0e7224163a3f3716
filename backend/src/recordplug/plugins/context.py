"""Per-invocation context handed to plugin handlers.

A handler builds one LocalPluginContext from the ServiceProvider it was
called with and uses it as a context manager:

    with LocalPluginContext(service_provider, entity_class=LeaveRequest) as ctx:
        ctx.trace("starting")
        target = ctx.target_entity

The context is never stored on the plugin and never shared between
handlers or threads.
"""

from typing import Generic, TypeVar

from recordplug.core.errors import PluginConfigurationError
from recordplug.core.types import Entity, EntityReference
from recordplug.plugins.session import OrganizationServiceContext
from recordplug.plugins.types import (
    ExecutionContext,
    OrganizationService,
    OrganizationServiceFactory,
    ServiceProvider,
    Stage,
    TracingService,
)

T = TypeVar("T", bound=Entity)

TARGET = "Target"


class LocalPluginContext(Generic[T]):
    """Resolved services and lazy record views for one invocation.

    Attributes:
        service_provider: The raw provider the handler was called with
        tracing_service: Trace sink, or None if the host supplies none
        execution_context: Description of the current invocation
        service_factory: Factory for record services
        organization_service: Record service acting as the step's user
        session: Unit-of-work session, closed when the context exits
    """

    def __init__(
        self,
        service_provider: ServiceProvider | None,
        entity_class: type[T] = Entity,  # type: ignore[assignment]
    ):
        if service_provider is None:
            raise PluginConfigurationError("service_provider is required")

        self.service_provider = service_provider
        self.entity_class = entity_class
        self.tracing_service: TracingService | None = service_provider.tracing_service
        self.execution_context: ExecutionContext = service_provider.execution_context
        self.service_factory: OrganizationServiceFactory = service_provider.service_factory
        self.organization_service: OrganizationService = (
            self.service_factory.create_organization_service(self.execution_context.user_id)
        )
        self.session = OrganizationServiceContext(self.organization_service)

    def __enter__(self) -> "LocalPluginContext[T]":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Release the session. Safe to call more than once."""
        self.session.close()

    @property
    def stage(self) -> Stage:
        return Stage(self.execution_context.stage)

    @property
    def depth(self) -> int:
        return self.execution_context.depth

    @property
    def message_name(self) -> str:
        return self.execution_context.message_name

    @property
    def primary_entity_name(self) -> str:
        return self.execution_context.primary_entity_name

    def trace(self, message: str) -> None:
        """Write a trace line tagged with correlation and initiating user ids."""
        if not message or not message.strip() or self.tracing_service is None:
            return
        self.tracing_service.trace(
            "{0}, Correlation Id: {1}, Initiating User: {2}",
            message,
            self.execution_context.correlation_id,
            self.execution_context.initiating_user_id,
        )

    @property
    def target_entity(self) -> Entity | None:
        """The in-flight record from the "Target" input parameter.

        Returned as-is (not projected to ``entity_class``) so edits made in
        a Pre stage are the edits the platform persists.
        """
        target = self.execution_context.input_parameters.get(TARGET)
        return target if isinstance(target, Entity) else None

    @property
    def target_entity_reference(self) -> EntityReference | None:
        """The "Target" input parameter when the message carries only a reference."""
        target = self.execution_context.input_parameters.get(TARGET)
        return target if isinstance(target, EntityReference) else None

    @property
    def pre_image(self) -> T | None:
        """First registered pre image, or None if the step has none."""
        return self._first_image(self.execution_context.pre_entity_images)

    @property
    def post_image(self) -> T | None:
        """First registered post image, or None if the step has none."""
        return self._first_image(self.execution_context.post_entity_images)

    def _first_image(self, images) -> T | None:
        for image in images.values():
            return image.to_entity(self.entity_class)
        return None
