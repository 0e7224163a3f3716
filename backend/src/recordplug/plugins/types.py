"""Plugin system types for recordplug.

Defines the contracts between the host platform and a plugin:
- Stage: pipeline stage a plugin step runs in
- PluginEvent: one registered interest (stage + filters + handler)
- ExecutionContext: read-only description of the current invocation
- ServiceProvider: typed bundle of services handed to ``execute``
- TracingService / OrganizationService / OrganizationServiceFactory: host services
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Any, Protocol, runtime_checkable

from recordplug.core.types import (
    ColumnSet,
    Entity,
    EntityCollection,
    QueryExpression,
)


class Stage(IntEnum):
    """Execution pipeline stages, numbered as the platform numbers them."""

    PRE_VALIDATION = 10
    PRE_OPERATION = 20
    POST_OPERATION = 40


def _frozen(mapping: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class ExecutionContext:
    """What the platform is doing right now.

    Attributes:
        stage: Numeric pipeline stage (see Stage)
        message_name: Operation being performed (Create, Update, ...)
        primary_entity_name: Logical name of the record type
        depth: Nesting depth of plugin-triggered operations
        correlation_id: Id shared by every call of one platform operation
        initiating_user_id: User who started the operation
        user_id: User the plugin step runs as
        input_parameters: Message inputs; "Target" holds the in-flight record
        pre_entity_images: Snapshots taken before the operation
        post_entity_images: Snapshots taken after the operation
    """

    stage: int
    message_name: str
    primary_entity_name: str
    depth: int = 1
    correlation_id: str | None = None
    initiating_user_id: str | None = None
    user_id: str | None = None
    input_parameters: Mapping[str, Any] = field(default_factory=dict)
    pre_entity_images: Mapping[str, Entity] = field(default_factory=dict)
    post_entity_images: Mapping[str, Entity] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # The mappings are read-only; the values in them (the target
        # record in particular) stay the same mutable objects.
        object.__setattr__(self, "input_parameters", _frozen(self.input_parameters))
        object.__setattr__(self, "pre_entity_images", _frozen(self.pre_entity_images))
        object.__setattr__(self, "post_entity_images", _frozen(self.post_entity_images))


@runtime_checkable
class TracingService(Protocol):
    def trace(self, format: str, *args: Any) -> None: ...


@runtime_checkable
class OrganizationService(Protocol):
    """Record access offered by the platform."""

    def retrieve(self, entity_name: str, id: str, column_set: ColumnSet) -> Entity: ...

    def retrieve_multiple(self, query: QueryExpression) -> EntityCollection: ...

    def create(self, entity: Entity) -> str: ...

    def update(self, entity: Entity) -> None: ...

    def delete(self, entity_name: str, id: str) -> None: ...


@runtime_checkable
class OrganizationServiceFactory(Protocol):
    def create_organization_service(self, user_id: str | None) -> OrganizationService: ...


@dataclass(frozen=True)
class ServiceProvider:
    """Services the platform hands to one plugin invocation."""

    execution_context: ExecutionContext
    service_factory: OrganizationServiceFactory
    tracing_service: TracingService | None = None


# Handler signature: (ServiceProvider) -> None
PluginAction = Callable[[ServiceProvider], None]


@dataclass(frozen=True)
class PluginEvent:
    """A (stage, entity, message) interest bound to a handler.

    Attributes:
        stage: Pipeline stage the handler runs in
        message_name: Message to react to; None or blank matches any message
        entity_name: Entity to react to; None or blank matches any entity
        plugin_action: Handler invoked with the raw ServiceProvider
    """

    stage: Stage
    message_name: str | None
    entity_name: str | None
    plugin_action: PluginAction

    @property
    def action_name(self) -> str:
        return getattr(self.plugin_action, "__name__", repr(self.plugin_action))
