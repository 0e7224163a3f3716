"""Local stand-in for the platform.

Builds the ExecutionContext and ServiceProvider for a single call and
hands them to a plugin, the way the platform does for each registered
step. The host never moves between stages on its own; callers pick the
stage of every invocation.
"""

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from recordplug.core.types import Entity, EntityReference
from recordplug.plugins.base import BasePlugin
from recordplug.plugins.context import TARGET
from recordplug.plugins.tracing import LoggingTracingService
from recordplug.plugins.types import (
    ExecutionContext,
    OrganizationServiceFactory,
    ServiceProvider,
    Stage,
)

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    """One completed (or failed) call into a plugin."""

    execution_context: ExecutionContext
    tracing_service: LoggingTracingService

    @property
    def trace_lines(self) -> list[str]:
        return self.tracing_service.lines


class PluginHost:
    """Invokes plugins against a record service factory."""

    def __init__(self, service_factory: OrganizationServiceFactory):
        self.service_factory = service_factory

    def build_context(
        self,
        stage: Stage,
        message_name: str,
        entity_name: str,
        target: Entity | EntityReference | None = None,
        pre_images: Mapping[str, Entity] | None = None,
        post_images: Mapping[str, Entity] | None = None,
        user_id: str | None = None,
        initiating_user_id: str | None = None,
        input_parameters: Mapping[str, Any] | None = None,
        depth: int = 1,
    ) -> ExecutionContext:
        parameters = dict(input_parameters or {})
        if target is not None:
            parameters[TARGET] = target
        return ExecutionContext(
            stage=int(stage),
            message_name=message_name,
            primary_entity_name=entity_name,
            depth=depth,
            correlation_id=str(uuid.uuid4()),
            initiating_user_id=initiating_user_id or user_id,
            user_id=user_id,
            input_parameters=parameters,
            pre_entity_images=pre_images or {},
            post_entity_images=post_images or {},
        )

    def invoke(
        self,
        plugin: BasePlugin,
        context: ExecutionContext,
        tracing_service: LoggingTracingService | None = None,
    ) -> Invocation:
        """Call ``plugin.execute`` once for ``context``.

        Pass ``tracing_service`` to keep hold of the trace when the plugin
        fails. Exceptions raised by the plugin propagate unchanged.
        """
        invocation = Invocation(
            execution_context=context,
            tracing_service=tracing_service or LoggingTracingService(),
        )
        provider = ServiceProvider(
            execution_context=context,
            service_factory=self.service_factory,
            tracing_service=invocation.tracing_service,
        )
        logger.info(
            "Invoking %s for %s %s (stage %d, correlation %s)",
            plugin.type_name,
            context.message_name,
            context.primary_entity_name,
            context.stage,
            context.correlation_id,
        )
        plugin.execute(provider)
        return invocation
