"""Base class for plugins and the dispatch entry point.

The platform constructs a plugin once per registered step and then calls
``execute`` for every matching operation, possibly from several threads at
the same time. A plugin therefore holds only its configuration strings and
a frozen EventRegistry; everything per-call lives in a LocalPluginContext
that each handler creates for itself.

Example:
    class AccountPreCreate(BasePlugin):
        def register_events(self) -> None:
            self.register_event(
                Stage.PRE_OPERATION, MessageNames.Create, EntityNames.account, self.stamp
            )

        def stamp(self, service_provider: ServiceProvider) -> None:
            with LocalPluginContext(service_provider) as ctx:
                ctx.target_entity["description"] = "stamped"
"""

import logging
import traceback

from recordplug.core.errors import PluginConfigurationError
from recordplug.plugins.registry import EventRegistry
from recordplug.plugins.types import (
    ExecutionContext,
    PluginAction,
    PluginEvent,
    ServiceProvider,
    Stage,
    TracingService,
)

logger = logging.getLogger(__name__)


class BasePlugin:
    """Dispatches platform calls to the handlers a subclass registers."""

    def __init__(self, unsecure_config: str | None = None, secure_config: str | None = None):
        self._unsecure_config = unsecure_config
        self._secure_config = secure_config
        self._registry = EventRegistry()
        self.register_events()
        self._registry.freeze()

    def register_events(self) -> None:
        """Register the plugin's events. Called once from the constructor."""

    def register_event(
        self,
        stage: Stage,
        message_name: str | None,
        entity_name: str | None,
        plugin_action: PluginAction,
    ) -> None:
        self._registry.register(
            PluginEvent(
                stage=stage,
                message_name=message_name,
                entity_name=entity_name,
                plugin_action=plugin_action,
            )
        )

    @property
    def unsecure_config(self) -> str | None:
        """Unsecure configuration given when the step was registered."""
        return self._unsecure_config

    @property
    def secure_config(self) -> str | None:
        """Secure configuration given when the step was registered."""
        return self._secure_config

    @property
    def registered_events(self) -> EventRegistry:
        return self._registry

    @property
    def type_name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    def execute(self, service_provider: ServiceProvider | None) -> None:
        """Run every registered handler that matches the current invocation.

        Handlers run in registration order. If one raises, the exception is
        traced and re-raised unchanged and the remaining handlers are skipped.

        Raises:
            PluginConfigurationError: If ``service_provider`` is None
        """
        if service_provider is None:
            raise PluginConfigurationError("service_provider is required")

        tracing_service = service_provider.tracing_service
        context: ExecutionContext = service_provider.execution_context

        _trace(tracing_service, f"Entered {self.type_name}.execute()")
        try:
            for event in self._registry.match(context):
                _trace(
                    tracing_service,
                    f"{self.type_name} is firing for Entity: {context.primary_entity_name}, "
                    f"Message: {context.message_name}, Method: {event.action_name}",
                )
                event.plugin_action(service_provider)
        except Exception as e:
            _trace(tracing_service, "Exception: " + "".join(traceback.format_exception(e)))
            raise
        finally:
            _trace(tracing_service, f"Exiting {self.type_name}.execute()")


def _trace(tracing_service: TracingService | None, message: str) -> None:
    if tracing_service is None:
        logger.debug(message)
        return
    # Sinks may apply str.format to the first argument; keep braces in the
    # message out of it.
    tracing_service.trace("{0}", message)
