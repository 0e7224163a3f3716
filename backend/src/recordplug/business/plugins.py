"""Plugins bundled with recordplug."""

from typing import Any

import yaml

from recordplug.business.leave import LeaveLogic, LeaveRequest
from recordplug.core.errors import InvalidPluginExecutionError, PluginConfigurationError
from recordplug.core.names import EntityNames, MessageNames
from recordplug.plugins.base import BasePlugin
from recordplug.plugins.catalog import plugin
from recordplug.plugins.context import LocalPluginContext
from recordplug.plugins.types import ServiceProvider, Stage


def parse_unsecure_config(raw: str | None) -> dict[str, Any]:
    """Parse a step's unsecure configuration as a YAML mapping."""
    if raw is None or not raw.strip():
        return {}
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise PluginConfigurationError(f"Invalid unsecure configuration: {e}") from e
    if not isinstance(data, dict):
        raise PluginConfigurationError("Unsecure configuration must be a YAML mapping")
    return data


@plugin("LeavePostUpdate")
class LeavePostUpdate(BasePlugin):
    """Deducts approved leave from the requester's balance.

    Unsecure configuration (YAML, optional):
        strictBalance: true   # fail when the balance record is missing or duplicated
    """

    def __init__(self, unsecure_config: str | None = None, secure_config: str | None = None):
        strict = parse_unsecure_config(unsecure_config).get("strictBalance", False)
        if not isinstance(strict, bool):
            raise PluginConfigurationError(
                f"strictBalance must be true or false, got {strict!r}"
            )
        self._strict_balance = strict
        super().__init__(unsecure_config, secure_config)

    @property
    def strict_balance(self) -> bool:
        return self._strict_balance

    def register_events(self) -> None:
        self.register_event(
            Stage.POST_OPERATION,
            MessageNames.Update,
            EntityNames.new_leaverequests,
            self.execute_plugin_logic,
        )

    def execute_plugin_logic(self, service_provider: ServiceProvider) -> None:
        with LocalPluginContext(service_provider, entity_class=LeaveRequest) as ctx:
            target = ctx.target_entity
            if target is None or target.id is None:
                raise InvalidPluginExecutionError("Update of a leave request carried no target")

            logic = LeaveLogic(ctx.organization_service, ctx.session, strict=self._strict_balance)
            outcome = logic.update_approved_leave(target)
            ctx.trace(f"Leave request {target.id}: {outcome.value}")
