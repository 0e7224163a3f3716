"""Event registry for plugins.

Each plugin owns one EventRegistry. Events are appended while the plugin
is being constructed; BasePlugin freezes the registry afterwards so the
same plugin instance can serve concurrent invocations without locking.
"""

from collections.abc import Iterator

from recordplug.core.errors import RegistryFrozenError
from recordplug.plugins.types import ExecutionContext, PluginEvent


def _filter_matches(expected: str | None, actual: str | None) -> bool:
    if expected is None or not expected.strip():
        return True
    return expected.casefold() == (actual or "").casefold()


class EventRegistry:
    """Ordered, append-only collection of PluginEvents."""

    def __init__(self) -> None:
        self._events: list[PluginEvent] = []
        self._frozen = False

    def register(self, event: PluginEvent) -> None:
        """Append an event.

        Raises:
            RegistryFrozenError: If the owning plugin has finished construction
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {event.action_name}: "
                "events must be registered in the plugin constructor"
            )
        self._events.append(event)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def match(self, context: ExecutionContext) -> tuple[PluginEvent, ...]:
        """Return the events that apply to ``context``, in registration order.

        Stage must match exactly. Entity and message filters are
        case-insensitive and blank filters match anything.
        """
        return tuple(
            event
            for event in self._events
            if int(event.stage) == context.stage
            and _filter_matches(event.message_name, context.message_name)
            and _filter_matches(event.entity_name, context.primary_entity_name)
        )

    def __iter__(self) -> Iterator[PluginEvent]:
        return iter(tuple(self._events))

    def __len__(self) -> int:
        return len(self._events)
