"""Named plugin classes the local host can run.

On the platform a plugin is bound to its steps by assembly and type name.
Locally the CLI and tests look plugins up by a short name instead; bundled
plugins declare theirs with ``@plugin("Name")``.
"""

import logging
from collections.abc import Callable

from recordplug.plugins.base import BasePlugin

logger = logging.getLogger(__name__)

PluginClass = type[BasePlugin]


class PluginCatalog:
    """Class-level map from plugin name to BasePlugin subclass.

    The first class bound to a name wins. Binding a different class to a
    taken name is ignored with a warning, since step registrations refer to
    plugins by name only.
    """

    _plugins: dict[str, PluginClass] = {}

    @classmethod
    def register(cls, name: str, plugin_class: PluginClass) -> None:
        if not (isinstance(plugin_class, type) and issubclass(plugin_class, BasePlugin)):
            raise TypeError(f"Plugin '{name}' must be a BasePlugin subclass, got {plugin_class!r}")
        existing = cls._plugins.get(name)
        if existing is None:
            cls._plugins[name] = plugin_class
        elif existing is not plugin_class:
            logger.warning(
                "Plugin name '%s' already bound to %s; ignoring %s",
                name,
                existing.__qualname__,
                plugin_class.__qualname__,
            )

    @classmethod
    def get(cls, name: str) -> PluginClass:
        """Look up a plugin class.

        Raises:
            ValueError: If no plugin has that name; the message lists the
                known names
        """
        try:
            return cls._plugins[name]
        except KeyError:
            known = ", ".join(cls.list_registered()) or "(none)"
            raise ValueError(f"Plugin '{name}' is not registered. Known plugins: {known}") from None

    @classmethod
    def create(
        cls,
        name: str,
        unsecure_config: str | None = None,
        secure_config: str | None = None,
    ) -> BasePlugin:
        """Construct a plugin the way the platform does for one step."""
        return cls.get(name)(unsecure_config, secure_config)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._plugins

    @classmethod
    def list_registered(cls) -> list[str]:
        return sorted(cls._plugins)

    @classmethod
    def clear(cls) -> None:
        cls._plugins.clear()


def plugin(name: str) -> Callable[[PluginClass], PluginClass]:
    """Bind a BasePlugin subclass to ``name`` in the PluginCatalog."""

    def bind(plugin_class: PluginClass) -> PluginClass:
        PluginCatalog.register(name, plugin_class)
        return plugin_class

    return bind


def register_builtin_plugins() -> None:
    """Make the bundled plugins available in the catalog."""
    from recordplug.business.plugins import LeavePostUpdate

    PluginCatalog.register("LeavePostUpdate", LeavePostUpdate)
