"""Local host used by the CLI and tests in place of the platform."""

from recordplug.host.events import EventFile, load_event, parse_event
from recordplug.host.sandbox import Invocation, PluginHost

__all__ = ["EventFile", "Invocation", "PluginHost", "load_event", "parse_event"]
