"""Exception types raised by visualisation plugins and their collaborators."""

from __future__ import annotations


class DvfError(Exception):
    """Base class for visualisation framework errors."""


class TransportError(DvfError):
    """A remote data API could not be reached or answered with an HTTP error."""


class ParseError(DvfError):
    """A remote payload or a configured JSON expression could not be decoded."""


class PluginNotFoundError(DvfError, KeyError):
    """No plugin is registered under the requested id."""

    def __init__(self, registry: str, plugin_id: str) -> None:
        super().__init__(f"No {registry} plugin registered with id {plugin_id!r}.")
        self.registry = registry
        self.plugin_id = plugin_id

    def __str__(self) -> str:
        return self.args[0]
