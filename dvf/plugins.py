"""Plugin registries and the configuration mixin shared by all plugins.

Visualisations are assembled from two kinds of plugin: a *source* that loads
tabular records and a *style* that turns those records into something
renderable. Plugins register under a stable id with the `register()` class
decorator of the matching registry:

    @source_plugins.register("my_source", label="My source")
    class MySource(VisualisationSourceBase):
        ...

Apps declare their plugins in a `visualisation_plugins` module, which
`DvfConfig.ready()` imports for every installed app.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from .exceptions import PluginNotFoundError
from .helpers import deep_merge

logger = logging.getLogger(__name__)

PluginT = TypeVar("PluginT", bound=type)


@dataclass(frozen=True, slots=True)
class PluginDefinition:
    """Metadata describing a registered plugin.

    Args:
        id: Stable plugin id stored in visualisation configuration.
        label: Human-readable name shown in admin select lists.
        category: Optional grouping label (e.g. "CKAN").
        visualisation_types: Field types the plugin can be attached to.
        plugin_class: The registered class.
    """

    id: str
    label: str
    plugin_class: type
    category: str = ""
    visualisation_types: tuple[str, ...] = ()


class PluginRegistry:
    """Map plugin ids to plugin classes for one kind of plugin."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self._definitions: dict[str, PluginDefinition] = {}

    def register(
        self,
        plugin_id: str,
        *,
        label: str,
        category: str = "",
        visualisation_types: tuple[str, ...] = (),
    ) -> Callable[[PluginT], PluginT]:
        """Return a class decorator registering a plugin under `plugin_id`."""

        def decorator(plugin_class: PluginT) -> PluginT:
            if plugin_id in self._definitions:
                logger.warning("%s plugin %r already registered; overwriting", self.kind, plugin_id)
            definition = PluginDefinition(
                id=plugin_id,
                label=label,
                plugin_class=plugin_class,
                category=category,
                visualisation_types=tuple(visualisation_types),
            )
            self._definitions[plugin_id] = definition
            plugin_class.plugin_definition = definition
            logger.debug("Registered %s plugin %r", self.kind, plugin_id)
            return plugin_class

        return decorator

    def unregister(self, plugin_id: str) -> None:
        """Remove a plugin registration if present."""

        self._definitions.pop(plugin_id, None)

    def get(self, plugin_id: str) -> PluginDefinition:
        """Return the definition registered under `plugin_id`.

        Raises:
            PluginNotFoundError: When nothing is registered under the id.
        """

        try:
            return self._definitions[plugin_id]
        except KeyError:
            raise PluginNotFoundError(self.kind, plugin_id) from None

    def definitions(self) -> tuple[PluginDefinition, ...]:
        """Return all definitions in registration order."""

        return tuple(self._definitions.values())

    def choices(self) -> list[tuple[str, str]]:
        """Return `(id, label)` pairs sorted by label, for form select widgets."""

        return sorted(((d.id, d.label) for d in self._definitions.values()), key=lambda pair: pair[1])

    def __contains__(self, plugin_id: object) -> bool:
        return plugin_id in self._definitions


source_plugins = PluginRegistry("source")
style_plugins = PluginRegistry("style")


class ConfigurablePluginMixin:
    """Configuration handling shared by source and style plugins.

    The effective configuration is always the deep merge of
    `default_configuration()` with the configuration the plugin was given.
    """

    configuration: dict[str, Any]

    def default_configuration(self) -> dict[str, Any]:
        """Return the default configuration for the plugin."""

        return {}

    def get_configuration(self) -> dict[str, Any]:
        """Return the defaults merged with the stored configuration."""

        return deep_merge(self.default_configuration(), self.configuration)

    def set_configuration(self, configuration: Mapping[str, Any]) -> None:
        """Replace the stored configuration."""

        self.configuration = dict(configuration)

    def config(self, *keys: str) -> Any:
        """Return a nested configuration value, or None when the path is missing.

        Example:
            `self.config("data", "fields")` reads `configuration["data"]["fields"]`.
        """

        value: Any = self.get_configuration()
        for key in keys:
            if not isinstance(value, Mapping) or key not in value:
                return None
            value = value[key]
        return value
