"""Runtime visualisation: one source plugin plus one style plugin.

Configuration shape:

    {
        "source": {"plugin_id": "dvf_ckan_resource", "options": {"uri": "..."}},
        "style": {"plugin_id": "dvf_table", "options": {"data": {...}}},
    }
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .plugins import PluginRegistry, source_plugins, style_plugins
from .sources.base import Record, VisualisationSourceBase
from .styles.base import VisualisationStyleBase

if TYPE_CHECKING:
    from django.db.models import Model

logger = logging.getLogger(__name__)


class Visualisation:
    """Tie a source and a style together for one configured dataset.

    Plugins are created lazily from their registries the first time they are
    requested; records are loaded once per instance.
    """

    def __init__(
        self,
        configuration: Mapping[str, Any],
        *,
        entity: Model | None = None,
        sources: PluginRegistry = source_plugins,
        styles: PluginRegistry = style_plugins,
    ) -> None:
        self.configuration = dict(configuration)
        self.entity = entity
        self._sources = sources
        self._styles = styles
        self._source_plugin: VisualisationSourceBase | None = None
        self._style_plugin: VisualisationStyleBase | None = None
        self._data: list[Record] | None = None

    def get_configuration(self, key: str | None = None) -> Any:
        """Return the full configuration, or the block stored under `key`."""

        if key is None:
            return self.configuration
        return self.configuration.get(key)

    def get_entity(self) -> Model | None:
        return self.entity

    def get_source_plugin(self) -> VisualisationSourceBase:
        if self._source_plugin is None:
            plugin_id, options = self._plugin_settings("source")
            definition = self._sources.get(plugin_id)
            self._source_plugin = definition.plugin_class.create(options, plugin_id, definition, self)
        return self._source_plugin

    def get_style_plugin(self) -> VisualisationStyleBase:
        if self._style_plugin is None:
            plugin_id, options = self._plugin_settings("style")
            definition = self._styles.get(plugin_id)
            self._style_plugin = definition.plugin_class.create(options, plugin_id, definition, self)
        return self._style_plugin

    def data(self) -> list[Record]:
        """Return the source records in source order."""

        if self._data is None:
            self._data = list(self.get_source_plugin().get_records().values())
            logger.debug("Loaded %d records for visualisation", len(self._data))
        return self._data

    def build(self) -> Any:
        """Return the style's render-ready output."""

        return self.get_style_plugin().build()

    def _plugin_settings(self, key: str) -> tuple[str, dict[str, Any]]:
        block = self.configuration.get(key) or {}
        return str(block.get("plugin_id") or ""), dict(block.get("options") or {})
