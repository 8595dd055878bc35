"""Base class for visualisation source plugins."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, ClassVar

from dvf.conf import dvf_setting
from dvf.plugins import ConfigurablePluginMixin, PluginDefinition

if TYPE_CHECKING:
    from dvf.visualisation import Visualisation

logger = logging.getLogger(__name__)

Record = dict[str, Any]

GLOBAL_DEFAULT_EXPIRY = "_global_default"


class VisualisationSourceBase(ConfigurablePluginMixin, ABC):
    """Load tabular records for a visualisation.

    A source exposes two operations to the rest of the framework:
    `get_fields()` (field id -> label) and `get_records()` (record id -> record).
    Records are plain dicts keyed by field id.
    """

    plugin_definition: ClassVar[PluginDefinition]

    def __init__(
        self,
        configuration: Mapping[str, Any],
        plugin_id: str,
        plugin_definition: PluginDefinition | None,
        visualisation: Visualisation | None = None,
    ) -> None:
        self.configuration = dict(configuration)
        self.plugin_id = plugin_id
        self.definition = plugin_definition
        self.visualisation = visualisation

    @classmethod
    def create(
        cls,
        configuration: Mapping[str, Any],
        plugin_id: str,
        plugin_definition: PluginDefinition | None,
        visualisation: Visualisation | None = None,
    ) -> VisualisationSourceBase:
        """Build the plugin with its default collaborators.

        Subclasses that need services (caches, API clients) override this to
        resolve them from settings and pass them to `__init__` explicitly.
        """

        return cls(configuration, plugin_id, plugin_definition, visualisation)

    def default_configuration(self) -> dict[str, Any]:
        return {"uri": ""}

    def get_plugin_id(self) -> str:
        return self.plugin_id

    def get_visualisation(self) -> Visualisation | None:
        return self.visualisation

    def get_style_data_options(self) -> dict[str, Any]:
        """Return the `data` block of the visualisation's style configuration."""

        if self.visualisation is None:
            return {}
        style = self.visualisation.get_configuration("style") or {}
        options = style.get("options") or {}
        data = options.get("data") or {}
        return dict(data) if isinstance(data, Mapping) else {}

    def get_cache_expiry(self) -> int:
        """Return the cache lifetime, in seconds, for fetched payloads.

        The style's `cache_expiry` option selects a lifetime; an empty value or
        the "global default" choice uses `DVF["CACHE_EXPIRY"]`. Zero disables
        caching.
        """

        default = int(dvf_setting("CACHE_EXPIRY"))
        value = self.get_style_data_options().get("cache_expiry")
        if value in (None, "", GLOBAL_DEFAULT_EXPIRY):
            return default
        try:
            return max(int(value), 0)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid cache expiry %r for source %s", value, self.plugin_id)
            return default

    @abstractmethod
    def get_fields(self) -> dict[str, str]:
        """Return the available fields as an ordered `{field_id: label}` mapping."""

    @abstractmethod
    def get_records(self) -> dict[Any, Record]:
        """Return records keyed by record id."""
