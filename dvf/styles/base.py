"""Base class for visualisation style plugins.

A style decides which source fields are shown, what they are called and how
records are grouped. The resolver methods here are shared by every style:

- `fields()` / `field_labels()` turn the editor's field selection and label
  override text into an ordered `{field_id: label}` mapping,
- `get_source_records()` groups records by the optional split field,
- `get_column_override_values()` lists the columns (or x-axis tick values) an
  editor can attach per-column overrides to.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar, Final

from django.core.exceptions import ValidationError
from django.core.validators import URLValidator
from django.db.models.fields.files import FieldFile
from django.utils.html import escape

from dvf.helpers import is_numeric, split_lines
from dvf.plugins import ConfigurablePluginMixin, PluginDefinition
from dvf.sources.base import Record

if TYPE_CHECKING:
    from django.db.models import Model

    from dvf.forms import VisualisationStyleSettingsForm
    from dvf.sources.base import VisualisationSourceBase
    from dvf.visualisation import Visualisation

logger = logging.getLogger(__name__)

ALL_RECORDS_GROUP: Final[str] = "all"
RESERVED_ID_FIELD: Final[str] = "_id"
DOWNLOAD_FIELD_TYPES: Final[tuple[str, ...]] = ("dvf_url", "dvf_file")

CACHE_OPTIONS: Final[tuple[tuple[str, str], ...]] = (
    ("_global_default", "Global default"),
    ("0", "No cache"),
    ("1800", "30 minutes"),
    ("3600", "1 hour"),
    ("21600", "6 hours"),
    ("86400", "1 day"),
    ("604800", "1 week"),
    ("2592000", "1 month"),
    ("15552000", "6 months"),
)

# Relative/internal URLs: URL-safe characters and percent escapes only.
_INTERNAL_URL_RE = re.compile(r"^(?:[\w#!:.?+=&@$'~*,;/()\[\]\-]|%[0-9a-f]{2})+$", re.IGNORECASE)
_absolute_url_validator = URLValidator()


class VisualisationStyleBase(ConfigurablePluginMixin, ABC):
    """Shared behaviour for style plugins."""

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
    ) -> VisualisationStyleBase:
        """Build the plugin; styles need no collaborators beyond the visualisation."""

        return cls(configuration, plugin_id, plugin_definition, visualisation)

    def default_configuration(self) -> dict[str, Any]:
        return {
            "data": {
                "fields": [],
                "field_labels": "",
                "split_field": "",
                "cache_expiry": "",
                "column_overrides": {},
                "data_filters": {},
            },
        }

    def get_visualisation(self) -> Visualisation | None:
        return self.visualisation

    def get_source_plugin(self) -> VisualisationSourceBase:
        if self.visualisation is None:
            raise RuntimeError(f"Style plugin {self.plugin_id!r} is not attached to a visualisation.")
        return self.visualisation.get_source_plugin()

    def settings_form(self, data: Mapping[str, Any] | None = None, **kwargs: Any) -> VisualisationStyleSettingsForm:
        """Return the admin settings form for this style, bound when `data` is given."""

        from dvf.forms import VisualisationStyleSettingsForm

        return VisualisationStyleSettingsForm(data, style=self, **kwargs)

    def get_cache_options(self) -> tuple[tuple[str, str], ...]:
        """Return `(seconds, label)` choices for the cache expiry select."""

        return CACHE_OPTIONS

    # Source fields and records.

    def get_source_field_options(self) -> dict[str, str]:
        """Return source fields as `{field_id: escaped_label}`."""

        fields = self.get_source_plugin().get_fields()
        return {field_id: escape(label) for field_id, label in fields.items()} if fields else {}

    def get_source_records(self) -> dict[Any, list[Record]]:
        """Group the visualisation's records by the split field.

        Records missing the split field, or every record when no split field is
        configured, land in the "all" group. Each record appears exactly once.
        """

        records: dict[Any, list[Record]] = {}
        split_field = self.split_field()
        for record in self._data():
            if split_field and split_field in record:
                records.setdefault(record[split_field], []).append(record)
            else:
                records.setdefault(ALL_RECORDS_GROUP, []).append(record)
        return records

    def get_source_field_values(self, field_id: str) -> list[Any]:
        """Return every value of `field_id` across the grouped source records."""

        values: list[Any] = []
        for group_records in self.get_source_records().values():
            for record in group_records:
                if field_id in record:
                    values.append(record[field_id])
        return values

    # Field selection and labels.

    def fields(self) -> list[str]:
        """Return the configured field ids with empty entries removed."""

        return [field_id for field_id in self.config("data", "fields") or [] if field_id]

    def field_labels(self) -> dict[str, str]:
        """Return `{field_id: label}` for selected fields, with overrides applied.

        Order follows the source's field order. Each override line has the form
        `original|new` and only applies to a field already in the mapping.
        """

        selected = set(self.fields())
        labels = {
            field_id: label
            for field_id, label in self.get_source_field_options().items()
            if field_id in selected
        }

        for line in split_lines(self.config("data", "field_labels")):
            parts = line.strip().split("|")
            if len(parts) == 2 and parts[0] in labels:
                labels[parts[0]] = parts[1]
            elif line.strip():
                logger.debug("Ignoring label override %r for style %s", line, self.plugin_id)

        return labels

    def field_labels_original(self) -> list[str]:
        """Return every source field id except the reserved `_id` field."""

        return [field_id for field_id in self.get_source_field_options() if field_id != RESERVED_ID_FIELD]

    def field_label(self, field_id: str) -> str:
        return self.field_labels().get(field_id, "")

    def split_field(self) -> str:
        return self.config("data", "split_field") or ""

    # Column metadata.

    def get_column_override_values(self) -> list[Any]:
        """Return the columns an editor can override.

        When the x-axis is grouped by explicit tick values from a field, the
        columns are that field's values in data order. Otherwise they are the
        source field ids.
        """

        tick_field = self.config("axis", "x", "tick", "values", "field")
        if self.config("axis", "x", "x_axis_grouping") == "values" and tick_field:
            return [record[tick_field] for record in self._data() if tick_field in record]
        return self.field_labels_original()

    def columns_are_numeric(self, rows: Sequence[Sequence[Any]]) -> bool:
        """Return True when every value after the header row is numeric.

        Args:
            rows: Table rows; the first row is the header and is skipped.
        """

        return all(is_numeric(value) for row in rows[1:] for value in row)

    # Dataset download.

    def get_dataset_download_uri(
        self,
        entity: Model,
        allowed_field_types: Iterable[str] = DOWNLOAD_FIELD_TYPES,
    ) -> str | bool:
        """Return the download URI of the dataset attached to `entity`.

        The first model field whose `dvf_field_type` is allowed and that holds a
        value supplies the URI.

        Returns:
            The URI when valid, otherwise False.
        """

        allowed = set(allowed_field_types)
        uri = ""
        for field in entity._meta.concrete_fields:
            if getattr(field, "dvf_field_type", None) not in allowed:
                continue
            uri = _field_uri(field.value_from_object(entity))
            if uri:
                break
        return self.is_valid_download_uri(uri)

    def is_valid_download_uri(self, uri: str) -> str | bool:
        """Return `uri` if it is a valid internal or absolute URL, else False."""

        if not uri:
            return False
        if _INTERNAL_URL_RE.match(uri):
            return uri
        try:
            _absolute_url_validator(uri)
        except ValidationError:
            return False
        return uri

    @abstractmethod
    def build(self) -> Any:
        """Return the render-ready structure for this style."""

    def _data(self) -> list[Record]:
        if self.visualisation is None:
            return []
        return self.visualisation.data()


def _field_uri(value: Any) -> str:
    """Return the URI held by a model field value (URL string or stored file)."""

    if isinstance(value, FieldFile):
        return value.url if value.name else ""
    return str(value or "")
