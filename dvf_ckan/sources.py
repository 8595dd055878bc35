"""CKAN datastore resource source plugin.

Field schemas and rows are read from CKAN's `datastore_search` action and
cached per resource. Remote failures never propagate: they are logged and the
visualisation renders an empty dataset.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, Literal

from django.core.cache import caches
from django.core.cache.backends.base import BaseCache

from dvf.conf import dvf_setting
from dvf.exceptions import DvfError
from dvf.helpers import validate_json
from dvf.plugins import PluginDefinition, source_plugins
from dvf.sources.base import Record, VisualisationSourceBase

from .client import CkanClient
from .parser import CkanResourceUrlParser

if TYPE_CHECKING:
    from dvf.visualisation import Visualisation

logger = logging.getLogger(__name__)

ObjectType = Literal["fields", "records"]

SEARCH_ACTION: Final[str] = "action/datastore_search"
RECORD_ID_FIELD: Final[str] = "_id"

_MISSING = object()


@dataclass(frozen=True, slots=True)
class DatastoreSearchResult:
    """The `result` block of a successful `datastore_search` response."""

    fields: list[dict[str, Any]]
    records: list[Record]
    total: int


@source_plugins.register(
    "dvf_ckan_resource",
    label="CKAN resource",
    category="CKAN",
    visualisation_types=("dvf_file", "dvf_url"),
)
class CkanResource(VisualisationSourceBase):
    """Read a CKAN datastore resource, paginating and caching the results."""

    def __init__(
        self,
        configuration: Mapping[str, Any],
        plugin_id: str,
        plugin_definition: PluginDefinition | None,
        visualisation: Visualisation | None = None,
        *,
        cache: BaseCache,
        ckan_client: CkanClient,
        url_parser: CkanResourceUrlParser | None = None,
        page_size: int | None = None,
    ) -> None:
        super().__init__(configuration, plugin_id, plugin_definition, visualisation)
        self.cache = cache
        self.ckan_client = ckan_client
        self.url_parser = url_parser or CkanResourceUrlParser()
        self.page_size = page_size or int(dvf_setting("CKAN_PAGE_SIZE"))

    @classmethod
    def create(
        cls,
        configuration: Mapping[str, Any],
        plugin_id: str,
        plugin_definition: PluginDefinition | None,
        visualisation: Visualisation | None = None,
    ) -> CkanResource:
        """Build the plugin with the configured cache and CKAN client."""

        return cls(
            configuration,
            plugin_id,
            plugin_definition,
            visualisation,
            cache=caches[dvf_setting("CKAN_CACHE_ALIAS")],
            ckan_client=CkanClient.from_settings(configuration.get("uri")),
        )

    def get_fields(self) -> dict[str, str]:
        """Return the resource's fields as `{field_id: field_id}` in API order."""

        cache_key = self.get_cache_key("fields")
        raw_fields = self.cache.get(cache_key, _MISSING)
        if raw_fields is _MISSING:
            raw_fields = self.fetch_fields()
            self.cache.set(cache_key, raw_fields, self.get_cache_expiry())

        return {field["id"]: field["id"] for field in raw_fields if isinstance(field, Mapping) and "id" in field}

    def fetch_fields(self) -> list[dict[str, Any]]:
        """Fetch the field schema with a one-row search; `[]` on failure."""

        query = {"id": self.get_resource_id(), "limit": 1, **self.get_data_filters()}
        result = self._datastore_search(query)
        return result.fields if result is not None else []

    def get_records(self) -> dict[Any, Record]:
        """Return records keyed by `_id`, restricted to the known fields.

        A record lacking a field is skipped for that field; a record lacking
        every known field does not appear at all. Rows without `_id` are keyed
        by `("row", position)` so they cannot collide with a datastore id.
        """

        cache_key = self.get_cache_key("records")
        raw_records = self.cache.get(cache_key, _MISSING)
        if raw_records is _MISSING:
            raw_records = self.fetch_records()
            self.cache.set(cache_key, raw_records, self.get_cache_expiry())

        records: dict[Any, Record] = {}
        for field_id in self.get_fields():
            for position, raw_record in enumerate(raw_records):
                if field_id not in raw_record:
                    continue
                record_id = raw_record.get(RECORD_ID_FIELD, ("row", position))
                records.setdefault(record_id, {})[field_id] = raw_record[field_id]
        return records

    def fetch_records(
        self,
        records: list[Record] | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Record]:
        """Page through the resource until every row has been fetched.

        Args:
            records: Rows already accumulated.
            limit: Rows per request; defaults to `DVF["CKAN_PAGE_SIZE"]`.
            offset: Row offset of the first request.

        Returns:
            All rows in API order. A failed request discards the rows gathered
            so far and returns an empty list.
        """

        limit = limit or self.page_size
        accumulated = list(records or [])

        while True:
            query = {"id": self.get_resource_id(), "limit": limit, "offset": offset, **self.get_data_filters()}
            result = self._datastore_search(query)
            if result is None:
                if accumulated:
                    logger.warning(
                        "Discarding %d rows fetched for CKAN resource %s after a failed page request",
                        len(accumulated),
                        self.get_resource_id(),
                    )
                return []

            accumulated.extend(result.records)
            offset = len(accumulated)
            if result.total <= offset:
                return accumulated
            if not result.records:
                logger.warning(
                    "CKAN resource %s reported %d rows but returned an empty page at offset %d",
                    self.get_resource_id(),
                    result.total,
                    offset,
                )
                return accumulated

    def get_resource_id(self) -> str | None:
        return self.url_parser.get_resource_id(self.config("uri"))

    def get_cache_key(self, object_type: ObjectType) -> str:
        """Return the cache key for this plugin, resource and object type."""

        plugin_hash = hashlib.sha256(self.get_plugin_id().encode("utf-8")).hexdigest()
        return f"{plugin_hash}:{self.get_resource_id() or ''}:{object_type}"

    def get_data_filters(self) -> dict[str, str]:
        """Return the style's data filters as `datastore_search` parameters.

        `filters` must be a JSON document and `q` non-empty; anything else is
        dropped. Values are trimmed.
        """

        data_filters = self.get_style_data_options().get("data_filters") or {}
        if not isinstance(data_filters, Mapping):
            return {}

        filters = {key: _filter_value(value) for key, value in data_filters.items() if value is not None}
        if not filters.get("filters") or not validate_json(filters["filters"]):
            if filters.get("filters"):
                logger.debug("Dropping invalid JSON data filter %r", filters["filters"])
            filters.pop("filters", None)
        if not filters.get("q"):
            filters.pop("q", None)
        return filters

    def _datastore_search(self, query: Mapping[str, Any]) -> DatastoreSearchResult | None:
        """Run `datastore_search`; None when the request or response is unusable."""

        try:
            response = self.ckan_client.get(SEARCH_ACTION, query)
        except DvfError as exc:
            logger.warning("CKAN datastore_search failed for resource %s: %s", query.get("id"), exc)
            return None

        if response.get("success") is not True or not isinstance(response.get("result"), Mapping):
            logger.warning("CKAN datastore_search was unsuccessful for resource %s", query.get("id"))
            return None

        result = response["result"]
        try:
            total = int(result.get("total") or 0)
        except (TypeError, ValueError):
            total = 0
        return DatastoreSearchResult(
            fields=list(result.get("fields") or []),
            records=list(result.get("records") or []),
            total=total,
        )


def _filter_value(value: Any) -> str:
    # Filters stored as JSON objects in style options are sent as JSON text.
    if isinstance(value, (Mapping, list)):
        return json.dumps(value)
    return str(value).strip()
