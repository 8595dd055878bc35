"""Pytest fixtures shared across the visualisation test suite."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

import pytest
from django.core.cache import caches

from dvf.exceptions import TransportError
from dvf.plugins import PluginRegistry
from dvf.sources.base import Record, VisualisationSourceBase
from dvf.styles.table import TableStyle
from dvf.visualisation import Visualisation
from dvf_ckan.client import CkanClient


class StaticSource(VisualisationSourceBase):
    """Source serving fields and records from its configuration."""

    def get_fields(self) -> dict[str, str]:
        return {field_id: field_id for field_id in self.config("fields") or []}

    def get_records(self) -> dict[Any, Record]:
        return {index: dict(record) for index, record in enumerate(self.config("records") or [])}


class FakeCkanClient:
    """In-memory stand-in for `CkanClient` serving a datastore resource.

    Args:
        fields: Field ids reported by the resource schema.
        rows: Every row of the resource.
        fail_on_call: 1-based call numbers that raise TransportError.
    """

    def __init__(
        self,
        fields: Sequence[str] = (),
        rows: Sequence[Record] = (),
        *,
        fail_on_call: Iterable[int] = (),
    ) -> None:
        self.fields = list(fields)
        self.rows = list(rows)
        self.fail_on_call = set(fail_on_call)
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, path: str, query: Mapping[str, Any] | None = None) -> dict[str, Any]:
        query = dict(query or {})
        self.calls.append((path, query))
        if len(self.calls) in self.fail_on_call:
            raise TransportError("connection reset")

        offset = int(query.get("offset", 0))
        limit = int(query.get("limit", 100))
        return {
            "success": True,
            "result": {
                "fields": [{"id": field_id, "type": "text"} for field_id in self.fields],
                "records": self.rows[offset : offset + limit],
                "total": len(self.rows),
            },
        }

    @property
    def offsets(self) -> list[int]:
        return [int(query.get("offset", 0)) for _, query in self.calls]


@pytest.fixture
def static_sources() -> PluginRegistry:
    """Return a source registry holding only `StaticSource` as "static"."""

    registry = PluginRegistry("source")
    registry.register("static", label="Static")(StaticSource)
    return registry


@pytest.fixture
def make_style(static_sources):
    """Return a factory building a `TableStyle` over static fields and records."""

    def factory(
        *,
        fields: Sequence[str],
        records: Sequence[Record] = (),
        options: Mapping[str, Any] | None = None,
    ) -> TableStyle:
        visualisation = Visualisation(
            {
                "source": {"plugin_id": "static", "options": {"fields": list(fields), "records": list(records)}},
                "style": {"plugin_id": "dvf_table", "options": dict(options or {})},
            },
            sources=static_sources,
        )
        style = visualisation.get_style_plugin()
        assert isinstance(style, TableStyle)
        return style

    return factory


@pytest.fixture
def fake_client_cls() -> type[FakeCkanClient]:
    """Return the FakeCkanClient class for tests that build their own clients."""

    return FakeCkanClient


@pytest.fixture
def ckan_cache():
    """Return the CKAN cache, emptied before and after the test."""

    cache = caches["dvf_ckan"]
    cache.clear()
    yield cache
    cache.clear()


@pytest.fixture
def fake_ckan(monkeypatch, ckan_cache):
    """Route `CkanClient.from_settings` to a FakeCkanClient the test can configure."""

    client = FakeCkanClient()
    monkeypatch.setattr(CkanClient, "from_settings", classmethod(lambda cls, resource_uri=None: client))
    return client


def pytest_collection_modifyitems(items: Sequence[pytest.Item]) -> None:
    """Enforce that every test has exactly one speed marker.

    - `unit`: pure, fast tests with no database access.
    - `integration`: tests touching the database, commands, or IO.
    """

    invalid: list[str] = []
    for item in items:
        has_unit = item.get_closest_marker("unit") is not None
        has_integration = item.get_closest_marker("integration") is not None
        if has_unit == has_integration:
            markers = []
            if has_unit:
                markers.append("unit")
            if has_integration:
                markers.append("integration")
            invalid.append(f"{item.nodeid} (markers={markers or 'none'})")

    if invalid:
        joined = "\n".join(f"- {nodeid}" for nodeid in invalid)
        raise pytest.UsageError(
            "Each test must have exactly one speed marker: `@pytest.mark.unit` or "
            "`@pytest.mark.integration`.\n"
            f"Offending tests:\n{joined}"
        )
