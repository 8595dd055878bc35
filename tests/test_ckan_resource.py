"""Unit tests for the cached, paginated CKAN resource source."""

from __future__ import annotations

import hashlib

import pytest

from dvf.plugins import source_plugins
from dvf.visualisation import Visualisation
from dvf_ckan.sources import CkanResource

pytestmark = pytest.mark.unit

RESOURCE_ID = "5c6a1b1e-7a3f-4c59-9d3e-2b1f0c6d8a10"
URI = f"https://data.example.org/dataset/rates/resource/{RESOURCE_ID}"


def _rows(count: int) -> list[dict]:
    return [{"_id": index + 1, "year": str(2000 + index), "count": str(index)} for index in range(count)]


def _source(client, cache, *, style_data=None, uri=URI, page_size=100) -> CkanResource:
    visualisation = Visualisation(
        {
            "source": {"plugin_id": "dvf_ckan_resource", "options": {"uri": uri}},
            "style": {"plugin_id": "dvf_table", "options": {"data": dict(style_data or {})}},
        }
    )
    return CkanResource(
        {"uri": uri},
        "dvf_ckan_resource",
        source_plugins.get("dvf_ckan_resource"),
        visualisation,
        cache=cache,
        ckan_client=client,
        page_size=page_size,
    )


def test_get_fields_maps_ids_in_api_order(ckan_cache, fake_client_cls) -> None:
    """Fields come back as `{id: id}` in schema order, from a one-row query."""

    client = fake_client_cls(["_id", "year", "count"], _rows(3))

    assert list(_source(client, ckan_cache).get_fields().items()) == [
        ("_id", "_id"),
        ("year", "year"),
        ("count", "count"),
    ]
    path, query = client.calls[0]
    assert path == "action/datastore_search"
    assert query == {"id": RESOURCE_ID, "limit": 1}


def test_get_fields_uses_cache_after_first_fetch(ckan_cache, fake_client_cls) -> None:
    """A second lookup is served from the cache without calling the API."""

    client = fake_client_cls(["_id", "year"], _rows(1))
    _source(client, ckan_cache).get_fields()
    _source(client, ckan_cache).get_fields()

    assert len(client.calls) == 1


def test_get_fields_caches_empty_result_on_failure(ckan_cache, fake_client_cls) -> None:
    """A failed schema request yields no fields, and the empty list is cached."""

    client = fake_client_cls(["_id", "year"], _rows(1), fail_on_call=[1])
    source = _source(client, ckan_cache)

    assert source.get_fields() == {}
    assert ckan_cache.get(source.get_cache_key("fields")) == []


def test_unsuccessful_response_is_treated_as_empty(ckan_cache, fake_client_cls) -> None:
    """`success: false` degrades to an empty schema."""

    class Unsuccessful:
        def get(self, path, query=None):
            return {"success": False, "error": {"message": "Not found"}}

    assert _source(Unsuccessful(), ckan_cache).get_fields() == {}


def test_fetch_records_paginates_until_total(ckan_cache, fake_client_cls) -> None:
    """250 rows at 100 per page take three requests at offsets 0, 100 and 200."""

    client = fake_client_cls(["_id", "year"], _rows(250))

    records = _source(client, ckan_cache).fetch_records(limit=100)

    assert len(records) == 250
    assert client.offsets == [0, 100, 200]
    assert [record["_id"] for record in records] == list(range(1, 251))


def test_fetch_records_discards_rows_when_a_page_fails(ckan_cache, fake_client_cls) -> None:
    """A failure on the second page returns no rows at all."""

    client = fake_client_cls(["_id", "year"], _rows(250), fail_on_call=[2])

    assert _source(client, ckan_cache).fetch_records(limit=100) == []
    assert client.offsets == [0, 100]


def test_fetch_records_stops_on_empty_page(ckan_cache, fake_client_cls) -> None:
    """A resource that over-reports its total does not loop forever."""

    class OverReporting(fake_client_cls):
        def get(self, path, query=None):
            response = super().get(path, query)
            response["result"]["total"] = 1000
            return response

    client = OverReporting(["_id"], _rows(150))

    assert len(_source(client, ckan_cache).fetch_records(limit=100)) == 150
    assert client.offsets == [0, 100, 150]


def test_fetch_records_uses_configured_page_size(ckan_cache, fake_client_cls) -> None:
    """Without an explicit limit the plugin's page size is used."""

    client = fake_client_cls(["_id"], _rows(5))

    _source(client, ckan_cache, page_size=2).fetch_records()

    assert [query["limit"] for _, query in client.calls] == [2, 2, 2]
    assert client.offsets == [0, 2, 4]


def test_get_records_keys_by_id_and_keeps_known_fields(ckan_cache, fake_client_cls) -> None:
    """Records are keyed by `_id` and only carry fields from the schema."""

    rows = [
        {"_id": 7, "year": "2014", "count": "3", "rank": "1"},
        {"_id": 9, "year": "2015"},
        {"_id": 11, "rank": "5"},
    ]
    client = fake_client_cls(["_id", "year", "count"], rows)

    records = _source(client, ckan_cache).get_records()

    assert records == {
        7: {"_id": 7, "year": "2014", "count": "3"},
        9: {"_id": 9, "year": "2015"},
        11: {"_id": 11},
    }


def test_get_records_skips_rows_without_known_fields(ckan_cache, fake_client_cls) -> None:
    """A row with none of the schema fields is absent from the output."""

    client = fake_client_cls(["year"], [{"_id": 1, "year": "2014"}, {"_id": 2, "rank": "5"}])

    assert _source(client, ckan_cache).get_records() == {1: {"year": "2014"}}


def test_get_records_is_cached(ckan_cache, fake_client_cls) -> None:
    """Rows are fetched once; later calls reuse the cached payload."""

    client = fake_client_cls(["_id", "year"], _rows(3))
    _source(client, ckan_cache).get_records()
    calls_after_first = len(client.calls)

    _source(client, ckan_cache).get_records()

    assert len(client.calls) == calls_after_first


def test_no_cache_expiry_refetches(ckan_cache, fake_client_cls) -> None:
    """A cache expiry of 0 means every call hits the API."""

    client = fake_client_cls(["_id"], _rows(1))
    source = _source(client, ckan_cache, style_data={"cache_expiry": "0"})

    source.get_fields()
    source.get_fields()

    assert len(client.calls) == 2


def test_cache_key_is_deterministic_per_object_type(ckan_cache, fake_client_cls) -> None:
    """Keys depend only on plugin id, resource id and object type."""

    client = fake_client_cls()
    first = _source(client, ckan_cache)
    second = _source(client, ckan_cache, uri=f"https://other.example.org/datastore/dump/{RESOURCE_ID}")

    plugin_hash = hashlib.sha256(b"dvf_ckan_resource").hexdigest()
    assert first.get_cache_key("fields") == f"{plugin_hash}:{RESOURCE_ID}:fields"
    assert first.get_cache_key("fields") == second.get_cache_key("fields")
    assert first.get_cache_key("fields") != first.get_cache_key("records")


def test_data_filters_are_trimmed_and_sent_with_queries(ckan_cache, fake_client_cls) -> None:
    """Valid filters and a non-empty query are trimmed and passed to CKAN."""

    client = fake_client_cls(["_id"], _rows(1))
    source = _source(
        client,
        ckan_cache,
        style_data={"data_filters": {"q": "  water ", "filters": ' {"year": ["2014", "2015"]} '}},
    )

    assert source.get_data_filters() == {"q": "water", "filters": '{"year": ["2014", "2015"]}'}
    source.get_fields()
    assert client.calls[0][1]["filters"] == '{"year": ["2014", "2015"]}'


@pytest.mark.parametrize(
    "data_filters",
    [
        {"q": "", "filters": ""},
        {"q": "   ", "filters": "{year: 2014}"},
        {},
    ],
)
def test_empty_or_invalid_data_filters_are_dropped(ckan_cache, fake_client_cls, data_filters) -> None:
    """Empty queries and invalid JSON filters are not sent."""

    source = _source(fake_client_cls(), ckan_cache, style_data={"data_filters": data_filters})

    assert source.get_data_filters() == {}


@pytest.mark.parametrize(
    ("cache_expiry", "expected"),
    [("", 86400), ("_global_default", 86400), ("0", 0), ("3600", 3600), ("soon", 86400)],
)
def test_cache_expiry_follows_style_choice(ckan_cache, fake_client_cls, settings, cache_expiry, expected) -> None:
    """The style's cache expiry selects the TTL; defaults use DVF CACHE_EXPIRY."""

    settings.DVF = {"CACHE_EXPIRY": 86400}
    source = _source(fake_client_cls(), ckan_cache, style_data={"cache_expiry": cache_expiry})

    assert source.get_cache_expiry() == expected


def test_rows_without_id_do_not_overwrite_keyed_rows(ckan_cache, fake_client_cls) -> None:
    """Rows lacking `_id` get keys that cannot clash with datastore ids."""

    rows = [{"_id": 1, "year": "2014"}, {"year": "2015"}, {"year": "2016"}]
    client = fake_client_cls(["year"], rows)

    records = _source(client, ckan_cache).get_records()

    assert len(records) == 3
    assert records[1] == {"year": "2014"}
    assert sorted(record["year"] for record in records.values()) == ["2014", "2015", "2016"]


def test_get_fields_ignores_malformed_schema_entries(ckan_cache, fake_client_cls) -> None:
    """Schema entries that are not objects with an `id` are skipped."""

    class MixedSchema(fake_client_cls):
        def get(self, path, query=None):
            response = super().get(path, query)
            response["result"]["fields"] = ["identity", {"type": "int"}, {"id": "year", "type": "text"}]
            return response

    assert _source(MixedSchema(), ckan_cache).get_fields() == {"year": "year"}


def test_structured_data_filters_are_sent_as_json(ckan_cache, fake_client_cls) -> None:
    """Filters stored as a JSON object rather than text are encoded, not dropped."""

    client = fake_client_cls(["_id"], _rows(1))
    source = _source(client, ckan_cache, style_data={"data_filters": {"filters": {"year": ["2014", "2015"]}}})

    assert source.get_data_filters() == {"filters": '{"year": ["2014", "2015"]}'}
    source.get_fields()
    assert client.calls[0][1]["filters"] == '{"year": ["2014", "2015"]}'
