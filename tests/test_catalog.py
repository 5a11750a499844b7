"""Tests for the remote catalog client."""

import httpx
import pytest

from site_extensions.catalog import CatalogUnavailable, RemoteCatalog


def test_list_latest_orders_by_download_count(catalog, catalog_server):
    catalog_server.publish("foo", "2.0.0", download_count=50)
    catalog_server.publish("bar", "1.0.0", download_count=100)

    packages = catalog.list_latest()

    assert [p.id for p in packages] == ["bar", "foo"]


def test_list_latest_drops_older_versions(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0", download_count=500)
    catalog_server.publish("foo", "2.0.0", download_count=10)

    packages = catalog.list_latest()

    assert [(p.id, p.version) for p in packages] == [("foo", "2.0.0")]
    assert catalog_server.requests[0].url.params["latest"] == "true"


def test_search_sends_query(catalog, catalog_server):
    catalog_server.publish("monitoring", "1.0.0")
    catalog_server.publish("foo", "1.0.0")

    packages = catalog.search("monitor")

    assert [p.id for p in packages] == ["monitoring"]
    params = catalog_server.requests[0].url.params
    assert params["q"] == "monitor"
    assert params["prerelease"] == "false"


def test_search_prerelease(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0")
    catalog_server.publish("foo", "2.0.0-beta", latest=False)

    assert [p.version for p in catalog.search("foo")] == ["1.0.0"]
    assert [p.version for p in catalog.search("foo", allow_prerelease=True)] == [
        "1.0.0",
        "2.0.0-beta",
    ]
    assert catalog_server.requests[-1].url.params["prerelease"] == "true"


def test_find_latest_and_exact(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0")
    catalog_server.publish("foo", "1.2.0")

    assert catalog.find("foo").version == "1.2.0"
    assert catalog.find("foo", "1.0.0").version == "1.0.0"


def test_find_missing_returns_none(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0")

    assert catalog.find("nope") is None
    assert catalog.find("foo", "9.9.9") is None


def test_find_empty_id_makes_no_request(catalog, catalog_server):
    assert catalog.find("") is None
    assert catalog_server.requests == []


def test_server_error_is_not_not_found(catalog, catalog_server):
    catalog_server.fail_status = 503

    with pytest.raises(CatalogUnavailable, match="503"):
        catalog.find("foo")
    with pytest.raises(CatalogUnavailable):
        catalog.list_latest()


def test_connection_error(catalog, catalog_server):
    catalog_server.fail_connect = True

    with pytest.raises(CatalogUnavailable, match="Connection error"):
        catalog.search("foo")


def test_malformed_json():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    catalog = RemoteCatalog("https://catalog.test/api", transport=transport)

    with pytest.raises(CatalogUnavailable, match="Malformed"):
        catalog.find("foo")


def test_invalid_listing_entry_skipped(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0")
    catalog_server.packages.append({"title": "no id", "is_latest_version": True})

    assert [p.id for p in catalog.list_latest()] == ["foo"]


def test_malformed_listing():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"items": "not a list"})
    )
    catalog = RemoteCatalog("https://catalog.test/api", transport=transport)

    with pytest.raises(CatalogUnavailable, match="Malformed catalog listing"):
        catalog.list_latest()


def test_malformed_descriptor():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(200, json={"title": "no id"})
    )
    catalog = RemoteCatalog("https://catalog.test/api", transport=transport)

    with pytest.raises(CatalogUnavailable, match="Malformed package metadata"):
        catalog.find("foo")


def test_semver_prerelease_tags(catalog, catalog_server):
    catalog_server.publish("bar", "1.0.0", download_count=100)
    catalog_server.publish("foo", "2.0.0-ctp", download_count=50)
    catalog_server.publish("baz", "1.0.0-alpha.beta", download_count=10)

    packages = catalog.list_latest()

    assert [(p.id, p.version) for p in packages] == [
        ("bar", "1.0.0"),
        ("foo", "2.0.0-ctp"),
        ("baz", "1.0.0-alpha.beta"),
    ]


def test_download(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0", files={"content/index.html": "hello"})
    descriptor = catalog.find("foo")

    with catalog.download(descriptor) as archive:
        assert archive.descriptor.id == "foo"
        assert [f.relative_path for f in archive.content_files()] == ["index.html"]

    assert catalog_server.requests[-1].url.path == "/api/packages/foo/1.0.0/download"


def test_download_uses_descriptor_url(catalog, catalog_server):
    catalog_server.publish(
        "foo",
        "1.0.0",
        download_url="https://catalog.test/api/packages/foo/1.0.0/download",
    )
    descriptor = catalog.find("foo")

    with catalog.download(descriptor) as archive:
        assert archive.descriptor.version == "1.0.0"


def test_download_missing_archive(catalog, catalog_server):
    catalog_server.publish("foo", "1.0.0")
    descriptor = catalog.find("foo")
    del catalog_server.archives[("foo", "1.0.0")]

    with pytest.raises(CatalogUnavailable, match="not available"):
        catalog.download(descriptor)


def test_default_url():
    assert RemoteCatalog().catalog_url == RemoteCatalog.DEFAULT_CATALOG_URL
