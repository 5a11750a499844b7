"""Tests for the extension manager facade."""

import threading

import pytest

from site_extensions.catalog import CatalogUnavailable
from site_extensions.config import CatalogConfig, Config, RetryConfig, StoreConfig
from site_extensions.manager import ExtensionManager
from site_extensions.models import ExtensionInfo


class TestRemoteExtensions:
    def test_listing_orders_by_downloads(self, manager, catalog_server):
        catalog_server.publish("foo", "2.0.0", download_count=50)
        catalog_server.publish("bar", "1.0.0", download_count=100)

        extensions = manager.get_remote_extensions()

        assert [e.id for e in extensions] == ["bar", "foo"]
        assert all(isinstance(e, ExtensionInfo) for e in extensions)
        assert all(e.local_path is None for e in extensions)

    def test_prerelease_tag_listed(self, manager, catalog_server):
        catalog_server.publish("bar", "1.0.0", download_count=100)
        catalog_server.publish("foo", "2.0.0-ctp", download_count=50)

        extensions = manager.get_remote_extensions()

        assert [(e.id, e.version) for e in extensions] == [("bar", "1.0.0"), ("foo", "2.0.0-ctp")]

    def test_filter_searches(self, manager, catalog_server):
        catalog_server.publish("monitoring", "1.0.0")
        catalog_server.publish("foo", "1.0.0")

        assert [e.id for e in manager.get_remote_extensions("monitor")] == ["monitoring"]
        assert catalog_server.requests[-1].url.path == "/api/packages/search"

    def test_get_remote_extension(self, manager, catalog_server):
        catalog_server.publish("foo", "1.0.0")
        catalog_server.publish("foo", "2.0.0")

        assert manager.get_remote_extension("foo").version == "2.0.0"
        assert manager.get_remote_extension("foo", "1.0.0").version == "1.0.0"
        assert manager.get_remote_extension("nope") is None
        assert manager.get_remote_extension("") is None

    def test_catalog_failure_propagates(self, manager, catalog_server):
        catalog_server.fail_status = 500

        with pytest.raises(CatalogUnavailable):
            manager.get_remote_extensions()


class TestLocalExtensions:
    def test_installed_extension_listed(self, manager, catalog_server, store):
        catalog_server.publish("foo", "1.0.0")
        catalog_server.publish("bar", "1.0.0")
        manager.install_extension("foo")
        manager.install_extension("bar")

        extensions = manager.get_local_extensions()

        assert [e.id for e in extensions] == ["bar", "foo"]
        assert extensions[1].local_path == str(store.root / "foo")
        assert extensions[1].installed_at is not None
        assert extensions[1].latest_info is None

    def test_reconcile_against_newer_version(self, manager, catalog_server):
        catalog_server.publish("foo", "1.0.0")
        manager.install_extension("foo")
        catalog_server.publish("foo", "1.2.0")

        info = manager.get_local_extension("foo", latest_info=True)

        assert info.version == "1.0.0"
        assert info.latest_info.version == "1.2.0"
        assert info.is_latest_version is False

    def test_reconcile_up_to_date(self, manager, catalog_server):
        catalog_server.publish("foo", "1.0.0")
        manager.install_extension("foo")

        info = manager.get_local_extension("foo", latest_info=True)

        assert info.is_latest_version is True
        assert [e.is_latest_version for e in manager.get_local_extensions(latest_info=True)] == [True]

    def test_reconcile_survives_catalog_outage(self, manager, catalog_server):
        catalog_server.publish("foo", "1.0.0")
        manager.install_extension("foo")
        catalog_server.fail_connect = True

        info = manager.get_local_extension("foo", latest_info=True)

        assert info.version == "1.0.0"
        assert info.latest_info is None

    def test_missing_local_extension(self, manager):
        assert manager.get_local_extension("foo") is None
        assert manager.get_local_extension("") is None
        assert manager.get_local_extensions() == []

    def test_check_updates(self, manager, catalog_server):
        catalog_server.publish("foo", "1.0.0")
        catalog_server.publish("bar", "1.0.0")
        manager.install_extension("foo")
        manager.install_extension("bar")
        catalog_server.publish("foo", "1.2.0")

        updates = manager.check_updates()

        assert [(u.id, u.version, u.latest_info.version) for u in updates] == [
            ("foo", "1.0.0", "1.2.0")
        ]


class TestInstallUninstall:
    def test_install_then_uninstall(self, manager, catalog_server, store):
        catalog_server.publish("foo", "1.0.0")

        assert manager.install_extension("foo").version == "1.0.0"
        assert manager.uninstall_extension("foo") is True
        assert manager.get_local_extension("foo") is None
        assert not (store.root / "foo").exists()
        assert manager.uninstall_extension("foo") is True

    def test_uninstall_ignores_id_case(self, manager, catalog_server, store):
        catalog_server.publish("Foo", "1.0.0")
        manager.install_extension("Foo")

        assert manager.get_local_extension("foo").id == "Foo"
        assert manager.uninstall_extension("foo") is True
        assert not (store.root / "Foo").exists()
        assert manager.get_local_extension("Foo") is None

    def test_install_unknown(self, manager, store):
        assert manager.install_extension("nope") is None
        assert manager.install_extension("") is None
        assert manager.get_local_extensions() == []

    def test_uninstall_empty_id(self, manager):
        assert manager.uninstall_extension("") is True

    def test_same_id_serialized(self, manager, catalog_server, monkeypatch):
        catalog_server.publish("foo", "1.0.0")
        active = []
        overlaps = []
        original = manager.installer.install

        def tracked(package):
            active.append(package)
            if len(active) > 1:
                overlaps.append(list(active))
            try:
                return original(package)
            finally:
                active.remove(package)

        monkeypatch.setattr(manager.installer, "install", tracked)

        threads = [
            threading.Thread(target=manager.install_extension, args=("foo",))
            for _ in range(4)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []
        assert manager.get_local_extension("foo").version == "1.0.0"

    def test_different_ids_run_concurrently(self, manager, monkeypatch):
        barrier = threading.Barrier(2, timeout=5)
        done = []

        def install(package):
            barrier.wait()
            done.append(package)
            return None

        monkeypatch.setattr(manager.installer, "install", install)

        threads = [
            threading.Thread(target=manager.install_extension, args=(package_id,))
            for package_id in ("foo", "bar")
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(done) == ["bar", "foo"]


def test_from_config(tmp_path):
    config = Config(
        catalog=CatalogConfig(url="https://catalog.test/api/", timeout=5.0),
        store=StoreConfig(root=str(tmp_path / "ext")),
        retry=RetryConfig(max_attempts=2, delay_seconds=0.0),
    )

    manager = ExtensionManager.from_config(config)

    assert manager.catalog.catalog_url == "https://catalog.test/api"
    assert manager.catalog.timeout == 5.0
    assert manager.store.root == tmp_path / "ext"
    assert manager.installer.retry_policy.max_attempts == 2
