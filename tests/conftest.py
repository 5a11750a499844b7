"""Shared fixtures: in-memory package archives and a fake catalog."""

import io
import zipfile
from pathlib import Path
from typing import Any

import httpx
import pytest
import yaml

from site_extensions.catalog import RemoteCatalog
from site_extensions.installer import Installer
from site_extensions.manager import ExtensionManager
from site_extensions.retry import RetryPolicy
from site_extensions.store import LocalStore

CATALOG_URL = "https://catalog.test/api"


def make_archive(
    package_id: str,
    version: str,
    files: dict[str, bytes | str] | None = None,
    manifest: dict[str, Any] | None = None,
    include_manifest: bool = True,
) -> bytes:
    """Build a package archive in memory.

    Args:
        package_id: Package id written to the manifest.
        version: Package version written to the manifest.
        files: Archive entries by full path (include the content/ prefix).
        manifest: Extra manifest keys.
        include_manifest: Write manifest.yaml at all.
    """
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        if include_manifest:
            data = {"id": package_id, "version": version, **(manifest or {})}
            zf.writestr("manifest.yaml", yaml.safe_dump(data))
        for name, content in (files or {}).items():
            zf.writestr(name, content)
    return buffer.getvalue()


class CatalogServer:
    """Fake catalog API served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.packages: list[dict[str, Any]] = []
        self.archives: dict[tuple[str, str], bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_status: int | None = None
        self.fail_connect = False

    def publish(
        self,
        package_id: str,
        version: str,
        files: dict[str, bytes | str] | None = None,
        download_count: int = 0,
        latest: bool = True,
        **metadata: Any,
    ) -> dict[str, Any]:
        """Add a package version to the catalog."""
        if latest:
            for entry in self.packages:
                if entry["id"] == package_id:
                    entry["is_latest_version"] = False

        entry = {
            "id": package_id,
            "version": version,
            "title": metadata.pop("title", package_id.title()),
            "description": metadata.pop("description", f"The {package_id} extension"),
            "authors": metadata.pop("authors", ["Site Team"]),
            "published_at": "2024-03-01T12:00:00Z",
            "download_count": download_count,
            "is_latest_version": latest,
            **metadata,
        }
        self.packages.append(entry)
        self.archives[(package_id, version)] = make_archive(
            package_id,
            version,
            files if files is not None else {"content/index.html": f"{package_id} {version}"},
        )
        return entry

    def _latest(self, package_id: str) -> dict[str, Any] | None:
        for entry in self.packages:
            if entry["id"] == package_id and entry["is_latest_version"]:
                return entry
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_connect:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_status is not None:
            return httpx.Response(self.fail_status, text="catalog failure")

        path = request.url.path
        prefix = "/api/packages"
        if not path.startswith(prefix):
            return httpx.Response(404)
        parts = [p for p in path[len(prefix):].split("/") if p]

        if not parts:
            return httpx.Response(200, json={"items": self.packages})

        if parts == ["search"]:
            query = request.url.params.get("q", "").lower()
            items = [
                p for p in self.packages
                if query in p["id"].lower() or query in p["title"].lower()
            ]
            return httpx.Response(200, json={"items": items})

        if len(parts) == 1:
            entry = self._latest(parts[0])
            return httpx.Response(200, json=entry) if entry else httpx.Response(404)

        if len(parts) == 2:
            for entry in self.packages:
                if entry["id"] == parts[0] and entry["version"] == parts[1]:
                    return httpx.Response(200, json=entry)
            return httpx.Response(404)

        if len(parts) == 3 and parts[2] == "download":
            archive = self.archives.get((parts[0], parts[1]))
            if archive is None:
                return httpx.Response(404)
            return httpx.Response(200, content=archive)

        return httpx.Response(404)


@pytest.fixture
def catalog_server() -> CatalogServer:
    return CatalogServer()


@pytest.fixture
def catalog(catalog_server: CatalogServer) -> RemoteCatalog:
    return RemoteCatalog(CATALOG_URL, transport=httpx.MockTransport(catalog_server.handle))


@pytest.fixture
def store(tmp_path: Path) -> LocalStore:
    return LocalStore(tmp_path / "SiteExtensions")


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def installer(catalog: RemoteCatalog, store: LocalStore, sleeps: list[float]) -> Installer:
    return Installer(
        catalog,
        store,
        retry_policy=RetryPolicy(max_attempts=3, delay_seconds=0.01),
        sleep=sleeps.append,
    )


@pytest.fixture
def manager(catalog: RemoteCatalog, store: LocalStore, installer: Installer) -> ExtensionManager:
    return ExtensionManager(catalog, store, installer=installer)


def installed_files(install_dir: Path) -> set[str]:
    """Relative paths of every file under an installation directory."""
    return {
        p.relative_to(install_dir).as_posix()
        for p in install_dir.rglob("*")
        if p.is_file()
    }


@pytest.fixture
def archive_factory():
    return make_archive


@pytest.fixture
def list_files():
    return installed_files
