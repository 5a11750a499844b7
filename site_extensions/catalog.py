"""Remote catalog client for site extensions.

Read-only access to the package index: listing, search, exact lookup,
and archive download.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urljoin

import httpx

from site_extensions.models import DescriptorError, PackageDescriptor
from site_extensions.package import PackageArchive, PackageError

logger = logging.getLogger(__name__)


class CatalogUnavailable(Exception):
    """Raised when the remote catalog cannot be reached or answers badly."""

    pass


class RemoteCatalog:
    """Client for the remote site extension catalog.

    Example:
        >>> catalog = RemoteCatalog()
        >>> catalog.list_latest()[0].id
        'bar'
        >>> catalog.find("foo")
        PackageDescriptor(id='foo', version='2.0.0')
    """

    DEFAULT_CATALOG_URL = "https://siteextensions.azurewebsites.net/api/v2"

    def __init__(
        self,
        catalog_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the catalog client.

        Args:
            catalog_url: Base URL for the catalog API.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.catalog_url = (catalog_url or self.DEFAULT_CATALOG_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self.transport,
        )

    def _url(self, endpoint: str) -> str:
        return urljoin(self.catalog_url + "/", endpoint.lstrip("/"))

    def _get(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response | None:
        """Issue a GET request; None signals HTTP 404."""
        url = self._url(endpoint)
        logger.debug("GET %s params=%s", url, params)

        try:
            with self._client() as client:
                response = client.get(url, params=params)
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                response.read()
                return response
        except httpx.HTTPStatusError as e:
            raise CatalogUnavailable(
                f"Catalog error {e.response.status_code} for {url}"
            ) from e
        except httpx.RequestError as e:
            raise CatalogUnavailable(f"Connection error: {e}") from e

    def _get_json(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
    ) -> Any | None:
        response = self._get(endpoint, params=params)
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise CatalogUnavailable(f"Malformed catalog response from {endpoint}") from e

    def _parse_items(self, data: Any) -> list[PackageDescriptor]:
        """Parse a listing; entries with invalid metadata are skipped."""
        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
            raise CatalogUnavailable("Malformed catalog listing")

        packages: list[PackageDescriptor] = []
        for item in data.get("items", []):
            try:
                packages.append(PackageDescriptor.from_dict(item))
            except DescriptorError as e:
                logger.warning("Skipping catalog entry: %s", e)
        return packages

    def _parse_descriptor(self, data: Any) -> PackageDescriptor:
        try:
            return PackageDescriptor.from_dict(data)
        except DescriptorError as e:
            raise CatalogUnavailable(f"Malformed package metadata: {e}") from e

    def list_latest(self) -> list[PackageDescriptor]:
        """List the latest version of every package.

        Returns:
            Descriptors ordered by descending download count.
        """
        data = self._get_json("/packages", params={"latest": "true"})
        packages = [p for p in self._parse_items(data) if p.is_latest_version]
        return sorted(packages, key=lambda p: p.download_count, reverse=True)

    def search(
        self,
        query: str,
        allow_prerelease: bool = False,
    ) -> list[PackageDescriptor]:
        """Search the catalog.

        Args:
            query: Free-text search query.
            allow_prerelease: Include prerelease versions; otherwise only
                latest versions are returned.

        Returns:
            Matching descriptors in catalog relevance order.
        """
        params = {"q": query, "prerelease": "true" if allow_prerelease else "false"}
        packages = self._parse_items(self._get_json("/packages/search", params=params))
        if not allow_prerelease:
            packages = [p for p in packages if p.is_latest_version]
        return packages

    def find(self, package_id: str, version: str | None = None) -> PackageDescriptor | None:
        """Look up a package by id and optional exact version.

        Args:
            package_id: Package id.
            version: Exact version, or None for the latest.

        Returns:
            The descriptor, or None if the catalog does not have it.
        """
        if not package_id:
            return None

        endpoint = f"/packages/{quote(package_id, safe='')}"
        if version:
            endpoint += f"/{quote(version, safe='')}"

        data = self._get_json(endpoint)
        if data is None:
            return None
        return self._parse_descriptor(data)

    def download(self, descriptor: PackageDescriptor) -> PackageArchive:
        """Download the archive for a package version.

        Raises:
            CatalogUnavailable: If the download fails or the archive is missing.
        """
        url = descriptor.download_url or (
            f"/packages/{quote(descriptor.id, safe='')}"
            f"/{quote(descriptor.version, safe='')}/download"
        )
        response = self._get(url)
        if response is None:
            raise CatalogUnavailable(
                f"Archive for {descriptor.id} {descriptor.version} is not available"
            )

        try:
            return PackageArchive(response.content, source=str(response.url))
        except PackageError as e:
            raise CatalogUnavailable(str(e)) from e
