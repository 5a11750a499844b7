"""Site extension installer.

Handles fetching packages from the remote catalog, staging their content
into the local store, and removing installations.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from site_extensions.catalog import RemoteCatalog
from site_extensions.descriptor import DESCRIPTOR_FILE_NAME, write_default_descriptor
from site_extensions.models import ExtensionInfo
from site_extensions.package import PackageArchive, PackageError
from site_extensions.retry import DEFAULT_POLICY, RetryPolicy, attempt
from site_extensions.store import FilesystemFailure, InvalidPackageId, LocalStore

logger = logging.getLogger(__name__)


class InstallError(Exception):
    """Raised when a package's content cannot be installed."""

    pass


def resolve_package_id(package: Any) -> str:
    """Extract the id from an id string or a descriptor-like object."""
    if package is None:
        return ""
    if isinstance(package, str):
        return package.strip()
    return (getattr(package, "id", None) or "").strip()


class Installer:
    """Install and uninstall site extensions.

    Concurrent calls for the same id are not coordinated here; the caller
    must serialize them.

    Example:
        >>> installer = Installer(RemoteCatalog(), LocalStore(root))
        >>> installer.install("foo").local_path
        '/home/site/SiteExtensions/foo'
        >>> installer.uninstall("foo")
        True
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        store: LocalStore,
        retry_policy: RetryPolicy = DEFAULT_POLICY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the installer.

        Args:
            catalog: Remote catalog to fetch packages from.
            store: Local store to install into.
            retry_policy: Retry policy for filesystem mutations.
            sleep: Pause function between retries.
        """
        self.catalog = catalog
        self.store = store
        self.retry_policy = retry_policy
        self._sleep = sleep

    def install(self, package: Any) -> ExtensionInfo | None:
        """Install the latest version of a package.

        Any existing installation of the id is replaced, never merged.

        Args:
            package: Package id, or an object with an ``id`` attribute.
                Only the id is used; all metadata comes from the catalog.

        Returns:
            The installed extension, or None if the id is empty or the
            catalog does not have the package.

        Raises:
            CatalogUnavailable: If the catalog cannot be reached.
            InstallError: If the package content is invalid.
            FilesystemFailure: If staging still fails after retries.
        """
        package_id = resolve_package_id(package)
        if not package_id:
            return None

        descriptor = self.catalog.find(package_id)
        if descriptor is None:
            logger.info("Package %s not found in catalog", package_id)
            return None

        try:
            install_dir = self.store.installation_path(descriptor.id)
        except InvalidPackageId as e:
            raise InstallError(str(e)) from e

        with self.catalog.download(descriptor) as archive:
            self._check_archive(archive, descriptor.id)

            logger.info(
                "Installing %s %s -> %s", descriptor.id, descriptor.version, install_dir
            )
            try:
                attempt(
                    lambda: self._stage(archive, install_dir),
                    policy=self.retry_policy,
                    sleep=self._sleep,
                )
            except PackageError as e:
                self._discard(install_dir)
                raise InstallError(f"Invalid package {descriptor.id}: {e}") from e
            except OSError as e:
                self._discard(install_dir)
                raise FilesystemFailure(f"Failed to install {descriptor.id}: {e}") from e
            except BaseException:
                self._discard(install_dir)
                raise

        logger.info("Installed %s %s", descriptor.id, descriptor.version)
        return ExtensionInfo.from_descriptor(
            descriptor,
            local_path=install_dir,
            installed_at=datetime.now(timezone.utc),
        )

    def _check_archive(self, archive: PackageArchive, package_id: str) -> None:
        """Make sure the downloaded archive is the package that was resolved."""
        try:
            archive_id = archive.descriptor.id
        except PackageError as e:
            raise InstallError(str(e)) from e
        if archive_id.lower() != package_id.lower():
            raise InstallError(f"Archive for {package_id} declares id {archive_id}")

    def _stage(self, archive: PackageArchive, install_dir: Path) -> None:
        """Replace install_dir with the archive's content."""
        package_id = install_dir.name

        self.store.remove_installation(package_id)
        install_dir.mkdir(parents=True, exist_ok=True)

        archive.extract_to(install_dir)
        self.store.retain_archive(archive, install_dir)

        if not archive.has_content(DESCRIPTOR_FILE_NAME):
            write_default_descriptor(package_id, install_dir)
            logger.debug("Wrote default %s for %s", DESCRIPTOR_FILE_NAME, package_id)

    def _discard(self, install_dir: Path) -> None:
        """Remove a partially staged installation after a failed install."""
        try:
            self.store.remove_installation(install_dir.name)
        except OSError as e:
            logger.error("Failed to clean up %s: %s", install_dir, e)

    def uninstall(self, package_id: str) -> bool:
        """Uninstall a package.

        Works from the id alone, so corrupt installations can be removed.

        Args:
            package_id: Package id. An empty id is a no-op.

        Returns:
            True if no installation directory remains afterwards.

        Raises:
            FilesystemFailure: If removal still fails after retries.
        """
        package_id = resolve_package_id(package_id)
        if not package_id:
            return True

        install_dir = self.store.installation_path(package_id)
        logger.info("Uninstalling %s from %s", package_id, install_dir)

        try:
            attempt(
                lambda: self.store.remove_installation(package_id),
                policy=self.retry_policy,
                sleep=self._sleep,
            )
        except OSError as e:
            raise FilesystemFailure(f"Failed to uninstall {package_id}: {e}") from e

        return not install_dir.exists()
