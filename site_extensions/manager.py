"""Site extension manager.

Composes the remote catalog, local store, installer, and version
reconciler into the operations consumed by the routing layer.
"""

from __future__ import annotations

import logging
from typing import Any

from site_extensions.catalog import RemoteCatalog
from site_extensions.config import Config, get_config
from site_extensions.installer import Installer, resolve_package_id
from site_extensions.locks import KeyedLock
from site_extensions.models import ExtensionInfo
from site_extensions.reconciler import VersionReconciler
from site_extensions.retry import RetryPolicy
from site_extensions.store import LocalStore
from site_extensions.versioning import VersionError, compare_versions

logger = logging.getLogger(__name__)


class ExtensionManager:
    """Facade over remote and local site extensions.

    Every query builds fresh ExtensionInfo objects; nothing is cached.
    Install and uninstall calls for the same id are serialized.

    Example:
        >>> manager = ExtensionManager.from_config()
        >>> [e.id for e in manager.get_remote_extensions()]
        ['bar', 'foo']
        >>> manager.install_extension("foo").version
        '2.0.0'
        >>> manager.get_local_extension("foo", latest_info=True).is_latest_version
        True
    """

    def __init__(
        self,
        catalog: RemoteCatalog,
        store: LocalStore,
        installer: Installer | None = None,
        reconciler: VersionReconciler | None = None,
    ):
        self.catalog = catalog
        self.store = store
        self.installer = installer or Installer(catalog, store)
        self.reconciler = reconciler or VersionReconciler(catalog)
        self._locks = KeyedLock()

    @classmethod
    def from_config(cls, config: Config | None = None) -> ExtensionManager:
        """Wire a manager from configuration."""
        config = config or get_config()
        catalog = RemoteCatalog(config.catalog.url, timeout=config.catalog.timeout)
        store = LocalStore(config.store.root_path)
        policy = RetryPolicy(
            max_attempts=config.retry.max_attempts,
            delay_seconds=config.retry.delay_seconds,
        )
        return cls(catalog, store, installer=Installer(catalog, store, retry_policy=policy))

    def get_remote_extensions(
        self,
        filter: str | None = None,
        allow_prerelease: bool = False,
    ) -> list[ExtensionInfo]:
        """List or search extensions in the remote catalog.

        Args:
            filter: Search text. Without it, every latest version is listed
                by descending download count.
            allow_prerelease: Include prerelease versions in search results.
        """
        if not filter:
            packages = self.catalog.list_latest()
        else:
            packages = self.catalog.search(filter, allow_prerelease=allow_prerelease)
        return [ExtensionInfo.from_descriptor(p) for p in packages]

    def get_remote_extension(
        self,
        id: str,
        version: str | None = None,
    ) -> ExtensionInfo | None:
        """Get one remote extension (latest when version is None)."""
        if not id:
            return None
        descriptor = self.catalog.find(id, version)
        return ExtensionInfo.from_descriptor(descriptor) if descriptor else None

    def get_local_extensions(
        self,
        filter: str | None = None,
        latest_info: bool = False,
    ) -> list[ExtensionInfo]:
        """List installed extensions.

        Args:
            filter: Substring matched against id and title.
            latest_info: Reconcile each extension against the catalog.
        """
        extensions = [
            ExtensionInfo.from_installed(p) for p in self.store.list_installed(filter)
        ]
        if latest_info:
            extensions = [self.reconciler.reconcile(e) for e in extensions]
        return extensions

    def get_local_extension(
        self,
        id: str,
        latest_info: bool = False,
    ) -> ExtensionInfo | None:
        """Get one installed extension, or None if not installed."""
        if not id:
            return None
        installed = self.store.find_installed(id)
        if installed is None:
            return None

        info = ExtensionInfo.from_installed(installed)
        if latest_info:
            self.reconciler.reconcile(info)
        return info

    def install_extension(self, package: Any) -> ExtensionInfo | None:
        """Install (or reinstall) an extension's latest version.

        Args:
            package: Extension id, or an ExtensionInfo whose id is used.
                Caller-supplied metadata is ignored.

        Returns:
            The installed extension, or None if the catalog lacks it.
        """
        package_id = resolve_package_id(package)
        if not package_id:
            return None
        with self._locks.hold(package_id):
            return self.installer.install(package_id)

    def uninstall_extension(self, id: str) -> bool:
        """Uninstall an extension.

        Returns:
            True if no installation directory remains afterwards.
        """
        package_id = resolve_package_id(id)
        if not package_id:
            return True
        with self._locks.hold(package_id):
            return self.installer.uninstall(package_id)

    def check_updates(self) -> list[ExtensionInfo]:
        """Installed extensions with a newer version in the catalog."""
        updates: list[ExtensionInfo] = []
        for info in self.get_local_extensions(latest_info=True):
            if info.latest_info is None:
                continue
            try:
                if compare_versions(info.latest_info.version, info.version) > 0:
                    updates.append(info)
            except VersionError as e:
                logger.warning("Skipping update check for %s: %s", info.id, e)
        return updates
