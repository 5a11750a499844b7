"""Site extension package manager.

Resolves packages against a remote catalog, stages their content into a
local installation root the host can activate, and removes them again.

Each installed extension lives in its own directory under the root:
- the package's content tree (``content/`` prefix stripped)
- the retained package archive (``<id>.<version>.zip``)
- an ``applicationHost.xdt`` host-configuration descriptor
"""

from site_extensions.catalog import CatalogUnavailable, RemoteCatalog
from site_extensions.installer import InstallError, Installer
from site_extensions.manager import ExtensionManager
from site_extensions.models import ExtensionInfo, PackageDescriptor
from site_extensions.reconciler import VersionReconciler
from site_extensions.store import FilesystemFailure, LocalStore

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CatalogUnavailable",
    "ExtensionInfo",
    "ExtensionManager",
    "FilesystemFailure",
    "InstallError",
    "Installer",
    "LocalStore",
    "PackageDescriptor",
    "RemoteCatalog",
    "VersionReconciler",
]
