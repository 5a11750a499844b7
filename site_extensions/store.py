"""Local installation store for site extensions.

The installation root holds one directory per installed package id. A
directory together with its retained package archive is the only record
of an installation; there is no separate index.
"""

from __future__ import annotations

import glob
import logging
import shutil
import stat
from datetime import datetime, timezone
from pathlib import Path

from site_extensions.models import InstalledPackage
from site_extensions.package import (
    ARCHIVE_EXTENSION,
    PackageArchive,
    PackageError,
    archive_file_name,
)

logger = logging.getLogger(__name__)


class InvalidPackageId(ValueError):
    """Raised when a package id cannot name an installation directory."""

    pass


class FilesystemFailure(Exception):
    """Raised when the installation root cannot be read or written."""

    pass


class LocalStore:
    """Installed site extensions under a root directory.

    Example:
        >>> store = LocalStore(Path("/home/site/SiteExtensions"))
        >>> store.installation_path("foo")
        PosixPath('/home/site/SiteExtensions/foo')
        >>> [p.id for p in store.list_installed()]
        ['foo']
    """

    def __init__(self, root: Path | str):
        """Initialize the store.

        Args:
            root: Installation root directory. It need not exist yet.
        """
        self.root = Path(root).expanduser()

    def installation_path(self, package_id: str) -> Path:
        """Get the installation directory for a package id.

        Ids are case-insensitive: an existing directory whose name differs
        from the id only in case is the installation for that id.

        Raises:
            InvalidPackageId: If the id is empty or not a single path segment.
            FilesystemFailure: If the root cannot be read.
        """
        if not package_id or package_id in (".", "..") or any(
            sep in package_id for sep in ("/", "\\", "\0")
        ):
            raise InvalidPackageId(f"Invalid package id: {package_id!r}")

        try:
            matches = [p for p in self.root.iterdir() if p.name.lower() == package_id.lower()]
        except FileNotFoundError:
            matches = []
        except OSError as e:
            raise FilesystemFailure(f"Cannot read {self.root}: {e}") from e

        if not matches:
            return self.root / package_id
        # an exact-case match wins over a case-only one
        return min(matches, key=lambda p: p.name != package_id)

    def list_installed(self, filter: str | None = None) -> list[InstalledPackage]:
        """List installed packages.

        Args:
            filter: Case-insensitive substring matched against id and title.

        Returns:
            Installed packages sorted by id.

        Raises:
            FilesystemFailure: If the root cannot be read.
        """
        try:
            entries = sorted(p for p in self.root.iterdir() if p.is_dir())
        except FileNotFoundError:
            return []
        except OSError as e:
            raise FilesystemFailure(f"Cannot read {self.root}: {e}") from e

        installed: list[InstalledPackage] = []
        for install_dir in entries:
            package = self._read_installation(install_dir)
            if package is not None and _matches(package, filter):
                installed.append(package)
        return installed

    def find_installed(self, package_id: str) -> InstalledPackage | None:
        """Get an installed package by id.

        Returns:
            The installed package, or None if not installed (or unreadable).
        """
        try:
            install_dir = self.installation_path(package_id)
        except InvalidPackageId:
            return None
        if not install_dir.is_dir():
            return None
        return self._read_installation(install_dir)

    def retained_archive(self, install_dir: Path) -> Path | None:
        """Find the retained archive inside an installation directory."""
        pattern = f"{glob.escape(install_dir.name)}.*.{ARCHIVE_EXTENSION}"
        candidates: list[tuple[float, Path]] = []
        try:
            for path in install_dir.glob(pattern):
                info = path.stat()
                if stat.S_ISREG(info.st_mode):
                    candidates.append((info.st_mtime, path))
        except OSError as e:
            raise FilesystemFailure(f"Cannot read {install_dir}: {e}") from e
        if not candidates:
            return None
        return max(candidates)[1]

    def retain_archive(self, archive: PackageArchive, install_dir: Path) -> Path:
        """Write the raw archive into an installation directory.

        Returns:
            Path of the retained archive.
        """
        descriptor = archive.descriptor
        target = install_dir / archive_file_name(install_dir.name, descriptor.version)
        install_dir.mkdir(parents=True, exist_ok=True)
        target.write_bytes(archive.data)
        return target

    def remove_installation(self, package_id: str) -> None:
        """Delete an installation directory recursively.

        A directory that is already gone counts as removed. Other OS
        errors propagate so callers can retry them.
        """
        install_dir = self.installation_path(package_id)
        try:
            if install_dir.is_symlink() or install_dir.is_file():
                install_dir.unlink()
            else:
                shutil.rmtree(install_dir)
        except FileNotFoundError:
            if install_dir.exists():
                raise

    def _read_installation(self, install_dir: Path) -> InstalledPackage | None:
        archive_path = self.retained_archive(install_dir)
        if archive_path is None:
            logger.warning("Skipping %s: no retained package archive", install_dir)
            return None

        try:
            with PackageArchive.from_path(archive_path) as archive:
                descriptor = archive.descriptor
            mtime = archive_path.stat().st_mtime
        except PackageError as e:
            logger.warning("Skipping %s: %s", install_dir, e)
            return None
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FilesystemFailure(f"Cannot read {archive_path}: {e}") from e

        if descriptor.id.lower() != install_dir.name.lower():
            logger.warning(
                "Skipping %s: archive belongs to %s", install_dir, descriptor.id
            )
            return None

        # only the catalog knows which version is latest
        descriptor.is_latest_version = False
        return InstalledPackage(
            descriptor=descriptor,
            path=install_dir,
            installed_at=datetime.fromtimestamp(mtime, tz=timezone.utc),
        )


def _matches(package: InstalledPackage, filter: str | None) -> bool:
    if not filter:
        return True
    needle = filter.lower()
    descriptor = package.descriptor
    return needle in descriptor.id.lower() or needle in descriptor.title.lower()
