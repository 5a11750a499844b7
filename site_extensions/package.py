"""Package archive format for site extensions.

A package archive is a zip file with a ``manifest.yaml`` at its root and
the extension's content tree under the ``content/`` prefix.
"""

from __future__ import annotations

import io
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import IO, Iterator

import yaml

from site_extensions.models import DescriptorError, PackageDescriptor

MANIFEST_NAME = "manifest.yaml"
CONTENT_PREFIX = "content/"
ARCHIVE_EXTENSION = "zip"


class PackageError(Exception):
    """Raised when a package archive is missing, unreadable, or unsafe."""

    pass


def archive_file_name(package_id: str, version: str) -> str:
    """Name of the retained archive for a package version."""
    return f"{package_id}.{version}.{ARCHIVE_EXTENSION}"


@dataclass(frozen=True)
class PackageFile:
    """A content file inside a package archive."""

    path: str
    relative_path: str


class PackageArchive:
    """Read access to a package archive held in memory.

    Example:
        >>> archive = PackageArchive(data)
        >>> archive.descriptor.id
        'foo'
        >>> [f.relative_path for f in archive.content_files()]
        ['site/index.html', 'applicationHost.xdt']
    """

    def __init__(self, data: bytes, source: str = "<memory>"):
        """Initialize the archive.

        Args:
            data: Raw zip bytes.
            source: Where the bytes came from (used in error messages).

        Raises:
            PackageError: If the bytes are not a zip archive.
        """
        self.data = data
        self.source = source
        try:
            self._zip = zipfile.ZipFile(io.BytesIO(data))
        except zipfile.BadZipFile as e:
            raise PackageError(f"Not a package archive: {source}") from e
        self._descriptor: PackageDescriptor | None = None

    @classmethod
    def from_path(cls, path: Path) -> PackageArchive:
        """Load an archive from disk."""
        return cls(path.read_bytes(), source=str(path))

    @property
    def descriptor(self) -> PackageDescriptor:
        """Metadata parsed from the archive's manifest."""
        if self._descriptor is None:
            self._descriptor = self._read_manifest()
        return self._descriptor

    def _read_manifest(self) -> PackageDescriptor:
        try:
            raw = self._zip.read(MANIFEST_NAME)
        except KeyError:
            raise PackageError(f"{self.source} does not contain {MANIFEST_NAME}")

        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise PackageError(f"Invalid YAML in {self.source}: {e}") from e

        try:
            return PackageDescriptor.from_dict(data)
        except DescriptorError as e:
            raise PackageError(f"Invalid manifest in {self.source}: {e}") from e

    def content_files(self) -> Iterator[PackageFile]:
        """Iterate over content files with the content prefix stripped.

        Raises:
            PackageError: If an entry would resolve outside the content root.
        """
        for member in self._zip.namelist():
            if not member.startswith(CONTENT_PREFIX) or member.endswith("/"):
                continue

            relative = member[len(CONTENT_PREFIX):]
            parts = PurePosixPath(relative).parts
            if not relative or relative.startswith("/") or ".." in parts:
                raise PackageError(f"Unsafe path in {self.source}: {member}")

            yield PackageFile(path=member, relative_path=relative)

    def has_content(self, relative_path: str) -> bool:
        """Check whether the content tree includes a file."""
        return any(f.relative_path == relative_path for f in self.content_files())

    def open(self, package_file: PackageFile) -> IO[bytes]:
        """Open a content file's byte stream."""
        return self._zip.open(package_file.path)

    def extract_to(self, target_dir: Path) -> list[Path]:
        """Copy every content file under target_dir, byte for byte.

        Returns:
            Paths of the written files.
        """
        written: list[Path] = []
        for package_file in self.content_files():
            full_path = target_dir / package_file.relative_path
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with self.open(package_file) as source, open(full_path, "wb") as target:
                shutil.copyfileobj(source, target)
            written.append(full_path)
        return written

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> PackageArchive:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
