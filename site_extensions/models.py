"""Package metadata models for site extensions.

Defines the descriptor shared by the remote catalog and the local store,
and the ExtensionInfo projection returned to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from site_extensions.versioning import VersionError, parse_version


class DescriptorError(Exception):
    """Raised when package metadata is missing or invalid."""

    pass


def _parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp (or pass through a datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError as e:
            raise DescriptorError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class PackageDescriptor:
    """Metadata for one version of a package.

    Attributes:
        id: Stable package identifier, unique within a catalog.
        version: Semantic version string.
        title: Display title (defaults to the id).
        description: Short description of the package.
        project_url: URL of the project homepage.
        icon_url: URL of the package icon.
        license_url: URL of the package license.
        authors: Ordered list of author names.
        published_at: When this version was published, if known.
        download_count: Catalog download count.
        is_latest_version: Whether this is the newest version of its id.
            Authoritative only when read from the remote catalog.
        download_url: Where the catalog serves the package archive.
    """

    id: str
    version: str
    title: str = ""
    description: str = ""
    project_url: str | None = None
    icon_url: str | None = None
    license_url: str | None = None
    authors: list[str] = field(default_factory=list)
    published_at: datetime | None = None
    download_count: int = 0
    is_latest_version: bool = False
    download_url: str | None = None

    def __post_init__(self) -> None:
        """Validate the descriptor after initialization."""
        if not self.id:
            raise DescriptorError("Package id is required")
        if not self.version:
            raise DescriptorError(f"Package version is required for {self.id}")
        try:
            parse_version(self.version)
        except VersionError as e:
            raise DescriptorError(f"{self.id}: {e}") from e
        if self.download_count < 0:
            raise DescriptorError(f"{self.id}: download_count must be non-negative")
        if not self.title:
            self.title = self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PackageDescriptor:
        """Create a descriptor from catalog JSON or manifest data.

        Args:
            data: Dictionary with snake_case descriptor keys.

        Returns:
            Parsed PackageDescriptor.

        Raises:
            DescriptorError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise DescriptorError("Package metadata must be a mapping")

        authors = data.get("authors") or []
        if isinstance(authors, str):
            authors = [a.strip() for a in authors.split(",") if a.strip()]

        try:
            return cls(
                id=str(data.get("id") or ""),
                version=str(data.get("version") or ""),
                title=data.get("title") or "",
                description=data.get("description") or "",
                project_url=data.get("project_url"),
                icon_url=data.get("icon_url"),
                license_url=data.get("license_url"),
                authors=list(authors),
                published_at=_parse_timestamp(data.get("published_at")),
                download_count=int(data.get("download_count", 0) or 0),
                is_latest_version=bool(data.get("is_latest_version", False)),
                download_url=data.get("download_url"),
            )
        except (TypeError, ValueError) as e:
            raise DescriptorError(f"Invalid package metadata: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert descriptor to a JSON-ready dictionary."""
        return {
            "id": self.id,
            "version": self.version,
            "title": self.title,
            "description": self.description,
            "project_url": self.project_url,
            "icon_url": self.icon_url,
            "license_url": self.license_url,
            "authors": list(self.authors),
            "published_at": _format_timestamp(self.published_at),
            "download_count": self.download_count,
            "is_latest_version": self.is_latest_version,
        }

    def __repr__(self) -> str:
        return f"PackageDescriptor(id={self.id!r}, version={self.version!r})"


@dataclass
class InstalledPackage:
    """A package found in the local installation root."""

    descriptor: PackageDescriptor
    path: Path
    installed_at: datetime | None = None

    @property
    def id(self) -> str:
        return self.descriptor.id


@dataclass(repr=False)
class ExtensionInfo(PackageDescriptor):
    """Projection of a package returned to callers.

    Built fresh on every query and never cached.

    Attributes:
        local_path: Installation directory (local extensions only).
        installed_at: When the extension was installed.
        latest_info: Newest remote descriptor, set only when the caller
            asked for version reconciliation.
    """

    local_path: str | None = None
    installed_at: datetime | None = None
    latest_info: PackageDescriptor | None = None

    @classmethod
    def from_descriptor(
        cls,
        descriptor: PackageDescriptor,
        local_path: Path | str | None = None,
        installed_at: datetime | None = None,
    ) -> ExtensionInfo:
        """Project a descriptor into an ExtensionInfo."""
        values = {
            f.name: getattr(descriptor, f.name) for f in fields(PackageDescriptor)
        }
        values["authors"] = list(descriptor.authors)
        return cls(
            **values,
            local_path=str(local_path) if local_path is not None else None,
            installed_at=installed_at,
        )

    @classmethod
    def from_installed(cls, installed: InstalledPackage) -> ExtensionInfo:
        """Project a locally installed package into an ExtensionInfo."""
        return cls.from_descriptor(
            installed.descriptor,
            local_path=installed.path,
            installed_at=installed.installed_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary, nesting latest_info."""
        result = super().to_dict()
        result["local_path"] = self.local_path
        result["installed_at"] = _format_timestamp(self.installed_at)
        result["latest_info"] = self.latest_info.to_dict() if self.latest_info else None
        return result

    def __repr__(self) -> str:
        return (
            f"ExtensionInfo(id={self.id!r}, version={self.version!r}, "
            f"local_path={self.local_path!r})"
        )
