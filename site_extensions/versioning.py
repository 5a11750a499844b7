"""Semantic version helpers for site extension packages.

Versions follow SemVer with the NuGet relaxations: the patch component is
optional, a fourth numeric component is allowed, and missing components
count as zero (``1.0`` == ``1.0.0``). Prerelease labels sort before the
release they precede; build metadata after ``+`` never affects ordering
or equality.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

SEMVER_PATTERN = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?(?:\.(?P<revision>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z\-]+(?:\.[0-9A-Za-z\-]+)*))?$"
)


class VersionError(ValueError):
    """Raised when a version string cannot be parsed."""

    pass


def _identifier_key(identifier: str) -> tuple[int, int, str]:
    # numeric identifiers sort before alphanumeric ones
    if identifier.isdigit():
        return (0, int(identifier), "")
    return (1, 0, identifier.lower())


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """A parsed package version.

    Attributes:
        release: Major, minor, patch and revision numbers.
        prerelease: Dot-separated prerelease identifiers (empty for a release).
        metadata: Build metadata, kept for display only.
    """

    release: tuple[int, int, int, int]
    prerelease: tuple[str, ...] = ()
    metadata: str = ""

    @classmethod
    def parse(cls, value: str) -> SemanticVersion:
        match = SEMVER_PATTERN.match(value.strip()) if isinstance(value, str) else None
        if match is None:
            raise VersionError(f"Invalid version: {value!r}")

        release = tuple(
            int(match.group(name) or 0)
            for name in ("major", "minor", "patch", "revision")
        )
        prerelease = match.group("prerelease")
        return cls(
            release=release,
            prerelease=tuple(prerelease.split(".")) if prerelease else (),
            metadata=match.group("metadata") or "",
        )

    def _key(self) -> tuple:
        if not self.prerelease:
            return (self.release, 1, ())
        return (self.release, 0, tuple(_identifier_key(i) for i in self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())


def parse_version(value: str) -> SemanticVersion:
    """Parse a package version string.

    Args:
        value: Version string (e.g., "1.2.0", "2.0.0-ctp" or "1.0.0+build.5").

    Returns:
        Parsed version.

    Raises:
        VersionError: If the string is not a valid version.
    """
    return SemanticVersion.parse(value)


def versions_equal(v1: str, v2: str) -> bool:
    """Check two version strings for semantic equality ("1.0" == "1.0.0")."""
    return parse_version(v1) == parse_version(v2)


def compare_versions(v1: str, v2: str) -> int:
    """Compare two version strings.

    Returns:
        -1 if v1 < v2, 0 if equal, 1 if v1 > v2.
    """
    p1, p2 = parse_version(v1), parse_version(v2)
    if p1 < p2:
        return -1
    if p1 > p2:
        return 1
    return 0
