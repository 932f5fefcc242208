"""Package identity value types.

A package in the monorepo is addressed by its directory name under the
package root plus an optional ``major.minor`` version taken from a
``v<major>[.<minor>]`` sub-directory.  When no version is known the
identity carries the :data:`WILDCARD`, which matches every version of the
same directory.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Literal, Union

WILDCARD: Final = "*"

_VERSION_DIR_RE = re.compile(r"^v(\d+)(?:\.(\d+))?$")
_SEMVER_PREFIX_RE = re.compile(r"^(\d+)\.(\d+)")


@dataclass(frozen=True)
class PackageVersion:
    """An exact ``major.minor`` package version.

    ``minor`` is ``None`` when the version directory only names a major
    version (``v2``); the rendered form then omits the minor part.
    """

    major: int
    minor: int | None = None

    def __str__(self) -> str:
        if self.minor is None:
            return str(self.major)
        return f"{self.major}.{self.minor}"

    @classmethod
    def from_directory_name(cls, name: str) -> PackageVersion | None:
        """Parse a ``v<major>[.<minor>]`` directory name, or return ``None``."""
        match = _VERSION_DIR_RE.match(name)
        if match is None:
            return None
        minor = match.group(2)
        return cls(int(match.group(1)), int(minor) if minor is not None else None)

    @classmethod
    def from_semver(cls, version: str) -> PackageVersion:
        """Take the ``major.minor`` prefix of a manifest version such as ``2.1.9999``.

        Raises
        ------
        ValueError
            If *version* does not start with ``<major>.<minor>``.
        """
        match = _SEMVER_PREFIX_RE.match(version.strip())
        if match is None:
            raise ValueError(f"Not a major.minor version: {version!r}")
        return cls(int(match.group(1)), int(match.group(2)))


VersionSpec = Union[PackageVersion, Literal["*"]]


@dataclass(frozen=True, eq=False)
class PackageIdentity:
    """A package directory name plus an exact version or the wildcard.

    Two identities are equal when their directory names match and either
    the versions match exactly or one side is the wildcard.  Because that
    relation is not transitive the hash only covers the directory name;
    containers that must keep ``foo@*`` and ``foo@v2`` apart should key on
    :attr:`key` instead.
    """

    directory_name: str
    version: VersionSpec = WILDCARD

    @property
    def is_wildcard(self) -> bool:
        return self.version == WILDCARD

    @property
    def key(self) -> str:
        """Composite container key, e.g. ``foo/v2.1`` or ``foo/v*``."""
        return f"{self.directory_name}/v{self.version}"

    def matches(self, other: PackageIdentity) -> bool:
        if self.directory_name != other.directory_name:
            return False
        if self.is_wildcard or other.is_wildcard:
            return True
        return self.version == other.version

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.matches(other)

    def __hash__(self) -> int:
        return hash(self.directory_name)

    def __str__(self) -> str:
        if self.is_wildcard:
            return f"{self.directory_name}@{WILDCARD}"
        return f"{self.directory_name}@v{self.version}"
