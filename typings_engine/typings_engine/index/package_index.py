"""In-memory, read-only index of packages and deprecation records.

The index answers the lookups the change pipeline needs: whether a
package (optionally at a version) exists, which directories a package
depends on, and whether a directory has been marked as not needed.  It is
fully built before any pipeline step runs and never mutated afterwards.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from typings_engine.models.deprecation import NotNeededPackage
from typings_engine.models.package import PackageIdentity
from typings_engine.models.typings_package import TypingsPackage


def _version_sort_key(package: TypingsPackage) -> tuple[int, int]:
    minor = package.version.minor
    return (package.version.major, -1 if minor is None else minor)


class PackageIndexError(Exception):
    """Raised when package metadata is missing, malformed, or contradictory."""


class PackageIndex:
    """Packages keyed by directory name, each with one or more versions.

    Parameters
    ----------
    packages:
        Every known package version.  Two entries with the same identity
        key are rejected.
    not_needed:
        Deprecation records.  A directory may appear both here and in
        *packages* (that is exactly what the deprecation validator checks
        for).
    """

    def __init__(
        self,
        packages: Iterable[TypingsPackage] = (),
        not_needed: Iterable[NotNeededPackage] = (),
    ) -> None:
        self._versions: dict[str, list[TypingsPackage]] = defaultdict(list)
        seen_keys: set[str] = set()
        for package in packages:
            key = package.identity.key
            if key in seen_keys:
                raise PackageIndexError(f"Duplicate package version: {key}")
            seen_keys.add(key)
            self._versions[package.directory_name].append(package)
        for versions in self._versions.values():
            versions.sort(key=_version_sort_key, reverse=True)

        self._not_needed: dict[str, NotNeededPackage] = {}
        for record in not_needed:
            if record.name in self._not_needed:
                raise PackageIndexError(f"Duplicate not-needed entry: {record.name}")
            self._not_needed[record.name] = record

    # -- Lookups -------------------------------------------------------------

    def exists(self, identity: PackageIdentity) -> bool:
        """Return ``True`` if any indexed version matches *identity*."""
        return any(p.identity == identity for p in self._versions.get(identity.directory_name, ()))

    def has_typings(self, directory_name: str) -> bool:
        """Return ``True`` if any version of *directory_name* still has declarations."""
        return bool(self._versions.get(directory_name))

    def dependencies_of(self, directory_name: str) -> set[str]:
        """Directory names depended on by any version of *directory_name*."""
        deps: set[str] = set()
        for package in self._versions.get(directory_name, ()):
            deps.update(package.dependencies)
        deps.discard(directory_name)
        return deps

    def is_deprecated(self, directory_name: str) -> bool:
        return directory_name in self._not_needed

    def deprecation_record_of(self, directory_name: str) -> NotNeededPackage | None:
        return self._not_needed.get(directory_name)

    def latest(self, directory_name: str) -> TypingsPackage | None:
        """The highest indexed version of *directory_name*, if any."""
        versions = self._versions.get(directory_name)
        return versions[0] if versions else None

    # -- Enumeration ---------------------------------------------------------

    def directory_names(self) -> list[str]:
        return sorted(name for name, versions in self._versions.items() if versions)

    def packages(self) -> list[TypingsPackage]:
        """Every indexed package version, by directory name then newest first."""
        return [p for name in self.directory_names() for p in self._versions[name]]

    def __len__(self) -> int:
        return len(self.directory_names())
