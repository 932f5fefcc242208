"""Build a :class:`PackageIndex` from a checked-out monorepo.

Each package lives in ``<root>/<dir>/`` with a ``package.json`` manifest;
older major/minor versions live in ``<root>/<dir>/v<major>[.<minor>]/``
with their own manifest.  Dependencies on other packages in the monorepo
are the ``@types/*`` keys of the manifest's dependency maps.  Deprecation
records come from the not-needed manifest at the repository root::

    {"packages": {"babel__parser": {"libraryName": "@babel/parser", "asOfVersion": "7.0.0"}}}

Typical usage::

    index = load_package_index(Path("DefinitelyTyped"), settings)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from typings_engine.config import Settings
from typings_engine.index.package_index import PackageIndex, PackageIndexError
from typings_engine.models.deprecation import TYPES_SCOPE, NotNeededPackage
from typings_engine.models.package import PackageVersion
from typings_engine.models.typings_package import TypingsPackage, directory_name_from_types_package

logger = logging.getLogger(__name__)

_MANIFEST_NAME = "package.json"

# Dependency maps scanned for references to other packages.
_DEPENDENCY_FIELDS: tuple[str, ...] = ("dependencies", "devDependencies", "peerDependencies")


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise PackageIndexError(f"Cannot read '{path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PackageIndexError(f"Invalid JSON in '{path}': {exc}") from exc


def _collect_dependencies(manifest: dict[str, Any], directory_name: str, path: Path) -> frozenset[str]:
    deps: set[str] = set()
    for field_name in _DEPENDENCY_FIELDS:
        mapping = manifest.get(field_name) or {}
        if not isinstance(mapping, dict):
            raise PackageIndexError(f"'{field_name}' in '{path}' must be an object")
        for dep_name in mapping:
            dep_dir = directory_name_from_types_package(dep_name)
            if dep_dir is not None and dep_dir != directory_name:
                deps.add(dep_dir)
    return frozenset(deps)


def parse_manifest(path: Path, directory_name: str, version_dir: str | None = None) -> TypingsPackage:
    """Parse one ``package.json`` into a :class:`TypingsPackage`.

    Parameters
    ----------
    path:
        The manifest file.
    directory_name:
        The package directory the manifest belongs to.
    version_dir:
        The ``v<major>[.<minor>]`` sub-directory name for older versions,
        or ``None`` for the top-level (current) version.

    Raises
    ------
    PackageIndexError
        If the manifest cannot be read or is inconsistent with its location.
    """
    manifest = _read_json(path)
    if not isinstance(manifest, dict):
        raise PackageIndexError(f"'{path}' must contain a JSON object")

    expected_name = f"{TYPES_SCOPE}/{directory_name}"
    name = manifest.get("name")
    if name != expected_name:
        raise PackageIndexError(f"'{path}' declares name {name!r}, expected {expected_name!r}")

    manifest_version = manifest.get("version")
    if not isinstance(manifest_version, str):
        raise PackageIndexError(f"'{path}' is missing a string 'version'")

    if version_dir is None:
        try:
            version = PackageVersion.from_semver(manifest_version)
        except ValueError as exc:
            raise PackageIndexError(f"'{path}': {exc}") from exc
    else:
        parsed = PackageVersion.from_directory_name(version_dir)
        if parsed is None:
            raise PackageIndexError(f"'{path}' is not inside a version directory")
        version = parsed

    projects = manifest.get("projects") or []
    if isinstance(projects, str):
        projects = [projects]

    return TypingsPackage(
        directory_name=directory_name,
        version=version,
        dependencies=_collect_dependencies(manifest, directory_name, path),
        project_urls=[str(p) for p in projects],
    )


def load_not_needed_packages(manifest_path: Path) -> list[NotNeededPackage]:
    """Load deprecation records from the not-needed manifest.

    A missing manifest means nothing is deprecated.

    Raises
    ------
    PackageIndexError
        If the manifest exists but is malformed.
    """
    if not manifest_path.is_file():
        logger.info("No not-needed manifest at '%s'.", manifest_path)
        return []

    data = _read_json(manifest_path)
    entries = data.get("packages") if isinstance(data, dict) else None
    if not isinstance(entries, dict):
        raise PackageIndexError(f"'{manifest_path}' must contain a 'packages' object")

    records: list[NotNeededPackage] = []
    for name, entry in sorted(entries.items()):
        if not isinstance(entry, dict):
            raise PackageIndexError(f"Entry '{name}' in '{manifest_path}' must be an object")
        try:
            records.append(
                NotNeededPackage(
                    name=name,
                    library_name=entry.get("libraryName", ""),
                    version=str(entry.get("asOfVersion", "")),
                )
            )
        except ValidationError as exc:
            raise PackageIndexError(f"Invalid entry '{name}' in '{manifest_path}': {exc}") from exc
    return records


def load_package_index(repo_path: Path, settings: Settings) -> PackageIndex:
    """Scan *repo_path* and build the package index.

    Packages whose manifest cannot be parsed are logged and skipped; they
    surface later as dangling references if anything depends on them.
    A version directory that repeats a version already declared for the
    same package is logged and skipped as well.

    Raises
    ------
    PackageIndexError
        If the package root does not exist or the not-needed manifest is
        malformed.
    """
    types_root = repo_path / settings.types_directory
    if not types_root.is_dir():
        raise PackageIndexError(f"Package root does not exist or is not a directory: '{types_root}'")

    packages: list[TypingsPackage] = []
    seen_keys: dict[str, Path] = {}
    for package_dir in sorted(p for p in types_root.iterdir() if p.is_dir()):
        candidates: list[tuple[Path, str | None]] = [(package_dir / _MANIFEST_NAME, None)]
        for sub_dir in sorted(p for p in package_dir.iterdir() if p.is_dir()):
            if PackageVersion.from_directory_name(sub_dir.name) is not None:
                candidates.append((sub_dir / _MANIFEST_NAME, sub_dir.name))

        for manifest_path, version_dir in candidates:
            if not manifest_path.is_file():
                logger.debug("No manifest at '%s'.", manifest_path)
                continue
            try:
                package = parse_manifest(manifest_path, package_dir.name, version_dir)
            except PackageIndexError as exc:
                logger.error("Skipping '%s': %s", manifest_path, exc)
                continue
            key = package.identity.key
            if key in seen_keys:
                # The top-level manifest is read first and wins.
                logger.error("Skipping '%s': version %s already declared by '%s'", manifest_path, key, seen_keys[key])
                continue
            seen_keys[key] = manifest_path
            packages.append(package)

    not_needed = load_not_needed_packages(repo_path / settings.not_needed_manifest)
    index = PackageIndex(packages, not_needed)
    logger.info(
        "Loaded %d package version(s) across %d package(s); %d marked not needed.",
        len(packages),
        len(index),
        len(not_needed),
    )
    return index
