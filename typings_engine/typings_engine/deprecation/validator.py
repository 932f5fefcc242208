"""Validate edits to the not-needed manifest.

Two checks run when a change-set touches the manifest:

1. **Consistency** (:func:`get_not_needed_packages`) -- every deleted
   package that is listed as not needed must have had all of its files
   removed.  Deletions of packages that are not listed are ignored.
2. **Registry** (:func:`check_not_needed_package`) -- each accepted record
   must point at a published replacement whose version is strictly newer
   than the latest published ``@types`` package it replaces.

Structural problems are returned as fully worded error strings.  Registry
failures other than "not found" propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

import semver

from typings_engine.index.package_index import PackageIndex
from typings_engine.models.changes import PackageChangeSet
from typings_engine.models.deprecation import NotNeededPackage
from typings_engine.registry.npm_client import (
    NpmRegistryClient,
    PackageNotFoundError,
    VersionNotFoundError,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Error wording
# ---------------------------------------------------------------------------


def files_remaining_error(directory_name: str) -> str:
    return f"Please delete all files in {directory_name} when adding it to notNeededPackages.json."


def replacement_missing_error(record: NotNeededPackage) -> str:
    return (
        f"The entry for {record.name} in notNeededPackages.json has\n"
        f'"libraryName": "{record.library_name}", but there is no npm package with this name.\n'
        "Unneeded packages have to be replaced with a package on npm."
    )


def replacement_version_missing_error(record: NotNeededPackage) -> str:
    return f"The specified version {record.version} of {record.library_name} is not on npm."


def typings_missing_error(record: NotNeededPackage) -> str:
    return f"Unexpected error: @types package not found for {record.name}"


def version_not_newer_error(record: NotNeededPackage, latest: str) -> str:
    return (
        f"The specified version {record.version} of {record.library_name} must be newer than the version\n"
        f"it is supposed to replace, {latest} of {record.types_package_name}."
    )


# ---------------------------------------------------------------------------
# Consistency check
# ---------------------------------------------------------------------------


def get_not_needed_packages(
    index: PackageIndex,
    deleted_directories: Sequence[str],
) -> tuple[list[NotNeededPackage], list[str]]:
    """Match deleted directories against the not-needed manifest.

    Parameters
    ----------
    index:
        The package index of the snapshot *after* the change.
    deleted_directories:
        Directory names of deleted packages, duplicates allowed.

    Returns
    -------
    tuple[list[NotNeededPackage], list[str]]
        The accepted deprecation records and the consistency errors, both
        in first-seen order of *deleted_directories*.
    """
    records: list[NotNeededPackage] = []
    errors: list[str] = []
    for name in dict.fromkeys(deleted_directories):
        record = index.deprecation_record_of(name)
        if record is None:
            continue
        if index.has_typings(name):
            errors.append(files_remaining_error(name))
        else:
            records.append(record)
    return records, errors


# ---------------------------------------------------------------------------
# Registry check
# ---------------------------------------------------------------------------


async def check_not_needed_package(record: NotNeededPackage, registry: NpmRegistryClient) -> list[str]:
    """Check one deprecation record against the registry.

    Errors are returned in check order.  Registry errors other than a
    missing package or version are not caught.
    """
    errors: list[str] = []

    try:
        await registry.resolve(record.library_name, record.version)
    except PackageNotFoundError:
        errors.append(replacement_missing_error(record))
    except VersionNotFoundError:
        errors.append(replacement_version_missing_error(record))

    try:
        latest = await registry.resolve(record.types_package_name)
    except (PackageNotFoundError, VersionNotFoundError):
        errors.append(typings_missing_error(record))
        return errors

    if semver.Version.parse(record.version).compare(latest.version) <= 0:
        errors.append(version_not_newer_error(record, latest.version))
    return errors


async def check_not_needed_packages(
    records: Sequence[NotNeededPackage],
    registry: NpmRegistryClient,
    limiter: asyncio.Semaphore,
) -> list[str]:
    """Run :func:`check_not_needed_package` for every record concurrently.

    At most ``limiter``'s capacity of records are checked at once.  The
    returned errors are grouped per record in input order.
    """

    async def _check(record: NotNeededPackage) -> list[str]:
        async with limiter:
            logger.debug("Checking replacement %s@%s for %s", record.library_name, record.version, record.name)
            return await check_not_needed_package(record, registry)

    results = await asyncio.gather(*[_check(r) for r in records])
    return [error for errors in results for error in errors]


async def validate_deprecations(
    index: PackageIndex,
    change_set: PackageChangeSet,
    registry: NpmRegistryClient,
    limiter: asyncio.Semaphore,
) -> list[str]:
    """Validate the deprecations implied by *change_set*.

    Registry lookups only run when the consistency check passes.  An
    empty list means the manifest edits are valid.
    """
    deleted = [identity.directory_name for identity in change_set.deletions]
    records, errors = get_not_needed_packages(index, deleted)
    if errors:
        return errors
    if records:
        logger.info("Validating %d not-needed package(s) against the registry.", len(records))
    return await check_not_needed_packages(records, registry, limiter)
