"""Classify file-level diff events into package additions and deletions.

Only structural changes matter here: a package counts as added when
files appear in it and deleted when files disappear from it.  Content
edits (:class:`Modified`) never change package structure and are skipped;
the affected-set resolver finds the packages they touch by other means.

Every added or deleted file under the package root must belong to a
package, i.e. match ``<root>/<dir>/...`` or ``<root>/<dir>/v<major>[.<minor>]/...``.
Files that do not are reported as structural errors, one per event, in
diff order.  When any error is found the whole change set is discarded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from typings_engine.models.changes import (
    Added,
    ClassificationResult,
    Deleted,
    FileChange,
    Modified,
    PackageChangeSet,
    Renamed,
)
from typings_engine.models.package import WILDCARD, PackageIdentity, PackageVersion

logger = logging.getLogger(__name__)

DEFAULT_TYPES_DIRECTORY = "types"


def _normalize(path: str) -> str:
    return path.replace("\\", "/")


def is_package_path(path: str, types_directory: str = DEFAULT_TYPES_DIRECTORY) -> bool:
    """Return ``True`` if *path* mentions the package root at all.

    Paths that mention it anywhere are held to the package grammar; all
    other paths are outside the package area and ignored.
    """
    return f"{types_directory}/" in _normalize(path)


def package_id_from_path(path: str, types_directory: str = DEFAULT_TYPES_DIRECTORY) -> PackageIdentity | None:
    """Map a file path to the package that owns it.

    ``types/foo/index.d.ts`` maps to ``foo@*`` and
    ``types/foo/v2/index.d.ts`` to ``foo@v2``.  Returns ``None`` when the
    path is not a file inside a package directory (e.g. ``types/README.md``
    or ``scripts/types/x.ts``).
    """
    parts = _normalize(path).split("/")
    if len(parts) <= 2:
        return None
    root, directory_name, sub_directory = parts[0], parts[1], parts[2]
    if root != types_directory or not directory_name:
        return None
    version = PackageVersion.from_directory_name(sub_directory)
    return PackageIdentity(directory_name, version if version is not None else WILDCARD)


def unexpected_file_error(path: str, *, added: bool) -> str:
    if added:
        return f"Unexpected file added: {path}\nYou should only add files that are part of packages."
    return f"Unexpected file deleted: {path}\nYou should only delete files that are a part of removed packages."


class _Classifier:
    """Accumulates one classification pass."""

    def __init__(self, types_directory: str) -> None:
        self._types_directory = types_directory
        self.change_set = PackageChangeSet()
        self.errors: list[str] = []

    def add(self, path: str) -> None:
        if not is_package_path(path, self._types_directory):
            return
        identity = package_id_from_path(path, self._types_directory)
        if identity is None:
            self.errors.append(unexpected_file_error(path, added=True))
        else:
            self.change_set.record_addition(identity)

    def delete(self, path: str) -> None:
        if not is_package_path(path, self._types_directory):
            return
        identity = package_id_from_path(path, self._types_directory)
        if identity is None:
            self.errors.append(unexpected_file_error(path, added=False))
        else:
            self.change_set.record_deletion(identity)


def classify_changes(
    diffs: Iterable[FileChange],
    types_directory: str = DEFAULT_TYPES_DIRECTORY,
) -> ClassificationResult:
    """Fold *diffs* into a :class:`PackageChangeSet`.

    A rename is a deletion of its source followed by an addition of its
    destination.  Later events for the same package key overwrite earlier
    ones, so ``[Added(x), Deleted(x)]`` leaves ``x`` deleted.

    Parameters
    ----------
    diffs:
        File-level events in diff order.
    types_directory:
        Name of the package root directory.

    Returns
    -------
    ClassificationResult
        The change set, or the structural errors in diff order.
    """
    classifier = _Classifier(types_directory)
    for diff in diffs:
        if isinstance(diff, Modified):
            continue
        if isinstance(diff, Added):
            classifier.add(diff.path)
        elif isinstance(diff, Deleted):
            classifier.delete(diff.path)
        elif isinstance(diff, Renamed):
            classifier.delete(diff.source)
            classifier.add(diff.path)
        else:
            raise TypeError(f"Unsupported file change: {diff!r}")

    if classifier.errors:
        logger.debug("Change classification found %d structural error(s).", len(classifier.errors))
        return ClassificationResult(errors=tuple(classifier.errors))
    return ClassificationResult(change_set=classifier.change_set)
