"""Domain models for the typings impact engine."""

from typings_engine.models.changes import (
    Added,
    AffectedResult,
    ChangeStatus,
    ClassificationResult,
    Deleted,
    FileChange,
    Modified,
    PackageChangeSet,
    Renamed,
)
from typings_engine.models.deprecation import NotNeededPackage
from typings_engine.models.package import WILDCARD, PackageIdentity, PackageVersion
from typings_engine.models.typings_package import TypingsPackage

__all__ = [
    "Added",
    "AffectedResult",
    "ChangeStatus",
    "ClassificationResult",
    "Deleted",
    "FileChange",
    "Modified",
    "NotNeededPackage",
    "PackageChangeSet",
    "PackageIdentity",
    "PackageVersion",
    "Renamed",
    "TypingsPackage",
    "WILDCARD",
]
