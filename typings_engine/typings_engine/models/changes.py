"""File-level and package-level change models.

:data:`FileChange` is the closed set of events produced by the diff
source.  The change classifier folds them into a
:class:`PackageChangeSet`, and the affected-set resolver turns that into
an :class:`AffectedResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from typings_engine.models.package import PackageIdentity

# ---------------------------------------------------------------------------
# File-level events
# ---------------------------------------------------------------------------


class ChangeStatus(str, Enum):
    """Status letter of a file-level change as reported by ``git diff --name-status``."""

    ADDED = "A"
    DELETED = "D"
    MODIFIED = "M"
    RENAMED = "R"


class _FileChangeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1, description="Repository-relative path after the change.")


class Added(_FileChangeBase):
    """A file that exists only in the target revision."""

    status: Literal[ChangeStatus.ADDED] = ChangeStatus.ADDED


class Deleted(_FileChangeBase):
    """A file that exists only in the base revision."""

    status: Literal[ChangeStatus.DELETED] = ChangeStatus.DELETED


class Modified(_FileChangeBase):
    """A file whose content changed in place."""

    status: Literal[ChangeStatus.MODIFIED] = ChangeStatus.MODIFIED


class Renamed(_FileChangeBase):
    """A file moved from ``source`` to ``path``."""

    status: Literal[ChangeStatus.RENAMED] = ChangeStatus.RENAMED
    source: str = Field(..., min_length=1, description="Repository-relative path before the move.")


FileChange = Annotated[
    Union[Added, Deleted, Modified, Renamed],
    Field(discriminator="status"),
]


# ---------------------------------------------------------------------------
# Package-level change set
# ---------------------------------------------------------------------------


class ChangeBucket(str, Enum):
    ADDITION = "addition"
    DELETION = "deletion"


@dataclass
class PackageChangeSet:
    """Package additions and deletions derived from a diff.

    Entries are keyed by :attr:`PackageIdentity.key`.  Recording a key
    replaces whatever was recorded for that key before, in either bucket,
    so a key is never both added and deleted: the last event wins.
    """

    _entries: dict[str, tuple[ChangeBucket, PackageIdentity]] = field(default_factory=dict)

    def record_addition(self, identity: PackageIdentity) -> None:
        self._entries[identity.key] = (ChangeBucket.ADDITION, identity)

    def record_deletion(self, identity: PackageIdentity) -> None:
        self._entries[identity.key] = (ChangeBucket.DELETION, identity)

    def _bucket(self, bucket: ChangeBucket) -> list[PackageIdentity]:
        return [
            identity for key, (entry_bucket, identity) in sorted(self._entries.items()) if entry_bucket is bucket
        ]

    @property
    def additions(self) -> list[PackageIdentity]:
        """Added packages, sorted by key."""
        return self._bucket(ChangeBucket.ADDITION)

    @property
    def deletions(self) -> list[PackageIdentity]:
        """Deleted packages, sorted by key."""
        return self._bucket(ChangeBucket.DELETION)

    def directory_names(self) -> set[str]:
        """Directory names of every added or deleted package."""
        return {identity.directory_name for _, identity in self._entries.values()}

    def is_empty(self) -> bool:
        return not self._entries


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying a diff: a change set, or structural errors.

    Partial change sets are never exposed alongside errors.
    """

    change_set: PackageChangeSet | None = None
    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if (self.change_set is None) == (not self.errors):
            raise ValueError("ClassificationResult needs exactly one of change_set or errors")

    @property
    def ok(self) -> bool:
        return self.change_set is not None


# ---------------------------------------------------------------------------
# Affected packages
# ---------------------------------------------------------------------------


class AffectedResult(BaseModel):
    """Packages to re-validate for a change-set, or the reasons it was rejected.

    ``package_names`` are the directly changed directories and
    ``dependents`` every directory that transitively depends on one of
    them.  Both are unordered; sort before display.  ``warnings`` hold
    non-blocking notes such as dangling dependency references.
    """

    snapshot: str = Field(default="", description="Identifier of the repository snapshot evaluated.")
    package_names: set[str] = Field(default_factory=set)
    dependents: set[str] = Field(default_factory=set)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_shape(self) -> AffectedResult:
        if self.errors and (self.package_names or self.dependents):
            raise ValueError("A rejected AffectedResult must not list affected packages.")
        overlap = self.package_names & self.dependents
        if overlap:
            raise ValueError(f"Dependents overlap changed packages: {sorted(overlap)}")
        return self

    @property
    def ok(self) -> bool:
        return not self.errors

    @classmethod
    def rejected(cls, errors: list[str], snapshot: str = "") -> AffectedResult:
        return cls(snapshot=snapshot, errors=list(errors))
