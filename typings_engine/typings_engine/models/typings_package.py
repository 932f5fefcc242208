"""A single versioned package as recorded in the package index."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from typings_engine.models.deprecation import TYPES_SCOPE
from typings_engine.models.package import PackageIdentity, PackageVersion

_SCOPE_SEPARATOR = "__"


def mangle_scoped_name(library_name: str) -> str:
    """Map an npm name to its directory name: ``@babel/parser`` -> ``babel__parser``."""
    if library_name.startswith("@") and "/" in library_name:
        scope, _, name = library_name[1:].partition("/")
        return f"{scope}{_SCOPE_SEPARATOR}{name}"
    return library_name


def unmangle_scoped_name(directory_name: str) -> str:
    """Inverse of :func:`mangle_scoped_name`."""
    if _SCOPE_SEPARATOR in directory_name:
        scope, _, name = directory_name.partition(_SCOPE_SEPARATOR)
        return f"@{scope}/{name}"
    return directory_name


def directory_name_from_types_package(package_name: str) -> str | None:
    """Return the directory for an ``@types/<dir>`` dependency name, else ``None``."""
    prefix = f"{TYPES_SCOPE}/"
    if not package_name.startswith(prefix):
        return None
    return package_name[len(prefix) :] or None


class TypingsPackage(BaseModel):
    """One version of a package, with the packages it declares dependencies on."""

    model_config = ConfigDict(frozen=True)

    directory_name: str = Field(..., min_length=1)
    version: PackageVersion
    dependencies: frozenset[str] = Field(
        default_factory=frozenset,
        description="Directory names of the packages this one depends on.",
    )
    project_urls: list[str] = Field(default_factory=list)

    @property
    def identity(self) -> PackageIdentity:
        return PackageIdentity(self.directory_name, self.version)

    @property
    def types_package_name(self) -> str:
        return f"{TYPES_SCOPE}/{self.directory_name}"

    @property
    def library_name(self) -> str:
        """The npm name of the library these declarations describe."""
        return unmangle_scoped_name(self.directory_name)
