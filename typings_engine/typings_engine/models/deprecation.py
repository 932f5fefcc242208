"""Deprecation records loaded from the not-needed manifest."""

from __future__ import annotations

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator

TYPES_SCOPE = "@types"


class NotNeededPackage(BaseModel):
    """A package declared obsolete in favour of an external replacement.

    ``name`` is the deprecated package's directory name, ``library_name``
    the npm package that replaces it, and ``version`` the first version of
    the replacement that ships its own declarations.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Directory name of the deprecated package.")
    library_name: str = Field(..., min_length=1, description="npm name of the replacement package.")
    version: str = Field(..., description="Minimum replacement version considered equivalent.")

    @field_validator("version")
    @classmethod
    def validate_semver(cls, v: str) -> str:
        v = v.strip()
        if not semver.Version.is_valid(v):
            raise ValueError(f"Not a valid semantic version: {v!r}")
        return v

    @property
    def types_package_name(self) -> str:
        """The published name of the deprecated package, e.g. ``@types/babel__parser``."""
        return f"{TYPES_SCOPE}/{self.name}"
