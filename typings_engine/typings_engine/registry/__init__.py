"""npm registry access."""

from typings_engine.registry.npm_client import (
    ManifestSummary,
    NpmRegistryClient,
    PackageNotFoundError,
    RegistryError,
    RetryPolicy,
    VersionNotFoundError,
    resolve_version_spec,
)

__all__ = [
    "ManifestSummary",
    "NpmRegistryClient",
    "PackageNotFoundError",
    "RegistryError",
    "RetryPolicy",
    "VersionNotFoundError",
    "resolve_version_spec",
]
