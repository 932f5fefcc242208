"""Package index and the loader that builds it from a repository checkout."""

from typings_engine.index.loader import load_not_needed_packages, load_package_index, parse_manifest
from typings_engine.index.package_index import PackageIndex, PackageIndexError

__all__ = [
    "PackageIndex",
    "PackageIndexError",
    "load_not_needed_packages",
    "load_package_index",
    "parse_manifest",
]
