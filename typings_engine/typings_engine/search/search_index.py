"""Build the package search index.

One record per package directory (its latest version), ranked by last
month's download count of the ``@types`` package.  Three files are
written: the full records, a minified form, and the minified head of the
ranking.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from typings_engine.config import Settings
from typings_engine.index.package_index import PackageIndex
from typings_engine.models.typings_package import TypingsPackage
from typings_engine.registry.npm_client import NpmRegistryClient

logger = logging.getLogger(__name__)

FULL_INDEX_FILE = "search-index-full.json"
MIN_INDEX_FILE = "search-index-min.json"
HEAD_INDEX_FILE = "search-index-head.json"


class SearchRecord(BaseModel):
    """Searchable summary of one package."""

    type_package_name: str = Field(..., description="Directory name, e.g. ``babel__parser``.")
    library_name: str
    project_name: str = Field(default="", description="First project URL from the manifest.")
    downloads: int = Field(default=0, ge=0)

    def minify(self) -> dict[str, Any]:
        return {
            "t": self.type_package_name,
            "p": self.project_name,
            "l": self.library_name,
            "d": self.downloads,
        }


async def create_search_record(
    package: TypingsPackage,
    registry: NpmRegistryClient,
    skip_downloads: bool = False,
) -> SearchRecord:
    downloads = 0 if skip_downloads else await registry.monthly_downloads(package.types_package_name)
    return SearchRecord(
        type_package_name=package.directory_name,
        library_name=package.library_name,
        project_name=package.project_urls[0] if package.project_urls else "",
        downloads=downloads,
    )


async def create_search_index(
    index: PackageIndex,
    registry: NpmRegistryClient,
    settings: Settings,
    skip_downloads: bool = False,
) -> list[SearchRecord]:
    """Create a record for the latest version of every indexed package.

    Download counts are fetched with at most ``settings.registry_concurrency``
    requests in flight.  Records are sorted by downloads, most first, and
    then by name.
    """
    latest = [p for p in (index.latest(name) for name in index.directory_names()) if p is not None]
    logger.info("Loaded %d entries", len(latest))

    limiter = asyncio.Semaphore(settings.registry_concurrency)

    async def _record(package: TypingsPackage) -> SearchRecord:
        async with limiter:
            return await create_search_record(package, registry, skip_downloads)

    records = await asyncio.gather(*[_record(p) for p in latest])
    ranked = sorted(records, key=lambda r: (-r.downloads, r.type_package_name))
    logger.info("Done generating search index")
    return ranked


def write_search_index(records: Sequence[SearchRecord], out_dir: Path, head_size: int = 100) -> list[Path]:
    """Write the full, minified, and head index files into *out_dir*.

    Returns the written paths in that order.
    """
    out_dir.mkdir(parents=True, exist_ok=True)
    full = [r.model_dump() for r in records]
    minified = [r.minify() for r in records]

    outputs = [
        (out_dir / FULL_INDEX_FILE, json.dumps(full, indent=2)),
        (out_dir / MIN_INDEX_FILE, json.dumps(minified, separators=(",", ":"))),
        (out_dir / HEAD_INDEX_FILE, json.dumps(minified[:head_size], separators=(",", ":"))),
    ]
    for path, content in outputs:
        path.write_text(content + "\n", encoding="utf-8")
        logger.info("Wrote %s", path)
    return [path for path, _ in outputs]
