"""Unit tests for typings_engine.search.search_index."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from typings_engine.config import Settings
from typings_engine.index.package_index import PackageIndex
from typings_engine.models.package import PackageVersion
from typings_engine.models.typings_package import TypingsPackage
from typings_engine.search.search_index import (
    FULL_INDEX_FILE,
    HEAD_INDEX_FILE,
    MIN_INDEX_FILE,
    SearchRecord,
    create_search_index,
    write_search_index,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

DOWNLOADS = {"@types/node": 900, "@types/react": 500, "@types/babel__core": 500, "@types/tiny": 1}


def _index() -> PackageIndex:
    return PackageIndex(
        [
            TypingsPackage(directory_name="node", version=PackageVersion(20, 1), project_urls=["https://nodejs.org"]),
            TypingsPackage(directory_name="react", version=PackageVersion(18, 2)),
            TypingsPackage(directory_name="react", version=PackageVersion(15)),
            TypingsPackage(directory_name="babel__core", version=PackageVersion(7, 20)),
            TypingsPackage(directory_name="tiny", version=PackageVersion(1, 0)),
        ]
    )


def _registry() -> AsyncMock:
    registry = AsyncMock()
    registry.monthly_downloads.side_effect = lambda name: DOWNLOADS.get(name, 0)
    return registry


# ---------------------------------------------------------------------------
# create_search_index
# ---------------------------------------------------------------------------


class TestCreateSearchIndex:
    @pytest.mark.asyncio
    async def test_sorted_by_downloads_then_name(self):
        records = await create_search_index(_index(), _registry(), Settings())
        assert [r.type_package_name for r in records] == ["node", "babel__core", "react", "tiny"]

    @pytest.mark.asyncio
    async def test_one_record_per_directory(self):
        registry = _registry()
        records = await create_search_index(_index(), registry, Settings())
        assert len(records) == 4
        assert registry.monthly_downloads.await_count == 4

    @pytest.mark.asyncio
    async def test_record_fields(self):
        records = await create_search_index(_index(), _registry(), Settings())
        by_name = {r.type_package_name: r for r in records}
        assert by_name["babel__core"].library_name == "@babel/core"
        assert by_name["node"].project_name == "https://nodejs.org"
        assert by_name["node"].downloads == 900

    @pytest.mark.asyncio
    async def test_skip_downloads(self):
        registry = _registry()
        records = await create_search_index(_index(), registry, Settings(), skip_downloads=True)
        assert all(r.downloads == 0 for r in records)
        assert [r.type_package_name for r in records] == ["babel__core", "node", "react", "tiny"]
        registry.monthly_downloads.assert_not_awaited()


# ---------------------------------------------------------------------------
# write_search_index
# ---------------------------------------------------------------------------


class TestWriteSearchIndex:
    def test_writes_three_files(self, tmp_path: Path):
        records = [
            SearchRecord(type_package_name=f"pkg{i}", library_name=f"pkg{i}", downloads=10 - i) for i in range(5)
        ]
        out_dir = tmp_path / "data"
        paths = write_search_index(records, out_dir, head_size=2)

        assert paths == [out_dir / FULL_INDEX_FILE, out_dir / MIN_INDEX_FILE, out_dir / HEAD_INDEX_FILE]
        full = json.loads((out_dir / FULL_INDEX_FILE).read_text(encoding="utf-8"))
        minified = json.loads((out_dir / MIN_INDEX_FILE).read_text(encoding="utf-8"))
        head = json.loads((out_dir / HEAD_INDEX_FILE).read_text(encoding="utf-8"))

        assert full[0] == {"type_package_name": "pkg0", "library_name": "pkg0", "project_name": "", "downloads": 10}
        assert minified[0] == {"t": "pkg0", "p": "", "l": "pkg0", "d": 10}
        assert len(minified) == 5
        assert head == minified[:2]

    def test_empty_index(self, tmp_path: Path):
        write_search_index([], tmp_path)
        assert json.loads((tmp_path / HEAD_INDEX_FILE).read_text(encoding="utf-8")) == []
