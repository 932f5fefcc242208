"""Tests for the npm registry client -- resolution, caching, retries.

Uses httpx.MockTransport for deterministic HTTP simulation.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from typings_engine.config import Settings
from typings_engine.registry.npm_client import (
    NpmRegistryClient,
    PackageNotFoundError,
    RegistryError,
    RetryPolicy,
    VersionNotFoundError,
    resolve_version_spec,
)

REGISTRY = "https://registry.test"
DOWNLOADS = "https://downloads.test"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _packument(name: str, versions: list[str], latest: str | None = None, **extra_tags: str) -> dict:
    return {
        "name": name,
        "dist-tags": {"latest": latest or versions[-1], **extra_tags},
        "versions": {v: {"name": name, "version": v, "homepage": f"https://example.com/{name}"} for v in versions},
    }


PACKUMENTS: dict[str, dict] = {
    "lib-bar": _packument("lib-bar", ["1.0.0", "2.0.0", "2.1.0", "3.0.0-beta.1"], latest="2.1.0", next="3.0.0-beta.1"),
    "@types/bar": _packument("@types/bar", ["2.0.0", "2.1.0"]),
}


def _client(
    handler: Callable[[httpx.Request], httpx.Response],
    max_retries: int = 0,
) -> NpmRegistryClient:
    return NpmRegistryClient(
        registry_url=REGISTRY,
        downloads_url=DOWNLOADS,
        retry=RetryPolicy(max_retries=max_retries, base_delay=0.01, jitter=False),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def _registry_handler(calls: list[str] | None = None) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        raw_path = request.url.raw_path.decode()
        if calls is not None:
            calls.append(raw_path)
        name = raw_path.lstrip("/").replace("%2F", "/").replace("%2f", "/")
        if name in PACKUMENTS:
            return httpx.Response(200, json=PACKUMENTS[name])
        return httpx.Response(404, json={"error": "Not found"})

    return handler


# ---------------------------------------------------------------------------
# resolve_version_spec
# ---------------------------------------------------------------------------


class TestResolveVersionSpec:
    VERSIONS = ["1.0.0", "1.5.0", "2.0.0", "2.1.0", "3.0.0-beta.1"]
    TAGS = {"latest": "2.1.0", "next": "3.0.0-beta.1"}

    def test_dist_tag(self):
        assert resolve_version_spec("x", "next", self.VERSIONS, self.TAGS) == "3.0.0-beta.1"

    @pytest.mark.parametrize("spec", ["", "*", "latest"])
    def test_latest_aliases(self, spec: str):
        assert resolve_version_spec("x", spec, self.VERSIONS, self.TAGS) == "2.1.0"

    def test_exact_version(self):
        assert resolve_version_spec("x", "1.5.0", self.VERSIONS, self.TAGS) == "1.5.0"

    def test_comparator_range_picks_highest(self):
        assert resolve_version_spec("x", ">=1.0.0 <2.0.0", self.VERSIONS, self.TAGS) == "1.5.0"

    def test_range_skips_prereleases(self):
        assert resolve_version_spec("x", ">=2.0.0", self.VERSIONS, self.TAGS) == "2.1.0"

    def test_missing_exact_version(self):
        with pytest.raises(VersionNotFoundError):
            resolve_version_spec("x", "9.9.9", self.VERSIONS, self.TAGS)

    def test_unparseable_range(self):
        with pytest.raises(VersionNotFoundError):
            resolve_version_spec("x", "^banana", self.VERSIONS, self.TAGS)


# ---------------------------------------------------------------------------
# NpmRegistryClient.resolve
# ---------------------------------------------------------------------------


class TestResolve:
    @pytest.mark.asyncio
    async def test_latest(self):
        client = _client(_registry_handler())
        manifest = await client.resolve("lib-bar")
        assert manifest.name == "lib-bar"
        assert manifest.version == "2.1.0"
        assert manifest.homepage == "https://example.com/lib-bar"

    @pytest.mark.asyncio
    async def test_exact_version(self):
        client = _client(_registry_handler())
        manifest = await client.resolve("lib-bar", "2.0.0")
        assert manifest.version == "2.0.0"

    @pytest.mark.asyncio
    async def test_scoped_name_is_encoded(self):
        calls: list[str] = []
        client = _client(_registry_handler(calls))
        manifest = await client.resolve("@types/bar")
        assert manifest.version == "2.1.0"
        assert calls == ["/@types%2Fbar"]

    @pytest.mark.asyncio
    async def test_unknown_package(self):
        client = _client(_registry_handler())
        with pytest.raises(PackageNotFoundError) as exc_info:
            await client.resolve("nope")
        assert exc_info.value.name == "nope"

    @pytest.mark.asyncio
    async def test_unknown_version(self):
        client = _client(_registry_handler())
        with pytest.raises(VersionNotFoundError):
            await client.resolve("lib-bar", "9.0.0")

    @pytest.mark.asyncio
    async def test_packument_cached(self):
        calls: list[str] = []
        client = _client(_registry_handler(calls))
        await client.resolve("lib-bar")
        await client.resolve("lib-bar", "1.0.0")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_not_found_is_a_registry_error(self):
        assert issubclass(PackageNotFoundError, RegistryError)
        assert issubclass(VersionNotFoundError, RegistryError)


# ---------------------------------------------------------------------------
# Retries
# ---------------------------------------------------------------------------


class TestRetries:
    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self):
        statuses = iter([503, 429])

        def handler(request: httpx.Request) -> httpx.Response:
            code = next(statuses, 200)
            if code != 200:
                return httpx.Response(code)
            return httpx.Response(200, json=PACKUMENTS["lib-bar"])

        client = _client(handler, max_retries=3)
        with patch("typings_engine.registry.npm_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            manifest = await client.resolve("lib-bar")
        assert manifest.version == "2.1.0"
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_transport_errors(self):
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            if attempts["n"] == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=PACKUMENTS["lib-bar"])

        client = _client(handler, max_retries=2)
        with patch("typings_engine.registry.npm_client.asyncio.sleep", new_callable=AsyncMock):
            manifest = await client.resolve("lib-bar")
        assert manifest.version == "2.1.0"
        assert attempts["n"] == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            return httpx.Response(502)

        client = _client(handler, max_retries=2)
        with patch("typings_engine.registry.npm_client.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(RegistryError, match="HTTP 502") as exc_info:
                await client.resolve("lib-bar")
        assert not isinstance(exc_info.value, PackageNotFoundError)
        assert attempts["n"] == 3

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        attempts = {"n": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            attempts["n"] += 1
            return httpx.Response(403, text="forbidden")

        client = _client(handler, max_retries=3)
        with pytest.raises(RegistryError, match="403"):
            await client.resolve("lib-bar")
        assert attempts["n"] == 1

    def test_delay_is_capped(self):
        policy = RetryPolicy(base_delay=2.0, max_delay=5.0, jitter=False)
        assert policy.delay_for(0) == 2.0
        assert policy.delay_for(1) == 4.0
        assert policy.delay_for(5) == 5.0

    def test_jitter_stays_in_bounds(self):
        policy = RetryPolicy(base_delay=2.0, max_delay=60.0, jitter=True)
        for _ in range(20):
            assert 1.0 <= policy.delay_for(0) <= 3.0


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------


class TestMonthlyDownloads:
    @pytest.mark.asyncio
    async def test_reads_count(self):
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json={"downloads": 1234, "package": "@types/node"})

        client = _client(handler)
        assert await client.monthly_downloads("@types/node") == 1234
        assert seen == [f"{DOWNLOADS}/point/last-month/@types/node"]

    @pytest.mark.asyncio
    async def test_unknown_package_is_zero(self):
        client = _client(lambda request: httpx.Response(404, json={"error": "not found"}))
        assert await client.monthly_downloads("@types/nope") == 0


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestFromSettings:
    @pytest.mark.asyncio
    async def test_uses_settings(self):
        settings = Settings(registry_url="https://mirror.test/", registry_max_retries=0)
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.host)
            return httpx.Response(200, json=PACKUMENTS["lib-bar"])

        client = NpmRegistryClient.from_settings(
            settings, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        await client.resolve("lib-bar")
        assert calls == ["mirror.test"]

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(_registry_handler()))
        async with _client(_registry_handler()) as client:
            assert client is not None
        client = NpmRegistryClient(http_client=http_client)
        await client.close()
        assert not http_client.is_closed
        await http_client.aclose()
