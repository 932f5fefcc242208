"""Async client for the npm registry and download-count APIs.

The pipeline treats the registry as a black box with one capability,
``resolve(name, version_or_range)``, which either returns a
:class:`ManifestSummary` or raises:

* :class:`PackageNotFoundError` -- the registry has no such package;
* :class:`VersionNotFoundError` -- the package exists but nothing matches
  the requested version, dist-tag or range;
* :class:`RegistryError` -- anything else (network failure, rate limiting
  that outlasts the retries, unexpected status).  Callers must let this
  one propagate.

Packuments are cached per client instance so the same package is only
fetched once per run.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx
import semver
from pydantic import BaseModel, Field

from typings_engine.config import Settings

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS: frozenset[int] = frozenset({429, 500, 502, 503, 504})
_LATEST_TAG = "latest"


# ---------------------------------------------------------------------------
# Errors and results
# ---------------------------------------------------------------------------


class RegistryError(Exception):
    """Raised when the registry cannot be queried."""


class PackageNotFoundError(RegistryError):
    """Raised when the registry has no package with the requested name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Package not found on the registry: {name}")


class VersionNotFoundError(RegistryError):
    """Raised when no published version matches the requested spec."""

    def __init__(self, name: str, spec: str) -> None:
        self.name = name
        self.spec = spec
        super().__init__(f"No version of {name} matches {spec!r}")


class ManifestSummary(BaseModel):
    """The parts of a published version's manifest the engine uses."""

    name: str
    version: str
    homepage: str | None = None


class RetryPolicy(BaseModel):
    """Backoff parameters for transient registry failures."""

    max_retries: int = Field(default=3, ge=0)
    base_delay: float = Field(default=2.0, gt=0.0)
    max_delay: float = Field(default=60.0, gt=0.0)
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        delay: float = min(self.base_delay * (2**attempt), self.max_delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.5)  # noqa: S311
        return delay


# ---------------------------------------------------------------------------
# Version resolution
# ---------------------------------------------------------------------------


def _parse_versions(versions: list[str]) -> list[semver.Version]:
    parsed: list[semver.Version] = []
    for raw in versions:
        try:
            parsed.append(semver.Version.parse(raw))
        except ValueError:
            logger.debug("Ignoring non-semver published version %r", raw)
    return parsed


def _satisfies(version: semver.Version, comparators: list[str]) -> bool:
    return all(version.match(c) for c in comparators)


def resolve_version_spec(
    name: str,
    spec: str,
    versions: list[str],
    dist_tags: dict[str, str],
) -> str:
    """Pick the published version *spec* refers to.

    *spec* may be a dist-tag (``latest``), an exact version, ``*`` / empty
    for the latest tag, or space-separated comparators (``>=2.0.0 <3.0.0``)
    in which case the highest satisfying non-prerelease version wins.

    Raises
    ------
    VersionNotFoundError
        If nothing matches.
    """
    spec = spec.strip()
    if spec in ("", "*"):
        spec = _LATEST_TAG
    if spec in dist_tags:
        return dist_tags[spec]
    if spec in versions:
        return spec

    comparators = spec.split()
    candidates = [v for v in _parse_versions(versions) if not v.prerelease]
    try:
        matching = [v for v in candidates if _satisfies(v, comparators)]
    except ValueError as exc:
        raise VersionNotFoundError(name, spec) from exc
    if not matching:
        raise VersionNotFoundError(name, spec)
    return str(max(matching))


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class NpmRegistryClient:
    """Thin async wrapper around the npm registry REST API.

    Parameters
    ----------
    registry_url:
        Root URL of the registry (e.g. ``https://registry.npmjs.org``).
    downloads_url:
        Root URL of the downloads API.
    timeout:
        Per-request timeout in seconds.
    retry:
        Backoff policy for transport errors, 429 and 5xx responses.
    http_client:
        Optional ``httpx.AsyncClient`` for testing.  A default client is
        created if not provided.
    """

    def __init__(
        self,
        registry_url: str = "https://registry.npmjs.org",
        downloads_url: str = "https://api.npmjs.org/downloads",
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._registry_url = registry_url.rstrip("/")
        self._downloads_url = downloads_url.rstrip("/")
        self._retry = retry or RetryPolicy()
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            follow_redirects=True,
        )
        self._owns_client = http_client is None
        self._packuments: dict[str, dict[str, Any]] = {}

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.AsyncClient | None = None) -> NpmRegistryClient:
        return cls(
            registry_url=settings.registry_url,
            downloads_url=settings.downloads_url,
            timeout=settings.registry_timeout,
            retry=RetryPolicy(
                max_retries=settings.registry_max_retries,
                base_delay=settings.retry_backoff_base,
                max_delay=settings.retry_max_delay,
            ),
            http_client=http_client,
        )

    # -- Public API ----------------------------------------------------------

    async def resolve(self, name: str, version_or_range: str = _LATEST_TAG) -> ManifestSummary:
        """Resolve *name* at *version_or_range* to a published manifest."""
        packument = await self._get_packument(name)
        versions: dict[str, Any] = packument.get("versions") or {}
        dist_tags: dict[str, str] = packument.get("dist-tags") or {}
        version = resolve_version_spec(name, version_or_range, list(versions), dist_tags)

        manifest = versions.get(version) or {}
        homepage = manifest.get("homepage") or packument.get("homepage")
        return ManifestSummary(
            name=packument.get("name", name),
            version=version,
            homepage=homepage if isinstance(homepage, str) else None,
        )

    async def monthly_downloads(self, name: str) -> int:
        """Return last month's download count for *name*, or 0 if unknown."""
        response = await self._get(f"{self._downloads_url}/point/last-month/{name}")
        if response.status_code == 404:
            return 0
        self._raise_for_status(response)
        body = self._json(response)
        downloads = body.get("downloads", 0) if isinstance(body, dict) else 0
        return int(downloads or 0)

    # -- Lifecycle -----------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> NpmRegistryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- Internal helpers ----------------------------------------------------

    async def _get_packument(self, name: str) -> dict[str, Any]:
        cached = self._packuments.get(name)
        if cached is not None:
            return cached

        encoded = name.replace("/", "%2F")
        response = await self._get(f"{self._registry_url}/{encoded}")
        if response.status_code == 404:
            raise PackageNotFoundError(name)
        self._raise_for_status(response)
        body = self._json(response)
        if not isinstance(body, dict):
            raise RegistryError(f"Unexpected packument for {name}: expected a JSON object")
        self._packuments[name] = body
        return body

    async def _get(self, url: str) -> httpx.Response:
        """GET *url*, retrying transport errors and retryable statuses."""
        last_error: str = ""
        for attempt in range(self._retry.max_retries + 1):
            try:
                response = await self._client.get(url)
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            else:
                if response.status_code not in _RETRYABLE_STATUS:
                    return response
                last_error = f"HTTP {response.status_code}"

            if attempt >= self._retry.max_retries:
                break
            delay = self._retry.delay_for(attempt)
            logger.warning(
                "Registry request to %s failed (%s); retry %d/%d after %.1fs",
                url,
                last_error,
                attempt + 1,
                self._retry.max_retries,
                delay,
            )
            await asyncio.sleep(delay)

        attempts = self._retry.max_retries + 1
        raise RegistryError(f"Registry request to {url} failed after {attempts} attempt(s): {last_error}")

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise RegistryError(
            f"Registry returned {response.status_code} for {response.request.url}: {response.text[:500]}"
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise RegistryError(f"Registry returned invalid JSON for {response.request.url}") from exc
