"""
Modrinth registry client.

This module talks to the Modrinth v2 API:
- search: Free-text project search narrowed by version/loader facets
- list_builds: Versions of one project filtered by loader and game version
- fetch: Stream a file to disk

Every request carries the configured User-Agent. Modrinth throttles or blocks
clients that omit it, so the header is set on the underlying httpx.Client
rather than per call.

Failures surface as NetworkError. Transport errors, timeouts, HTTP 429 and
5xx responses are retried with exponential backoff up to max_retries times.
"""

import json
import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from modpacker.errors import ERROR_NETWORK_BAD_RESPONSE, NetworkError, NetworkTimeoutError
from modpacker.schema import Build, Loader, PackageRef, RegistryConfig, SearchHit

logger = logging.getLogger(__name__)

T = TypeVar("T")

_BUILDS_ADAPTER = TypeAdapter(list[Build])
_HITS_ADAPTER = TypeAdapter(list[SearchHit])


def build_facets(minecraft_version: str | None = None, loader: Loader | None = None) -> str:
    """
    Build the search facet expression.

    Facets are a JSON array of OR-groups that are ANDed together, e.g.
    [["project_type:mod"],["versions:1.20.1"],["categories:fabric"]].
    """
    facets: list[list[str]] = [["project_type:mod"]]
    if minecraft_version:
        facets.append([f"versions:{minecraft_version}"])
    if loader:
        facets.append([f"categories:{loader.value}"])
    return json.dumps(facets, separators=(",", ":"))


class RegistryClient:
    """
    Synchronous client for the Modrinth API.

    Usage:
        with RegistryClient(RegistryConfig()) as client:
            hits = client.search("sodium", "1.20.1", Loader.FABRIC)
            builds = client.list_builds(hits[0].ref, "1.20.1", Loader.FABRIC)

    Attributes:
        config: Registry connection settings
    """

    def __init__(
        self,
        config: RegistryConfig | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Connection settings. If None, uses defaults.
            transport: Optional httpx transport (used by tests to fake the registry)
        """
        self.config = config or RegistryConfig()
        self._transport = transport
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()
        self._sleep: Callable[[float], None] = time.sleep

    def _get_client(self) -> httpx.Client:
        """Get or create HTTP client (safe to call from worker threads)."""
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    base_url=self.config.base_url.rstrip("/") + "/",
                    headers={"User-Agent": self.config.user_agent},
                    timeout=self.config.timeout_seconds,
                    follow_redirects=True,
                    transport=self._transport,
                )
            return self._client

    def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "RegistryClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def search(
        self,
        query: str,
        minecraft_version: str,
        loader: Loader,
    ) -> list[SearchHit]:
        """
        Search for mods matching a query that support a version and loader.

        Returns:
            Hits in registry relevance order, at most config.search_limit

        Raises:
            NetworkError: On transport failure or non-success status
        """
        params = {
            "query": query,
            "facets": build_facets(minecraft_version, loader),
            "limit": str(self.config.search_limit),
        }
        data = self._with_retries(lambda: self._get_json("search", params))
        if not isinstance(data, dict):
            raise self._bad_response("search", "expected a JSON object")
        try:
            return _HITS_ADAPTER.validate_python(data.get("hits", []))
        except ValidationError as e:
            raise self._bad_response("search", str(e)) from e

    def get_project(self, key: str) -> SearchHit:
        """
        Look up a single project by id or slug.

        Raises:
            NetworkError: On transport failure or non-success status
                (HTTP 404 when the project does not exist)
        """
        path = f"project/{quote(key, safe='')}"
        data = self._with_retries(lambda: self._get_json(path, {}))
        try:
            return SearchHit.model_validate(data)
        except ValidationError as e:
            raise self._bad_response(path, str(e)) from e

    def list_builds(
        self,
        ref: PackageRef | str,
        minecraft_version: str,
        loader: Loader,
    ) -> list[Build]:
        """
        List a project's versions that support both a game version and a loader.

        An empty list means the project exists but has nothing compatible.

        Raises:
            NetworkError: On transport failure or non-success status
        """
        key = ref.key if isinstance(ref, PackageRef) else ref
        path = f"project/{quote(key, safe='')}/version"
        params = {
            "loaders": json.dumps([loader.value]),
            "game_versions": json.dumps([minecraft_version]),
        }
        data = self._with_retries(lambda: self._get_json(path, params))
        try:
            builds = _BUILDS_ADAPTER.validate_python(data)
        except ValidationError as e:
            raise self._bad_response(path, str(e)) from e
        logger.debug(
            "%s: %d build(s) for %s/%s", key, len(builds), minecraft_version, loader.value
        )
        return builds

    def fetch(self, url: str, dest: Path | str) -> Path:
        """
        Download a file to dest, creating parent directories as needed.

        The body is streamed to a temporary sibling and renamed into place, so
        a failed download never leaves a truncated file at dest.

        Returns:
            The destination path

        Raises:
            NetworkError: On non-success status or an empty body
        """
        dest = Path(dest)
        dest.parent.mkdir(parents=True, exist_ok=True)
        self._with_retries(lambda: self._stream_to(url, dest))
        logger.info("Downloaded %s", dest.name)
        return dest

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _with_retries(self, call: Callable[[], T]) -> T:
        """Run a request, retrying retryable NetworkErrors with backoff."""
        delay = self.config.retry_delay_seconds
        for attempt in range(1, self.config.max_retries + 1):
            try:
                return call()
            except NetworkError as e:
                if not e.retryable:
                    raise
                logger.warning(
                    "Registry request failed (attempt %d/%d): %s",
                    attempt,
                    self.config.max_retries + 1,
                    e.message,
                )
                self._sleep(delay)
                delay *= 2

        # Last attempt: errors propagate as-is
        return call()

    def _get_json(self, path: str, params: dict[str, str]) -> Any:
        """Make a single GET request and decode the JSON body."""
        client = self._get_client()
        logger.debug("GET %s %s", path, params)
        try:
            response = client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(
                url=path,
                timeout_seconds=self.config.timeout_seconds,
                underlying_error=str(e),
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(url=path, underlying_error=str(e)) from e

        if response.status_code != 200:
            raise NetworkError(
                url=str(response.request.url),
                status_code=response.status_code,
                message=f"Registry request failed: HTTP {response.status_code} {response.reason_phrase}",
            )

        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise self._bad_response(path, f"invalid JSON: {e}") from e

    def _stream_to(self, url: str, dest: Path) -> None:
        """Stream one download into place."""
        client = self._get_client()
        part = dest.with_name(dest.name + ".part")
        try:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise NetworkError(
                        url=url,
                        status_code=response.status_code,
                        message=f"Download failed: HTTP {response.status_code} {response.reason_phrase}",
                    )
                written = 0
                with part.open("wb") as f:
                    for chunk in response.iter_bytes(chunk_size=65536):
                        f.write(chunk)
                        written += len(chunk)
            if written == 0:
                raise self._bad_response(url, "download returned an empty body")
            os.replace(part, dest)
        except httpx.TimeoutException as e:
            raise NetworkTimeoutError(
                url=url,
                timeout_seconds=self.config.timeout_seconds,
                underlying_error=str(e),
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(url=url, underlying_error=str(e)) from e
        finally:
            part.unlink(missing_ok=True)

    @staticmethod
    def _bad_response(url: str, detail: str) -> NetworkError:
        return NetworkError(
            url=url,
            code=ERROR_NETWORK_BAD_RESPONSE,
            underlying_error=detail,
            message=f"Unexpected registry response from {url}: {detail}",
        )
