"""
Pytest configuration and fixtures for modpacker tests.

This module provides a fake Modrinth registry (served through
httpx.MockTransport) and shared fixtures used across unit and
integration tests. No test touches the network.
"""

import json
import re
import tempfile
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest

from modpacker.engine import Engine
from modpacker.pack import PackStore
from modpacker.registry import RegistryClient
from modpacker.schema import RegistryConfig, Settings

CDN_HOST = "cdn.modrinth.com"


class FakeRegistry:
    """
    In-memory stand-in for the Modrinth v2 API.

    Builds are returned in insertion order, and filtered the same way the
    real API filters on the loaders/game_versions query parameters.
    """

    def __init__(self) -> None:
        self.projects: dict[str, dict[str, Any]] = {}
        self.builds: dict[str, list[dict[str, Any]]] = {}
        self.files: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        # path -> HTTP statuses to answer with before serving normally
        self.failures: dict[str, list[int]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def add_project(
        self,
        project_id: str,
        slug: str,
        title: str,
        description: str = "",
        downloads: int = 0,
    ) -> dict[str, Any]:
        project = {
            "project_id": project_id,
            "slug": slug,
            "title": title,
            "description": description,
            "downloads": downloads,
        }
        self.projects[project_id] = project
        self.builds.setdefault(project_id, [])
        return project

    def add_build(
        self,
        project_id: str,
        build_id: str,
        version_number: str,
        date_published: str,
        game_versions: list[str],
        loaders: list[str],
        files: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        if files is None:
            slug = self.projects[project_id]["slug"]
            url = f"https://{CDN_HOST}/data/{project_id}/versions/{build_id}/{slug}-{version_number}.jar"
            files = [{"filename": f"{slug}-{version_number}.jar", "primary": True, "url": url}]
        for f in files:
            self.files.setdefault(f["url"], f"jar:{f['filename']}".encode())
        build = {
            "id": build_id,
            "project_id": project_id,
            "name": f"{version_number}",
            "version_number": version_number,
            "date_published": date_published,
            "game_versions": game_versions,
            "loaders": loaders,
            "files": files,
            "downloads": 0,
        }
        self.builds[project_id].append(build)
        return build

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    # -------------------------------------------------------------------------

    def _find_project(self, key: str) -> dict[str, Any] | None:
        if key in self.projects:
            return self.projects[key]
        for project in self.projects.values():
            if project["slug"] == key:
                return project
        return None

    def _supports(self, build: dict[str, Any], versions: list[str], loaders: list[str]) -> bool:
        return (
            (not versions or any(v in build["game_versions"] for v in versions))
            and (not loaders or any(loader in build["loaders"] for loader in loaders))
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        pending = self.failures.get(path)
        if pending:
            return httpx.Response(pending.pop(0), json={"error": "failure"})

        if request.url.host == CDN_HOST:
            content = self.files.get(str(request.url))
            if content is None:
                return httpx.Response(404)
            return httpx.Response(200, content=content)

        if path == "/v2/search":
            return self._search(request)

        match = re.fullmatch(r"/v2/project/([^/]+)/version", path)
        if match:
            project = self._find_project(match.group(1))
            if project is None:
                return httpx.Response(404, json={"error": "not_found"})
            loaders = json.loads(request.url.params.get("loaders", "[]"))
            versions = json.loads(request.url.params.get("game_versions", "[]"))
            builds = [
                b for b in self.builds[project["project_id"]]
                if self._supports(b, versions, loaders)
            ]
            return httpx.Response(200, json=builds)

        match = re.fullmatch(r"/v2/project/([^/]+)", path)
        if match:
            project = self._find_project(match.group(1))
            if project is None:
                return httpx.Response(404, json={"error": "not_found"})
            body = {k: v for k, v in project.items() if k != "project_id"}
            body["id"] = project["project_id"]
            return httpx.Response(200, json=body)

        return httpx.Response(404, json={"error": "not_found"})

    def _search(self, request: httpx.Request) -> httpx.Response:
        query = request.url.params.get("query", "").lower()
        facets = json.loads(request.url.params.get("facets", "[]"))
        versions = [f.split(":", 1)[1] for group in facets for f in group if f.startswith("versions:")]
        loaders = [f.split(":", 1)[1] for group in facets for f in group if f.startswith("categories:")]
        limit = int(request.url.params.get("limit", "10"))

        hits = []
        for project in self.projects.values():
            if query not in project["title"].lower() and query not in project["slug"]:
                continue
            if not any(self._supports(b, versions, loaders) for b in self.builds[project["project_id"]]):
                continue
            hits.append(project)
        hits.sort(key=lambda p: p["downloads"], reverse=True)
        return httpx.Response(200, json={"hits": hits[:limit], "total_hits": len(hits)})


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def registry() -> FakeRegistry:
    """An empty fake registry."""
    return FakeRegistry()


@pytest.fixture
def seeded_registry(registry: FakeRegistry) -> FakeRegistry:
    """
    A registry with three mods:

    - sodium: builds for 1.20.1 and 1.21 (fabric)
    - lithium: builds for 1.20.1 and 1.21 (fabric)
    - oldmod: builds for 1.20.1 only (fabric)
    """
    registry.add_project("AANobbMI", "sodium", "Sodium", "Rendering engine", downloads=5_000_000)
    registry.add_build("AANobbMI", "s-1201", "0.5.3", "2023-10-01T00:00:00Z", ["1.20.1"], ["fabric", "quilt"])
    registry.add_build("AANobbMI", "s-121", "0.5.11", "2024-07-01T00:00:00Z", ["1.21"], ["fabric", "quilt"])

    registry.add_project("gvQqBUqZ", "lithium", "Lithium", "Server optimizations", downloads=3_000_000)
    registry.add_build("gvQqBUqZ", "l-1201", "0.11.2", "2023-09-01T00:00:00Z", ["1.20.1"], ["fabric"])
    registry.add_build("gvQqBUqZ", "l-121", "0.12.7", "2024-06-20T00:00:00Z", ["1.21"], ["fabric"])

    registry.add_project("OLDm0d00", "oldmod", "Old Mod", "Abandoned", downloads=1_000)
    registry.add_build("OLDm0d00", "o-1201", "1.0.0", "2023-01-01T00:00:00Z", ["1.20.1"], ["fabric"])
    return registry


@pytest.fixture
def registry_config() -> RegistryConfig:
    """Registry config with no retry delay."""
    return RegistryConfig(retry_delay_seconds=0)


@pytest.fixture
def client(registry: FakeRegistry, registry_config: RegistryConfig) -> Generator[RegistryClient, None, None]:
    """A RegistryClient wired to the fake registry."""
    with RegistryClient(registry_config, transport=registry.transport) as c:
        yield c


@pytest.fixture
def packs_dir(temp_dir: Path) -> Path:
    return temp_dir / "packs"


@pytest.fixture
def store(packs_dir: Path) -> PackStore:
    return PackStore(packs_dir)


@pytest.fixture
def settings(packs_dir: Path, registry_config: RegistryConfig) -> Settings:
    return Settings(packs_dir=packs_dir, registry=registry_config)


@pytest.fixture
def engine(
    settings: Settings,
    seeded_registry: FakeRegistry,
) -> Generator[Engine, None, None]:
    """An Engine wired to the seeded fake registry."""
    with Engine(settings, transport=seeded_registry.transport) as e:
        yield e
