"""
Engine for modpacker.

The Engine is the entry point that the CLI (or any other caller) drives.
It wires together:
- RegistryClient: Talks to Modrinth
- Resolver: Picks the build for a mod
- Reconciler: Checks and migrates whole packs
- PackStore: Reads and writes manifests

Every operation is synchronous and non-interactive. Where a decision is
needed (proceed with an update?) the caller passes a callback, so a test or
a CI job can drive the same flows as a person at a terminal.

Error Policy:
    - Adding a mod skips and reports on NetworkError, so one bad mod does
      not end an add session
    - check/update let NetworkError propagate and abort
    - Store errors (NotFound, Corrupt, Conflict) always propagate
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from modpacker.errors import NetworkError
from modpacker.pack import Pack, PackEntry, PackStore
from modpacker.reconcile import CompatibilityReport, Reconciler, ReconcileResult
from modpacker.registry import RegistryClient
from modpacker.resolver import Resolver
from modpacker.schema import Loader, PackageRef, SearchHit, Settings, validate_minecraft_version

logger = logging.getLogger(__name__)


class AddStatus(str, Enum):
    """Outcome of adding one mod to a pack."""

    ADDED = "added"
    ALREADY_PRESENT = "already_present"
    INCOMPATIBLE = "incompatible"
    FAILED = "failed"


@dataclass
class AddResult:
    """
    Result of Engine.add_package.

    Attributes:
        status: What happened
        pack: The pack after the attempt (unchanged unless ADDED)
        title: Title of the mod that was attempted
        entry: The new entry when ADDED
        error: The NetworkError when FAILED
    """

    status: AddStatus
    pack: Pack
    title: str
    entry: PackEntry | None = None
    error: NetworkError | None = None

    @property
    def added(self) -> bool:
        return self.status == AddStatus.ADDED

    @property
    def message(self) -> str:
        if self.status == AddStatus.ADDED and self.entry is not None:
            return f"Added {self.title} @ {self.entry.version_number}"
        if self.status == AddStatus.ALREADY_PRESENT:
            return f"{self.title} is already in this pack"
        if self.status == AddStatus.INCOMPATIBLE:
            return f"No compatible version of {self.title} for this pack"
        return f"Could not add {self.title}: {self.error.message if self.error else 'unknown error'}"


class Engine:
    """
    Main entry point for pack operations.

    Usage:
        with Engine(Settings(packs_dir=Path("packs"))) as engine:
            pack, location = engine.create_pack("My Pack", "1.20.1", Loader.FABRIC)
            hits = engine.search(pack, "sodium")
            result = engine.add_package(pack, location, hits[0])

    Attributes:
        settings: Active configuration
        client: Registry client
        store: Pack store rooted at settings.packs_dir
        resolver: Build resolver
        reconciler: Check/update logic
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: RegistryClient | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            settings: Configuration (defaults if None)
            client: Registry client to use (built from settings if None)
            transport: httpx transport for a client built here
        """
        self.settings = settings or Settings()
        self.client = client or RegistryClient(self.settings.registry, transport=transport)
        self.store = PackStore(self.settings.packs_dir)
        self.resolver = Resolver(self.client)
        self.reconciler = Reconciler(
            resolver=self.resolver,
            fetcher=self.client,
            store=self.store,
            max_workers=self.settings.max_workers,
        )

    def close(self) -> None:
        """Close the registry client."""
        self.client.close()

    def __enter__(self) -> "Engine":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Packs
    # -------------------------------------------------------------------------

    def create_pack(self, name: str, minecraft_version: str, loader: Loader) -> tuple[Pack, Path]:
        """Create an empty pack. See PackStore.create."""
        return self.store.create(name, minecraft_version, loader)

    def open_pack(self, location: Path | str) -> Pack:
        """Load a pack from a directory or manifest path."""
        return self.store.load(location)

    def list_packs(self) -> list[Path]:
        """Pack directories under the configured root."""
        return self.store.list_packs()

    # -------------------------------------------------------------------------
    # Discovery and adding
    # -------------------------------------------------------------------------

    def search(self, pack: Pack, query: str) -> list[SearchHit]:
        """
        Search for mods compatible with a pack, minus those it already has.

        Raises:
            NetworkError: If the search request fails
        """
        hits = self.client.search(query.strip(), pack.minecraft_version, pack.loader)
        return [hit for hit in hits if not pack.contains(hit.ref)]

    def lookup(self, key: str) -> SearchHit:
        """Look up a mod by project id or slug."""
        return self.client.get_project(key)

    def add_package(
        self,
        pack: Pack,
        location: Path | str,
        mod: SearchHit,
        on_progress: Callable[[str], None] | None = None,
    ) -> AddResult:
        """
        Resolve, download and append one mod, then save the pack.

        The manifest is written after every successful add.

        Returns:
            AddResult; result.pack is the pack to use for the next add
        """
        ref = mod.ref
        if pack.contains(ref):
            return AddResult(status=AddStatus.ALREADY_PRESENT, pack=pack, title=mod.title)

        try:
            resolution = self.resolver.resolve_latest(ref, pack.minecraft_version, pack.loader)
            if resolution is None:
                return AddResult(status=AddStatus.INCOMPATIBLE, pack=pack, title=mod.title)

            if on_progress:
                on_progress(f"Downloading {resolution.file.filename}...")
            self.client.fetch(
                resolution.file.url,
                self.store.mods_dir(location) / resolution.file.filename,
            )
        except NetworkError as e:
            logger.warning("Skipping %s: %s", mod.title, e.message)
            return AddResult(status=AddStatus.FAILED, pack=pack, title=mod.title, error=e)

        entry = PackEntry.from_resolution(ref, mod.title, resolution)
        updated = self.store.add_entry(pack, entry, location)
        return AddResult(status=AddStatus.ADDED, pack=updated, title=mod.title, entry=entry)

    def add_by_key(
        self,
        pack: Pack,
        location: Path | str,
        key: str,
        on_progress: Callable[[str], None] | None = None,
    ) -> AddResult:
        """Add a mod given only its project id or slug."""
        if pack.contains(PackageRef(project_id=key, slug=key)):
            return AddResult(status=AddStatus.ALREADY_PRESENT, pack=pack, title=key)
        try:
            mod = self.lookup(key)
        except NetworkError as e:
            logger.warning("Skipping %s: %s", key, e.message)
            return AddResult(status=AddStatus.FAILED, pack=pack, title=key, error=e)
        return self.add_package(pack, location, mod, on_progress=on_progress)

    # -------------------------------------------------------------------------
    # Version migration
    # -------------------------------------------------------------------------

    def check(self, pack: Pack, target_version: str) -> CompatibilityReport:
        """Dry-run compatibility check. Nothing is downloaded or written."""
        return self.reconciler.check(pack, validate_minecraft_version(target_version))

    def update_pack(
        self,
        pack: Pack,
        target_version: str,
        confirm: Callable[[CompatibilityReport], bool] | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> ReconcileResult | None:
        """Migrate a pack to target_version. See Reconciler.reconcile."""
        return self.reconciler.reconcile(
            pack,
            validate_minecraft_version(target_version),
            confirm=confirm,
            on_progress=on_progress,
        )
