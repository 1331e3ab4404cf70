"""
Pack reconciliation: migrate a pack to another Minecraft version.

The flow is split in two so that a caller can look before it leaps:
    1. check(): resolve every mod against the target version. Read-only.
    2. reconcile(): run check(), ask the caller to confirm, then create the
       new pack directory, download every compatible mod and save the new
       manifest.

Both steps use the same resolution code, so a dry run and a real update
always agree on which mods are compatible and which version each gets.

Resolution fans out over a small thread pool. Results are collected with
Executor.map, which yields them in submission order, so reports always list
mods in the pack's own order.
"""

import logging
import shutil
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from modpacker.pack.manifest import Pack, PackEntry
from modpacker.pack.store import PackStore
from modpacker.resolver import Resolution, Resolver
from modpacker.schema import Loader, validate_minecraft_version

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Anything that can download a URL to a path (normally a RegistryClient)."""

    def fetch(self, url: str, dest: Path | str) -> Path: ...


@dataclass(frozen=True)
class EntryResult:
    """Resolution outcome for one mod of the original pack."""

    entry: PackEntry
    resolution: Resolution | None

    @property
    def compatible(self) -> bool:
        return self.resolution is not None

    @property
    def new_version(self) -> str | None:
        return self.resolution.version_number if self.resolution else None


@dataclass
class CompatibilityReport:
    """
    Per-mod compatibility of a pack against a target version.

    Attributes:
        pack_name: Name of the pack that was checked
        source_version: The pack's current Minecraft version
        target_version: The version checked against
        loader: The pack's loader (never changed by reconciliation)
        results: One result per original entry, in pack order
    """

    pack_name: str
    source_version: str
    target_version: str
    loader: Loader
    results: list[EntryResult] = field(default_factory=list)

    @property
    def compatible(self) -> list[EntryResult]:
        return [r for r in self.results if r.compatible]

    @property
    def incompatible(self) -> list[EntryResult]:
        return [r for r in self.results if not r.compatible]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def all_compatible(self) -> bool:
        return all(r.compatible for r in self.results)


@dataclass
class ReconcileResult:
    """
    Outcome of a completed reconciliation.

    Attributes:
        pack: The new pack as saved
        report: The compatibility report it was built from
        location: Directory of the new pack
    """

    pack: Pack
    report: CompatibilityReport
    location: Path


def build_next_pack(pack: Pack, report: CompatibilityReport) -> Pack:
    """
    Assemble the migrated pack from a compatibility report.

    Keeps the name and loader, moves to the target version, stamps a fresh
    creation time, adds a new entry per compatible mod and records every
    incompatible mod as project_id -> title.
    """
    mods: list[PackEntry] = []
    incompatible: dict[str, str] = {}
    for result in report.results:
        entry = result.entry
        if result.resolution is None:
            incompatible[entry.ref.key] = entry.title
            continue
        mods.append(PackEntry.from_resolution(entry.ref, entry.title, result.resolution))

    return Pack(
        pack_name=pack.pack_name,
        minecraft_version=report.target_version,
        loader=pack.loader,
        created_at=datetime.now(UTC),
        mods=mods,
        incompatible=incompatible,
    )


def _discard(location: Path, created: bool) -> None:
    """
    Remove a half-built pack.

    A directory that existed beforehand was empty (allocate refuses anything
    else), so only its contents are removed and the directory itself stays.
    """
    if created:
        shutil.rmtree(location, ignore_errors=True)
        return
    if not location.is_dir():
        return
    for child in location.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child, ignore_errors=True)
        else:
            child.unlink(missing_ok=True)


class Reconciler:
    """
    Checks and migrates packs between Minecraft versions.

    Attributes:
        resolver: Picks the build for each mod
        fetcher: Downloads the chosen files
        store: Persists the new pack
        max_workers: Concurrent resolutions
    """

    def __init__(
        self,
        resolver: Resolver,
        fetcher: Fetcher,
        store: PackStore,
        max_workers: int = 4,
    ) -> None:
        self.resolver = resolver
        self.fetcher = fetcher
        self.store = store
        self.max_workers = max(1, max_workers)

    def check(self, pack: Pack, target_version: str) -> CompatibilityReport:
        """
        Resolve every mod of a pack against a target version.

        Downloads nothing and writes nothing.

        Raises:
            InvalidInputError: If target_version is malformed
            NetworkError: If the registry cannot be reached
        """
        target_version = validate_minecraft_version(target_version)

        def resolve(entry: PackEntry) -> EntryResult:
            resolution = self.resolver.resolve_latest(entry.ref, target_version, pack.loader)
            return EntryResult(entry=entry, resolution=resolution)

        if pack.mods:
            workers = min(self.max_workers, len(pack.mods))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                results = list(executor.map(resolve, pack.mods))
        else:
            results = []

        report = CompatibilityReport(
            pack_name=pack.pack_name,
            source_version=pack.minecraft_version,
            target_version=target_version,
            loader=pack.loader,
            results=results,
        )
        logger.info(
            "%s -> %s: %d compatible, %d incompatible",
            pack.pack_name,
            target_version,
            len(report.compatible),
            len(report.incompatible),
        )
        return report

    def reconcile(
        self,
        pack: Pack,
        target_version: str,
        confirm: Callable[[CompatibilityReport], bool] | None = None,
        on_progress: Callable[[str], None] | None = None,
    ) -> ReconcileResult | None:
        """
        Migrate a pack to target_version as a new pack.

        Args:
            pack: The pack to migrate (left untouched)
            target_version: Minecraft version to migrate to
            confirm: Called with the report before anything is written.
                Returning False cancels. None means proceed.
            on_progress: Receives one line per download

        Returns:
            The result, or None if confirm declined

        Raises:
            ConflictError: If the new pack's directory already has content
            NetworkError: If resolution or a download fails. Whatever this
                call created for the new pack is removed before the error
                propagates.
        """
        report = self.check(pack, target_version)
        if confirm is not None and not confirm(report):
            logger.info("Update of %s cancelled", pack.pack_name)
            return None

        next_pack = build_next_pack(pack, report)
        downloads = [(r.entry, r.resolution) for r in report.results if r.resolution is not None]

        target = self.store.location_for(pack.pack_name, report.target_version, pack.loader)
        created = not target.exists()
        location = self.store.allocate(pack.pack_name, report.target_version, pack.loader)
        mods_dir = self.store.mods_dir(location)
        try:
            for entry, resolution in downloads:
                if on_progress:
                    on_progress(f"Downloading {entry.title} @ {resolution.version_number}...")
                self.fetcher.fetch(resolution.file.url, mods_dir / resolution.file.filename)
            self.store.save(next_pack, location)
        except BaseException:
            _discard(location, created)
            raise

        logger.info("Saved updated pack at %s", location)
        return ReconcileResult(pack=next_pack, report=report, location=location)
