"""
Compatibility resolution.

Given a mod, a Minecraft version and a loader, pick the single build and file
to install, or report that there is none.

Selection rules:
    - Only builds listing both the version and the loader are considered,
      whatever the source returned
    - The build with the most recent date_published wins
    - Ties go to the build the registry listed first. Registry order is not
      guaranteed, so a tie-break is best-effort only
    - Within the build, the file flagged primary wins, else the first file
    - A build with no files resolves to None, same as no build at all
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

from modpacker.schema import Build, BuildFile, Loader, PackageRef

logger = logging.getLogger(__name__)


class BuildSource(Protocol):
    """Anything that can list a project's builds (normally a RegistryClient)."""

    def list_builds(
        self,
        ref: PackageRef | str,
        minecraft_version: str,
        loader: Loader,
    ) -> list[Build]: ...


@dataclass(frozen=True)
class Resolution:
    """The build and file chosen for a mod."""

    build: Build
    file: BuildFile

    @property
    def version_number(self) -> str:
        return self.build.version_number


def select_latest_build(builds: Sequence[Build]) -> Build | None:
    """Return the most recently published build, first one on ties."""
    latest: Build | None = None
    for build in builds:
        if latest is None or build.date_published > latest.date_published:
            latest = build
    return latest


def select_primary_file(files: Sequence[BuildFile]) -> BuildFile | None:
    """Return the primary file, else the first file, else None."""
    if not files:
        return None
    for f in files:
        if f.primary:
            return f
    return files[0]


class Resolver:
    """
    Picks the newest compatible build of a mod.

    Misses are returned as None. Errors from the build source (NetworkError)
    propagate unchanged.
    """

    def __init__(self, source: BuildSource) -> None:
        self.source = source

    def resolve_latest(
        self,
        ref: PackageRef | str,
        minecraft_version: str,
        loader: Loader,
    ) -> Resolution | None:
        key = ref.key if isinstance(ref, PackageRef) else ref
        builds = [
            b for b in self.source.list_builds(ref, minecraft_version, loader)
            if b.supports(minecraft_version, loader)
        ]
        build = select_latest_build(builds)
        if build is None:
            logger.debug("%s: no build for %s/%s", key, minecraft_version, loader.value)
            return None

        file = select_primary_file(build.files)
        if file is None:
            logger.debug("%s: build %s has no files", key, build.id)
            return None

        logger.debug("%s: picked %s (%s)", key, build.version_number, file.filename)
        return Resolution(build=build, file=file)
