"""
Pack store for reading and writing packs on disk.

Layout:
    <packs_dir>/
        <name>-<version>-<loader>/
            modpack.json
            mods/
                <downloaded jars>

The store is the only code that reads or writes modpack.json. Writes go to a
temporary file in the pack directory and are moved into place with
os.replace(), so a reader never sees a half-written manifest.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError

from modpacker.errors import (
    ConflictError,
    CorruptDataError,
    InvalidInputError,
    NotFoundError,
    PackWriteError,
)
from modpacker.pack.manifest import MANIFEST_FILENAME, MODS_DIRNAME, Pack, PackEntry
from modpacker.schema import Loader, validate_minecraft_version, validate_pack_name

logger = logging.getLogger(__name__)

_DISALLOWED_CHARS = re.compile(r"[^A-Za-z0-9\-_ ]")
_WHITESPACE_RUN = re.compile(r"\s+")


def sanitize_name(text: str) -> str:
    """
    Make a pack name safe to use as a directory name.

    Drops every character outside [A-Za-z0-9-_ ], trims the ends and
    replaces each run of spaces with a single hyphen.

    >>> sanitize_name("My Pack!! v2")
    'My-Pack-v2'
    """
    return _WHITESPACE_RUN.sub("-", _DISALLOWED_CHARS.sub("", text).strip())


def pack_dirname(pack_name: str, minecraft_version: str, loader: Loader) -> str:
    """The canonical directory name for a pack."""
    return f"{sanitize_name(pack_name)}-{minecraft_version}-{loader.value}"


class PackStore:
    """
    Loads and saves packs under a root directory.

    Attributes:
        root: Directory that holds one subdirectory per pack

    Example:
        >>> store = PackStore(Path("packs"))
        >>> pack, location = store.create("My Pack", "1.20.1", Loader.FABRIC)
        >>> store.load(location).pack_name
        'My-Pack'
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    # -------------------------------------------------------------------------
    # Locations
    # -------------------------------------------------------------------------

    def location_for(self, pack_name: str, minecraft_version: str, loader: Loader) -> Path:
        return self.root / pack_dirname(pack_name, minecraft_version, loader)

    @staticmethod
    def manifest_path(location: Path | str) -> Path:
        """Accept a pack directory or the manifest file itself."""
        location = Path(location)
        if location.is_file() or location.name == MANIFEST_FILENAME:
            return location
        return location / MANIFEST_FILENAME

    @staticmethod
    def pack_dir(location: Path | str) -> Path:
        return PackStore.manifest_path(location).parent

    @staticmethod
    def mods_dir(location: Path | str) -> Path:
        return PackStore.pack_dir(location) / MODS_DIRNAME

    def list_packs(self) -> list[Path]:
        """Directories under root that contain a manifest, sorted by name."""
        if not self.root.is_dir():
            return []
        return sorted(
            item for item in self.root.iterdir()
            if item.is_dir() and (item / MANIFEST_FILENAME).is_file()
        )

    def allocate(self, pack_name: str, minecraft_version: str, loader: Loader) -> Path:
        """
        Create the directory for a new pack.

        Raises:
            ConflictError: If the directory already exists and is not empty
        """
        location = self.location_for(pack_name, minecraft_version, loader)
        if location.exists() and (not location.is_dir() or any(location.iterdir())):
            raise ConflictError(location=str(location))
        (location / MODS_DIRNAME).mkdir(parents=True, exist_ok=True)
        return location

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(
        self,
        pack_name: str,
        minecraft_version: str,
        loader: Loader,
    ) -> tuple[Pack, Path]:
        """
        Create and persist a new empty pack.

        Returns:
            The pack and its directory

        Raises:
            InvalidInputError: If the name or version is invalid
            ConflictError: If the pack directory already has content
        """
        name = sanitize_name(validate_pack_name(pack_name))
        if not name:
            raise InvalidInputError(
                field_name="pack name",
                value=pack_name,
                suggestion="Use letters, digits, spaces, hyphens or underscores",
            )
        version = validate_minecraft_version(minecraft_version)

        location = self.allocate(name, version, loader)
        pack = Pack(pack_name=name, minecraft_version=version, loader=loader)
        self.save(pack, location)
        logger.info("Created pack %s at %s", name, location)
        return pack, location

    def load(self, location: Path | str) -> Pack:
        """
        Load a pack from its directory or manifest path.

        Raises:
            NotFoundError: If there is no manifest
            CorruptDataError: If the manifest cannot be read or is not a valid pack
        """
        path = self.manifest_path(location)
        try:
            raw = path.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError) as e:
            raise NotFoundError(location=str(location)) from e
        except UnicodeDecodeError as e:
            raise CorruptDataError(location=str(path), parse_error=f"invalid UTF-8: {e}") from e
        except OSError as e:
            raise CorruptDataError(location=str(path), parse_error=f"unreadable: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptDataError(location=str(path), parse_error=f"invalid JSON: {e}") from e

        try:
            return Pack.model_validate(data)
        except ValidationError as e:
            raise CorruptDataError(location=str(path), parse_error=str(e)) from e

    def save(self, pack: Pack, location: Path | str) -> Path:
        """
        Write the full manifest, replacing any existing one atomically.

        Returns:
            Path of the written manifest

        Raises:
            PackWriteError: If the file cannot be written
        """
        path = self.manifest_path(location)
        content = json.dumps(pack.to_manifest(), indent=2) + "\n"
        tmp_path: Path | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=path.parent,
                prefix=f".{MANIFEST_FILENAME}.",
                suffix=".tmp",
                delete=False,
            ) as f:
                tmp_path = Path(f.name)
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise PackWriteError(location=str(path), underlying_error=str(e)) from e
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)

        logger.debug("Saved %s (%d mods)", path, len(pack.mods))
        return path

    def add_entry(self, pack: Pack, entry: PackEntry, location: Path | str) -> Pack:
        """
        Append an entry and persist immediately.

        Saving after each add means an interrupted add session still leaves a
        loadable pack with every mod added so far.

        Returns:
            The updated pack
        """
        updated = pack.with_entry(entry)
        self.save(updated, location)
        return updated
