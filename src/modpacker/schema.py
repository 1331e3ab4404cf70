"""
Schema definitions for modpacker.

This module defines the Pydantic models shared across modpacker:
- Loader: The closed set of mod loaders
- PackageRef/SearchHit: How a mod is identified in the registry
- Build/BuildFile: A published, versioned artifact of a mod
- RegistryConfig/Settings: Runtime configuration loaded from YAML

Design Decisions:
    - Registry models are frozen; a Build never changes once fetched
    - Registry models ignore unknown fields (the registry returns many more)
    - Settings models forbid unknown fields so config typos fail loudly
"""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from modpacker import __version__
from modpacker.errors import InvalidInputError


# =============================================================================
# Enums
# =============================================================================


class Loader(str, Enum):
    """The mod-loading runtime a build targets."""

    FABRIC = "fabric"
    FORGE = "forge"
    NEOFORGE = "neoforge"
    QUILT = "quilt"

    @property
    def display_name(self) -> str:
        return {
            Loader.FABRIC: "Fabric",
            Loader.FORGE: "Forge",
            Loader.NEOFORGE: "NeoForge",
            Loader.QUILT: "Quilt",
        }[self]


# =============================================================================
# Input Validation
# =============================================================================

MINECRAFT_VERSION_PATTERN = re.compile(r"^\d+\.\d+(\.\d+)?$")


def validate_minecraft_version(version: str) -> str:
    """
    Check a Minecraft version string such as "1.20.1" or "1.21".

    Returns:
        The stripped version string

    Raises:
        InvalidInputError: If the version is not in major.minor[.patch] form
    """
    candidate = version.strip()
    if not MINECRAFT_VERSION_PATTERN.match(candidate):
        raise InvalidInputError(
            field_name="minecraft version",
            value=version,
            suggestion="Enter a version like 1.20.1",
        )
    return candidate


def validate_pack_name(name: str) -> str:
    """Check that a pack name has at least two non-space characters."""
    candidate = name.strip()
    if len(candidate) < 2:
        raise InvalidInputError(
            field_name="pack name",
            value=name,
            suggestion="Pack names need at least 2 characters",
        )
    return candidate


def validate_file_name(name: str) -> str:
    """
    Check that a file name is a single path component.

    Raises:
        ValueError: For empty names, "." and "..", path separators or NUL bytes
    """
    if name in ("", ".", "..") or any(c in name for c in "/\\\x00"):
        raise ValueError(f"Unsafe file name: {name!r}")
    return name


def parse_loader(value: str) -> Loader:
    """Parse a loader name case-insensitively."""
    try:
        return Loader(value.strip().lower())
    except ValueError as e:
        raise InvalidInputError(
            field_name="loader",
            value=value,
            suggestion=f"Use one of: {', '.join(loader.value for loader in Loader)}",
        ) from e


# =============================================================================
# Registry Models
# =============================================================================


class PackageRef(BaseModel):
    """
    Identifies a mod in the registry.

    Either the project id or the slug can be used to query the registry, and
    both count as identity keys when comparing or de-duplicating.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    project_id: str = ""
    slug: str = ""

    @property
    def key(self) -> str:
        """The identifier to send to the registry (id preferred over slug)."""
        return self.project_id or self.slug

    def matches(self, other: "PackageRef") -> bool:
        """True when the ids or the slugs are equal and non-empty."""
        if self.project_id and self.project_id == other.project_id:
            return True
        return bool(self.slug) and self.slug == other.slug


class SearchHit(BaseModel):
    """
    A project as returned by search (or by the project endpoint).

    Search hits carry "project_id" while the project endpoint uses "id";
    both are accepted.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    project_id: str = Field(..., validation_alias=AliasChoices("project_id", "id"))
    slug: str
    title: str
    description: str = ""
    downloads: int = 0

    @property
    def ref(self) -> PackageRef:
        return PackageRef(project_id=self.project_id, slug=self.slug)


class BuildFile(BaseModel):
    """One downloadable file of a build."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    filename: str
    primary: bool = False
    url: str

    @field_validator("filename")
    @classmethod
    def validate_filename(cls, v: str) -> str:
        """Reject names that would escape the mods directory."""
        return validate_file_name(v)


class Build(BaseModel):
    """
    A published version of a mod.

    Attributes:
        id: Registry identifier of this version
        name: Display name
        version_number: The mod's own version string (e.g. "0.5.1+1.20.1")
        date_published: Publication timestamp
        game_versions: Minecraft versions this build supports
        loaders: Loaders this build supports
        files: Files in the order the registry lists them
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    version_number: str
    date_published: datetime
    game_versions: list[str] = Field(default_factory=list)
    loaders: list[str] = Field(default_factory=list)
    files: list[BuildFile] = Field(default_factory=list)

    def supports(self, minecraft_version: str, loader: Loader) -> bool:
        return minecraft_version in self.game_versions and loader.value in self.loaders


# =============================================================================
# Configuration Models
# =============================================================================

DEFAULT_USER_AGENT = f"modpacker/{__version__} (github.com/modpacker/modpacker)"


class RegistryConfig(BaseModel):
    """
    Connection settings for the Modrinth registry.

    Attributes:
        base_url: API root, including the version prefix
        user_agent: Identifying header sent with every request
        timeout_seconds: Per-request timeout
        max_retries: Extra attempts after a retryable failure
        retry_delay_seconds: Initial backoff delay, doubled per attempt
        search_limit: Maximum hits requested per search
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: str = Field(default="https://api.modrinth.com/v2", min_length=1)
    user_agent: str = Field(default=DEFAULT_USER_AGENT, min_length=1)
    timeout_seconds: float = Field(default=30.0, gt=0, le=300)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=1.0, ge=0)
    search_limit: int = Field(default=50, ge=1, le=100)


class Settings(BaseModel):
    """
    Top-level modpacker configuration.

    Attributes:
        packs_dir: Root directory holding one subdirectory per pack
        registry: Registry connection settings
        max_workers: Concurrent resolutions during check/update
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    packs_dir: Path = Field(default=Path("packs"))
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    max_workers: int = Field(default=4, ge=1, le=16)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_settings(path: Path | str) -> Settings:
    """
    Load settings from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return Settings.model_validate(data or {})


def load_settings_from_string(content: str) -> Settings:
    """Load settings from a YAML string."""
    data = yaml.safe_load(content)
    return Settings.model_validate(data or {})
