"""
Pack manifest schema definitions.

This module defines the Pydantic models stored in modpack.json:
- PackEntry: One installed mod (project, chosen build, downloaded file)
- Pack: The pack itself (target version, loader, ordered entries)

Design Decisions:
    - Models are frozen; adding a mod produces a new Pack via with_entry()
    - JSON keys are camelCase, matching manifests written by earlier tools
    - Python attributes are snake_case (populate_by_name=True)
    - Unknown keys are rejected so a malformed manifest fails to load
"""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modpacker.resolver import Resolution
from modpacker.schema import Loader, PackageRef, validate_file_name

MANIFEST_FILENAME = "modpack.json"
MODS_DIRNAME = "mods"
SOURCE_MODRINTH = "modrinth"


class PackEntry(BaseModel):
    """
    A mod materialized in a pack.

    Attributes:
        project_id: Registry project id
        slug: Registry short-name
        title: Display title
        version_id: Registry id of the chosen build
        version_number: The chosen build's version string
        file_name: Name of the downloaded file under mods/
        download_url: Where the file was downloaded from
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    slug: str = Field(default="", alias="slug")
    title: str = Field(..., alias="title")
    version_id: str = Field(..., alias="versionId")
    version_number: str = Field(..., alias="versionNumber")
    file_name: str = Field(..., alias="fileName")
    download_url: str = Field(..., alias="downloadUrl")

    @field_validator("file_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        return validate_file_name(v)

    @property
    def ref(self) -> PackageRef:
        return PackageRef(project_id=self.project_id, slug=self.slug)

    @classmethod
    def from_resolution(cls, ref: PackageRef, title: str, resolution: Resolution) -> "PackEntry":
        """Create an entry for a resolved build."""
        return cls(
            project_id=ref.project_id,
            slug=ref.slug,
            title=title,
            version_id=resolution.build.id,
            version_number=resolution.build.version_number,
            file_name=resolution.file.filename,
            download_url=resolution.file.url,
        )


class Pack(BaseModel):
    """
    A named set of mods for one Minecraft version and loader.

    Every entry's build supports minecraft_version and loader.

    Attributes:
        pack_name: Pack name (already sanitized)
        minecraft_version: Target Minecraft version
        loader: Target mod loader
        created_at: When this snapshot was created
        mods: Entries in the order they were added
        source: Registry the entries came from
        incompatible: project_id -> title of mods dropped by the last update
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    pack_name: str = Field(..., alias="packName", min_length=1)
    minecraft_version: str = Field(..., alias="minecraftVersion", min_length=1)
    loader: Loader = Field(..., alias="loader")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        alias="createdAt",
    )
    mods: list[PackEntry] = Field(default_factory=list, alias="mods")
    source: Literal["modrinth"] = Field(default=SOURCE_MODRINTH, alias="source")
    incompatible: dict[str, str] | None = Field(default=None, alias="incompatible")

    def with_entry(self, entry: PackEntry) -> "Pack":
        """Return a copy with entry appended."""
        return self.model_copy(update={"mods": [*self.mods, entry]})

    def contains(self, ref: PackageRef) -> bool:
        """True when a mod with the same id or slug is already in the pack."""
        return any(entry.ref.matches(ref) for entry in self.mods)

    def to_manifest(self) -> dict:
        """Serialize to the JSON-ready manifest dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
