"""
Unit tests for the on-disk pack store.

Tests cover:
- Name sanitization and pack locations
- Creating packs and conflict detection
- Loading (missing, corrupt, by directory or manifest path)
- Atomic saves and incremental adds
"""

import json
from pathlib import Path

import pytest

from modpacker.errors import ConflictError, CorruptDataError, InvalidInputError, NotFoundError
from modpacker.pack import MANIFEST_FILENAME, Pack, PackEntry, PackStore, pack_dirname, sanitize_name
from modpacker.schema import Loader


def make_entry(slug: str) -> PackEntry:
    return PackEntry(
        project_id=slug.upper(),
        slug=slug,
        title=slug.title(),
        version_id=f"{slug}-v1",
        version_number="1.0.0",
        file_name=f"{slug}.jar",
        download_url=f"https://cdn.modrinth.com/{slug}.jar",
    )


# =============================================================================
# Names and Locations
# =============================================================================


class TestNames:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("My Pack!! v2", "My-Pack-v2"),
            ("  spaced   out  ", "spaced-out"),
            ("under_score-dash", "under_score-dash"),
            ("ünïcödé", "ncd"),
            ("!!!", ""),
        ],
    )
    def test_sanitize(self, raw: str, expected: str) -> None:
        assert sanitize_name(raw) == expected

    def test_pack_dirname(self) -> None:
        assert pack_dirname("My Pack", "1.20.1", Loader.FABRIC) == "My-Pack-1.20.1-fabric"

    def test_location_for(self, store: PackStore, packs_dir: Path) -> None:
        assert store.location_for("Cool", "1.21", Loader.NEOFORGE) == packs_dir / "Cool-1.21-neoforge"

    def test_manifest_path_accepts_both_forms(self, temp_dir: Path) -> None:
        assert PackStore.manifest_path(temp_dir / "p") == temp_dir / "p" / MANIFEST_FILENAME
        assert PackStore.manifest_path(temp_dir / "p" / MANIFEST_FILENAME) == temp_dir / "p" / MANIFEST_FILENAME
        assert PackStore.mods_dir(temp_dir / "p" / MANIFEST_FILENAME) == temp_dir / "p" / "mods"


# =============================================================================
# Create
# =============================================================================


class TestCreate:
    def test_create_writes_manifest_and_mods_dir(self, store: PackStore, packs_dir: Path) -> None:
        pack, location = store.create("My Pack!!", "1.20.1", Loader.FABRIC)

        assert location == packs_dir / "My-Pack-1.20.1-fabric"
        assert pack.pack_name == "My-Pack"
        assert pack.mods == []
        assert (location / "mods").is_dir()
        data = json.loads((location / MANIFEST_FILENAME).read_text())
        assert data["packName"] == "My-Pack"
        assert data["minecraftVersion"] == "1.20.1"
        assert data["loader"] == "fabric"
        assert data["mods"] == []

    def test_create_conflict_leaves_existing_untouched(self, store: PackStore) -> None:
        _, location = store.create("Pack", "1.20.1", Loader.FABRIC)
        before = (location / MANIFEST_FILENAME).read_bytes()

        with pytest.raises(ConflictError):
            store.create("Pack", "1.20.1", Loader.FABRIC)

        assert (location / MANIFEST_FILENAME).read_bytes() == before

    def test_create_in_empty_existing_dir(self, store: PackStore, packs_dir: Path) -> None:
        (packs_dir / "Pack-1.20.1-fabric").mkdir(parents=True)
        _, location = store.create("Pack", "1.20.1", Loader.FABRIC)
        assert (location / MANIFEST_FILENAME).is_file()

    def test_same_name_other_target_is_separate(self, store: PackStore) -> None:
        _, a = store.create("Pack", "1.20.1", Loader.FABRIC)
        _, b = store.create("Pack", "1.21", Loader.FABRIC)
        assert a != b

    @pytest.mark.parametrize(("name", "version"), [("x", "1.20.1"), ("!!!", "1.20.1"), ("Pack", "1.20.x")])
    def test_create_rejects_invalid_input(self, store: PackStore, packs_dir: Path, name: str, version: str) -> None:
        with pytest.raises(InvalidInputError):
            store.create(name, version, Loader.FABRIC)
        assert not packs_dir.exists() or not any(packs_dir.iterdir())


# =============================================================================
# Load
# =============================================================================


class TestLoad:
    def test_missing(self, store: PackStore, temp_dir: Path) -> None:
        with pytest.raises(NotFoundError):
            store.load(temp_dir / "nothing-here")

    def test_directory_without_manifest(self, store: PackStore, temp_dir: Path) -> None:
        (temp_dir / "empty").mkdir()
        with pytest.raises(NotFoundError):
            store.load(temp_dir / "empty")

    def test_corrupt_json(self, store: PackStore, temp_dir: Path) -> None:
        (temp_dir / MANIFEST_FILENAME).write_text("{not json")
        with pytest.raises(CorruptDataError) as exc_info:
            store.load(temp_dir)
        assert "invalid JSON" in exc_info.value.parse_error

    def test_invalid_utf8(self, store: PackStore, temp_dir: Path) -> None:
        (temp_dir / MANIFEST_FILENAME).write_bytes(b'{"packName": "\xff\xfe"}')
        with pytest.raises(CorruptDataError) as exc_info:
            store.load(temp_dir)
        assert "invalid UTF-8" in exc_info.value.parse_error

    def test_manifest_is_a_directory(self, store: PackStore, temp_dir: Path) -> None:
        (temp_dir / MANIFEST_FILENAME).mkdir()
        with pytest.raises(CorruptDataError):
            store.load(temp_dir)

    def test_wrong_shape(self, store: PackStore, temp_dir: Path) -> None:
        (temp_dir / MANIFEST_FILENAME).write_text(json.dumps({"packName": "x", "mods": "nope"}))
        with pytest.raises(CorruptDataError):
            store.load(temp_dir)

    def test_load_by_manifest_path(self, store: PackStore) -> None:
        pack, location = store.create("Pack", "1.20.1", Loader.QUILT)
        assert store.load(location / MANIFEST_FILENAME) == pack

    def test_loads_manifest_written_by_earlier_tools(self, store: PackStore, temp_dir: Path) -> None:
        manifest = {
            "packName": "Legacy",
            "minecraftVersion": "1.20.1",
            "loader": "fabric",
            "createdAt": "2024-01-15T10:20:30.000Z",
            "mods": [
                {
                    "projectId": "AANobbMI",
                    "title": "Sodium",
                    "versionId": "abc",
                    "versionNumber": "0.5.3",
                    "fileName": "sodium.jar",
                    "downloadUrl": "https://cdn.modrinth.com/sodium.jar",
                }
            ],
            "source": "modrinth",
            "incompatible": {"OLDm0d00": "Old Mod"},
        }
        (temp_dir / MANIFEST_FILENAME).write_text(json.dumps(manifest))

        pack = store.load(temp_dir)

        assert pack.pack_name == "Legacy"
        assert pack.mods[0].project_id == "AANobbMI"
        assert pack.incompatible == {"OLDm0d00": "Old Mod"}


# =============================================================================
# Save / Add
# =============================================================================


class TestSave:
    def test_round_trip(self, store: PackStore) -> None:
        pack, location = store.create("Pack", "1.20.1", Loader.FABRIC)
        pack = pack.with_entry(make_entry("sodium")).with_entry(make_entry("lithium"))

        store.save(pack, location)

        assert store.load(location) == pack

    def test_no_temp_files_left(self, store: PackStore) -> None:
        pack, location = store.create("Pack", "1.20.1", Loader.FABRIC)
        store.save(pack, location)
        assert sorted(p.name for p in location.iterdir()) == [MANIFEST_FILENAME, "mods"]

    def test_add_entry_persists_each_add(self, store: PackStore) -> None:
        pack, location = store.create("Pack", "1.20.1", Loader.FABRIC)

        pack = store.add_entry(pack, make_entry("sodium"), location)
        assert [m.slug for m in store.load(location).mods] == ["sodium"]

        pack = store.add_entry(pack, make_entry("lithium"), location)
        assert [m.slug for m in store.load(location).mods] == ["sodium", "lithium"]

    def test_manifest_is_indented_json(self, store: PackStore) -> None:
        _, location = store.create("Pack", "1.20.1", Loader.FABRIC)
        text = (location / MANIFEST_FILENAME).read_text()
        assert text.startswith('{\n  "packName"')
        assert text.endswith("}\n")


class TestListPacks:
    def test_missing_root(self, temp_dir: Path) -> None:
        assert PackStore(temp_dir / "absent").list_packs() == []

    def test_only_dirs_with_manifest(self, store: PackStore, packs_dir: Path) -> None:
        _, b = store.create("Beta", "1.21", Loader.FABRIC)
        _, a = store.create("Alpha", "1.20.1", Loader.FORGE)
        (packs_dir / "stray").mkdir()
        (packs_dir / "notes.txt").write_text("hi")

        assert store.list_packs() == [a, b]

    def test_listed_pack_loads(self, store: PackStore) -> None:
        pack, _ = store.create("Alpha", "1.20.1", Loader.FORGE)
        assert isinstance(store.load(store.list_packs()[0]), Pack)
        assert store.load(store.list_packs()[0]) == pack
