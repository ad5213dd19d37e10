"""
Unit tests for manifest loading and duplicate-id renaming.
"""

import pytest
from pathlib import Path

from component_registry.registry.manifest import (
    ComponentRecord,
    VERSION_KEY,
    ManifestLoader,
    deduplicate_ids,
)
from component_registry.utils.errors import (
    ManifestError,
    ManifestFormatError,
    ManifestParseError,
)

from tests.fixtures.manifest_fixtures import ManifestFixtures


class TestDeduplicateIds:
    """Test first-seen-wins renaming."""

    def test_unique_ids_unchanged(self):
        records = [ComponentRecord("a", 1), ComponentRecord("b", 2)]
        assert [r.id for r in deduplicate_ids(records)] == ["a", "b"]

    def test_duplicates_get_increasing_suffixes(self):
        records = [
            ComponentRecord("x", 1),
            ComponentRecord("y", 2),
            ComponentRecord("x", 3),
            ComponentRecord("x", 4),
            ComponentRecord("y", 5),
        ]

        result = deduplicate_ids(records)

        assert [(r.id, r.content) for r in result] == [
            ("x", 1), ("y", 2), ("x_2", 3), ("x_3", 4), ("y_2", 5),
        ]

    def test_renamed_ids_are_not_reserved(self):
        records = [
            ComponentRecord("x", 1),
            ComponentRecord("x", 2),
            ComponentRecord("x_2", 3),
        ]

        result = deduplicate_ids(records)

        assert [r.id for r in result] == ["x", "x_2", "x_2"]

    def test_input_records_not_mutated(self):
        original = ComponentRecord("x", 2)
        deduplicate_ids([ComponentRecord("x", 1), original])
        assert original.id == "x"


class TestManifestLoader:
    """Test reading a components directory."""

    @pytest.mark.asyncio
    async def test_duplicate_across_files(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": "x", "content": 1}])
        ManifestFixtures.write_manifest(components_dir, "b.json", [{"id": "x", "content": 2}])

        records = await ManifestLoader(components_dir).load()

        assert [r.to_dict() for r in records] == [
            {"id": "x", "content": 1},
            {"id": "x_2", "content": 2},
        ]

    @pytest.mark.asyncio
    async def test_files_read_in_name_order(self, components_dir: Path):
        # Written out of order on purpose.
        ManifestFixtures.write_manifest(components_dir, "z.json", [{"id": "x", "content": "z"}])
        ManifestFixtures.write_manifest(components_dir, "m.json", [{"id": "x", "content": "m"}])
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": "x", "content": "a"}])

        records = await ManifestLoader(components_dir).load()

        assert [(r.id, r.content) for r in records] == [
            ("x", "a"), ("x_2", "m"), ("x_3", "z"),
        ]

    @pytest.mark.asyncio
    async def test_sample_manifests(self, sample_components_dir: Path):
        records = await ManifestLoader(sample_components_dir).load()

        assert [r.id for r in records] == ManifestFixtures.sample_ids()
        by_id = {r.id: r.content for r in records}
        assert by_id["button"]["label"] == "OK"
        assert by_id["button_2"]["label"] == "Cancel"
        assert by_id["modal"] == {"tag": "dialog"}

    @pytest.mark.asyncio
    async def test_loading_is_deterministic(self, sample_components_dir: Path):
        loader = ManifestLoader(sample_components_dir)

        first = await loader.load()
        second = await loader.load()

        assert first == second

    @pytest.mark.asyncio
    async def test_non_json_files_ignored(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": "x", "content": 1}])
        ManifestFixtures.write_raw(components_dir, "notes.txt", "not json at all")
        ManifestFixtures.write_raw(components_dir, "b.JSON", "{also ignored")
        ManifestFixtures.write_raw(components_dir, "c.json.bak", "[")

        records = await ManifestLoader(components_dir).load()

        assert [r.id for r in records] == ["x"]

    @pytest.mark.asyncio
    async def test_subdirectories_not_read(self, components_dir: Path):
        nested = components_dir / "nested"
        nested.mkdir()
        ManifestFixtures.write_manifest(nested, "deep.json", [{"id": "deep", "content": 1}])
        (components_dir / "dir.json").mkdir()
        ManifestFixtures.write_manifest(components_dir, "top.json", [{"id": "top", "content": 1}])

        records = await ManifestLoader(components_dir).load()

        assert [r.id for r in records] == ["top"]

    @pytest.mark.asyncio
    async def test_records_without_id_skipped(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [
            {"content": "no id"},
            {"id": "", "content": "empty id"},
            {"id": None, "content": "null id"},
            {"id": 0, "content": "zero id"},
            "not an object",
            ["nor", "this"],
            {"id": "kept", "content": "ok"},
        ])

        records = await ManifestLoader(components_dir).load()

        assert [r.to_dict() for r in records] == [{"id": "kept", "content": "ok"}]

    @pytest.mark.asyncio
    async def test_numeric_id_coerced_to_string(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": 42, "content": "n"}])

        records = await ManifestLoader(components_dir).load()

        assert records == [ComponentRecord("42", "n")]

    @pytest.mark.asyncio
    async def test_missing_content_is_none(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": "bare"}])

        records = await ManifestLoader(components_dir).load()

        assert records == [ComponentRecord("bare", None)]

    @pytest.mark.asyncio
    async def test_empty_directory(self, components_dir: Path):
        assert await ManifestLoader(components_dir).load() == []

    @pytest.mark.asyncio
    async def test_malformed_json_aborts_load(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [{"id": "x", "content": 1}])
        bad = ManifestFixtures.write_raw(components_dir, "b.json", '[{"id": "y",')

        with pytest.raises(ManifestParseError) as exc_info:
            await ManifestLoader(components_dir).load()

        assert exc_info.value.path == bad
        assert exc_info.value.context.metadata["path"] == str(bad)

    @pytest.mark.asyncio
    async def test_non_array_manifest_rejected(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", {"id": "x", "content": 1})

        with pytest.raises(ManifestFormatError):
            await ManifestLoader(components_dir).load()

    @pytest.mark.asyncio
    async def test_missing_directory(self, temp_dir: Path):
        with pytest.raises(ManifestError):
            await ManifestLoader(temp_dir / "nope").load()

    @pytest.mark.asyncio
    async def test_non_utf8_manifest_is_parse_error(self, components_dir: Path):
        (components_dir / "bad.json").write_bytes(b"[\xff\xfe]")

        with pytest.raises(ManifestParseError):
            await ManifestLoader(components_dir).load()

    @pytest.mark.asyncio
    async def test_version_key_id_skipped(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "a.json", [
            {"id": VERSION_KEY, "content": "not a version"},
            {"id": "x", "content": 1},
            {"id": VERSION_KEY, "content": "again"},
        ])

        records = await ManifestLoader(components_dir).load()

        assert [r.to_dict() for r in records] == [{"id": "x", "content": 1}]

    @pytest.mark.asyncio
    async def test_manifest_paths_sorted_files_only(self, components_dir: Path):
        ManifestFixtures.write_manifest(components_dir, "b.json", [])
        ManifestFixtures.write_manifest(components_dir, "a.json", [])
        (components_dir / "dir.json").mkdir()
        (components_dir / "notes.txt").write_text("x")

        paths = await ManifestLoader(components_dir).manifest_paths()

        assert paths == [components_dir / "a.json", components_dir / "b.json"]
