"""Tests for the title dedup guard and the world assembler."""

from unittest.mock import AsyncMock

import pytest

from tomekeeper.errors import DuplicateTitleError, WorldAssemblyError
from tomekeeper.ingest.assembler import WorldAssembler
from tomekeeper.ingest.dedup import DedupGuard
from tomekeeper.schemas import BatchMeta, Franchise, GameSystem, Genre


class TestDedupGuard:

    async def test_unknown_title_passes(self, rulebooks):
        await DedupGuard(rulebooks).check_title("Fresh Title")

    async def test_existing_title_rejected(self, rulebooks):
        await rulebooks.create(title="Core", game_system="dnd5e", category="other", source_url="u")
        with pytest.raises(DuplicateTitleError) as exc_info:
            await DedupGuard(rulebooks).check_title("Core")
        assert str(exc_info.value) == "Rulebook with this title already exists"
        assert exc_info.value.title == "Core"

    async def test_own_record_is_not_a_duplicate(self, rulebooks):
        rb = await rulebooks.create(title="Core", game_system="dnd5e", category="other", source_url="u")
        await DedupGuard(rulebooks).check_title("Core", own_record_id=rb.id)

    async def test_someone_elses_record_is_a_duplicate(self, rulebooks):
        await rulebooks.create(title="Core", game_system="dnd5e", category="other", source_url="u")
        with pytest.raises(DuplicateTitleError):
            await DedupGuard(rulebooks).check_title("Core", own_record_id="other-id")


class TestWorldAssembler:

    async def test_assemble_copies_batch_metadata(self, worlds, settings):
        meta = BatchMeta(
            game_system=GameSystem.PATHFINDER2E, world_name="  Golarion  ",
            genre=Genre.HORROR, franchise=Franchise.PATHFINDER, is_public=True,
        )
        world = await WorldAssembler(worlds, settings).assemble(meta, ["rb-1", "rb-2"])
        assert world.name == "Golarion"
        assert world.description == "A pathfinder2e world created from your rulebooks"
        assert world.genre == "horror"
        assert world.franchise == "pathfinder"
        assert world.rulebook_ids == ["rb-1", "rb-2"]
        assert world.requires_rulebook is False

    async def test_explicit_description_kept(self, worlds, settings, meta):
        meta = meta.model_copy(update={"world_description": "Misty moors"})
        world = await WorldAssembler(worlds, settings).assemble(meta, ["rb-1"])
        assert world.description == "Misty moors"

    async def test_empty_world_created_by_default(self, worlds, settings, meta):
        world = await WorldAssembler(worlds, settings).assemble(meta, [])
        assert world is not None
        assert world.rulebook_ids == []

    async def test_empty_world_suppressed_when_configured(self, worlds, settings, meta):
        settings = settings.model_copy(update={"create_empty_worlds": False})
        assert await WorldAssembler(worlds, settings).assemble(meta, []) is None
        assert await worlds.list() == []

    async def test_persistence_failure_becomes_assembly_error(self, settings, meta):
        broken = AsyncMock()
        broken.create.side_effect = RuntimeError("database is gone")
        with pytest.raises(WorldAssemblyError, match="database is gone"):
            await WorldAssembler(broken, settings).assemble(meta, ["rb-1"])

    async def test_attach_failure_becomes_assembly_error(self, settings):
        broken = AsyncMock()
        broken.add_rulebooks.side_effect = RuntimeError("database is gone")
        with pytest.raises(WorldAssemblyError):
            await WorldAssembler(broken, settings).attach("w-1", ["rb-1"])
