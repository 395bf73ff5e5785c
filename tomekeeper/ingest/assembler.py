"""Creates the world record that closes a batch."""

from __future__ import annotations

from typing import Optional, Sequence

from tomekeeper.config import Settings, get_settings
from tomekeeper.errors import WorldAssemblyError
from tomekeeper.models import World
from tomekeeper.repositories import WorldRepository
from tomekeeper.schemas import BatchMeta
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.ingest.assembler")


class WorldAssembler:
    def __init__(self, worlds: WorldRepository, settings: Optional[Settings] = None):
        self._worlds = worlds
        self._settings = settings or get_settings()

    async def assemble(self, meta: BatchMeta, rulebook_ids: Sequence[str]) -> Optional[World]:
        """Create one world referencing *rulebook_ids*.

        Returns ``None`` only when the batch produced no rulebooks and
        ``create_empty_worlds`` is off.
        """
        if not rulebook_ids and not self._settings.create_empty_worlds:
            logger.info("Skipping world %r: no rulebooks were ingested", meta.world_name)
            return None

        game_system = meta.game_system.value if meta.game_system else ""
        description = meta.world_description.strip() or f"A {game_system} world created from your rulebooks"
        try:
            world = await self._worlds.create(
                name=meta.world_name.strip(),
                description=description,
                game_system=game_system,
                genre=meta.genre.value,
                franchise=meta.franchise.value,
                rulebook_ids=rulebook_ids,
                is_public=meta.is_public,
            )
        except Exception as exc:
            raise WorldAssemblyError(f"Failed to create world: {exc}") from exc

        logger.info(
            "World %r created with %d rulebook(s)", world.name, len(world.rulebook_ids),
            extra={"world_id": world.id},
        )
        return world

    async def attach(self, world_id: str, rulebook_ids: Sequence[str]) -> World:
        """Add rulebooks that succeeded on a manual retry to an existing world."""
        try:
            return await self._worlds.add_rulebooks(world_id, rulebook_ids)
        except Exception as exc:
            raise WorldAssemblyError(f"Failed to update world {world_id}: {exc}") from exc
