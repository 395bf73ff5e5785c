"""Persistence for rulebook and world records.

Each method runs in its own ``AsyncSession`` and commits one row, so the
pipeline never holds a transaction across items. Title uniqueness is
enforced by the ``uix_rulebook_title`` constraint; a losing insert surfaces
as :class:`DuplicateTitleError`.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from sqlalchemy import desc, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tomekeeper.errors import DuplicateTitleError, RecordNotFoundError
from tomekeeper.models import EXTRACTION_EXTRACTED, EXTRACTION_UPLOADED, Rulebook, World
from tomekeeper.schemas import StructuredContent
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.repositories")


class RulebookRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def create(
        self,
        *,
        title: str,
        game_system: str,
        category: str,
        source_url: str,
    ) -> Rulebook:
        """Insert a rulebook in the ``uploaded`` state."""
        rulebook = Rulebook(
            id=str(uuid.uuid4()),
            title=title,
            game_system=game_system,
            category=category,
            source_url=source_url,
            content_extracted=False,
            extraction_state=EXTRACTION_UPLOADED,
            **StructuredContent().model_dump(),
        )
        async with self._sessions() as db:
            db.add(rulebook)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                logger.info("Rejected duplicate rulebook title %r", title)
                raise DuplicateTitleError(title) from exc
            await db.refresh(rulebook)
        return rulebook

    async def get(self, rulebook_id: str) -> Optional[Rulebook]:
        async with self._sessions() as db:
            return await db.get(Rulebook, rulebook_id)

    async def find_by_title(self, title: str) -> Optional[Rulebook]:
        async with self._sessions() as db:
            result = await db.execute(select(Rulebook).where(Rulebook.title == title))
            return result.scalar_one_or_none()

    async def update(self, rulebook_id: str, **fields) -> Rulebook:
        async with self._sessions() as db:
            rulebook = await db.get(Rulebook, rulebook_id)
            if rulebook is None:
                raise RecordNotFoundError(f"Rulebook {rulebook_id} not found")
            for key, value in fields.items():
                if not hasattr(Rulebook, key):
                    raise AttributeError(f"Rulebook has no field {key!r}")
                setattr(rulebook, key, value)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise DuplicateTitleError(fields.get("title", "")) from exc
            await db.refresh(rulebook)
            return rulebook

    async def mark_uploaded(self, rulebook_id: str, source_url: str) -> Rulebook:
        """Put an existing record back into the first phase with a fresh source."""
        return await self.update(
            rulebook_id,
            source_url=source_url,
            content_extracted=False,
            extraction_state=EXTRACTION_UPLOADED,
            extraction_error=None,
        )

    async def mark_extracted(self, rulebook_id: str, content: StructuredContent) -> Rulebook:
        return await self.update(
            rulebook_id,
            content_extracted=True,
            extraction_state=EXTRACTION_EXTRACTED,
            extraction_error=None,
            **content.model_dump(),
        )

    async def mark_extraction_failed(self, rulebook_id: str, error: str) -> Rulebook:
        return await self.update(rulebook_id, extraction_error=error)

    async def list(
        self,
        *,
        game_system: Optional[str] = None,
        category: Optional[str] = None,
        extracted: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> list[Rulebook]:
        """Newest first. ``search`` matches title, game system or category."""
        query = select(Rulebook).order_by(desc(Rulebook.created_at))
        if game_system:
            query = query.where(Rulebook.game_system == game_system)
        if category:
            query = query.where(Rulebook.category == category)
        if extracted is not None:
            query = query.where(Rulebook.content_extracted.is_(extracted))
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(or_(
                Rulebook.title.ilike(pattern),
                Rulebook.game_system.ilike(pattern),
                Rulebook.category.ilike(pattern),
            ))
        async with self._sessions() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def list_unextracted(self) -> list[Rulebook]:
        """Records left in the ``uploaded`` phase, e.g. after an extraction failure."""
        async with self._sessions() as db:
            result = await db.execute(
                select(Rulebook)
                .where(Rulebook.extraction_state == EXTRACTION_UPLOADED)
                .order_by(desc(Rulebook.created_at))
            )
            return list(result.scalars().all())


class WorldRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sessions = session_factory

    async def create(
        self,
        *,
        name: str,
        description: str,
        game_system: str,
        genre: str,
        franchise: str,
        rulebook_ids: Iterable[str],
        is_public: bool,
    ) -> World:
        world = World(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            game_system=game_system,
            genre=genre,
            franchise=franchise,
            rulebook_ids=list(dict.fromkeys(rulebook_ids)),
            is_public=is_public,
            is_active=True,
            requires_rulebook=not is_public,
        )
        async with self._sessions() as db:
            db.add(world)
            await db.commit()
            await db.refresh(world)
        return world

    async def get(self, world_id: str) -> Optional[World]:
        async with self._sessions() as db:
            return await db.get(World, world_id)

    async def list(self) -> list[World]:
        async with self._sessions() as db:
            result = await db.execute(select(World).order_by(desc(World.created_at)))
            return list(result.scalars().all())

    async def add_rulebooks(self, world_id: str, rulebook_ids: Iterable[str]) -> World:
        async with self._sessions() as db:
            world = await db.get(World, world_id)
            if world is None:
                raise RecordNotFoundError(f"World {world_id} not found")
            # Reassign rather than mutate so the JSON column is marked dirty
            world.rulebook_ids = list(dict.fromkeys([*(world.rulebook_ids or []), *rulebook_ids]))
            await db.commit()
            await db.refresh(world)
            return world
