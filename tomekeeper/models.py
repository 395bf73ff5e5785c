from datetime import datetime
from typing import List, Optional
from sqlalchemy import String, DateTime, Text, JSON, Boolean, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func

# Two-phase state of a persisted rulebook
EXTRACTION_UPLOADED = "uploaded"
EXTRACTION_EXTRACTED = "extracted"


class Base(DeclarativeBase):
    pass

class Rulebook(Base):
    __tablename__ = "rulebooks"

    id: Mapped[str] = mapped_column(String, primary_key=True, index=True) # Using UUID strings
    title: Mapped[str] = mapped_column(String, index=True)
    game_system: Mapped[str] = mapped_column(String, index=True)
    category: Mapped[str] = mapped_column(String, default="other")
    source_url: Mapped[str] = mapped_column(String)

    # content_extracted mirrors extraction_state for consumers that only read the flag
    content_extracted: Mapped[bool] = mapped_column(Boolean, default=False)
    extraction_state: Mapped[str] = mapped_column(String(16), default=EXTRACTION_UPLOADED, index=True)
    extraction_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Extracted sections. Never null: empty containers until extraction succeeds.
    character_options: Mapped[dict] = mapped_column(JSON, default=dict)
    game_mechanics: Mapped[dict] = mapped_column(JSON, default=dict)
    detailed_mechanics: Mapped[dict] = mapped_column(JSON, default=dict)
    npcs: Mapped[list] = mapped_column(JSON, default=list)
    locations: Mapped[list] = mapped_column(JSON, default=list)
    campaigns: Mapped[list] = mapped_column(JSON, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("title", name="uix_rulebook_title"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "game_system": self.game_system,
            "category": self.category,
            "source_url": self.source_url,
            "content_extracted": self.content_extracted,
            "extraction_state": self.extraction_state,
            "extraction_error": self.extraction_error,
            "character_options": self.character_options,
            "game_mechanics": self.game_mechanics,
            "detailed_mechanics": self.detailed_mechanics,
            "npcs": self.npcs,
            "locations": self.locations,
            "campaigns": self.campaigns,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

class World(Base):
    """A named setting grouping the rulebooks ingested by one batch."""
    __tablename__ = "worlds"

    id: Mapped[str] = mapped_column(String, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String, index=True)
    description: Mapped[str] = mapped_column(Text, default="")
    game_system: Mapped[str] = mapped_column(String)
    genre: Mapped[str] = mapped_column(String, default="fantasy")
    franchise: Mapped[str] = mapped_column(String, default="custom")
    rulebook_ids: Mapped[List[str]] = mapped_column(JSON, default=list)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    requires_rulebook: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "game_system": self.game_system,
            "genre": self.genre,
            "franchise": self.franchise,
            "rulebook_ids": list(self.rulebook_ids or []),
            "visibility": "public" if self.is_public else "private",
            "is_active": self.is_active,
            "requires_rulebook": self.requires_rulebook,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
