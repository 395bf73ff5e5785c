"""Batch submission metadata and the enum vocabularies it draws from."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class GameSystem(str, Enum):
    MAGE_ASCENSION = "mage_ascension"
    TAILS_OF_EQUESTRIA = "tails_of_equestria"
    DC_ADVENTURES = "dc_adventures"
    DND5E = "dnd5e"
    PATHFINDER2E = "pathfinder2e"
    VAMPIRE_MASQUERADE = "vampire_masquerade"
    CUSTOM = "custom"


class Category(str, Enum):
    CORE_RULEBOOK = "core_rulebook"
    SUPPLEMENT = "supplement"
    ADVENTURE = "adventure"
    CAMPAIGN_SETTING = "campaign_setting"
    PLAYER_GUIDE = "player_guide"
    GM_GUIDE = "gm_guide"
    BESTIARY = "bestiary"
    EQUIPMENT = "equipment"
    MAGIC_ITEMS = "magic_items"
    OTHER = "other"


class Genre(str, Enum):
    FANTASY = "fantasy"
    SCI_FI = "sci_fi"
    HORROR = "horror"
    ANIME = "anime"
    CYBERPUNK = "cyberpunk"
    POST_APOCALYPTIC = "post_apocalyptic"
    STEAMPUNK = "steampunk"
    SPACE_OPERA = "space_opera"
    URBAN_FANTASY = "urban_fantasy"
    SUPERHERO = "superhero"
    WESTERN = "western"
    NOIR = "noir"


class Franchise(str, Enum):
    DND = "dnd"
    PATHFINDER = "pathfinder"
    MLP = "mlp"
    DC = "dc"
    MARVEL = "marvel"
    STARFINDER = "starfinder"
    WOD = "wod"
    CUSTOM = "custom"


class BatchMeta(BaseModel):
    """Everything a batch carries besides its sources.

    ``game_system`` and ``world_name`` are optional here so that a missing
    value is reported by the queue controller as a batch validation error
    rather than at construction time.
    """
    game_system: Optional[GameSystem] = None
    category: Category = Category.OTHER
    world_name: str = Field(default="", max_length=200)
    world_description: str = Field(default="", max_length=10_000)
    genre: Genre = Genre.FANTASY
    franchise: Franchise = Franchise.CUSTOM
    is_public: bool = False

    @property
    def visibility(self) -> str:
        return "public" if self.is_public else "private"
