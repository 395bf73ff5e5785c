# Batch metadata
from .batch import (
    BatchMeta,
    GameSystem,
    Category,
    Genre,
    Franchise,
)

# Extracted rulebook content
from .rulebook_content import (
    StructuredContent,
    CharacterOptions,
    GameMechanics,
    DetailedMechanics,
    CombatRules,
    SkillCheckSystem,
    MagicSystem,
    EXTRACTION_SCHEMA,
    SECTION_NAMES,
)

__all__ = [
    # Batch metadata
    "BatchMeta",
    "GameSystem",
    "Category",
    "Genre",
    "Franchise",
    # Extracted rulebook content
    "StructuredContent",
    "CharacterOptions",
    "GameMechanics",
    "DetailedMechanics",
    "CombatRules",
    "SkillCheckSystem",
    "MagicSystem",
    "EXTRACTION_SCHEMA",
    "SECTION_NAMES",
]
