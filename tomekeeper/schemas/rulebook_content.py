"""
Structured rulebook content returned by the extractor.

The extractor's output is loosely shaped: sections go missing, lists come
back as strings, objects come back as ``null``. Everything is normalized
here, at the boundary, so that every persisted rulebook carries all six
sections with empty containers as defaults.

Usage:
    from tomekeeper.schemas import StructuredContent

    content = StructuredContent.from_raw(llm_json)
    record_fields = content.model_dump()   # never contains None sections
"""
from __future__ import annotations

from typing import Any, List, get_args, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "; ".join(_as_text(v) for v in value if v is not None)
    return str(value)


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    if isinstance(value, (tuple, set)):
        return list(value)
    if isinstance(value, str):
        return [value] if value.strip() else []
    return [value]


class LenientSection(BaseModel):
    """
    Base model that coerces each declared field to its annotated shape.

    Unknown keys are dropped, ``None`` falls back to the field default,
    and a section that is not an object at all becomes an empty section.
    """
    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def coerce_fields(cls, data: Any) -> dict:
        if not isinstance(data, dict):
            return {}

        coerced: dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            if name not in data or data[name] is None:
                continue
            value = data[name]
            annotation = field.annotation

            if annotation is str:
                coerced[name] = _as_text(value)
            elif get_origin(annotation) is list:
                items = _as_list(value)
                if get_args(annotation) == (str,):
                    items = [_as_text(v) for v in items if v is not None]
                coerced[name] = items
            elif isinstance(annotation, type) and issubclass(annotation, LenientSection):
                coerced[name] = value if isinstance(value, dict) else {}
            else:
                coerced[name] = value
        return coerced


# ─── Character options ────────────────────────────────────────────────────────

class CharacterOptions(LenientSection):
    races: List[str] = Field(default_factory=list, description="Races or species")
    classes: List[str] = Field(default_factory=list)
    abilities: List[str] = Field(default_factory=list)
    attributes: List[str] = Field(default_factory=list, description="Stat names")


# ─── Mechanics ────────────────────────────────────────────────────────────────

class GameMechanics(LenientSection):
    core_rules: str = Field(default="", description="1-2 sentence rules summary")
    dice_system: str = ""
    progression: str = Field(default="", description="How characters advance")


class CombatRules(LenientSection):
    initiative: str = ""
    attack_resolution: str = ""
    damage_system: str = ""
    special_actions: List[str] = Field(default_factory=list)


class SkillCheckSystem(LenientSection):
    basic_mechanic: str = ""
    difficulty_levels: str = ""
    modifiers: str = ""


class MagicSystem(LenientSection):
    casting_mechanic: str = ""
    spell_components: str = ""
    limitations: str = ""


class DetailedMechanics(LenientSection):
    combat_rules: CombatRules = Field(default_factory=CombatRules)
    skill_check_system: SkillCheckSystem = Field(default_factory=SkillCheckSystem)
    magic_system: MagicSystem = Field(default_factory=MagicSystem)


# ─── Full document ────────────────────────────────────────────────────────────

class StructuredContent(LenientSection):
    """The six sections downstream consumers index into."""
    character_options: CharacterOptions = Field(default_factory=CharacterOptions)
    game_mechanics: GameMechanics = Field(default_factory=GameMechanics)
    detailed_mechanics: DetailedMechanics = Field(default_factory=DetailedMechanics)
    npcs: List[Any] = Field(default_factory=list)
    locations: List[Any] = Field(default_factory=list)
    campaigns: List[Any] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "StructuredContent":
        """Build from whatever the extractor produced (dict, None, junk)."""
        return cls.model_validate(raw if isinstance(raw, dict) else {})


SECTION_NAMES = tuple(StructuredContent.model_fields)

# Response schema handed to the extractor alongside the document URL.
EXTRACTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "character_options": {"type": "object"},
        "game_mechanics": {"type": "object"},
        "detailed_mechanics": {"type": "object"},
        "npcs": {"type": "array"},
        "locations": {"type": "array"},
        "campaigns": {"type": "array"},
    },
}
