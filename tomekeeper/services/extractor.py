"""
Structured extractor: document URL in, :class:`StructuredContent` out.

The document is downloaded with ``httpx`` and handed to Gemini inline; the
reply is parsed as JSON and normalized so missing sections become empty
containers. Transport errors and replies without any JSON object raise,
which lets the retry wrapper try again.
"""
from __future__ import annotations

import json
from typing import Any, Optional, Protocol

import httpx
from google.genai import Client as GenAIClient
from google.genai import types

from tomekeeper.config import Settings, get_settings
from tomekeeper.schemas import EXTRACTION_SCHEMA, StructuredContent
from tomekeeper.utils.json_extractor import extract_json_object
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.extractor")


class Extractor(Protocol):
    async def extract(self, document_url: str, schema: dict[str, Any]) -> StructuredContent:
        ...


# Example shape shown to the model; the schema argument lists the sections.
_EXAMPLE_SHAPE = {
    "character_options": {
        "races": ["max 10 races/species"],
        "classes": ["max 10 classes"],
        "abilities": ["max 15 abilities"],
        "attributes": ["stat names"],
    },
    "game_mechanics": {
        "core_rules": "1-2 sentences",
        "dice_system": "dice system",
        "progression": "advancement",
    },
    "detailed_mechanics": {
        "combat_rules": {
            "initiative": "initiative",
            "attack_resolution": "attacks",
            "damage_system": "damage",
            "special_actions": ["actions"],
        },
        "skill_check_system": {
            "basic_mechanic": "mechanic",
            "difficulty_levels": "difficulties",
            "modifiers": "modifiers",
        },
        "magic_system": {
            "casting_mechanic": "casting",
            "spell_components": "components",
            "limitations": "limits",
        },
    },
    "npcs": [],
    "locations": [],
    "campaigns": [],
}


def build_extraction_prompt(schema: dict[str, Any]) -> str:
    sections = ", ".join(schema.get("properties", {}))
    return (
        "Analyze this tabletop RPG rulebook and extract key content. "
        f"Return ONLY valid JSON with these top-level keys: {sections}.\n"
        f"{json.dumps(_EXAMPLE_SHAPE, indent=2)}"
    )


class GeminiExtractor:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[GenAIClient] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings or get_settings()
        self._client = client
        self._http = http_client

    @property
    def client(self) -> GenAIClient:
        if self._client is None:
            # An empty key lets the SDK fall back to GOOGLE_API_KEY
            self._client = GenAIClient(api_key=self._settings.google_api_key or None)
        return self._client

    async def _fetch(self, document_url: str) -> tuple[bytes, str]:
        if self._http is not None:
            response = await self._http.get(document_url, follow_redirects=True)
        else:
            async with httpx.AsyncClient(timeout=self._settings.fetch_timeout_seconds) as http:
                response = await http.get(document_url, follow_redirects=True)
        response.raise_for_status()
        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not mime_type or mime_type == "application/octet-stream":
            mime_type = "application/pdf"
        return response.content, mime_type

    async def extract(self, document_url: str, schema: dict[str, Any] = EXTRACTION_SCHEMA) -> StructuredContent:
        data, mime_type = await self._fetch(document_url)
        logger.info("Extracting %s (%d bytes, %s)", document_url, len(data), mime_type)

        response = await self.client.aio.models.generate_content(
            model=self._settings.model_extractor,
            contents=[
                types.Part.from_bytes(data=data, mime_type=mime_type),
                build_extraction_prompt(schema),
            ],
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )

        raw = extract_json_object(response.text or "")
        if raw is None:
            raise ValueError("AI processing error: reply contained no JSON object")

        missing = [name for name in schema.get("properties", {}) if name not in raw]
        if missing:
            logger.info("Extraction of %s omitted sections: %s", document_url, ", ".join(missing))
        return StructuredContent.from_raw(raw)
