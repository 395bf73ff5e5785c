"""
WebSocket message validation schemas for the ingestion queue.

Every inbound WS message must match the ``WsMessage`` envelope. The
``payload`` dict is then validated against the action-specific model via
``validate_ws_payload()``.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from tomekeeper.schemas.batch import Category, Franchise, GameSystem, Genre

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Envelope
# ---------------------------------------------------------------------------
VALID_ACTIONS = frozenset({
    "submit", "select", "select-all", "retry", "delete", "clear", "snapshot",
})


class WsMessage(BaseModel):
    """Top-level WebSocket message envelope."""
    action: str = Field(..., description="Action to perform")
    payload: Dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Per-action payloads
# ---------------------------------------------------------------------------

class FilePayload(BaseModel):
    filename: str = Field(..., min_length=1, max_length=500)
    content_base64: str
    content_type: str = Field(default="application/pdf", max_length=200)


class SubmitPayload(BaseModel):
    game_system: Optional[GameSystem] = None
    category: Category = Category.OTHER
    world_name: str = Field(default="", max_length=200)
    world_description: str = Field(default="", max_length=10_000)
    genre: Genre = Genre.FANTASY
    franchise: Franchise = Franchise.CUSTOM
    is_public: bool = False
    urls: str = Field(default="", max_length=100_000, description="Newline-separated URLs")
    files: List[FilePayload] = Field(default_factory=list, max_length=200)


class SelectionPayload(BaseModel):
    """Used by select / retry / delete. ``None`` means the current selection."""
    item_ids: Optional[List[str]] = Field(default=None, max_length=1000)


# No payload needed for: select-all, clear, snapshot
class EmptyPayload(BaseModel):
    pass


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------
_ACTION_SCHEMAS: dict[str, type[BaseModel]] = {
    "submit": SubmitPayload,
    "select": SelectionPayload,
    "select-all": EmptyPayload,
    "retry": SelectionPayload,
    "delete": SelectionPayload,
    "clear": EmptyPayload,
    "snapshot": EmptyPayload,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_ws_payload(action: str, raw_payload: dict) -> tuple[bool, dict | str]:
    """
    Validate *raw_payload* against the schema for *action*.

    Returns ``(True, validated_dict)`` on success or
    ``(False, error_message)`` on failure.
    """
    schema = _ACTION_SCHEMAS.get(action)
    if schema is None:
        return False, f"Unknown action: {action}"

    try:
        model = schema(**raw_payload)
        return True, model.model_dump()
    except ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(l) for l in e['loc'])}: {e['msg']}"
            for e in exc.errors()
        )
        logger.info("ws_validation_failed | action=%s | errors=%s", action, errors)
        return False, f"Invalid payload for '{action}': {errors}"
