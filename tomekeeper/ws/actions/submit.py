"""Handler for the ``submit`` action: decode the form and start a batch."""

from __future__ import annotations

import base64
import binascii

from tomekeeper.errors import BatchValidationError
from tomekeeper.ingest.items import FileSource, parse_url_list
from tomekeeper.schemas import BatchMeta
from tomekeeper.utils.logging_config import get_logger
from tomekeeper.ws.actions import ActionResult
from tomekeeper.ws.context import WsQueueContext

_logger = get_logger("tomekeeper.ws.actions.submit")


def _validation_error(message: str) -> ActionResult:
    return ActionResult(reply={"type": "error", "code": "VALIDATION_ERROR", "message": message})


async def handle_submit(ctx: WsQueueContext, payload: dict) -> ActionResult:
    files = []
    for entry in payload.get("files", []):
        try:
            data = base64.b64decode(entry["content_base64"], validate=True)
        except (binascii.Error, ValueError):
            return _validation_error(f"File {entry['filename']!r} is not valid base64")
        files.append(FileSource(
            filename=entry["filename"],
            data=data,
            content_type=entry.get("content_type") or "application/pdf",
        ))

    meta = BatchMeta(
        game_system=payload.get("game_system"),
        category=payload["category"],
        world_name=payload.get("world_name", ""),
        world_description=payload.get("world_description", ""),
        genre=payload["genre"],
        franchise=payload["franchise"],
        is_public=payload.get("is_public", False),
    )

    try:
        handle = await ctx.controller.submit_batch([*files, *parse_url_list(payload.get("urls", ""))], meta)
    except BatchValidationError as exc:
        _logger.info("Rejected batch: %s", exc)
        return _validation_error(str(exc))

    return ActionResult(reply={
        "type": "batch_accepted",
        "batch_id": handle.batch_id,
        "item_ids": handle.item_ids,
    })
