import json

from fastapi import WebSocket, WebSocketDisconnect

from tomekeeper.app import manager
from tomekeeper.config import get_settings
from tomekeeper.database import AsyncSessionLocal
from tomekeeper.ingest.controller import QueueController
from tomekeeper.repositories import RulebookRepository, WorldRepository
from tomekeeper.schemas.ws_messages import validate_ws_payload
from tomekeeper.services.extractor import GeminiExtractor
from tomekeeper.services.uploader import HttpBlobUploader
from tomekeeper.utils.logging_config import get_logger
from tomekeeper.ws.actions import ActionResult, get_action_dispatch
from tomekeeper.ws.context import WsQueueContext

_logger = get_logger("tomekeeper.ws.handler")

ACTION_DISPATCH = get_action_dispatch()


def build_controller() -> QueueController:
    settings = get_settings()
    return QueueController(
        rulebooks=RulebookRepository(AsyncSessionLocal),
        worlds=WorldRepository(AsyncSessionLocal),
        uploader=HttpBlobUploader(settings),
        extractor=GeminiExtractor(settings),
        settings=settings,
    )


async def queue_websocket_endpoint(websocket: WebSocket):
    """One ingestion queue per connection, driven by JSON actions."""
    await manager.connect(websocket)
    _logger.info("Queue WebSocket connected")

    ctx = WsQueueContext(websocket=websocket, controller=build_controller())

    async def forward(event: dict) -> None:
        await manager.send_json(event, websocket)

    ctx.unsubscribe = ctx.controller.subscribe(forward)
    max_bytes = get_settings().max_message_bytes

    try:
        await forward({"type": "queue", "items": ctx.controller.snapshot(), "counts": ctx.controller.counts()})

        while True:
            data = await websocket.receive_text()
            ctx.action = ""

            # Size validation
            if len(data.encode("utf-8", errors="replace")) > max_bytes:
                await manager.send_json({"type": "error", "code": "MESSAGE_TOO_LARGE",
                                         "message": f"Message exceeds {max_bytes // (1024 * 1024)}MB limit"}, websocket)
                continue

            try:
                payload = json.loads(data)
            except (json.JSONDecodeError, ValueError) as exc:
                await manager.send_json({"type": "error", "code": "INVALID_JSON",
                                         "message": f"Malformed JSON: {exc}"}, websocket)
                continue

            if not isinstance(payload, dict):
                await manager.send_json({"type": "error", "code": "INVALID_JSON",
                                         "message": "Expected a JSON object"}, websocket)
                continue

            action = payload.get("action")
            inner_data = payload.get("payload") or {}

            # Validate payload
            ok, val_result = validate_ws_payload(action, inner_data) if isinstance(inner_data, dict) \
                else (False, "Payload must be a JSON object")
            if not ok:
                await manager.send_json({"type": "error", "code": "INVALID_PAYLOAD", "message": val_result}, websocket)
                continue

            ctx.action = action
            handler = ACTION_DISPATCH[action]

            result: ActionResult = await handler(ctx, val_result)
            if result.reply is not None:
                await manager.send_json(result.reply, websocket)

    except WebSocketDisconnect:
        _logger.info("Queue WebSocket disconnected")
    except Exception as e:
        _logger.exception("Fatal error in queue WebSocket loop")
        try:
            await manager.send_json({"type": "error", "message": str(e)}, websocket)
        except Exception:
            _logger.debug("Could not report error to closed socket", exc_info=True)
    finally:
        ctx.unsubscribe()
