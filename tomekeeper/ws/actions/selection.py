"""Handlers for selection and the bulk actions on queued items."""

from __future__ import annotations

from tomekeeper.ws.actions import ActionResult
from tomekeeper.ws.context import WsQueueContext


def _selection_reply(ctx: WsQueueContext) -> ActionResult:
    return ActionResult(reply={"type": "selection", "item_ids": ctx.controller.selected})


async def handle_select(ctx: WsQueueContext, payload: dict) -> ActionResult:
    ctx.controller.clear_selection()
    ctx.controller.select(payload.get("item_ids") or [])
    return _selection_reply(ctx)


async def handle_select_all(ctx: WsQueueContext, payload: dict) -> ActionResult:
    ctx.controller.select_all()
    return _selection_reply(ctx)


async def handle_retry(ctx: WsQueueContext, payload: dict) -> ActionResult:
    retried = await ctx.controller.retry_selected(payload.get("item_ids"))
    return ActionResult(reply={"type": "retry_started", "item_ids": retried})


async def handle_delete(ctx: WsQueueContext, payload: dict) -> ActionResult:
    deleted = await ctx.controller.delete_selected(payload.get("item_ids"))
    return ActionResult(reply={"type": "deleted", "item_ids": deleted})


async def handle_clear(ctx: WsQueueContext, payload: dict) -> ActionResult:
    # The controller publishes the emptied queue itself
    await ctx.controller.clear_all()
    return ActionResult()


async def handle_snapshot(ctx: WsQueueContext, payload: dict) -> ActionResult:
    return ActionResult(reply={
        "type": "queue",
        "items": ctx.controller.snapshot(),
        "counts": ctx.controller.counts(),
    })
