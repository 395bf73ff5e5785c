"""WebSocket action dispatch table and result type."""

from __future__ import annotations

import dataclasses
from typing import Callable, Awaitable, Optional

from tomekeeper.ws.context import WsQueueContext


@dataclasses.dataclass
class ActionResult:
    """Returned by each action handler.

    ``reply`` is sent back to the client as is, when set. Progress of a
    submitted batch arrives separately through the controller listener.
    """
    reply: Optional[dict] = None


# Type alias for action handler signatures
ActionHandler = Callable[[WsQueueContext, dict], Awaitable[ActionResult]]


def get_action_dispatch() -> dict[str, ActionHandler]:
    """Build and return the action → handler dispatch table.

    Imports are deferred to avoid circular-import issues and to keep this
    module lightweight at import time.
    """
    from tomekeeper.ws.actions.submit import handle_submit
    from tomekeeper.ws.actions.selection import (
        handle_clear,
        handle_delete,
        handle_retry,
        handle_select,
        handle_select_all,
        handle_snapshot,
    )

    return {
        "submit": handle_submit,
        "select": handle_select,
        "select-all": handle_select_all,
        "retry": handle_retry,
        "delete": handle_delete,
        "clear": handle_clear,
        "snapshot": handle_snapshot,
    }
