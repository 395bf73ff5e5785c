"""Per-connection shared state for WebSocket action handlers."""

from __future__ import annotations

import dataclasses
from typing import Callable, Optional

from fastapi import WebSocket

from tomekeeper.ingest.controller import QueueController


@dataclasses.dataclass
class WsQueueContext:
    """Bundles the per-connection state that action handlers need.

    Created once per WebSocket connection in ``handler.py``; every
    connection owns its own queue.
    """
    websocket: WebSocket
    controller: QueueController
    unsubscribe: Optional[Callable[[], None]] = None
    action: str = ""                # current action name
