from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)

Message = Mapping[str, Any]


class SessionWebSocketHub:
    """Per-session sets of WebSocket listeners, all living on the API event loop.

    A listener joins with `join`, optionally receiving a first message (the current
    snapshot) before any broadcast can reach it, and leaves with `leave`. Sockets that
    fail a send are pruned.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    def connection_count(self, session_id: str) -> int:
        return len(self._listeners.get(session_id, ()))

    async def join(self, session_id: str, websocket: WebSocket, *, first: Message | None = None) -> None:
        await websocket.accept()
        async with self._lock:
            if first is not None:
                await websocket.send_json(dict(first))
            self._listeners[session_id].add(websocket)

    async def leave(self, session_id: str, websocket: WebSocket) -> None:
        async with self._lock:
            self._drop(session_id, [websocket])

    def _drop(self, session_id: str, sockets: list[WebSocket]) -> None:
        listeners = self._listeners.get(session_id)
        if listeners is None:
            return
        listeners.difference_update(sockets)
        if not listeners:
            del self._listeners[session_id]

    async def broadcast(self, session_id: str, message: Message) -> int:
        """Send `message` to every listener of the session; returns how many got it."""

        async with self._lock:
            targets = list(self._listeners.get(session_id, ()))
            failed: list[WebSocket] = []
            for ws in targets:
                try:
                    await ws.send_json(dict(message))
                except Exception as e:
                    logger.debug("Dropping websocket for session %s: %s", session_id, e)
                    failed.append(ws)
            if failed:
                self._drop(session_id, failed)
        return len(targets) - len(failed)


hub = SessionWebSocketHub()
