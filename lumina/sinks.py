from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

import redis

from lumina.core.events import EventType, SessionEvent
from lumina.streams import SessionStream, publish_to_stream
from lumina.websocket_hub import SessionWebSocketHub

logger = logging.getLogger(__name__)


class PresentationSink(Protocol):
    def emit(self, event: SessionEvent) -> None:  # pragma: no cover
        ...


@dataclass(slots=True)
class RecordingSink:
    """Keeps every event in memory; handy for tests and debugging."""

    events: list[SessionEvent] = field(default_factory=list)

    def emit(self, event: SessionEvent) -> None:
        self.events.append(event)

    def types(self) -> list[EventType]:
        return [e.type for e in self.events]

    def of_type(self, type: EventType) -> list[SessionEvent]:
        return [e for e in self.events if e.type == type]


@dataclass(slots=True)
class RedisStreamSink:
    r: redis.Redis

    def emit(self, event: SessionEvent) -> None:
        try:
            publish_to_stream(r=self.r, stream=SessionStream(event.session_id), fields=event.as_fields())
        except redis.RedisError as e:
            logger.warning("Failed to publish %s for session %s: %s", event.type, event.session_id, e)


@dataclass(slots=True)
class HubSink:
    """Broadcasts events to the session's WebSocket clients without blocking the caller."""

    hub: SessionWebSocketHub
    _pending: set[asyncio.Task[int]] = field(default_factory=set)

    def emit(self, event: SessionEvent) -> None:
        if self.hub.connection_count(event.session_id) == 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        payload: dict[str, object] = {
            "type": event.type,
            "session_id": event.session_id,
            "payload": event.payload,
            "ts": event.ts.isoformat(),
        }
        task = loop.create_task(self.hub.broadcast(event.session_id, payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)


@dataclass(slots=True)
class FanoutSink:
    sinks: list[PresentationSink] = field(default_factory=list)

    def emit(self, event: SessionEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)
