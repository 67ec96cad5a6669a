from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

EventType = Literal[
    "STATE_CHANGED",
    "COUNTDOWN_TICK",
    "CORRECT",
    "INCORRECT",
    "LIFE_LOST",
    "LIFE_BONUS",
    "CURRENCY_AWARDED",
    "GATE_OPENED",
    "BONUS",
    "GATE_FAILED",
    "CHECKPOINT_COMMITTED",
    "CHECKPOINT_RESTORED",
    "LEVEL_COMPLETE",
    "GAME_OVER",
    "DUEL_TURN",
    "DUEL_ROUND_OVER",
    "DUEL_GAME_OVER",
    "SESSION_ABORTED",
]


@dataclass(frozen=True, slots=True)
class SessionEvent:
    type: EventType
    session_id: str
    payload: dict[str, Any]
    ts: datetime

    @staticmethod
    def now(*, type: EventType, session_id: str, payload: dict[str, Any]) -> "SessionEvent":
        return SessionEvent(type=type, session_id=session_id, payload=payload, ts=datetime.now(timezone.utc))

    def as_fields(self) -> dict[str, str]:
        """Flatten into string fields for stream transports."""

        return {
            "type": self.type,
            "session_id": self.session_id,
            "payload": json.dumps(self.payload, default=str, sort_keys=True),
            "ts": self.ts.isoformat(),
        }
