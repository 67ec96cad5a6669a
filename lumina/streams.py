from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, cast

import redis


@dataclass(frozen=True, slots=True)
class SessionStream:
    session_id: str

    @property
    def key(self) -> str:
        return f"lumina:session:{self.session_id}:events"


def publish_to_stream(*, r: redis.Redis, stream: SessionStream, fields: Mapping[str, str], maxlen: int | None = 1000) -> str:
    """Append an entry to a session's event stream, trimming old entries approximately."""

    stream_id = r.xadd(stream.key, {str(k): str(v) for k, v in fields.items()}, maxlen=maxlen, approximate=True)
    return cast(str, stream_id)


def read_stream(*, r: redis.Redis, stream: SessionStream) -> list[dict[str, str]]:
    return [cast(dict[str, str], fields) for _, fields in r.xrange(stream.key)]
