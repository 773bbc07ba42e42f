"""Server-Sent Events framing: encode named events, decode a line stream.

Invariants:
    - format_event() output always ends with a blank line (event terminator)
    - data payloads are single-line JSON (json.dumps never emits raw newlines)
    - SSEDecoder yields an event only once its terminating blank line arrives
    - Comment lines (": ...") are keep-alives and never produce events

Design Decisions:
    - Pure encoder/decoder pair shared by the server route and the client
      connection, so both sides agree on framing without a third-party parser
    - Decoder is incremental (feed one line at a time): matches httpx aiter_lines()
"""

import json
from dataclasses import dataclass
from typing import Any

KEEPALIVE = ": keep-alive\n\n"


@dataclass(frozen=True)
class SSEEvent:
    """One decoded event. data is the JSON-decoded payload (or raw str)."""
    event: str
    data: Any


def format_event(event: str, data: Any) -> str:
    """Encode one named SSE event."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


class SSEDecoder:
    """Incremental SSE line decoder."""

    def __init__(self) -> None:
        self._event = "message"
        self._data: list[str] = []

    def feed(self, line: str) -> SSEEvent | None:
        """Feed one line (without trailing newline). Returns an event when complete."""
        line = line.rstrip("\r\n")
        if not line:
            return self._flush()
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None

    def _flush(self) -> SSEEvent | None:
        if not self._data:
            self._event = "message"
            return None
        raw = "\n".join(self._data)
        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError:
            data = raw
        event = SSEEvent(self._event, data)
        self._event = "message"
        self._data = []
        return event
