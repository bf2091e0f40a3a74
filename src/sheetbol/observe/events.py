"""NDJSON lifecycle events and request timing."""

from __future__ import annotations

import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, TextIO

import orjson


class Timer:
    """Context-manager stopwatch; ``elapsed_ms`` is readable inside the block too."""

    def __init__(self) -> None:
        self._started: float | None = None
        self._stopped: float | None = None

    def __enter__(self) -> "Timer":
        self._started = time.perf_counter()
        self._stopped = None
        return self

    def __exit__(self, *args: Any) -> None:
        self._stopped = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        if self._started is None:
            return 0
        end = self._stopped if self._stopped is not None else time.perf_counter()
        return int((end - self._started) * 1000)


class EventEmitter:
    """Writes one JSON object per line for each pipeline lifecycle event.

    Events go to stderr unless a stream is given, so stdout stays reserved
    for the response envelope. Every event carries the emitter's
    ``request_id``; the stdio server creates one emitter per request.
    """

    def __init__(
        self,
        enabled: bool = False,
        stream: TextIO | None = None,
        *,
        request_id: str | None = None,
    ) -> None:
        self.enabled = enabled
        self.request_id = request_id or uuid.uuid4().hex[:12]
        self._stream = stream

    def emit(self, event: str, data: dict[str, Any] | None = None) -> None:
        if not self.enabled:
            return
        line = orjson.dumps(
            {
                "event": event,
                "request_id": self.request_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "data": data or {},
            },
            default=str,
        )
        stream = self._stream or sys.stderr
        stream.write(line.decode() + "\n")
        stream.flush()
