"""Wall-clock timing helpers."""

from __future__ import annotations

import time
from datetime import datetime, timezone


class Timer:
    """Context timer around one query execution.

    ``started_at`` is the UTC wall-clock start; ``elapsed_ms`` is measured on
    the monotonic performance counter.
    """

    def __init__(self) -> None:
        self._start = 0.0
        self.started_at: datetime | None = None
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self.started_at = datetime.now(timezone.utc)
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
