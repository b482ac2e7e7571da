from __future__ import annotations

import time

from topic_dedupe.config import DedupeSettings, get_settings
from topic_dedupe.logger import get_logger

logger = get_logger(__name__)


class OperationTimer:
    def __init__(self) -> None:
        self._start = time.perf_counter()

    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000.0


def log_dedupe_event(
    *,
    topic: str,
    dedupe_event: str,
    duration_ms: float | None = None,
    detail: str | None = None,
    settings: DedupeSettings | None = None,
) -> None:
    # NOTE: structlog uses `event` as the message positional arg.
    # Never pass `event=` as a kwarg to logger.* calls.
    if not (settings or get_settings()).log_operations:
        return
    payload: dict[str, object] = {"topic": topic, "dedupe_event": dedupe_event}
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 3)
    if detail is not None:
        payload["detail"] = detail
    if dedupe_event.endswith("_failed"):
        logger.error("dedupe", **payload)
    else:
        logger.info("dedupe", **payload)
