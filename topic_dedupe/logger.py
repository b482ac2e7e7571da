"""structlog configuration for the dedupe registry."""

import logging
import os
import socket
import sys
from types import FrameType

import structlog

from topic_dedupe.config import DedupeSettings, get_settings

_ORIGIN = f"[{socket.gethostname()}:{os.getpid()}]"

# Frames from these modules are logging plumbing, never the interesting caller.
_PLUMBING = ("structlog", "logging", "topic_dedupe.logger", "topic_dedupe.core.logging")


def _caller_location(frame: FrameType | None) -> str | None:
    while frame is not None:
        if not frame.f_globals.get("__name__", "").startswith(_PLUMBING):
            owner = frame.f_locals.get("self")
            qualifier = f"{type(owner).__name__}." if owner is not None else ""
            filename = os.path.basename(frame.f_code.co_filename)
            return f"{filename}:{qualifier}{frame.f_code.co_name}:{frame.f_lineno}"
        frame = frame.f_back
    return None


def _add_caller_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Tag the event with ``file:Class.method:line`` of the code that logged it."""
    frame = sys._getframe(1)
    try:
        location = _caller_location(frame)
    finally:
        del frame
    if location is not None:
        event_dict["caller"] = location
    return event_dict


def _render_line(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> str:
    """Render ``LEVEL: [host:pid] [caller] event key=value ...``."""
    level = event_dict.pop("level", "info").upper()
    event = event_dict.pop("event", "")
    caller = event_dict.pop("caller", None)

    parts = [f"{level}:".ljust(10), _ORIGIN]
    if caller:
        parts.append(f"[{caller}]")
    parts.append(str(event))
    parts.extend(f"{key}={value}" for key, value in event_dict.items())
    return " ".join(parts)


def setup_logging(settings: DedupeSettings | None = None) -> None:
    """
    Configure structlog from ``settings`` (the process-wide settings by default).

    ``debug`` lowers the threshold to DEBUG and adds caller info to every
    line; the caller lookup walks the stack, so it stays off otherwise.
    """
    settings = settings or get_settings()

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
    ]
    if settings.debug:
        processors.append(_add_caller_info)
    processors.append(_render_line)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if settings.debug else logging.INFO
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Return a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)
