"""
Reference-counted dedupe of asynchronous open/close operations per topic.

Quick start::

    from topic_dedupe import DedupeRegistry

    registry = DedupeRegistry(open=client.subscribe, close=client.unsubscribe)

    handle = await registry.acquire("instrument:XBTUSD")  # opens
    await registry.acquire("instrument:XBTUSD")  # shares the same open
    await registry.release("instrument:XBTUSD")
    await registry.release("instrument:XBTUSD")  # closes
"""

from .config import DedupeSettings, get_settings
from .core import DedupeRegistry, DedupeStats, EntrySnapshot, OperationChain, Phase
from .errors import ConfigurationError, DedupeError
from .logger import get_logger, setup_logging

__all__ = [
    "ConfigurationError",
    "DedupeError",
    "DedupeRegistry",
    "DedupeSettings",
    "DedupeStats",
    "EntrySnapshot",
    "OperationChain",
    "Phase",
    "get_logger",
    "get_settings",
    "setup_logging",
]
