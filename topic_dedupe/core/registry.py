"""Reference-counted open/close dedupe keyed by topic.

Many callers may ``acquire`` the same topic; the ``open`` callback runs once
per generation of interest and ``close`` runs once the last holder releases.
An acquire that arrives while a close is still running is queued behind that
close on the topic's :class:`OperationChain`, so the collaborator always sees
``open, close, open, close, ...`` for any one topic.

All bookkeeping happens synchronously inside ``acquire``/``release``; only
the callbacks themselves run later, on the chain's worker task.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

from topic_dedupe.config import DedupeSettings, get_settings
from topic_dedupe.errors import ConfigurationError
from topic_dedupe.logger import get_logger

from .chain import OperationChain
from .logging import OperationTimer, log_dedupe_event
from .stats import DedupeStats
from .types import (
    ClosingState,
    CloseOperation,
    Entry,
    EntrySnapshot,
    OpenOperation,
    Phase,
    Topic,
)

logger = get_logger(__name__)


class DedupeRegistry:
    """
    Deduplicate asynchronous open/close calls per topic.

    Args:
        open: ``async (topic) -> handle``, called once per generation.
        close: ``async (topic) -> None``, called once interest drops to zero.
        warn_on_excess_release: Log a warning on over-release. Defaults to
            ``settings.warn_on_excess_release``.
        settings: Settings to read defaults from. Defaults to the
            process-wide :func:`get_settings`.

    Raises:
        ConfigurationError: If ``open`` or ``close`` is missing or not callable.
    """

    def __init__(
        self,
        open: OpenOperation | None,
        close: CloseOperation | None,
        *,
        warn_on_excess_release: bool | None = None,
        settings: DedupeSettings | None = None,
    ) -> None:
        callbacks = {"open": open, "close": close}
        missing = tuple(name for name, callback in callbacks.items() if callback is None)
        if missing:
            names = ", ".join(f"'{name}'" for name in missing)
            raise ConfigurationError(f"{names} required.", missing=missing)
        for name, callback in callbacks.items():
            if not callable(callback):
                raise ConfigurationError(f"'{name}' must be callable.", missing=(name,))

        self._settings = settings or get_settings()
        self._open = open
        self._close = close
        self._warn_on_excess_release = (
            self._settings.warn_on_excess_release
            if warn_on_excess_release is None
            else warn_on_excess_release
        )
        self._entries: dict[Topic, Entry] = {}
        self._stats = DedupeStats()

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None) -> DedupeRegistry:
        """Build a registry from an options mapping with ``open``/``close`` keys."""
        if not options:
            raise ConfigurationError("'open', 'close' required.", missing=("open", "close"))
        return cls(
            options.get("open"),
            options.get("close"),
            warn_on_excess_release=options.get("warn_on_excess_release"),
        )

    @property
    def stats(self) -> DedupeStats:
        return self._stats

    @property
    def warn_on_excess_release(self) -> bool:
        return self._warn_on_excess_release

    def acquire(self, topic: Topic) -> asyncio.Future[Any]:
        """
        Register interest in ``topic``.

        Returns a future for the open result. Callers sharing a generation all
        observe the same handle (or the same failure).
        """
        entry = self._entries.get(topic)
        if entry is None:
            entry = Entry(topic=topic, chain=OperationChain(topic), ref_count=1)
            self._entries[topic] = entry
            self._submit_open(entry)
        elif entry.closing is None:
            entry.ref_count += 1
        else:
            # Reopen: the queued close must not evict the entry once it finishes.
            entry.closing.reopened = True
            entry.closing = None
            entry.ref_count = 1
            entry.excess_releases = 0
            self._stats.increment(topic=topic, dedupe_event="reopen")
            self._log_event(
                topic=topic,
                dedupe_event="reopen",
                detail=f"queued={entry.chain.queued}",
            )
            self._submit_open(entry)
        return asyncio.shield(entry.pending)

    def release(self, topic: Topic) -> asyncio.Future[Any]:
        """
        Drop one unit of interest in ``topic``.

        Returns a future that resolves once the topic reaches the state this
        release implies: fully closed for the last holder, otherwise whatever
        operation is currently pending for the topic.
        """
        entry = self._entries.get(topic)
        if entry is None:
            done: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
            done.set_result(None)
            return done

        if entry.ref_count > 1:
            entry.ref_count -= 1
        elif entry.ref_count == 1 and entry.closing is None:
            entry.ref_count = 0
            closing = ClosingState()
            entry.closing = closing
            entry.pending = entry.chain.submit(partial(self._close_operation, entry, closing))
        else:
            entry.ref_count = 0
            entry.excess_releases += 1
            self._stats.increment(topic=topic, dedupe_event="excess_release")
            if self._warn_on_excess_release:
                logger.warning(
                    "excess_release",
                    topic=topic,
                    excess=entry.excess_releases,
                    phase=entry.phase.value,
                )
        return asyncio.shield(entry.pending)

    @asynccontextmanager
    async def hold(self, topic: Topic) -> AsyncIterator[Any]:
        """Acquire ``topic`` for the duration of the block, releasing on exit."""
        acquired = self.acquire(topic)
        try:
            yield await acquired
        except BaseException as error:
            # The block's own error wins over a failing release.
            try:
                await self.release(topic)
            except Exception as release_error:
                if release_error is not error:
                    logger.warning(
                        "release_failed",
                        topic=topic,
                        error=type(release_error).__name__,
                        while_handling=type(error).__name__,
                    )
            raise
        else:
            await self.release(topic)

    def ref_count(self, topic: Topic) -> int:
        entry = self._entries.get(topic)
        return 0 if entry is None else max(0, entry.ref_count)

    def phase(self, topic: Topic) -> Phase | None:
        entry = self._entries.get(topic)
        return None if entry is None else entry.phase

    def entry_snapshot(self, topic: Topic) -> EntrySnapshot | None:
        entry = self._entries.get(topic)
        return None if entry is None else EntrySnapshot.of(entry)

    def snapshot(self) -> dict[Topic, EntrySnapshot]:
        return {topic: EntrySnapshot.of(entry) for topic, entry in self._entries.items()}

    def topics(self) -> list[Topic]:
        return list(self._entries.keys())

    def __contains__(self, topic: object) -> bool:
        return topic in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def drain(self) -> None:
        """Wait until no topic has an open or close queued or running."""
        while True:
            busy = [entry.chain for entry in self._entries.values() if entry.chain.busy]
            if not busy:
                return
            await asyncio.gather(*(chain.join() for chain in busy))

    async def __aenter__(self) -> DedupeRegistry:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.drain()

    def _log_event(self, **fields: Any) -> None:
        log_dedupe_event(settings=self._settings, **fields)

    def _submit_open(self, entry: Entry) -> None:
        entry.pending = entry.chain.submit(partial(self._open_operation, entry))

    async def _open_operation(self, entry: Entry) -> Any:
        topic = entry.topic
        timer = OperationTimer()
        self._stats.increment(topic=topic, dedupe_event="open")
        try:
            handle = await self._open(topic)
        except (Exception, asyncio.CancelledError) as exc:
            entry.open_failed = True
            self._stats.increment(topic=topic, dedupe_event="open_failed")
            self._log_event(
                topic=topic,
                dedupe_event="open_failed",
                duration_ms=timer.elapsed_ms(),
                detail=type(exc).__name__,
            )
            raise
        entry.open_failed = False
        self._log_event(topic=topic, dedupe_event="open", duration_ms=timer.elapsed_ms())
        return handle

    async def _close_operation(self, entry: Entry, closing: ClosingState) -> None:
        topic = entry.topic
        try:
            if entry.open_failed:
                # Nothing was opened this generation.
                self._stats.increment(topic=topic, dedupe_event="close_skipped")
                self._log_event(topic=topic, dedupe_event="close_skipped", detail="open_failed")
                return

            timer = OperationTimer()
            self._stats.increment(topic=topic, dedupe_event="close")
            try:
                await self._close(topic)
            except Exception as exc:
                self._stats.increment(topic=topic, dedupe_event="close_failed")
                self._log_event(
                    topic=topic,
                    dedupe_event="close_failed",
                    duration_ms=timer.elapsed_ms(),
                    detail=type(exc).__name__,
                )
                raise
            self._log_event(topic=topic, dedupe_event="close", duration_ms=timer.elapsed_ms())
        finally:
            if not closing.reopened and self._entries.get(topic) is entry:
                del self._entries[topic]
                self._log_event(topic=topic, dedupe_event="evict")
