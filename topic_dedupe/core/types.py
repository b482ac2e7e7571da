from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .chain import OperationChain

type Topic = str

type OpenOperation = Callable[[Topic], Awaitable[Any]]

type CloseOperation = Callable[[Topic], Awaitable[Any]]


class Phase(str, Enum):
    OPEN = "open"
    CLOSING = "closing"


@dataclass(slots=True)
class ClosingState:
    """Carried by one close operation; a reopen flips ``reopened`` before the close finishes."""

    reopened: bool = False


@dataclass(slots=True)
class Entry:
    topic: Topic
    chain: OperationChain
    ref_count: int = 0
    closing: ClosingState | None = None
    # Future of the most recently submitted open or close; shared by every caller.
    pending: asyncio.Future[Any] | None = field(default=None, repr=False)
    open_failed: bool = False
    excess_releases: int = 0

    @property
    def phase(self) -> Phase:
        return Phase.OPEN if self.closing is None else Phase.CLOSING


@dataclass(frozen=True, slots=True)
class EntrySnapshot:
    topic: Topic
    ref_count: int
    phase: Phase
    in_flight: bool

    @classmethod
    def of(cls, entry: Entry) -> EntrySnapshot:
        return cls(
            topic=entry.topic,
            ref_count=max(0, entry.ref_count),
            phase=entry.phase,
            in_flight=entry.chain.busy,
        )
