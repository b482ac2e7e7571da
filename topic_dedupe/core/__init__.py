from .chain import OperationChain
from .registry import DedupeRegistry
from .stats import DedupeStats, diff
from .types import ClosingState, CloseOperation, EntrySnapshot, OpenOperation, Phase, Topic

__all__ = [
    "ClosingState",
    "CloseOperation",
    "DedupeRegistry",
    "DedupeStats",
    "EntrySnapshot",
    "OpenOperation",
    "OperationChain",
    "Phase",
    "Topic",
    "diff",
]
