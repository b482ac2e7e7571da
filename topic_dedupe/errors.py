"""Dedupe-specific error types.

Over-releasing a topic is deliberately not an error: it is clamped and
reported as a warning log event. Failures raised by the ``open``/``close``
callbacks are not wrapped; they reach the awaiting callers unchanged.
"""

from __future__ import annotations


class DedupeError(Exception):
    """Base class for errors raised by the dedupe registry itself."""


class ConfigurationError(DedupeError, ValueError):
    """A registry was constructed without the callbacks it needs."""

    def __init__(self, detail: str, *, missing: tuple[str, ...] = ()) -> None:
        super().__init__(detail)
        self.detail = detail
        self.missing = missing

    def to_payload(self) -> dict[str, object]:
        return {"detail": self.detail, "missing": list(self.missing)}
