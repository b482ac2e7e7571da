from __future__ import annotations

from copy import deepcopy

# Structure: {topic: {event: count}}
type StatsSnapshot = dict[str, dict[str, int]]


class DedupeStats:
    """In-memory counters for one registry, keyed by topic then event."""

    def __init__(self) -> None:
        self._counts: StatsSnapshot = {}

    def increment(self, *, topic: str, dedupe_event: str) -> None:
        per_topic = self._counts.setdefault(topic, {})
        per_topic[dedupe_event] = per_topic.get(dedupe_event, 0) + 1

    def count(self, dedupe_event: str, *, topic: str | None = None) -> int:
        """Count of ``dedupe_event`` for one topic, or summed over all topics."""
        if topic is not None:
            return self._counts.get(topic, {}).get(dedupe_event, 0)
        return sum(events.get(dedupe_event, 0) for events in self._counts.values())

    def snapshot(self) -> StatsSnapshot:
        """Return a deep copy snapshot of current counters."""
        return deepcopy(self._counts)

    def reset(self) -> None:
        self._counts.clear()


def diff(before: StatsSnapshot, after: StatsSnapshot) -> StatsSnapshot:
    """Compute a sparse diff (after - before) omitting zeros."""

    out: StatsSnapshot = {}

    topics = set(before.keys()) | set(after.keys())
    for topic in sorted(topics):
        b = before.get(topic, {})
        a = after.get(topic, {})
        events = set(b.keys()) | set(a.keys())

        topic_delta: dict[str, int] = {}
        for ev in sorted(events):
            d = a.get(ev, 0) - b.get(ev, 0)
            if d:
                topic_delta[ev] = d

        if topic_delta:
            out[topic] = topic_delta

    return out
