"""Versioned, append-only event arena."""

import logging
from collections.abc import Iterable, Iterator

from convmem.memory.schema import ConversationEvent

logger = logging.getLogger(__name__)


class EventStore:
    """Ordered container of events keyed by a monotonic sequence number.

    Readers receive tuple snapshots, never the live mapping, so a reader that
    is iterating while maintenance runs keeps a consistent view. Compaction
    builds a replacement mapping and swaps it in with a single assignment,
    bumping :attr:`version`.

    Sequence numbers are never reused, including across :meth:`clear`.
    """

    def __init__(self) -> None:
        self._entries: dict[int, ConversationEvent] = {}
        self._next_sequence = 1
        self._version = 0

    @property
    def version(self) -> int:
        """Incremented on every mutation."""
        return self._version

    def append(self, event: ConversationEvent) -> ConversationEvent:
        """Store an event, assigning its sequence number.

        Timestamps are kept non-decreasing: an event stamped earlier than the
        newest stored event is moved up to that event's timestamp.

        Args:
            event: Event to store

        Returns:
            The stored event (with ``sequence`` set)
        """
        update: dict = {"sequence": self._next_sequence}
        last = self.last()
        if last is not None and event.timestamp < last.timestamp:
            logger.debug(
                "Clamping out-of-order timestamp %s to %s", event.timestamp, last.timestamp
            )
            update["timestamp"] = last.timestamp

        stored = event.model_copy(update=update)
        self._entries[stored.sequence] = stored
        self._next_sequence += 1
        self._version += 1
        return stored

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConversationEvent]:
        return iter(self.all())

    def all(self) -> tuple[ConversationEvent, ...]:
        """Snapshot of every event in append order."""
        return tuple(self._entries.values())

    def entries(self) -> tuple[tuple[int, ConversationEvent], ...]:
        """Snapshot of ``(sequence, event)`` pairs in append order."""
        return tuple(self._entries.items())

    def slice_tail(self, n: int) -> tuple[ConversationEvent, ...]:
        """Snapshot of the last ``n`` events (empty for ``n <= 0``)."""
        if n <= 0:
            return ()
        return self.all()[-n:]

    def last(self) -> ConversationEvent | None:
        if not self._entries:
            return None
        return next(reversed(self._entries.values()))

    def replace_all(self, entries: Iterable[ConversationEvent]) -> None:
        """Atomically replace the contents of the store.

        Events keep the sequence number they carry, so retained events stay
        addressable under the same key. The iteration order of ``entries`` becomes
        the new append order.

        Args:
            entries: Events to keep, in order
        """
        replacement: dict[int, ConversationEvent] = {}
        for event in entries:
            if event.sequence in replacement:
                raise ValueError(f"Duplicate sequence {event.sequence} in replacement")
            replacement[event.sequence] = event
        self._entries = replacement
        self._version += 1

    def clear(self) -> int:
        """Drop every event.

        Returns:
            Number of events removed
        """
        count = len(self._entries)
        self._entries = {}
        self._version += 1
        return count
