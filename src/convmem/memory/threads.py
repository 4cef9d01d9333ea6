"""Segmentation of a conversation window into topic threads."""

import re
from collections.abc import Sequence

from convmem.memory.heuristics import ThreadHeuristics
from convmem.memory.schema import ConversationEvent, ConversationThread, Role, ThreadInfo

_TOPIC_STOP_WORDS = frozenset({"the", "and", "but", "for", "are", "this", "that", "with", "from"})

MAX_RETURNED_THREADS = 3


def extract_topic(content: str) -> str:
    """Return the first two meaningful words of ``content``, or ``general``."""
    words = [
        word
        for word in re.split(r"\s+", content.lower())
        if len(word) > 3 and word not in _TOPIC_STOP_WORDS
    ][:2]
    return " ".join(words) or "general"


class ThreadAnalyzer:
    """Groups user/model exchanges into threads using timing and lexical cues."""

    def __init__(self, heuristics: ThreadHeuristics | None = None):
        self.heuristics = heuristics or ThreadHeuristics()

    def analyze(self, events: Sequence[ConversationEvent]) -> ThreadInfo:
        """Segment ``events`` into threads.

        Args:
            events: Ordered window of non-initialization events

        Returns:
            The last three threads, the open thread and the total count
        """
        threads: list[ConversationThread] = []
        current: ConversationThread | None = None

        for event in events:
            if event.role == Role.USER:
                if current is None or self.is_new_topic(event, current):
                    current = self._open_thread(event)
                    threads.append(current)
                else:
                    current.events.append(event)
                    current.end_time = event.timestamp
            elif event.role == Role.MODEL and current is not None:
                current.events.append(event)
                current.end_time = event.timestamp

        return ThreadInfo(
            threads=threads[-MAX_RETURNED_THREADS:],
            current_thread=current,
            thread_count=len(threads),
        )

    def is_new_topic(self, event: ConversationEvent, thread: ConversationThread) -> bool:
        """Decide whether a user event starts a new thread.

        The event continues ``thread`` only when it has the same skill, arrives
        within the gap limit of the thread's previous user input, and reads as
        a short follow-up.
        """
        previous = next((e for e in reversed(thread.events) if e.role == Role.USER), None)
        if previous is None:
            return True

        if event.skill != thread.skill:
            return True

        gap = (event.timestamp - previous.timestamp).total_seconds()
        if gap >= self.heuristics.max_gap_seconds:
            return True

        return not self.heuristics.is_followup(event.content.lower())

    @staticmethod
    def _open_thread(event: ConversationEvent) -> ConversationThread:
        return ConversationThread(
            id=event.id,
            topic=extract_topic(event.content),
            skill=event.skill,
            events=[event],
            start_time=event.timestamp,
            end_time=event.timestamp,
        )
