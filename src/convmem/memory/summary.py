"""Lexical summaries of event windows and of the whole session."""

import logging
import re
from collections import Counter
from collections.abc import Sequence
from typing import Any

from convmem.memory.schema import (
    ConversationEvent,
    ConversationSummary,
    EventCategory,
    ImportantEventView,
    RecentEventView,
    SessionDuration,
    SessionSummary,
    SkillActivity,
    TimeSpan,
)

logger = logging.getLogger(__name__)

_TOPIC_STOP_WORDS = frozenset({"that", "this", "with", "from", "have", "been", "will"})
_CODE_MARKERS = ("```", "function", "class")
_IMAGE_MARKERS = ("image", "screenshot")
_IMPORTANT_CATEGORIES = (EventCategory.CAPTURE, EventCategory.LLM)

MAX_TOPICS = 5
TOPIC_WORDS_PER_EVENT = 3


def summarize_conversation(events: Any) -> ConversationSummary:
    """Summarize a window of events for the LLM context bundle.

    Accepts anything; a value that is not a list or tuple, or a fault while
    scanning, yields an empty summary instead of an exception.

    Args:
        events: Ordered events

    Returns:
        Topics, skills, code/image flags, event count and time span
    """
    if not isinstance(events, (list, tuple)):
        logger.warning("Cannot summarize %s, expected a list of events", type(events).__name__)
        return ConversationSummary()

    try:
        return _summarize(events)
    except Exception:
        logger.warning("Conversation summary failed, returning empty summary", exc_info=True)
        return ConversationSummary()


def _summarize(events: Sequence[Any]) -> ConversationSummary:
    topics: dict[str, None] = {}
    skills: dict[str, None] = {}
    has_code = False
    has_image_analysis = False
    usable = [event for event in events if isinstance(event, ConversationEvent)]

    for event in usable:
        if event.skill:
            skills[event.skill] = None

        content = event.content.lower()
        if not content:
            continue

        if any(marker in content for marker in _CODE_MARKERS):
            has_code = True

        if event.action == "ocr_extraction" or any(m in content for m in _IMAGE_MARKERS):
            has_image_analysis = True

        words = [
            word
            for word in re.split(r"\s+", content)
            if len(word) > 4 and word not in _TOPIC_STOP_WORDS
        ][:TOPIC_WORDS_PER_EVENT]
        for word in words:
            topics[word] = None

    time_span = None
    if usable:
        time_span = TimeSpan(start=usable[0].timestamp, end=usable[-1].timestamp)

    return ConversationSummary(
        topics=list(topics)[:MAX_TOPICS],
        skills=list(skills),
        has_code=has_code,
        has_image_analysis=has_image_analysis,
        event_count=len(events),
        time_span=time_span,
    )


def recent_event_views(
    events: Sequence[ConversationEvent], count: int = 10
) -> list[RecentEventView]:
    return [
        RecentEventView(
            timestamp=event.timestamp,
            action=event.action,
            category=event.category,
            summary=event.context_summary,
            metadata=dict(event.metadata),
        )
        for event in events[-count:]
    ]


def important_event_views(
    events: Sequence[ConversationEvent], count: int = 5
) -> list[ImportantEventView]:
    """Latest capture and LLM events, with a 150 character content preview."""
    important = [event for event in events if event.category in _IMPORTANT_CATEGORIES]
    return [
        ImportantEventView(
            timestamp=event.timestamp,
            category=event.category,
            summary=event.context_summary,
            content=(event.primary_content or event.content)[:150] or None,
        )
        for event in important[-count:]
    ]


def summarize_session(events: Sequence[ConversationEvent]) -> SessionSummary:
    """Whole-session statistics: duration, per-category counts and top skills."""
    if not events:
        return SessionSummary()

    timestamps = [event.timestamp for event in events]
    start, end = min(timestamps), max(timestamps)
    duration = SessionDuration(
        start=start,
        end=end,
        duration_ms=int((end - start).total_seconds() * 1000),
    )

    activities = Counter(event.category.value for event in events)
    focus = Counter(event.skill for event in events if not event.is_initialization)

    return SessionSummary(
        duration=duration,
        activities=dict(activities),
        focus=[SkillActivity(skill=skill, count=count) for skill, count in focus.most_common(3)],
        event_count=len(events),
    )
