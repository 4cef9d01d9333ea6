"""Keyword heuristics used by thread segmentation and reference resolution.

Each matcher is a small strategy object with a ``matches(text)`` method, so
the phrase sets can be swapped or tuned without touching the analyzers.
Matching is case-insensitive and respects word boundaries ("and" does not
match "understand").
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import ClassVar, Protocol


class TextPredicate(Protocol):
    """Anything that can decide whether a piece of text matches."""

    def matches(self, text: str) -> bool: ...


def _phrase_pattern(phrase: str) -> str:
    words = phrase.lower().split()
    return r"\b" + r"\s+".join(re.escape(word) for word in words) + r"\b"


class PhraseMatcher:
    """Matches when any phrase occurs anywhere in the text."""

    def __init__(self, phrases: Iterable[str]):
        self.phrases = tuple(p for p in phrases if p and p.strip())
        if self.phrases:
            self._pattern: re.Pattern[str] | None = re.compile(
                "|".join(_phrase_pattern(p) for p in self.phrases), re.IGNORECASE
            )
        else:
            self._pattern = None

    def matches(self, text: str) -> bool:
        if not self._pattern or not text:
            return False
        return self._pattern.search(text) is not None

    def __repr__(self) -> str:
        return f"{type(self).__name__}({list(self.phrases)!r})"


class LeadingWordMatcher(PhraseMatcher):
    """Matches when the text starts with one of the words."""

    def matches(self, text: str) -> bool:
        if not self._pattern or not text:
            return False
        return self._pattern.match(text.lstrip()) is not None


@dataclass
class ThreadHeuristics:
    """Signals that a user input continues the current thread."""

    CONTINUATION_PHRASES: ClassVar[list[str]] = [
        "also",
        "and",
        "but",
        "however",
        "what about",
        "how about",
    ]
    REFERENCE_WORDS: ClassVar[list[str]] = ["it", "this", "that", "they", "these", "those"]
    FOLLOWUP_PHRASES: ClassVar[list[str]] = ["why", "how", "what if", "can you", "could you"]

    continuation: TextPredicate = field(
        default_factory=lambda: PhraseMatcher(ThreadHeuristics.CONTINUATION_PHRASES)
    )
    reference: TextPredicate = field(
        default_factory=lambda: LeadingWordMatcher(ThreadHeuristics.REFERENCE_WORDS)
    )
    followup: TextPredicate = field(
        default_factory=lambda: PhraseMatcher(ThreadHeuristics.FOLLOWUP_PHRASES)
    )
    max_followup_length: int = 50
    max_gap_seconds: float = 5 * 60

    def is_followup(self, text: str) -> bool:
        """True when short text carries any continuation signal."""
        if len(text) >= self.max_followup_length:
            return False
        return (
            self.continuation.matches(text)
            or self.reference.matches(text)
            or self.followup.matches(text)
        )


@dataclass
class ReferenceHeuristics:
    """Signals that a user input refers back to an earlier answer."""

    REFERENCE_PHRASES: ClassVar[list[str]] = [
        "you said",
        "you mentioned",
        "earlier",
        "before",
        "previous",
        "that answer",
        "your response",
        "you told me",
        "what you said",
        "from before",
        "remember when",
        "like you said",
        "as you mentioned",
    ]

    reference: TextPredicate = field(
        default_factory=lambda: PhraseMatcher(ReferenceHeuristics.REFERENCE_PHRASES)
    )
    recent_inputs: int = 5
    lookback: int = 10
