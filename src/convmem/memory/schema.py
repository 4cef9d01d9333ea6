"""Pydantic models for the conversation memory engine."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    """Who produced an event."""

    USER = "user"
    MODEL = "model"
    SYSTEM = "system"


class EventCategory(StrEnum):
    """Coarse event family derived from the action label."""

    CAPTURE = "capture"
    SPEECH = "speech"
    LLM = "llm"
    NAVIGATION = "navigation"
    SYSTEM = "system"


INITIALIZATION_ACTION = "skill_prompt_initialization"


class ConversationEvent(BaseModel):
    """A single record in the session log.

    Events are frozen. Maintenance rewrites them with ``model_copy(update=...)``
    so snapshots already handed to readers keep their original values.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    sequence: int = 0  # Assigned by the store on append
    timestamp: datetime
    role: Role
    content: str = ""
    primary_content: str | None = None
    skill: str
    action: str
    category: EventCategory
    metadata: dict[str, Any] = Field(default_factory=dict)
    context_summary: str = ""

    @property
    def is_initialization(self) -> bool:
        """True for the per-skill prompt events seeded at startup."""
        return bool(self.metadata.get("is_initialization"))

    @property
    def is_consolidated(self) -> bool:
        return bool(self.metadata.get("consolidated_count"))

    @property
    def is_compressed(self) -> bool:
        return bool(self.metadata.get("compressed"))


class SkillContext(BaseModel):
    """Initializing prompt for one skill."""

    model_config = ConfigDict(frozen=True)

    skill_name: str
    initializing_prompt: str


class TimeSpan(BaseModel):
    """Start and end of a run of events."""

    start: datetime
    end: datetime


class HistoryEntry(BaseModel):
    """Projection of an event handed to the LLM orchestrator."""

    id: str
    role: Role
    content: str
    timestamp: datetime
    skill: str
    action: str
    is_contextual: bool = False

    @classmethod
    def from_event(cls, event: ConversationEvent, is_contextual: bool = False) -> "HistoryEntry":
        return cls(
            id=event.id,
            role=event.role,
            content=event.content,
            timestamp=event.timestamp,
            skill=event.skill,
            action=event.action,
            is_contextual=is_contextual,
        )


class ConversationThread(BaseModel):
    """A derived run of topically related events. Never stored."""

    id: str
    topic: str
    skill: str
    events: list[ConversationEvent] = Field(default_factory=list)
    start_time: datetime
    end_time: datetime


class ThreadInfo(BaseModel):
    """Thread segmentation of a window of events."""

    threads: list[ConversationThread] = Field(default_factory=list)
    current_thread: ConversationThread | None = None
    thread_count: int = 0


class ConversationSummary(BaseModel):
    """Cheap lexical summary of a window of events."""

    topics: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    has_code: bool = False
    has_image_analysis: bool = False
    event_count: int = 0
    time_span: TimeSpan | None = None


class EnhancedContext(BaseModel):
    """Recent window plus referenced exchanges, with summary and threads."""

    conversation: list[HistoryEntry] = Field(default_factory=list)
    summary: ConversationSummary = Field(default_factory=ConversationSummary)
    thread_info: ThreadInfo = Field(default_factory=ThreadInfo)


class SkillContextView(BaseModel):
    """Prompt and recent events for one skill."""

    skill_prompt: str | None = None
    recent_events: list[ConversationEvent] = Field(default_factory=list)
    current_skill: str
    programming_language: str | None = None
    requires_programming_language: bool = False


class RecentEventView(BaseModel):
    timestamp: datetime
    action: str
    category: EventCategory
    summary: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class ImportantEventView(BaseModel):
    timestamp: datetime
    category: EventCategory
    summary: str
    content: str | None = None


class SessionDuration(BaseModel):
    start: datetime
    end: datetime
    duration_ms: int


class SkillActivity(BaseModel):
    skill: str
    count: int


class SessionSummary(BaseModel):
    """Whole-session statistics used by :class:`OptimizedHistory`."""

    duration: SessionDuration | None = None
    activities: dict[str, int] = Field(default_factory=dict)
    focus: list[SkillActivity] = Field(default_factory=list)
    event_count: int = 0


class OptimizedHistory(BaseModel):
    """Compact history bundle sent along with LLM requests."""

    recent: list[RecentEventView] = Field(default_factory=list)
    important: list[ImportantEventView] = Field(default_factory=list)
    summary: SessionSummary = Field(default_factory=SessionSummary)
    total_events: int = 0


class MemoryUsage(BaseModel):
    event_count: int = 0
    approximate_size: str = "0.00 KB"
    utilization_percent: int = 0


class MaintenanceReport(BaseModel):
    """Outcome of one maintenance pass."""

    kind: str  # "hard" or "compression"
    before_count: int
    after_count: int
    evicted: int = 0
    consolidated_groups: int = 0
    compressed: int = 0
