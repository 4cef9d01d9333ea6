"""Session memory facade: ingestion, maintenance and context assembly."""

import functools
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import TypeAdapter

from convmem.config.schema import ConvmemConfig
from convmem.memory.events import (
    Clock,
    EventFactory,
    extract_metadata,
    extract_primary_content,
    utc_now,
)
from convmem.memory.heuristics import ReferenceHeuristics, ThreadHeuristics
from convmem.memory.maintenance import MaintenanceEngine
from convmem.memory.references import ReferenceResolver
from convmem.memory.schema import (
    INITIALIZATION_ACTION,
    ConversationEvent,
    EnhancedContext,
    HistoryEntry,
    MaintenanceReport,
    MemoryUsage,
    OptimizedHistory,
    Role,
    SkillContextView,
)
from convmem.memory.skills import SkillContextRegistry
from convmem.memory.store import EventStore
from convmem.memory.summary import (
    important_event_views,
    recent_event_views,
    summarize_conversation,
    summarize_session,
)
from convmem.memory.threads import ThreadAnalyzer
from convmem.prompts.catalog import PromptCatalog

logger = logging.getLogger(__name__)

_EVENT_LIST = TypeAdapter(list[ConversationEvent])

_USER_INPUT_ACTIONS = {
    "speech": "speech_transcription",
    "llm_input": "llm_input",
}


def _fail_soft(default: Any):
    """Log and absorb any exception raised by a public method.

    ``default`` is returned instead (called first when it is callable), so a
    fault in the memory engine never interrupts the conversation.
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except Exception:
                logger.exception("Session memory operation '%s' failed", fn.__name__)
                return default() if callable(default) else default

        return wrapper

    return decorator


def _text_length(text: Any) -> int:
    return len(text) if isinstance(text, str) else 0


def _with_metadata(metadata: Any, **extra: Any) -> dict[str, Any]:
    if metadata is not None and not isinstance(metadata, Mapping):
        logger.warning("Ignoring non-mapping metadata of type %s", type(metadata).__name__)
        metadata = None
    return {**(metadata or {}), **extra}


class SessionMemory:
    """Single in-process conversation log for one assistant session.

    Build one instance at application startup and pass it to every component
    that records or reads conversation state. Calls must be serialized by the
    host; no method blocks or is safe to run concurrently with another.
    """

    def __init__(
        self,
        catalog: PromptCatalog,
        config: ConvmemConfig | None = None,
        clock: Clock | None = None,
        thread_heuristics: ThreadHeuristics | None = None,
        reference_heuristics: ReferenceHeuristics | None = None,
    ):
        """Initialize session memory and seed it with skill prompts.

        Args:
            catalog: Prompt catalog used to seed one initialization event per skill
            config: Configuration (defaults if None)
            clock: Time source for event timestamps and maintenance ages
            thread_heuristics: Custom continuation signals for thread analysis
            reference_heuristics: Custom reference phrases for context resolution
        """
        self.config = config or ConvmemConfig()
        self.catalog = catalog
        self.clock = clock or utc_now

        self.store = EventStore()
        self.factory = EventFactory(self.clock)
        self.maintenance = MaintenanceEngine.from_config(
            self.config.session, self.config.maintenance, clock=self.clock
        )
        self.skill_registry = SkillContextRegistry()
        self.thread_analyzer = ThreadAnalyzer(thread_heuristics)
        self.reference_resolver = ReferenceResolver(reference_heuristics)

        self._active_skill = self.config.session.default_skill
        self._initialized = False
        self.last_maintenance: MaintenanceReport | None = None

        self.initialize_with_skill_prompts()

    @property
    def active_skill(self) -> str:
        return self._active_skill

    @property
    def is_initialized(self) -> bool:
        """True once skill prompts have been seeded successfully."""
        return self._initialized

    def initialize_with_skill_prompts(self) -> bool:
        """Seed the log with one initialization event per catalog skill.

        Does nothing when already initialized. Catalog failures and empty
        catalogs are logged; the store stays usable without seeds.

        Returns:
            True if the store is seeded
        """
        if self._initialized:
            return True

        try:
            contexts = self.skill_registry.seed(self.catalog)
        except Exception as e:
            logger.error("Failed to initialize session memory with skill prompts: %s", e)
            return False

        if not contexts:
            logger.error("Prompt catalog returned no skills; session memory is not seeded")
            return False

        for context in contexts:
            event = self.factory.create(
                role=Role.SYSTEM,
                content=context.initializing_prompt,
                skill=context.skill_name,
                action=INITIALIZATION_ACTION,
                metadata={"is_initialization": True, "skill_name": context.skill_name},
            )
            self.store.append(event)

        self._initialized = True
        logger.info(
            "Session memory initialized with %d skill prompts (%d events)",
            len(contexts),
            self.store.size(),
        )
        return True

    # Ingestion

    def _record(
        self,
        role: Any,
        content: Any,
        action: Any = None,
        metadata: Any = None,
        primary_content: str | None = None,
    ) -> str:
        event = self.factory.create(
            role=role,
            content=content,
            skill=self._active_skill,
            action=action,
            metadata=metadata,
            primary_content=primary_content,
        )
        stored = self.store.append(event)
        logger.debug(
            "Conversation event added: role=%s action=%s skill=%s length=%d total=%d",
            stored.role.value,
            stored.action,
            stored.skill,
            len(stored.content),
            self.store.size(),
        )

        try:
            report = self.maintenance.run_if_needed(self.store)
        except Exception:
            logger.exception("Session memory maintenance failed")
        else:
            if report is not None:
                self.last_maintenance = report

        return stored.id

    @_fail_soft("")
    def add_conversation_event(
        self,
        role: Any,
        content: Any,
        action: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str:
        """Record an event under the active skill.

        Args:
            role: ``user``, ``model`` or ``system``
            content: Event text
            action: Action label (inferred from the role when None)
            metadata: Extra attributes

        Returns:
            Event id
        """
        return self._record(role, content, action=action, metadata=metadata)

    @_fail_soft("")
    def add_user_input(self, text: str, source: str = "chat") -> str:
        """Record typed, spoken or forwarded user input.

        Args:
            text: User text
            source: ``chat``, ``speech`` or ``llm_input``

        Returns:
            Event id
        """
        if not isinstance(source, str):
            logger.warning("Invalid input source %r, treating as chat", source)
            source = "chat"

        return self._record(
            Role.USER,
            text,
            action=_USER_INPUT_ACTIONS.get(source, "chat_input"),
            metadata={"source": source, "text_length": _text_length(text)},
        )

    @_fail_soft("")
    def add_model_response(self, text: str, metadata: Mapping[str, Any] | None = None) -> str:
        """Record an LLM response.

        Args:
            text: Response text
            metadata: Extra attributes (processing time, fallback flags, ...)

        Returns:
            Event id
        """
        return self._record(
            Role.MODEL,
            text,
            action="llm_response",
            metadata=_with_metadata(metadata, response_length=_text_length(text)),
        )

    @_fail_soft("")
    def add_ocr_event(self, text: str, metadata: Mapping[str, Any] | None = None) -> str:
        """Record text extracted from a screenshot."""
        return self._record(
            Role.USER,
            text,
            action="ocr_extraction",
            metadata=_with_metadata(metadata, source="screenshot", text_length=_text_length(text)),
        )

    @_fail_soft("")
    def add_event(self, action: str, details: Mapping[str, Any] | None = None) -> str:
        """Record a generic application event (e.g. "Application started").

        Args:
            action: Event label
            details: Optional details; ``text``/``response``/``preview`` become the
                primary content, known numeric fields become metadata

        Returns:
            Event id
        """
        details = details if isinstance(details, Mapping) else {}
        primary = extract_primary_content(details)
        return self._record(
            Role.SYSTEM,
            primary or "",
            action=action,
            metadata=extract_metadata(details),
            primary_content=primary,
        )

    @_fail_soft(None)
    def set_active_skill(self, skill: str) -> None:
        """Switch the active skill and record the transition."""
        if not isinstance(skill, str) or not skill:
            logger.warning("Ignoring invalid skill %r", skill)
            return

        previous = self._active_skill
        self._active_skill = skill
        self._record(
            Role.SYSTEM,
            f"Switched to {skill} mode",
            action="skill_change",
            metadata={"previous_skill": previous, "new_skill": skill},
        )
        logger.info("Active skill changed from %s to %s", previous, skill)

    @_fail_soft(None)
    def clear(self) -> None:
        """Wipe the log and re-seed it from the prompt catalog."""
        count = self.store.clear()
        self.skill_registry.clear()
        self._initialized = False
        self.last_maintenance = None
        logger.info("Session memory cleared (%d events)", count)
        self.initialize_with_skill_prompts()

    # Retrieval

    def _conversation_events(self) -> tuple[ConversationEvent, ...]:
        return tuple(event for event in self.store.all() if not event.is_initialization)

    @_fail_soft(list)
    def get_conversation_history(self, max_entries: int = 20) -> list[HistoryEntry]:
        """Last ``max_entries`` non-initialization events in append order."""
        if max_entries <= 0:
            return []
        events = self._conversation_events()[-max_entries:]
        return [HistoryEntry.from_event(event) for event in events]

    @_fail_soft(list)
    def get_full_conversation_history(self) -> list[HistoryEntry]:
        """Every non-initialization event in append order."""
        return [HistoryEntry.from_event(event) for event in self._conversation_events()]

    @_fail_soft(EnhancedContext)
    def get_enhanced_conversation_context(self, max_entries: int = 15) -> EnhancedContext:
        """Recent window plus the earlier exchanges that recent inputs refer to.

        The two sets are merged without duplicates and sorted by time;
        entries pulled in by reference resolution are flagged
        ``is_contextual``. The bundle also carries a lexical summary and the
        thread segmentation of the merged window.

        Args:
            max_entries: Size of the recent window

        Returns:
            Enhanced context bundle
        """
        events = self._conversation_events()
        recent = events[-max_entries:] if max_entries > 0 else ()
        contextual = self.reference_resolver.resolve(events)
        contextual_ids = {event.id for event in contextual}

        merged: dict[str, ConversationEvent] = {}
        for event in (*contextual, *recent):
            merged.setdefault(event.id, event)
        relevant = sorted(merged.values(), key=lambda e: (e.timestamp, e.sequence))

        return EnhancedContext(
            conversation=[
                HistoryEntry.from_event(event, is_contextual=event.id in contextual_ids)
                for event in relevant
            ],
            summary=summarize_conversation(relevant),
            thread_info=self.thread_analyzer.analyze(relevant),
        )

    def _requires_language(self, skill: str) -> bool:
        try:
            return bool(self.catalog.requires_programming_language(skill))
        except Exception:
            logger.warning("Prompt catalog failed language check for %s", skill, exc_info=True)
            return False

    @_fail_soft(lambda: SkillContextView(current_skill=""))
    def get_skill_context(
        self,
        skill_name: str | None = None,
        programming_language: str | None = None,
    ) -> SkillContextView:
        """Prompt and recent events for a skill.

        Args:
            skill_name: Target skill (defaults to the active skill)
            programming_language: Language to specialise the prompt for, used only
                when the skill requires one

        Returns:
            Skill prompt, last 10 events of the skill and language flags
        """
        target = skill_name or self._active_skill
        requires_language = self._requires_language(target)

        if programming_language and requires_language:
            prompt = self.catalog.get_skill_prompt(target, programming_language)
        else:
            context = self.skill_registry.get(target)
            prompt = context.initializing_prompt if context else None

        skill_events = [
            event
            for event in self.store.all()
            if event.skill == target and not event.is_initialization
        ][-10:]

        return SkillContextView(
            skill_prompt=prompt,
            recent_events=skill_events,
            current_skill=target,
            programming_language=programming_language,
            requires_programming_language=requires_language,
        )

    @_fail_soft(OptimizedHistory)
    def get_optimized_history(self) -> OptimizedHistory:
        """Compact history bundle: recent events, important events and session stats."""
        events = self.store.all()
        return OptimizedHistory(
            recent=recent_event_views(events, 10),
            important=important_event_views(events, 5),
            summary=summarize_session(events),
            total_events=len(events),
        )

    @_fail_soft(MemoryUsage)
    def get_memory_usage(self) -> MemoryUsage:
        """Event count, serialized size and utilization of ``max_memory_size``.

        Metadata values that have no JSON form are sized by their ``str()``.
        """
        events = list(self.store.all())
        size_bytes = len(_EVENT_LIST.dump_json(events, fallback=str))
        return MemoryUsage(
            event_count=len(events),
            approximate_size=f"{size_bytes / 1024:.2f} KB",
            utilization_percent=round(len(events) / self.maintenance.max_memory_size * 100),
        )
