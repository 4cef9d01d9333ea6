"""Event construction: ids, categories, synopses and input validation."""

import itertools
import logging
import secrets
import string
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from convmem.memory.schema import ConversationEvent, EventCategory, Role

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_BASE36 = string.digits + string.ascii_lowercase
_SEQUENCE = itertools.count()

# Action substrings checked in order; first hit wins
_CATEGORY_RULES: list[tuple[tuple[str, ...], EventCategory]] = [
    (("screenshot", "ocr"), EventCategory.CAPTURE),
    (("speech", "transcription"), EventCategory.SPEECH),
    (("llm", "gemini"), EventCategory.LLM),
    (("skill", "switch"), EventCategory.NAVIGATION),
]

_DEFAULT_ACTIONS = {
    Role.USER: "user_message",
    Role.MODEL: "model_response",
    Role.SYSTEM: "system_message",
}

METADATA_DETAIL_FIELDS = ("skill", "duration", "size", "text_length", "processing_time")


def utc_now() -> datetime:
    return datetime.now(UTC)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_event_id(now: datetime | None = None) -> str:
    """Generate a process-unique event id.

    Format is ``<epoch-ms>-<9 base36 chars>``. The suffix mixes a process-wide
    counter with random characters, so two ids never collide even when minted
    in the same millisecond.

    Args:
        now: Timestamp to derive the prefix from (defaults to current time)

    Returns:
        Event id string
    """
    now = now or utc_now()
    millis = int(now.timestamp() * 1000)
    counter = _to_base36(next(_SEQUENCE))[-5:].rjust(5, "0")
    noise = "".join(secrets.choice(_BASE36) for _ in range(9 - len(counter)))
    return f"{millis}-{noise}{counter}"


def categorize_action(action: str | None) -> EventCategory:
    """Map an action label onto its event category."""
    action_lower = (action or "").lower()
    for needles, category in _CATEGORY_RULES:
        if any(needle in action_lower for needle in needles):
            return category
    return EventCategory.SYSTEM


def infer_action_from_role(role: Role | str) -> str:
    try:
        return _DEFAULT_ACTIONS[Role(role)]
    except (TypeError, ValueError):
        return "unknown"


def _preview(content: str) -> str:
    return f'"{content[:50]}..."'


def generate_context_summary(
    action: str,
    role: Role,
    content: str,
    skill: str,
    metadata: Mapping[str, Any],
) -> str:
    """Build the one-line synopsis stored with an event.

    Args:
        action: Event action label
        role: Event role
        content: Event content (already validated)
        skill: Skill active when the event was created
        metadata: Event metadata, used for lengths and skill transitions

    Returns:
        Human readable synopsis
    """
    length = metadata.get("response_length") or metadata.get("content_length", len(content))

    match action:
        case "speech_transcription":
            return f"User spoke: {_preview(content)} ({skill} mode)"
        case "chat_input":
            return f"User typed: {_preview(content)} ({skill} mode)"
        case "llm_response":
            return f"AI responded in {skill} mode ({length} chars)"
        case "ocr_extraction":
            extracted = metadata.get("text_length") or metadata.get("content_length", len(content))
            return f"Screenshot text extracted: {extracted} characters ({skill} mode)"
        case "skill_change":
            return (
                f"Switched from {metadata.get('previous_skill')} "
                f"to {metadata.get('new_skill')} mode"
            )
        case "skill_prompt_initialization":
            return f"{skill} skill prompt loaded for context"
        case "user_message":
            return f"User: {_preview(content)} ({skill})"
        case "model_response":
            return f"Model: Response in {skill} mode ({len(content)} chars)"

    if role == Role.USER:
        return f"User input in {skill} mode"
    if role == Role.MODEL:
        return f"Model response in {skill} mode"
    return action or "Unknown action"


def extract_primary_content(details: Mapping[str, Any]) -> str | None:
    """Pick a short preview out of generic event details."""
    text = details.get("text")
    if isinstance(text, str):
        return text[:200]
    response = details.get("response")
    if isinstance(response, str):
        return response[:200]
    preview = details.get("preview")
    if isinstance(preview, str):
        return preview
    return None


def extract_metadata(details: Mapping[str, Any]) -> dict[str, Any]:
    return {key: details[key] for key in METADATA_DETAIL_FIELDS if details.get(key) is not None}


class EventFactory:
    """Creates validated :class:`ConversationEvent` records.

    Never raises on malformed arguments: bad values are replaced with safe
    defaults and a warning is logged.
    """

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or utc_now

    def create(
        self,
        role: Any,
        content: Any,
        skill: str,
        action: Any = None,
        metadata: Any = None,
        primary_content: str | None = None,
    ) -> ConversationEvent:
        """Create an event stamped with the current clock time.

        Args:
            role: ``user``, ``model`` or ``system`` (anything else becomes ``system``)
            content: Text payload; ``None`` becomes ``""``, other types are stringified
            skill: Skill tag for the event
            action: Action label; inferred from the role when missing
            metadata: Extra attributes; ignored when not a mapping
            primary_content: Optional short preview for generic events

        Returns:
            New event (``sequence`` is assigned later by the store)
        """
        role = self._validate_role(role)
        content = self._validate_content(content, role)

        if not isinstance(action, str) or not action:
            if action is not None:
                logger.warning("Ignoring non-string action %r; inferring from role", action)
            action = infer_action_from_role(role)

        if metadata is None:
            metadata = {}
        elif not isinstance(metadata, Mapping):
            logger.warning("Ignoring non-mapping metadata of type %s", type(metadata).__name__)
            metadata = {}

        if not isinstance(skill, str) or not skill:
            logger.warning("Invalid skill %r, falling back to 'general'", skill)
            skill = "general"

        event_metadata = {**metadata, "content_length": len(content)}
        now = self.clock()

        try:
            summary = generate_context_summary(action, role, content, skill, event_metadata)
        except Exception:
            logger.warning("Failed to build context summary for %s", action, exc_info=True)
            summary = action

        return ConversationEvent(
            id=generate_event_id(now),
            timestamp=now,
            role=role,
            content=content,
            primary_content=primary_content,
            skill=skill,
            action=action,
            category=categorize_action(action),
            metadata=event_metadata,
            context_summary=summary,
        )

    @staticmethod
    def _validate_role(role: Any) -> Role:
        try:
            return Role(role)
        except (TypeError, ValueError):
            logger.warning("Unknown event role %r, storing as system", role)
            return Role.SYSTEM

    @staticmethod
    def _validate_content(content: Any, role: Role) -> str:
        if content is None:
            logger.warning("Missing content for %s event, using empty string", role.value)
            return ""
        if not isinstance(content, str):
            logger.warning(
                "Non-string content (%s) for %s event, converting",
                type(content).__name__,
                role.value,
            )
            return str(content)
        return content
