"""Pull earlier exchanges back into context when the user refers to them."""

import logging
from collections.abc import Sequence

from convmem.memory.heuristics import ReferenceHeuristics
from convmem.memory.schema import ConversationEvent, Role

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Finds the exchanges that recent user inputs point back to.

    For each of the most recent user inputs containing a reference phrase
    ("you said", "earlier", ...), the latest model response among the events
    just before it is selected, together with the user input that prompted
    that response.
    """

    def __init__(self, heuristics: ReferenceHeuristics | None = None):
        self.heuristics = heuristics or ReferenceHeuristics()

    def resolve(self, events: Sequence[ConversationEvent]) -> list[ConversationEvent]:
        """Return the referenced events in discovery order, without duplicates.

        Args:
            events: Full ordered list of non-initialization events

        Returns:
            Referenced model responses and their prompting user inputs
        """
        selected: list[ConversationEvent] = []
        seen: set[str] = set()
        position = {event.id: index for index, event in enumerate(events)}

        user_inputs = [event for event in events if event.role == Role.USER]
        for user_input in user_inputs[-self.heuristics.recent_inputs :]:
            if not self.heuristics.reference.matches(user_input.content):
                continue

            index = position[user_input.id]
            window = events[max(0, index - self.heuristics.lookback) : index]
            response = next((e for e in reversed(window) if e.role == Role.MODEL), None)
            if response is None or response.id in seen:
                continue

            selected.append(response)
            seen.add(response.id)

            response_index = position[response.id]
            prompt = next(
                (e for e in reversed(events[:response_index]) if e.role == Role.USER), None
            )
            if prompt is not None and prompt.id not in seen:
                selected.append(prompt)
                seen.add(prompt.id)

        if selected:
            logger.debug("Resolved %d contextual events from references", len(selected))
        return selected
