"""Size-triggered maintenance of the event store.

Two policies, checked in this order after every append:

1. **Hard maintenance** when the store holds more than ``max_memory_size``
   events: evict aged system events, then consolidate near-duplicate events.
2. **Soft compression** when it holds more than ``compression_threshold``
   events: truncate the content of old, long events.

At most one policy runs per append. ``max_memory_size`` is a soft bound; a pass
may leave the store above it when there is little to evict or merge.
"""

import logging
import re
from collections.abc import Sequence
from datetime import timedelta

from convmem.config.schema import MaintenanceConfig, SessionConfig
from convmem.memory.events import Clock, utc_now
from convmem.memory.schema import ConversationEvent, EventCategory, MaintenanceReport, Role
from convmem.memory.store import EventStore

logger = logging.getLogger(__name__)

_SIMILAR_SUFFIX = re.compile(r" \(\d+ similar events\)$")


class MaintenanceEngine:
    """Applies eviction, consolidation and compression to an :class:`EventStore`."""

    def __init__(
        self,
        max_memory_size: int,
        compression_threshold: int,
        policy: MaintenanceConfig | None = None,
        clock: Clock | None = None,
    ):
        """Initialize maintenance engine.

        Args:
            max_memory_size: Event count that triggers hard maintenance
            compression_threshold: Event count that triggers soft compression
            policy: Ages, windows and lengths (defaults if None)
            clock: Time source (defaults to UTC now)
        """
        self.max_memory_size = max_memory_size
        self.compression_threshold = compression_threshold
        self.policy = policy or MaintenanceConfig()
        self.clock = clock or utc_now

        if compression_threshold >= max_memory_size:
            logger.warning(
                "compression_threshold (%d) is not below max_memory_size (%d); "
                "soft compression will never run before hard maintenance",
                compression_threshold,
                max_memory_size,
            )

    @classmethod
    def from_config(
        cls,
        session: SessionConfig,
        policy: MaintenanceConfig,
        clock: Clock | None = None,
    ) -> "MaintenanceEngine":
        return cls(
            max_memory_size=session.max_memory_size,
            compression_threshold=session.compression_threshold,
            policy=policy,
            clock=clock,
        )

    def run_if_needed(self, store: EventStore) -> MaintenanceReport | None:
        """Run whichever policy the store size calls for.

        Args:
            store: Store to maintain

        Returns:
            Report of the pass, or None when no threshold was crossed
        """
        size = store.size()
        if size > self.max_memory_size:
            return self.hard_maintenance(store)
        if self.policy.compression_enabled and size > self.compression_threshold:
            return self.compress_old_events(store)
        return None

    def hard_maintenance(self, store: EventStore) -> MaintenanceReport:
        """Evict aged system events, then consolidate similar events."""
        before = store.size()

        kept = self.remove_old_system_events(store.all())
        evicted = before - len(kept)
        consolidated, groups = self.consolidate_similar_events(kept)
        store.replace_all(consolidated)

        report = MaintenanceReport(
            kind="hard",
            before_count=before,
            after_count=store.size(),
            evicted=evicted,
            consolidated_groups=groups,
        )
        logger.info(
            "Session memory maintenance completed: %d -> %d events (%d evicted, %d groups merged)",
            report.before_count,
            report.after_count,
            report.evicted,
            report.consolidated_groups,
        )
        return report

    def remove_old_system_events(
        self, events: Sequence[ConversationEvent]
    ) -> list[ConversationEvent]:
        """Drop system events older than the configured age.

        Only events that are both system-category and system-role are eligible;
        user and model events are never evicted. User ``chat_input`` events are
        system-category too, so an aged chat input stays in the store even
        though its category matches. Consolidated events survive.
        """
        cutoff = self.clock() - timedelta(hours=self.policy.system_event_max_age_hours)
        return [event for event in events if not self._is_evictable(event, cutoff)]

    @staticmethod
    def _is_evictable(event: ConversationEvent, cutoff) -> bool:
        return (
            event.category == EventCategory.SYSTEM
            and event.role == Role.SYSTEM
            and not event.is_consolidated
            and event.timestamp < cutoff
        )

    def consolidate_similar_events(
        self, events: Sequence[ConversationEvent]
    ) -> tuple[list[ConversationEvent], int]:
        """Collapse groups of similar events.

        Each unprocessed event seeds a group and collects every later
        unprocessed event similar to the seed. A group of one is kept as is;
        larger groups become one consolidated event at the seed's position.

        Returns:
            Tuple of (resulting events, number of groups merged)
        """
        result: list[ConversationEvent] = []
        processed: set[int] = set()
        merged_groups = 0

        for i, seed in enumerate(events):
            if i in processed:
                continue
            processed.add(i)
            group = [seed]

            if not seed.is_initialization:
                for j in range(i + 1, len(events)):
                    if j in processed:
                        continue
                    if self.are_events_similar(seed, events[j]):
                        group.append(events[j])
                        processed.add(j)

            if len(group) == 1:
                result.append(seed)
            else:
                result.append(self.create_consolidated_event(group))
                merged_groups += 1

        return result, merged_groups

    def are_events_similar(self, first: ConversationEvent, second: ConversationEvent) -> bool:
        if first.is_initialization or second.is_initialization:
            return False
        if not self.policy.consolidate_across_roles and first.role != second.role:
            return False
        gap_ms = abs((first.timestamp - second.timestamp).total_seconds()) * 1000
        return (
            first.category == second.category
            and first.action == second.action
            and gap_ms < self.policy.consolidation_window_ms
        )

    @staticmethod
    def create_consolidated_event(group: Sequence[ConversationEvent]) -> ConversationEvent:
        """Merge a group into its first event.

        The result keeps the first event's id, role, action, skill and content,
        takes the latest timestamp in the group, and records how many original
        events it stands for.
        """
        first = group[0]
        start = min(event.timestamp for event in group)
        end = max(event.timestamp for event in group)
        count = sum(event.metadata.get("consolidated_count", 1) for event in group)
        base_summary = _SIMILAR_SUFFIX.sub("", first.context_summary)

        return first.model_copy(
            update={
                "timestamp": end,
                "context_summary": f"{base_summary} ({count} similar events)",
                "metadata": {
                    **first.metadata,
                    "consolidated_count": count,
                    "time_span": {"start": start.isoformat(), "end": end.isoformat()},
                },
            }
        )

    def compress_old_events(self, store: EventStore) -> MaintenanceReport:
        """Truncate long content on events older than the compression age."""
        before = store.size()
        cutoff = self.clock() - timedelta(hours=self.policy.compression_age_hours)
        compressed = 0
        updated: list[ConversationEvent] = []

        for event in store.all():
            rewritten = self._compress(event, cutoff)
            if rewritten is not event:
                compressed += 1
            updated.append(rewritten)

        if compressed:
            store.replace_all(updated)
            logger.info("Compressed %d old session events", compressed)
        else:
            logger.debug("Compression pass found nothing to compress (%d events)", before)

        return MaintenanceReport(
            kind="compression",
            before_count=before,
            after_count=store.size(),
            compressed=compressed,
        )

    def _compress(self, event: ConversationEvent, cutoff) -> ConversationEvent:
        if event.is_compressed or event.timestamp >= cutoff:
            return event

        limit = self.policy.compression_length
        marker = self.policy.compression_marker
        update: dict = {}

        if len(event.content) > limit:
            update["content"] = event.content[:limit] + marker
        if event.primary_content and len(event.primary_content) > limit:
            update["primary_content"] = event.primary_content[:limit] + marker

        if not update:
            return event

        update["metadata"] = {**event.metadata, "compressed": True}
        return event.model_copy(update=update)
