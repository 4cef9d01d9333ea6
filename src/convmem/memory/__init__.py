"""Conversation memory engine for convmem.

Keeps every user input, model response and system event of a session in one
in-memory log, compacts that log as it grows, and assembles the context views
handed to an LLM orchestrator.

Components:

- :class:`SessionMemory` - Public facade: ingestion and context assembly
- :class:`EventStore` - Versioned, append-only event arena
- :class:`MaintenanceEngine` - Eviction, consolidation and compression policies
- :class:`ThreadAnalyzer` - Heuristic topic-thread segmentation
- :class:`ReferenceResolver` - Recovers exchanges the user refers back to
"""

from convmem.memory.maintenance import MaintenanceEngine
from convmem.memory.manager import SessionMemory
from convmem.memory.references import ReferenceResolver
from convmem.memory.store import EventStore
from convmem.memory.threads import ThreadAnalyzer

__all__ = [
    "EventStore",
    "MaintenanceEngine",
    "ReferenceResolver",
    "SessionMemory",
    "ThreadAnalyzer",
]
