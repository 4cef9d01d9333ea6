"""Pytest configuration and shared fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from convmem.config.schema import ConvmemConfig
from convmem.memory.manager import SessionMemory
from convmem.prompts.catalog import StaticPromptCatalog

SKILL_PROMPTS = {
    "general": "You are a helpful general assistant.",
    "dsa": "You are a DSA tutor. Use {programming_language} for every code sample.",
    "system-design": "You are a system design interviewer.",
}


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def catalog() -> StaticPromptCatalog:
    """Provide a catalog with three skills, one of them language-aware."""
    return StaticPromptCatalog(SKILL_PROMPTS, language_skills=["dsa"])


@pytest.fixture
def default_config() -> ConvmemConfig:
    """Provide a default configuration for tests."""
    return ConvmemConfig()


@pytest.fixture
def small_config() -> ConvmemConfig:
    """Provide a configuration with tiny maintenance thresholds."""
    config = ConvmemConfig()
    config.session.max_memory_size = 10
    config.session.compression_threshold = 8
    return config


@pytest.fixture
def memory(catalog, clock) -> SessionMemory:
    """Provide a seeded session memory with default thresholds."""
    return SessionMemory(catalog, clock=clock)
