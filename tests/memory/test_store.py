"""Tests for the versioned event store."""

import pytest

from convmem.memory.events import EventFactory
from convmem.memory.schema import Role
from convmem.memory.store import EventStore


@pytest.fixture
def factory(clock):
    return EventFactory(clock)


def test_append_assigns_increasing_sequences(factory):
    """Test that every append gets the next sequence number."""
    store = EventStore()

    first = store.append(factory.create(Role.USER, "one", "general"))
    second = store.append(factory.create(Role.MODEL, "two", "general"))

    assert first.sequence == 1
    assert second.sequence == 2
    assert store.size() == 2
    assert len(store) == 2
    assert store.last() == second


def test_append_clamps_backward_timestamp(factory, clock):
    """Test that an event older than the newest one is moved up in time."""
    store = EventStore()
    newer = store.append(factory.create(Role.USER, "now", "general"))

    clock.advance(seconds=-30)
    older = store.append(factory.create(Role.USER, "earlier", "general"))

    assert older.timestamp == newer.timestamp


def test_snapshots_survive_mutation(factory):
    """Test that a snapshot taken before replace_all is unaffected by it."""
    store = EventStore()
    store.append(factory.create(Role.USER, "a", "general"))
    store.append(factory.create(Role.USER, "b", "general"))

    snapshot = store.all()
    store.replace_all(snapshot[:1])

    assert len(snapshot) == 2
    assert store.size() == 1


def test_version_bumps_on_every_mutation(factory):
    """Test that append, replace_all and clear all bump the version."""
    store = EventStore()
    assert store.version == 0

    store.append(factory.create(Role.USER, "a", "general"))
    assert store.version == 1

    store.replace_all(store.all())
    assert store.version == 2

    store.clear()
    assert store.version == 3


def test_replace_all_keeps_sequences(factory):
    """Test that retained events keep their sequence keys."""
    store = EventStore()
    for text in ("a", "b", "c"):
        store.append(factory.create(Role.USER, text, "general"))

    store.replace_all([e for e in store.all() if e.content != "b"])

    assert [seq for seq, _ in store.entries()] == [1, 3]


def test_replace_all_rejects_duplicate_sequences(factory):
    """Test that a replacement with repeated sequence numbers is refused."""
    store = EventStore()
    event = store.append(factory.create(Role.USER, "a", "general"))

    with pytest.raises(ValueError, match="Duplicate sequence"):
        store.replace_all([event, event])

    assert store.size() == 1


def test_sequences_not_reused_after_clear(factory):
    """Test that clear does not reset the sequence counter."""
    store = EventStore()
    store.append(factory.create(Role.USER, "a", "general"))
    store.append(factory.create(Role.USER, "b", "general"))

    assert store.clear() == 2
    assert store.last() is None

    event = store.append(factory.create(Role.USER, "c", "general"))
    assert event.sequence == 3


def test_slice_tail(factory):
    """Test tail snapshots, including non-positive counts."""
    store = EventStore()
    for text in ("a", "b", "c"):
        store.append(factory.create(Role.USER, text, "general"))

    assert [e.content for e in store.slice_tail(2)] == ["b", "c"]
    assert [e.content for e in store.slice_tail(10)] == ["a", "b", "c"]
    assert store.slice_tail(0) == ()
    assert store.slice_tail(-1) == ()
    assert [e.content for e in store] == ["a", "b", "c"]
