"""Tests for the in-memory persistent store."""

import pytest

from event_bus_server.persistence import MemoryStoreAdapter


@pytest.mark.asyncio
async def test_set_get_delete():
    store = MemoryStoreAdapter()

    await store.set("order", {"orderNumber": "234"})
    assert await store.get("order") == {"orderNumber": "234"}

    await store.delete("order")
    assert await store.get("order") is None


@pytest.mark.asyncio
async def test_set_replaces_value():
    store = MemoryStoreAdapter()

    await store.set("counter", 1)
    await store.set("counter", 2)

    assert await store.get("counter") == 2
    assert len(store) == 1


@pytest.mark.asyncio
async def test_delete_unknown_key_is_noop():
    store = MemoryStoreAdapter()

    await store.delete("missing")

    assert len(store) == 0


@pytest.mark.asyncio
async def test_instances_are_independent():
    first = MemoryStoreAdapter()
    second = MemoryStoreAdapter()

    await first.set("key", "value")

    assert await second.get("key") is None


def test_store_error_is_the_package_error():
    from event_bus_server import exceptions, persistence

    assert persistence.PersistentStoreError is exceptions.PersistentStoreError
    assert issubclass(persistence.PersistentStoreError, exceptions.EventBusError)
