"""Tests for the SQL persistent store, backed by a temporary SQLite file."""

import pytest

from event_bus_server.exceptions import PersistentStoreError
from event_bus_server.persistence import SQLStoreAdapter


@pytest.fixture
def store(tmp_path):
    adapter = SQLStoreAdapter(f"sqlite:///{tmp_path / 'store.db'}", echo=False)
    yield adapter
    adapter.dispose()


@pytest.mark.asyncio
async def test_round_trip_json_value(store):
    await store.set("order", {"orderNumber": "234", "items": [1, 2]})

    assert await store.get("order") == {"orderNumber": "234", "items": [1, 2]}


@pytest.mark.asyncio
async def test_update_existing_key(store):
    await store.set("status", "pending")
    await store.set("status", "done")

    assert await store.get("status") == "done"


@pytest.mark.asyncio
async def test_missing_key_returns_none(store):
    assert await store.get("missing") is None


@pytest.mark.asyncio
async def test_delete(store):
    await store.set("temp", 1)
    await store.delete("temp")
    await store.delete("never-set")

    assert await store.get("temp") is None


@pytest.mark.asyncio
async def test_values_survive_new_adapter(tmp_path):
    url = f"sqlite:///{tmp_path / 'shared.db'}"
    writer = SQLStoreAdapter(url)
    await writer.set("key", ["persisted"])
    writer.dispose()

    reader = SQLStoreAdapter(url)
    try:
        assert await reader.get("key") == ["persisted"]
    finally:
        reader.dispose()


@pytest.mark.asyncio
async def test_missing_url_raises(monkeypatch):
    monkeypatch.setattr(
        "event_bus_server.persistence.sql.get_settings",
        lambda: type("NoDatabase", (), {"database_url": None, "sql_log": False})(),
    )
    adapter = SQLStoreAdapter()

    with pytest.raises(PersistentStoreError):
        await adapter.get("anything")
