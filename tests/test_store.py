"""Tests for the database-backed registry store."""
import json

import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from skirmish.models.base import make_session_factory
from skirmish.models.document import RegistryDocument
from skirmish.models.registry import PlayerRecord, Registry
from skirmish.services.store import RegistryStore, StoreUnavailable


@pytest.mark.asyncio
async def test_load_empty_database(store):
    registry = await store.load()
    assert registry == Registry()


@pytest.mark.asyncio
async def test_save_then_load(store, session_factory):
    registry = Registry()
    registry.config.submissions_channel_id = "100"
    record = registry.get_or_create("u1")
    record.connect("Ari")
    record.submit("https://x")
    registry.get_or_create("u2").connect("Bea")
    await store.save(registry)

    fresh = RegistryStore(session_factory=session_factory, key="test", legacy_path=None)
    loaded = await fresh.load()
    assert loaded == registry
    assert list(loaded.players) == ["u1", "u2"]


@pytest.mark.asyncio
async def test_save_overwrites(store):
    registry = Registry()
    registry.get_or_create("u1")
    await store.save(registry)
    registry.clear_players()
    await store.save(registry)
    assert (await store.load()).players == {}


@pytest.mark.asyncio
async def test_keys_are_independent(session_factory):
    a = RegistryStore(session_factory=session_factory, key="a", legacy_path=None)
    b = RegistryStore(session_factory=session_factory, key="b", legacy_path=None)
    registry = Registry()
    registry.get_or_create("u1")
    await a.save(registry)
    assert (await b.load()).players == {}


@pytest.mark.asyncio
async def test_unparsable_row_degrades_to_empty(store, session_factory):
    async with session_factory() as session:
        session.add(RegistryDocument(key="test", payload="{not json"))
        await session.commit()
    assert await store.load() == Registry()


@pytest.mark.asyncio
async def test_missing_table_degrades_to_empty(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'no-tables.db'}")
    try:
        store = RegistryStore(session_factory=make_session_factory(engine), key="test", legacy_path=None)
        assert await store.load() == Registry()
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_save_failure_raises(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'no-tables.db'}")
    try:
        store = RegistryStore(session_factory=make_session_factory(engine), key="test", legacy_path=None)
        with pytest.raises(StoreUnavailable):
            await store.save(Registry())
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_legacy_file_imported_when_database_empty(store, legacy_path):
    legacy_path.write_text(json.dumps({"submissionsChannelId": "100", "allowedUsers": ["u1", "u2"]}))
    registry = await store.load()
    assert registry.config.submissions_channel_id == "100"
    assert registry.players["u1"] == PlayerRecord(registered=True)
    assert registry.players["u2"] == PlayerRecord(registered=True)


@pytest.mark.asyncio
async def test_database_wins_over_legacy_file(store, legacy_path):
    legacy_path.write_text(json.dumps({"allowedUsers": ["old"]}))
    registry = Registry()
    registry.get_or_create("new")
    await store.save(registry)
    assert list((await store.load()).players) == ["new"]


@pytest.mark.asyncio
async def test_legacy_round_trip_writes_unified_document(store, session_factory, legacy_path):
    """Legacy admitted ids come back registered, and nothing else is lost."""
    legacy_path.write_text(
        json.dumps(
            {
                "submissionsChannelId": "100",
                "pendingUsers": ["u3"],
                "allowedUsers": ["u1"],
                "players": {"u1": {"displayName": "Ari", "deckLink": "https://x", "deckSubmitted": True}},
            }
        )
    )
    await store.save(await store.load())

    async with session_factory() as session:
        row = await session.get(RegistryDocument, "test")
    data = json.loads(row.payload)
    assert data["schemaVersion"] == 3
    assert data["submissionsChannelId"] == "100"
    assert "allowedUsers" not in data and "pendingUsers" not in data
    assert data["players"]["u1"]["registered"] is True
    assert data["players"]["u1"]["displayName"] == "Ari"
    assert data["players"]["u1"]["deckLink"] == "https://x"
    assert data["players"]["u1"]["deckSubmitted"] is True
    assert data["players"]["u3"]["registered"] is False
    assert data["players"]["u3"]["registrationRequested"] is True


@pytest.mark.asyncio
async def test_deeply_nested_row_degrades_to_empty(store, session_factory):
    async with session_factory() as session:
        session.add(RegistryDocument(key="test", payload="{\"players\": " + "[" * 200000))
        await session.commit()
    assert await store.load() == Registry()
