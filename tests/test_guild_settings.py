from pathlib import Path

import pytest
import pytest_asyncio

from kestrel.configuration.guild_settings import GUILDS_COLLECTION, GuildSettings, GuildSettingsCache
from kestrel.database.db_connection import ConnectionManager
from kestrel.database.document_store import DocumentStore


@pytest_asyncio.fixture
async def store(tmp_path: Path):
    connection = ConnectionManager()
    await connection.open(tmp_path / "kestrel.db")
    document_store = DocumentStore(connection)
    await document_store.initialize()
    yield document_store
    await connection.close()


@pytest.fixture
def cache(store: DocumentStore) -> GuildSettingsCache:
    return GuildSettingsCache(store)


@pytest.mark.asyncio
async def test_get_loads_once_and_caches(cache: GuildSettingsCache, store: DocumentStore):
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "!"})

    settings = await cache.get(1)
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "?"})

    assert settings.prefix == "!"
    assert (await cache.get(1)).prefix == "!"
    assert 1 in cache


@pytest.mark.asyncio
async def test_missing_guild_is_cached_as_none(cache: GuildSettingsCache):
    assert await cache.get(5) is None
    assert 5 in cache
    assert await cache.get_prefix(5, ">") == ">"


@pytest.mark.asyncio
async def test_invalidate_forces_reload(cache: GuildSettingsCache, store: DocumentStore):
    await cache.get(1)
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "$"})

    cache.invalidate(1)

    assert 1 not in cache
    assert await cache.get_prefix(1, ">") == "$"


@pytest.mark.asyncio
async def test_refresh_replaces_only_existing_documents(cache: GuildSettingsCache, store: DocumentStore):
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "!"})
    await cache.get(1)
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "?"})

    refreshed = await cache.refresh(1)
    assert refreshed.prefix == "?"
    assert (await cache.get(1)).prefix == "?"

    await store.delete_one(GUILDS_COLLECTION, {"_id": 1})
    assert await cache.refresh(1) is None
    assert (await cache.get(1)).prefix == "?"


@pytest.mark.asyncio
async def test_clear_empties_cache(cache: GuildSettingsCache):
    await cache.get(1)
    await cache.get(2)

    cache.clear()

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_set_prefix_writes_document_and_invalidates(cache: GuildSettingsCache, store: DocumentStore):
    await store.replace_one(GUILDS_COLLECTION, {"_id": 1, "prefix": "!", "premium": True})
    await cache.get(1)

    await cache.set_prefix(1, "k!")

    assert 1 not in cache
    assert await store.find_one(GUILDS_COLLECTION, {"_id": 1}) == {"_id": 1, "premium": True, "prefix": "k!"}
    assert await cache.get_prefix(1, ">") == "k!"


@pytest.mark.asyncio
async def test_set_prefix_none_resets_to_default(cache: GuildSettingsCache, store: DocumentStore):
    await cache.set_prefix(1, "!")
    await cache.set_prefix(1, None)

    assert await store.find_one(GUILDS_COLLECTION, {"_id": 1}) == {"_id": 1}
    assert await cache.get_prefix(1, ">") == ">"


@pytest.mark.asyncio
@pytest.mark.parametrize("prefix", ["", "has space", "toolong"])
async def test_set_prefix_rejects_invalid_values(cache: GuildSettingsCache, prefix):
    with pytest.raises(ValueError):
        await cache.set_prefix(1, prefix)


@pytest.mark.asyncio
async def test_get_prefix_without_guild_uses_default(cache: GuildSettingsCache):
    assert await cache.get_prefix(None, ">") == ">"


def test_document_round_trip_keeps_extra_fields():
    settings = GuildSettings.from_document({"_id": "9", "prefix": "", "language": "en"})

    assert settings.guild_id == 9
    assert settings.prefix is None
    assert settings.to_document() == {"_id": 9, "language": "en"}
