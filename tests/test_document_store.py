from pathlib import Path

import pytest
import pytest_asyncio

from kestrel.database.db_connection import ConnectionManager
from kestrel.database.document_store import DocumentStore


@pytest_asyncio.fixture
async def store(tmp_path: Path):
    connection = ConnectionManager()
    await connection.open(tmp_path / "data" / "kestrel.db")
    document_store = DocumentStore(connection)
    await document_store.initialize()
    yield document_store
    await connection.close()


@pytest.mark.asyncio
async def test_replace_one_inserts_then_replaces(store: DocumentStore):
    await store.replace_one("bot_guilds", {"_id": 1, "prefix": "!"})
    await store.replace_one("bot_guilds", {"_id": 1, "prefix": "?"})

    assert await store.find("bot_guilds", {}) == [{"_id": 1, "prefix": "?"}]


@pytest.mark.asyncio
async def test_find_one_by_id_and_by_field(store: DocumentStore):
    await store.replace_one("bot_guilds", {"_id": 1, "prefix": "!"})
    await store.replace_one("bot_guilds", {"_id": 2, "prefix": "?"})

    assert await store.find_one("bot_guilds", {"_id": 2}) == {"_id": 2, "prefix": "?"}
    assert await store.find_one("bot_guilds", {"prefix": "!"}) == {"_id": 1, "prefix": "!"}
    assert await store.find_one("bot_guilds", {"_id": 3}) is None


@pytest.mark.asyncio
async def test_id_filter_compares_by_value(store: DocumentStore):
    await store.replace_one("bot_guilds", {"_id": 1, "prefix": "!"})

    assert await store.find_one("bot_guilds", {"_id": "1"}) is None


@pytest.mark.asyncio
async def test_collections_are_isolated(store: DocumentStore):
    await store.replace_one("bot_guilds", {"_id": 1})
    await store.replace_one("blacklist", {"_id": 1, "reason": "spam"})

    assert await store.find("bot_guilds") == [{"_id": 1}]
    assert await store.find("blacklist") == [{"_id": 1, "reason": "spam"}]
    assert await store.find("bot_users") == []


@pytest.mark.asyncio
async def test_delete_one(store: DocumentStore):
    await store.replace_one("bot_guilds", {"_id": 1, "prefix": "!"})

    assert await store.delete_one("bot_guilds", {"_id": 1}) is True
    assert await store.delete_one("bot_guilds", {"_id": 1}) is False
    assert await store.find("bot_guilds") == []


@pytest.mark.asyncio
async def test_replace_requires_id(store: DocumentStore):
    with pytest.raises(ValueError):
        await store.replace_one("bot_guilds", {"prefix": "!"})


@pytest.mark.asyncio
async def test_unopened_connection_raises():
    with pytest.raises(RuntimeError):
        await DocumentStore(ConnectionManager()).find("bot_guilds")
