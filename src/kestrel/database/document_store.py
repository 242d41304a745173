"""
JSON document collections stored in SQLite.

Each document is a JSON object with an ``_id`` and belongs to a named
collection (``bot_guilds``, ``bot_users``, ``blacklist``...). Filters are
plain mappings matched by top-level equality; an ``_id`` key in the filter is
answered from the primary key.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional

import aiosqlite

from kestrel.database.db_connection import ConnectionManager, db_connection
from kestrel.util.logger import get_logger

logger = get_logger("document_store")

Document = Dict[str, Any]

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the document table and tracks the schema version."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        await db.execute("""
            CREATE TABLE IF NOT EXISTS documents (
                collection TEXT NOT NULL,
                doc_id TEXT NOT NULL,
                data TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (collection, doc_id)
            )
        """)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
        logger.info("[SCHEMA] Document schema initialized (version %d)", SCHEMA_VERSION)


def _doc_key(value: Any) -> str:
    return str(value)


def _matches(document: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    return all(key in document and document[key] == value for key, value in filter.items())


class DocumentStore:
    """Collection-oriented access to the documents table.

    Args:
        connection: The connection manager to use; defaults to the shared one.
    """

    def __init__(self, connection: ConnectionManager = db_connection) -> None:
        self._connection = connection

    async def initialize(self) -> None:
        async with self._connection.transaction() as conn:
            await SchemaManager.initialize_schema(conn)

    async def find(self, collection: str, filter: Optional[Mapping[str, Any]] = None) -> List[Document]:
        """Return every document of ``collection`` matching ``filter``."""
        filter = dict(filter or {})
        async with self._connection.read() as conn:
            if "_id" in filter:
                cursor = await conn.execute(
                    "SELECT data FROM documents WHERE collection = ? AND doc_id = ?",
                    (collection, _doc_key(filter["_id"])),
                )
            else:
                cursor = await conn.execute(
                    "SELECT data FROM documents WHERE collection = ? ORDER BY doc_id",
                    (collection,),
                )
            rows = await cursor.fetchall()
            await cursor.close()

        documents: List[Document] = []
        for row in rows:
            try:
                document = json.loads(row[0])
            except json.JSONDecodeError as exc:
                logger.error("[DOCUMENT STORE] Corrupt document in %s: %s", collection, exc)
                continue
            if _matches(document, filter):
                documents.append(document)
        return documents

    async def find_one(self, collection: str, filter: Mapping[str, Any]) -> Optional[Document]:
        """Return the first document matching ``filter`` or None."""
        documents = await self.find(collection, filter)
        return documents[0] if documents else None

    async def replace_one(self, collection: str, document: Mapping[str, Any]) -> None:
        """Insert ``document`` or replace the one with the same ``_id``."""
        if "_id" not in document:
            raise ValueError("Documents must carry an '_id'")
        async with self._connection.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO documents (collection, doc_id, data) VALUES (?, ?, ?)
                ON CONFLICT (collection, doc_id)
                DO UPDATE SET data = excluded.data, updated_at = CURRENT_TIMESTAMP
                """,
                (collection, _doc_key(document["_id"]), json.dumps(document, ensure_ascii=False)),
            )

    async def delete_one(self, collection: str, filter: Mapping[str, Any]) -> bool:
        """Delete the first document matching ``filter``; returns whether one was found."""
        document = await self.find_one(collection, filter)
        if document is None:
            return False
        async with self._connection.transaction() as conn:
            await conn.execute(
                "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                (collection, _doc_key(document["_id"])),
            )
        return True


# Shared application-wide store
document_store = DocumentStore()
