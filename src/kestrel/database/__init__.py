"""
Database package for Kestrel.

Public API:
    - db_connection: Shared aiosqlite connection manager
    - document_store: JSON document collections on top of the connection
"""
