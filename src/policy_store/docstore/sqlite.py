# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""SQLiteDocumentStore — durable, single-file document storage using aiosqlite."""

from __future__ import annotations

import json
import re
from collections.abc import AsyncGenerator, Sequence
from typing import TYPE_CHECKING, Any

try:
    import aiosqlite
except ImportError as exc:
    raise ImportError(
        "SQLiteDocumentStore requires the 'aiosqlite' package. "
        "Install it with: pip install aiosqlite"
    ) from exc

from policy_store.docstore.base import DocumentStore, StoredDocument, WriteBatch
from policy_store.exceptions import StoreIOError

if TYPE_CHECKING:
    from policy_store.filters import Predicate

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id         TEXT NOT NULL,
    data       TEXT NOT NULL,
    PRIMARY KEY (collection, id)
)
"""

_UPSERT = "INSERT OR REPLACE INTO documents (collection, id, data) VALUES (?, ?, ?)"
_DELETE = "DELETE FROM documents WHERE collection = ? AND id = ?"

# Field names end up inside a JSON path, so keep them to plain identifiers
_FIELD_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SQLiteWriteBatch(WriteBatch):
    def __init__(self, store: SQLiteDocumentStore) -> None:
        super().__init__()
        self._store = store
        self._ops: list[tuple[str, tuple[str, ...]]] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append((_UPSERT, (collection, doc_id, json.dumps(data))))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append((_DELETE, (collection, doc_id)))

    @property
    def size(self) -> int:
        return len(self._ops)

    async def _commit(self) -> None:
        db = await self._store._connect()
        try:
            for sql, params in self._ops:
                await db.execute(sql, params)
            await db.commit()
        except aiosqlite.Error as e:
            await db.rollback()
            raise StoreIOError("batch commit", str(e)) from e


class SQLiteDocumentStore(DocumentStore):
    """Persistent document store backed by a single SQLite file.

    Document bodies are stored as JSON text; equality predicates are
    evaluated with ``json_extract``.

    Parameters:
        db_path: Path to the SQLite database file.  Use ``":memory:"``
                 for an in-memory database (useful for testing).
    """

    def __init__(self, db_path: str = "policy_store.db") -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def _connect(self) -> aiosqlite.Connection:
        if self._db is None:
            try:
                self._db = await aiosqlite.connect(self._db_path)
                await self._db.execute(_CREATE_TABLE)
                await self._db.commit()
            except aiosqlite.Error as e:
                raise StoreIOError("connect", str(e)) from e
        return self._db

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    # ── DocumentStore protocol ───────────────────────────────

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT data FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            )
            row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StoreIOError("get", str(e)) from e
        if row is None:
            return None
        result: dict[str, Any] = json.loads(row[0])
        return result

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        db = await self._connect()
        try:
            await db.execute(_UPSERT, (collection, doc_id, json.dumps(data)))
            await db.commit()
        except aiosqlite.Error as e:
            raise StoreIOError("set", str(e)) from e

    async def delete(self, collection: str, doc_id: str) -> None:
        db = await self._connect()
        try:
            await db.execute(_DELETE, (collection, doc_id))
            await db.commit()
        except aiosqlite.Error as e:
            raise StoreIOError("delete", str(e)) from e

    async def stream(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
    ) -> AsyncGenerator[StoredDocument, None]:
        sql = "SELECT id, data FROM documents WHERE collection = ?"
        params: list[str] = [collection]
        for predicate in predicates:
            if not _FIELD_NAME.match(predicate.field):
                raise ValueError(f"Invalid field name: '{predicate.field}'")
            sql += f" AND json_extract(data, '$.{predicate.field}') = ?"
            params.append(predicate.value)

        db = await self._connect()
        try:
            async with db.execute(sql, params) as cursor:
                async for row in cursor:
                    yield StoredDocument(row[0], json.loads(row[1]))
        except aiosqlite.Error as e:
            raise StoreIOError("stream", str(e)) from e

    def batch(self) -> SQLiteWriteBatch:
        return SQLiteWriteBatch(self)
