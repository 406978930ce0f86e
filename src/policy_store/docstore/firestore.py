# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""FirestoreDocumentStore — Cloud Firestore backend using the async client.

Credentials are discovered by the Google client library (application
default credentials, ``GOOGLE_APPLICATION_CREDENTIALS``, or the Firestore
emulator via ``FIRESTORE_EMULATOR_HOST``).
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncGenerator, Sequence
from typing import TYPE_CHECKING, Any

try:
    from google.api_core.exceptions import GoogleAPIError
    from google.cloud import firestore
    from google.cloud.firestore_v1.base_query import FieldFilter
except ImportError as exc:
    raise ImportError(
        "FirestoreDocumentStore requires the 'google-cloud-firestore' package. "
        "Install it with: pip install policy-store[firestore]"
    ) from exc

from policy_store.docstore.base import DocumentStore, StoredDocument, WriteBatch
from policy_store.exceptions import StoreIOError

if TYPE_CHECKING:
    from policy_store.filters import Predicate


class FirestoreWriteBatch(WriteBatch):
    def __init__(self, client: firestore.AsyncClient) -> None:
        super().__init__()
        self._client = client
        self._batch = client.batch()
        self._size = 0

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._batch.set(self._client.collection(collection).document(doc_id), data)
        self._size += 1

    def delete(self, collection: str, doc_id: str) -> None:
        self._batch.delete(self._client.collection(collection).document(doc_id))
        self._size += 1

    @property
    def size(self) -> int:
        return self._size

    async def _commit(self) -> None:
        if not self._size:
            return
        try:
            await self._batch.commit()
        except GoogleAPIError as e:
            raise StoreIOError("batch commit", str(e)) from e


class FirestoreDocumentStore(DocumentStore):
    """Document store backed by a Firestore database.

    Parameters:
        client:   An existing ``firestore.AsyncClient``.  Created from
                  ``project`` / ``database`` when omitted, in which case
                  :meth:`close` also closes it.
        project:  Google Cloud project id.
        database: Firestore database id (``"(default)"`` when omitted).
    """

    def __init__(
        self,
        client: firestore.AsyncClient | None = None,
        *,
        project: str | None = None,
        database: str | None = None,
    ) -> None:
        owns_client = client is None
        if client is None:
            kwargs: dict[str, Any] = {}
            if project:
                kwargs["project"] = project
            if database:
                kwargs["database"] = database
            client = firestore.AsyncClient(**kwargs)
        self._owns_client = owns_client
        self._client = client

    @property
    def client(self) -> firestore.AsyncClient:
        return self._client

    async def close(self) -> None:
        """Close the client if this store created it."""
        if not self._owns_client:
            return
        result = self._client.close()
        if inspect.isawaitable(result):
            await result

    # ── DocumentStore protocol ───────────────────────────────

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        try:
            snapshot = await self._client.collection(collection).document(doc_id).get()
        except GoogleAPIError as e:
            raise StoreIOError("get", str(e)) from e
        if not snapshot.exists:
            return None
        data: dict[str, Any] = snapshot.to_dict() or {}
        return data

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        try:
            await self._client.collection(collection).document(doc_id).set(data)
        except GoogleAPIError as e:
            raise StoreIOError("set", str(e)) from e

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._client.collection(collection).document(doc_id).delete()
        except GoogleAPIError as e:
            raise StoreIOError("delete", str(e)) from e

    async def stream(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
    ) -> AsyncGenerator[StoredDocument, None]:
        query: Any = self._client.collection(collection)
        for predicate in predicates:
            query = query.where(filter=FieldFilter(predicate.field, "==", predicate.value))
        try:
            async for snapshot in query.stream():
                yield StoredDocument(snapshot.id, snapshot.to_dict() or {})
        except GoogleAPIError as e:
            raise StoreIOError("stream", str(e)) from e

    def batch(self) -> FirestoreWriteBatch:
        return FirestoreWriteBatch(self._client)
