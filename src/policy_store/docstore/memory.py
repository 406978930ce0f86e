# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""InMemoryDocumentStore — zero-config, dict-backed storage for development and testing."""

from __future__ import annotations

import copy
from collections import defaultdict
from collections.abc import AsyncGenerator, Sequence
from typing import TYPE_CHECKING, Any

from policy_store.docstore.base import DocumentStore, StoredDocument, WriteBatch

if TYPE_CHECKING:
    from policy_store.filters import Predicate


class InMemoryWriteBatch(WriteBatch):
    def __init__(self, store: InMemoryDocumentStore) -> None:
        super().__init__()
        self._store = store
        self._ops: list[tuple[str, str, str, dict[str, Any] | None]] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._ops.append(("set", collection, doc_id, copy.deepcopy(data)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._ops.append(("delete", collection, doc_id, None))

    @property
    def size(self) -> int:
        return len(self._ops)

    async def _commit(self) -> None:
        for op, collection, doc_id, data in self._ops:
            if op == "set" and data is not None:
                self._store._data[collection][doc_id] = data
            else:
                self._store._data[collection].pop(doc_id, None)
        self._store.commits += 1


class InMemoryDocumentStore(DocumentStore):
    """In-memory store using nested dicts.  Data is lost on process exit.

    ``commits`` counts committed batches, which tests use to check that an
    operation went through a single batch.
    """

    def __init__(self) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = defaultdict(dict)
        self.commits = 0

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._data[collection].get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._data[collection][doc_id] = copy.deepcopy(data)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._data[collection].pop(doc_id, None)

    async def stream(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
    ) -> AsyncGenerator[StoredDocument, None]:
        # Snapshot first so writes during iteration don't disturb it
        snapshot = list(self._data[collection].items())
        for doc_id, data in snapshot:
            if all(p.matches(data) for p in predicates):
                yield StoredDocument(doc_id, copy.deepcopy(data))

    def batch(self) -> InMemoryWriteBatch:
        return InMemoryWriteBatch(self)

    def count(self, collection: str) -> int:
        return len(self._data[collection])
