# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""DocumentStore protocol — collection-scoped document persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from policy_store.exceptions import InvalidStateError

if TYPE_CHECKING:
    from policy_store.filters import Predicate


@dataclass(frozen=True)
class StoredDocument:
    """A document as returned by :meth:`DocumentStore.stream`."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


class WriteBatch(ABC):
    """Staged writes applied together by a single :meth:`commit`.

    Operations are applied in staging order, so a delete followed by a set
    of the same id leaves the new document in place.  A batch can be
    committed once.
    """

    def __init__(self) -> None:
        self._committed = False

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Stage a create-or-replace."""
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Stage a delete.  Deleting a missing document is not an error."""
        ...

    @abstractmethod
    async def _commit(self) -> None: ...

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of staged operations."""
        ...

    async def commit(self) -> None:
        """Apply every staged operation atomically."""
        if self._committed:
            raise InvalidStateError("Batch has already been committed")
        self._committed = True
        await self._commit()


class DocumentStore(ABC):
    """Abstract base for all document-store backends.

    Documents are ``dict[str, Any]`` bodies keyed by ``(collection, doc_id)``.
    The store knows nothing about policy rules; the adapter owns the record
    shape.  Backend failures surface as :class:`StoreIOError`.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Return the document body, or ``None`` if not found."""
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or overwrite a document."""
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete a document.  No-op if it does not exist."""
        ...

    @abstractmethod
    def stream(
        self,
        collection: str,
        predicates: Sequence[Predicate] = (),
    ) -> AsyncGenerator[StoredDocument, None]:
        """Iterate over the documents matching every equality predicate.

        With no predicates, every document in the collection is returned.
        """
        ...

    @abstractmethod
    def batch(self) -> WriteBatch:
        """Return a new, empty write batch."""
        ...

    async def close(self) -> None:
        """Release backend resources.  The default does nothing."""
