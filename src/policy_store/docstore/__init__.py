"""Document-store backends for policy rule persistence."""

from policy_store.docstore.base import DocumentStore, StoredDocument, WriteBatch
from policy_store.docstore.memory import InMemoryDocumentStore
from policy_store.docstore.sqlite import SQLiteDocumentStore

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "SQLiteDocumentStore",
    "StoredDocument",
    "WriteBatch",
]
