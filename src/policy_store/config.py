# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Configuration models for the adapter and its document store.

These Pydantic models can be built in code or validated from a dict / JSON
document (``AdapterConfig.model_validate_json(...)``).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from policy_store.docstore import DocumentStore, InMemoryDocumentStore, SQLiteDocumentStore
from policy_store.exceptions import AdapterConfigError

DEFAULT_COLLECTION = "casbin_rule"


class StoreConfig(BaseModel):
    """Document store configuration.

    Attributes:
        type: Store type ("memory", "sqlite" or "firestore")
        path: Path to SQLite database file (for sqlite type)
        project: Google Cloud project id (for firestore type)
        database: Firestore database id (for firestore type)
    """

    type: Literal["memory", "sqlite", "firestore"] = "memory"
    path: str = ""
    project: str | None = None
    database: str | None = None


class AdapterConfig(BaseModel):
    """Adapter configuration.

    Attributes:
        collection: Collection that holds the policy records
        store: Backend to create when no store is injected
    """

    collection: str = Field(default=DEFAULT_COLLECTION, min_length=1)
    store: StoreConfig = Field(default_factory=StoreConfig)


def create_store(config: StoreConfig) -> DocumentStore:
    """Create a document store from configuration.

    Raises:
        AdapterConfigError: If the configuration is incomplete
    """
    if config.type == "sqlite":
        if not config.path:
            raise AdapterConfigError("SQLite store requires 'path' configuration")
        return SQLiteDocumentStore(config.path)

    if config.type == "firestore":
        # Imported here so the Google client stays an optional dependency
        from policy_store.docstore.firestore import FirestoreDocumentStore

        return FirestoreDocumentStore(project=config.project, database=config.database)

    return InMemoryDocumentStore()
