# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""DocumentAdapter — persists an engine's rule set into a document store.

Every rule becomes one document in a single collection, keyed by a hash
of its content (see :mod:`policy_store.record`).  Multi-document writes
go through one store batch and one commit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from contextlib import aclosing
from typing import TYPE_CHECKING

from policy_store.config import AdapterConfig, create_store
from policy_store.exceptions import FilteredStateError
from policy_store.filters import PolicyFilter
from policy_store.model import load_policy_line
from policy_store.record import PolicyRecord

if TYPE_CHECKING:
    from policy_store.docstore.base import DocumentStore
    from policy_store.model import PolicyModel

logger = logging.getLogger(__name__)

SAVED_SECTIONS = ("p", "g")


class DocumentAdapter:
    """Storage adapter for a policy-enforcement engine.

    The ``sec`` argument on the write methods mirrors the engine's adapter
    signature; records are keyed by ptype only.

    Parameters:
        store:      Document store handle.
        config:     Adapter configuration.  Defaults to :class:`AdapterConfig`.
        collection: Overrides ``config.collection``.

    Example:
        adapter = DocumentAdapter(InMemoryDocumentStore(), collection="rules")
        await adapter.add_policy("p", "p", ["alice", "data1", "read"])
        model = PolicyModel()
        await adapter.load_policy(model)
    """

    def __init__(
        self,
        store: DocumentStore,
        config: AdapterConfig | None = None,
        *,
        collection: str | None = None,
    ) -> None:
        self._config = config or AdapterConfig()
        if collection is not None:
            self._config = AdapterConfig(collection=collection, store=self._config.store)
        self._store = store
        self._filtered = False

    @classmethod
    def from_config(cls, config: AdapterConfig) -> DocumentAdapter:
        """Create an adapter that owns a store built from ``config.store``."""
        return cls(create_store(config.store), config)

    @property
    def collection(self) -> str:
        return self._config.collection

    @property
    def store(self) -> DocumentStore:
        return self._store

    async def close(self) -> None:
        await self._store.close()

    def is_filtered(self) -> bool:
        """Return ``True`` if the last load was a filtered load."""
        return self._filtered

    def query(self) -> PolicyFilter:
        """Return an empty filter to build a filtered load on."""
        return PolicyFilter()

    # ── load ─────────────────────────────────────────────────

    async def load_policy(self, model: PolicyModel) -> None:
        """Load every stored rule into *model*."""
        count = await self._load(model, PolicyFilter())
        self._filtered = False
        logger.debug("Loaded %d rules from '%s'", count, self.collection)

    async def load_filtered_policy(
        self,
        model: PolicyModel,
        filter: PolicyFilter | None = None,
    ) -> None:
        """Load only the rules matching *filter* into *model*.

        A ``None`` filter is a full :meth:`load_policy`.  After a filtered
        load the adapter refuses :meth:`save_policy`.

        Raises:
            TypeError: If *filter* is not a :class:`PolicyFilter`
        """
        if filter is None:
            await self.load_policy(model)
            return
        if not isinstance(filter, PolicyFilter):
            raise TypeError(
                f"filter must be a PolicyFilter built with query(), got {type(filter).__name__}"
            )

        count = await self._load(model, filter)
        self._filtered = True
        logger.debug(
            "Loaded %d filtered rules from '%s' (%d predicates)",
            count,
            self.collection,
            len(filter.predicates),
        )

    async def _load(self, model: PolicyModel, filter: PolicyFilter) -> int:
        # A DecodeError aborts here; lines already loaded stay in the model
        count = 0
        async with aclosing(self._store.stream(self.collection, filter.predicates)) as docs:
            async for doc in docs:
                record = PolicyRecord.from_document(doc.data, doc.id)
                load_policy_line(record.to_line(), model)
                count += 1
        return count

    # ── save ─────────────────────────────────────────────────

    async def save_policy(self, model: PolicyModel) -> None:
        """Replace the whole collection with the rules in *model*.

        Deletes of the existing records and writes of the new ones share a
        single batch, so one commit swaps the content.  The batch holds one
        operation per existing record plus one per rule, and backends with a
        per-batch write limit reject larger saves (Firestore allows 500
        writes per batch).

        Raises:
            FilteredStateError: If the last load was filtered.  Nothing is
                written in that case.
            StoreIOError: If the backend rejects the commit, including a
                batch over its write limit.
        """
        if self._filtered:
            raise FilteredStateError(self.collection)

        existing = await self._collect_ids(PolicyFilter())

        batch = self._store.batch()
        for doc_id in existing:
            batch.delete(self.collection, doc_id)

        written = 0
        for sec in SAVED_SECTIONS:
            for ptype, rule in model.rules(sec):
                record = PolicyRecord.encode(ptype, rule)
                batch.set(self.collection, record.id, record.to_document())
                written += 1

        await batch.commit()
        logger.debug(
            "Saved %d rules to '%s', replacing %d", written, self.collection, len(existing)
        )

    # ── add ──────────────────────────────────────────────────

    async def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Upsert one rule.  Adding an existing rule changes nothing."""
        record = PolicyRecord.encode(ptype, rule)
        await self._store.set(self.collection, record.id, record.to_document())
        logger.debug("Added rule %s (%s)", record.id, record.to_line())

    async def add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Upsert several rules in one batch."""
        batch = self._store.batch()
        for rule in rules:
            record = PolicyRecord.encode(ptype, rule)
            batch.set(self.collection, record.id, record.to_document())
        await batch.commit()
        logger.debug("Added %d '%s' rules", batch.size, ptype)

    # ── remove ───────────────────────────────────────────────

    async def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Delete one rule by its content id.  A missing rule is not an error."""
        record = PolicyRecord.encode(ptype, rule)
        await self._store.delete(self.collection, record.id)
        logger.debug("Removed rule %s from '%s'", record.id, self.collection)

    async def remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> None:
        """Delete **every** record of *ptype*.

        ``rules`` is not used to narrow the delete: all rules of the given
        ptype are removed, not only the listed ones.
        """
        await self._remove_matching(PolicyFilter().ptype(ptype))

    async def remove_filtered_policy(
        self,
        sec: str,
        ptype: str,
        field_index: int,
        *field_values: str,
    ) -> None:
        """Delete the records of *ptype* matching a partial rule.

        ``field_values[0]`` is compared with slot ``v{field_index}``, the next
        value with the following slot, and so on; empty values match anything.
        """
        await self._remove_matching(PolicyFilter.for_rule(ptype, field_index, *field_values))

    async def _remove_matching(self, filter: PolicyFilter) -> None:
        doc_ids = await self._collect_ids(filter)
        batch = self._store.batch()
        for doc_id in doc_ids:
            batch.delete(self.collection, doc_id)
        await batch.commit()
        logger.debug("Removed %d records from '%s'", len(doc_ids), self.collection)

    async def _collect_ids(self, filter: PolicyFilter) -> list[str]:
        async with aclosing(self._store.stream(self.collection, filter.predicates)) as docs:
            return [doc.id async for doc in docs]
