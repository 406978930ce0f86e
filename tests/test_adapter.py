"""Tests for DocumentAdapter — the storage adapter end to end."""

import logging

import pytest

from policy_store import (
    AdapterConfig,
    DecodeError,
    DocumentAdapter,
    FilteredStateError,
    InvalidStateError,
    PolicyModel,
    PolicyRecord,
    StoreConfig,
    StoreIOError,
)
from policy_store.docstore import InMemoryDocumentStore

COLLECTION = "casbin_rule"


async def stored_lines(store, collection=COLLECTION):
    return sorted(
        [PolicyRecord.from_document(doc.data).to_line() async for doc in store.stream(collection)]
    )


# ── construction ─────────────────────────────────────────────


def test_default_collection(adapter):
    assert adapter.collection == "casbin_rule"
    assert not adapter.is_filtered()


def test_collection_override(store):
    adapter = DocumentAdapter(store, AdapterConfig(collection="from_config"), collection="rules")
    assert adapter.collection == "rules"


def test_collection_from_config(store):
    adapter = DocumentAdapter(store, AdapterConfig(collection="from_config"))
    assert adapter.collection == "from_config"


def test_from_config_builds_store():
    adapter = DocumentAdapter.from_config(AdapterConfig(store=StoreConfig(type="memory")))
    assert isinstance(adapter.store, InMemoryDocumentStore)


# ── add ──────────────────────────────────────────────────────


async def test_add_policy(adapter, store):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])

    record = PolicyRecord.encode("p", ["alice", "data1", "read"])
    assert await store.get(COLLECTION, record.id) == record.to_document()


async def test_add_policy_is_idempotent(adapter, store):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    assert store.count(COLLECTION) == 1


async def test_add_policies_single_commit(adapter, store):
    await adapter.add_policies(
        "p", "p", [["alice", "data1", "read"], ["bob", "data2", "write"]]
    )
    assert store.commits == 1
    assert await stored_lines(store) == ["p, alice, data1, read", "p, bob, data2, write"]


async def test_add_policies_stores_encoded_records(adapter, store):
    await adapter.add_policies("g", "g", [["alice", "admin"]])
    record = PolicyRecord.encode("g", ["alice", "admin"])
    assert await store.get(COLLECTION, record.id) == record.to_document()


async def test_custom_collection_isolated(store):
    adapter = DocumentAdapter(store, collection="tenant_a")
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    assert store.count("tenant_a") == 1
    assert store.count(COLLECTION) == 0


# ── remove ───────────────────────────────────────────────────


async def test_remove_policy(adapter, store):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.add_policy("p", "p", ["bob", "data2", "write"])

    await adapter.remove_policy("p", "p", ["alice", "data1", "read"])
    assert await stored_lines(store) == ["p, bob, data2, write"]


async def test_remove_policy_missing_is_noop(adapter, store):
    await adapter.remove_policy("p", "p", ["nobody", "nothing", "read"])
    assert store.count(COLLECTION) == 0


async def test_remove_policy_uses_configured_collection(store):
    adapter = DocumentAdapter(store, collection="rules")
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.remove_policy("p", "p", ["alice", "data1", "read"])
    assert store.count("rules") == 0


async def test_remove_policies_removes_whole_ptype(adapter, store):
    """All rules of the ptype go, not only the listed ones."""
    await adapter.add_policies(
        "p", "p", [["alice", "data1", "read"], ["bob", "data2", "write"]]
    )
    await adapter.add_policy("g", "g", ["alice", "admin"])
    store.commits = 0

    await adapter.remove_policies("p", "p", [["alice", "data1", "read"]])

    assert await stored_lines(store) == ["g, alice, admin"]
    assert store.commits == 1


async def test_remove_filtered_policy_by_second_field(adapter, store):
    await adapter.add_policies(
        "p",
        "p",
        [
            ["alice", "data1", "read"],
            ["bob", "alice", "read"],
            ["carol", "alice", "write"],
        ],
    )
    await adapter.add_policy("g", "g", ["dave", "alice"])

    await adapter.remove_filtered_policy("p", "p", 1, "alice")

    assert await stored_lines(store) == ["g, dave, alice", "p, alice, data1, read"]


async def test_remove_filtered_policy_two_fields(adapter, store):
    await adapter.add_policies(
        "p",
        "p",
        [
            ["alice", "read", "data1"],
            ["alice", "write", "data1"],
            ["bob", "read", "data1"],
        ],
    )

    await adapter.remove_filtered_policy("p", "p", 0, "alice", "read")

    assert await stored_lines(store) == ["p, alice, write, data1", "p, bob, read, data1"]


async def test_remove_filtered_policy_empty_value_is_wildcard(adapter, store):
    await adapter.add_policies(
        "p", "p", [["alice", "data1", "read"], ["bob", "data1", "read"], ["bob", "data2", "read"]]
    )

    await adapter.remove_filtered_policy("p", "p", 0, "", "data1")

    assert await stored_lines(store) == ["p, bob, data2, read"]


async def test_remove_filtered_policy_no_match(adapter, store):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.remove_filtered_policy("p", "p", 0, "zed")
    assert store.count(COLLECTION) == 1


# ── save ─────────────────────────────────────────────────────


async def test_save_policy_replaces_collection(adapter, store, rbac_model):
    await adapter.add_policy("p", "p", ["stale", "data9", "read"])

    await adapter.save_policy(rbac_model)

    assert store.count(COLLECTION) == 3
    assert await stored_lines(store) == [
        "g, alice, admin",
        "p, alice, data1, read",
        "p, bob, data2, write",
    ]


async def test_save_policy_single_commit(adapter, store, rbac_model):
    await adapter.save_policy(rbac_model)
    assert store.commits == 1


async def test_save_policy_keeps_rule_present_before_and_after(adapter, store, rbac_model):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.save_policy(rbac_model)
    record = PolicyRecord.encode("p", ["alice", "data1", "read"])
    assert await store.get(COLLECTION, record.id) is not None


async def test_save_empty_model_clears_collection(adapter, store, model):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.save_policy(model)
    assert store.count(COLLECTION) == 0


async def test_save_policy_includes_extra_ptypes(adapter, store):
    m = PolicyModel({"p": ["p", "p2"], "g": ["g", "g2"]})
    m.add_policy("p", "p2", ["alice", "data1"])
    m.add_policy("g", "g2", ["data1", "group1"])

    await adapter.save_policy(m)

    assert await stored_lines(store) == ["g2, data1, group1", "p2, alice, data1"]


async def test_save_after_filtered_load_raises(adapter, store, model):
    await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    await adapter.load_filtered_policy(model, adapter.query().where("v0", "alice"))
    store.commits = 0

    with pytest.raises(FilteredStateError):
        await adapter.save_policy(PolicyModel())

    assert store.count(COLLECTION) == 1
    assert store.commits == 0


def test_filtered_state_error_is_invalid_state():
    assert issubclass(FilteredStateError, InvalidStateError)


# ── load ─────────────────────────────────────────────────────


async def test_load_policy(adapter, model, rbac_model):
    await adapter.save_policy(rbac_model)

    await adapter.load_policy(model)

    assert sorted(model.get_policy("p", "p")) == [
        ["alice", "data1", "read"],
        ["bob", "data2", "write"],
    ]
    assert model.get_policy("g", "g") == [["alice", "admin"]]


async def test_save_load_round_trip_with_gap(adapter, model):
    # An empty middle field is skipped on load, later fields still come back
    m = PolicyModel()
    m.add_policy("p", "p", ["alice", "", "read"])
    await adapter.save_policy(m)

    await adapter.load_policy(model)

    assert model.get_policy("p", "p") == [["alice", "read"]]


async def test_load_filtered_policy(adapter, model, rbac_model):
    await adapter.save_policy(rbac_model)

    await adapter.load_filtered_policy(model, adapter.query().ptype("p").where("v0", "alice"))

    assert model.get_policy("p", "p") == [["alice", "data1", "read"]]
    assert model.get_policy("g", "g") == []
    assert adapter.is_filtered()


async def test_load_filtered_policy_none_is_full_load(adapter, model, rbac_model):
    await adapter.save_policy(rbac_model)

    await adapter.load_filtered_policy(model, None)

    assert len(model) == 3
    assert not adapter.is_filtered()


async def test_load_filtered_policy_rejects_foreign_filter(adapter, model):
    with pytest.raises(TypeError, match="PolicyFilter"):
        await adapter.load_filtered_policy(model, {"v0": "alice"})


async def test_full_load_clears_filtered_flag(adapter, model, rbac_model):
    await adapter.save_policy(rbac_model)
    await adapter.load_filtered_policy(model, adapter.query().ptype("g"))
    assert adapter.is_filtered()

    await adapter.load_policy(PolicyModel())
    assert not adapter.is_filtered()

    await adapter.save_policy(rbac_model)


async def test_load_decode_error_aborts(adapter, store, model):
    await store.set(COLLECTION, "a", PolicyRecord.encode("p", ["alice", "d", "r"]).to_document())
    await store.set(COLLECTION, "broken", {"id": "broken", "pType": "p", "v0": 7})

    with pytest.raises(DecodeError) as exc_info:
        await adapter.load_policy(model)

    assert exc_info.value.doc_id == "broken"
    # Rules read before the bad document are not rolled back
    assert model.get_policy("p", "p") == [["alice", "d", "r"]]


async def test_decode_error_keeps_filtered_flag(adapter, store, model):
    await store.set(COLLECTION, "a", PolicyRecord.encode("p", ["alice", "d", "r"]).to_document())
    await adapter.load_filtered_policy(model, adapter.query().where("v0", "alice"))
    assert adapter.is_filtered()

    await store.set(COLLECTION, "broken", {"id": "broken", "pType": "p", "v0": 7})
    with pytest.raises(DecodeError):
        await adapter.load_policy(PolicyModel())

    assert adapter.is_filtered()
    with pytest.raises(FilteredStateError):
        await adapter.save_policy(model)
    assert store.count(COLLECTION) == 2


async def test_operations_log_at_debug(adapter, caplog):
    with caplog.at_level(logging.DEBUG, logger="policy_store.adapter"):
        await adapter.add_policy("p", "p", ["alice", "data1", "read"])
    assert "p, alice, data1, read" in caplog.text


# ── store failures ───────────────────────────────────────────


class FailingBatchStore(InMemoryDocumentStore):
    def batch(self):
        batch = super().batch()

        async def fail():
            raise StoreIOError("batch commit", "quota exceeded")

        batch._commit = fail
        return batch


async def test_store_error_propagates_without_retry(rbac_model):
    store = FailingBatchStore()
    adapter = DocumentAdapter(store)

    with pytest.raises(StoreIOError, match="quota exceeded"):
        await adapter.save_policy(rbac_model)

    assert store.count(COLLECTION) == 0
