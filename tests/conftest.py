"""Shared test fixtures."""

import pytest

from policy_store import DocumentAdapter, PolicyModel
from policy_store.docstore import InMemoryDocumentStore


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def adapter(store):
    return DocumentAdapter(store)


@pytest.fixture
def model():
    return PolicyModel()


@pytest.fixture
def rbac_model():
    """Model holding two policy rules and one role assignment."""
    m = PolicyModel()
    m.add_policy("p", "p", ["alice", "data1", "read"])
    m.add_policy("p", "p", ["bob", "data2", "write"])
    m.add_policy("g", "g", ["alice", "admin"])
    return m
