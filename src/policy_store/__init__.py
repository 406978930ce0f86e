"""policy_store — document-store persistence for policy-engine rules.

Each rule is stored as one flat record addressed by a hash of its
content.  :class:`DocumentAdapter` implements the engine's storage
adapter: full save/load, incremental add/remove and filtered loads.
"""

from policy_store.adapter import DocumentAdapter
from policy_store.config import AdapterConfig, StoreConfig, create_store
from policy_store.exceptions import (
    AdapterConfigError,
    DecodeError,
    FilteredStateError,
    InvalidStateError,
    PolicyStoreError,
    StoreIOError,
)
from policy_store.filters import PolicyFilter, Predicate, field_predicates
from policy_store.hashing import rule_id
from policy_store.model import PolicyModel, load_policy_line
from policy_store.record import PolicyRecord, encode_rule

__all__ = [
    "AdapterConfig",
    "AdapterConfigError",
    "DecodeError",
    "DocumentAdapter",
    "FilteredStateError",
    "InvalidStateError",
    "PolicyFilter",
    "PolicyModel",
    "PolicyRecord",
    "PolicyStoreError",
    "Predicate",
    "StoreConfig",
    "StoreIOError",
    "create_store",
    "encode_rule",
    "field_predicates",
    "load_policy_line",
    "rule_id",
]
