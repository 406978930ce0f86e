# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Custom exceptions for the policy_store package."""

from __future__ import annotations


class PolicyStoreError(Exception):
    """Base exception for all policy-store errors."""


class InvalidStateError(PolicyStoreError):
    """Raised when an operation is not allowed in the current state."""


class FilteredStateError(InvalidStateError):
    """Raised when a full save is attempted after a filtered load."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(
            f"Cannot save a filtered policy to '{collection}': "
            "perform an unfiltered load_policy() first"
        )


class StoreIOError(PolicyStoreError):
    """Raised when the underlying document store fails."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        msg = f"Store error during '{operation}'"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class DecodeError(PolicyStoreError):
    """Raised when a stored document cannot be rendered as a policy line."""

    def __init__(self, doc_id: str | None, detail: str) -> None:
        self.doc_id = doc_id
        super().__init__(f"Cannot decode document '{doc_id or '?'}': {detail}")


class AdapterConfigError(PolicyStoreError):
    """Raised when the adapter or its store is misconfigured."""
