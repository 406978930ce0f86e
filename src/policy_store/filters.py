# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Equality filters over stored policy records.

``field_index`` follows the engine's partial-rule convention: the first
value in ``field_values`` lines up with slot ``v{field_index}``, the next
with the slot after it, and so on.  Empty values leave their slot
unconstrained.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from policy_store.record import MAX_FIELDS, RECORD_FIELDS


@dataclass(frozen=True)
class Predicate:
    """``field == value`` against one record field."""

    field: str
    value: str

    def matches(self, document: Mapping[str, Any]) -> bool:
        return document.get(self.field) == self.value


def field_predicates(field_index: int, field_values: Sequence[str]) -> list[Predicate]:
    """Translate a field-index/values pair into per-slot predicates.

    Slot ``k`` is constrained to ``field_values[k - field_index]`` when
    ``field_index <= k < field_index + len(field_values)`` and that value
    is non-empty.  A negative ``field_index`` shifts the values left, so
    leading values fall outside the record and are ignored.

    Example:
        >>> field_predicates(1, ["alice"])
        [Predicate(field='v1', value='alice')]
    """
    end = field_index + len(field_values)
    return [
        Predicate(f"v{k}", field_values[k - field_index])
        for k in range(MAX_FIELDS)
        if field_index <= k < end and field_values[k - field_index]
    ]


@dataclass(frozen=True)
class PolicyFilter:
    """Immutable query builder for filtered loads.

    Each call to :meth:`where` returns a new filter with one more equality
    predicate; all predicates must hold for a record to match.  An empty
    filter matches everything.

    Example:
        flt = adapter.query().ptype("p").where("v0", "alice")
        await adapter.load_filtered_policy(model, flt)
    """

    predicates: tuple[Predicate, ...] = ()

    def where(self, field: str, value: str) -> PolicyFilter:
        if field not in RECORD_FIELDS:
            allowed = ", ".join(RECORD_FIELDS)
            raise ValueError(f"Unknown record field '{field}'. Filterable fields: {allowed}")
        return PolicyFilter((*self.predicates, Predicate(field, value)))

    def ptype(self, value: str) -> PolicyFilter:
        return self.where("pType", value)

    @classmethod
    def for_rule(cls, ptype: str, field_index: int, *field_values: str) -> PolicyFilter:
        """Filter for records of ``ptype`` matching a partial rule."""
        return cls((Predicate("pType", ptype), *field_predicates(field_index, field_values)))

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(p.matches(document) for p in self.predicates)
