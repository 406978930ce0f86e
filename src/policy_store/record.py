# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""PolicyRecord — the flat, stored form of one policy rule.

A rule is a rule-type tag (``p``, ``g``, ``g2`` ...) plus up to six
positional values.  The record stores those values in fixed slots
``v0``..``v5`` and is addressed by a hash of its content, so writing the
same rule twice always lands on the same document.

Stored document shape::

    {"id": "<hex>", "pType": "p", "v0": "alice", "v1": "data1",
     "v2": "read", "v3": "", "v4": "", "v5": ""}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from policy_store.exceptions import DecodeError
from policy_store.hashing import rule_id

logger = logging.getLogger(__name__)

MAX_FIELDS = 6
VALUE_FIELDS: tuple[str, ...] = tuple(f"v{i}" for i in range(MAX_FIELDS))
RECORD_FIELDS: tuple[str, ...] = ("id", "pType", *VALUE_FIELDS)
LINE_SEPARATOR = ", "


class PolicyRecord(BaseModel):
    """Immutable storage record for a single rule.

    Attributes:
        id:    Content hash of ``ptype`` and the rule values.
        ptype: Rule-type tag, serialized as ``pType``.
        v0-v5: Positional values, empty string when unused.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    ptype: str = Field(alias="pType")
    v0: str = ""
    v1: str = ""
    v2: str = ""
    v3: str = ""
    v4: str = ""
    v5: str = ""

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("id must not be empty")
        return value

    # ── codec ────────────────────────────────────────────────

    @classmethod
    def encode(cls, ptype: str, rule: Sequence[str]) -> PolicyRecord:
        """Build the record for ``ptype`` and *rule*.

        Values past the sixth still feed the id but have no slot to live in.
        """
        if len(rule) > MAX_FIELDS:
            logger.warning(
                "Rule %s has %d fields; only the first %d are stored",
                ptype,
                len(rule),
                MAX_FIELDS,
            )
        slots = dict(zip(VALUE_FIELDS, rule, strict=False))
        return cls(id=rule_id(ptype, rule), ptype=ptype, **slots)

    def to_line(self) -> str:
        """Render the record as one engine-loadable policy line.

        Each slot is emitted independently when non-empty; a gap does not
        stop later slots from being written.
        """
        parts = [self.ptype]
        parts.extend(value for value in self.values if value)
        return LINE_SEPARATOR.join(parts)

    @property
    def values(self) -> tuple[str, ...]:
        return (self.v0, self.v1, self.v2, self.v3, self.v4, self.v5)

    @property
    def rule(self) -> list[str]:
        """The stored values with trailing empty slots trimmed."""
        values = list(self.values)
        while values and not values[-1]:
            values.pop()
        return values

    # ── document mapping ─────────────────────────────────────

    def to_document(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(
        cls,
        data: Mapping[str, Any] | None,
        doc_id: str | None = None,
    ) -> PolicyRecord:
        """Validate a stored document.

        Raises:
            DecodeError: If the document is missing, lacks an ``id`` or
                ``pType``, or holds a non-string value.
        """
        if data is None:
            raise DecodeError(doc_id, "document has no data")
        try:
            record = cls.model_validate(data)
        except ValidationError as e:
            errors = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise DecodeError(doc_id or data.get("id"), errors) from e
        if not record.ptype:
            raise DecodeError(doc_id or record.id, "pType must not be empty")
        return record


def encode_rule(ptype: str, rule: Sequence[str]) -> PolicyRecord:
    """Shorthand for :meth:`PolicyRecord.encode`."""
    return PolicyRecord.encode(ptype, rule)
