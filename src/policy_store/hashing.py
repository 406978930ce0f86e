# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""Content-derived identifiers for policy rules.

Ids are 8-byte BLAKE2b digests rendered as 16 hex characters.  They are not
compatible with ids written by stores that keyed rules with the Meow
checksum, so collections written that way must be re-saved rather than
edited in place.
"""

from __future__ import annotations

import hashlib
from collections.abc import Sequence

DIGEST_SIZE = 8


def checksum(data: bytes) -> str:
    """Return a hex digest of *data*.  Empty input is valid."""
    return hashlib.blake2b(data, digest_size=DIGEST_SIZE).hexdigest()


def rule_id(ptype: str, rule: Sequence[str]) -> str:
    """Identifier of the rule ``ptype, *rule``.

    Identical rules always map to the same id, so the id doubles as the
    document key in the store.
    """
    data = ",".join([ptype, *rule])
    return checksum(data.encode("utf-8"))
