# Copyright (c) 2024 OpenMined
# SPDX-License-Identifier: Apache-2.0
"""PolicyModel — the enforcement engine's in-memory rule set.

Rules are grouped by *section* (``"p"`` for policy rules, ``"g"`` for
role/grouping rules) and, within a section, by *ptype* (``"p"``, ``"p2"``,
``"g"``, ``"g2"`` ...).  The adapter only reads rules out of the model and
feeds decoded lines back in through :func:`load_policy_line`.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field

DEFAULT_DEFINITIONS: dict[str, tuple[str, ...]] = {"p": ("p",), "g": ("g",)}


@dataclass
class Assertion:
    """All rules of one ptype."""

    key: str
    policy: list[list[str]] = field(default_factory=list)


class PolicyModel:
    """Sectioned rule set.

    Parameters:
        definitions: Maps each section to the ptypes it declares.  Lines for
                     undeclared ptypes are ignored on load.  Defaults to
                     ``{"p": ("p",), "g": ("g",)}``.
    """

    def __init__(self, definitions: Mapping[str, Iterable[str]] | None = None) -> None:
        self.sections: dict[str, dict[str, Assertion]] = {}
        for sec, ptypes in (definitions or DEFAULT_DEFINITIONS).items():
            for ptype in ptypes:
                self.add_def(sec, ptype)

    def add_def(self, sec: str, ptype: str) -> None:
        self.sections.setdefault(sec, {}).setdefault(ptype, Assertion(ptype))

    def has_def(self, sec: str, ptype: str) -> bool:
        return ptype in self.sections.get(sec, {})

    def get_policy(self, sec: str, ptype: str) -> list[list[str]]:
        assertion = self.sections.get(sec, {}).get(ptype)
        return [list(rule) for rule in assertion.policy] if assertion else []

    def has_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        return list(rule) in self.get_policy(sec, ptype)

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        self.add_def(sec, ptype)
        self.sections[sec][ptype].policy.append(list(rule))

    def rules(self, sec: str) -> Iterator[tuple[str, list[str]]]:
        """Yield ``(ptype, rule)`` for every rule in *sec*."""
        for ptype, assertion in self.sections.get(sec, {}).items():
            for rule in assertion.policy:
                yield ptype, rule

    def clear_policy(self) -> None:
        for assertions in self.sections.values():
            for assertion in assertions.values():
                assertion.policy.clear()

    def __len__(self) -> int:
        return sum(len(a.policy) for s in self.sections.values() for a in s.values())


def load_policy_line(line: str, model: PolicyModel) -> None:
    """Append one policy line (``"p, alice, data1, read"``) to *model*.

    Blank lines and ``#`` comments are skipped.  The first token is the
    ptype; its first character names the section.
    """
    line = line.strip()
    if not line or line.startswith("#"):
        return

    tokens = [token.strip() for token in line.split(",")]
    key = tokens[0]
    sec = key[:1]
    if not model.has_def(sec, key):
        return
    model.sections[sec][key].policy.append(tokens[1:])
