"""
policy_store — Hello World

Rules live in a document store, one document per rule, keyed by a hash
of the rule's content.  The adapter saves, loads and edits them for the
enforcement engine.
"""

import asyncio
import logging

from policy_store import (
    AdapterConfig,
    DocumentAdapter,
    FilteredStateError,
    PolicyModel,
    StoreConfig,
)


def show(title: str, model: PolicyModel) -> None:
    print(f"  {title}")
    for sec in ("p", "g"):
        for ptype, rule in model.rules(sec):
            print(f"    {ptype}, {', '.join(rule)}")


async def main():
    logging.basicConfig(level=logging.INFO)

    # ──────────────────────────────────────
    #  1. Create the adapter (swap "memory" for "sqlite" / "firestore")
    # ──────────────────────────────────────
    adapter = DocumentAdapter.from_config(
        AdapterConfig(collection="casbin_rule", store=StoreConfig(type="memory"))
    )

    # ──────────────────────────────────────
    #  2. Save a whole rule set
    # ──────────────────────────────────────
    model = PolicyModel()
    model.add_policy("p", "p", ["alice", "data1", "read"])
    model.add_policy("p", "p", ["bob", "data2", "write"])
    model.add_policy("p", "p", ["admin", "data2", "read"])
    model.add_policy("g", "g", ["alice", "admin"])
    await adapter.save_policy(model)

    # ──────────────────────────────────────
    #  3. Incremental edits
    # ──────────────────────────────────────
    await adapter.add_policy("p", "p", ["carol", "data3", "read"])
    await adapter.remove_policy("p", "p", ["bob", "data2", "write"])
    await adapter.remove_filtered_policy("p", "p", 1, "data2")  # every rule on data2

    loaded = PolicyModel()
    await adapter.load_policy(loaded)
    show("Full load:", loaded)

    # ──────────────────────────────────────
    #  4. Filtered load — only alice's rules
    # ──────────────────────────────────────
    partial = PolicyModel()
    await adapter.load_filtered_policy(partial, adapter.query().where("v0", "alice"))
    show("Filtered load (v0 == alice):", partial)

    try:
        await adapter.save_policy(partial)
    except FilteredStateError as e:
        print(f"  [REFUSED] {e}")

    await adapter.close()


if __name__ == "__main__":
    asyncio.run(main())
