# scripts/smoke.py
"""
Smoke Test Script for the mailblocks editing core.

Runs a random sequence of editor operations (add, duplicate, move, delete,
resize) against an in-memory store, checking the document invariants after
every step, then prints the final tree summary.

Usage
-----
1. Default run (200 steps, seed 0):
    $ python scripts/smoke.py

2. Longer run with cascading deletes, saving the result:
    $ python scripts/smoke.py --steps 2000 --seed 7 --cascade --out artifacts/smoke.json
"""

import argparse
import logging
import random
import sys
from pathlib import Path

from mailblocks.core.contracts.block import BlockType
from mailblocks.core.registry import palette
from mailblocks.core.store.memory import DocumentStore
from mailblocks.core.store.storage import write_document
from mailblocks.core.tree.integrity import check_integrity, orphan_ids
from mailblocks.core.tree.operations import (
    DeletePolicy,
    TreeEdit,
    add_block,
    delete_block,
    duplicate_block,
    move_block,
    resize_columns,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

ADDABLE = [spec.type for spec in palette()]
CONTAINERS = {BlockType.EMAIL_LAYOUT, BlockType.CONTAINER, BlockType.COLUMNS_CONTAINER}


def random_step(store: DocumentStore, rng: random.Random, policy: DeletePolicy) -> TreeEdit:
    """Pick one operation and a target at random and return its edit."""
    doc = store.get_document()
    ids = sorted(doc)
    op = rng.choice(["add", "add", "duplicate", "move", "delete", "columns"])

    if op == "add":
        parents = [i for i in ids if doc[i].type in CONTAINERS]
        parent = rng.choice(parents)
        return add_block(
            doc,
            rng.choice(ADDABLE),
            parent,
            slot=rng.randrange(3),
            id_factory=store.id_factory,
        )
    target = rng.choice(ids)
    if op == "duplicate":
        return duplicate_block(doc, target, id_factory=store.id_factory)
    if op == "move":
        return move_block(doc, target, rng.choice(["up", "down"]))
    if op == "delete":
        return delete_block(doc, target, policy=policy)
    return resize_columns(doc, target, rng.choice([2, 3]))


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run mailblocks Smoke Test")
    parser.add_argument("--steps", type=int, default=200, help="Number of random operations")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--cascade", action="store_true", help="Delete descendants too")
    parser.add_argument("--out", type=str, help="Write the final document to this JSON file")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    policy = DeletePolicy.CASCADE if args.cascade else DeletePolicy.ORPHAN
    store = DocumentStore()
    applied = 0

    for step in range(args.steps):
        edit = random_step(store, rng, policy)
        store.apply(edit)
        applied += not edit.is_noop
        issues = check_integrity(store.get_document(), allow_orphans=True)
        if issues:
            print(f"\n❌ Invariant broken at step {step}:")
            for issue in issues:
                print(f"  - {issue}")
            sys.exit(1)

    doc = store.get_document()
    print("\n" + "=" * 60)
    print("✅ Smoke run finished without invariant violations")
    print("=" * 60)
    print(f"  steps      : {args.steps} ({applied} changed the document)")
    print(f"  blocks     : {len(doc)}")
    print(f"  orphans    : {len(orphan_ids(doc))}")
    print(f"  revision   : {store.revision}")

    if args.out:
        path = write_document(Path(args.out), doc)
        print(f"\n💾 Document saved to: {path}")


if __name__ == "__main__":
    main()
