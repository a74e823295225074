"""
One-shot repair: rewrite every sibling chain so its prev/next links match
the order the tree view already shows.

Broken, branching or cyclic links are tolerated on read (the view falls
back to creation-time/name order), but they stay broken in storage until
something rewrites them. This script lists the anomalies it finds, then
records a single LinksRepaired event that makes each chain clean.

With --replay the nodes table is first rebuilt from the event log, for a
projection that was edited by hand or left half-written.

Usage:
    cd backend
    python scripts/repair_sibling_links.py [--dry-run] [--replay]
"""

import asyncio
import os
import sys
from pathlib import Path

from hosttree.assets.service import AssetService
from hosttree.db.connection import Database
from hosttree.ordering.moves import compute_repair
from hosttree.ordering.reconstruct import tree_anomalies


def get_db_path() -> Path:
    """Resolve the database path: HOSTTREE_DB_PATH or backend/hosttree.db."""
    if os.environ.get("HOSTTREE_DB_PATH"):
        return Path(os.environ["HOSTTREE_DB_PATH"])
    backend_dir = Path(__file__).resolve().parent.parent
    return backend_dir / "hosttree.db"


async def repair(db_path: Path, dry_run: bool, replay: bool = False) -> int:
    db = await Database.connect(str(db_path))
    try:
        service = AssetService(db)
        if replay:
            replayed = await service.rebuild_projection()
            print(f"Rebuilt projection from {replayed} event(s).")
        repo = await service.snapshot()

        anomalies = tree_anomalies(repo)
        if not anomalies:
            print("All sibling chains are consistent.")
            return 0
        for anomaly in anomalies:
            where = anomaly.parent_id or "root"
            print(f"  {anomaly.kind} under {where}: {', '.join(anomaly.node_ids)}")

        if dry_run:
            planned = compute_repair(repo)
            print(f"\nDry run: would rewrite links on {len(planned)} node(s).")
            return len(planned)

        result = await service.repair_links()
        print(f"\nDone. Rewrote links on {len(result.updates)} node(s).")
        return len(result.updates)
    finally:
        await db.close()


if __name__ == "__main__":
    db_path = get_db_path()
    if not db_path.exists():
        print(f"Database not found at {db_path}")
        sys.exit(1)
    print(f"Database: {db_path}")
    args = sys.argv[1:]
    asyncio.run(repair(db_path, dry_run="--dry-run" in args, replay="--replay" in args))
