"""Script to reconcile status history for entities changed in a time window

Run: python -m scripts.reconcile_history --since 2026-10-01T00:00:00Z [--until ...] [--type lead]
"""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config.settings import settings
from app.domain.enums import EntityType
from app.services.runtime import EngineRuntime
from app.utils.logger import setup_logging
from app.utils.time import parse_iso, seconds_ago


def main():
    parser = argparse.ArgumentParser(description="Append catch-up history records for drifted entities")
    parser.add_argument("--since", required=True, help="ISO 8601 start of the window")
    parser.add_argument(
        "--until",
        help="ISO 8601 end of the window (default: now minus the reconciliation grace period)"
    )
    parser.add_argument(
        "--type",
        dest="entity_types",
        action="append",
        choices=[t.value for t in EntityType],
        help="Entity type to sweep; repeat for several (default: all)"
    )
    parser.add_argument("--limit", type=int, default=settings.reconciliation_batch_size)
    args = parser.parse_args()

    setup_logging()
    since = parse_iso(args.since)
    until = parse_iso(args.until) if args.until else seconds_ago(settings.reconciliation_grace_seconds)
    entity_types = [EntityType(t) for t in args.entity_types] if args.entity_types else None

    runtime = EngineRuntime()
    results = runtime.reconciler.sweep(since, until, limit=args.limit, entity_types=entity_types)

    repaired = [r for r in results if not r.in_sync]
    print(f"Checked {len(results)} entities between {since.isoformat()} and {until.isoformat()}")
    for result in repaired:
        print(
            f"Repaired {result.entity_type.value} {result.entity_id}: "
            f"{result.history_status_id or '-'} -> {result.cached_status_id}"
        )
    print(f"\nTotal repaired: {len(repaired)}")


if __name__ == "__main__":
    main()
