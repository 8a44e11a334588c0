"""
Batch job for computing user similarities and communities.

Run periodically, or by hand after bulk profile imports:

    python -m soundmates.scripts.compute_similarities
    python -m soundmates.scripts.compute_similarities --user-id <uuid>
"""

import argparse
import sys
import time

from soundmates.core.config import get_settings
from soundmates.core.database import Database
from soundmates.core.logging import setup_logging
from soundmates.services.batch import BatchInProgressError, BatchOrchestrator


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Compute taste similarities and communities")
    parser.add_argument(
        "--user-id",
        help="Only recompute pairs involving this user (upserts instead of replacing)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run batch similarity computation."""
    args = parse_args(argv)
    settings = get_settings()
    setup_logging()

    mode = "incremental" if args.user_id else "full"
    print(f"Starting {mode} similarity computation...\n")
    start_time = time.time()

    database = Database(settings.DATABASE_URL)
    db = database.session()

    try:
        orchestrator = BatchOrchestrator(db, settings)
        if args.user_id:
            result = orchestrator.run_incremental(args.user_id, wait=False)
        else:
            result = orchestrator.run_full()

        elapsed = time.time() - start_time

        if result.status == "skipped":
            print(f"\n- Skipped: {result.message}")
            return 0

        print("\n=== Computation Complete ===")
        print(f"Time elapsed: {elapsed:.1f} seconds")
        print(f"Users processed: {result.users_processed}")
        print(f"Similarity pairs computed: {result.similarity_pairs}")
        print(f"Graph edges (>= {settings.SIMILARITY_THRESHOLD}): {result.edges}")
        print(f"Communities detected: {result.communities}")
        print("\n✓ Batch job complete!")
        return 0

    except BatchInProgressError as e:
        print(f"\n✗ {e}")
        return 2

    except Exception as e:
        print(f"\n✗ Error during computation: {e}")
        raise

    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    sys.exit(main())
