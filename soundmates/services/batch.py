"""
Similarity & community batch job.

One run is one transaction:

    load attributes -> pairwise similarities -> store similarities
        -> similarity graph -> Louvain communities -> store communities

Any failure rolls the whole run back. Fewer than two users is a no-op
("skipped"), not an error.

Only one run may be active at a time. ``BatchGuard`` serialises runs
inside the process and, on PostgreSQL, across processes with a
transaction-scoped advisory lock.
"""

import threading
import uuid
from contextlib import contextmanager
from dataclasses import asdict, dataclass

from sqlalchemy import text
from sqlalchemy.orm import Session

from soundmates.core.config import Settings, get_settings
from soundmates.core.database import Database
from soundmates.core.logging import batch_run_var, get_context_logger, get_logger
from soundmates.services.attribute_loader import load_attribute_data
from soundmates.services.community import detect_communities
from soundmates.services.graph import build_similarity_graph, connected_users
from soundmates.services.similarity import PairwiseSimilarityBuilder
from soundmates.services.similarity_store import (
    CommunityAssignment,
    CommunityStoreWriter,
    SimilarityStoreWriter,
    load_similarity_records,
)

logger = get_logger(__name__)

COMPLETED = "completed"
SKIPPED = "skipped"

FULL = "full"
INCREMENTAL = "incremental"

# pg_advisory_xact_lock key shared by every similarity batch
ADVISORY_LOCK_KEY = 7_340_117


class BatchInProgressError(RuntimeError):
    """Another similarity batch is already running."""


@dataclass
class BatchResult:
    status: str
    mode: str
    message: str
    users_processed: int = 0
    similarity_pairs: int = 0
    edges: int = 0
    communities: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class BatchGuard:
    """Single-flight guard around batch runs."""

    def __init__(self):
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self, db: Session, wait: bool = False):
        """
        Hold the batch lock for the duration of a run.

        Args:
            db: Session whose transaction scopes the advisory lock
            wait: Block until the lock is free instead of failing fast

        Raises:
            BatchInProgressError: If ``wait`` is False and a run is active
        """
        if not self._lock.acquire(blocking=wait):
            raise BatchInProgressError("A similarity batch is already running")
        try:
            self._acquire_advisory_lock(db, wait)
            yield
        finally:
            self._lock.release()

    def _acquire_advisory_lock(self, db: Session, wait: bool) -> None:
        if db.get_bind().dialect.name != "postgresql":
            return

        params = {"key": ADVISORY_LOCK_KEY}
        if wait:
            db.execute(text("SELECT pg_advisory_xact_lock(:key)"), params)
            return

        acquired = db.execute(text("SELECT pg_try_advisory_xact_lock(:key)"), params).scalar()
        if not acquired:
            db.rollback()
            raise BatchInProgressError("A similarity batch is running in another process")


class BatchOrchestrator:
    """
    Runs the similarity and community batch inside one transaction.

    Full mode recomputes every pair and replaces the similarity table.
    Incremental mode recomputes one user's pairs, upserts them, then
    re-clusters from the stored table so communities stay current.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings | None = None,
        guard: BatchGuard | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.guard = guard or BatchGuard()

        artist_weight, genre_weight = self.settings.similarity_weights
        self.builder = PairwiseSimilarityBuilder(artist_weight, genre_weight)

    def run_full(self, wait: bool = False) -> BatchResult:
        """Recompute all pairs and communities."""
        return self._run(FULL, None, wait)

    def run_incremental(self, user_id: str, wait: bool = True) -> BatchResult:
        """Recompute one user's pairs, then communities."""
        return self._run(INCREMENTAL, user_id, wait)

    def _run(self, mode: str, user_id: str | None, wait: bool) -> BatchResult:
        token = batch_run_var.set(uuid.uuid4().hex)
        try:
            logger.info(
                f"=== Start: similarity & graph calculation ({mode}) ===",
                extra={"extra_fields": {"mode": mode, "user_id": user_id}},
            )
            with self.guard.hold(self.db, wait=wait):
                try:
                    result = self._execute(mode, user_id)
                    if result.status == SKIPPED:
                        self.db.rollback()
                    else:
                        self.db.commit()
                except Exception:
                    self.db.rollback()
                    logger.error(f"Batch ({mode}) failed, transaction rolled back", exc_info=True)
                    raise

            logger.info(
                f"=== End: {result.status} - {result.message} ===",
                extra={
                    "extra_fields": {
                        "mode": result.mode,
                        "users_processed": result.users_processed,
                        "similarity_pairs": result.similarity_pairs,
                        "edges": result.edges,
                        "communities": result.communities,
                    }
                },
            )
            return result
        finally:
            batch_run_var.reset(token)

    def _execute(self, mode: str, user_id: str | None) -> BatchResult:
        data = load_attribute_data(self.db, self.settings.ATTRIBUTE_SCHEMA)
        user_count = len(data.users)
        logger.info(f"Step 1: Loaded data for {user_count} users")

        if user_count < 2:
            return BatchResult(
                status=SKIPPED,
                mode=mode,
                message="Need at least 2 users to calculate similarities",
                users_processed=user_count,
            )

        similarity_writer = SimilarityStoreWriter(self.db)

        if mode == FULL:
            records = self.builder.compute_all(data)
            logger.info(f"Step 2: Calculated {len(records)} similarity pairs")
            similarity_writer.replace_all(records)
            graph_records = records
        else:
            if user_id not in data.users:
                return BatchResult(
                    status=SKIPPED,
                    mode=mode,
                    message=f"User {user_id} has no attribute data",
                    users_processed=user_count,
                )
            records = self.builder.compute_for_user(user_id, data)
            logger.info(f"Step 2: Calculated {len(records)} similarity pairs for user {user_id}")
            similarity_writer.upsert(records)
            # Stored rows may still mention users whose attributes are gone
            graph_records = [
                record
                for record in load_similarity_records(self.db)
                if record.user_a_id in data.users and record.user_b_id in data.users
            ]
        logger.info("Step 3: Saved similarities")

        graph = build_similarity_graph(
            data.user_ids, graph_records, self.settings.SIMILARITY_THRESHOLD
        )
        edge_count = graph.number_of_edges()
        logger.info(
            f"Step 4: Built graph with {graph.number_of_nodes()} nodes and {edge_count} edges "
            f"(threshold {self.settings.SIMILARITY_THRESHOLD})"
        )

        community_writer = CommunityStoreWriter(self.db)
        community_count = 0
        labels = {}
        if edge_count > 0:
            labels = detect_communities(
                graph,
                resolution=self.settings.COMMUNITY_RESOLUTION,
                seed=self.settings.COMMUNITY_SEED,
            )
        if labels:
            linked = connected_users(graph)
            assignments = [
                CommunityAssignment(user_id=node, community_id=labels[node])
                for node in sorted(linked)
            ]
            community_writer.replace_all(assignments)
            community_count = len({a.community_id for a in assignments})
            logger.info(f"Step 5: Saved {community_count} communities")
        else:
            community_writer.clear()
            logger.info("Step 5: Nothing to cluster, cleared communities")

        return BatchResult(
            status=COMPLETED,
            mode=mode,
            message="Similarity and community calculation complete",
            users_processed=user_count,
            similarity_pairs=len(records),
            edges=edge_count,
            communities=community_count,
        )


def run_full_batch(db: Session, settings: Settings | None = None, guard: BatchGuard | None = None) -> BatchResult:
    """Run the full batch on an open session."""
    return BatchOrchestrator(db, settings, guard).run_full()


def run_batch_in_background(
    database: Database,
    guard: BatchGuard,
    user_id: str | None = None,
    settings: Settings | None = None,
) -> None:
    """
    Background entry point for recomputation after a profile save.

    Best effort and at most once: the run gets its own session, waits for
    any active batch, and is not retried. Failures are logged, not raised.
    """
    log = get_context_logger(__name__, user_id=user_id, trigger="profile_save")
    db = database.session()
    try:
        orchestrator = BatchOrchestrator(db, settings, guard)
        if user_id is None:
            result = orchestrator.run_full(wait=True)
        else:
            result = orchestrator.run_incremental(user_id, wait=True)
        log.info(
            f"Background recompute finished: {result.status}",
            extra={"extra_fields": {"status": result.status}},
        )
    except Exception:
        log.exception(f"Background recompute failed (user_id={user_id})")
    finally:
        db.close()
