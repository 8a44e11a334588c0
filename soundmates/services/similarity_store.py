"""
Persistence for similarity and community results.

These writers are the only code that mutates the ``similarities`` and
``communities`` tables. They never commit: the batch orchestrator owns
the transaction, so a failure anywhere rolls everything back.
"""

from dataclasses import dataclass

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from soundmates.core.logging import get_logger
from soundmates.models.community import Community
from soundmates.models.similarity import Similarity
from soundmates.services.similarity import SimilarityRecord

logger = get_logger(__name__)

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

# Keeps each INSERT statement well under driver parameter limits
INSERT_CHUNK_SIZE = 1000


@dataclass(frozen=True)
class CommunityAssignment:
    user_id: str
    community_id: int


def _chunks(rows: list[dict], size: int = INSERT_CHUNK_SIZE):
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


class SimilarityStoreWriter:
    """Writes SimilarityRecords into the similarities table."""

    def __init__(self, db: Session):
        self.db = db

    def replace_all(self, records: list[SimilarityRecord]) -> int:
        """
        Delete every stored similarity and insert the given records.

        Returns:
            Number of rows inserted
        """
        self.db.execute(delete(Similarity))

        rows = [record.to_row() for record in records]
        for chunk in _chunks(rows):
            self.db.execute(insert(Similarity), chunk)

        logger.info(f"Replaced similarity table with {len(rows)} rows")
        return len(rows)

    def upsert(self, records: list[SimilarityRecord]) -> int:
        """
        Insert records, overwriting existing rows for the same pair.

        Scores, evidence and ``calculated_at`` are refreshed on conflict.

        Returns:
            Number of rows inserted or updated
        """
        if not records:
            return 0

        dialect = self.db.get_bind().dialect.name
        dialect_insert = UPSERT_DIALECTS.get(dialect)
        if dialect_insert is None:
            raise ValueError(f"Upsert is not supported on the {dialect} dialect")

        rows = [record.to_row() for record in records]
        for chunk in _chunks(rows):
            stmt = dialect_insert(Similarity).values(chunk)
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_a_id", "user_b_id"],
                set_={
                    "artist_similarity": stmt.excluded.artist_similarity,
                    "genre_similarity": stmt.excluded.genre_similarity,
                    "combined_similarity": stmt.excluded.combined_similarity,
                    "common_artists": stmt.excluded.common_artists,
                    "common_genres": stmt.excluded.common_genres,
                    "calculated_at": func.now(),
                },
            )
            self.db.execute(stmt)

        logger.info(f"Upserted {len(rows)} similarity rows")
        return len(rows)


def load_similarity_records(db: Session) -> list[SimilarityRecord]:
    """Read every stored similarity back as SimilarityRecords."""
    # Plain columns, so rows just upserted in this transaction are read fresh
    rows = db.execute(
        select(
            Similarity.user_a_id,
            Similarity.user_b_id,
            Similarity.artist_similarity,
            Similarity.genre_similarity,
            Similarity.combined_similarity,
            Similarity.common_artists,
            Similarity.common_genres,
        ).order_by(Similarity.user_a_id, Similarity.user_b_id)
    ).all()
    return [
        SimilarityRecord(
            user_a_id=row.user_a_id,
            user_b_id=row.user_b_id,
            artist_similarity=row.artist_similarity,
            genre_similarity=row.genre_similarity,
            combined_similarity=row.combined_similarity,
            common_artists=list(row.common_artists or []),
            common_genres=list(row.common_genres or []),
        )
        for row in rows
    ]


class CommunityStoreWriter:
    """Writes community assignments into the communities table."""

    def __init__(self, db: Session):
        self.db = db

    def clear(self) -> None:
        self.db.execute(delete(Community))

    def replace_all(self, assignments: list[CommunityAssignment]) -> int:
        """Drop assignments from earlier runs and store these."""
        self.clear()

        rows = [
            {"user_id": a.user_id, "community_id": a.community_id} for a in assignments
        ]
        for chunk in _chunks(rows):
            self.db.execute(insert(Community), chunk)

        logger.info(f"Stored {len(rows)} community assignments")
        return len(rows)
