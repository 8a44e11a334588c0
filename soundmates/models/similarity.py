from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from soundmates.core.database import Base

# Byte-order collation on PostgreSQL, so "<" in the check constraint agrees
# with Python string ordering for any user id. SQLite compares bytes already.
PairId = String(36).with_variant(String(36, collation="C"), "postgresql")


class Similarity(Base):
    """Precomputed taste similarity for one unordered pair of users."""

    __tablename__ = "similarities"
    __table_args__ = (
        CheckConstraint("user_a_id < user_b_id", name="canonical_pair_order"),
    )

    # Canonical pair: user_a_id always sorts before user_b_id
    user_a_id: Mapped[str] = mapped_column(
        PairId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    user_b_id: Mapped[str] = mapped_column(
        PairId, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )

    # Similarity metrics, all within [0, 1]
    artist_similarity: Mapped[float] = mapped_column(Float)
    genre_similarity: Mapped[float] = mapped_column(Float)
    combined_similarity: Mapped[float] = mapped_column(Float, index=True)

    # Evidence shown next to a match
    common_artists: Mapped[list] = mapped_column(JSON, default=list)  # [{id, name, image_url}]
    common_genres: Mapped[list] = mapped_column(JSON, default=list)

    calculated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
