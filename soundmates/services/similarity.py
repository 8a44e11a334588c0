"""
User-User Taste Similarity.

Scores how alike two users' music taste is using Jaccard similarity over
their followed artists and over the genres of those artists:

    combined = 0.6 * jaccard(artists) + 0.4 * jaccard(genres)

Two modes are supported:
1. Full: every unordered pair of users, O(n^2) set operations.
2. Incremental: one user against everyone else, O(n), used after a
   single profile update.
"""

from collections.abc import Iterable, Set
from dataclasses import dataclass, field

import numpy as np
from scipy import sparse

from soundmates.core.logging import get_logger

logger = get_logger(__name__)

ARTIST_WEIGHT = 0.6
GENRE_WEIGHT = 0.4


@dataclass(frozen=True)
class UserAttributeSet:
    """One user's taste profile, rebuilt on every batch run.

    In the hobby-tag schema the tags are carried in ``genres`` and
    ``artists`` stays empty.
    """

    user_id: str
    artists: frozenset[str] = frozenset()
    genres: frozenset[str] = frozenset()


@dataclass(frozen=True)
class ArtistInfo:
    """Display info used to turn common artist ids into something readable."""

    artist_id: str
    name: str
    image_url: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.artist_id, "name": self.name, "image_url": self.image_url}


@dataclass
class AttributeData:
    """Everything the builder needs, as loaded from storage.

    ``users`` keeps load order; full-mode enumeration follows it.
    """

    users: dict[str, UserAttributeSet] = field(default_factory=dict)
    artists: dict[str, ArtistInfo] = field(default_factory=dict)

    @property
    def user_ids(self) -> list[str]:
        return list(self.users)


@dataclass
class SimilarityRecord:
    """Similarity for one unordered pair, keyed by (user_a_id, user_b_id)."""

    user_a_id: str
    user_b_id: str
    artist_similarity: float
    genre_similarity: float
    combined_similarity: float
    common_artists: list[dict] = field(default_factory=list)
    common_genres: list[str] = field(default_factory=list)

    @property
    def pair(self) -> tuple[str, str]:
        return self.user_a_id, self.user_b_id

    def to_row(self) -> dict:
        return {
            "user_a_id": self.user_a_id,
            "user_b_id": self.user_b_id,
            "artist_similarity": self.artist_similarity,
            "genre_similarity": self.genre_similarity,
            "combined_similarity": self.combined_similarity,
            "common_artists": self.common_artists,
            "common_genres": self.common_genres,
        }


@dataclass(frozen=True)
class JaccardResult:
    similarity: float
    intersection: frozenset


def jaccard(set_a: Set, set_b: Set) -> JaccardResult:
    """
    Jaccard similarity of two sets, plus their intersection.

    Two empty sets score 0.0, not 1.0.
    """
    intersection = frozenset(set_a & set_b)
    union_size = len(set_a) + len(set_b) - len(intersection)
    if union_size == 0:
        return JaccardResult(0.0, intersection)
    return JaccardResult(len(intersection) / union_size, intersection)


def check_weights(artist_weight: float, genre_weight: float) -> None:
    if artist_weight < 0 or genre_weight < 0:
        raise ValueError("Similarity weights must be non-negative")
    if abs(artist_weight + genre_weight - 1.0) > 1e-9:
        raise ValueError(
            f"Similarity weights must sum to 1.0, got {artist_weight} + {genre_weight}"
        )


def combined_similarity(
    artist_sim: float,
    genre_sim: float,
    artist_weight: float = ARTIST_WEIGHT,
    genre_weight: float = GENRE_WEIGHT,
) -> float:
    """Weighted sum of artist and genre similarity, within [0, 1]."""
    return artist_weight * artist_sim + genre_weight * genre_sim


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    """Order a pair so each unordered pair has exactly one key."""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)


class PairwiseSimilarityBuilder:
    """
    Builds SimilarityRecords from loaded attribute data.

    Common artists are resolved to display info through the artist map;
    ids without info are left out of the evidence but still count toward
    the score.
    """

    def __init__(
        self,
        artist_weight: float = ARTIST_WEIGHT,
        genre_weight: float = GENRE_WEIGHT,
    ):
        check_weights(artist_weight, genre_weight)
        self.artist_weight = artist_weight
        self.genre_weight = genre_weight

    def compute_all(self, data: AttributeData) -> list[SimilarityRecord]:
        """
        Compute similarity for every unordered pair of users.

        Pairs are enumerated i < j in load order. Pairs that share no
        artist and no genre are known to score 0 from the overlap matrix
        and skip the set operations.
        """
        user_ids = data.user_ids
        attrs = [data.users[user_id] for user_id in user_ids]

        artist_overlap = overlapping_rows([a.artists for a in attrs])
        genre_overlap = overlapping_rows([a.genres for a in attrs])

        records = []
        for i, attrs_a in enumerate(attrs):
            overlapping = artist_overlap[i] | genre_overlap[i]
            for j in range(i + 1, len(attrs)):
                if j in overlapping:
                    records.append(self._compare(attrs_a, attrs[j], data.artists))
                else:
                    records.append(self._disjoint(attrs_a, attrs[j]))

        logger.debug(f"Computed {len(records)} pairs for {len(user_ids)} users")
        return records

    def compute_for_user(self, user_id: str, data: AttributeData) -> list[SimilarityRecord]:
        """
        Compute similarity between one user and all other users.

        Returns an empty list when the user has no attribute data.
        """
        attrs = data.users.get(user_id)
        if attrs is None:
            return []

        return [
            self._compare(attrs, other, data.artists)
            for other_id, other in data.users.items()
            if other_id != user_id
        ]

    def _compare(
        self,
        attrs_a: UserAttributeSet,
        attrs_b: UserAttributeSet,
        artist_info: dict[str, ArtistInfo],
    ) -> SimilarityRecord:
        artists = jaccard(attrs_a.artists, attrs_b.artists)
        genres = jaccard(attrs_a.genres, attrs_b.genres)
        user_a_id, user_b_id = canonical_pair(attrs_a.user_id, attrs_b.user_id)

        return SimilarityRecord(
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            artist_similarity=artists.similarity,
            genre_similarity=genres.similarity,
            combined_similarity=combined_similarity(
                artists.similarity, genres.similarity, self.artist_weight, self.genre_weight
            ),
            common_artists=resolve_artists(artists.intersection, artist_info),
            common_genres=sorted(genres.intersection),
        )

    def _disjoint(self, attrs_a: UserAttributeSet, attrs_b: UserAttributeSet) -> SimilarityRecord:
        user_a_id, user_b_id = canonical_pair(attrs_a.user_id, attrs_b.user_id)
        return SimilarityRecord(
            user_a_id=user_a_id,
            user_b_id=user_b_id,
            artist_similarity=0.0,
            genre_similarity=0.0,
            combined_similarity=0.0,
        )


def overlapping_rows(item_sets: list[frozenset[str]]) -> list[set[int]]:
    """
    For each set, the indices of the other sets it shares an item with.

    Builds a sparse user x item incidence matrix and multiplies it by its
    transpose; nonzero entries are pairs with a common item.
    """
    item_index: dict[str, int] = {}
    rows: list[int] = []
    cols: list[int] = []
    for row, items in enumerate(item_sets):
        for item in items:
            rows.append(row)
            cols.append(item_index.setdefault(item, len(item_index)))

    incidence = sparse.csr_matrix(
        (
            np.ones(len(rows), dtype=np.int32),
            (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64)),
        ),
        shape=(len(item_sets), max(len(item_index), 1)),
    )
    overlap = (incidence @ incidence.T).tocsr()

    return [
        set(overlap.indices[overlap.indptr[i] : overlap.indptr[i + 1]].tolist())
        for i in range(len(item_sets))
    ]


def resolve_artists(artist_ids: Iterable[str], artist_info: dict[str, ArtistInfo]) -> list[dict]:
    """Map artist ids to display dicts, dropping ids with no known info."""
    resolved = []
    for artist_id in sorted(artist_ids):
        info = artist_info.get(artist_id)
        if info is not None:
            resolved.append(info.to_dict())
    return resolved
