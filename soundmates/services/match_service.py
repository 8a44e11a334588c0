"""
Match listing built on the batch outputs.

A match is any user whose combined similarity with the requester clears
the threshold. Users in the same community get a score bonus so they
rank ahead of equally similar users elsewhere in the graph.
"""

from sqlalchemy import case, or_
from sqlalchemy.orm import Session

from soundmates.models.community import Community
from soundmates.models.similarity import Similarity
from soundmates.models.user import User
from soundmates.schemas.match import CommonArtist, MatchResponse


def get_community_id(db: Session, user_id: str) -> int | None:
    return (
        db.query(Community.community_id)
        .filter(Community.user_id == user_id)
        .scalar()
    )


def get_matches(
    db: Session,
    user_id: str,
    limit: int = 10,
    threshold: float = 0.20,
    community_bonus: float = 0.2,
) -> list[MatchResponse] | None:
    """
    Get a user's best matches.

    Args:
        db: Database session
        user_id: User to find matches for
        limit: Maximum number of matches
        threshold: Minimum combined similarity
        community_bonus: Added to the score when both users share a community

    Returns:
        Matches sorted by match score, or None if the user does not exist
    """
    if db.get(User, user_id) is None:
        return None

    my_community = get_community_id(db, user_id)

    other_id = case(
        (Similarity.user_a_id == user_id, Similarity.user_b_id),
        else_=Similarity.user_a_id,
    )
    rows = (
        db.query(Similarity, User, Community.community_id)
        .join(User, User.id == other_id)
        .outerjoin(Community, Community.user_id == User.id)
        .filter(
            or_(Similarity.user_a_id == user_id, Similarity.user_b_id == user_id),
            Similarity.combined_similarity >= threshold,
        )
        .all()
    )

    matches = []
    for similarity, other, community_id in rows:
        same_community = my_community is not None and community_id == my_community
        score = similarity.combined_similarity + (community_bonus if same_community else 0.0)
        matches.append(
            MatchResponse(
                user_id=other.id,
                nickname=other.nickname,
                profile_image_url=other.profile_image_url,
                bio=other.bio,
                artist_similarity=similarity.artist_similarity,
                genre_similarity=similarity.genre_similarity,
                combined_similarity=similarity.combined_similarity,
                common_artists=[CommonArtist(**a) for a in similarity.common_artists or []],
                common_genres=list(similarity.common_genres or []),
                community_id=community_id,
                is_same_community=same_community,
                match_score=round(score, 6),
            )
        )

    matches.sort(key=lambda m: (-m.match_score, m.user_id))
    return matches[:limit]
