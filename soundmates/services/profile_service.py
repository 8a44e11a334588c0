"""
Profile attribute writes.

Saving a profile replaces the user's artist (or hobby) rows; similarity
recomputation is scheduled separately by the API layer.
"""

import json

from sqlalchemy.orm import Session

from soundmates.core.logging import get_logger
from soundmates.models.attribute import UserArtist, UserHobby
from soundmates.models.user import User
from soundmates.schemas.profile import FollowedArtist
from soundmates.services.attribute_loader import normalize_tag

logger = get_logger(__name__)


def get_or_create_user(db: Session, user_id: str) -> User:
    """Fetch a user by id, creating an empty profile if needed."""
    user = db.get(User, user_id)
    if user is None:
        user = User(id=user_id)
        db.add(user)
        db.flush()
    return user


def save_user_artists(db: Session, user_id: str, artists: list[FollowedArtist]) -> int:
    """
    Replace all followed artists for a user.

    Duplicate artist ids keep the last entry.

    Returns:
        Number of artists saved
    """
    get_or_create_user(db, user_id)
    db.query(UserArtist).filter(UserArtist.user_id == user_id).delete()

    unique = {artist.id: artist for artist in artists}
    for artist in unique.values():
        db.add(
            UserArtist(
                user_id=user_id,
                artist_id=artist.id,
                artist_name=artist.name,
                genres=json.dumps(artist.genres),
                popularity=artist.popularity,
                image_url=artist.image_url,
            )
        )

    db.commit()
    logger.info(f"Saved {len(unique)} artists for user {user_id}")
    return len(unique)


def save_user_hobbies(db: Session, user_id: str, hobbies: list[str]) -> int:
    """
    Replace all hobby tags for a user.

    Tags are normalized and deduplicated; blank tags are dropped.

    Returns:
        Number of tags saved
    """
    get_or_create_user(db, user_id)
    db.query(UserHobby).filter(UserHobby.user_id == user_id).delete()

    tags = sorted({normalize_tag(tag) for tag in hobbies} - {""})
    for tag in tags:
        db.add(UserHobby(user_id=user_id, tag=tag))

    db.commit()
    logger.info(f"Saved {len(tags)} hobby tags for user {user_id}")
    return len(tags)
