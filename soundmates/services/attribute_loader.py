"""
Loads every user's attribute set for a batch run.

This is where raw rows become typed records: genre lists arrive as JSON
text and are decoded here, once.
"""

import json

from sqlalchemy import select
from sqlalchemy.orm import Session

from soundmates.core.logging import get_logger
from soundmates.models.attribute import UserArtist, UserHobby
from soundmates.services.similarity import ArtistInfo, AttributeData, UserAttributeSet

logger = get_logger(__name__)

SCHEMAS = ("artists", "hobbies")


def normalize_tag(value: str) -> str:
    """Lowercase and trim a genre or hobby tag."""
    return value.lower().strip()


def parse_genres(raw: str | None) -> list[str]:
    """
    Decode a JSON genre list into normalized genre strings.

    Raises:
        ValueError: If the payload is not valid JSON or not a list
    """
    payload = json.loads(raw or "[]")
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")

    genres = []
    for genre in payload:
        if not isinstance(genre, str):
            continue
        genre = normalize_tag(genre)
        if genre:
            genres.append(genre)
    return genres


def load_attribute_data(db: Session, schema: str = "artists") -> AttributeData:
    """
    Load attribute sets for all users.

    Args:
        db: Database session (the batch transaction)
        schema: "artists" for followed artists and genres, "hobbies" for tags

    Returns:
        AttributeData with users in load order
    """
    if schema == "artists":
        return _load_artists(db)
    if schema == "hobbies":
        return _load_hobbies(db)
    raise ValueError(f"Unknown attribute schema: {schema!r}")


def _load_artists(db: Session) -> AttributeData:
    rows = db.execute(
        select(
            UserArtist.user_id,
            UserArtist.artist_id,
            UserArtist.artist_name,
            UserArtist.image_url,
            UserArtist.genres,
        ).order_by(UserArtist.id)
    ).all()

    artists_by_user: dict[str, set[str]] = {}
    genres_by_user: dict[str, set[str]] = {}
    artist_info: dict[str, ArtistInfo] = {}
    malformed = 0

    for row in rows:
        artists_by_user.setdefault(row.user_id, set()).add(row.artist_id)
        user_genres = genres_by_user.setdefault(row.user_id, set())

        # Duplicate artist ids overwrite each other; any name will do
        if row.artist_name:
            artist_info[row.artist_id] = ArtistInfo(row.artist_id, row.artist_name, row.image_url)

        try:
            user_genres.update(parse_genres(row.genres))
        except ValueError as e:
            malformed += 1
            logger.warning(
                f"Could not parse genres for user {row.user_id} ({row.genres!r}): {e}",
                extra={"extra_fields": {"user_id": row.user_id, "artist_id": row.artist_id}},
            )

    users = {
        user_id: UserAttributeSet(
            user_id=user_id,
            artists=frozenset(artist_ids),
            genres=frozenset(genres_by_user[user_id]),
        )
        for user_id, artist_ids in artists_by_user.items()
    }

    logger.info(
        f"Loaded artist data for {len(users)} users ({len(rows)} rows, {malformed} malformed)"
    )
    return AttributeData(users=users, artists=artist_info)


def _load_hobbies(db: Session) -> AttributeData:
    rows = db.execute(select(UserHobby.user_id, UserHobby.tag).order_by(UserHobby.id)).all()

    tags_by_user: dict[str, set[str]] = {}
    for row in rows:
        tags = tags_by_user.setdefault(row.user_id, set())
        tag = normalize_tag(row.tag or "")
        if tag:
            tags.add(tag)

    users = {
        user_id: UserAttributeSet(user_id=user_id, genres=frozenset(tags))
        for user_id, tags in tags_by_user.items()
    }

    logger.info(f"Loaded hobby tags for {len(users)} users ({len(rows)} rows)")
    return AttributeData(users=users)
