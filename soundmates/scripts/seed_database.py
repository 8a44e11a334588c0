"""
Generate synthetic listeners for local development.

Listeners are drawn from a few taste "personas" so the batch job has
realistic clusters to find:
- Indie listeners share a pool of indie/alt artists
- Hip-hop listeners share a different pool
- A few eclectic listeners dip into both

Run with: python -m soundmates.scripts.seed_database [--clear] [--seed N]
"""

import argparse
import json
import random

from sqlalchemy.orm import Session

from soundmates.core.config import get_settings
from soundmates.core.database import Database
from soundmates.models import User, UserArtist

SYNTHETIC_PREFIX = "synthetic:"

ARTIST_POOLS = {
    "indie": [
        ("4Z8W4fKeB5YxbusRsdQVPb", "Radiohead", ["alternative rock", "art rock"]),
        ("7Ln80lUS6He07XvHI8qqHH", "Arctic Monkeys", ["garage rock", "indie rock"]),
        ("0oSGxfWSnnOXhD2fKuz2Gy", "David Bowie", ["art rock", "glam rock"]),
        ("3kjuyTCjPG1WMFCiyc5IuB", "Arcade Fire", ["indie rock", "baroque pop"]),
        ("5INjqkS1o8h1imAzPqGZBb", "Tame Impala", ["psychedelic rock", "indie rock"]),
        ("6olE6TJLqED3rqDCT0FyPh", "Nirvana", ["grunge", "alternative rock"]),
    ],
    "hiphop": [
        ("2YZyLoL8N0Wb9xBt1NhZWg", "Kendrick Lamar", ["hip hop", "west coast rap"]),
        ("3TVXtAsR1Inumwj472S9r4", "Drake", ["hip hop", "canadian hip hop"]),
        ("5K4W6rqBFWDnAN6FQUkS6x", "Kanye West", ["hip hop", "chicago rap"]),
        ("0Y5tJX1MQlPlqiwlOH1tJY", "Travis Scott", ["rap", "southern hip hop"]),
        ("1Xyo4u8uXC1ZmMpatF05PJ", "The Weeknd", ["r&b", "canadian pop"]),
        ("20qISvAhX20dpIbOOzGK3q", "Nas", ["hip hop", "east coast hip hop"]),
    ],
}

LISTENER_PERSONAS = [
    {"name": "indie", "pools": ["indie"], "count": 12},
    {"name": "hiphop", "pools": ["hiphop"], "count": 12},
    {"name": "eclectic", "pools": ["indie", "hiphop"], "count": 4},
]


def clear_synthetic(db: Session) -> int:
    """Delete synthetic listeners and their artists."""
    users = db.query(User).filter(User.spotify_user_id.like(f"{SYNTHETIC_PREFIX}%")).all()
    for user in users:
        db.delete(user)
    db.commit()
    return len(users)


def generate_listeners(db: Session, rng: random.Random) -> tuple[int, int]:
    """
    Create synthetic listeners for every persona.

    Returns:
        Tuple of (users created, artist rows created)
    """
    user_count = 0
    artist_count = 0

    for persona in LISTENER_PERSONAS:
        pool = [artist for name in persona["pools"] for artist in ARTIST_POOLS[name]]

        for i in range(persona["count"]):
            user = User(
                spotify_user_id=f"{SYNTHETIC_PREFIX}{persona['name']}:{i}",
                nickname=f"{persona['name'].title()} Listener #{i + 1}",
            )
            db.add(user)
            db.flush()
            user_count += 1

            for artist_id, name, genres in rng.sample(pool, rng.randint(3, min(5, len(pool)))):
                db.add(
                    UserArtist(
                        user_id=user.id,
                        artist_id=artist_id,
                        artist_name=name,
                        genres=json.dumps(genres),
                        popularity=rng.randint(40, 95),
                    )
                )
                artist_count += 1

        db.commit()

    return user_count, artist_count


def main():
    parser = argparse.ArgumentParser(description="Seed synthetic listeners")
    parser.add_argument("--clear", action="store_true", help="Remove earlier synthetic listeners first")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    args = parser.parse_args()

    print("Starting database seeding...\n")

    database = Database(get_settings().DATABASE_URL)
    database.create_all()
    db = database.session()

    try:
        if args.clear:
            removed = clear_synthetic(db)
            print(f"Cleared {removed} synthetic listeners")

        users, artists = generate_listeners(db, random.Random(args.seed))
        print(f"Generated {users} listeners with {artists} followed artists")
        print("\n✓ Database seeding complete!")

    except Exception as e:
        print(f"\n✗ Error during seeding: {e}")
        db.rollback()
        raise

    finally:
        db.close()
        database.dispose()


if __name__ == "__main__":
    main()
