"""
Pytest configuration and fixtures for backend tests.
"""

import json
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from soundmates.core.config import Settings, get_settings
from soundmates.core.database import Base, Database, get_db
from soundmates.main import app
from soundmates.models.attribute import UserArtist, UserHobby
from soundmates.models.user import User
from soundmates.services.batch import BatchGuard

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
test_database = Database(engine=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)

    session = test_database.session()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def database(db: Session) -> Database:
    """The Database wrapping the test engine, for code that opens its own sessions."""
    return test_database


@pytest.fixture
def settings() -> Settings:
    """Settings pinned for tests, ignoring any local .env file."""
    return Settings(
        _env_file=None,
        DATABASE_URL=SQLALCHEMY_DATABASE_URL,
        ATTRIBUTE_SCHEMA="artists",
        SIMILARITY_THRESHOLD=0.20,
        COMMUNITY_RESOLUTION=1.0,
        COMMUNITY_SEED=42,
    )


@pytest.fixture(scope="function")
def client(db: Session, settings: Settings) -> Generator[TestClient, None, None]:
    """Create a test client wired to the test database."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.state.db = test_database
    app.state.batch_guard = BatchGuard()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    app.state.db = None


@pytest.fixture
def add_listener(db: Session) -> Callable[..., User]:
    """
    Factory creating a user with followed artists.

    ``artists`` is a list of ``(artist_id, name, genres)`` tuples; genres
    may be a list (JSON-encoded for you) or a raw string.
    """
    def _add(user_id: str, artists: list[tuple] = (), nickname: str | None = None) -> User:
        user = User(id=user_id, nickname=nickname or user_id)
        db.add(user)
        db.flush()
        for artist_id, name, genres in artists:
            db.add(
                UserArtist(
                    user_id=user_id,
                    artist_id=artist_id,
                    artist_name=name,
                    genres=genres if isinstance(genres, str) or genres is None else json.dumps(genres),
                )
            )
        db.commit()
        return user

    return _add


@pytest.fixture
def add_hobbyist(db: Session) -> Callable[..., User]:
    """Factory creating a user with hobby tags."""
    def _add(user_id: str, tags: list[str]) -> User:
        user = User(id=user_id, nickname=user_id)
        db.add(user)
        db.flush()
        for tag in tags:
            db.add(UserHobby(user_id=user_id, tag=tag))
        db.commit()
        return user

    return _add


@pytest.fixture
def scenario_listeners(add_listener) -> list[User]:
    """
    Three listeners: A and B share two of four artists, C shares nothing.

    No genres anywhere, so A-B combine to 0.6 * 0.5 = 0.30.
    """
    return [
        add_listener("user-a", [("1", "Artist One", []), ("2", "Artist Two", []), ("3", "Artist Three", [])]),
        add_listener("user-b", [("2", "Artist Two", []), ("3", "Artist Three", []), ("4", "Artist Four", [])]),
        add_listener("user-c", [("9", "Artist Nine", [])]),
    ]
