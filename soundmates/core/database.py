from typing import Generator

from fastapi import Depends, Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    pass


class Database:
    """
    Owns the engine and session factory for one process.

    Created at startup (FastAPI lifespan or CLI entry point) and disposed at
    shutdown; passed to whatever needs sessions instead of living as a
    module-level global.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        if engine is None:
            if url is None:
                raise ValueError("Database needs either a URL or an engine")
            kwargs = {"pool_pre_ping": True}
            if not url.startswith("sqlite"):
                kwargs.update(pool_size=10, max_overflow=20)
            engine = create_engine(url, **kwargs)
        self.engine = engine
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_database(request: Request) -> Database:
    """Dependency returning the process-wide Database from app state."""
    return request.app.state.db


def get_db(database: Database = Depends(get_database)) -> Generator[Session, None, None]:
    """Dependency for FastAPI routes to get a database session."""
    db = database.session()
    try:
        yield db
    finally:
        db.close()
