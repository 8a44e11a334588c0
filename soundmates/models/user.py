import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soundmates.core.database import Base


def new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_user_id)
    spotify_user_id: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)

    # Profile
    nickname: Mapped[str | None] = mapped_column(String(100))
    bio: Mapped[str | None] = mapped_column(Text)
    profile_image_url: Mapped[str | None] = mapped_column(String(1000))

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    artists: Mapped[list["UserArtist"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    hobbies: Mapped[list["UserHobby"]] = relationship(back_populates="user", cascade="all, delete-orphan")


# Forward reference for type hints
from soundmates.models.attribute import UserArtist, UserHobby  # noqa: E402
