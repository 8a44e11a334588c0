from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from soundmates.core.database import Base


class UserArtist(Base):
    """An artist a user follows, captured from their Spotify profile."""

    __tablename__ = "user_artists"
    __table_args__ = (UniqueConstraint("user_id", "artist_id", name="unique_user_artist"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    artist_id: Mapped[str] = mapped_column(String(64), index=True)

    # Display info
    artist_name: Mapped[str | None] = mapped_column(String(255))
    image_url: Mapped[str | None] = mapped_column(String(1000))
    popularity: Mapped[int | None] = mapped_column(Integer)

    # JSON array of genre strings, decoded when attribute sets are loaded
    genres: Mapped[str | None] = mapped_column(Text)

    user: Mapped["User"] = relationship(back_populates="artists")


class UserHobby(Base):
    """A free-form hobby tag on a user's profile."""

    __tablename__ = "user_hobbies"
    __table_args__ = (UniqueConstraint("user_id", "tag", name="unique_user_hobby"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    tag: Mapped[str] = mapped_column(String(100), index=True)

    user: Mapped["User"] = relationship(back_populates="hobbies")


# Forward references
from soundmates.models.user import User  # noqa: E402, F811
