from pydantic import BaseModel, Field


class FollowedArtist(BaseModel):
    """An artist as returned by the profile-data provider."""

    id: str = Field(..., min_length=1, max_length=64)
    name: str | None = Field(None, max_length=255)
    genres: list[str] = []
    popularity: int | None = Field(None, ge=0, le=100)
    image_url: str | None = None


class ArtistsUpdate(BaseModel):
    artists: list[FollowedArtist]


class HobbiesUpdate(BaseModel):
    hobbies: list[str] = Field(..., max_length=100)


class ProfileSaveResponse(BaseModel):
    status: str
    user_id: str
    saved: int
    recompute_scheduled: bool
