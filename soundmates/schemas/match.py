from pydantic import BaseModel


class CommonArtist(BaseModel):
    id: str | None = None
    name: str
    image_url: str | None = None


class MatchResponse(BaseModel):
    user_id: str
    nickname: str | None = None
    profile_image_url: str | None = None
    bio: str | None = None

    # Similarity data
    artist_similarity: float
    genre_similarity: float
    combined_similarity: float
    common_artists: list[CommonArtist] = []
    common_genres: list[str] = []

    # Community data
    community_id: int | None = None
    is_same_community: bool = False
    match_score: float  # combined similarity plus community bonus

    class Config:
        from_attributes = True
