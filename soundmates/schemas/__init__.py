from soundmates.schemas.batch import BatchSummary
from soundmates.schemas.match import CommonArtist, MatchResponse
from soundmates.schemas.profile import (
    ArtistsUpdate,
    FollowedArtist,
    HobbiesUpdate,
    ProfileSaveResponse,
)

__all__ = [
    "BatchSummary",
    "CommonArtist",
    "MatchResponse",
    "FollowedArtist",
    "ArtistsUpdate",
    "HobbiesUpdate",
    "ProfileSaveResponse",
]
