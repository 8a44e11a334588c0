from soundmates.models.attribute import UserArtist, UserHobby
from soundmates.models.community import Community
from soundmates.models.similarity import Similarity
from soundmates.models.user import User

__all__ = [
    "User",
    "UserArtist",
    "UserHobby",
    "Similarity",
    "Community",
]
