from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from soundmates.core.config import Settings, get_settings
from soundmates.core.database import get_db
from soundmates.schemas.match import MatchResponse
from soundmates.services import match_service

router = APIRouter()


@router.get("/{user_id}", response_model=list[MatchResponse])
async def get_matches(
    user_id: str,
    limit: int | None = Query(None, ge=1, le=100),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Get the user's best matches, same-community users boosted."""
    matches = match_service.get_matches(
        db,
        user_id,
        limit=limit or settings.MATCH_LIMIT,
        threshold=settings.SIMILARITY_THRESHOLD,
        community_bonus=settings.COMMUNITY_BONUS,
    )
    if matches is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return matches
