from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Path, status
from sqlalchemy.orm import Session

from soundmates.api.batch import get_batch_guard
from soundmates.core.config import Settings, get_settings
from soundmates.core.database import Database, get_database, get_db
from soundmates.schemas.profile import ArtistsUpdate, HobbiesUpdate, ProfileSaveResponse
from soundmates.services import profile_service
from soundmates.services.batch import BatchGuard, run_batch_in_background

router = APIRouter()

# Ids become primary keys in String(36) columns
UserIdPath = Annotated[str, Path(min_length=1, max_length=36)]


@router.post(
    "/{user_id}/artists",
    response_model=ProfileSaveResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def save_artists(
    user_id: UserIdPath,
    payload: ArtistsUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    database: Database = Depends(get_database),
    guard: BatchGuard = Depends(get_batch_guard),
    settings: Settings = Depends(get_settings),
):
    """
    Save a user's followed artists.

    Similarities for this user are recomputed in the background once the
    response has been sent.
    """
    saved = profile_service.save_user_artists(db, user_id, payload.artists)

    scheduled = settings.ATTRIBUTE_SCHEMA == "artists"
    if scheduled:
        background_tasks.add_task(run_batch_in_background, database, guard, user_id, settings)

    return ProfileSaveResponse(
        status="saved", user_id=user_id, saved=saved, recompute_scheduled=scheduled
    )


@router.post(
    "/{user_id}/hobbies",
    response_model=ProfileSaveResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def save_hobbies(
    user_id: UserIdPath,
    payload: HobbiesUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    database: Database = Depends(get_database),
    guard: BatchGuard = Depends(get_batch_guard),
    settings: Settings = Depends(get_settings),
):
    """Save a user's hobby tags and schedule recomputation."""
    saved = profile_service.save_user_hobbies(db, user_id, payload.hobbies)

    scheduled = settings.ATTRIBUTE_SCHEMA == "hobbies"
    if scheduled:
        background_tasks.add_task(run_batch_in_background, database, guard, user_id, settings)

    return ProfileSaveResponse(
        status="saved", user_id=user_id, saved=saved, recompute_scheduled=scheduled
    )
