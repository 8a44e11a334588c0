from fastapi import APIRouter

from soundmates.api import batch, matches, profile

router = APIRouter()

router.include_router(batch.router, prefix="/batch", tags=["batch"])
router.include_router(profile.router, prefix="/profile", tags=["profile"])
router.include_router(matches.router, prefix="/match", tags=["match"])
