"""
Batch trigger endpoints.

The similarity batch runs synchronously for the caller; only one run may
be active at a time.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from soundmates.core.config import Settings, get_settings
from soundmates.core.database import get_db
from soundmates.core.logging import get_logger
from soundmates.schemas.batch import BatchSummary
from soundmates.services.batch import BatchGuard, BatchInProgressError, BatchOrchestrator

logger = get_logger(__name__)

router = APIRouter()


def get_batch_guard(request: Request) -> BatchGuard:
    """Dependency returning the app-wide batch guard."""
    return request.app.state.batch_guard


@router.get("/calculate-graph", response_model=BatchSummary)
def calculate_graph(
    db: Session = Depends(get_db),
    guard: BatchGuard = Depends(get_batch_guard),
    settings: Settings = Depends(get_settings),
):
    """
    Recompute all pairwise similarities and communities.

    Returns counts for the run. With fewer than two users nothing is
    written and the status is "skipped".
    """
    try:
        result = BatchOrchestrator(db, settings, guard).run_full()
    except BatchInProgressError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Similarity calculation failed: {e}",
        ) from e

    return BatchSummary(**result.to_dict())


@router.get("/status")
async def batch_status(guard: BatchGuard = Depends(get_batch_guard)):
    """Report whether a batch is currently running in this process."""
    return {"running": guard.busy}
