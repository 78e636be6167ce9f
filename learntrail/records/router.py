"""Remote progress store API endpoints.

Provides routes for:
- Fetching the learner's full progress snapshot
- Merging a partial snapshot (per-field, last write wins)
"""

from fastapi import APIRouter

from learntrail.auth.dependencies import CurrentLearner
from learntrail.progress.models import ProgressState

from .dependencies import RecordsServiceDep, handle_records_error
from .service import RecordsError


router = APIRouter(prefix="/api/v1/progress", tags=["progress"])


@router.get(
    "",
    response_model=ProgressState,
    response_model_exclude_none=True,
    summary="Get progress snapshot",
)
async def get_progress(
    records_service: RecordsServiceDep,
    learner: CurrentLearner,
) -> ProgressState:
    """Return the authenticated learner's full progress snapshot."""
    try:
        return await records_service.get_snapshot(learner.id)
    except RecordsError as e:
        raise handle_records_error(e) from e


@router.put(
    "",
    response_model=ProgressState,
    response_model_exclude_none=True,
    summary="Merge partial progress",
)
async def update_progress(
    changes: ProgressState,
    records_service: RecordsServiceDep,
    learner: CurrentLearner,
) -> ProgressState:
    """Merge ``{type: {id: fields}}`` into the learner's snapshot.

    Returns the merged snapshot. Clients keep their own state authoritative
    and are not required to read it.
    """
    try:
        return await records_service.merge_snapshot(learner.id, changes)
    except RecordsError as e:
        raise handle_records_error(e) from e
