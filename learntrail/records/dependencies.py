"""FastAPI dependencies for the remote progress store.

Provides dependency injection for:
- Records service
- Error handlers
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import RecordsError, RecordsService


async def get_records_service(request: Request) -> RecordsService:
    """Get records service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "records_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress store not available",
        )
    return app_state.records_service


RecordsServiceDep = Annotated[RecordsService, Depends(get_records_service)]


def handle_records_error(error: RecordsError) -> HTTPException:
    """Convert records errors to HTTP exceptions."""
    status_map = {
        "corrupt_snapshot": status.HTTP_409_CONFLICT,
        "merge_conflict": status.HTTP_409_CONFLICT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
