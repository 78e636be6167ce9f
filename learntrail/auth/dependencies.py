"""FastAPI dependencies for authentication.

Extracts the current learner from the bearer token of each request.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from learntrail.auth.schemas import LearnerIdentity
from learntrail.auth.security import decode_access_token
from learntrail.core.context import set_learner_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_learner(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> LearnerIdentity:
    """Get the authenticated learner from the JWT token.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    learner_id = str(payload["sub"])
    set_learner_id(learner_id)
    return LearnerIdentity(id=learner_id)


CurrentLearner = Annotated[LearnerIdentity, Depends(get_current_learner)]
