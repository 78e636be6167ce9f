"""Security utilities for the remote progress store.

Provides JWT access token creation and validation. Tokens identify the
learner through the ``sub`` claim.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from learntrail.config.settings import get_settings


def create_access_token(
    learner_id: str,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create a JWT access token for a learner.

    Args:
        learner_id: Learner identifier, stored as ``sub``
        expires_delta: Token lifetime (default from settings)
        extra_claims: Additional claims to embed

    Returns:
        Encoded JWT string
    """
    settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )

    to_encode: dict[str, Any] = dict(extra_claims or {})
    to_encode.update(
        {
            "sub": learner_id,
            "exp": expire,
            "iat": now,
            "type": "access",
        }
    )

    return jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates:
    - JWT signature
    - Expiration time
    - Token type == "access"
    - Presence of a ``sub`` claim

    Raises:
        JWTError: If token is invalid, expired, or wrong type
    """
    settings = get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != "access":
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    if not payload.get("sub"):
        msg = "Access token missing sub claim"
        raise JWTError(msg)

    return payload
