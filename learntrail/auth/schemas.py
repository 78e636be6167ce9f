"""Pydantic schemas for authentication."""

from pydantic import BaseModel, Field


class LearnerIdentity(BaseModel):
    """Learner resolved from a validated access token."""

    id: str = Field(..., min_length=1, description="Learner identifier (JWT sub)")
