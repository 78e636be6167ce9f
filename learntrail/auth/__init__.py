"""Authentication.

Provides:
- Client-side observable session state
- JWT access tokens and the current-learner dependency (server side)
"""

from .session import SessionState


__all__ = ["SessionState"]
