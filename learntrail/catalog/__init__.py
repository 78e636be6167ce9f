"""Content catalog (tracks, modules and unit pages).

Provides:
- Immutable content node and track models
- Read-only tree accessor built from a catalog payload
"""

from .models import MODULES_ROOT, TRACKS_ROOT, ContentNode, Track
from .tree import CatalogError, ContentTree


__all__ = [
    "MODULES_ROOT",
    "TRACKS_ROOT",
    "CatalogError",
    "ContentNode",
    "ContentTree",
    "Track",
]
