"""Content catalog models.

The catalog is a static hierarchy supplied from outside the engine:
- Modules: a tree of pages rooted under the ``modules`` sentinel
- Tracks: curated collections of module roots, ordered under ``tracks``
"""

from pydantic import BaseModel, ConfigDict, Field


# Sentinel parent of every module root
MODULES_ROOT = "modules"

# Sentinel entry listing the catalog's track order
TRACKS_ROOT = "tracks"


class ContentNode(BaseModel):
    """One page in the module tree."""

    model_config = ConfigDict(frozen=True)

    id: str
    parent: str | None = None
    children: tuple[str, ...] = ()
    is_fork: bool = False
    title: str | None = None
    # Estimated time for this page alone, [min, max] minutes
    minutes: tuple[float, float] | None = None
    # Estimated time for this page plus descendants not itemized elsewhere
    remaining: tuple[float, float] | None = None

    @property
    def is_module_root(self) -> bool:
        """Whether the node sits directly under the modules sentinel."""
        return self.parent == MODULES_ROOT

    @property
    def minutes_avg(self) -> float:
        """Average of the ``minutes`` range (0 when absent)."""
        return sum(self.minutes) / 2 if self.minutes else 0.0


class Track(BaseModel):
    """A track: an ordered collection of module roots."""

    model_config = ConfigDict(frozen=True)

    id: str
    modules: tuple[str, ...] = Field(default=())
    title: str | None = None
