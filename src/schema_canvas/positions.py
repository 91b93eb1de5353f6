"""Last-known node coordinates, keyed by table name.

The cache is a plain dict owned by the caller. Nothing here deletes
entries: positions of removed tables stay around unused, so a table that
comes back (undo, re-import) lands where it was.
"""

from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict

GRID_COLUMNS = 3
GRID_SPACING = 300


class Position(BaseModel):
    """2-D node coordinates."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float


PositionCache = Dict[str, Position]


def fallback_position(index: int) -> Position:
    """Grid-tiled position for the table at `index`; distinct per index."""
    return Position(
        x=(index % GRID_COLUMNS) * GRID_SPACING,
        y=(index // GRID_COLUMNS) * GRID_SPACING,
    )


def capture(nodes: Iterable) -> PositionCache:
    """Collect {node id: position} from rendered nodes."""
    return {node.id: node.position for node in nodes}


def resolve(table_name: str, index: int, cache: Optional[PositionCache]) -> Position:
    """Cached position for `table_name`, else the grid fallback for `index`."""
    if cache:
        cached = cache.get(table_name)
        if cached is not None:
            return cached
    return fallback_position(index)


def move(cache: Optional[PositionCache], table_name: str, x: float, y: float) -> PositionCache:
    """Copy of `cache` with the dragged node's position overwritten."""
    updated = dict(cache or {})
    updated[table_name] = Position(x=x, y=y)
    return updated


def rename(cache: Optional[PositionCache], old_name: str, new_name: str) -> PositionCache:
    """Copy of `cache` where `new_name` inherits the position of `old_name`."""
    updated = dict(cache or {})
    if old_name in updated:
        updated[new_name] = updated[old_name]
    return updated
