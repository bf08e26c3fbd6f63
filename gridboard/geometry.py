"""
Grid geometry: integer rectangles in grid-cell units and the clamp/intersect math
every other module builds on.
"""

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict


class GridRect(BaseModel):
    """A rectangle on the layout grid (columns/rows, not pixels)."""
    model_config = ConfigDict(frozen=True)

    x: int = 0
    y: int = 0
    w: int = 1
    h: int = 1

    @property
    def max_x(self) -> int:
        return self.x + self.w

    @property
    def max_y(self) -> int:
        return self.y + self.h

    def moved(self, dx: int = 0, dy: int = 0) -> "GridRect":
        return GridRect(x=self.x + dx, y=self.y + dy, w=self.w, h=self.h)


class SizeBounds(BaseModel):
    """Min/max width and height in grid units."""
    min_w: int = 1
    min_h: int = 1
    max_w: int = 24
    max_h: int = 24


def intersects(a: GridRect, b: GridRect) -> bool:
    """Half-open overlap test on both axes; touching edges do not intersect."""
    return not (a.max_x <= b.x or b.max_x <= a.x or a.max_y <= b.y or b.max_y <= a.y)


def collides(rect: GridRect, obstacles: list[GridRect]) -> bool:
    return any(intersects(rect, other) for other in obstacles)


def clamp(rect: GridRect, columns: int, bounds: Optional[SizeBounds] = None) -> GridRect:
    """
    Clamp a rect into the grid.
    Size is clamped first (bounds capped by the column count), then x is
    pulled into [0, columns - w] and y kept non-negative.
    """
    columns = max(1, columns)
    if bounds is None:
        bounds = SizeBounds(min_w=1, min_h=1, max_w=columns, max_h=max(1, rect.h))

    min_w = min(max(1, bounds.min_w), columns)
    max_w = min(max(min_w, bounds.max_w), columns)
    min_h = max(1, bounds.min_h)
    max_h = max(min_h, bounds.max_h)

    w = min(max(rect.w, min_w), max_w)
    h = min(max(rect.h, min_h), max_h)
    x = min(max(0, rect.x), max(0, columns - w))
    y = max(0, rect.y)
    return GridRect(x=x, y=y, w=w, h=h)


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    if value >= 0:
        return int(math.floor(value + 0.5))
    return -int(math.floor(-value + 0.5))
