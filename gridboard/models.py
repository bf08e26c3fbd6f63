"""
Data models for dashboard layouts, card placements, profiles and the workspace.
"""

import time
import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from gridboard.geometry import GridRect, round_half_away
from gridboard.policy import CardKind

CURRENT_LAYOUT_VERSION = 3
DEFAULT_COLUMNS = 24
DEFAULT_ROW_UNIT_HEIGHT = 60.0
DEFAULT_GAP = 16.0


def new_id() -> str:
    return str(uuid.uuid4())


class CompactMode(str, Enum):
    NONE = "none"
    VERTICAL = "vertical"


# ── Cards ─────────────────────────────────────────────

class CardPlacement(BaseModel):
    """A single card on the dashboard grid."""
    instance_id: str = Field(default_factory=new_id, description="Stable unique identifier")
    kind: CardKind
    title: Optional[str] = Field(default=None, description="Optional title override")
    is_hidden: bool = False
    is_locked: bool = False

    x: int = Field(default=0, description="X position in grid columns")
    y: int = Field(default=0, description="Y position in grid rows")
    w: int = Field(default=4, description="Width in grid columns")
    h: int = Field(default=4, description="Height in grid rows")
    min_w: int = 4
    min_h: int = 4
    max_w: int = 24
    max_h: int = 20
    aspect_lock: Optional[float] = Field(default=None, description="Width / height ratio to keep while resizing")

    @property
    def rect(self) -> GridRect:
        return GridRect(x=self.x, y=self.y, w=self.w, h=self.h)

    @property
    def trimmed_title(self) -> Optional[str]:
        if self.title is None:
            return None
        trimmed = self.title.strip()
        return trimmed or None

    @property
    def display_title(self) -> str:
        return self.trimmed_title or self.kind.display_title

    def with_rect(self, rect: GridRect) -> "CardPlacement":
        return self.model_copy(update={"x": rect.x, "y": rect.y, "w": rect.w, "h": rect.h})

    def clamped(self, columns: int) -> "CardPlacement":
        """Clamp size and position using the card's own min/max fields and the column count."""
        columns = max(1, columns)

        min_w = min(max(1, self.min_w), columns)
        max_w = min(max(min_w, self.max_w), columns)
        w = min(max(self.w, min_w), max_w)

        min_h = max(1, self.min_h)
        max_h = max(min_h, self.max_h)
        h = min(max(self.h, min_h), max_h)

        x = min(max(0, self.x), max(0, columns - w))
        y = max(0, self.y)
        return self.model_copy(update={
            "min_w": min_w, "max_w": max_w, "min_h": min_h, "max_h": max_h,
            "x": x, "y": y, "w": w, "h": h,
        })

    def applying_aspect_lock(self) -> "CardPlacement":
        """Derive h from w when an aspect lock is set."""
        ratio = self.aspect_lock
        if ratio is None or ratio <= 0:
            return self
        inferred = round_half_away(self.w / ratio)
        return self.model_copy(update={"h": max(self.min_h, min(self.max_h, inferred))})


# ── Layout ────────────────────────────────────────────

class LayoutMetrics(BaseModel):
    """Pixel metrics of a layout rendered at a given width."""
    columns: int
    gap: float
    row_unit_height: float
    col_width: float

    @property
    def column_step(self) -> float:
        return self.col_width + self.gap

    @property
    def row_step(self) -> float:
        return self.row_unit_height + self.gap


class PixelFrame(BaseModel):
    x: float
    y: float
    width: float
    height: float


class DashboardLayout(BaseModel):
    """A complete grid layout: cards plus grid settings."""
    cards: List[CardPlacement] = Field(default_factory=list)
    grid_columns: int = Field(default=DEFAULT_COLUMNS, description="Number of grid columns")
    row_unit_height: float = Field(default=DEFAULT_ROW_UNIT_HEIGHT, description="Row height in points")
    gap: float = Field(default=DEFAULT_GAP, description="Spacing between cells in points")
    compact_mode: CompactMode = CompactMode.VERTICAL
    version: int = CURRENT_LAYOUT_VERSION

    @property
    def visible_cards(self) -> List[CardPlacement]:
        return [c for c in self.cards if not c.is_hidden]

    @property
    def max_grid_y(self) -> int:
        return max((c.y + c.h for c in self.visible_cards), default=0)

    def card(self, instance_id: str) -> Optional[CardPlacement]:
        for c in self.cards:
            if c.instance_id == instance_id:
                return c
        return None

    def cards_of(self, kind: CardKind) -> List[CardPlacement]:
        return [c for c in self.cards if c.kind == kind]

    def replacing_card(self, card: CardPlacement) -> "DashboardLayout":
        """Copy with the card of the same instance_id replaced (no-op if absent)."""
        cards = [card if c.instance_id == card.instance_id else c for c in self.cards]
        return self.model_copy(update={"cards": cards})

    def metrics(self, available_width: float) -> LayoutMetrics:
        columns = max(1, self.grid_columns)
        total_gaps = max(0, columns - 1) * self.gap
        col_width = max(8.0, (available_width - total_gaps) / columns)
        return LayoutMetrics(columns=columns, gap=self.gap, row_unit_height=self.row_unit_height, col_width=col_width)

    def frame_for(self, card: CardPlacement, metrics: LayoutMetrics) -> PixelFrame:
        return PixelFrame(
            x=card.x * metrics.column_step,
            y=card.y * metrics.row_step,
            width=card.w * metrics.col_width + max(0, card.w - 1) * metrics.gap,
            height=card.h * metrics.row_unit_height + max(0, card.h - 1) * metrics.gap,
        )


# ── Profiles & workspace ──────────────────────────────

class RatioRange(BaseModel):
    """Window aspect-ratio range (width / height) a profile is meant for."""
    min: float
    max: float

    @model_validator(mode="after")
    def _order_bounds(self) -> "RatioRange":
        if self.min > self.max:
            low, high = self.max, self.min
            self.min = low
            self.max = high
        return self

    def contains(self, ratio: float) -> bool:
        return self.min <= ratio <= self.max

    @classmethod
    def around(cls, ratio: float, spread: float = 0.12) -> "RatioRange":
        return cls(min=max(0.5, ratio - spread), max=ratio + spread)


class LayoutProfile(BaseModel):
    """A named, savable layout snapshot."""
    id: str = Field(default_factory=new_id)
    name: str
    ratio_range: Optional[RatioRange] = None
    layout: DashboardLayout
    pinned: bool = False
    updated_at: float = Field(default_factory=time.time)


class LayoutWorkspace(BaseModel):
    """Undo/redo stacks, profiles and the recovery layout."""
    current_profile_id: Optional[str] = None
    profiles: List[LayoutProfile] = Field(default_factory=list)
    history: List[DashboardLayout] = Field(default_factory=list)
    future: List[DashboardLayout] = Field(default_factory=list)
    auto_save_enabled: bool = True
    last_stable_layout: Optional[DashboardLayout] = None

    @property
    def can_undo(self) -> bool:
        return bool(self.history)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def profile(self, profile_id: str) -> Optional[LayoutProfile]:
        for p in self.profiles:
            if p.id == profile_id:
                return p
        return None

    def profile_index(self, profile_id: str) -> Optional[int]:
        for i, p in enumerate(self.profiles):
            if p.id == profile_id:
                return i
        return None
