"""
Card catalog: default cards per kind, layout presets and the default workspace.
This is the `default_card_for` collaborator the engine is given.
"""

from enum import Enum
from typing import Callable, List, Sequence, Tuple

from gridboard.models import (
    DEFAULT_COLUMNS,
    CardPlacement,
    DashboardLayout,
    LayoutProfile,
    LayoutWorkspace,
    RatioRange,
)
from gridboard.policy import CardKind, normalize

DefaultCardFactory = Callable[..., CardPlacement]

_DEFAULT_SIZES: dict[CardKind, Tuple[int, int]] = {
    CardKind.TIMER: (12, 8),
    CardKind.MEDIA: (12, 8),
    CardKind.SCHEDULE: (24, 10),
    CardKind.CALENDAR: (12, 8),
    CardKind.TODOS: (24, 8),
    CardKind.BATTERY: (12, 8),
}

# Legacy section spans were limited to these ranges.
MIN_COL_SPAN = 4
MAX_COL_SPAN = 20
MIN_ROW_SPAN = 4
MAX_ROW_SPAN = 16


def default_card_for(kind: CardKind, x: int = 0, y: int = 0) -> CardPlacement:
    """A fresh card of the given kind at (x, y) with its default size."""
    kind = CardKind(kind)
    w, h = _DEFAULT_SIZES[kind]
    card = CardPlacement(kind=kind, x=x, y=max(0, y), w=w, h=h)
    return normalize(card, DEFAULT_COLUMNS)


def default_cards() -> List[CardPlacement]:
    return [
        default_card_for(CardKind.TIMER, x=0, y=0),
        default_card_for(CardKind.MEDIA, x=12, y=0),
        default_card_for(CardKind.SCHEDULE, x=0, y=8),
        default_card_for(CardKind.TODOS, x=0, y=18),
    ]


def default_layout(columns: int = DEFAULT_COLUMNS) -> DashboardLayout:
    """Default cards on a grid of `columns`; narrower grids still need a sanitize pass."""
    cards = [normalize(card, columns) for card in default_cards()]
    return DashboardLayout(cards=cards, grid_columns=columns)


# ── Section flow ──────────────────────────────────────

Section = Tuple[CardKind, int, int]


def clamp_col_span(value: int) -> int:
    return min(max(value, MIN_COL_SPAN), MAX_COL_SPAN)


def clamp_row_span(value: int) -> int:
    return min(max(value, MIN_ROW_SPAN), MAX_ROW_SPAN)


def layout_from_sections(sections: Sequence[Section], columns: int = DEFAULT_COLUMNS) -> DashboardLayout:
    """
    Flow (kind, col_span, row_span) sections left to right, wrapping to a new
    row when the next one would overflow the grid.
    """
    cards: List[CardPlacement] = []
    current_x = 0
    current_y = 0
    row_bottom = 0

    for kind, col_span, row_span in sections:
        template = default_card_for(kind)
        card = normalize(template.model_copy(update={
            "w": max(1, min(columns, col_span)),
            "h": max(1, row_span),
        }), columns)

        if current_x + card.w > columns:
            current_x = 0
            current_y = row_bottom

        card = card.model_copy(update={"x": current_x, "y": current_y})
        cards.append(card)

        row_bottom = max(row_bottom, current_y + card.h)
        current_x += card.w
        if current_x >= columns:
            current_x = 0
            current_y = row_bottom

    return DashboardLayout(cards=cards, grid_columns=columns)


# ── Presets ───────────────────────────────────────────

class LayoutPreset(str, Enum):
    BALANCED = "balanced"
    FOCUS_SCHEDULE = "focus_schedule"
    FOCUS_MEDIA = "focus_media"
    COMPACT = "compact"
    PRESENTATION = "presentation"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def sections(self) -> List[Section]:
        return _PRESET_SECTIONS[self]

    def layout(self) -> DashboardLayout:
        return layout_from_sections(self.sections)


# Spans below a kind's minimum size are raised when the preset is laid out.
_PRESET_SECTIONS: dict[LayoutPreset, List[Section]] = {
    LayoutPreset.BALANCED: [
        (CardKind.TIMER, 12, 4),
        (CardKind.MEDIA, 12, 4),
        (CardKind.SCHEDULE, 12, 4),
        (CardKind.TODOS, 12, 4),
    ],
    LayoutPreset.FOCUS_SCHEDULE: [
        (CardKind.TIMER, 8, 4),
        (CardKind.MEDIA, 8, 4),
        (CardKind.SCHEDULE, 24, 4),
        (CardKind.TODOS, 24, 4),
    ],
    LayoutPreset.FOCUS_MEDIA: [
        (CardKind.TIMER, 8, 4),
        (CardKind.MEDIA, 16, 4),
        (CardKind.SCHEDULE, 12, 4),
        (CardKind.TODOS, 12, 4),
    ],
    LayoutPreset.COMPACT: [
        (CardKind.TIMER, 6, 4),
        (CardKind.MEDIA, 6, 4),
        (CardKind.SCHEDULE, 6, 4),
        (CardKind.TODOS, 6, 4),
    ],
    LayoutPreset.PRESENTATION: [
        (CardKind.TIMER, 24, 4),
        (CardKind.SCHEDULE, 12, 4),
        (CardKind.MEDIA, 6, 4),
        (CardKind.TODOS, 6, 4),
    ],
}


def default_workspace(base_layout: DashboardLayout) -> LayoutWorkspace:
    """Three pinned profiles for common window shapes; Standard is current."""
    standard = LayoutProfile(
        name="Standard",
        ratio_range=RatioRange(min=1.25, max=1.9),
        layout=base_layout,
        pinned=True,
    )
    square = LayoutProfile(
        name="Square",
        ratio_range=RatioRange(min=0.8, max=1.24),
        layout=LayoutPreset.BALANCED.layout(),
        pinned=True,
    )
    ultrawide = LayoutProfile(
        name="Ultrawide",
        ratio_range=RatioRange(min=1.9, max=3.5),
        layout=LayoutPreset.FOCUS_SCHEDULE.layout(),
        pinned=True,
    )
    return LayoutWorkspace(
        current_profile_id=standard.id,
        profiles=[standard, square, ultrawide],
        auto_save_enabled=True,
        last_stable_layout=base_layout,
    )
