"""
Per-kind size policies for dashboard cards.
"""

from enum import Enum
from typing import TYPE_CHECKING, Callable

from gridboard.geometry import SizeBounds

if TYPE_CHECKING:
    from gridboard.models import CardPlacement


# ── Card kinds ────────────────────────────────────────

class CardKind(str, Enum):
    TIMER = "timer"
    MEDIA = "media"
    SCHEDULE = "schedule"
    BATTERY = "battery"
    CALENDAR = "calendar"
    TODOS = "todos"

    @property
    def display_title(self) -> str:
        return _DISPLAY_TITLES[self]


_DISPLAY_TITLES = {
    CardKind.TIMER: "Time",
    CardKind.MEDIA: "Media",
    CardKind.SCHEDULE: "Schedule",
    CardKind.BATTERY: "Battery",
    CardKind.CALENDAR: "Shortcuts",
    CardKind.TODOS: "To-Dos",
}


# ── Size policy ───────────────────────────────────────

class SizePolicy(SizeBounds):
    """Static min/max size rules for one card kind."""


_POLICIES: dict[CardKind, SizePolicy] = {
    # timer needs room for its segmented controls and the large clock
    CardKind.TIMER: SizePolicy(min_w=8, min_h=5, max_w=24, max_h=24),
    CardKind.MEDIA: SizePolicy(min_w=6, min_h=4, max_w=24, max_h=24),
    CardKind.SCHEDULE: SizePolicy(min_w=10, min_h=6, max_w=24, max_h=28),
    CardKind.CALENDAR: SizePolicy(min_w=6, min_h=4, max_w=24, max_h=24),
    CardKind.TODOS: SizePolicy(min_w=8, min_h=4, max_w=24, max_h=24),
    CardKind.BATTERY: SizePolicy(min_w=6, min_h=4, max_w=24, max_h=24),
}

PolicyLookup = Callable[[CardKind], SizePolicy]


def policy_for(kind: CardKind) -> SizePolicy:
    """Return the static policy for a card kind."""
    return _POLICIES[CardKind(kind)]


def effective_bounds(policy: SizeBounds, columns: int) -> SizeBounds:
    """Policy bounds intersected with the current column count."""
    columns = max(1, columns)
    min_w = min(max(1, policy.min_w), columns)
    max_w = min(max(min_w, policy.max_w), columns)
    min_h = max(1, policy.min_h)
    max_h = max(min_h, policy.max_h)
    return SizeBounds(min_w=min_w, min_h=min_h, max_w=max_w, max_h=max_h)


def normalize(card: "CardPlacement", columns: int, policy: SizeBounds | None = None) -> "CardPlacement":
    """
    Re-derive a card's effective min/max from its kind's policy and the column
    count, then clamp its geometry into range. Idempotent.
    """
    if policy is None:
        policy = policy_for(card.kind)
    bounds = effective_bounds(policy, columns)
    updated = card.model_copy(update=bounds.model_dump())
    return updated.clamped(columns)
