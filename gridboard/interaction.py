"""
Drag/resize interaction sessions.

A session turns pointer translations into proposed card rects and live preview
layouts. Every update is computed from the layout snapshot taken when the
session began, so redundant or out-of-order pointer events cannot accumulate
drift. Only `end` commits.
"""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple

from pydantic import BaseModel

from gridboard.engine import LayoutEngine
from gridboard.geometry import GridRect, round_half_away
from gridboard.models import CardPlacement, DashboardLayout, LayoutMetrics

if TYPE_CHECKING:
    from gridboard.workspace import WorkspaceManager

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class InteractionKind(str, Enum):
    DRAG = "drag"
    RESIZE_WIDTH = "resize_width"
    RESIZE_HEIGHT = "resize_height"
    RESIZE_BOTH = "resize_both"


class InteractionSession(BaseModel):
    """State of one in-progress gesture."""
    kind: InteractionKind
    anchor_card_id: str
    baseline_layout: DashboardLayout
    pointer_origin: Point = (0.0, 0.0)
    last_preview_layout: DashboardLayout


def candidate_rect(
    card: CardPlacement,
    translation: Point,
    metrics: LayoutMetrics,
    kind: InteractionKind,
    columns: int,
) -> GridRect:
    """Grid rect a pointer translation proposes for `card` (its baseline state)."""
    d_col = round_half_away(translation[0] / max(1.0, metrics.column_step))
    d_row = round_half_away(translation[1] / max(1.0, metrics.row_step))

    x, y, w, h = card.x, card.y, card.w, card.h
    if kind == InteractionKind.DRAG:
        x += d_col
        y += d_row
    elif kind == InteractionKind.RESIZE_WIDTH:
        w += d_col
    elif kind == InteractionKind.RESIZE_HEIGHT:
        h += d_row
    elif kind == InteractionKind.RESIZE_BOTH:
        w += d_col
        h += d_row

    ratio = card.aspect_lock
    if ratio is not None and ratio > 0 and kind != InteractionKind.DRAG:
        if kind == InteractionKind.RESIZE_HEIGHT:
            w = round_half_away(h * ratio)
        else:
            h = round_half_away(w / ratio)

    moved = card.model_copy(update={"x": x, "y": y, "w": w, "h": h})
    return moved.clamped(columns).rect


class InteractionController:
    """
    Idle/Active state machine for pointer gestures on one workspace.

    At most one session is active. Beginning the same gesture twice is a no-op;
    beginning a different one replaces the current session, whose preview was
    never persisted.
    """

    def __init__(self, workspace: "WorkspaceManager", engine: Optional[LayoutEngine] = None):
        self.workspace = workspace
        self.engine = engine or workspace.engine
        self.session: Optional[InteractionSession] = None
        self.preview_layout: Optional[DashboardLayout] = None
        self.active_card_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.session is not None

    @property
    def displayed_layout(self) -> DashboardLayout:
        """The layout the UI should render right now."""
        return self.preview_layout or self.workspace.layout

    def begin(self, kind: InteractionKind, card_id: str, pointer_origin: Point = (0.0, 0.0)) -> bool:
        """
        Start a gesture. Returns False when the same gesture is already running
        or the card is locked.
        """
        if self.session and self.session.anchor_card_id == card_id and self.session.kind == kind:
            return False

        card = self.workspace.layout.card(card_id)
        if card is not None and card.is_locked:
            logger.debug(f"Card {card_id} is locked, ignoring {kind.value}")
            return False

        if self.session:
            logger.debug(f"Interaction on {self.session.anchor_card_id} replaced by {kind.value} on {card_id}")

        baseline = self.workspace.layout
        self.session = InteractionSession(
            kind=kind,
            anchor_card_id=card_id,
            baseline_layout=baseline,
            pointer_origin=pointer_origin,
            last_preview_layout=baseline,
        )
        self.preview_layout = None
        self.active_card_id = card_id
        return True

    def update(
        self,
        card_id: str,
        translation: Point,
        metrics: LayoutMetrics,
        kind: Optional[InteractionKind] = None,
    ) -> Optional[DashboardLayout]:
        """Recompute the live preview. Stale input returns None and changes nothing."""
        resolved = self._resolve(card_id, translation, metrics, kind, compact_after=False)
        if resolved is None:
            return None
        self.session = self.session.model_copy(update={"last_preview_layout": resolved})
        self.preview_layout = resolved
        return resolved

    def end(
        self,
        card_id: str,
        translation: Point,
        metrics: LayoutMetrics,
        kind: Optional[InteractionKind] = None,
    ) -> Optional[DashboardLayout]:
        """Resolve with compaction and commit. Returns the committed layout."""
        resolved = self._resolve(card_id, translation, metrics, kind, compact_after=True)
        if resolved is None:
            return None
        committed = self.workspace.commit(resolved)
        self._clear()
        return committed

    def cancel(self) -> None:
        """Drop the session and its preview without committing."""
        if self.session:
            logger.debug(f"Interaction on {self.session.anchor_card_id} cancelled")
        self._clear()

    def select(self, card_id: Optional[str]) -> None:
        """Mark a card as the keyboard target without starting a gesture."""
        if self.session is None:
            self.active_card_id = card_id

    def nudge(self, dx: int = 0, dy: int = 0, dw: int = 0, dh: int = 0) -> Optional[DashboardLayout]:
        """Keyboard step of the active card by whole grid units, committed immediately. Locked cards stay put."""
        if self.active_card_id is None:
            return None
        layout = self.workspace.layout
        card = layout.card(self.active_card_id)
        if card is None or card.is_hidden or card.is_locked:
            return None

        proposed = GridRect(x=card.x + dx, y=card.y + dy, w=card.w + dw, h=card.h + dh)
        resolved = self.engine.resolved_layout(
            layout,
            active_card_id=card.instance_id,
            proposed_rect=proposed,
            compact_after=True,
        )
        return self.workspace.commit(resolved)

    # ── Internals ────────────────────────────────────

    def _resolve(
        self,
        card_id: str,
        translation: Point,
        metrics: LayoutMetrics,
        kind: Optional[InteractionKind],
        compact_after: bool,
    ) -> Optional[DashboardLayout]:
        session = self.session
        if session is None or session.anchor_card_id != card_id or (kind is not None and kind != session.kind):
            logger.debug(f"Ignoring stale interaction input for card {card_id}")
            return None

        baseline = session.baseline_layout
        source = baseline.card(card_id)
        if source is None or source.is_hidden:
            logger.debug(f"Card {card_id} is not visible in the interaction baseline")
            return None

        proposed = candidate_rect(source, translation, metrics, session.kind, baseline.grid_columns)
        return self.engine.resolved_layout(
            baseline,
            active_card_id=card_id,
            proposed_rect=proposed,
            compact_after=compact_after,
        )

    def _clear(self) -> None:
        self.session = None
        self.preview_layout = None
        self.active_card_id = None
