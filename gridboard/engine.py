"""
Layout engine: sanitation, collision-free placement, vertical compaction and
validation of dashboard layouts.

Every public method is a pure function over DashboardLayout values: inputs are
never mutated, a new layout is returned. Out-of-range geometry, stale size
policies and duplicate IDs are repaired rather than rejected.
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from gridboard.catalog import DefaultCardFactory, default_card_for
from gridboard.config_loader import EngineSettings
from gridboard.geometry import GridRect, clamp, collides, intersects
from gridboard.models import (
    CURRENT_LAYOUT_VERSION,
    CardPlacement,
    CompactMode,
    DashboardLayout,
    new_id,
)
from gridboard.policy import CardKind, PolicyLookup, effective_bounds, normalize, policy_for

logger = logging.getLogger(__name__)


# ── Validation report ─────────────────────────────────

class IssueKind(str, Enum):
    DUPLICATE_ID = "duplicate_id"
    STALE_POLICY = "stale_policy"
    WIDTH_RANGE = "width_range"
    HEIGHT_RANGE = "height_range"
    HORIZONTAL_BOUNDS = "horizontal_bounds"
    NEGATIVE_Y = "negative_y"
    OVERLAP = "overlap"


class LayoutIssue(BaseModel):
    kind: IssueKind
    card_ids: List[str] = Field(default_factory=list)
    message: str = ""


class LayoutValidation(BaseModel):
    is_valid: bool
    issues: List[LayoutIssue] = Field(default_factory=list)


# ── Engine ────────────────────────────────────────────

class LayoutEngine:
    """
    Places cards on the grid without overlap.

    The engine knows nothing about specific card kinds: size policies come from
    `policy_for` and default cards from `default_card_for`, both injectable.
    """

    def __init__(
        self,
        policy_for: PolicyLookup = policy_for,
        default_card_for: DefaultCardFactory = default_card_for,
        settings: Optional[EngineSettings] = None,
    ):
        self._policy_for = policy_for
        self._default_card_for = default_card_for
        self.settings = settings or EngineSettings()

    # ── Sanitize & resolve ───────────────────────────

    def empty_layout(self) -> DashboardLayout:
        """A layout with no cards and the configured grid settings."""
        return DashboardLayout(
            grid_columns=self.settings.default_columns,
            row_unit_height=self.settings.default_row_unit_height,
            gap=self.settings.default_gap,
        )

    def sanitize(self, layout: DashboardLayout) -> DashboardLayout:
        """Restore every layout invariant. Run after any external mutation."""
        columns = max(1, layout.grid_columns)

        seen: set[str] = set()
        cards: List[CardPlacement] = []
        for card in layout.cards:
            if card.instance_id in seen:
                fresh = new_id()
                logger.debug(f"Duplicate card id {card.instance_id} reassigned to {fresh}")
                card = card.model_copy(update={"instance_id": fresh})
            seen.add(card.instance_id)
            cards.append(self._normalize(card, columns).applying_aspect_lock())

        normalized = layout.model_copy(update={
            "cards": cards,
            "grid_columns": columns,
            "row_unit_height": max(self.settings.min_row_unit_height, layout.row_unit_height),
            "gap": max(self.settings.min_gap, layout.gap),
            "version": CURRENT_LAYOUT_VERSION,
        })

        return self.resolved_layout(
            normalized,
            active_card_id=None,
            proposed_rect=None,
            compact_after=normalized.compact_mode == CompactMode.VERTICAL,
        )

    def resolved_layout(
        self,
        layout: DashboardLayout,
        active_card_id: Optional[str] = None,
        proposed_rect: Optional[GridRect] = None,
        compact_after: bool = False,
    ) -> DashboardLayout:
        """
        Place all visible cards without overlap.

        The active card (if any) is installed at the proposed rect and placed
        first; the remaining visible cards follow in list order and move out of
        its way. Hidden cards keep their last rect.
        """
        columns = max(1, layout.grid_columns)

        # keyed by list position; instance IDs are not guaranteed unique here
        visible: Dict[int, CardPlacement] = {
            index: self._normalize(card, columns)
            for index, card in enumerate(layout.cards)
            if not card.is_hidden
        }

        active_index: Optional[int] = None
        if active_card_id is not None:
            active_index = next((i for i, c in visible.items() if c.instance_id == active_card_id), None)

        if active_index is not None and proposed_rect is not None:
            active = visible[active_index]
            bounds = effective_bounds(active, columns)
            active = active.with_rect(clamp(proposed_rect, columns, bounds))
            visible[active_index] = self._normalize(active.applying_aspect_lock(), columns)

        placement_order = [i for i in visible if i != active_index]
        if active_index is not None:
            placement_order.insert(0, active_index)

        placed: Dict[int, CardPlacement] = {}
        for index in placement_order:
            candidate = visible[index].clamped(columns)
            rect = self._first_available_rect(candidate.rect, columns, [p.rect for p in placed.values()])
            placed[index] = candidate.with_rect(rect)

        if compact_after and layout.compact_mode == CompactMode.VERTICAL:
            placed = self._compact_vertically(placed, columns)

        cards = [placed.get(index, card) for index, card in enumerate(layout.cards)]
        return layout.model_copy(update={"cards": cards})

    # ── Card operations ──────────────────────────────

    def add_card(self, kind: CardKind, layout: DashboardLayout) -> DashboardLayout:
        card = self._default_card_for(kind)
        return self.sanitize(layout.model_copy(update={"cards": [*layout.cards, card]}))

    def remove_card(self, instance_id: str, layout: DashboardLayout) -> DashboardLayout:
        cards = [c for c in layout.cards if c.instance_id != instance_id]
        return self.sanitize(layout.model_copy(update={"cards": cards}))

    def set_card_hidden(self, instance_id: str, hidden: bool, layout: DashboardLayout) -> DashboardLayout:
        """
        Hiding frees the card's space immediately. Showing re-enters the card at
        its last known rect with priority, so other cards make room for it.
        """
        existing = layout.card(instance_id)
        if existing is None or existing.is_hidden == hidden:
            return layout

        updated_card = existing.model_copy(update={"is_hidden": hidden})
        updated = layout.replacing_card(updated_card)
        if hidden:
            return self.sanitize(updated)

        return self.resolved_layout(
            updated,
            active_card_id=instance_id,
            proposed_rect=updated_card.rect,
            compact_after=True,
        )

    def reset_card(self, instance_id: str, layout: DashboardLayout) -> DashboardLayout:
        """Restore a card's default size and constraints at its current position."""
        existing = layout.card(instance_id)
        if existing is None:
            return layout

        defaults = self._default_card_for(existing.kind, x=existing.x, y=existing.y)
        reset = defaults.model_copy(update={
            "instance_id": existing.instance_id,
            "title": existing.title,
            "is_hidden": existing.is_hidden,
        })
        return self.resolved_layout(
            layout.replacing_card(reset),
            active_card_id=instance_id,
            proposed_rect=reset.rect,
            compact_after=True,
        )

    def update_card(self, instance_id: str, layout: DashboardLayout, **changes) -> DashboardLayout:
        """
        Direct edit of a card's fields (title, is_locked, aspect_lock, geometry).
        The edited card is re-clamped; overlaps are left for sanitize.
        """
        existing = layout.card(instance_id)
        if existing is None:
            return layout
        changes.pop("instance_id", None)
        edited = existing.model_copy(update=changes)
        edited = edited.clamped(layout.grid_columns).applying_aspect_lock()
        return layout.replacing_card(edited)

    def with_all_cards_locked(self, locked: bool, layout: DashboardLayout) -> DashboardLayout:
        cards = [c.model_copy(update={"is_locked": locked}) for c in layout.cards]
        return layout.model_copy(update={"cards": cards})

    def normalized_gap_layout(self, layout: DashboardLayout) -> DashboardLayout:
        updated = layout.model_copy(update={
            "gap": self.settings.default_gap,
            "row_unit_height": self.settings.default_row_unit_height,
        })
        return self.sanitize(updated)

    # ── Validation ───────────────────────────────────

    def validation(self, layout: DashboardLayout) -> LayoutValidation:
        """Diagnostic report of every broken invariant. Never mutates."""
        issues: List[LayoutIssue] = []
        columns = max(1, layout.grid_columns)

        seen: set[str] = set()
        for card in layout.cards:
            cid = card.instance_id
            bounds = effective_bounds(self._policy_for(card.kind), columns)

            if cid in seen:
                issues.append(LayoutIssue(
                    kind=IssueKind.DUPLICATE_ID, card_ids=[cid],
                    message=f"Duplicate card instance_id: {cid}",
                ))
            seen.add(cid)

            if (card.min_w, card.min_h, card.max_w, card.max_h) != (
                bounds.min_w, bounds.min_h, bounds.max_w, bounds.max_h
            ):
                issues.append(LayoutIssue(
                    kind=IssueKind.STALE_POLICY, card_ids=[cid],
                    message=f"Card {cid} uses stale size policy",
                ))

            if card.is_hidden:
                continue
            if card.w < bounds.min_w or card.w > bounds.max_w:
                issues.append(LayoutIssue(
                    kind=IssueKind.WIDTH_RANGE, card_ids=[cid],
                    message=f"Card {cid} width out of range",
                ))
            if card.h < bounds.min_h or card.h > bounds.max_h:
                issues.append(LayoutIssue(
                    kind=IssueKind.HEIGHT_RANGE, card_ids=[cid],
                    message=f"Card {cid} height out of range",
                ))
            if card.x < 0 or card.x + card.w > columns:
                issues.append(LayoutIssue(
                    kind=IssueKind.HORIZONTAL_BOUNDS, card_ids=[cid],
                    message=f"Card {cid} is out of horizontal bounds",
                ))
            if card.y < 0:
                issues.append(LayoutIssue(
                    kind=IssueKind.NEGATIVE_Y, card_ids=[cid],
                    message=f"Card {cid} has negative y",
                ))

        visible = layout.visible_cards
        for i, a in enumerate(visible):
            for b in visible[i + 1:]:
                if intersects(a.rect, b.rect):
                    issues.append(LayoutIssue(
                        kind=IssueKind.OVERLAP, card_ids=[a.instance_id, b.instance_id],
                        message=f"Cards overlap: {a.instance_id}, {b.instance_id}",
                    ))

        return LayoutValidation(is_valid=not issues, issues=issues)

    def is_valid(self, layout: DashboardLayout) -> bool:
        return self.validation(layout).is_valid

    # ── Internals ────────────────────────────────────

    def _normalize(self, card: CardPlacement, columns: int) -> CardPlacement:
        return normalize(card, columns, self._policy_for(card.kind))

    def _first_available_rect(self, desired: GridRect, columns: int, existing: List[GridRect]) -> GridRect:
        """
        Nearest free slot for a rect of fixed size: the desired spot, then the
        same row to the right, then to the left, then rows below within a bound,
        then an unbounded scan below everything.
        """
        w, h = desired.w, desired.h
        max_x = max(0, columns - w)
        start = GridRect(x=min(max(0, desired.x), max_x), y=max(0, desired.y), w=w, h=h)

        if not collides(start, existing):
            return start

        for x in range(start.x + 1, max_x + 1):
            probe = GridRect(x=x, y=start.y, w=w, h=h)
            if not collides(probe, existing):
                return probe

        for x in range(start.x - 1, -1, -1):
            probe = GridRect(x=x, y=start.y, w=w, h=h)
            if not collides(probe, existing):
                return probe

        existing_bottom = max((r.max_y for r in existing), default=0)
        max_probe_row = max(
            existing_bottom + self.settings.search_margin_rows,
            start.y + self.settings.search_min_rows,
        )
        for row in range(start.y + 1, max_probe_row + 1):
            for x in range(0, max_x + 1):
                probe = GridRect(x=x, y=row, w=w, h=h)
                if not collides(probe, existing):
                    return probe

        logger.warning(f"Placement search exhausted {max_probe_row} rows, scanning below all cards")
        row = max(start.y + 1, existing_bottom)
        while True:
            for x in range(0, max_x + 1):
                probe = GridRect(x=x, y=row, w=w, h=h)
                if not collides(probe, existing):
                    return probe
            row += 1

    def _compact_vertically(self, placed: Dict[int, CardPlacement], columns: int) -> Dict[int, CardPlacement]:
        """Pull every card upward row by row; columns are never reassigned."""
        cards = dict(placed)
        order = sorted(cards, key=lambda i: (cards[i].y, cards[i].x, cards[i].instance_id, i))

        for index in order:
            card = cards[index]
            others = [c.rect for i, c in cards.items() if i != index]
            rect = card.rect
            while rect.y > 0:
                probe = rect.moved(dy=-1)
                if probe.x < 0 or probe.max_x > columns or collides(probe, others):
                    break
                rect = probe
            if rect != card.rect:
                cards[index] = card.with_rect(rect)

        return cards
