"""
Tests for drag/resize sessions and keyboard nudges.
"""

import pytest

from gridboard.geometry import GridRect
from gridboard.interaction import InteractionController, InteractionKind, candidate_rect
from gridboard.models import DashboardLayout
from gridboard.policy import CardKind
from gridboard.workspace import WorkspaceManager


@pytest.fixture
def board(two_timers):
    layout, a, b = two_timers
    manager = WorkspaceManager(layout=layout)
    return InteractionController(manager), a, b


@pytest.fixture
def aspect_board(make_card):
    card = make_card(kind=CardKind.MEDIA, w=12, h=8, aspect_lock=2.0)
    manager = WorkspaceManager(layout=DashboardLayout(cards=[card]))
    return InteractionController(manager), card.instance_id


def test_candidate_rect_rounds_half_steps(make_card, metrics):
    card = make_card(x=4, y=4).clamped(24)
    assert candidate_rect(card, (28, 0), metrics, InteractionKind.DRAG, 24).x == 5
    assert candidate_rect(card, (-28, -38), metrics, InteractionKind.DRAG, 24) == GridRect(x=3, y=3, w=12, h=8)
    assert candidate_rect(card, (0, 152), metrics, InteractionKind.RESIZE_BOTH, 24).h == 10


def test_drag_preview_then_commit(board, metrics):
    controller, a, b = board
    original = controller.workspace.layout

    assert controller.begin(InteractionKind.DRAG, a.instance_id)
    preview = controller.update(a.instance_id, (336, 0), metrics)

    assert preview.card(a.instance_id).rect == GridRect(x=6, y=0, w=12, h=8)
    assert preview.card(b.instance_id).rect == GridRect(x=0, y=8, w=12, h=8)
    assert controller.displayed_layout == preview
    assert controller.workspace.layout == original
    assert not controller.workspace.can_undo

    committed = controller.end(a.instance_id, (336, 0), metrics)
    assert committed.card(a.instance_id).x == 6
    assert controller.workspace.layout == committed
    assert controller.workspace.can_undo
    assert not controller.is_active
    assert controller.preview_layout is None


def test_updates_are_relative_to_session_baseline(board, metrics):
    controller, a, _ = board
    controller.begin(InteractionKind.DRAG, a.instance_id)
    controller.update(a.instance_id, (336, 0), metrics)
    preview = controller.update(a.instance_id, (28, 0), metrics)
    assert preview.card(a.instance_id).x == 1


def test_resize_width_respects_minimum(board, metrics):
    controller, a, _ = board
    controller.begin(InteractionKind.RESIZE_WIDTH, a.instance_id)
    preview = controller.update(a.instance_id, (-560, 0), metrics)
    assert preview.card(a.instance_id).w == 8


def test_stale_input_is_ignored(board, metrics):
    controller, a, b = board
    controller.begin(InteractionKind.DRAG, a.instance_id)
    before = controller.session

    assert controller.update(b.instance_id, (336, 0), metrics) is None
    assert controller.update(a.instance_id, (336, 0), metrics, kind=InteractionKind.RESIZE_WIDTH) is None
    assert controller.end(b.instance_id, (0, 0), metrics) is None
    assert controller.session == before
    assert controller.preview_layout is None


def test_update_without_session_is_ignored(board, metrics):
    controller, a, _ = board
    assert controller.update(a.instance_id, (56, 0), metrics) is None
    assert controller.end(a.instance_id, (56, 0), metrics) is None


def test_begin_is_idempotent_and_replaceable(board, metrics):
    controller, a, b = board
    assert controller.begin(InteractionKind.DRAG, a.instance_id)
    controller.update(a.instance_id, (336, 0), metrics)
    assert not controller.begin(InteractionKind.DRAG, a.instance_id)
    assert controller.preview_layout is not None

    assert controller.begin(InteractionKind.RESIZE_HEIGHT, b.instance_id)
    assert controller.session.anchor_card_id == b.instance_id
    assert controller.preview_layout is None
    assert controller.active_card_id == b.instance_id


def test_cancel_discards_preview(board, metrics):
    controller, a, _ = board
    original = controller.workspace.layout
    controller.begin(InteractionKind.DRAG, a.instance_id)
    controller.update(a.instance_id, (336, 0), metrics)

    controller.cancel()

    assert not controller.is_active
    assert controller.displayed_layout == original
    assert not controller.workspace.can_undo


# ── Aspect lock ───────────────────────────────────────

def test_aspect_lock_applied_on_load(aspect_board):
    controller, card_id = aspect_board
    card = controller.workspace.layout.card(card_id)
    assert (card.w, card.h) == (12, 6)


def test_resize_width_keeps_aspect(aspect_board, metrics):
    controller, card_id = aspect_board
    controller.begin(InteractionKind.RESIZE_WIDTH, card_id)
    card = controller.update(card_id, (224, 0), metrics).card(card_id)
    assert (card.w, card.h) == (16, 8)


def test_resize_height_derives_width(aspect_board, metrics):
    controller, card_id = aspect_board
    controller.begin(InteractionKind.RESIZE_HEIGHT, card_id)
    card = controller.update(card_id, (0, 152), metrics).card(card_id)
    assert (card.w, card.h) == (16, 8)


def test_aspect_resize_clamped_to_grid(aspect_board, metrics):
    controller, card_id = aspect_board
    controller.begin(InteractionKind.RESIZE_BOTH, card_id)
    card = controller.end(card_id, (1000, 0), metrics).card(card_id)
    assert (card.w, card.h) == (24, 12)


# ── Keyboard ──────────────────────────────────────────

def test_nudge_moves_and_resizes_active_card(make_card):
    card = make_card()
    controller = InteractionController(WorkspaceManager(layout=DashboardLayout(cards=[card])))

    assert controller.nudge(dx=1) is None

    controller.select(card.instance_id)
    moved = controller.nudge(dx=3)
    assert moved.card(card.instance_id).rect == GridRect(x=3, y=0, w=12, h=8)

    narrowed = controller.nudge(dw=-2)
    assert narrowed.card(card.instance_id).w == 10

    floored = controller.nudge(dw=-6)
    assert floored.card(card.instance_id).w == 8
    assert len(controller.workspace.workspace.history) == 3


def test_select_is_ignored_during_gesture(board):
    controller, a, b = board
    controller.begin(InteractionKind.DRAG, a.instance_id)
    controller.select(b.instance_id)
    assert controller.active_card_id == a.instance_id


# ── Locked and hidden cards ───────────────────────────

def test_locked_card_cannot_be_dragged(make_card, metrics):
    locked = make_card(is_locked=True)
    other = make_card(x=12)
    manager = WorkspaceManager(layout=DashboardLayout(cards=[locked, other]))
    controller = InteractionController(manager)

    assert not controller.begin(InteractionKind.DRAG, locked.instance_id)
    assert not controller.is_active
    assert controller.end(locked.instance_id, (560, 0), metrics) is None

    assert manager.layout.card(locked.instance_id).rect == GridRect(x=0, y=0, w=12, h=8)
    assert not manager.can_undo


def test_lock_all_blocks_resize_and_nudge(board):
    controller, a, _ = board
    controller.workspace.lock_all(True)

    assert not controller.begin(InteractionKind.RESIZE_BOTH, a.instance_id)
    controller.select(a.instance_id)
    assert controller.nudge(dx=2) is None
    assert controller.workspace.layout.card(a.instance_id).rect == GridRect(x=0, y=0, w=12, h=8)

    controller.workspace.lock_all(False)
    assert controller.begin(InteractionKind.RESIZE_BOTH, a.instance_id)


def test_hidden_anchor_is_ignored(make_card, metrics):
    visible = make_card()
    hidden = make_card(x=12, is_hidden=True)
    manager = WorkspaceManager(layout=DashboardLayout(cards=[visible, hidden]))
    controller = InteractionController(manager)
    before = manager.layout

    controller.begin(InteractionKind.DRAG, hidden.instance_id)

    assert controller.update(hidden.instance_id, (56, 0), metrics) is None
    assert controller.end(hidden.instance_id, (56, 0), metrics) is None
    assert manager.layout == before
    assert not manager.can_undo
