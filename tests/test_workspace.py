"""
Tests for WorkspaceManager: history, recovery, autosave, profiles and storage.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from gridboard.catalog import default_layout, default_workspace
from gridboard.config_loader import EngineSettings
from gridboard.engine import LayoutEngine
from gridboard.models import DashboardLayout, LayoutProfile, LayoutWorkspace, RatioRange
from gridboard.policy import CardKind
from gridboard.workspace import WorkspaceManager


@pytest.fixture
def manager(two_timers, clock):
    layout, _, _ = two_timers
    return WorkspaceManager(layout=layout, clock=clock)


@pytest.fixture
def profiled(clock):
    base = default_layout()
    return WorkspaceManager(layout=base, workspace=default_workspace(base), clock=clock)


def with_row_height(layout, value):
    return layout.model_copy(update={"row_unit_height": value})


# ── History ───────────────────────────────────────────

def test_commit_undo_redo(manager):
    original = manager.layout
    changed = manager.commit(with_row_height(original, 80))

    assert manager.layout == changed
    assert manager.can_undo and not manager.can_redo

    assert manager.undo() == original
    assert manager.can_redo
    assert manager.redo() == changed
    assert not manager.can_redo


def test_undo_redo_on_empty_stacks_are_noops(manager):
    layout = manager.layout
    assert manager.undo() is layout
    assert manager.redo() is layout


def test_commit_of_unchanged_layout_records_nothing(manager):
    manager.commit(manager.layout)
    assert not manager.can_undo


def test_new_commit_clears_redo(manager):
    manager.commit(with_row_height(manager.layout, 80))
    manager.undo()
    manager.commit(with_row_height(manager.layout, 90))
    assert not manager.can_redo


def test_history_is_bounded(manager):
    base = manager.layout
    for i in range(61):
        manager.commit(with_row_height(base, 100 + i))

    history = manager.workspace.history
    assert len(history) == 60
    assert history[0].row_unit_height == 100
    assert history[-1].row_unit_height == 159
    assert manager.layout.row_unit_height == 160


def test_commit_without_history_keeps_redo(manager):
    manager.commit(with_row_height(manager.layout, 80))
    manager.undo()
    manager.commit(with_row_height(manager.layout, 90), record_history=False)
    assert not manager.can_undo
    assert manager.can_redo


def test_commit_sanitizes_candidate(manager, two_timers):
    _, _, b = two_timers
    overlapping = manager.layout.replacing_card(manager.layout.card(b.instance_id).model_copy(update={"x": 0}))
    result = manager.commit(overlapping)
    assert manager.engine.is_valid(result)


# ── Recovery ──────────────────────────────────────────

def test_last_stable_tracks_valid_commits(manager):
    first = manager.commit(with_row_height(manager.layout, 80))
    assert manager.workspace.last_stable_layout == first

    with patch.object(manager.engine, "is_valid", return_value=False):
        manager.commit(with_row_height(manager.layout, 90))

    assert manager.workspace.last_stable_layout == first
    assert manager.recover_last_stable() == first
    assert manager.layout.row_unit_height == 80


# ── Layout actions ────────────────────────────────────

def test_card_actions_commit(manager, two_timers):
    _, a, b = two_timers
    manager.add_card(CardKind.BATTERY)
    assert len(manager.layout.cards) == 3

    manager.rename_card(a.instance_id, "Clock")
    manager.set_card_locked(a.instance_id, True)
    card = manager.layout.card(a.instance_id)
    assert card.title == "Clock" and card.is_locked

    manager.set_card_hidden(b.instance_id, True)
    assert manager.layout.card(b.instance_id).is_hidden

    manager.remove_card(b.instance_id)
    assert manager.layout.card(b.instance_id) is None
    assert len(manager.workspace.history) == 5


def test_lock_all_and_spacing(manager):
    manager.lock_all(True)
    assert all(c.is_locked for c in manager.layout.cards)

    manager.commit(manager.layout.model_copy(update={"gap": 30}))
    assert manager.normalize_spacing().gap == 16


# ── Autosave ──────────────────────────────────────────

def test_commit_autosaves_into_current_profile(profiled):
    current_id = profiled.workspace.current_profile_id
    committed = profiled.commit(with_row_height(profiled.layout, 90))

    profile = profiled.profile(current_id)
    assert profile.layout == committed
    assert profile.updated_at == 1000.0


def test_autosave_disabled_leaves_profile(profiled):
    current_id = profiled.workspace.current_profile_id
    before = profiled.profile(current_id)
    profiled.set_auto_save(False)

    profiled.commit(with_row_height(profiled.layout, 90))

    assert profiled.profile(current_id) == before


# ── Profiles ──────────────────────────────────────────

def test_default_workspace_profiles(profiled):
    names = [p.name for p in profiled.workspace.profiles]
    assert names == ["Standard", "Square", "Ultrawide"]
    assert all(p.pinned for p in profiled.workspace.profiles)
    assert profiled.profile(profiled.workspace.current_profile_id).name == "Standard"


def test_save_profile_becomes_current(profiled):
    profile = profiled.save_profile("Desk", RatioRange(min=1.5, max=1.8))
    assert profiled.workspace.profiles[0] == profile
    assert profiled.workspace.current_profile_id == profile.id
    assert profile.layout == profiled.layout
    assert not profile.pinned


def test_apply_profile_commits_its_layout(profiled):
    square = profiled.workspace.profiles[1]
    result = profiled.apply_profile(square.id)

    assert profiled.workspace.current_profile_id == square.id
    assert result == profiled.engine.sanitize(square.layout)
    assert profiled.can_undo


def test_unknown_profile_ids_are_noops(profiled):
    layout = profiled.layout
    assert profiled.apply_profile("missing") is layout
    assert profiled.duplicate_profile("missing") is None
    assert profiled.delete_profile("missing") is False
    assert profiled.rename_profile("missing", "X") is None
    assert profiled.toggle_pin("missing") is None


def test_duplicate_profile(profiled):
    source = profiled.workspace.profiles[2]
    clone = profiled.duplicate_profile(source.id)
    assert clone.name == "Ultrawide Copy"
    assert clone.id != source.id
    assert clone.layout == source.layout
    assert profiled.workspace.profiles[0] == clone


def test_delete_current_profile_falls_back(profiled):
    current = profiled.workspace.current_profile_id
    assert profiled.delete_profile(current)
    assert profiled.profile(current) is None
    assert profiled.workspace.current_profile_id == profiled.workspace.profiles[0].id


def test_profile_edits(profiled):
    target = profiled.workspace.profiles[1]

    renamed = profiled.rename_profile(target.id, "Tablet")
    assert renamed.name == "Tablet"
    assert renamed.updated_at == 1000.0

    assert profiled.toggle_pin(target.id).pinned is False
    assert profiled.set_profile_pinned(target.id, True).pinned is True

    ranged = profiled.set_profile_ratio(target.id, RatioRange(min=2.0, max=1.0))
    assert (ranged.ratio_range.min, ranged.ratio_range.max) == (1.0, 2.0)
    assert profiled.clear_profile_ratio(target.id).ratio_range is None


def test_profiles_for_ratio_orders_pinned_then_recent():
    layout = DashboardLayout()
    wide = RatioRange(min=1.0, max=2.0)
    pinned_old = LayoutProfile(name="A", layout=layout, ratio_range=wide, pinned=True, updated_at=1)
    recent = LayoutProfile(name="B", layout=layout, ratio_range=wide, updated_at=3)
    older = LayoutProfile(name="C", layout=layout, ratio_range=wide, updated_at=2)
    other = LayoutProfile(name="D", layout=layout, ratio_range=RatioRange(min=3, max=4), updated_at=9)
    unranged = LayoutProfile(name="E", layout=layout, updated_at=9)
    workspace = LayoutWorkspace(profiles=[older, other, recent, unranged, pinned_old])

    manager = WorkspaceManager(workspace=workspace)

    assert [p.name for p in manager.profiles_for_ratio(1.5)] == ["A", "B", "C"]
    assert manager.profiles_for_ratio(10) == []


def test_ratio_range_around():
    assert RatioRange.around(0.55).min == 0.5
    assert RatioRange.around(1.5).contains(1.6)


# ── Storage ───────────────────────────────────────────

def test_storage_receives_every_change(two_timers):
    layout, _, _ = two_timers
    storage = MagicMock()
    manager = WorkspaceManager(layout=layout, storage=storage)

    committed = manager.commit(with_row_height(manager.layout, 80))
    storage.save_layout.assert_called_once_with(committed)
    storage.save_workspace.assert_called_once_with(manager.workspace)

    manager.set_auto_save(False)
    assert storage.save_layout.call_count == 1
    assert storage.save_workspace.call_count == 2


def test_storage_failure_is_logged_not_raised(two_timers, caplog):
    layout, _, _ = two_timers
    storage = MagicMock()
    storage.save_layout.side_effect = OSError("disk full")
    manager = WorkspaceManager(layout=layout, storage=storage)

    with caplog.at_level(logging.ERROR, logger="gridboard.workspace"):
        committed = manager.commit(with_row_height(manager.layout, 80))

    assert manager.layout == committed
    assert manager.can_undo
    assert "disk full" in caplog.text


def test_new_workspace_uses_configured_columns():
    engine = LayoutEngine(settings=EngineSettings(default_columns=12))
    manager = WorkspaceManager(engine=engine)
    assert manager.layout.grid_columns == 12

    added = manager.add_card(CardKind.SCHEDULE)
    assert added.cards[0].w == 12
