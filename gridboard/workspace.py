"""
Layout workspace: the committed layout, undo/redo history, last-stable
recovery, named profiles and autosave.
"""

import logging
import time
from typing import Callable, Optional, Protocol

from gridboard.engine import LayoutEngine
from gridboard.models import DashboardLayout, LayoutProfile, LayoutWorkspace, RatioRange, new_id
from gridboard.policy import CardKind

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 60


class LayoutStorage(Protocol):
    """Persistence collaborator. Called after every change of committed state."""

    def save_layout(self, layout: DashboardLayout) -> None: ...

    def save_workspace(self, workspace: LayoutWorkspace) -> None: ...


class WorkspaceManager:
    """
    Owns the committed layout and the workspace state.

    Every change goes through `commit`, which sanitizes the candidate, records
    history, tracks the last valid layout and autosaves into the current
    profile. Storage failures are logged and never roll back in-memory state.
    """

    def __init__(
        self,
        engine: Optional[LayoutEngine] = None,
        layout: Optional[DashboardLayout] = None,
        workspace: Optional[LayoutWorkspace] = None,
        storage: Optional[LayoutStorage] = None,
        history_limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], float] = time.time,
    ):
        self.engine = engine or LayoutEngine()
        self.storage = storage
        self.history_limit = max(1, history_limit)
        self._clock = clock

        self._layout = self.engine.sanitize(layout if layout is not None else self.engine.empty_layout())
        self._workspace = workspace or LayoutWorkspace()
        if self._workspace.last_stable_layout is None:
            self._workspace = self._workspace.model_copy(update={"last_stable_layout": self._layout})

    @property
    def layout(self) -> DashboardLayout:
        return self._layout

    @property
    def workspace(self) -> LayoutWorkspace:
        return self._workspace

    @property
    def can_undo(self) -> bool:
        return self._workspace.can_undo

    @property
    def can_redo(self) -> bool:
        return self._workspace.can_redo

    # ── Commit & history ─────────────────────────────

    def commit(self, candidate: DashboardLayout, record_history: bool = True) -> DashboardLayout:
        """Make `candidate` (sanitized) the committed layout and return it."""
        sanitized = self.engine.sanitize(candidate)
        ws = self._workspace

        history = list(ws.history)
        future = list(ws.future)
        if record_history and sanitized != self._layout:
            history.append(self._layout)
            if len(history) > self.history_limit:
                del history[: len(history) - self.history_limit]
            future = []

        last_stable = ws.last_stable_layout
        if self.engine.is_valid(sanitized):
            last_stable = sanitized

        profiles = ws.profiles
        index = ws.profile_index(ws.current_profile_id) if ws.current_profile_id else None
        if ws.auto_save_enabled and index is not None:
            profiles = list(profiles)
            profiles[index] = profiles[index].model_copy(update={
                "layout": sanitized,
                "updated_at": self._clock(),
            })

        self._workspace = ws.model_copy(update={
            "history": history,
            "future": future,
            "last_stable_layout": last_stable,
            "profiles": profiles,
        })
        self._layout = sanitized
        self._persist(layout=True)
        return sanitized

    def undo(self) -> DashboardLayout:
        ws = self._workspace
        if not ws.history:
            return self._layout
        previous = ws.history[-1]
        self._workspace = ws.model_copy(update={
            "history": ws.history[:-1],
            "future": [*ws.future, self._layout],
        })
        self._layout = self.engine.sanitize(previous)
        self._persist(layout=True)
        return self._layout

    def redo(self) -> DashboardLayout:
        ws = self._workspace
        if not ws.future:
            return self._layout
        upcoming = ws.future[-1]
        self._workspace = ws.model_copy(update={
            "future": ws.future[:-1],
            "history": [*ws.history, self._layout],
        })
        self._layout = self.engine.sanitize(upcoming)
        self._persist(layout=True)
        return self._layout

    def recover_last_stable(self) -> DashboardLayout:
        """Commit the last layout that passed validation, if any."""
        stable = self._workspace.last_stable_layout
        if stable is None:
            return self._layout
        logger.info("Recovering last stable layout")
        return self.commit(stable)

    # ── Layout actions ───────────────────────────────

    def auto_fit(self) -> DashboardLayout:
        return self.commit(self.engine.sanitize(self._layout))

    def normalize_spacing(self) -> DashboardLayout:
        return self.commit(self.engine.normalized_gap_layout(self._layout))

    def lock_all(self, locked: bool) -> DashboardLayout:
        return self.commit(self.engine.with_all_cards_locked(locked, self._layout))

    def set_auto_save(self, enabled: bool) -> None:
        self._workspace = self._workspace.model_copy(update={"auto_save_enabled": enabled})
        self._persist()

    def add_card(self, kind: CardKind) -> DashboardLayout:
        return self.commit(self.engine.add_card(kind, self._layout))

    def remove_card(self, instance_id: str) -> DashboardLayout:
        return self.commit(self.engine.remove_card(instance_id, self._layout))

    def set_card_hidden(self, instance_id: str, hidden: bool) -> DashboardLayout:
        return self.commit(self.engine.set_card_hidden(instance_id, hidden, self._layout))

    def reset_card(self, instance_id: str) -> DashboardLayout:
        return self.commit(self.engine.reset_card(instance_id, self._layout))

    def rename_card(self, instance_id: str, title: Optional[str]) -> DashboardLayout:
        return self.commit(self.engine.update_card(instance_id, self._layout, title=title))

    def set_card_locked(self, instance_id: str, locked: bool) -> DashboardLayout:
        return self.commit(self.engine.update_card(instance_id, self._layout, is_locked=locked))

    def set_card_aspect_lock(self, instance_id: str, ratio: Optional[float]) -> DashboardLayout:
        return self.commit(self.engine.update_card(instance_id, self._layout, aspect_lock=ratio))

    # ── Profiles ─────────────────────────────────────

    def profile(self, profile_id: str) -> Optional[LayoutProfile]:
        return self._workspace.profile(profile_id)

    def save_profile(self, name: str, ratio_range: Optional[RatioRange] = None) -> LayoutProfile:
        """Store the committed layout as a new profile and make it current."""
        profile = LayoutProfile(
            name=name,
            ratio_range=ratio_range,
            layout=self._layout,
            pinned=False,
            updated_at=self._clock(),
        )
        self._workspace = self._workspace.model_copy(update={
            "profiles": [profile, *self._workspace.profiles],
            "current_profile_id": profile.id,
        })
        logger.info(f"Saved profile '{name}' ({profile.id})")
        self._persist()
        return profile

    def apply_profile(self, profile_id: str) -> DashboardLayout:
        profile = self._workspace.profile(profile_id)
        if profile is None:
            return self._layout
        self._workspace = self._workspace.model_copy(update={"current_profile_id": profile_id})
        logger.info(f"Applying profile '{profile.name}'")
        return self.commit(profile.layout)

    def duplicate_profile(self, profile_id: str) -> Optional[LayoutProfile]:
        source = self._workspace.profile(profile_id)
        if source is None:
            return None
        clone = source.model_copy(update={
            "id": new_id(),
            "name": f"{source.name} Copy",
            "updated_at": self._clock(),
        })
        self._workspace = self._workspace.model_copy(update={
            "profiles": [clone, *self._workspace.profiles],
        })
        self._persist()
        return clone

    def delete_profile(self, profile_id: str) -> bool:
        ws = self._workspace
        profiles = [p for p in ws.profiles if p.id != profile_id]
        if len(profiles) == len(ws.profiles):
            return False
        current = ws.current_profile_id
        if current == profile_id:
            current = profiles[0].id if profiles else None
        self._workspace = ws.model_copy(update={"profiles": profiles, "current_profile_id": current})
        logger.info(f"Deleted profile {profile_id}")
        self._persist()
        return True

    def rename_profile(self, profile_id: str, name: str) -> Optional[LayoutProfile]:
        return self._update_profile(profile_id, name=name)

    def set_profile_pinned(self, profile_id: str, pinned: bool) -> Optional[LayoutProfile]:
        return self._update_profile(profile_id, pinned=pinned)

    def toggle_pin(self, profile_id: str) -> Optional[LayoutProfile]:
        profile = self._workspace.profile(profile_id)
        if profile is None:
            return None
        return self._update_profile(profile_id, pinned=not profile.pinned)

    def set_profile_ratio(self, profile_id: str, ratio_range: RatioRange) -> Optional[LayoutProfile]:
        return self._update_profile(profile_id, ratio_range=ratio_range)

    def clear_profile_ratio(self, profile_id: str) -> Optional[LayoutProfile]:
        return self._update_profile(profile_id, ratio_range=None)

    def profiles_for_ratio(self, ratio: float) -> list[LayoutProfile]:
        """
        Profiles whose ratio range contains `ratio`, pinned first, then most
        recently updated. Advisory: the caller decides whether to apply one.
        """
        matches = [p for p in self._workspace.profiles if p.ratio_range and p.ratio_range.contains(ratio)]
        return sorted(matches, key=lambda p: (not p.pinned, -p.updated_at))

    # ── Internals ────────────────────────────────────

    def _update_profile(self, profile_id: str, **changes) -> Optional[LayoutProfile]:
        ws = self._workspace
        index = ws.profile_index(profile_id)
        if index is None:
            return None
        profiles = list(ws.profiles)
        profiles[index] = profiles[index].model_copy(update={**changes, "updated_at": self._clock()})
        self._workspace = ws.model_copy(update={"profiles": profiles})
        self._persist()
        return profiles[index]

    def _persist(self, layout: bool = False) -> None:
        if self.storage is None:
            return
        try:
            if layout:
                self.storage.save_layout(self._layout)
            self.storage.save_workspace(self._workspace)
        except Exception as e:
            logger.error(f"Failed to persist layout state: {e}")
