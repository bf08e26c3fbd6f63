"""
Layout store: TinyDB-backed persistence for the committed layout and the workspace.
Implements the LayoutStorage collaborator used by WorkspaceManager.
"""

import logging
import os
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from tinydb import Query, TinyDB

from gridboard.migration import decode_layout
from gridboard.models import DashboardLayout, LayoutWorkspace

logger = logging.getLogger(__name__)

_DATA_DIR = Path(os.getenv("GRIDBOARD_ROOT", ".")) / "data"

_LAYOUT_KEY = "current"
_WORKSPACE_KEY = "workspace"


class LayoutStore:
    """TinyDB wrapper holding one layout document and one workspace document."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            db_path = _DATA_DIR / "layout.json"
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.db = TinyDB(str(db_path), indent=2, ensure_ascii=False)
        self.layout_table = self.db.table("layout")
        self.workspace_table = self.db.table("workspace")
        logger.info(f"Layout store opened: {db_path}")

    # ── Writes ───────────────────────────────────────

    def save_layout(self, layout: DashboardLayout):
        record = {
            "key": _LAYOUT_KEY,
            "layout": layout.model_dump(mode="json"),
            "updated_at": time.time(),
        }
        Doc = Query()
        self.layout_table.upsert(record, Doc.key == _LAYOUT_KEY)
        logger.debug(f"Layout saved ({len(layout.cards)} cards)")

    def save_workspace(self, workspace: LayoutWorkspace):
        record = {
            "key": _WORKSPACE_KEY,
            "workspace": workspace.model_dump(mode="json"),
            "updated_at": time.time(),
        }
        Doc = Query()
        self.workspace_table.upsert(record, Doc.key == _WORKSPACE_KEY)
        logger.debug(f"Workspace saved ({len(workspace.profiles)} profiles)")

    # ── Reads ────────────────────────────────────────

    def load_layout(self) -> Optional[DashboardLayout]:
        """Stored layout, migrated to the current version; None if absent or unreadable."""
        Doc = Query()
        results = self.layout_table.search(Doc.key == _LAYOUT_KEY)
        if not results:
            return None
        return decode_layout(results[0].get("layout"))

    def load_workspace(self) -> Optional[LayoutWorkspace]:
        Doc = Query()
        results = self.workspace_table.search(Doc.key == _WORKSPACE_KEY)
        if not results:
            return None
        try:
            return LayoutWorkspace.model_validate(results[0].get("workspace") or {})
        except ValidationError as e:
            logger.warning(f"Unreadable workspace document: {e}")
            return None

    # ── Management ───────────────────────────────────

    def clear(self):
        self.layout_table.truncate()
        self.workspace_table.truncate()

    def close(self):
        self.db.close()
