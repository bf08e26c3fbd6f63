"""
Wiring: builds an engine, store and workspace from config and restores the
persisted state.
"""

import logging
from typing import Optional

from gridboard.catalog import default_layout, default_workspace
from gridboard.config_loader import AppConfig, load_config, setup_logging
from gridboard.engine import LayoutEngine
from gridboard.storage import LayoutStore
from gridboard.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


def create_workspace(
    config: Optional[AppConfig] = None,
    store: Optional[LayoutStore] = None,
) -> WorkspaceManager:
    """
    Load config, open the store and restore the saved layout and workspace.
    Missing or unreadable state falls back to the default layout and the
    default profiles.
    """
    if config is None:
        config = load_config()
        setup_logging(config)

    engine = LayoutEngine(settings=config.engine)

    if store is None:
        store = LayoutStore(config.storage.db_path)

    layout = store.load_layout()
    if layout is None:
        logger.info("No stored layout, using defaults")
        layout = default_layout(config.engine.default_columns)
    layout = engine.sanitize(layout)

    workspace = store.load_workspace()
    if workspace is None:
        workspace = default_workspace(layout)
        workspace = workspace.model_copy(update={"auto_save_enabled": config.workspace.auto_save})

    manager = WorkspaceManager(
        engine=engine,
        layout=layout,
        workspace=workspace,
        storage=store,
        history_limit=config.workspace.history_limit,
    )
    # write back the sanitized/migrated state
    store.save_layout(manager.layout)
    store.save_workspace(manager.workspace)
    logger.info(f"Workspace ready: {len(layout.cards)} cards, {len(manager.workspace.profiles)} profiles")
    return manager
