"""
Config loader: parses YAML config files into pydantic models.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from gridboard.errors import ConfigError
from gridboard.models import DEFAULT_COLUMNS, DEFAULT_GAP, DEFAULT_ROW_UNIT_HEIGHT

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


# ── Settings ──────────────────────────────────────────

class EngineSettings(BaseModel):
    default_columns: int = DEFAULT_COLUMNS
    default_row_unit_height: float = DEFAULT_ROW_UNIT_HEIGHT
    default_gap: float = DEFAULT_GAP
    min_row_unit_height: float = 24.0
    min_gap: float = 4.0
    # placement search: rows probed below the lowest card before the unbounded scan
    search_margin_rows: int = Field(default=40, ge=0)
    search_min_rows: int = Field(default=160, ge=0)


class WorkspaceSettings(BaseModel):
    history_limit: int = Field(default=60, ge=1)
    auto_save: bool = True


class StorageSettings(BaseModel):
    db_path: Optional[str] = None


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = LOG_FORMAT


class AppConfig(BaseModel):
    engine: EngineSettings = Field(default_factory=EngineSettings)
    workspace: WorkspaceSettings = Field(default_factory=WorkspaceSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# ── Loading ───────────────────────────────────────────

_CONFIG_SEARCH_PATHS = [
    "config/gridboard.yaml",
    "gridboard.yaml",
]


def find_config_root() -> Path:
    """Find the root config file or directory."""
    base = Path(os.getenv("GRIDBOARD_ROOT", "."))
    config_dir = base / "config"
    if config_dir.is_dir():
        return config_dir

    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path

    # nothing found: load defaults
    return base


def deep_merge_dict(base: dict, update: dict) -> dict:
    """Deep merge two dictionaries; later values win, nested dicts are merged."""
    for k, v in update.items():
        if isinstance(v, dict) and k in base and isinstance(base[k], dict):
            base[k] = deep_merge_dict(base[k], v)
        else:
            base[k] = v
    return base


def load_all_yamls(root: Path, strict: bool = False) -> dict[str, Any]:
    """Load and merge all YAML files under root (or root itself if it is a file)."""
    combined: dict[str, Any] = {}

    files: list[Path] = []
    if root.is_file():
        files.append(root)
    elif root.is_dir():
        files.extend(root.glob("**/*.yaml"))
        files.extend(root.glob("**/*.yml"))
        files.sort()

    for f in files:
        try:
            with open(f, "r", encoding="utf-8") as fp:
                content = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError) as e:
            if strict:
                raise ConfigError(f"Cannot read config file {f}: {e}") from e
            logger.error(f"Error loading {f}: {e}")
            continue
        if not content:
            continue
        if not isinstance(content, dict):
            logger.warning(f"Ignoring {f}: top level is not a mapping")
            continue
        combined = deep_merge_dict(combined, content)

    return combined


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Load and merge configuration from YAML files.
    An explicitly given path must be readable; the searched default may be absent.
    """
    strict = path is not None
    if path is None:
        path = find_config_root()
    path = Path(path)
    if strict and not path.exists():
        raise ConfigError(f"Config path does not exist: {path}")

    raw = load_all_yamls(path, strict=strict)
    return AppConfig.model_validate(raw)


def setup_logging(config: AppConfig) -> None:
    """Apply the logging section of the config to the root logger."""
    level = getattr(logging, config.logging.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.logging.format)
