"""
Version-gated upgrade of stored layout payloads.

Version 1: {"ordered_sections": [{"id": kind, "col_span": n, "row_span": n}]}
Version 2: cards carry their kind under "id" and have no "instance_id"
Version 3: current DashboardLayout shape
"""

import copy
import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from gridboard.catalog import clamp_col_span, clamp_row_span, layout_from_sections
from gridboard.errors import UnsupportedVersionError
from gridboard.models import CURRENT_LAYOUT_VERSION, DashboardLayout, new_id
from gridboard.policy import CardKind

logger = logging.getLogger(__name__)


def detect_version(payload: Dict[str, Any]) -> int:
    """Schema version of a raw payload; older payloads predate the field."""
    version = payload.get("version")
    if isinstance(version, int):
        return version
    if "ordered_sections" in payload:
        return 1
    cards = payload.get("cards") or []
    if any(isinstance(c, dict) and "kind" not in c and "id" in c for c in cards):
        return 2
    return CURRENT_LAYOUT_VERSION


def _v1_to_v2(payload: Dict[str, Any]) -> Dict[str, Any]:
    sections = []
    for section in payload.get("ordered_sections", []):
        try:
            kind = CardKind(section["id"])
        except (KeyError, ValueError):
            logger.warning(f"Dropping unknown legacy section: {section!r}")
            continue
        sections.append((
            kind,
            clamp_col_span(int(section.get("col_span", 12))),
            clamp_row_span(int(section.get("row_span", 8))),
        ))

    layout = layout_from_sections(sections)
    cards = []
    for card in layout.cards:
        legacy = card.model_dump(mode="json", exclude={"instance_id", "kind", "title", "is_hidden"})
        legacy["id"] = card.kind.value
        cards.append(legacy)

    migrated = layout.model_dump(mode="json", exclude={"cards"})
    migrated["cards"] = cards
    migrated["version"] = 2
    return migrated


def _v2_to_v3(payload: Dict[str, Any]) -> Dict[str, Any]:
    migrated = dict(payload)
    cards = []
    for card in payload.get("cards", []):
        card = dict(card)
        if "kind" not in card and "id" in card:
            card["kind"] = card.pop("id")
        card.setdefault("instance_id", new_id())
        card.setdefault("is_hidden", False)
        cards.append(card)
    migrated["cards"] = cards
    migrated["version"] = 3
    return migrated


_MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    1: _v1_to_v2,
    2: _v2_to_v3,
}


def migrate_layout_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Upgrade a raw layout payload one version at a time to the current shape."""
    version = detect_version(payload)
    if version > CURRENT_LAYOUT_VERSION:
        raise UnsupportedVersionError(version, CURRENT_LAYOUT_VERSION)

    migrated = copy.deepcopy(payload)
    while version < CURRENT_LAYOUT_VERSION:
        step = _MIGRATIONS.get(version)
        if step is None:
            # versions before 1 have no known shape; treat as version 1
            step = _v1_to_v2
        logger.info(f"Migrating layout payload from version {version}")
        migrated = step(migrated)
        version = migrated["version"]
    return migrated


def decode_layout(payload: Any) -> Optional[DashboardLayout]:
    """
    Migrate and validate a stored payload.
    Returns None (and logs) for payloads that cannot be read.
    """
    if not payload:
        return None
    if not isinstance(payload, dict):
        logger.warning(f"Unreadable layout payload: expected a mapping, got {type(payload).__name__}")
        return None
    try:
        return DashboardLayout.model_validate(migrate_layout_payload(payload))
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning(f"Unreadable layout payload: {e}")
        return None
