"""
Terminology configuration for hard and soft plates.

A term is the plate status followed by a user-chosen ordering of the
screen, bay and plate name fields. The ordering is persisted per plate type.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import List

from .data_models import Device
from .storage import MemoryStore

logger = logging.getLogger(__name__)

TERMINOLOGY_KEY = "terminology_config"

TERM_SCREEN = "保护屏"
TERM_BAY = "设备间隔"
TERM_NAME = "压板名称"
TERMINOLOGY_KEYS = (TERM_SCREEN, TERM_BAY, TERM_NAME)
DEFAULT_ORDER = [TERM_SCREEN, TERM_BAY, TERM_NAME]

_FIELD_FOR_KEY = {
    TERM_SCREEN: "protection_screen",
    TERM_BAY: "device_issue",
    TERM_NAME: "pressure_plate_name",
}


@dataclass
class TerminologyConfig:
    hard: List[str] = field(default_factory=lambda: list(DEFAULT_ORDER))
    soft: List[str] = field(default_factory=lambda: list(DEFAULT_ORDER))

    def order_for(self, plate_type: str) -> List[str]:
        return self.soft if plate_type == "soft" else self.hard


def _order_or_default(value) -> List[str]:
    if isinstance(value, list) and value:
        return list(value)
    return list(DEFAULT_ORDER)


def get_terminology_config(store: MemoryStore) -> TerminologyConfig:
    """Load the stored ordering; anything missing or malformed falls back to the default."""
    raw = store.get_item(TERMINOLOGY_KEY)
    if not raw:
        return TerminologyConfig()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Terminology config unreadable, using default order")
        return TerminologyConfig()
    if not isinstance(parsed, dict):
        return TerminologyConfig()
    return TerminologyConfig(
        hard=_order_or_default(parsed.get("hard")),
        soft=_order_or_default(parsed.get("soft")),
    )


def set_terminology_config(store: MemoryStore, config: TerminologyConfig) -> TerminologyConfig:
    """Persist the ordering with empty entries removed."""
    normalized = TerminologyConfig(
        hard=[k for k in (config.hard or []) if k],
        soft=[k for k in (config.soft or []) if k],
    )
    store.set_item(TERMINOLOGY_KEY, json.dumps(
        {"hard": normalized.hard, "soft": normalized.soft}, ensure_ascii=False))
    logger.info("Saved terminology order hard=%s soft=%s", normalized.hard, normalized.soft)
    return normalized


def compose_term(device: Device, order: List[str]) -> str:
    """Status followed by the configured fields, unknown keys skipped."""
    parts = [device.status]
    for key in order:
        attr = _FIELD_FOR_KEY.get(key)
        if attr:
            parts.append(getattr(device, attr) or "")
    return "".join(parts)
