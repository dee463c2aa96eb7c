"""Core data structures for the pressure plate console.

Contains the device and change-log records shared by the directory,
the layout logic and the desktop UI.
"""
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

STATUS_IN = "投入"
STATUS_OUT = "退出"
DEFAULT_VERB = "投入、退出"

CHANGE_TYPE_MANUAL = "手动变更"
CHANGE_TYPE_SYSTEM = "系统变更"

PLATE_TYPES = ("hard", "soft")
PLATE_COLORS = ("red", "yellow", "gray", "black")
PLATE_LAYERS = ("top", "middle", "bottom")

COLOR_SWATCHES = {
    "red": "#ff4d4f",
    "gray": "#8c8c8c",
    "yellow": "#faad14",
    "black": "#262626",
}
DEFAULT_SWATCH = "#1890ff"


def color_hex(color: Optional[str]) -> str:
    """Hex swatch for a plate type color, blue for anything unknown."""
    return COLOR_SWATCHES.get(color or "", DEFAULT_SWATCH)


def type_label(plate_type: Optional[str]) -> str:
    """Display label for a plate type."""
    return "软压板" if plate_type == "soft" else "硬压板"


def normalize_coordinate(value: Any) -> int:
    """
    Coerce a stored coordinate into a usable 1-based grid index.

    Missing, non-numeric, fractional and non-positive values all map to 1.

    Args:
        value: Raw coordinate from the device record

    Returns:
        Integer coordinate >= 1
    """
    if value is None or isinstance(value, bool):
        return 1
    if isinstance(value, int):
        return value if value >= 1 else 1
    if isinstance(value, float):
        if value.is_integer() and value >= 1:
            return int(value)
        return 1
    try:
        parsed = int(str(value).strip())
    except ValueError:
        return 1
    return parsed if parsed >= 1 else 1


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Device:
    """A pressure plate on a protection screen."""
    id: int
    sequence: int = 0
    power_station: str = ""
    protection_screen: str = ""
    device_issue: str = ""
    pressure_plate_name: str = ""
    type: str = "hard"
    pressure_plate_box: str = ""
    pressure_plate_time: str = DEFAULT_VERB
    pressure_plate_general_name: str = ""
    pressure_plate_type_color: str = "red"
    pressure_plate_position: str = "middle"
    pressure_plate_position_x: int = 1
    pressure_plate_position_y: int = 1
    pressure_plate_status: Optional[str] = None
    last_changed_by: Optional[str] = None
    last_changed_at: Optional[str] = None
    change_remarks: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def status(self) -> str:
        """Status with the in-service default applied."""
        return self.pressure_plate_status or STATUS_IN

    @property
    def is_in_service(self) -> bool:
        return self.status == STATUS_IN

    @property
    def latest_update(self) -> Optional[str]:
        """Last manual change time, falling back to the record update time."""
        return self.last_changed_at or self.updated_at

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Device":
        """Create from a stored record, ignoring unknown keys."""
        return cls(**_known_fields(cls, data))

    def __str__(self) -> str:
        return (f"Device(id={self.id}, screen='{self.protection_screen}', "
                f"pos=({self.pressure_plate_position_x},{self.pressure_plate_position_y}), "
                f"status={self.status})")


@dataclass
class UpdateLogItem:
    """Latest status change recorded for one plate."""
    id: int
    device_id: int
    sequence: int = 0
    power_station: str = ""
    protection_screen: str = ""
    device_issue: str = ""
    pressure_plate_name: str = ""
    type: str = "hard"
    change_type: str = CHANGE_TYPE_MANUAL
    change_source: str = ""
    change_time: str = ""
    pressure_plate_status: str = ""
    hidden: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UpdateLogItem":
        item = cls(**_known_fields(cls, data))
        item.hidden = bool(item.hidden)
        return item
