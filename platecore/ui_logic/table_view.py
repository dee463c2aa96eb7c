"""
Filtering and pagination for the plate management table.

Mirror the management page filter bar and pager. No UI framework
dependencies - the Qt list model only renders what this module returns.
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar
import math

from ..data_models import CHANGE_TYPE_MANUAL, Device
from ..device_directory import DeviceQuery
from ..timestamps import format_timestamp

T = TypeVar("T")

PAGE_SIZES = (10, 20, 50, 100)
DEFAULT_PAGE_SIZE = 10
DEFAULT_SOURCE = "系统"


@dataclass(slots=True)
class PlateFilter:
    """Filter bar values of the management page."""
    protection_screen: str = ""
    device_issue: str = ""
    plate_name: str = ""
    change_source: str = ""
    type: str = ""
    status: str = ""
    change_type: str = ""

    def to_query(self) -> DeviceQuery:
        """Directory query for every filter the store can evaluate."""
        return DeviceQuery(
            protection_screen=self.protection_screen,
            device_issue=self.device_issue,
            pressure_plate_name=self.plate_name,
            type=self.type,
            pressure_plate_status=self.status,
            last_changed_by=self.change_source,
        )

    def apply_change_type(self, devices: List[Device]) -> List[Device]:
        """All recorded changes are manual, so any other change type matches nothing."""
        if not self.change_type or self.change_type == CHANGE_TYPE_MANUAL:
            return devices
        return []


def page_count(total: int, page_size: int) -> int:
    """Number of pages, never less than one."""
    if page_size <= 0:
        return 1
    return max(1, math.ceil(total / page_size))


def paginate(items: Sequence[T], page: int, page_size: int) -> List[T]:
    """
    Slice out one 1-based page.

    Args:
        items: Full filtered list
        page: Page number starting at 1
        page_size: Rows per page

    Returns:
        Items on that page, empty past the end
    """
    if page < 1 or page_size <= 0:
        return []
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def clamp_jump_page(text: Optional[str], total: int, page_size: int) -> int:
    """Interpret the "go to page" box: non-numbers become 1, the result is clamped to valid pages."""
    try:
        value = int(float(text)) if text else 1
    except (TypeError, ValueError, OverflowError):
        value = 1
    return max(1, min(value, page_count(total, page_size)))


def latest_update_text(device: Device) -> str:
    return format_timestamp(device.latest_update)


def change_source_text(device: Device) -> str:
    return device.last_changed_by or DEFAULT_SOURCE


def remarks_text(device: Device) -> str:
    return device.change_remarks or "——"
