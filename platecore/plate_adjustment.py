"""
Plate status adjustment workflow.

Updates a plate's status and records the change in the change log,
mirroring the adjust dialog of the management screen.
"""
import logging
from typing import Any, Dict, Optional

from .data_models import CHANGE_TYPE_MANUAL, STATUS_IN, Device, type_label
from .device_directory import DeviceDirectory, now_iso
from .update_logs import UpdateLogService

logger = logging.getLogger(__name__)

DEFAULT_STATION = "邳蒋青山泉变"
DEFAULT_VOLTAGE_LEVEL = "220KV"
DEFAULT_TEAM = "华能电站运维班组"
DEFAULT_CHANGER = "运维人员张三"
FALLBACK_CHANGER = "系统用户"


class PlateManager:
    """Coordinates status changes between the directory and the change log."""

    def __init__(self, directory: DeviceDirectory, logs: UpdateLogService) -> None:
        self.directory = directory
        self.logs = logs

    def adjust_status(self, device_id: int, status: str, changer: str = "",
                      remarks: str = "") -> Device:
        """
        Change a plate's status and log the change.

        Args:
            device_id: Plate to adjust
            status: New status (投入 or 退出)
            changer: Person making the change, 系统用户 when blank
            remarks: Free-text note stored on the plate

        Returns:
            The updated device

        Raises:
            DeviceNotFoundError: If the plate does not exist
        """
        current = self.directory.get_device(device_id)
        changer = changer or FALLBACK_CHANGER
        changed_at = now_iso()

        # Log first: the device update notifies listeners that read the log store
        self.logs.add_log({
            "device_id": current.id,
            "power_station": current.power_station,
            "protection_screen": current.protection_screen,
            "device_issue": current.device_issue,
            "pressure_plate_name": current.pressure_plate_name,
            "type": current.type,
            "change_type": CHANGE_TYPE_MANUAL,
            "change_source": changer,
            "change_time": changed_at,
            "pressure_plate_status": status,
        })

        updated = self.directory.update_device(device_id, {
            "pressure_plate_status": status,
            "last_changed_by": changer,
            "last_changed_at": changed_at,
            "change_remarks": remarks or "",
        })
        logger.info("Plate %s adjusted to %s by %s", device_id, status, changer)
        return updated


def adjust_form_defaults(device: Optional[Device], changer: str = DEFAULT_CHANGER) -> Dict[str, Any]:
    """Initial values for the adjust form, blank identity fields when no plate is given."""
    if device is None:
        return {
            "power_station": DEFAULT_STATION,
            "voltage_level": DEFAULT_VOLTAGE_LEVEL,
            "maintenance_team": DEFAULT_TEAM,
            "protection_screen": "",
            "device_issue": "",
            "pressure_plate_name": "",
            "type": "",
            "changer": changer,
            "status": STATUS_IN,
            "remarks": "",
        }
    return {
        "power_station": device.power_station or DEFAULT_STATION,
        "voltage_level": DEFAULT_VOLTAGE_LEVEL,
        "maintenance_team": DEFAULT_TEAM,
        "protection_screen": device.protection_screen or "",
        "device_issue": device.device_issue or "",
        "pressure_plate_name": device.pressure_plate_name or "",
        "type": type_label(device.type),
        "changer": changer,
        "status": device.status,
        "remarks": "",
    }
