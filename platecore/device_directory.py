"""
Device directory backed by the local key-value store.

Holds the pressure plate records, seeds demonstration data on first use,
migrates stale stored data, and exposes list/get/create/update/delete.
Mutations notify registered listeners so views can recompute layouts.
"""
import json
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .data_models import DEFAULT_VERB, STATUS_IN, STATUS_OUT, Device, normalize_coordinate
from .errors import DeviceNotFoundError, ImportFormatError
from .storage import MemoryStore

logger = logging.getLogger(__name__)

DEVICES_KEY = "pressure_plate_devices"
DATA_VERSION_KEY = "pressure_plate_data_version"
LOGS_KEY = "pressure_plate_update_logs"
CURRENT_DATA_VERSION = "3.3"

SEED_STATION = "华能电站"
SEED_CHANGER = "系统生成"
EXPECTED_SEED_COUNT = 121

NAME_MIN_LENGTH = 10
NAME_MAX_LENGTH = 20

_SUBJECTS = [
    "主变压器", "母线", "线路", "发电机", "母联", "备用电源", "厂用变", "站用电",
    "电容器组", "消弧线圈", "PT回路", "CT回路", "低压侧", "高压侧", "母线分段",
]
_FUNCTIONS = [
    "差动保护", "后备保护", "过流保护", "距离保护", "零序保护", "过负荷保护", "母差保护",
    "重合闸", "跳闸回路", "信号回路", "备自投", "备用跳闸",
]
_QUALIFIERS = [
    "投入", "退出", "允许", "禁止", "复归", "试验", "检修", "闭锁", "遥控", "就地", "远方", "投退",
]
_EXTRAS = ["控制", "操作", "运行", "监视", "选择", "定值区"]
_PATTERNS: List[Callable[[str, str, str], str]] = [
    lambda s, f, q: f"{s}{f}{q}压板",
    lambda s, f, q: f"{s}{f}{q}控制压板",
    lambda s, f, q: f"{s}{f}回路{q}压板",
    lambda s, f, q: f"{s}{q}{f}操作压板",
]

DeviceListener = Callable[[], None]


def now_iso() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


@dataclass(slots=True)
class DeviceQuery:
    """Filters accepted by ``DeviceDirectory.list_devices``."""
    protection_screen: str = ""
    device_issue: str = ""
    pressure_plate_name: str = ""
    type: str = ""
    pressure_plate_status: str = ""
    last_changed_by: str = ""

    def matches(self, device: Device) -> bool:
        def contains(haystack: Optional[str], needle: str) -> bool:
            return needle.lower() in (haystack or "").lower()

        if self.protection_screen and not contains(device.protection_screen, self.protection_screen):
            return False
        if self.device_issue and not contains(device.device_issue, self.device_issue):
            return False
        if self.pressure_plate_name and not contains(device.pressure_plate_name, self.pressure_plate_name):
            return False
        if self.type and device.type != self.type:
            return False
        if self.pressure_plate_status and self.pressure_plate_status not in (device.pressure_plate_status or ""):
            return False
        if self.last_changed_by and not contains(device.last_changed_by, self.last_changed_by):
            return False
        return True


class DeviceDirectory:
    """
    Pressure plate records with explicit load and save.

    Nothing is read from the store until the first operation. Callers get
    copies of the stored records, never the internal objects.
    """

    def __init__(self, store: Optional[MemoryStore] = None, seed: Optional[int] = None) -> None:
        """
        Initialize directory over a key-value store.

        Args:
            store: Backing store, in-memory when omitted
            seed: Random seed for generated plate names
        """
        self.store = store if store is not None else MemoryStore()
        self._rng = random.Random(seed)
        self._devices: List[Device] = []
        self._loaded = False
        self._callbacks: List[DeviceListener] = []

    # ------------------------------------------------------------------
    def add_listener(self, callback: DeviceListener) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def remove_listener(self, callback: DeviceListener) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_listeners(self) -> None:
        for callback in list(self._callbacks):
            try:
                callback()
            except Exception as exc:
                logger.error("Device listener error: %s", exc)

    # ------------------------------------------------------------------
    def load(self) -> None:
        """Load devices from the store, seeding or migrating as needed."""
        saved_version = self.store.get_item(DATA_VERSION_KEY)
        saved_data = self.store.get_item(DEVICES_KEY)
        logger.debug("Stored data version %s, current %s", saved_version, CURRENT_DATA_VERSION)

        if saved_version != CURRENT_DATA_VERSION or not saved_data:
            logger.info("Data version changed or first run, generating demo plates")
            self._reseed()
        else:
            try:
                records = json.loads(saved_data)
                self._devices = [Device.from_dict(r) for r in records]
            except (json.JSONDecodeError, TypeError, AttributeError) as exc:
                logger.error("Failed to parse stored devices: %s", exc)
                self._reseed()
            else:
                if len(self._devices) != EXPECTED_SEED_COUNT:
                    logger.warning("Stored data has %d plates, regenerating", len(self._devices))
                    self._reseed()
                else:
                    self._normalize()
                    logger.info("Loaded %d plates from store", len(self._devices))

        self._loaded = True

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def _reseed(self) -> None:
        self._devices = self.generate_devices()
        self.save()
        self.store.set_item(DATA_VERSION_KEY, CURRENT_DATA_VERSION)
        logger.info("Generated %d plates", len(self._devices))

    def _normalize(self) -> None:
        changed = False
        for device in self._devices:
            name = device.pressure_plate_name
            if not name or not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
                device.pressure_plate_name = self.build_plate_name()
                changed = True
            if device.type != "hard":
                device.type = "hard"
                changed = True
        if changed:
            logger.info("Normalized stored plates (hard type, name length %d-%d)",
                        NAME_MIN_LENGTH, NAME_MAX_LENGTH)
            self.save()

    def save(self) -> None:
        """Write the device list to the store."""
        payload = json.dumps([d.to_dict() for d in self._devices], ensure_ascii=False)
        self.store.set_item(DEVICES_KEY, payload)

    # ------------------------------------------------------------------
    def build_plate_name(self) -> str:
        """Generate a substation-style plate name of 10-20 characters."""
        pick = self._rng.choice
        name = pick(_PATTERNS)(pick(_SUBJECTS), pick(_FUNCTIONS), pick(_QUALIFIERS))
        while len(name) < NAME_MIN_LENGTH:
            name = name.replace("压板", f"{pick(_EXTRAS)}压板", 1)
        if len(name) > NAME_MAX_LENGTH:
            name = name.replace("控制", "", 1).replace("操作", "", 1).replace("回路", "", 1)
        return name[:NAME_MAX_LENGTH]

    def generate_devices(self) -> List[Device]:
        """
        Build the demonstration data set.

        Screen A is a 9x9 grid of 81 plates; screens B and C are 5x4 grids
        of 20 plates each.
        """
        now = now_iso()
        devices: List[Device] = []
        seq = 1

        def make(screen: str, idx: int, layer: str, x: int, y: int, color: str, status: str) -> Device:
            return Device(
                id=seq,
                sequence=seq,
                power_station=SEED_STATION,
                protection_screen=screen,
                device_issue=f"设备间隔{idx}",
                pressure_plate_name=self.build_plate_name(),
                type="hard",
                pressure_plate_box="XXXX",
                pressure_plate_time=DEFAULT_VERB,
                pressure_plate_general_name="通用压板",
                pressure_plate_type_color=color,
                pressure_plate_position=layer,
                pressure_plate_position_x=x,
                pressure_plate_position_y=y,
                pressure_plate_status=status,
                last_changed_by=SEED_CHANGER,
                last_changed_at=now,
                change_remarks="",
                created_at=now,
                updated_at=now,
            )

        for x in range(1, 10):
            for y in range(1, 10):
                idx = (x - 1) * 9 + y
                layer = "top" if x <= 3 else ("middle" if x <= 6 else "bottom")
                if idx <= 30:
                    color = "red"
                elif idx <= 58:
                    color = "yellow"
                elif idx <= 73:
                    color = "gray"
                else:
                    color = "black"
                status = STATUS_IN if (idx - 1) % 4 < 3 else STATUS_OUT
                devices.append(make("保护屏A", idx, layer, x, y, color, status))
                seq += 1

        cycle = ["red", "yellow", "gray"]
        for screen in ("保护屏B", "保护屏C"):
            for x in range(1, 6):
                for y in range(1, 5):
                    idx = (x - 1) * 4 + y
                    layer = "top" if x <= 2 else ("middle" if x <= 4 else "bottom")
                    color = cycle[(seq + x + y) % len(cycle)]
                    status = STATUS_IN if (seq + x + y) % 2 == 0 else STATUS_OUT
                    devices.append(make(screen, idx, layer, x, y, color, status))
                    seq += 1

        return devices

    # ------------------------------------------------------------------
    def list_devices(self, query: Optional[DeviceQuery] = None) -> List[Device]:
        """
        List plates matching the optional query, ordered by sequence.

        Args:
            query: Substring/equality filters, None for everything

        Returns:
            Copies of the matching device records
        """
        self._ensure_loaded()
        matched = [d for d in self._devices if query is None or query.matches(d)]
        matched.sort(key=lambda d: d.sequence or 0)
        return [Device.from_dict(d.to_dict()) for d in matched]

    def _index_of(self, device_id: int) -> int:
        for index, device in enumerate(self._devices):
            if device.id == device_id:
                return index
        raise DeviceNotFoundError(device_id)

    def get_device(self, device_id: int) -> Device:
        self._ensure_loaded()
        return Device.from_dict(self._devices[self._index_of(device_id)].to_dict())

    def update_device(self, device_id: int, updates: Dict[str, Any]) -> Device:
        """
        Merge field updates into a plate and stamp ``updated_at``.

        Raises:
            DeviceNotFoundError: If no plate has this id
        """
        self._ensure_loaded()
        index = self._index_of(device_id)
        merged = self._devices[index].to_dict()
        merged.update({k: v for k, v in updates.items() if k != "id"})
        merged["updated_at"] = now_iso()
        self._devices[index] = Device.from_dict(merged)
        self.save()
        logger.info("Updated plate %s: %s", device_id, sorted(updates))
        self._notify_listeners()
        return Device.from_dict(merged)

    def create_device(self, fields: Dict[str, Any]) -> Device:
        """Add a plate with the next free id; new plates are always hard plates."""
        self._ensure_loaded()
        record = dict(fields)
        record["id"] = max((d.id for d in self._devices), default=0) + 1
        record.setdefault("sequence", max((d.sequence or 0 for d in self._devices), default=0) + 1)
        record["type"] = "hard"
        stamp = now_iso()
        record["created_at"] = stamp
        record["updated_at"] = stamp
        device = Device.from_dict(record)
        self._devices.append(device)
        self.save()
        logger.info("Created plate %s on %s", device.id, device.protection_screen)
        self._notify_listeners()
        return Device.from_dict(device.to_dict())

    def delete_device(self, device_id: int) -> Device:
        self._ensure_loaded()
        removed = self._devices.pop(self._index_of(device_id))
        self.save()
        logger.info("Deleted plate %s", device_id)
        self._notify_listeners()
        return Device.from_dict(removed.to_dict())

    # ------------------------------------------------------------------
    def list_screens(self) -> List[str]:
        """Distinct protection screen names in sorted order."""
        self._ensure_loaded()
        return sorted({d.protection_screen for d in self._devices})

    def devices_for_screen(self, screen: str) -> List[Device]:
        """Plates of one screen ordered by position for the diagram; bad coordinates sort as 1."""
        self._ensure_loaded()
        members = [d for d in self._devices if d.protection_screen == screen]
        members.sort(key=lambda d: (normalize_coordinate(d.pressure_plate_position_x),
                                    normalize_coordinate(d.pressure_plate_position_y)))
        return [Device.from_dict(d.to_dict()) for d in members]

    # ------------------------------------------------------------------
    def reset(self) -> List[Device]:
        """Clear stored plates and logs, then regenerate demo data."""
        logger.info("Resetting local data")
        for key in (DATA_VERSION_KEY, DEVICES_KEY, LOGS_KEY):
            self.store.remove_item(key)
        self._reseed()
        self._loaded = True
        self._notify_listeners()
        return self.list_devices()

    def force_update(self) -> List[Device]:
        """Regenerate plates at the current data version, keeping logs."""
        logger.info("Forcing data update to version %s", CURRENT_DATA_VERSION)
        self._reseed()
        self._loaded = True
        self._notify_listeners()
        return self.list_devices()

    def export_json(self) -> str:
        self._ensure_loaded()
        return json.dumps([d.to_dict() for d in self._devices], ensure_ascii=False, indent=2)

    def import_json(self, text: str) -> List[Device]:
        """
        Replace all plates with an exported JSON array.

        Raises:
            ImportFormatError: If the text is not JSON or not an array of objects
        """
        try:
            records = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ImportFormatError("数据解析失败") from exc
        if not isinstance(records, list) or not all(isinstance(r, dict) for r in records):
            raise ImportFormatError("数据格式不正确")

        imported: List[Device] = []
        next_id = max((r["id"] for r in records if isinstance(r.get("id"), int)), default=0) + 1
        for record in records:
            record = {**record, "type": "hard"}
            if not isinstance(record.get("id"), int):
                record["id"] = next_id
                next_id += 1
            imported.append(Device.from_dict(record))

        self._devices = imported
        self._loaded = True
        self.save()
        logger.info("Imported %d plates", len(imported))
        self._notify_listeners()
        return self.list_devices()
