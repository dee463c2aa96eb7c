"""
Change-log service for plate status adjustments.

Keeps at most one log entry per plate in the local store. Deleting a log
only hides it; hidden logs can be restored by id or by date range.
"""
import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from .data_models import UpdateLogItem, type_label
from .device_directory import LOGS_KEY
from .storage import MemoryStore
from .timestamps import end_of_day, format_timestamp, local_date, parse_timestamp, start_of_day

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "序号", "所属电站", "保护屏", "设备间隔", "压板名称",
    "压板类型", "变更类型", "变更来源", "变更时间", "保护压板状态",
]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _time_key(item: UpdateLogItem) -> datetime:
    return parse_timestamp(item.change_time) or _EPOCH


class UpdateLogService:
    """
    Read and write change logs in the key-value store.

    Logs are read from the store on every call so that a directory reset,
    which clears the log key, is seen immediately.
    """

    def __init__(self, store: Optional[MemoryStore] = None) -> None:
        self.store = store if store is not None else MemoryStore()

    def _read(self) -> List[UpdateLogItem]:
        raw = self.store.get_item(LOGS_KEY)
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Discarding unreadable change logs: %s", exc)
            return []
        if not isinstance(records, list):
            return []
        return [UpdateLogItem.from_dict(r) for r in records if isinstance(r, dict)]

    def _write(self, logs: List[UpdateLogItem]) -> None:
        self.store.set_item(LOGS_KEY, json.dumps([l.to_dict() for l in logs], ensure_ascii=False))

    def all_logs(self) -> List[UpdateLogItem]:
        """Every stored log, hidden or not, in storage order."""
        return self._read()

    def add_log(self, fields: Dict[str, Any]) -> UpdateLogItem:
        """
        Record a change, replacing any existing log for the same plate.

        Args:
            fields: Log fields; ``device_id`` is required

        Returns:
            The stored (visible) log item
        """
        logs = self._read()
        device_id = fields["device_id"]
        clean = {k: v for k, v in fields.items() if k not in ("id", "sequence")}

        for index, existing in enumerate(logs):
            if existing.device_id == device_id:
                merged = {**existing.to_dict(), **clean, "hidden": False, "sequence": 0}
                logs[index] = UpdateLogItem.from_dict(merged)
                self._write(logs)
                logger.info("Replaced change log %s for plate %s", existing.id, device_id)
                return logs[index]

        new_id = max((l.id for l in logs), default=0) + 1
        item = UpdateLogItem.from_dict({"hidden": False, **clean, "id": new_id, "sequence": 0})
        logs.append(item)
        self._write(logs)
        logger.info("Added change log %s for plate %s", new_id, device_id)
        return item

    def get_logs(self, device_id: Optional[int] = None) -> List[UpdateLogItem]:
        """
        Latest log per plate, newest first, numbered from 1.

        Args:
            device_id: Restrict to one plate when given

        Returns:
            Log items including hidden ones; filtering is left to views
        """
        latest: Dict[int, UpdateLogItem] = {}
        for item in self._read():
            if device_id is not None and item.device_id != device_id:
                continue
            current = latest.get(item.device_id)
            if current is None or _time_key(current) < _time_key(item):
                latest[item.device_id] = item

        result = sorted(latest.values(), key=_time_key, reverse=True)
        for number, item in enumerate(result, start=1):
            item.sequence = number
        return result

    def set_hidden_by_ids(self, ids: Iterable[int], hidden: bool = True) -> int:
        """Hide (or unhide) logs by id. Returns how many logs matched."""
        wanted = set(ids)
        logs = self._read()
        changed = 0
        for item in logs:
            if item.id in wanted:
                item.hidden = hidden
                changed += 1
        self._write(logs)
        logger.info("Set hidden=%s on %d change logs", hidden, changed)
        return changed

    def set_hidden_by_range(self, device_id: Optional[int], start: Optional[datetime],
                            end: Optional[datetime], hidden: bool) -> int:
        """
        Flip the hidden flag for logs inside an inclusive time range.

        Logs already in the requested state are not counted. Either bound
        may be None to leave that side open.

        Returns:
            Number of logs changed
        """
        logs = self._read()
        changed = 0
        for item in logs:
            if item.hidden == hidden:
                continue
            if device_id and item.device_id != device_id:
                continue
            ts = parse_timestamp(item.change_time)
            if ts is None:
                continue
            if start is not None and ts < start:
                continue
            if end is not None and ts > end:
                continue
            item.hidden = hidden
            changed += 1
        self._write(logs)
        logger.info("Set hidden=%s on %d change logs in range", hidden, changed)
        return changed

    def restore_days(self, device_id: Optional[int], first_day: Optional[date],
                     last_day: Optional[date]) -> int:
        """Unhide logs changed between two local dates, both inclusive."""
        start = start_of_day(first_day) if first_day else None
        end = end_of_day(last_day) if last_day else None
        return self.set_hidden_by_range(device_id, start, end, hidden=False)


def latest_hidden_day(logs: Iterable[UpdateLogItem]) -> Optional[date]:
    """Local date of the newest hidden log, the default restore range."""
    hidden = [l for l in logs if l.hidden and parse_timestamp(l.change_time)]
    if not hidden:
        return None
    return local_date(max(hidden, key=_time_key).change_time)


@dataclass(slots=True)
class LogFilter:
    """Filters for the change-log table."""
    change_type: Optional[str] = None
    status: Optional[str] = None
    source: str = ""
    first_day: Optional[date] = None
    last_day: Optional[date] = None

    def matches(self, item: UpdateLogItem) -> bool:
        if item.hidden:
            return False
        if self.change_type and item.change_type != self.change_type:
            return False
        if self.status and item.pressure_plate_status != self.status:
            return False
        if self.source and self.source not in item.change_source:
            return False
        if self.first_day or self.last_day:
            day = local_date(item.change_time)
            if day is None:
                return False
            if self.first_day and day < self.first_day:
                return False
            if self.last_day and day > self.last_day:
                return False
        return True


def filter_logs(logs: Iterable[UpdateLogItem], log_filter: Optional[LogFilter] = None) -> List[UpdateLogItem]:
    """Visible logs passing the filter, order preserved."""
    log_filter = log_filter or LogFilter()
    return [l for l in logs if log_filter.matches(l)]


def export_csv(logs: Iterable[UpdateLogItem]) -> str:
    """Render logs as CSV with every field quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for item in logs:
        writer.writerow([
            item.sequence,
            item.power_station,
            item.protection_screen,
            item.device_issue,
            item.pressure_plate_name,
            type_label(item.type),
            item.change_type,
            item.change_source,
            format_timestamp(item.change_time),
            item.pressure_plate_status,
        ])
    return buffer.getvalue()
