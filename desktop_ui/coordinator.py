import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional
from PySide6.QtCore import QObject, Slot, Signal, Property, QUrl
from platecore.data_models import Device, UpdateLogItem
from platecore.device_directory import DeviceDirectory
from platecore.errors import PlateConsoleError, StorageError
from platecore.plate_adjustment import PlateManager, adjust_form_defaults
from platecore.storage import LocalStore, MemoryStore
from platecore.terminology import (
    TERMINOLOGY_KEYS,
    TerminologyConfig,
    compose_term,
    get_terminology_config,
    set_terminology_config,
)
from platecore.ui_logic.plate_selection import PlateSelection
from platecore.ui_logic.scale_resolver import PositionLayout, ViewportInfo, layout_position_diagram
from platecore.ui_logic.table_view import PAGE_SIZES, PlateFilter, clamp_jump_page, page_count, paginate
from platecore.update_logs import LogFilter, UpdateLogService, export_csv, filter_logs, latest_hidden_day
from plateconfig.base import BaseConfiguration
from desktop_ui.qt_models.log_model import UpdateLogListModel
from desktop_ui.qt_models.plate_model import PlateListModel
from desktop_ui.qt_models.position_cell_model import PositionCellModel

logger = logging.getLogger(__name__)

# Configure default console logging if not already configured
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

_FILTER_FIELDS = {
    "protectionScreen": "protection_screen",
    "deviceIssue": "device_issue",
    "plateName": "plate_name",
    "changeSource": "change_source",
    "type": "type",
    "status": "status",
    "changeType": "change_type",
}

_LOG_FILTER_FIELDS = {
    "changeType": "change_type",
    "status": "status",
    "source": "source",
    "firstDay": "first_day",
    "lastDay": "last_day",
}
_DAY_FIELDS = ("first_day", "last_day")

LOG_PAGE_SIZE = 20


def _parse_day(text: str) -> Optional[date]:
    """``YYYY-MM-DD`` from a date field, None when blank. Raises ValueError otherwise."""
    if not text or not text.strip():
        return None
    return date.fromisoformat(text.strip())


def _local_path(location: str) -> Path:
    """File dialogs hand back ``file:`` URLs; plain paths pass through."""
    if location.startswith("file:"):
        return Path(QUrl(location).toLocalFile())
    return Path(location)


class PlateCoordinator(QObject):
    """
    Bridges the plate directory and layout logic to QML.

    The position diagram is recomputed synchronously whenever the selected
    screen, the device list or the viewport size changes; the device list is
    always passed explicitly to the layout functions.
    """

    # Qt signals for property changes
    screensChanged = Signal()
    layoutChanged = Signal()
    tableChanged = Signal()
    selectionChanged = Signal()
    errorOccurred = Signal(str, str)  # error_type, message
    logsChanged = Signal()
    terminologyChanged = Signal()
    noticeOccurred = Signal(str)  # user-facing message

    def __init__(self, config: BaseConfiguration, store: Optional[MemoryStore] = None) -> None:
        super().__init__()
        self.config = config
        store = store if store is not None else LocalStore(config.store_path)

        self.directory = DeviceDirectory(store)
        self.logs = UpdateLogService(store)
        self.manager = PlateManager(self.directory, self.logs)
        self.selection = PlateSelection()

        self.plate_model = PlateListModel(is_selected=self.selection.is_selected)
        self.cell_model = PositionCellModel()
        self.log_model = UpdateLogListModel(is_selected=self._is_log_selected)

        self._filter = PlateFilter()
        self._filtered: List[Device] = []
        self._page = 1
        self._page_size = config.default_page_size
        self._screens: List[str] = []
        self._screen = ""
        self._viewport = ViewportInfo()
        self._position: Optional[PositionLayout] = None

        self._log_filter = LogFilter()
        self._log_device: Optional[int] = None
        self._log_title = ""
        self._logs: List[UpdateLogItem] = []
        self._visible_logs: List[UpdateLogItem] = []
        self._log_page = 1
        self._selected_logs: List[int] = []

        self.directory.add_listener(self._on_devices_changed)
        self.selection.register_callback(self._on_selection_changed)

        logger.info("Creating PlateCoordinator (store=%s)", type(store).__name__)
        self.refresh()

    # ------------------------------------------------------------------
    # Data loading
    # ------------------------------------------------------------------
    def _report(self, exc: Exception) -> None:
        logger.error("%s: %s", type(exc).__name__, exc)
        self.errorOccurred.emit(type(exc).__name__, str(exc))

    @Slot()
    def refresh(self) -> None:
        """Reload table rows, screen list, the position diagram and the change logs."""
        try:
            devices = self.directory.list_devices(self._filter.to_query())
            self._filtered = self._filter.apply_change_type(devices)
            screens = self.directory.list_screens()
        except PlateConsoleError as exc:
            self._report(exc)
            return

        self.selection.update_lookup(self._filtered)
        self._page = min(self._page, page_count(len(self._filtered), self._page_size))
        self.plate_model.set_devices(paginate(self._filtered, self._page, self._page_size))
        self.tableChanged.emit()

        if screens != self._screens:
            self._screens = screens
            self.screensChanged.emit()
        if self._screen not in screens:
            self._screen = screens[0] if screens else ""
        self._recompute_layout()
        self._reload_logs()

    def _on_devices_changed(self) -> None:
        logger.debug("Device list changed, refreshing views")
        self.refresh()

    def _on_selection_changed(self, event) -> None:
        logger.debug("%s", event)
        self.plate_model.refresh_selection()
        self.selectionChanged.emit()

    def _recompute_layout(self) -> None:
        if not self._screen:
            self._position = None
        else:
            try:
                devices = self.directory.devices_for_screen(self._screen)
            except PlateConsoleError as exc:
                self._report(exc)
                return
            self._position = layout_position_diagram(devices, self._viewport)
            logger.debug("Layout for %s: %s", self._screen, self._position.layout)
        self.cell_model.set_layout(self._position)
        self.layoutChanged.emit()

    # ------------------------------------------------------------------
    # Position diagram
    # ------------------------------------------------------------------
    @Slot(str)
    def selectScreen(self, screen: str) -> None:
        if screen == self._screen:
            return
        logger.info("Screen selected: %s", screen)
        self._screen = screen
        self._recompute_layout()

    @Slot(int, int)
    def resizeViewport(self, width: int, height: int) -> None:
        """Window size from QML; fixed margins are removed before layout."""
        self._viewport = ViewportInfo.from_window(
            width, height, self.config.viewport_margin_x, self.config.viewport_margin_y)
        self._recompute_layout()

    @Property("QVariantList", notify=screensChanged)
    def screens(self) -> List[str]:
        return list(self._screens)

    @Property(str, notify=layoutChanged)
    def selectedScreen(self) -> str:
        return self._screen

    @Property(int, notify=layoutChanged)
    def gridRows(self) -> int:
        return self._position.grid.rows if self._position else 0

    @Property(int, notify=layoutChanged)
    def gridCols(self) -> int:
        return self._position.grid.cols if self._position else 0

    @Property(int, notify=layoutChanged)
    def plateCount(self) -> int:
        return self._position.grid.occupied_count if self._position else 0

    @Property(float, notify=layoutChanged)
    def scale(self) -> float:
        return self._position.layout.scale if self._position else 1.0

    @Property(float, notify=layoutChanged)
    def gapX(self) -> float:
        return self._position.layout.gap_x if self._position else 0.0

    @Property(float, notify=layoutChanged)
    def gapY(self) -> float:
        return self._position.layout.gap_y if self._position else 0.0

    @Property(float, notify=layoutChanged)
    def cellWidth(self) -> float:
        return self._position.layout.cell_width if self._position else 0.0

    @Property(float, notify=layoutChanged)
    def cellHeight(self) -> float:
        return self._position.layout.cell_height if self._position else 0.0

    @Property(float, notify=layoutChanged)
    def fontSize(self) -> float:
        return self._position.layout.font_size if self._position else 0.0

    @Property(float, notify=layoutChanged)
    def gridPadding(self) -> float:
        return self._position.layout.padding if self._position else 0.0

    @Property(str, notify=layoutChanged)
    def limitingAxis(self) -> str:
        return self._position.layout.limiting_axis if self._position else ""

    @Property(str, notify=layoutChanged)
    def profileName(self) -> str:
        return self._position.layout.profile.name if self._position else ""

    @property
    def position(self) -> Optional[PositionLayout]:
        return self._position

    # ------------------------------------------------------------------
    # Table filtering and paging
    # ------------------------------------------------------------------
    @Slot(str, str)
    def setFilterField(self, name: str, value: str) -> None:
        attr = _FILTER_FIELDS.get(name)
        if attr is None:
            logger.warning("Unknown filter field: %s", name)
            return
        setattr(self._filter, attr, value or "")
        self._page = 1
        self.refresh()

    @Slot()
    def resetFilters(self) -> None:
        self._filter = PlateFilter()
        self._page = 1
        self.refresh()

    @Slot(int)
    def setPage(self, page: int) -> None:
        self._page = max(1, min(page, self.pageCount))
        self.plate_model.set_devices(paginate(self._filtered, self._page, self._page_size))
        self.tableChanged.emit()

    @Slot(int)
    def setPageSize(self, size: int) -> None:
        if size not in PAGE_SIZES:
            logger.warning("Unsupported page size %s", size)
            return
        self._page_size = size
        self.setPage(1)

    @Slot(str)
    def jumpToPage(self, text: str) -> None:
        self.setPage(clamp_jump_page(text, len(self._filtered), self._page_size))

    @Property(int, notify=tableChanged)
    def totalCount(self) -> int:
        return len(self._filtered)

    @Property(int, notify=tableChanged)
    def page(self) -> int:
        return self._page

    @Property(int, notify=tableChanged)
    def pageSize(self) -> int:
        return self._page_size

    @Property(int, notify=tableChanged)
    def pageCount(self) -> int:
        return page_count(len(self._filtered), self._page_size)

    # ------------------------------------------------------------------
    # Selection and adjustment
    # ------------------------------------------------------------------
    @Slot(int)
    def toggleRow(self, plate_id: int) -> None:
        self.selection.toggle(plate_id)

    @Slot()
    def clearSelection(self) -> None:
        self.selection.clear()

    @Property(int, notify=selectionChanged)
    def selectedCount(self) -> int:
        return self.selection.count

    @Slot(result="QVariantMap")
    def adjustFormDefaults(self) -> Dict[str, Any]:
        """Adjust dialog values for the single selected row, empty when the selection is not exactly one."""
        device = self.selection.require_single()
        if device is None:
            return {}
        return adjust_form_defaults(device, self.config.default_changer)

    @Slot(int, str, str, str, result=bool)
    def adjustStatus(self, plate_id: int, status: str, changer: str, remarks: str) -> bool:
        logger.info("Adjust requested: plate=%s status=%s", plate_id, status)
        try:
            self.manager.adjust_status(plate_id, status, changer, remarks)
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        self.selection.clear()
        return True

    @Slot(str, str, str, result=bool)
    def adjustSelected(self, status: str, changer: str, remarks: str) -> bool:
        device = self.selection.require_single()
        if device is None:
            self.errorOccurred.emit("SelectionError", "请选择一条记录进行调整")
            return False
        return self.adjustStatus(device.id, status, changer, remarks)

    @Slot(int, result=str)
    def plateTerm(self, plate_id: int) -> str:
        """Configured terminology string for one plate."""
        try:
            device = self.directory.get_device(plate_id)
        except PlateConsoleError as exc:
            self._report(exc)
            return ""
        config = get_terminology_config(self.directory.store)
        return compose_term(device, config.order_for(device.type))

    # ------------------------------------------------------------------
    # Change logs
    # ------------------------------------------------------------------
    def _is_log_selected(self, log_id: int) -> bool:
        return log_id in self._selected_logs

    def _reload_logs(self) -> None:
        self._logs = self.logs.get_logs(self._log_device)
        self._visible_logs = filter_logs(self._logs, self._log_filter)
        visible_ids = {item.id for item in self._visible_logs}
        self._selected_logs = [i for i in self._selected_logs if i in visible_ids]
        self._log_page = min(self._log_page, page_count(len(self._visible_logs), LOG_PAGE_SIZE))
        self.log_model.set_logs(paginate(self._visible_logs, self._log_page, LOG_PAGE_SIZE))
        self.logsChanged.emit()

    @Slot()
    def refreshLogs(self) -> None:
        self._reload_logs()

    @Slot(int)
    def showPlateLogs(self, plate_id: int) -> None:
        """Restrict the log viewer to one plate; 0 shows every plate."""
        if plate_id:
            try:
                device = self.directory.get_device(plate_id)
            except PlateConsoleError as exc:
                self._report(exc)
                return
            self._log_device = device.id
            self._log_title = device.pressure_plate_name
        else:
            self._log_device = None
            self._log_title = ""
        self._log_page = 1
        self._selected_logs = []
        self._reload_logs()

    @Slot(str, str)
    def setLogFilterField(self, name: str, value: str) -> None:
        attr = _LOG_FILTER_FIELDS.get(name)
        if attr is None:
            logger.warning("Unknown log filter field: %s", name)
            return
        if attr in _DAY_FIELDS:
            try:
                setattr(self._log_filter, attr, _parse_day(value))
            except ValueError:
                self.errorOccurred.emit("ValueError", f"无效日期: {value}")
                return
        else:
            setattr(self._log_filter, attr, value or "")
        self._log_page = 1
        self._reload_logs()

    @Slot()
    def resetLogFilters(self) -> None:
        self._log_filter = LogFilter()
        self._log_page = 1
        self._reload_logs()

    @Slot(int)
    def setLogPage(self, page: int) -> None:
        self._log_page = max(1, min(page, self.logPageCount))
        self.log_model.set_logs(paginate(self._visible_logs, self._log_page, LOG_PAGE_SIZE))
        self.logsChanged.emit()

    @Slot(int)
    def toggleLogRow(self, log_id: int) -> None:
        if log_id in self._selected_logs:
            self._selected_logs.remove(log_id)
        else:
            self._selected_logs.append(log_id)
        self.log_model.refresh_selection()
        self.logsChanged.emit()

    @Slot(result=int)
    def hideSelectedLogs(self) -> int:
        """Delete the checked logs from view; they stay stored as hidden."""
        if not self._selected_logs:
            self.noticeOccurred.emit("请先选择要删除的日志")
            return 0
        try:
            count = self.logs.set_hidden_by_ids(self._selected_logs)
        except PlateConsoleError as exc:
            self._report(exc)
            return 0
        self._selected_logs = []
        self._reload_logs()
        self.noticeOccurred.emit("已隐藏所选日志")
        return count

    @Slot(str, str, result=int)
    def restoreLogs(self, first_day: str, last_day: str) -> int:
        """Unhide logs changed between two ``YYYY-MM-DD`` days, inclusive."""
        try:
            first = _parse_day(first_day)
            last = _parse_day(last_day)
        except ValueError:
            self.errorOccurred.emit("ValueError", f"无效日期: {first_day} - {last_day}")
            return 0
        if first is None and last is None:
            self.noticeOccurred.emit("请选择要恢复的日期范围")
            return 0
        try:
            count = self.logs.restore_days(self._log_device, first, last)
        except PlateConsoleError as exc:
            self._report(exc)
            return 0
        self._reload_logs()
        if count:
            self.noticeOccurred.emit(f"已恢复 {count} 条所选范围内的日志")
        else:
            self.noticeOccurred.emit("所选日期没有被隐藏的日志")
        return count

    @Slot(str, result=bool)
    def exportLogs(self, location: str) -> bool:
        """Write the filtered logs as CSV."""
        path = _local_path(location)
        try:
            path.write_text(export_csv(self._visible_logs), encoding="utf-8")
        except OSError as exc:
            self._report(StorageError(f"Cannot write {path}: {exc}"))
            return False
        logger.info("Exported %d change logs to %s", len(self._visible_logs), path)
        return True

    @Property(str, notify=logsChanged)
    def latestHiddenDay(self) -> str:
        """Default restore day, empty when nothing is hidden."""
        day = latest_hidden_day(self._logs)
        return day.isoformat() if day else ""

    @Property(str, notify=logsChanged)
    def logTitle(self) -> str:
        return self._log_title

    @Property(int, notify=logsChanged)
    def logCount(self) -> int:
        return len(self._visible_logs)

    @Property(int, notify=logsChanged)
    def logPage(self) -> int:
        return self._log_page

    @Property(int, notify=logsChanged)
    def logPageCount(self) -> int:
        return page_count(len(self._visible_logs), LOG_PAGE_SIZE)

    @Property(int, notify=logsChanged)
    def selectedLogCount(self) -> int:
        return len(self._selected_logs)

    # ------------------------------------------------------------------
    # Terminology
    # ------------------------------------------------------------------
    @Property("QVariantList", constant=True)
    def terminologyKeys(self) -> List[str]:
        return list(TERMINOLOGY_KEYS)

    @Slot(str, result="QVariantList")
    def terminologyOrder(self, plate_type: str) -> List[str]:
        return list(get_terminology_config(self.directory.store).order_for(plate_type))

    @Slot("QVariantList", "QVariantList", result=bool)
    def saveTerminology(self, hard: List[Any], soft: List[Any]) -> bool:
        config = TerminologyConfig(hard=[str(k) for k in hard], soft=[str(k) for k in soft])
        try:
            set_terminology_config(self.directory.store, config)
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        self.terminologyChanged.emit()
        self.noticeOccurred.emit("术语配置已保存")
        return True

    # ------------------------------------------------------------------
    # Data management
    # ------------------------------------------------------------------
    @Slot(str, result=bool)
    def exportDevices(self, location: str) -> bool:
        path = _local_path(location)
        try:
            path.write_text(self.directory.export_json(), encoding="utf-8")
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        except OSError as exc:
            self._report(StorageError(f"Cannot write {path}: {exc}"))
            return False
        logger.info("Exported plates to %s", path)
        return True

    @Slot(str, result=bool)
    def importDevices(self, location: str) -> bool:
        """Replace every plate with the records of an exported JSON file."""
        path = _local_path(location)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            self._report(StorageError(f"Cannot read {path}: {exc}"))
            return False
        try:
            devices = self.directory.import_json(text)
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        self.noticeOccurred.emit(f"导入成功！共导入 {len(devices)} 条数据")
        return True

    @Slot(result=bool)
    def resetData(self) -> bool:
        """Regenerate demo plates and clear every change log."""
        try:
            self.directory.reset()
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        self.noticeOccurred.emit("数据已重置")
        return True

    @Slot(result=bool)
    def forceUpdate(self) -> bool:
        """Regenerate demo plates, keeping the change logs."""
        try:
            self.directory.force_update()
        except PlateConsoleError as exc:
            self._report(exc)
            return False
        self.noticeOccurred.emit("数据已更新")
        return True

    def cleanup(self) -> None:
        """Clean shutdown of coordinator"""
        logger.info("Cleaning up PlateCoordinator")
        self.directory.remove_listener(self._on_devices_changed)
        self.selection.unregister_callback(self._on_selection_changed)
        self.plate_model.set_devices([])
        self.cell_model.set_layout(None)
        self.log_model.set_logs([])
        logger.info("Coordinator cleaned up")
