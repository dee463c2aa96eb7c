"""
Test coordinator properties and Qt signal integration
"""
import json

import pytest
from PySide6.QtCore import QCoreApplication

from desktop_ui.coordinator import PlateCoordinator
from plateconfig import DesktopConfiguration
from platecore.data_models import STATUS_IN, STATUS_OUT
from platecore.storage import MemoryStore
from platecore.timestamps import local_date


@pytest.fixture(scope="module")
def app():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def coordinator(app, tmp_path):
    coord = PlateCoordinator(DesktopConfiguration(data_dir=tmp_path), store=MemoryStore())
    yield coord
    coord.cleanup()


def test_initial_state(coordinator):
    assert coordinator.screens == ["保护屏A", "保护屏B", "保护屏C"]
    assert coordinator.selectedScreen == "保护屏A"
    assert coordinator.gridRows == 9
    assert coordinator.gridCols == 9
    assert coordinator.plateCount == 81
    assert coordinator.profileName == "compact"
    assert coordinator.totalCount == 121
    assert coordinator.pageCount == 13
    assert coordinator.plate_model.rowCount() == 10
    assert coordinator.cell_model.rowCount() == 81


def test_select_screen_switches_profile(coordinator):
    signal_received = []
    coordinator.layoutChanged.connect(lambda: signal_received.append(True))

    coordinator.selectScreen("保护屏B")
    assert (coordinator.gridRows, coordinator.gridCols) == (5, 4)
    assert coordinator.profileName == "standard"
    assert signal_received


def test_resize_viewport_fits_grid(coordinator):
    coordinator.resizeViewport(948, 748)
    layout = coordinator.position.layout
    assert layout.grid_width <= 900 + 1e-6
    assert layout.grid_height <= 700 + 1e-6
    assert 0 < coordinator.scale <= 1

    coordinator.resizeViewport(0, 0)
    assert coordinator.scale > 0


def test_filters_and_paging(coordinator):
    coordinator.setFilterField("protectionScreen", "保护屏B")
    assert coordinator.totalCount == 20
    coordinator.setPageSize(20)
    assert coordinator.pageCount == 1
    coordinator.jumpToPage("7")
    assert coordinator.page == 1

    coordinator.resetFilters()
    assert coordinator.totalCount == 121
    coordinator.jumpToPage("7")
    assert coordinator.page == 7


def test_adjust_selected_writes_log(coordinator):
    errors = []
    coordinator.errorOccurred.connect(lambda kind, message: errors.append(kind))

    assert coordinator.adjustSelected(STATUS_OUT, "", "") is False
    assert errors == ["SelectionError"]

    coordinator.toggleRow(2)
    assert coordinator.selectedCount == 1
    assert coordinator.adjustFormDefaults()["changer"] == "运维人员张三"
    assert coordinator.adjustSelected(STATUS_OUT, "张三", "检修") is True

    assert coordinator.selectedCount == 0
    assert coordinator.directory.get_device(2).pressure_plate_status == STATUS_OUT
    [log] = coordinator.logs.get_logs()
    assert log.device_id == 2
    assert log.change_source == "张三"


def test_adjust_unknown_plate_reports_error(coordinator):
    errors = []
    coordinator.errorOccurred.connect(lambda kind, message: errors.append(kind))
    assert coordinator.adjustStatus(9999, STATUS_OUT, "", "") is False
    assert errors == ["DeviceNotFoundError"]


def test_plate_term(coordinator):
    device = coordinator.directory.get_device(1)
    term = coordinator.plateTerm(1)
    assert term.startswith(device.status)
    assert term.endswith(device.pressure_plate_name)


def test_table_type_and_change_type_filters(coordinator):
    coordinator.setFilterField("type", "soft")
    assert coordinator.totalCount == 0
    coordinator.setFilterField("type", "hard")
    assert coordinator.totalCount == 121
    coordinator.setFilterField("changeType", "系统变更")
    assert coordinator.totalCount == 0
    coordinator.setFilterField("changeType", "手动变更")
    assert coordinator.totalCount == 121


def test_change_log_hide_restore_and_export(coordinator, tmp_path):
    notices, errors = [], []
    coordinator.noticeOccurred.connect(notices.append)
    coordinator.errorOccurred.connect(lambda kind, message: errors.append(kind))

    assert coordinator.adjustStatus(3, STATUS_OUT, "张三", "") is True
    assert coordinator.logCount == 1
    assert coordinator.log_model.rowCount() == 1

    assert coordinator.hideSelectedLogs() == 0
    assert notices[-1] == "请先选择要删除的日志"

    [log] = coordinator.logs.get_logs()
    coordinator.toggleLogRow(log.id)
    assert coordinator.selectedLogCount == 1
    assert coordinator.hideSelectedLogs() == 1
    assert coordinator.logCount == 0
    assert coordinator.selectedLogCount == 0

    day = coordinator.latestHiddenDay
    assert day == local_date(log.change_time).isoformat()
    assert coordinator.restoreLogs("", "") == 0
    assert coordinator.restoreLogs("not-a-day", "") == 0
    assert errors == ["ValueError"]

    assert coordinator.restoreLogs(day, day) == 1
    assert coordinator.logCount == 1
    assert coordinator.latestHiddenDay == ""

    path = tmp_path / "logs.csv"
    assert coordinator.exportLogs(str(path)) is True
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith('"序号"')
    assert '"张三"' in lines[1]

    url_path = tmp_path / "from_dialog.csv"
    assert coordinator.exportLogs(url_path.as_uri()) is True
    assert url_path.exists()


def test_change_log_filters_and_single_plate_view(coordinator):
    errors = []
    coordinator.errorOccurred.connect(lambda kind, message: errors.append(kind))
    coordinator.adjustStatus(3, STATUS_OUT, "张三", "")
    coordinator.adjustStatus(4, STATUS_IN, "李四", "")
    assert coordinator.logCount == 2

    coordinator.setLogFilterField("status", STATUS_OUT)
    assert coordinator.logCount == 1
    coordinator.setLogFilterField("changeType", "系统变更")
    assert coordinator.logCount == 0
    coordinator.resetLogFilters()
    coordinator.setLogFilterField("source", "李")
    assert coordinator.logCount == 1
    coordinator.resetLogFilters()

    coordinator.setLogFilterField("firstDay", "2999-01-01")
    assert coordinator.logCount == 0
    coordinator.resetLogFilters()
    coordinator.setLogFilterField("firstDay", "someday")
    assert errors == ["ValueError"]
    assert coordinator.logCount == 2

    coordinator.showPlateLogs(4)
    assert coordinator.logCount == 1
    assert coordinator.logTitle == coordinator.directory.get_device(4).pressure_plate_name
    coordinator.showPlateLogs(0)
    assert coordinator.logCount == 2
    assert coordinator.logTitle == ""


def test_save_terminology(coordinator):
    changed = []
    coordinator.terminologyChanged.connect(lambda: changed.append(True))

    assert coordinator.terminologyKeys == ["保护屏", "设备间隔", "压板名称"]
    assert coordinator.saveTerminology(["压板名称"], ["保护屏", "设备间隔"]) is True
    assert changed
    assert coordinator.terminologyOrder("hard") == ["压板名称"]
    assert coordinator.terminologyOrder("soft") == ["保护屏", "设备间隔"]

    device = coordinator.directory.get_device(1)
    assert coordinator.plateTerm(1) == device.status + device.pressure_plate_name


def test_export_and_import_plates(coordinator, tmp_path):
    errors = []
    coordinator.errorOccurred.connect(lambda kind, message: errors.append(kind))

    exported = tmp_path / "plates.json"
    assert coordinator.exportDevices(str(exported)) is True
    assert len(json.loads(exported.read_text(encoding="utf-8"))) == 121

    bad = tmp_path / "bad.json"
    bad.write_text("{}", encoding="utf-8")
    assert coordinator.importDevices(str(bad)) is False
    assert coordinator.importDevices(str(tmp_path / "missing.json")) is False
    assert errors == ["ImportFormatError", "StorageError"]
    assert coordinator.totalCount == 121

    mixed = tmp_path / "mixed.json"
    mixed.write_text(json.dumps([
        {"id": 1, "protection_screen": "S", "pressure_plate_position_x": 2, "pressure_plate_position_y": 2},
        {"id": 2, "protection_screen": "S", "pressure_plate_position_x": None, "pressure_plate_position_y": 1},
        {"id": 3, "protection_screen": "S", "pressure_plate_position_x": "abc", "pressure_plate_position_y": 2},
    ]), encoding="utf-8")
    assert coordinator.importDevices(mixed.as_uri()) is True
    assert coordinator.totalCount == 3
    assert coordinator.screens == ["S"]
    assert coordinator.selectedScreen == "S"
    assert (coordinator.gridRows, coordinator.gridCols) == (2, 2)
    assert coordinator.plateCount == 3


def test_reset_and_force_update(coordinator):
    coordinator.adjustStatus(2, STATUS_OUT, "张三", "")
    assert coordinator.logCount == 1

    assert coordinator.forceUpdate() is True
    assert coordinator.totalCount == 121
    assert coordinator.logCount == 1

    assert coordinator.resetData() is True
    assert coordinator.totalCount == 121
    assert coordinator.logCount == 0
