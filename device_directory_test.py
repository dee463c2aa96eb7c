"""
Device directory tests - seeding, migration, queries and CRUD
"""
import json
from collections import Counter

import pytest

from platecore.data_models import STATUS_IN, STATUS_OUT
from platecore.device_directory import (
    CURRENT_DATA_VERSION,
    DATA_VERSION_KEY,
    DEVICES_KEY,
    EXPECTED_SEED_COUNT,
    LOGS_KEY,
    DeviceDirectory,
    DeviceQuery,
)
from platecore.errors import DeviceNotFoundError, ImportFormatError
from platecore.storage import LocalStore, MemoryStore
from platecore.ui_logic.position_grid import build_grid
from platecore.ui_logic.scale_resolver import ViewportInfo, layout_position_diagram


@pytest.fixture
def directory():
    return DeviceDirectory(MemoryStore(), seed=42)


def test_first_use_seeds_demo_plates(directory):
    devices = directory.list_devices()
    assert len(devices) == EXPECTED_SEED_COUNT
    assert [d.sequence for d in devices] == list(range(1, EXPECTED_SEED_COUNT + 1))
    assert directory.store.get_item(DATA_VERSION_KEY) == CURRENT_DATA_VERSION
    assert all(d.type == "hard" for d in devices)
    assert all(10 <= len(d.pressure_plate_name) <= 20 for d in devices)


def test_seed_screens_and_grids(directory):
    assert directory.list_screens() == ["保护屏A", "保护屏B", "保护屏C"]

    screen_a = directory.devices_for_screen("保护屏A")
    grid = build_grid(screen_a)
    assert (grid.rows, grid.cols) == (9, 9)
    assert grid.occupied_count == 81

    for screen in ("保护屏B", "保护屏C"):
        grid = build_grid(directory.devices_for_screen(screen))
        assert (grid.rows, grid.cols) == (5, 4)
        assert grid.occupied_count == 20


def test_seed_screen_a_colors_and_status(directory):
    screen_a = directory.devices_for_screen("保护屏A")
    colors = Counter(d.pressure_plate_type_color for d in screen_a)
    assert colors == {"red": 30, "yellow": 28, "gray": 15, "black": 8}
    statuses = Counter(d.pressure_plate_status for d in screen_a)
    assert statuses == {STATUS_IN: 61, STATUS_OUT: 20}


def test_devices_for_screen_ordered_by_position(directory):
    plates = directory.devices_for_screen("保护屏B")
    positions = [(d.pressure_plate_position_x, d.pressure_plate_position_y) for d in plates]
    assert positions == sorted(positions)


def test_query_filters(directory):
    assert len(directory.list_devices(DeviceQuery(protection_screen="屏B"))) == 20
    assert len(directory.list_devices(DeviceQuery(device_issue="设备间隔81"))) == 1
    out = directory.list_devices(DeviceQuery(pressure_plate_status=STATUS_OUT))
    assert out and all(d.pressure_plate_status == STATUS_OUT for d in out)
    assert directory.list_devices(DeviceQuery(type="soft")) == []


def test_list_returns_copies(directory):
    device = directory.list_devices()[0]
    device.pressure_plate_name = "changed"
    assert directory.get_device(device.id).pressure_plate_name != "changed"


def test_update_device_stamps_and_notifies(directory):
    calls = []
    directory.add_listener(lambda: calls.append(1))

    before = directory.get_device(5)
    updated = directory.update_device(5, {"change_remarks": "检修", "id": 999})
    assert updated.id == 5
    assert updated.change_remarks == "检修"
    assert updated.updated_at >= before.updated_at
    assert calls == [1]


def test_listener_errors_do_not_break_updates(directory):
    def broken():
        raise RuntimeError("boom")

    directory.add_listener(broken)
    directory.update_device(1, {"change_remarks": "x"})
    assert directory.get_device(1).change_remarks == "x"


def test_missing_device_raises(directory):
    with pytest.raises(DeviceNotFoundError) as info:
        directory.get_device(9999)
    assert info.value.device_id == 9999
    with pytest.raises(DeviceNotFoundError):
        directory.update_device(9999, {})
    with pytest.raises(DeviceNotFoundError):
        directory.delete_device(9999)


def test_create_and_delete(directory):
    created = directory.create_device({"protection_screen": "保护屏D", "type": "soft",
                                       "pressure_plate_name": "新增测试压板名称十个"})
    assert created.id == EXPECTED_SEED_COUNT + 1
    assert created.type == "hard"
    assert "保护屏D" in directory.list_screens()

    directory.delete_device(created.id)
    assert "保护屏D" not in directory.list_screens()


def test_persisted_plates_survive_reload(tmp_path):
    path = tmp_path / "store.json"
    first = DeviceDirectory(LocalStore(path), seed=1)
    first.update_device(3, {"change_remarks": "保留"})

    second = DeviceDirectory(LocalStore(path), seed=2)
    assert second.get_device(3).change_remarks == "保留"
    assert len(second.list_devices()) == EXPECTED_SEED_COUNT


def test_wrong_count_or_version_regenerates():
    store = MemoryStore()
    store.set_item(DATA_VERSION_KEY, CURRENT_DATA_VERSION)
    store.set_item(DEVICES_KEY, json.dumps([{"id": 1}]))
    assert len(DeviceDirectory(store).list_devices()) == EXPECTED_SEED_COUNT

    store = MemoryStore()
    store.set_item(DATA_VERSION_KEY, "1.0")
    store.set_item(DEVICES_KEY, json.dumps([{"id": i} for i in range(1, 122)]))
    devices = DeviceDirectory(store).list_devices()
    assert devices[0].protection_screen == "保护屏A"


def test_stored_plates_are_normalized():
    seeded = DeviceDirectory(MemoryStore(), seed=3)
    records = [d.to_dict() for d in seeded.list_devices()]
    records[0]["type"] = "soft"
    records[1]["pressure_plate_name"] = "短名"

    store = MemoryStore()
    store.set_item(DATA_VERSION_KEY, CURRENT_DATA_VERSION)
    store.set_item(DEVICES_KEY, json.dumps(records, ensure_ascii=False))
    directory = DeviceDirectory(store, seed=3)

    assert directory.get_device(records[0]["id"]).type == "hard"
    assert 10 <= len(directory.get_device(records[1]["id"]).pressure_plate_name) <= 20
    assert '"soft"' not in store.get_item(DEVICES_KEY)


def test_corrupt_stored_devices_regenerate():
    store = MemoryStore()
    store.set_item(DATA_VERSION_KEY, CURRENT_DATA_VERSION)
    store.set_item(DEVICES_KEY, "{not json")
    assert len(DeviceDirectory(store).list_devices()) == EXPECTED_SEED_COUNT


def test_reset_clears_logs(directory):
    directory.list_devices()
    directory.store.set_item(LOGS_KEY, "[]")
    directory.update_device(1, {"change_remarks": "x"})

    devices = directory.reset()
    assert len(devices) == EXPECTED_SEED_COUNT
    assert directory.store.get_item(LOGS_KEY) is None
    assert directory.get_device(1).change_remarks == ""


def test_export_import_round_trip(directory):
    exported = directory.export_json()
    other = DeviceDirectory(MemoryStore())
    imported = other.import_json(exported)
    assert [d.id for d in imported] == [d.id for d in directory.list_devices()]


def test_import_assigns_missing_ids(directory):
    imported = directory.import_json(json.dumps([{"id": 7, "protection_screen": "X"},
                                                 {"protection_screen": "Y", "type": "soft"}]))
    assert sorted(d.id for d in imported) == [7, 8]
    assert all(d.type == "hard" for d in imported)


@pytest.mark.parametrize("payload", ["not json", "{}", "[1, 2]"])
def test_import_rejects_bad_payloads(directory, payload):
    with pytest.raises(ImportFormatError):
        directory.import_json(payload)
    assert len(directory.list_devices()) == EXPECTED_SEED_COUNT


def test_imported_bad_coordinates_still_lay_out(directory):
    directory.import_json(json.dumps([
        {"id": 1, "protection_screen": "S", "pressure_plate_position_x": 2, "pressure_plate_position_y": 2},
        {"id": 2, "protection_screen": "S", "pressure_plate_position_x": None, "pressure_plate_position_y": 1},
        {"id": 3, "protection_screen": "S", "pressure_plate_position_x": "abc", "pressure_plate_position_y": 2.5},
        {"id": 4, "protection_screen": "S", "pressure_plate_position_x": "2", "sequence": None},
    ]))

    plates = directory.devices_for_screen("S")
    assert [d.id for d in plates] == [2, 3, 4, 1]
    assert len(directory.list_devices()) == 4

    position = layout_position_diagram(plates, ViewportInfo(800, 600))
    assert (position.grid.rows, position.grid.cols) == (2, 2)
    # plates 2 and 3 both fall back to (1, 1); the later one is kept
    assert position.grid.cell(1, 1).id == 3
    assert position.grid.cell(2, 1).id == 4
    assert position.grid.cell(2, 2).id == 1
    assert 0 < position.layout.scale <= 1


def test_deleted_plate_is_a_copy(directory):
    before = directory.get_device(7)
    removed = directory.delete_device(7)
    assert removed == before
    removed.pressure_plate_name = "changed"
    assert all(d.pressure_plate_name != "changed" for d in directory.list_devices())
