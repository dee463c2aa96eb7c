"""
Management table tests - filters, pagination and display text
"""
from platecore.data_models import Device
from platecore.timestamps import EMPTY_PLACEHOLDER, format_timestamp, parse_timestamp
from platecore.ui_logic.table_view import (
    PlateFilter,
    change_source_text,
    clamp_jump_page,
    latest_update_text,
    page_count,
    paginate,
    remarks_text,
)


def test_page_count_never_below_one():
    assert page_count(0, 10) == 1
    assert page_count(121, 10) == 13
    assert page_count(100, 100) == 1
    assert page_count(5, 0) == 1


def test_paginate():
    items = list(range(25))
    assert paginate(items, 1, 10) == list(range(10))
    assert paginate(items, 3, 10) == [20, 21, 22, 23, 24]
    assert paginate(items, 4, 10) == []
    assert paginate(items, 0, 10) == []


def test_jump_page_clamped():
    assert clamp_jump_page("3", 121, 10) == 3
    assert clamp_jump_page("99", 121, 10) == 13
    assert clamp_jump_page("-2", 121, 10) == 1
    assert clamp_jump_page("abc", 121, 10) == 1
    assert clamp_jump_page("", 121, 10) == 1
    assert clamp_jump_page(None, 121, 10) == 1
    assert clamp_jump_page("inf", 121, 10) == 1


def test_filter_builds_directory_query():
    query = PlateFilter(protection_screen="屏A", plate_name="差动", change_source="张", status="退出").to_query()
    assert query.protection_screen == "屏A"
    assert query.pressure_plate_name == "差动"
    assert query.last_changed_by == "张"
    assert query.pressure_plate_status == "退出"


def test_change_type_filter():
    devices = [Device(id=1), Device(id=2)]
    assert PlateFilter().apply_change_type(devices) == devices
    assert PlateFilter(change_type="手动变更").apply_change_type(devices) == devices
    assert PlateFilter(change_type="系统变更").apply_change_type(devices) == []


def test_display_text_defaults():
    device = Device(id=1)
    assert change_source_text(device) == "系统"
    assert remarks_text(device) == EMPTY_PLACEHOLDER
    assert latest_update_text(device) == EMPTY_PLACEHOLDER

    device.updated_at = "2024-05-01T08:00:00+00:00"
    assert latest_update_text(device) == format_timestamp("2024-05-01T08:00:00+00:00")
    device.last_changed_at = "2024-06-01T08:00:00Z"
    assert latest_update_text(device) == format_timestamp("2024-06-01T08:00:00Z")


def test_parse_timestamp():
    assert parse_timestamp("") is None
    assert parse_timestamp("garbage") is None
    assert parse_timestamp("2024-05-01T08:00:00").tzinfo is not None
    assert parse_timestamp("2024-05-01T08:00:00Z") == parse_timestamp("2024-05-01T08:00:00+00:00")
