from typing import Any, Callable, List, Optional
from PySide6.QtCore import QAbstractListModel, QByteArray, QModelIndex, QPersistentModelIndex, Qt
from platecore.data_models import Device, type_label
from platecore.ui_logic.table_view import change_source_text, latest_update_text, remarks_text


class PlateListModel(QAbstractListModel):
    """Rows of the plate management table for the current page."""
    IdRole = Qt.ItemDataRole.UserRole + 1
    SequenceRole = Qt.ItemDataRole.UserRole + 2
    ScreenRole = Qt.ItemDataRole.UserRole + 3
    BayRole = Qt.ItemDataRole.UserRole + 4
    NameRole = Qt.ItemDataRole.UserRole + 5
    ChangeSourceRole = Qt.ItemDataRole.UserRole + 6
    LatestUpdateRole = Qt.ItemDataRole.UserRole + 7
    TypeLabelRole = Qt.ItemDataRole.UserRole + 8
    VerbRole = Qt.ItemDataRole.UserRole + 9
    StatusRole = Qt.ItemDataRole.UserRole + 10
    RemarksRole = Qt.ItemDataRole.UserRole + 11
    SelectedRole = Qt.ItemDataRole.UserRole + 12

    def __init__(self, devices: Optional[List[Device]] = None,
                 is_selected: Optional[Callable[[int], bool]] = None) -> None:
        super().__init__()
        self.devices: List[Device] = list(devices or [])
        self._is_selected = is_selected or (lambda _id: False)

    def set_devices(self, devices: List[Device]) -> None:
        self.beginResetModel()
        self.devices = list(devices)
        self.endResetModel()

    def refresh_selection(self) -> None:
        if self.devices:
            self.dataChanged.emit(self.index(0), self.index(len(self.devices) - 1), [self.SelectedRole])

    def rowCount(self, parent: QModelIndex | QPersistentModelIndex = QModelIndex()) -> int:
        return len(self.devices)

    def data(self, index: QModelIndex | QPersistentModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if not index.isValid() or index.row() >= len(self.devices):
            return None

        device = self.devices[index.row()]

        if role == self.IdRole:
            return device.id
        elif role == self.SequenceRole:
            return device.sequence
        elif role == self.ScreenRole:
            return device.protection_screen
        elif role == self.BayRole:
            return device.device_issue
        elif role in (self.NameRole, Qt.ItemDataRole.DisplayRole):
            return device.pressure_plate_name
        elif role == self.ChangeSourceRole:
            return change_source_text(device)
        elif role == self.LatestUpdateRole:
            return latest_update_text(device)
        elif role == self.TypeLabelRole:
            return type_label(device.type)
        elif role == self.VerbRole:
            return (device.pressure_plate_time or "").strip() or "投入、退出"
        elif role == self.StatusRole:
            return device.status
        elif role == self.RemarksRole:
            return remarks_text(device)
        elif role == self.SelectedRole:
            return self._is_selected(device.id)

        return None

    def roleNames(self) -> dict[int, QByteArray]:
        return {
            self.IdRole: QByteArray(b"plateId"),
            self.SequenceRole: QByteArray(b"sequence"),
            self.ScreenRole: QByteArray(b"protectionScreen"),
            self.BayRole: QByteArray(b"deviceIssue"),
            self.NameRole: QByteArray(b"plateName"),
            self.ChangeSourceRole: QByteArray(b"changeSource"),
            self.LatestUpdateRole: QByteArray(b"latestUpdate"),
            self.TypeLabelRole: QByteArray(b"typeLabel"),
            self.VerbRole: QByteArray(b"verb"),
            self.StatusRole: QByteArray(b"status"),
            self.RemarksRole: QByteArray(b"remarks"),
            self.SelectedRole: QByteArray(b"selected"),
        }
