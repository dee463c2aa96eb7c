from typing import Any, Callable, List, Optional
from PySide6.QtCore import QAbstractListModel, QByteArray, QModelIndex, QPersistentModelIndex, Qt
from platecore.data_models import UpdateLogItem, type_label
from platecore.timestamps import format_timestamp


class UpdateLogListModel(QAbstractListModel):
    """Rows of the change-log viewer for the current page."""
    IdRole = Qt.ItemDataRole.UserRole + 1
    SequenceRole = Qt.ItemDataRole.UserRole + 2
    StationRole = Qt.ItemDataRole.UserRole + 3
    ScreenRole = Qt.ItemDataRole.UserRole + 4
    BayRole = Qt.ItemDataRole.UserRole + 5
    NameRole = Qt.ItemDataRole.UserRole + 6
    TypeLabelRole = Qt.ItemDataRole.UserRole + 7
    ChangeTypeRole = Qt.ItemDataRole.UserRole + 8
    ChangeSourceRole = Qt.ItemDataRole.UserRole + 9
    ChangeTimeRole = Qt.ItemDataRole.UserRole + 10
    StatusRole = Qt.ItemDataRole.UserRole + 11
    SelectedRole = Qt.ItemDataRole.UserRole + 12

    def __init__(self, logs: Optional[List[UpdateLogItem]] = None,
                 is_selected: Optional[Callable[[int], bool]] = None) -> None:
        super().__init__()
        self.logs: List[UpdateLogItem] = list(logs or [])
        self._is_selected = is_selected or (lambda _id: False)

    def set_logs(self, logs: List[UpdateLogItem]) -> None:
        self.beginResetModel()
        self.logs = list(logs)
        self.endResetModel()

    def refresh_selection(self) -> None:
        if self.logs:
            self.dataChanged.emit(self.index(0), self.index(len(self.logs) - 1), [self.SelectedRole])

    def rowCount(self, parent: QModelIndex | QPersistentModelIndex = QModelIndex()) -> int:
        return len(self.logs)

    def data(self, index: QModelIndex | QPersistentModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if not index.isValid() or index.row() >= len(self.logs):
            return None

        item = self.logs[index.row()]

        if role == self.IdRole:
            return item.id
        elif role == self.SequenceRole:
            return item.sequence
        elif role == self.StationRole:
            return item.power_station
        elif role == self.ScreenRole:
            return item.protection_screen
        elif role == self.BayRole:
            return item.device_issue
        elif role in (self.NameRole, Qt.ItemDataRole.DisplayRole):
            return item.pressure_plate_name
        elif role == self.TypeLabelRole:
            return type_label(item.type)
        elif role == self.ChangeTypeRole:
            return item.change_type
        elif role == self.ChangeSourceRole:
            return item.change_source
        elif role == self.ChangeTimeRole:
            return format_timestamp(item.change_time)
        elif role == self.StatusRole:
            return item.pressure_plate_status
        elif role == self.SelectedRole:
            return self._is_selected(item.id)

        return None

    def roleNames(self) -> dict[int, QByteArray]:
        return {
            self.IdRole: QByteArray(b"logId"),
            self.SequenceRole: QByteArray(b"sequence"),
            self.StationRole: QByteArray(b"powerStation"),
            self.ScreenRole: QByteArray(b"protectionScreen"),
            self.BayRole: QByteArray(b"deviceIssue"),
            self.NameRole: QByteArray(b"plateName"),
            self.TypeLabelRole: QByteArray(b"typeLabel"),
            self.ChangeTypeRole: QByteArray(b"changeType"),
            self.ChangeSourceRole: QByteArray(b"changeSource"),
            self.ChangeTimeRole: QByteArray(b"changeTime"),
            self.StatusRole: QByteArray(b"status"),
            self.SelectedRole: QByteArray(b"selected"),
        }
