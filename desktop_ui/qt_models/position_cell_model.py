from typing import Any, List, Optional, Tuple
from PySide6.QtCore import QAbstractListModel, QByteArray, QModelIndex, QPersistentModelIndex, Qt
from platecore.data_models import Device, color_hex
from platecore.ui_logic.label_chunker import chunk_label
from platecore.ui_logic.scale_resolver import PositionLayout


class PositionCellModel(QAbstractListModel):
    """Flattened row-major cells of the position diagram for a GridView/Repeater."""
    RowRole = Qt.ItemDataRole.UserRole + 1
    ColumnRole = Qt.ItemDataRole.UserRole + 2
    OccupiedRole = Qt.ItemDataRole.UserRole + 3
    PlateIdRole = Qt.ItemDataRole.UserRole + 4
    NameLinesRole = Qt.ItemDataRole.UserRole + 5
    ColorRole = Qt.ItemDataRole.UserRole + 6
    StatusRole = Qt.ItemDataRole.UserRole + 7
    InServiceRole = Qt.ItemDataRole.UserRole + 8
    CoordinateRole = Qt.ItemDataRole.UserRole + 9

    def __init__(self) -> None:
        super().__init__()
        self.cells: List[Tuple[int, int, Optional[Device]]] = []

    def set_layout(self, position: Optional[PositionLayout]) -> None:
        self.beginResetModel()
        if position is None:
            self.cells = []
        else:
            self.cells = [
                (r + 1, c + 1, device)
                for r, row in enumerate(position.grid.matrix)
                for c, device in enumerate(row)
            ]
        self.endResetModel()

    def rowCount(self, parent: QModelIndex | QPersistentModelIndex = QModelIndex()) -> int:
        return len(self.cells)

    def data(self, index: QModelIndex | QPersistentModelIndex, role: int = Qt.ItemDataRole.DisplayRole) -> Any:
        if not index.isValid() or index.row() >= len(self.cells):
            return None

        row, column, device = self.cells[index.row()]

        if role == self.RowRole:
            return row
        elif role == self.ColumnRole:
            return column
        elif role == self.OccupiedRole:
            return device is not None
        elif role == self.CoordinateRole:
            return f"{row},{column}"

        if device is None:
            return None

        if role == self.PlateIdRole:
            return device.id
        elif role == self.NameLinesRole:
            return chunk_label(device.pressure_plate_name)
        elif role == self.ColorRole:
            return color_hex(device.pressure_plate_type_color)
        elif role == self.StatusRole:
            return device.status
        elif role == self.InServiceRole:
            return device.is_in_service

        return None

    def roleNames(self) -> dict[int, QByteArray]:
        return {
            self.RowRole: QByteArray(b"cellRow"),
            self.ColumnRole: QByteArray(b"cellColumn"),
            self.OccupiedRole: QByteArray(b"occupied"),
            self.PlateIdRole: QByteArray(b"plateId"),
            self.NameLinesRole: QByteArray(b"nameLines"),
            self.ColorRole: QByteArray(b"plateColor"),
            self.StatusRole: QByteArray(b"status"),
            self.InServiceRole: QByteArray(b"inService"),
            self.CoordinateRole: QByteArray(b"coordinate"),
        }
