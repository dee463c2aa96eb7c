"""
Row selection state for the plate management table.

Track selected plates, notify listeners on change, and answer the
"exactly one row selected" question the adjust action depends on.
No UI framework dependencies.
"""
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass
import logging

from ..data_models import Device

logger = logging.getLogger(__name__)


@dataclass
class SelectionEvent:
    """Represents a selection change event."""
    selected_ids: List[int]
    primary_id: Optional[int]
    previous_id: Optional[int]
    selection_type: str = "single"  # "single", "multi_add", "multi_remove", "clear"

    def __str__(self) -> str:
        return f"SelectionEvent(primary={self.primary_id}, count={len(self.selected_ids)}, type={self.selection_type})"


SelectionCallback = Callable[[SelectionEvent], None]


class PlateSelection:
    """
    Manages plate row selection with event notification.

    The table uses checkbox rows, so multi-selection is the default mode.
    Selection order is preserved; the most recently added row is primary.
    """

    def __init__(self, multi_select: bool = True) -> None:
        """
        Initialize selection manager.

        Args:
            multi_select: If True, selecting a row adds it instead of replacing
        """
        self.multi_select = multi_select
        self._selected: List[int] = []
        self._primary: Optional[int] = None
        self._callbacks: List[SelectionCallback] = []
        self._lookup: Dict[int, Device] = {}

    def register_callback(self, callback: SelectionCallback) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: SelectionCallback) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def update_lookup(self, devices: List[Device]) -> None:
        """
        Refresh the id-to-device lookup and drop selections that no longer exist.

        Args:
            devices: Plates currently shown in the table
        """
        self._lookup = {d.id: d for d in devices}
        stale = [i for i in self._selected if i not in self._lookup]
        if stale:
            previous = self._primary
            self._selected = [i for i in self._selected if i in self._lookup]
            if self._primary not in self._lookup:
                self._primary = self._selected[-1] if self._selected else None
            self._notify(previous, "multi_remove")

    def toggle(self, device_id: int, notify: bool = True) -> bool:
        """
        Toggle a row's checkbox.

        Args:
            device_id: Plate id of the row
            notify: If True, trigger selection change callbacks

        Returns:
            True if the plate is selected afterwards
        """
        previous = self._primary
        if device_id in self._selected:
            self._selected.remove(device_id)
            if self._primary == device_id:
                self._primary = self._selected[-1] if self._selected else None
            selection_type = "multi_remove"
        else:
            if not self.multi_select:
                self._selected.clear()
            self._selected.append(device_id)
            self._primary = device_id
            selection_type = "multi_add" if self.multi_select else "single"

        if notify:
            self._notify(previous, selection_type)
        return device_id in self._selected

    def set_selection(self, device_ids: List[int], notify: bool = True) -> None:
        """Replace the whole selection, as a table header checkbox does."""
        previous = self._primary
        self._selected = list(dict.fromkeys(device_ids))
        if not self.multi_select:
            self._selected = self._selected[-1:]
        self._primary = self._selected[-1] if self._selected else None
        if notify:
            self._notify(previous, "single")

    def clear(self, notify: bool = True) -> bool:
        if not self._selected:
            return False
        previous = self._primary
        self._selected = []
        self._primary = None
        if notify:
            self._notify(previous, "clear")
        return True

    def is_selected(self, device_id: int) -> bool:
        return device_id in self._selected

    @property
    def selected_ids(self) -> List[int]:
        return list(self._selected)

    @property
    def count(self) -> int:
        return len(self._selected)

    def require_single(self) -> Optional[Device]:
        """
        Get the selected plate when exactly one row is checked.

        Returns:
            The plate, or None for zero/multiple rows or an unknown id
        """
        if len(self._selected) != 1:
            logger.debug("Single selection required, have %d rows", len(self._selected))
            return None
        return self._lookup.get(self._selected[0])

    def _notify(self, previous_id: Optional[int], selection_type: str) -> None:
        event = SelectionEvent(
            selected_ids=list(self._selected),
            primary_id=self._primary,
            previous_id=previous_id,
            selection_type=selection_type,
        )
        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception as e:
                # Log error but don't let callback failures break selection
                logger.error("Selection callback error: %s", e)
