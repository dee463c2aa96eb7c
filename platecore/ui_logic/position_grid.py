"""
Grid builder for the pressure plate position diagram.

Turn the plates of one protection screen into a dense row-major matrix
using their 1-based (x, y) coordinates. No UI framework dependencies -
the matrix is consumed by the Qt models and by the scale resolver.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
import logging

from ..data_models import Device, normalize_coordinate

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PositionGrid:
    """Dense plate matrix for a single protection screen."""
    rows: int
    cols: int
    matrix: List[List[Optional[Device]]]

    @property
    def cell_count(self) -> int:
        """Number of cells, occupied or not."""
        return self.rows * self.cols

    @property
    def occupied_count(self) -> int:
        """Number of cells holding a plate."""
        return sum(1 for row in self.matrix for cell in row if cell is not None)

    def cell(self, x: int, y: int) -> Optional[Device]:
        """
        Get the plate at a 1-based grid coordinate.

        Args:
            x: Row number (1-based)
            y: Column number (1-based)

        Returns:
            Device in that cell, None if empty or out of bounds
        """
        if 1 <= x <= self.rows and 1 <= y <= self.cols:
            return self.matrix[x - 1][y - 1]
        return None

    def __str__(self) -> str:
        return f"PositionGrid(rows={self.rows}, cols={self.cols}, occupied={self.occupied_count})"


def build_grid(devices: Iterable[Device]) -> PositionGrid:
    """
    Build the position matrix for the plates of one screen.

    Rows come from ``pressure_plate_position_x`` and columns from
    ``pressure_plate_position_y``. When two plates claim the same cell the
    later one in iteration order replaces the earlier one.

    Args:
        devices: Plates sharing one protection screen

    Returns:
        PositionGrid with at least one row and one column
    """
    placed = [
        (normalize_coordinate(d.pressure_plate_position_x),
         normalize_coordinate(d.pressure_plate_position_y),
         d)
        for d in devices
    ]

    rows = max([x for x, _, _ in placed] + [1])
    cols = max([y for _, y, _ in placed] + [1])
    matrix: List[List[Optional[Device]]] = [[None] * cols for _ in range(rows)]

    for x, y, device in placed:
        # Upstream data occasionally repeats a coordinate; keep the last one
        if matrix[x - 1][y - 1] is not None:
            logger.debug(
                "Cell (%d, %d) already holds plate %s, replaced by %s",
                x, y, matrix[x - 1][y - 1].id, device.id,
            )
        matrix[x - 1][y - 1] = device

    return PositionGrid(rows=rows, cols=cols, matrix=matrix)


def group_by_screen(devices: Iterable[Device]) -> Dict[str, List[Device]]:
    """Group plates by protection screen, preserving input order within each group."""
    groups: Dict[str, List[Device]] = {}
    for device in devices:
        groups.setdefault(device.protection_screen, []).append(device)
    return groups
