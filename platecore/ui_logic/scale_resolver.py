"""
Scale and gap resolution for the position diagram.

Pick a geometry profile for the grid size, find the largest uniform scale
(never above 1) that fits the grid into the available viewport, then hand
leftover space back as column and row gaps. Pure functions with no UI
framework dependencies: the same inputs always give the same result.
"""
from dataclasses import dataclass
from typing import Iterable, Optional
import logging
import math

from ..data_models import Device
from .position_grid import PositionGrid, build_grid

logger = logging.getLogger(__name__)

# Grids with more rows or columns than this switch to the compact profile
LARGE_GRID_THRESHOLD = 6

# Unmeasured or tiny viewports are treated as at least this big
MIN_VIEWPORT_EXTENT = 300.0

# Smallest scale ever emitted when gaps alone nearly fill the viewport
MIN_SCALE = 0.01

GAP_X_RANGE = (4.0, 64.0)
GAP_Y_RANGE = (1.0, 32.0)


@dataclass(frozen=True, slots=True)
class GeometryProfile:
    """Unscaled geometry of one grid cell and its surroundings."""
    name: str
    slot_width: float
    bezel_width: float
    bezel_height: float
    plate_width: float
    plate_height: float
    base_gap_x: float
    base_gap_y: float
    padding: float
    extra_vertical_text: float
    font_size: float

    @property
    def cell_height(self) -> float:
        """Bezel plus the label text reserved beneath it."""
        return self.bezel_height + self.extra_vertical_text

    def footprint_width(self, cols: int) -> float:
        """Unscaled width of a grid with ``cols`` columns."""
        return cols * self.slot_width + (cols - 1) * self.base_gap_x + 2 * self.padding

    def footprint_height(self, rows: int) -> float:
        """Unscaled height of a grid with ``rows`` rows."""
        return rows * self.cell_height + (rows - 1) * self.base_gap_y + 2 * self.padding


STANDARD_PROFILE = GeometryProfile(
    name="standard",
    slot_width=100.0,
    bezel_width=88.0,
    bezel_height=56.0,
    plate_width=72.0,
    plate_height=40.0,
    base_gap_x=24.0,
    base_gap_y=16.0,
    padding=16.0,
    extra_vertical_text=40.0,
    font_size=14.0,
)

COMPACT_PROFILE = GeometryProfile(
    name="compact",
    slot_width=64.0,
    bezel_width=56.0,
    bezel_height=36.0,
    plate_width=46.0,
    plate_height=26.0,
    base_gap_x=16.0,
    base_gap_y=10.0,
    padding=10.0,
    extra_vertical_text=26.0,
    font_size=10.0,
)


@dataclass(slots=True)
class ViewportInfo:
    """Available drawing rectangle, already reduced by fixed margins."""
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_window(cls, width: float, height: float,
                    margin_x: float = 0.0, margin_y: float = 0.0) -> "ViewportInfo":
        """Build from a raw window size minus the fixed margins on each side."""
        return cls(width=width - 2 * margin_x, height=height - 2 * margin_y)


@dataclass(slots=True)
class LayoutResult:
    """Uniform scale plus gaps for rendering one position grid."""
    scale: float
    gap_x: float
    gap_y: float
    limiting_axis: str
    profile: GeometryProfile
    rows: int
    cols: int

    @property
    def cell_width(self) -> float:
        return self.profile.slot_width * self.scale

    @property
    def cell_height(self) -> float:
        return self.profile.cell_height * self.scale

    @property
    def bezel_size(self) -> tuple[float, float]:
        return (self.profile.bezel_width * self.scale, self.profile.bezel_height * self.scale)

    @property
    def plate_size(self) -> tuple[float, float]:
        return (self.profile.plate_width * self.scale, self.profile.plate_height * self.scale)

    @property
    def font_size(self) -> float:
        return self.profile.font_size * self.scale

    @property
    def padding(self) -> float:
        return self.profile.padding * self.scale

    @property
    def grid_width(self) -> float:
        """Rendered width including gaps and padding."""
        return self.cols * self.cell_width + (self.cols - 1) * self.gap_x + 2 * self.padding

    @property
    def grid_height(self) -> float:
        """Rendered height including gaps and padding."""
        return self.rows * self.cell_height + (self.rows - 1) * self.gap_y + 2 * self.padding

    def __str__(self) -> str:
        return (f"LayoutResult(profile={self.profile.name}, scale={self.scale:.3f}, "
                f"gap_x={self.gap_x:.1f}, gap_y={self.gap_y:.1f}, limit={self.limiting_axis})")


@dataclass(slots=True)
class PositionLayout:
    """Grid matrix together with its resolved layout."""
    grid: PositionGrid
    layout: LayoutResult


def is_large_grid(rows: int, cols: int) -> bool:
    """True when either dimension exceeds the compact-profile threshold."""
    return rows > LARGE_GRID_THRESHOLD or cols > LARGE_GRID_THRESHOLD


def select_profile(rows: int, cols: int) -> GeometryProfile:
    """Choose the compact profile for large grids, standard otherwise."""
    return COMPACT_PROFILE if is_large_grid(rows, cols) else STANDARD_PROFILE


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _floor_extent(value: Optional[float], minimum: float) -> float:
    if value is None:
        return minimum
    try:
        extent = float(value)
    except (TypeError, ValueError):
        return minimum
    if not math.isfinite(extent) or extent < minimum:
        return minimum
    return extent


def _row_gap(rows: int, base_gap_y: float, scale: float, extra_height: float) -> float:
    scaled = base_gap_y * scale
    if rows > 6:
        # Tall grids: every pixel of row gap is multiplied by the row count
        return max(1.0, scaled * 0.2)
    if rows > 4:
        return max(4.0, scaled * 0.5)
    if rows > 1 and extra_height > 0:
        return scaled + min(extra_height / (rows - 1), scaled * 0.5)
    return scaled


def _shrink_to_fit(scale: float, rows: int, cols: int, gap_x: float, gap_y: float,
                   profile: GeometryProfile, width: float, height: float) -> float:
    """Lower the scale when clamped gaps push the footprint past the viewport."""
    content_width = cols * profile.slot_width + 2 * profile.padding
    content_height = rows * profile.cell_height + 2 * profile.padding
    fit_width = (width - (cols - 1) * gap_x) / content_width
    fit_height = (height - (rows - 1) * gap_y) / content_height
    fitted = min(scale, fit_width, fit_height)
    if fitted < scale:
        logger.debug("Gap clamps overflow viewport, scale %.4f -> %.4f", scale, fitted)
    return max(MIN_SCALE, fitted)


def resolve_layout(rows: int, cols: int, available: ViewportInfo,
                   min_extent: float = MIN_VIEWPORT_EXTENT) -> LayoutResult:
    """
    Resolve scale and gaps so a rows x cols grid fits the viewport.

    Args:
        rows: Number of grid rows (values below 1 are treated as 1)
        cols: Number of grid columns (values below 1 are treated as 1)
        available: Viewport rectangle after margins
        min_extent: Floor applied to unmeasured or undersized viewports

    Returns:
        LayoutResult with 0 < scale <= 1 and clamped gaps
    """
    rows = max(1, int(rows))
    cols = max(1, int(cols))
    profile = select_profile(rows, cols)

    width = _floor_extent(available.width, min_extent)
    height = _floor_extent(available.height, min_extent)

    scale_w = width / profile.footprint_width(cols)
    scale_h = height / profile.footprint_height(rows)
    scale = min(scale_w, scale_h, 1.0)
    if not math.isfinite(scale) or scale <= 0:
        scale = 1.0
    limiting_axis = "height" if scale_h <= scale_w else "width"

    cell_width = profile.slot_width * scale
    cell_height = profile.cell_height * scale
    grid_width = (cols * cell_width + (cols - 1) * profile.base_gap_x * scale
                  + 2 * profile.padding * scale)
    grid_height = (rows * cell_height + (rows - 1) * profile.base_gap_y * scale
                   + 2 * profile.padding * scale)

    extra_width = max(0.0, width - grid_width)
    extra_height = max(0.0, height - grid_height)

    gap_y = _row_gap(rows, profile.base_gap_y, scale, extra_height)
    gap_x = profile.base_gap_x * scale + (extra_width / (cols - 1) if cols > 1 else 0.0)

    gap_x = _clamp(gap_x, GAP_X_RANGE)
    gap_y = _clamp(gap_y, GAP_Y_RANGE)

    scale = _shrink_to_fit(scale, rows, cols, gap_x, gap_y, profile, width, height)

    result = LayoutResult(
        scale=scale,
        gap_x=gap_x,
        gap_y=gap_y,
        limiting_axis=limiting_axis,
        profile=profile,
        rows=rows,
        cols=cols,
    )
    logger.debug("Resolved %dx%d grid in %.0fx%.0f: %s", rows, cols, width, height, result)
    return result


def layout_position_diagram(devices: Iterable[Device], available: ViewportInfo) -> PositionLayout:
    """Build the grid for one screen's plates and resolve its layout."""
    grid = build_grid(devices)
    return PositionLayout(grid=grid, layout=resolve_layout(grid.rows, grid.cols, available))
