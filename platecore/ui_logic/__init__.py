"""
UI logic package - portable across platforms.

Position grid building, scale resolution, label wrapping, table filtering
and pagination, and row selection. No UI framework dependencies.
"""
from .position_grid import PositionGrid, build_grid, group_by_screen, normalize_coordinate
from .scale_resolver import (
    COMPACT_PROFILE,
    STANDARD_PROFILE,
    GeometryProfile,
    LayoutResult,
    PositionLayout,
    ViewportInfo,
    layout_position_diagram,
    resolve_layout,
    select_profile,
)
from .label_chunker import chunk_label
from .plate_selection import PlateSelection, SelectionEvent
from .table_view import PlateFilter, clamp_jump_page, page_count, paginate

__all__ = [
    'PositionGrid',
    'build_grid',
    'group_by_screen',
    'normalize_coordinate',
    'GeometryProfile',
    'STANDARD_PROFILE',
    'COMPACT_PROFILE',
    'LayoutResult',
    'PositionLayout',
    'ViewportInfo',
    'layout_position_diagram',
    'resolve_layout',
    'select_profile',
    'chunk_label',
    'PlateSelection',
    'SelectionEvent',
    'PlateFilter',
    'clamp_jump_page',
    'page_count',
    'paginate',
]
