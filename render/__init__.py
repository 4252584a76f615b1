"""Terminal-Darstellung: Wochenraster einer Sektion und Stundentafel."""

from render.timetable import (
    build_time_grid_rows,
    render_section_rows,
    render_time_grid_rows,
)

__all__ = ["build_time_grid_rows", "render_section_rows", "render_time_grid_rows"]
