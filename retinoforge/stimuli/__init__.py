"""Bar stimulus rendering.

Modules:
    checkerboard: Coordinate grids and wedge/ring square-wave phase fields
    bars: Orientation schedule, per-block geometry, frame library, generator
"""

from retinoforge.stimuli.checkerboard import (
    coordinate_grid,
    rotate_grid,
    circular_aperture,
    square_wave,
    wedge_field,
    ring_field,
    motion_phase_rings,
    check_intensities,
    bar_window,
)

from retinoforge.stimuli.bars import (
    ORIENTATION_ORDER,
    orientation_schedule,
    remake_schedule,
    OrientationBlock,
    FrameLibrary,
    BarFrameGenerator,
    blank_frame,
)

__all__ = [
    "coordinate_grid",
    "rotate_grid",
    "circular_aperture",
    "square_wave",
    "wedge_field",
    "ring_field",
    "motion_phase_rings",
    "check_intensities",
    "bar_window",
    "ORIENTATION_ORDER",
    "orientation_schedule",
    "remake_schedule",
    "OrientationBlock",
    "FrameLibrary",
    "BarFrameGenerator",
    "blank_frame",
]
