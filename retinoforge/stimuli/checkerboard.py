"""Checkerboard phase fields for drifting-bar stimuli.

The bar is filled with a checkerboard made of two square waves: *wedges*
alternate along the bar's sweep axis (x) and *rings* alternate across it
(y). Within positive wedges the rings are phase-shifted one way and within
negative wedges the other way, so stepping through the motion phases makes
neighbouring columns of checks drift in opposite directions.

All functions operate on coordinate meshgrids in pixel units with y pointing
up, as produced by :func:`coordinate_grid`.

Example:
    >>> from retinoforge.stimuli.checkerboard import coordinate_grid, check_intensities
    >>> xx, yy = coordinate_grid(outer_radius=20.0, height=40)
    >>> checks = check_intensities(xx, yy, ring_width=5.0, motion_steps=4,
    ...                            intensity_range=(0, 255), offset=-20.0)
    >>> checks.shape
    torch.Size([4, 40, 40])
"""

from __future__ import annotations

import math
from typing import Tuple

import torch

from retinoforge.config.schema import round_half_away


def coordinate_grid(
    outer_radius: float,
    height: int,
    device: torch.device | str = "cpu",
    dtype: torch.dtype = torch.float64,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Create a centered pixel grid spanning [-outer_radius, outer_radius].

    Rows run top to bottom with decreasing y, columns left to right with
    increasing x. A grid taller than the screen is cropped symmetrically to a
    square of side ``height``.

    Args:
        outer_radius: Stimulus radius. Units: px.
        height: Vertical screen resolution. Units: px.
        device: Device to create the grid on (cpu, cuda, mps).
        dtype: Floating point dtype of the coordinates.

    Returns:
        ``(xx, yy)`` meshgrids, each of shape [m, m].
    """
    side = int(math.floor(2 * outer_radius))
    x = torch.linspace(-outer_radius, outer_radius, side, device=device, dtype=dtype)
    y = torch.linspace(outer_radius, -outer_radius, side, device=device, dtype=dtype)

    if side > height:
        start = round_half_away((side - height) / 2)
        x = x[start:start + height]
        y = y[start:start + height]

    yy, xx = torch.meshgrid(y, x, indexing="ij")
    return xx, yy


def rotate_grid(
    xx: torch.Tensor,
    yy: torch.Tensor,
    angle: float,
) -> Tuple[torch.Tensor, torch.Tensor]:
    """Rotate coordinates counter-clockwise by ``angle`` radians."""
    cos_a = math.cos(angle)
    sin_a = math.sin(angle)
    return xx * cos_a - yy * sin_a, xx * sin_a + yy * cos_a


def circular_aperture(
    xx: torch.Tensor,
    yy: torch.Tensor,
    outer_radius: float,
) -> torch.Tensor:
    """Boolean mask of pixels strictly inside the stimulus disc."""
    return torch.sqrt(xx ** 2 + yy ** 2) < outer_radius


def square_wave(phase: torch.Tensor) -> torch.Tensor:
    """Sign of ``cos(phase)`` as +1/-1; zero crossings count as +1."""
    return torch.where(
        torch.cos(phase) >= 0,
        torch.ones_like(phase),
        -torch.ones_like(phase),
    )


def spatial_frequency(ring_width: float, num_sub_rings: float = 1) -> float:
    """Angular frequency of the checks. Units: rad/px."""
    return num_sub_rings * (2 * math.pi / ring_width)


def wedge_field(
    xx: torch.Tensor,
    ring_width: float,
    num_sub_rings: float = 1,
    offset: float = 0.0,
) -> torch.Tensor:
    """Alternating +1/-1 bands along x, shifted by the bar start ``offset``."""
    return square_wave((xx + offset) * spatial_frequency(ring_width, num_sub_rings))


def ring_field(
    yy: torch.Tensor,
    ring_width: float,
    num_sub_rings: float = 1,
    phase: float = 0.0,
) -> torch.Tensor:
    """Alternating +1/-1 bands along y, shifted by ``phase`` radians."""
    return square_wave(yy * spatial_frequency(ring_width, num_sub_rings) + phase)


def motion_phase_rings(
    yy: torch.Tensor,
    wedges: torch.Tensor,
    phase_index: int,
    motion_steps: int,
    ring_width: float,
    num_sub_rings: float = 1,
) -> torch.Tensor:
    """Ring field for one motion phase, counter-shifted in negative wedges.

    Args:
        yy: Y-coordinate meshgrid. Units: px.
        wedges: Wedge field of the same shape, values +1/-1.
        phase_index: Motion phase ``k`` in ``[0, motion_steps)``.
        motion_steps: Number of motion phases per bar position.
        ring_width: Bar width. Units: px.
        num_sub_rings: Spatial frequency multiplier.

    Returns:
        Ring field with values +1/-1.
    """
    shift = phase_index / motion_steps * 2 * math.pi
    forward = ring_field(yy, ring_width, num_sub_rings, shift)
    backward = ring_field(yy, ring_width, num_sub_rings, -shift)
    return torch.where(wedges > 0, forward, backward)


def check_intensities(
    xx: torch.Tensor,
    yy: torch.Tensor,
    ring_width: float,
    motion_steps: int,
    intensity_range: Tuple[int, int],
    offset: float = 0.0,
    num_sub_rings: float = 1,
) -> torch.Tensor:
    """Grey levels of the full-field checkerboard for every motion phase.

    The product of wedge and ring fields (+1/-1) is mapped onto the two ends
    of ``intensity_range``.

    Args:
        xx: X-coordinate meshgrid in the bar's rotated frame. Units: px.
        yy: Y-coordinate meshgrid in the bar's rotated frame. Units: px.
        ring_width: Bar width. Units: px.
        motion_steps: Number of motion phases.
        intensity_range: (min, max) grey levels.
        offset: Bar start position used to phase the wedges. Units: px.
        num_sub_rings: Spatial frequency multiplier.

    Returns:
        Tensor of shape [motion_steps, m, n] holding grey levels.
    """
    min_val, max_val = intensity_range
    span = max_val - min_val
    wedges = wedge_field(xx, ring_width, num_sub_rings, offset)

    checks = torch.empty((motion_steps,) + tuple(xx.shape), dtype=xx.dtype, device=xx.device)
    for k in range(motion_steps):
        rings = motion_phase_rings(yy, wedges, k, motion_steps, ring_width, num_sub_rings)
        checks[k] = min_val + torch.ceil(span * (wedges * rings + 1) / 2)
    return checks


def bar_window(
    xx: torch.Tensor,
    lo_x: float,
    hi_x: float,
    aperture: torch.Tensor,
) -> torch.Tensor:
    """Pixels whose x lies in ``[lo_x, hi_x]`` and inside the aperture."""
    return (xx >= lo_x) & (xx <= hi_x) & aperture
