"""Drifting checkerboard bar frame generation.

A full stimulus cycle sweeps the bar in 8 directions, but only the first
half of the cycle is rendered: 4 orientation blocks, each holding one sweep
of ``steps_per_sweep`` bar positions with ``motion_steps`` motion phases per
position. The remaining 4 directions are the same frames played backwards,
which the sequence assembler produces by index arithmetic alone.

Geometry (rotated coordinates and checkerboard) is recomputed only at the
start of each orientation block and carried in an :class:`OrientationBlock`;
every bar position of the block reuses it and only moves the bar window.

Example:
    >>> from retinoforge.config.schema import ExperimentParams, resolve_params
    >>> from retinoforge.stimuli.bars import BarFrameGenerator
    >>> resolved = resolve_params(ExperimentParams(resolution=(80, 40),
    ...     sweep_duration=4, sampling_interval=1, scan_duration=40,
    ...     motion_steps=4))
    >>> library = BarFrameGenerator(resolved).generate()
    >>> len(library) == resolved.library_size
    True
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

import torch
from tqdm import tqdm

from retinoforge.config.schema import NUM_SWEEPS, ResolvedParams, round_half_away
from retinoforge.stimuli.checkerboard import (
    bar_window,
    check_intensities,
    circular_aperture,
    coordinate_grid,
    rotate_grid,
)

logger = logging.getLogger(__name__)

# Visiting order of the 8 orientations (multiples of 45 deg), arranged so
# consecutive blocks are never angularly adjacent.
ORIENTATION_ORDER = (0, 5, 2, 7, 4, 1, 6, 3)

NUM_RENDERED_BLOCKS = NUM_SWEEPS // 2


def orientation_schedule() -> Tuple[float, ...]:
    """Rotation angles of the 8 orientation blocks, in radians."""
    return tuple(math.radians(45 * k) for k in ORIENTATION_ORDER)


def remake_schedule(steps_per_block: int, num_blocks: int = NUM_SWEEPS) -> List[Optional[float]]:
    """Per-step rotation schedule over a full cycle.

    The first step of every block carries the block's rotation angle; all
    other steps are None, meaning the previous geometry is reused.

    Args:
        steps_per_block: Bar positions per orientation block.
        num_blocks: Number of orientation blocks to schedule (at most 8).

    Returns:
        List of length ``steps_per_block * num_blocks``.
    """
    if steps_per_block < 1:
        raise ValueError(f"steps_per_block must be at least 1, got {steps_per_block}")
    angles = orientation_schedule()
    if not 1 <= num_blocks <= len(angles):
        raise ValueError(f"num_blocks must lie in [1, {len(angles)}], got {num_blocks}")

    schedule: List[Optional[float]] = [None] * (steps_per_block * num_blocks)
    for block in range(num_blocks):
        schedule[block * steps_per_block] = angles[block]
    return schedule


@dataclass(frozen=True)
class OrientationBlock:
    """Geometry shared by every bar position of one sweep direction.

    Attributes:
        index: Orientation block number, 0-based.
        angle: Rotation of the sweep axis. Units: radians.
        xx: Rotated x-coordinates (sweep axis). Units: px.
        yy: Rotated y-coordinates. Units: px.
        checks: Checkerboard grey levels, shape [motion_steps, m, n].
        start_x: Position of the bar's trailing edge at the first step.
    """
    index: int
    angle: float
    xx: torch.Tensor
    yy: torch.Tensor
    checks: torch.Tensor
    start_x: float

    @classmethod
    def remake(
        cls,
        index: int,
        angle: float,
        base_xx: torch.Tensor,
        base_yy: torch.Tensor,
        resolved: ResolvedParams,
    ) -> "OrientationBlock":
        """Rotate the base grid and recompute the checkerboard."""
        params = resolved.params
        start_x = -resolved.outer_radius
        xx, yy = rotate_grid(base_xx, base_yy, angle)
        checks = check_intensities(
            xx,
            yy,
            ring_width=resolved.ring_width,
            motion_steps=params.motion_steps,
            intensity_range=resolved.intensity_range,
            offset=start_x,
            num_sub_rings=params.num_sub_rings,
        )
        return cls(index=index, angle=angle, xx=xx, yy=yy, checks=checks, start_x=start_x)

    def bar_edges(self, step: int, step_size: float, ring_width: float) -> Tuple[float, float]:
        """Trailing and leading bar edges at ``step`` within this block.

        The trailing edge is a running position: it starts one ``step_size``
        before ``start_x`` and advances by ``step_size`` once per step.
        """
        lo_x = self.start_x - step_size
        for _ in range(step + 1):
            lo_x += step_size
        return lo_x, lo_x + ring_width

    def render(
        self,
        step: int,
        resolved: ResolvedParams,
        aperture: torch.Tensor,
    ) -> torch.Tensor:
        """Render the motion-phase frames of one bar position.

        Args:
            step: Bar position within the block, 0-based.
            resolved: Resolved experiment parameters.
            aperture: Circular aperture mask, shape [m, n].

        Returns:
            uint8 tensor of shape [motion_steps, m, n].
        """
        lo_x, hi_x = self.bar_edges(step, resolved.step_size, resolved.ring_width)
        window = bar_window(self.xx, lo_x, hi_x, aperture)

        background = torch.full_like(
            self.checks, float(round_half_away(resolved.params.background_intensity))
        )
        frames = torch.where(window.unsqueeze(0), self.checks, background)
        return frames.round().clamp(0, 255).to(torch.uint8)


class FrameLibrary:
    """Append-only arena of rendered frames.

    Bar frames occupy a contiguous block indexed by
    ``(orientation block, step, motion phase)``; the blank frame is appended
    after them. Every slot may be written exactly once.

    Attributes:
        frames: uint8 tensor of shape [capacity, m, n].
        steps_per_block: Bar positions per orientation block.
        motion_steps: Motion phases per bar position.
        blank_index: Index of the blank frame, None until appended.
    """

    def __init__(
        self,
        num_blocks: int,
        steps_per_block: int,
        motion_steps: int,
        frame_size: int,
        device: torch.device | str = "cpu",
    ) -> None:
        self.num_blocks = num_blocks
        self.steps_per_block = steps_per_block
        self.motion_steps = motion_steps
        self.num_bar_frames = num_blocks * steps_per_block * motion_steps
        self.frames = torch.zeros(
            (self.num_bar_frames + 1, frame_size, frame_size),
            dtype=torch.uint8,
            device=device,
        )
        self._written = torch.zeros(self.num_bar_frames + 1, dtype=torch.bool)
        self.blank_index: Optional[int] = None

    def __len__(self) -> int:
        return int(self._written.sum().item())

    @property
    def sweep_length(self) -> int:
        """Number of frames in one orientation block."""
        return self.steps_per_block * self.motion_steps

    def index(self, block: int, step: int, phase: int = 0) -> int:
        """Flat library index of a bar frame."""
        if not 0 <= block < self.num_blocks:
            raise IndexError(f"block {block} out of range [0, {self.num_blocks})")
        if not 0 <= step < self.steps_per_block:
            raise IndexError(f"step {step} out of range [0, {self.steps_per_block})")
        if not 0 <= phase < self.motion_steps:
            raise IndexError(f"phase {phase} out of range [0, {self.motion_steps})")
        return (block * self.steps_per_block + step) * self.motion_steps + phase

    def write(self, block: int, step: int, frames: torch.Tensor) -> None:
        """Store the motion-phase frames of one bar position."""
        if frames.shape[0] != self.motion_steps:
            raise ValueError(
                f"expected {self.motion_steps} motion frames, got {frames.shape[0]}"
            )
        start = self.index(block, step)
        stop = start + self.motion_steps
        if self._written[start:stop].any():
            raise RuntimeError(f"frames for block {block}, step {step} already written")
        self.frames[start:stop] = frames
        self._written[start:stop] = True

    def append_blank(self, frame: torch.Tensor) -> int:
        """Store the blank frame after the bar frames and return its index."""
        if self.blank_index is not None:
            raise RuntimeError("blank frame already appended")
        self.blank_index = self.num_bar_frames
        self.frames[self.blank_index] = frame
        self._written[self.blank_index] = True
        return self.blank_index

    def is_complete(self) -> bool:
        return bool(self._written.all())


def blank_frame(
    frame_size: int,
    background_intensity: float,
    device: torch.device | str = "cpu",
) -> torch.Tensor:
    """Uniform background frame, shape [frame_size, frame_size]."""
    return torch.full(
        (frame_size, frame_size),
        round_half_away(background_intensity),
        dtype=torch.uint8,
        device=device,
    )


class BarFrameGenerator:
    """Render the unique frames of one half stimulus cycle.

    Attributes:
        resolved: Resolved experiment parameters.
        device: Device the frames are rendered on.
        xx: Unrotated x-coordinate grid. Units: px.
        yy: Unrotated y-coordinate grid. Units: px.
        aperture: Circular aperture mask.
    """

    def __init__(self, resolved: ResolvedParams, device: torch.device | str = "cpu") -> None:
        self.resolved = resolved
        self.device = torch.device(device) if isinstance(device, str) else device
        self.xx, self.yy = coordinate_grid(
            resolved.outer_radius, resolved.params.resolution[1], device=self.device
        )
        self.aperture = circular_aperture(self.xx, self.yy, resolved.outer_radius)

    @property
    def num_steps(self) -> int:
        """Bar positions rendered in the half cycle."""
        return NUM_RENDERED_BLOCKS * self.resolved.steps_per_sweep

    def generate(self, verbose: bool = False) -> FrameLibrary:
        """Render all half-cycle frames plus the blank frame.

        Args:
            verbose: Show a progress bar over bar positions.

        Returns:
            Completed frame library.
        """
        resolved = self.resolved
        steps = resolved.steps_per_sweep
        library = FrameLibrary(
            num_blocks=NUM_RENDERED_BLOCKS,
            steps_per_block=steps,
            motion_steps=resolved.motion_steps,
            frame_size=resolved.frame_size,
            device=self.device,
        )
        schedule = remake_schedule(steps, NUM_RENDERED_BLOCKS)

        block: Optional[OrientationBlock] = None
        for i in tqdm(range(self.num_steps), desc="Rendering bars", disable=not verbose):
            angle = schedule[i]
            if angle is not None:
                block = OrientationBlock.remake(
                    i // steps, angle, self.xx, self.yy, resolved
                )
                logger.debug(
                    "Orientation block %d at %.0f deg", block.index, math.degrees(angle)
                )
            library.write(block.index, i % steps, block.render(i % steps, resolved, self.aperture))

        library.append_blank(
            blank_frame(resolved.frame_size, resolved.params.background_intensity, self.device)
        )
        logger.info("Rendered %d frames of %dpx", len(library), resolved.frame_size)
        return library
