"""Presentation sequence assembly.

One stimulus cycle is described declaratively as a list of segments: blank
periods of half a sweep, and sweeps that reference one of the 4 rendered
orientation blocks either forwards or reversed. The assembler resolves the
template against the frame library layout, repeats it for every cycle that
fits in the scan and pads the end with blank samples.

Cycle layout::

    blank | up-left   | left-right | blank | up-right | down
    blank | down-right| right-left | blank | down-left| up

where the second row replays the blocks of the first row backwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple, Union

import torch

from retinoforge.config.schema import ResolvedParams


@dataclass(frozen=True)
class SweepSegment:
    """One bar sweep played from a rendered orientation block."""
    block: int
    reverse: bool = False
    label: str = ""


@dataclass(frozen=True)
class BlankSegment:
    """Half a sweep of background."""
    label: str = "blank"


Segment = Union[SweepSegment, BlankSegment]

CYCLE_TEMPLATE: Tuple[Segment, ...] = (
    BlankSegment(),
    SweepSegment(1, label="diagonal up-left"),
    SweepSegment(0, label="vertical left-right"),
    BlankSegment(),
    SweepSegment(3, label="diagonal up-right"),
    SweepSegment(2, label="horizontal down"),
    BlankSegment(),
    SweepSegment(1, reverse=True, label="diagonal down-right"),
    SweepSegment(0, reverse=True, label="vertical right-left"),
    BlankSegment(),
    SweepSegment(3, reverse=True, label="diagonal down-left"),
    SweepSegment(2, reverse=True, label="horizontal up"),
)


def sweep_indices(block: int, sweep_length: int, reverse: bool = False) -> torch.Tensor:
    """Library indices of one sweep.

    Args:
        block: Orientation block number.
        sweep_length: Frames per orientation block.
        reverse: Play the block backwards.

    Returns:
        int64 tensor of length ``sweep_length``.
    """
    if block < 0:
        raise ValueError(f"block must be non-negative, got {block}")
    indices = torch.arange(block * sweep_length, (block + 1) * sweep_length, dtype=torch.int64)
    if reverse:
        indices = torch.flip(indices, dims=(0,))
    return indices


class SequenceAssembler:
    """Build the presentation sequence from a cycle template.

    Attributes:
        resolved: Resolved experiment parameters.
        blank_index: Library index of the blank frame.
        template: Segments of one cycle.

    Example:
        >>> assembler = SequenceAssembler(resolved, blank_index=library.blank_index)
        >>> seq = assembler.assemble()
        >>> len(seq) == resolved.sequence_length
        True
    """

    def __init__(
        self,
        resolved: ResolvedParams,
        blank_index: int,
        template: Sequence[Segment] = CYCLE_TEMPLATE,
    ) -> None:
        self.resolved = resolved
        self.blank_index = blank_index
        self.template = tuple(template)

    def blank(self, length: int) -> torch.Tensor:
        return torch.full((length,), self.blank_index, dtype=torch.int64)

    def segment_indices(self, segment: Segment) -> torch.Tensor:
        """Resolve one template segment to library indices."""
        if isinstance(segment, BlankSegment):
            return self.blank(self.resolved.blank_length)
        if isinstance(segment, SweepSegment):
            return sweep_indices(segment.block, self.resolved.sweep_length, segment.reverse)
        raise TypeError(f"Unknown segment type: {type(segment).__name__}")

    def cycle(self) -> torch.Tensor:
        """Library indices of a single cycle."""
        return torch.cat([self.segment_indices(s) for s in self.template])

    def assemble(self) -> torch.Tensor:
        """Full sequence: every cycle followed by the trailing blank buffer."""
        cycles = self.cycle().repeat(self.resolved.num_cycles)
        return torch.cat([cycles, self.blank(self.resolved.buffer_length)])
