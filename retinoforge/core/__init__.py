"""Sequence assembly, timing, pipeline orchestration and persistence."""

from retinoforge.core.sequence import (
    CYCLE_TEMPLATE,
    BlankSegment,
    SweepSegment,
    SequenceAssembler,
    sweep_indices,
)
from retinoforge.core.timing import timing_vector, total_duration

__all__ = [
    "CYCLE_TEMPLATE",
    "BlankSegment",
    "SweepSegment",
    "SequenceAssembler",
    "sweep_indices",
    "timing_vector",
    "total_duration",
]
