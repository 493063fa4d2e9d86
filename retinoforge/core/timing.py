"""Timestamps of the presentation sequence."""

from __future__ import annotations

from typing import Tuple

import torch


def total_duration(sequence_length: int, motion_steps: int, sampling_interval: float) -> float:
    """Scan time covered by a sequence; ``motion_steps`` samples per TR. Units: s."""
    if motion_steps <= 0:
        raise ValueError(f"motion_steps must be positive, got {motion_steps}")
    return sequence_length / motion_steps * sampling_interval


def timing_vector(
    sequence_length: int,
    motion_steps: int,
    sampling_interval: float,
) -> Tuple[float, torch.Tensor]:
    """Evenly spaced onset time of every sequence sample.

    Sample ``i`` is shown at ``i * duration / sequence_length``, so the
    vector starts at 0 and stops one spacing short of the total duration.

    Args:
        sequence_length: Number of samples in the sequence.
        motion_steps: Samples per sampling interval.
        sampling_interval: Repetition time (TR). Units: s.

    Returns:
        Tuple of ``(total_duration, timing)`` where ``timing`` is a float64
        tensor of length ``sequence_length``.
    """
    if sequence_length < 0:
        raise ValueError(f"sequence_length must be non-negative, got {sequence_length}")
    duration = total_duration(sequence_length, motion_steps, sampling_interval)
    if sequence_length == 0:
        return duration, torch.zeros(0, dtype=torch.float64)
    spacing = duration / sequence_length
    return duration, torch.arange(sequence_length, dtype=torch.float64) * spacing
