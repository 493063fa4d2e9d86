"""Experiment parameter schema for RetinoForge.

This module defines the parameter record consumed by the bar stimulus
pipeline and the resolver that derives every dependent quantity (steps per
sweep, sweep length, aperture radius, cycle bookkeeping) from it. The
parameter record round-trips through YAML so a generated stimulus can always
be replayed from the parameters saved next to it.

Example:
    >>> from retinoforge.config.schema import ExperimentParams, resolve_params
    >>> params = ExperimentParams.from_dict({"contrast": 0.5})
    >>> resolved = resolve_params(params)
    >>> resolved.intensity_range
    (64, 191)
    >>> resolved.steps_per_sweep
    20
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

# 4 orientations x 2 directions, separated by 4 half-length blank periods
NUM_SWEEPS = 8
NUM_BLANKS = 4

# Absorbs floating-point error in duration ratios (e.g. 16 / 0.8).
_EPS = 1e-9


class ConfigurationError(ValueError):
    """Raised when experiment parameters cannot produce a valid stimulus.

    Attributes:
        field: Name of the offending parameter.
        value: Value that was rejected.
    """

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid '{field}' = {value!r}: {reason}")


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class ExperimentParams:
    """Parameters of a drifting-bar pRF mapping scan.

    Defaults match a 3T scanner setup with a 1920x1080 projector.

    Attributes:
        resolution: Screen (width, height) in pixels.
        prop_screen: Fraction of the screen height used for the stimulus
            diameter.
        ring_size: Bar width as a fraction of the stimulus radius.
        motion_steps: Number of checker motion phases per bar position.
        num_sub_rings: Spatial frequency multiplier of the checkerboard.
        background_intensity: Grey level of the background (0-255).
        intensity_range: (min, max) grey levels of the checks.
        contrast: Optional contrast in [0, 1]; overrides ``intensity_range``
            symmetrically around its midpoint.
        sweep_duration: Duration of one bar sweep. Units: s.
        scan_duration: Duration of the whole scan. Units: s.
        sampling_interval: Repetition time (TR). Units: s.
    """
    resolution: Tuple[int, int] = (1920, 1080)
    prop_screen: float = 1.0
    ring_size: float = 0.25
    motion_steps: int = 8
    num_sub_rings: float = 1
    background_intensity: int = 128
    intensity_range: Tuple[int, int] = (0, 255)
    contrast: Optional[float] = None
    sweep_duration: float = 16.0
    scan_duration: float = 336.0
    sampling_interval: float = 0.8

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dict for YAML serialization."""
        result = asdict(self)
        result["resolution"] = list(self.resolution)
        result["intensity_range"] = list(self.intensity_range)
        return {k: v for k, v in result.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> ExperimentParams:
        """Create from dict (e.g., from YAML).

        Accepts either a flat mapping or one nested under ``experiment``.
        ``tr`` is accepted as an alias of ``sampling_interval``. Unknown keys
        are ignored.
        """
        data = dict(data or {})
        if isinstance(data.get("experiment"), dict):
            data = dict(data["experiment"])
        if "tr" in data and "sampling_interval" not in data:
            data["sampling_interval"] = data["tr"]

        kwargs = {}
        for f in fields(cls):
            if f.name in data:
                kwargs[f.name] = data[f.name]

        for pair_name in ("resolution", "intensity_range"):
            if pair_name in kwargs:
                value = kwargs[pair_name]
                if not isinstance(value, (list, tuple)) or len(value) != 2:
                    raise ConfigurationError(
                        pair_name, value, "expected a pair of numbers"
                    )
                kwargs[pair_name] = tuple(value)

        return cls(**kwargs)

    def to_yaml(self) -> str:
        """Serialize to YAML string."""
        return yaml.dump(
            self.to_dict(),
            default_flow_style=False,
            sort_keys=False,
        )

    @classmethod
    def from_yaml(cls, yaml_str: str) -> ExperimentParams:
        """Load from YAML string."""
        data = yaml.safe_load(yaml_str)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("YAML did not produce a dict")
        return cls.from_dict(data)


@dataclass(frozen=True)
class ResolvedParams:
    """Experiment parameters together with every derived quantity.

    Attributes:
        params: The source parameter record.
        steps_per_sweep: Bar positions per sweep (sweep_duration / TR).
        frames_per_half_cycle: Rendered bar positions in the half cycle
            (4 orientation blocks x ``steps_per_sweep``).
        outer_radius: Stimulus aperture radius. Units: px.
        ring_width: Bar width. Units: px.
        intensity_range: (min, max) check grey levels after contrast.
        frame_size: Side of the square frames after cropping. Units: px.
        full_size: Side of the coordinate grid before cropping. Units: px.
        cycle_duration: Duration of one 8-sweep cycle. Units: s.
        num_cycles: Number of complete cycles that fit in the scan; 0 when
            the scan is shorter than a cycle.
        buffer_time: Scan time left after the last cycle. Units: s.
        buffer_length: Number of blank samples padding the scan end.
    """
    params: ExperimentParams
    steps_per_sweep: int
    frames_per_half_cycle: int
    outer_radius: float
    ring_width: float
    intensity_range: Tuple[int, int]
    frame_size: int
    full_size: int
    cycle_duration: float
    num_cycles: int
    buffer_time: float
    buffer_length: int
    num_sweeps: int = NUM_SWEEPS
    num_blanks: int = NUM_BLANKS

    @property
    def motion_steps(self) -> int:
        return self.params.motion_steps

    @property
    def sweep_length(self) -> int:
        """Number of sequence samples in one sweep."""
        return self.steps_per_sweep * self.motion_steps

    @property
    def blank_length(self) -> int:
        """Number of sequence samples in one blank period."""
        return self.sweep_length // 2

    @property
    def step_size(self) -> float:
        """Bar advance between consecutive positions. Units: px."""
        return (2 * self.outer_radius - self.ring_width / 2) / self.steps_per_sweep

    @property
    def cycle_length(self) -> int:
        return self.num_sweeps * self.sweep_length + self.num_blanks * self.blank_length

    @property
    def sequence_length(self) -> int:
        return self.cycle_length * self.num_cycles + self.buffer_length

    @property
    def library_size(self) -> int:
        """Number of frames in the library, blank included."""
        return self.frames_per_half_cycle * self.motion_steps + 1

    def to_dict(self) -> Dict[str, Any]:
        """Flatten derived quantities for reporting."""
        return {
            "params": self.params.to_dict(),
            "steps_per_sweep": self.steps_per_sweep,
            "frames_per_half_cycle": self.frames_per_half_cycle,
            "outer_radius": self.outer_radius,
            "ring_width": self.ring_width,
            "intensity_range": list(self.intensity_range),
            "frame_size": self.frame_size,
            "cycle_duration": self.cycle_duration,
            "num_cycles": self.num_cycles,
            "buffer_time": self.buffer_time,
            "buffer_length": self.buffer_length,
            "sweep_length": self.sweep_length,
            "sequence_length": self.sequence_length,
            "library_size": self.library_size,
        }


def _require_positive(name: str, value: Any) -> None:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(name, value, "must be a number")
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(name, value, "must be positive")


def _require_grey_level(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(name, value, "must be a number")
    if not 0 <= value <= 255:
        raise ConfigurationError(name, value, "must lie in [0, 255]")


def resolve_params(params: Optional[ExperimentParams] = None) -> ResolvedParams:
    """Validate experiment parameters and derive dependent quantities.

    Args:
        params: Parameter record. Defaults are used when None.

    Returns:
        Fully resolved parameters.

    Raises:
        ConfigurationError: If any parameter is missing, non-positive or
            inconsistent with the others.
    """
    if params is None:
        params = ExperimentParams()

    width, height = params.resolution
    for name, value in (("resolution", width), ("resolution", height)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigurationError(
                name, params.resolution, "dimensions must be positive integers"
            )
    _require_positive("sweep_duration", params.sweep_duration)
    _require_positive("sampling_interval", params.sampling_interval)
    _require_positive("scan_duration", params.scan_duration)
    _require_positive("prop_screen", params.prop_screen)
    _require_positive("ring_size", params.ring_size)
    _require_positive("num_sub_rings", params.num_sub_rings)
    if (
        isinstance(params.motion_steps, bool)
        or not isinstance(params.motion_steps, int)
        or params.motion_steps <= 0
    ):
        raise ConfigurationError(
            "motion_steps", params.motion_steps, "must be a positive integer"
        )
    _require_grey_level("background_intensity", params.background_intensity)
    for value in params.intensity_range:
        _require_grey_level("intensity_range", value)

    ratio = params.sweep_duration / params.sampling_interval
    steps_per_sweep = round(ratio)
    if steps_per_sweep < 1 or abs(ratio - steps_per_sweep) > 1e-6:
        raise ConfigurationError(
            "sweep_duration",
            params.sweep_duration,
            f"must be a whole multiple of sampling_interval "
            f"({params.sampling_interval})",
        )
    if (steps_per_sweep * params.motion_steps) % 2:
        raise ConfigurationError(
            "motion_steps",
            params.motion_steps,
            f"steps_per_sweep ({steps_per_sweep}) x motion_steps must be even "
            f"so blank periods last half a sweep",
        )

    outer_radius = 0.5 * params.prop_screen * height
    ring_width = outer_radius * params.ring_size

    full_size = int(math.floor(2 * outer_radius))
    frame_size = min(full_size, height)
    if frame_size < 2:
        raise ConfigurationError(
            "prop_screen",
            params.prop_screen,
            f"stimulus diameter of {2 * outer_radius:g}px is below 2 pixels",
        )
    if frame_size > width:
        raise ConfigurationError(
            "resolution",
            params.resolution,
            f"screen width is smaller than the {frame_size}px stimulus",
        )

    min_val = min(params.intensity_range)
    max_val = max(params.intensity_range)
    if params.contrast is not None:
        c = params.contrast
        if isinstance(c, bool) or not isinstance(c, (int, float)) or not 0 <= c <= 1:
            raise ConfigurationError("contrast", c, "must lie in [0, 1]")
        midpoint = (min_val + max_val) / 2
        min_val = round_half_away((1 - c) * midpoint)
        max_val = round_half_away((1 + c) * midpoint)
    intensity_range = (int(min_val), int(max_val))

    cycle_duration = (
        NUM_SWEEPS * params.sweep_duration
        + NUM_BLANKS * params.sweep_duration / 2
    )
    num_cycles = int(math.floor(params.scan_duration / cycle_duration + _EPS))
    buffer_time = max(params.scan_duration - num_cycles * cycle_duration, 0.0)
    buffer_length = int(
        math.floor(params.motion_steps * buffer_time / params.sampling_interval + _EPS)
    )
    if num_cycles == 0 and buffer_length == 0:
        raise ConfigurationError(
            "scan_duration",
            params.scan_duration,
            "shorter than one presentation sample",
        )
    if num_cycles == 0:
        logger.warning(
            "Scan of %gs is shorter than one %gs cycle; sequence is blank only",
            params.scan_duration, cycle_duration,
        )

    resolved = ResolvedParams(
        params=params,
        steps_per_sweep=steps_per_sweep,
        frames_per_half_cycle=(NUM_SWEEPS // 2) * steps_per_sweep,
        outer_radius=outer_radius,
        ring_width=ring_width,
        intensity_range=intensity_range,
        frame_size=frame_size,
        full_size=full_size,
        cycle_duration=cycle_duration,
        num_cycles=num_cycles,
        buffer_time=buffer_time,
        buffer_length=buffer_length,
    )
    logger.debug(
        "Resolved %d steps/sweep, %d cycles, %d buffer samples, %dpx frames",
        steps_per_sweep, num_cycles, buffer_length, frame_size,
    )
    return resolved
