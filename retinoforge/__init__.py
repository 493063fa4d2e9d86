"""RetinoForge: drifting checkerboard bar stimuli for pRF mapping.

RetinoForge synthesizes the visual stimulus of a population receptive field
(pRF) mapping scan: a checkerboard bar that sweeps across a circular aperture
in 8 directions, interleaved with blank periods, with checks that drift
inside the bar. It produces a library of unique frames, the sequence of
library indices presented over the scan, and the onset time of every
presented sample.

Key Components:
    - config: Experiment parameters, defaults and validation (YAML I/O)
    - stimuli: Checkerboard phase fields and bar frame rendering
    - core: Sequence assembly, timing, pipeline orchestration, persistence
    - cli: Command-line interface for generating and inspecting stimuli

Example:
    >>> from retinoforge import BarStimulusPipeline, save_stimulus
    >>> stimulus = BarStimulusPipeline.from_config({"contrast": 0.5}).run()
    >>> save_stimulus(stimulus, "bars.pt")
"""

__version__ = "0.1.0"
__author__ = "RetinoForge Contributors"
__license__ = "MIT"

from retinoforge.config.schema import (
    ConfigurationError,
    ExperimentParams,
    ResolvedParams,
    resolve_params,
)
from retinoforge.stimuli.bars import BarFrameGenerator, FrameLibrary
from retinoforge.core.sequence import SequenceAssembler
from retinoforge.core.timing import timing_vector
from retinoforge.core.pipeline import BarStimulus, BarStimulusPipeline
from retinoforge.core.persistence import save_stimulus, load_stimulus

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "ConfigurationError",
    "ExperimentParams",
    "ResolvedParams",
    "resolve_params",
    "BarFrameGenerator",
    "FrameLibrary",
    "SequenceAssembler",
    "timing_vector",
    "BarStimulus",
    "BarStimulusPipeline",
    "save_stimulus",
    "load_stimulus",
]
